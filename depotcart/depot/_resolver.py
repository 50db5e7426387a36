"""
DepotResolver — pincode → serving depot, falling back to the online depot.
"""

from __future__ import annotations

from collections.abc import Iterable

import structlog
from combinators import lift as L
from kungfu import Error, Ok, Result

from depotcart._types import DepotId, TransportError
from depotcart.cache import TieredCache
from depotcart.depot._types import (
    SERVICE_AVAILABLE,
    SERVICE_CHECK_FAILED,
    SERVICE_UNAVAILABLE,
    Depot,
    DepotDirectory,
    ServiceAvailability,
)

logger = structlog.get_logger(__name__)

DEPOT_MAPPING_PREFIX = "depot_mapping_"


def depot_mapping_key(pincode: str) -> str:
    return f"{DEPOT_MAPPING_PREFIX}{pincode}"


def clean_pincode(pincode: object) -> str | None:
    """
    Stripped pincode, or None when absent or blank.

    Raises TypeError for anything that is not a string.
    """
    if pincode is None:
        return None
    if not isinstance(pincode, str):
        raise TypeError(f"pincode must be str, got {type(pincode).__name__}")
    return pincode.strip() or None


def unique_depots(depots: Iterable[Depot]) -> tuple[Depot, ...]:
    """De-duplicate by id, keeping first-seen order."""
    seen: set[DepotId] = set()
    unique: list[Depot] = []
    for depot in depots:
        if depot.id not in seen:
            seen.add(depot.id)
            unique.append(depot)
    return tuple(unique)


# ═══════════════════════════════════════════════════════════════════════════════
# DepotResolver
# ═══════════════════════════════════════════════════════════════════════════════


class DepotResolver:
    """
    Resolves the depot that should fulfil a delivery location.

    When several depots serve one pincode the first one returned by the
    directory wins. Positive pincode matches are cached under
    `depot_mapping_{pincode}`.

    Example:
        resolver = DepotResolver(directory, cache)

        depot = await resolver.resolve("411001")
        if depot is None:
            ...  # no depot at all, not even the online one
    """

    def __init__(self, directory: DepotDirectory, cache: TieredCache) -> None:
        self._directory = directory
        self._cache = cache

    async def _lookup(self, pincode: str) -> Result[tuple[Depot, ...], TransportError]:
        key = depot_mapping_key(pincode)
        cached = await self._cache.get(key)
        if cached is not None:
            return Ok(cached)

        async def fetch() -> tuple[Depot, ...]:
            return unique_depots(await self._directory.get_depots_for_pincode(pincode))

        result = await L.catching_async(
            fetch,
            on_error=lambda e: TransportError("get_depots_for_pincode", e),
        )
        match result:
            case Ok(depots) if depots:
                await self._cache.set(key, depots)
        return result

    async def _online(self) -> Depot | None:
        match await L.catching_async(
            self._directory.get_online_depot,
            on_error=lambda e: TransportError("get_online_depot", e),
        ):
            case Ok(depot):
                if depot is None:
                    logger.warning("depot.no_online_depot")
                return depot
            case Error(e):
                logger.warning("depot.online_lookup_failed", error=str(e))
                return None

    async def depots_for(self, pincode: str) -> tuple[Depot, ...]:
        """All depots serving a pincode, de-duplicated. Empty on failure."""
        pin = clean_pincode(pincode)
        if pin is None:
            return ()
        match await self._lookup(pin):
            case Ok(depots):
                return depots
            case Error(e):
                logger.warning("depot.pincode_lookup_failed", pincode=pin, error=str(e))
                return ()

    async def resolve(self, pincode: str | None = None) -> Depot | None:
        """
        Depot for a pincode, else the online depot, else None.

        Never raises for "not found" or transport failures.
        """
        pin = clean_pincode(pincode)
        if pin is not None:
            depots = await self.depots_for(pin)
            if depots:
                logger.debug("depot.resolved", pincode=pin, depot_id=depots[0].id)
                return depots[0]
            logger.info("depot.fallback_online", pincode=pin)

        return await self._online()

    async def service_availability(self, pincode: str) -> ServiceAvailability:
        """Whether the pincode is served by a depot of its own."""
        pin = clean_pincode(pincode)
        if pin is None:
            return ServiceAvailability(False, None, SERVICE_UNAVAILABLE)

        match await self._lookup(pin):
            case Ok(depots) if depots:
                return ServiceAvailability(True, depots[0], SERVICE_AVAILABLE)
            case Ok(_):
                return ServiceAvailability(False, None, SERVICE_UNAVAILABLE)
            case Error(e):
                logger.warning("depot.pincode_lookup_failed", pincode=pin, error=str(e))
                return ServiceAvailability(False, None, SERVICE_CHECK_FAILED)

    async def serves_pincode(self, depot_id: DepotId, pincode: str) -> bool:
        return any(depot.id == depot_id for depot in await self.depots_for(pincode))


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "DepotResolver",
    "depot_mapping_key",
    "clean_pincode",
    "unique_depots",
    "DEPOT_MAPPING_PREFIX",
)
