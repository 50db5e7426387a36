"""
Depot types.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from depotcart._types import DepotId

# ═══════════════════════════════════════════════════════════════════════════════
# Depot — Reference Data
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Depot:
    """
    Fulfilment location with its own catalog and pricing.

    is_online: marks the fallback depot used when no pincode matches.
    """

    id: DepotId
    name: str
    is_online: bool = False
    address: str | None = None
    contact_person: str | None = None
    contact_number: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    service_radius: float | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Collaborator Protocol — Users Implement This
# ═══════════════════════════════════════════════════════════════════════════════


class DepotDirectory(Protocol):
    """
    Pincode → depot lookups (usually area-master API endpoints).

    Network failures raise. No match is an empty sequence / None.
    """

    async def get_depots_for_pincode(self, pincode: str) -> Sequence[Depot]:
        ...

    async def get_online_depot(self) -> Depot | None:
        ...


# ═══════════════════════════════════════════════════════════════════════════════
# Service Availability
# ═══════════════════════════════════════════════════════════════════════════════

SERVICE_AVAILABLE = "Service available in your area"
SERVICE_UNAVAILABLE = "Service not available in your area"
SERVICE_CHECK_FAILED = "Error checking service availability"


@dataclass(frozen=True, slots=True)
class ServiceAvailability:
    """Whether a pincode is served directly (online fallback not counted)."""
    is_available: bool
    depot: Depot | None
    message: str


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "Depot",
    "DepotDirectory",
    "ServiceAvailability",
    "SERVICE_AVAILABLE",
    "SERVICE_UNAVAILABLE",
    "SERVICE_CHECK_FAILED",
)
