"""
Depot — pincode to depot resolution.

    from depotcart import depot as D

    resolver = D.DepotResolver(directory, cache)
    depot = await resolver.resolve("411001")
"""

from __future__ import annotations

from depotcart.depot._types import (
    Depot,
    DepotDirectory,
    ServiceAvailability,
    SERVICE_AVAILABLE,
    SERVICE_UNAVAILABLE,
    SERVICE_CHECK_FAILED,
)
from depotcart.depot._resolver import (
    DepotResolver,
    depot_mapping_key,
    clean_pincode,
    unique_depots,
)

__all__ = (
    "Depot",
    "DepotDirectory",
    "ServiceAvailability",
    "SERVICE_AVAILABLE",
    "SERVICE_UNAVAILABLE",
    "SERVICE_CHECK_FAILED",
    "DepotResolver",
    "depot_mapping_key",
    "clean_pincode",
    "unique_depots",
)
