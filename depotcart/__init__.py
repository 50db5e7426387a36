"""
depotcart — depot-aware cart reconciliation.

    from depotcart import cache as C    # Two-tier TTL cache
    from depotcart import depot as D    # Pincode → depot
    from depotcart import catalog as K  # Cached depot catalogs
    from depotcart import cart as R     # Cart + reconciliation
"""

from depotcart import cache
from depotcart import depot
from depotcart import catalog
from depotcart import cart
from depotcart._types import (
    Lazy,
    Pure,
    Clock,
    DepotId,
    ProductId,
    VariantId,
    TransportError,
    LCR,
    NoError,
)
from depotcart.session import Session, Relocation, NoDepotAvailable

__version__ = "0.1.0"

__all__ = (
    "cache",
    "depot",
    "catalog",
    "cart",
    "Lazy",
    "Pure",
    "Clock",
    "DepotId",
    "ProductId",
    "VariantId",
    "TransportError",
    "LCR",
    "NoError",
    "Session",
    "Relocation",
    "NoDepotAvailable",
)
