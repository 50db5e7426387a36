"""
Core types for depotcart.

Re-exports from kungfu/combinators + shared aliases.
"""

from __future__ import annotations

from collections.abc import Callable, Awaitable
from typing import Never

# Re-export from kungfu
from kungfu import Result, Ok, Error, Option, Some, Nothing, LazyCoroResult

# Re-export from combinators
from combinators import LCR, NoError

# ═══════════════════════════════════════════════════════════════════════════════
# Lazy Computation Aliases
# ═══════════════════════════════════════════════════════════════════════════════

type Lazy[T, E] = LazyCoroResult[T, E]
"""Lazy async computation that may fail."""

type Pure[T] = Lazy[T, Never]
"""Lazy computation that cannot fail."""

# ═══════════════════════════════════════════════════════════════════════════════
# Clock & Fetchers
# ═══════════════════════════════════════════════════════════════════════════════

type Clock = Callable[[], float]
"""Epoch seconds. Injected everywhere TTLs are checked."""

type Fetch[T] = Callable[[], Awaitable[T]]
"""Zero-argument async producer used by read-through helpers."""

# ═══════════════════════════════════════════════════════════════════════════════
# Identity
# ═══════════════════════════════════════════════════════════════════════════════

type DepotId = int
type ProductId = int
type VariantId = int


def check_depot_id(depot_id: object) -> DepotId:
    """Validate a depot id argument. Raises TypeError / ValueError."""
    if isinstance(depot_id, bool) or not isinstance(depot_id, int):
        raise TypeError(f"depot id must be int, got {type(depot_id).__name__}")
    if depot_id <= 0:
        raise ValueError(f"depot id must be positive, got {depot_id}")
    return depot_id


# ═══════════════════════════════════════════════════════════════════════════════
# Transport Error — Collaborator Gave Up
# ═══════════════════════════════════════════════════════════════════════════════


class TransportError(Exception):
    """
    A collaborator call failed (network, server, timeout).

    Retries are the collaborator's business; by the time this is raised it
    has given up. The original exception is kept as `cause` and chained as
    `__cause__`.
    """

    def __init__(self, operation: str, cause: Exception, *, depot_id: DepotId | None = None) -> None:
        self.operation = operation
        self.cause = cause
        self.depot_id = depot_id
        where = f"(depot_id={depot_id})" if depot_id is not None else ""
        super().__init__(f"{operation}{where} failed: {cause!r}")


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    # Re-exports from kungfu
    "Result",
    "Ok",
    "Error",
    "Option",
    "Some",
    "Nothing",
    "LazyCoroResult",
    # Re-exports from combinators
    "LCR",
    "NoError",
    # Type aliases
    "Lazy",
    "Pure",
    "Clock",
    "Fetch",
    # Identity
    "DepotId",
    "ProductId",
    "VariantId",
    "check_depot_id",
    # Errors
    "TransportError",
)
