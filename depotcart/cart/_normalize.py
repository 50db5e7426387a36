"""
Name normalization for cross-depot matching.

Two variants in different depots are "the same SKU" when their normalized
names are equal. No fuzzy distance: equality only, so matches stay
auditable.
"""

from __future__ import annotations

import re

# Unit tokens must not touch other letters: "1 litre jar" and "1litre" match,
# "literature" does not.
_UNITS: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (re.compile(rf"(?<![a-z])(?:{alternatives})(?![a-z])"), canonical)
    for alternatives, canonical in (
        (r"millilit(?:re|er)s?|mls?", "ml"),
        (r"lit(?:re|er)s?|ltrs?|lt|l", "ltr"),
        (r"kilo(?:gram)?s?|kgs?", "kg"),
        (r"grams?|gms?|g", "g"),
        (r"pieces?|pcs|pc", "pc"),
    )
)

_WHITESPACE = re.compile(r"\s+")


def normalize_variant_name(name: str) -> str:
    """
    Canonical form of a variant name.

    Lower-case, unit synonyms collapsed, all whitespace removed.

    Example:
        normalize_variant_name("1 Litre")  # "1ltr"
        normalize_variant_name("500 ML")   # "500ml"
    """
    text = name.lower()
    for pattern, canonical in _UNITS:
        text = pattern.sub(canonical, text)
    return _WHITESPACE.sub("", text)


def normalize_product_name(name: str) -> str:
    return _WHITESPACE.sub("", name.lower())


__all__ = ("normalize_variant_name", "normalize_product_name")
