"""Variant and product name normalization."""

import pytest

from depotcart.cart import normalize_product_name, normalize_variant_name

SYNONYMS = {
    "ltr": ["liter", "liters", "litre", "litres", "ltr", "ltrs", "l"],
    "ml": ["ml", "mls", "millilitre", "milliliters"],
    "g": ["g", "gm", "gms", "gram", "grams"],
    "kg": ["kg", "kgs", "kilogram", "kilograms", "kilo"],
    "pc": ["pc", "pcs", "piece", "pieces"],
}

UNIT_FORMS = [(form, canonical) for canonical, forms in SYNONYMS.items() for form in forms]


class TestVariantName:
    def test_litre_spellings_cross_match(self):
        keys = {normalize_variant_name(n) for n in ("1 Ltr", "1ltr", "1 Litre", "1 LTRS")}
        assert keys == {"1ltr"}

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("500 ML", "500ml"),
            ("500ml", "500ml"),
            ("250 Grams", "250g"),
            ("1 KG", "1kg"),
            ("6 Pieces", "6pc"),
            ("  2  x  500 ml ", "2x500ml"),
        ],
    )
    def test_examples(self, raw, expected):
        assert normalize_variant_name(raw) == expected

    def test_units_inside_words_untouched(self):
        assert normalize_variant_name("Glass Bottle") == "glassbottle"
        assert normalize_variant_name("Family Pack") == "familypack"

    def test_ml_is_not_litre(self):
        assert normalize_variant_name("500 ml") != normalize_variant_name("500 l")

    @pytest.mark.parametrize(("form", "canonical"), UNIT_FORMS)
    @pytest.mark.parametrize("space", ["", " ", "  ", "\t"])
    @pytest.mark.parametrize("amount", [1, 250, 5000])
    def test_any_spelling_normalizes_to_canonical(self, form, canonical, space, amount):
        raw = f"{amount}{space}{form}"
        assert normalize_variant_name(raw) == f"{amount}{canonical}"
        assert normalize_variant_name(raw.upper()) == f"{amount}{canonical}"


class TestProductName:
    def test_case_and_whitespace_insensitive(self):
        assert normalize_product_name("Cow  Milk") == normalize_product_name("cow milk ")

    @pytest.mark.parametrize("name", ["", "   ", "Cow Milk", " A2  Desi Ghee\t", "PANEER 200"])
    def test_idempotent(self, name):
        once = normalize_product_name(name)
        assert normalize_product_name(once) == once
