"""Tests for the unit conversion table."""

from decimal import Decimal

import pytest

from models import UnitConversion
from services.errors import ConversionUnavailable, NotFound, ValidationError
from services.units import (
    ConversionTable, create_conversion, delete_conversion, load_conversion_table,
    normalize_unit, reference_conversions, seed_unit_conversions, update_conversion,
)


class TestNormalizeUnit:

    @pytest.mark.parametrize("raw,expected", [
        ("Grams", "g"),
        ("  KG ", "kg"),
        ("Tbsp", "tbsp"),
        ("fluid  ounce", "fl oz"),
        ("pcs", "each"),
        ("cup", "cup"),
    ])
    def test_aliases(self, raw, expected):
        assert normalize_unit(raw) == expected

    def test_none_is_blank(self):
        assert normalize_unit(None) == ''


class TestConversionTable:

    def test_same_unit_is_identity_without_a_row(self):
        table = ConversionTable()
        assert table.resolve_factor("g", "g") == Decimal("1")
        assert table.convert(Decimal("12.5"), "widget", "widget") == Decimal("12.5")

    def test_exact_directed_pair(self):
        table = ConversionTable()
        table.add("kg", "g", Decimal("1000"), "weight")
        assert table.convert(Decimal("1.5"), "kg", "g") == Decimal("1500")

    def test_inverse_is_never_inferred(self):
        table = ConversionTable()
        table.add("cup", "g", Decimal("120"), "weight")
        assert table.convert(Decimal("1"), "cup", "g") == Decimal("120")
        assert table.resolve_factor("g", "cup") is None
        assert table.convert(Decimal("120"), "g", "cup") is None

    def test_conversions_are_not_chained(self):
        table = ConversionTable()
        table.add("kg", "g", Decimal("1000"))
        table.add("g", "mg", Decimal("1000"))
        assert table.convert(Decimal("1"), "kg", "mg") is None

    def test_stored_inverse_used_as_is(self):
        # A round trip only comes back to q when the stored factors really are inverses
        table = ConversionTable()
        table.add("a", "b", Decimal("2"))
        table.add("b", "a", Decimal("0.4"))
        there = table.convert(Decimal("10"), "a", "b")
        back = table.convert(there, "b", "a")
        assert there == Decimal("20")
        assert back == Decimal("8")

    def test_require_raises_for_missing_pair(self):
        table = ConversionTable()
        with pytest.raises(ConversionUnavailable) as exc:
            table.require(Decimal("1"), "cup", "g", "Flour")
        assert exc.value.from_unit == "cup"
        assert exc.value.to_unit == "g"
        assert "Flour" in exc.value.message

    def test_lookups_normalize_units(self):
        table = ConversionTable()
        table.add("Kilograms", "grams", Decimal("1000"))
        assert ("kg", "g") in table
        assert table.can_convert("KG", "Gram")

    def test_available_conversions(self):
        table = ConversionTable()
        table.add("dozen", "each", Decimal("12"), "count")
        assert table.available_conversions("dozen") == [("each", Decimal("12"), "count")]
        assert table.category_of("dozen") == "count"


class TestReferenceData:

    def test_seeded_table_converts_weights(self, table):
        assert table.convert(Decimal("2"), "kg", "g") == Decimal("2000")
        assert table.convert(Decimal("500"), "g", "kg") == Decimal("0.5")
        assert table.convert(Decimal("2"), "dozen", "each") == Decimal("24")

    def test_no_cross_category_pairs(self, table):
        assert table.convert(Decimal("1"), "cup", "g") is None

    def test_seed_is_idempotent(self, app):
        count = UnitConversion.query.count()
        assert count == len(reference_conversions())
        assert seed_unit_conversions() == 0
        assert UnitConversion.query.count() == count


class TestAdminMaintenance:

    def test_create_update_delete(self, app):
        conversion = create_conversion("cup", "g", "120", "weight")
        assert load_conversion_table().convert(Decimal("2"), "cup", "g") == Decimal("240")

        update_conversion(conversion.id, factor="125")
        assert load_conversion_table().convert(Decimal("2"), "cup", "g") == Decimal("250")

        delete_conversion(conversion.id)
        assert load_conversion_table().convert(Decimal("2"), "cup", "g") is None

    def test_duplicate_pair_rejected(self, app):
        with pytest.raises(ValidationError):
            create_conversion("kg", "g", "1000", "weight")

    @pytest.mark.parametrize("factor", ["0", "-1", "abc"])
    def test_factor_must_be_positive(self, app, factor):
        with pytest.raises(ValidationError):
            create_conversion("cup", "g", factor, "weight")

    def test_category_whitelist(self, app):
        with pytest.raises(ValidationError):
            create_conversion("cup", "g", "120", "temperature")

    def test_missing_conversion(self, app):
        with pytest.raises(NotFound):
            delete_conversion(99999)
