"""Tests for ingredient and recipe costing."""

from decimal import Decimal

from services.cost import cost_of, recipe_cost
from services.ingredients import update_ingredient
from services.units import ConversionTable


def test_same_unit_cost():
    table = ConversionTable()
    assert cost_of(Decimal("200"), "g", Decimal("0.002"), "g", table) == Decimal("0.4")


def test_converted_cost():
    table = ConversionTable()
    table.add("kg", "g", Decimal("1000"))
    # 1.5 kg of flour priced per gram
    assert cost_of(Decimal("1.5"), "kg", Decimal("0.002"), "g", table) == Decimal("3")


def test_unconvertible_cost_is_unknown_not_zero():
    table = ConversionTable()
    assert cost_of(Decimal("2"), "cup", Decimal("0.002"), "g", table) is None


def test_recipe_cost_lists_unconvertible_lines(app, make_ingredient, make_recipe, table):
    flour = make_ingredient("Flour", "g", "0.002")
    honey = make_ingredient("Honey", "g", "0.01")
    recipe = make_recipe("Scones", [(flour, "500", "g"), (honey, "1", "cup")])

    costed = recipe_cost(recipe, table)

    assert costed.total == Decimal("1")
    assert not costed.is_complete
    assert [line.ingredient_name for line in costed.unconvertible] == ["Honey"]


def test_recipe_total_cost_cached_on_save(app, make_ingredient, make_recipe):
    flour = make_ingredient("Flour", "g", "0.002")
    butter = make_ingredient("Butter", "kg", "8")
    recipe = make_recipe("Shortbread", [(flour, "300", "g"), (butter, "200", "g")])

    # 300 g * 0.002 + 0.2 kg * 8
    assert recipe.total_cost == Decimal("2.2")


def test_ingredient_cost_change_reprices_recipes(app, bakery, make_ingredient, make_recipe):
    flour = make_ingredient("Flour", "g", "0.002")
    recipe = make_recipe("Bread", [(flour, "1000", "g")])
    assert recipe.total_cost == Decimal("2")

    update_ingredient(bakery.id, flour.id, {'cost_per_unit': "0.003"})

    assert recipe.total_cost == Decimal("3")
