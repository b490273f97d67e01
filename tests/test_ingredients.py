"""Tests for ingredient, vendor and recipe maintenance."""

from decimal import Decimal

import pytest

from models import Ingredient, Recipe
from services import ingredients, production, recipes
from services.errors import InUse, NotFound, ValidationError


class TestIngredients:

    def test_create_normalizes_unit(self, bakery):
        flour = ingredients.create_ingredient(bakery.id, "  Flour ", "Grams", cost_per_unit="0.002")
        assert flour.name == "Flour"
        assert flour.unit == "g"
        assert flour.current_qty == Decimal("0")

    def test_duplicate_name_rejected(self, bakery, make_ingredient):
        make_ingredient("Flour")
        with pytest.raises(ValidationError):
            ingredients.create_ingredient(bakery.id, "Flour", "g")

    def test_same_name_allowed_in_other_bakery(self, other_bakery, make_ingredient):
        make_ingredient("Flour")
        make_ingredient("Flour", bakery_id=other_bakery.id)
        assert Ingredient.query.filter_by(name="Flour").count() == 2

    def test_list_is_scoped_and_searchable(self, bakery, other_bakery, make_ingredient):
        make_ingredient("Bread Flour")
        make_ingredient("Sugar")
        make_ingredient("Rye Flour", bakery_id=other_bakery.id)

        assert [i.name for i in ingredients.list_ingredients(bakery.id, search="flour")] == ["Bread Flour"]

    def test_unit_change_blocked_while_stocked(self, bakery, make_ingredient, make_lot):
        flour = make_ingredient("Flour", "g")
        make_lot(flour, 500)
        with pytest.raises(InUse):
            ingredients.update_ingredient(bakery.id, flour.id, {'unit': 'kg'})
        assert flour.unit == "g"

    def test_unit_change_allowed_without_stock(self, bakery, make_ingredient):
        butter = make_ingredient("Butter", "g")
        ingredients.update_ingredient(bakery.id, butter.id, {'unit': 'Kilograms'})
        assert butter.unit == "kg"

    def test_delete_blocked_by_recipe_or_lots(self, bakery, make_ingredient, make_lot, make_recipe):
        flour = make_ingredient("Flour")
        make_recipe("Bread", [(flour, "500", "g")])
        sugar = make_ingredient("Sugar")
        make_lot(sugar, 100)

        with pytest.raises(InUse):
            ingredients.delete_ingredient(bakery.id, flour.id)
        with pytest.raises(InUse):
            ingredients.delete_ingredient(bakery.id, sugar.id)

    def test_delete_unused(self, bakery, make_ingredient):
        salt = make_ingredient("Salt")
        ingredients.delete_ingredient(bakery.id, salt.id)
        with pytest.raises(NotFound):
            ingredients.get_ingredient(bakery.id, salt.id)

    def test_vendors(self, bakery):
        ingredients.create_vendor(bakery.id, "Mill Co", email="orders@mill.example")
        ingredients.create_vendor(bakery.id, "Dairy Farm")
        assert [v.name for v in ingredients.list_vendors(bakery.id)] == ["Dairy Farm", "Mill Co"]


class TestRecipes:

    def test_recipe_needs_a_section(self, actor):
        with pytest.raises(ValidationError):
            recipes.create_recipe(actor, {'name': "Empty", 'sections': []})

    def test_other_bakery_ingredient_rejected(self, other_actor, make_ingredient):
        flour = make_ingredient("Flour")
        with pytest.raises(NotFound):
            recipes.create_recipe(other_actor, {'name': "Bread", 'sections': [
                {'name': "Dough", 'ingredients': [
                    {'ingredient_id': flour.id, 'quantity': "500", 'unit': "g"},
                ]},
            ]})

    def test_update_replaces_lines_and_reprices(self, actor, make_ingredient, make_recipe):
        flour = make_ingredient("Flour", "g", "0.002")
        recipe = make_recipe("Bread", [(flour, "500", "g")])

        recipes.update_recipe(actor, recipe.id, {'sections': [
            {'name': "Dough", 'ingredients': [
                {'ingredient_id': flour.id, 'quantity': "2", 'unit': "kg"},
            ]},
        ]})

        lines = [line for _, line in recipe.iter_lines()]
        assert [(line.quantity, line.unit) for line in lines] == [(Decimal("2"), "kg")]
        assert recipe.total_cost == Decimal("4")

    def test_delete_blocked_while_on_a_sheet(self, bakery, actor, make_ingredient, make_recipe):
        flour = make_ingredient("Flour")
        bread = make_recipe("Bread", [(flour, "500", "g")])
        rolls = make_recipe("Rolls", [(flour, "300", "g")])
        production.create_sheet(actor, [{'recipe_id': bread.id, 'scale': "1"}])

        with pytest.raises(InUse):
            recipes.delete_recipe(bakery.id, bread.id)

        recipes.delete_recipe(bakery.id, rolls.id)
        assert [r.name for r in Recipe.query.all()] == ["Bread"]
