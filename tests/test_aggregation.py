"""Tests for recipe scaling and cross-recipe aggregation."""

from decimal import Decimal

import pytest

from services import recipes
from services.aggregation import aggregate_across_recipes, requirements, scale_recipe, total_cost
from services.errors import ValidationError


@pytest.fixture
def pantry(make_ingredient):
    return {
        'flour': make_ingredient("Flour", "g", "0.002"),
        'butter': make_ingredient("Butter", "kg", "8"),
        'honey': make_ingredient("Honey", "g", "0.01"),
        'eggs': make_ingredient("Eggs", "each", "0.25"),
    }


class TestScaleRecipe:

    def test_scale_of_one_is_identity(self, pantry, make_recipe, table):
        recipe = make_recipe("Bread", [(pantry['flour'], "500", "g"), (pantry['eggs'], "2", "each")],
                             yield_qty="2", yield_unit="loaf")

        scaled = scale_recipe(recipe, 1, table)

        assert [line.scaled_quantity for line in scaled.lines] == [Decimal("500"), Decimal("2")]
        assert [line.original_quantity for line in scaled.lines] == [Decimal("500"), Decimal("2")]
        assert scaled.scaled_yield_qty == Decimal("2")
        assert scaled.estimated_cost == Decimal("1.5")

    def test_scaling_is_linear(self, pantry, make_recipe, table):
        recipe = make_recipe("Bread", [(pantry['flour'], "500", "g"), (pantry['eggs'], "2", "each")],
                             yield_qty="2", yield_unit="loaf")

        scaled = scale_recipe(recipe, Decimal("2.5"), table)

        assert [line.scaled_quantity for line in scaled.lines] == [Decimal("1250"), Decimal("5")]
        assert scaled.scaled_yield_qty == Decimal("5")
        assert scaled.yield_unit == "loaf"
        assert scaled.estimated_cost == Decimal("3.75")

    def test_lines_in_other_units_are_costed_after_conversion(self, pantry, make_recipe, table):
        recipe = make_recipe("Shortbread", [(pantry['butter'], "250", "g")])
        scaled = scale_recipe(recipe, 2, table)
        # 0.5 kg at 8 per kg
        assert scaled.estimated_cost == Decimal("4")
        assert scaled.lines[0].unit == "g"
        assert scaled.lines[0].stock_unit == "kg"

    def test_unconvertible_line_excluded_from_cost(self, pantry, make_recipe, table):
        recipe = make_recipe("Scones", [(pantry['flour'], "500", "g"), (pantry['honey'], "1", "cup")])

        scaled = scale_recipe(recipe, 2, table)

        assert scaled.estimated_cost == Decimal("2")
        assert [line.ingredient_name for line in scaled.unconvertible_lines] == ["Honey"]
        assert scaled.lines[1].cost is None

    def test_sections_keep_recipe_order(self, actor, pantry, table):
        recipe = recipes.create_recipe(actor, {
            'name': "Croissant",
            'sections': [
                {'name': "Dough", 'ingredients': [
                    {'ingredient_id': pantry['flour'].id, 'quantity': "500", 'unit': "g"},
                ]},
                {'name': "Lamination", 'ingredients': [
                    {'ingredient_id': pantry['butter'].id, 'quantity': "0.3", 'unit': "kg"},
                ]},
            ],
        })

        sections = scale_recipe(recipe, 1, table).sections()

        assert [name for _, name, _ in sections] == ["Dough", "Lamination"]
        assert [len(lines) for _, _, lines in sections] == [1, 1]

    def test_scale_must_be_positive(self, bakery, pantry, make_recipe, table):
        recipe = make_recipe("Bread", [(pantry['flour'], "500", "g")])
        with pytest.raises(ValidationError):
            recipes.scaled_recipe(bakery.id, recipe.id, "0", table)


class TestAggregate:

    def test_same_ingredient_summed_across_recipes(self, pantry, make_recipe, table):
        bread = make_recipe("Bread", [(pantry['flour'], "100", "g")])
        rolls = make_recipe("Rolls", [(pantry['flour'], "100", "g")])

        aggregated = aggregate_across_recipes(
            [scale_recipe(bread, 1, table), scale_recipe(rolls, 1, table)], table
        )

        assert len(aggregated) == 1
        flour = aggregated[0]
        assert flour.total_quantity == Decimal("200")
        assert flour.unit == "g"
        assert [c.recipe_name for c in flour.contributions] == ["Bread", "Rolls"]
        assert flour.is_complete

    def test_mixed_units_normalized_to_stock_unit(self, pantry, make_recipe, table):
        bread = make_recipe("Bread", [(pantry['flour'], "1", "kg")])
        cake = make_recipe("Cake", [(pantry['flour'], "250", "g")])

        aggregated = aggregate_across_recipes(
            [scale_recipe(bread, 2, table), scale_recipe(cake, 1, table)], table
        )

        assert aggregated[0].total_quantity == Decimal("2250")
        assert [(c.quantity, c.unit) for c in aggregated[0].contributions] == [
            (Decimal("2"), "kg"), (Decimal("250"), "g"),
        ]

    def test_unconvertible_contribution_listed_not_summed(self, pantry, make_recipe, table):
        granola = make_recipe("Granola", [(pantry['honey'], "200", "g")])
        scones = make_recipe("Scones", [(pantry['honey'], "1", "cup")])

        aggregated = aggregate_across_recipes(
            [scale_recipe(granola, 1, table), scale_recipe(scones, 1, table)], table
        )

        honey = aggregated[0]
        assert honey.total_quantity == Decimal("200")
        assert len(honey.contributions) == 2
        assert [c.recipe_name for c in honey.unconvertible] == ["Scones"]
        assert not honey.is_complete

    def test_sorted_by_ingredient_name(self, pantry, make_recipe, table):
        recipe = make_recipe("Brioche", [
            (pantry['flour'], "500", "g"), (pantry['eggs'], "4", "each"), (pantry['butter'], "200", "g"),
        ])

        aggregated = aggregate_across_recipes([scale_recipe(recipe, 1, table)], table)

        assert [a.ingredient_name for a in aggregated] == ["Butter", "Eggs", "Flour"]
        assert aggregated[0].total_quantity == Decimal("0.2")

    def test_requirements_and_total_cost(self, pantry, make_recipe, table):
        bread = make_recipe("Bread", [(pantry['flour'], "500", "g")])
        cake = make_recipe("Cake", [(pantry['flour'], "250", "g"), (pantry['eggs'], "3", "each")])
        scaled = [scale_recipe(bread, 2, table), scale_recipe(cake, 1, table)]

        needed = requirements(aggregate_across_recipes(scaled, table))

        assert [(r.ingredient_id, r.quantity, r.unit) for r in needed] == [
            (pantry['eggs'].id, Decimal("3"), "each"),
            (pantry['flour'].id, Decimal("1250"), "g"),
        ]
        # 1000 g * 0.002 + 250 g * 0.002 + 3 * 0.25
        assert total_cost(scaled) == Decimal("3.25")
