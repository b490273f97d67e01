"""
Recipe Aggregation Service

Scales recipes for a production run and consolidates ingredient demand
across every recipe on a sheet, in each ingredient's stock unit.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from .cost import cost_of
from .ledger import Requirement

logger = logging.getLogger(__name__)

ZERO = Decimal('0')


@dataclass
class ScaledLine:
    line_id: int
    section_id: int
    section_name: str
    ingredient_id: int
    ingredient_name: str
    stock_unit: str
    original_quantity: Decimal
    scaled_quantity: Decimal
    unit: str
    cost: Decimal = None  # None when the unit cannot be converted


@dataclass
class ScaledRecipe:
    recipe_id: int
    recipe_name: str
    scale: Decimal
    yield_qty: Decimal
    yield_unit: str
    scaled_yield_qty: Decimal
    estimated_cost: Decimal
    lines: list = field(default_factory=list)

    @property
    def unconvertible_lines(self):
        return [line for line in self.lines if line.cost is None]

    def sections(self):
        """Lines grouped by section, in recipe order, as (section_id, section_name, lines)."""
        grouped = []
        for line in self.lines:
            if not grouped or grouped[-1][0] != line.section_id:
                grouped.append((line.section_id, line.section_name, []))
            grouped[-1][2].append(line)
        return grouped


@dataclass
class Contribution:
    recipe_id: int
    recipe_name: str
    quantity: Decimal
    unit: str


@dataclass
class AggregatedIngredient:
    ingredient_id: int
    ingredient_name: str
    unit: str
    total_quantity: Decimal = ZERO
    contributions: list = field(default_factory=list)
    # Contributions whose unit has no conversion to the stock unit
    unconvertible: list = field(default_factory=list)

    @property
    def is_complete(self):
        return not self.unconvertible


def scale_recipe(recipe, scale, table):
    """
    Scale every line of recipe by scale and cost it at reference prices.

    Unconvertible lines add nothing to estimated_cost and are listed in
    ScaledRecipe.unconvertible_lines.
    """
    scale = Decimal(scale)
    yield_qty = Decimal(recipe.yield_qty)
    scaled = ScaledRecipe(
        recipe_id=recipe.id,
        recipe_name=recipe.name,
        scale=scale,
        yield_qty=yield_qty,
        yield_unit=recipe.yield_unit,
        scaled_yield_qty=yield_qty * scale,
        estimated_cost=ZERO,
    )

    for section, line in recipe.iter_lines():
        ingredient = line.ingredient
        original = Decimal(line.quantity)
        quantity = original * scale
        cost = cost_of(quantity, line.unit, ingredient.cost_per_unit, ingredient.unit, table)
        if cost is None:
            logger.warning("Cannot cost %s %s of %s in %s; excluded from estimated cost",
                           quantity, line.unit, ingredient.name, recipe.name)
        else:
            scaled.estimated_cost += cost

        scaled.lines.append(ScaledLine(
            line_id=line.id,
            section_id=section.id,
            section_name=section.name,
            ingredient_id=ingredient.id,
            ingredient_name=ingredient.name,
            stock_unit=ingredient.unit,
            original_quantity=original,
            scaled_quantity=quantity,
            unit=line.unit,
            cost=cost,
        ))
    return scaled


def aggregate_across_recipes(scaled_recipes, table):
    """
    Combine lines for the same ingredient across recipes and sections.

    Every contribution is converted to the ingredient's stock unit before it
    is summed. Result is sorted by ingredient name, then id.
    """
    consolidated = {}
    for recipe in scaled_recipes:
        for line in recipe.lines:
            entry = consolidated.get(line.ingredient_id)
            if entry is None:
                entry = consolidated[line.ingredient_id] = AggregatedIngredient(
                    ingredient_id=line.ingredient_id,
                    ingredient_name=line.ingredient_name,
                    unit=line.stock_unit,
                )

            contribution = Contribution(
                recipe_id=recipe.recipe_id,
                recipe_name=recipe.recipe_name,
                quantity=line.scaled_quantity,
                unit=line.unit,
            )
            entry.contributions.append(contribution)

            converted = table.convert(line.scaled_quantity, line.unit, line.stock_unit)
            if converted is None:
                logger.warning("Cannot convert %s %s to %s for %s",
                               line.scaled_quantity, line.unit, line.stock_unit, line.ingredient_name)
                entry.unconvertible.append(contribution)
            else:
                entry.total_quantity += converted

    return sorted(consolidated.values(), key=lambda a: (a.ingredient_name, a.ingredient_id))


def total_cost(scaled_recipes):
    return sum((recipe.estimated_cost for recipe in scaled_recipes), ZERO)


def scale_sheet(sheet, table):
    """Scaled recipes for every entry on a production sheet, in sheet order."""
    return [scale_recipe(entry.recipe, entry.scale, table) for entry in sheet.recipes]


def requirements(aggregated):
    """Stock-unit requirements for availability checks and deduction."""
    return [
        Requirement(entry.ingredient_id, entry.total_quantity, entry.unit)
        for entry in aggregated
        if entry.total_quantity > 0
    ]
