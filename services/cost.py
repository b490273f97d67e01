"""
Cost Calculation Service

Functions for calculating ingredient and recipe costs.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal

logger = logging.getLogger(__name__)

ZERO = Decimal('0')


def cost_of(quantity, recipe_unit, cost_per_stock_unit, stock_unit, table):
    """
    Cost of quantity (in recipe_unit) of an ingredient priced per stock_unit.

    Args:
        quantity: Amount used, in recipe_unit
        recipe_unit: Unit the recipe line is written in
        cost_per_stock_unit: Price of ONE stock unit
        stock_unit: The ingredient's stock unit
        table: ConversionTable

    Returns:
        Decimal cost, or None when recipe_unit cannot be converted to
        stock_unit. None means "unknown" and must not be read as zero.
    """
    converted = table.convert(quantity, recipe_unit, stock_unit)
    if converted is None:
        return None
    return converted * Decimal(cost_per_stock_unit)


@dataclass
class LineCost:
    line_id: int
    ingredient_id: int
    ingredient_name: str
    quantity: Decimal
    unit: str
    cost: Decimal = None  # None when unconvertible


@dataclass
class RecipeCost:
    total: Decimal = ZERO
    lines: list = field(default_factory=list)

    @property
    def unconvertible(self):
        return [line for line in self.lines if line.cost is None]

    @property
    def is_complete(self):
        return not self.unconvertible


def recipe_cost(recipe, table, scale=Decimal('1')):
    """
    Cost every line of recipe at the ingredient reference cost.

    Unconvertible lines add nothing to total and are returned in
    RecipeCost.unconvertible so callers can flag them.
    """
    result = RecipeCost()
    for _, line in recipe.iter_lines():
        ingredient = line.ingredient
        quantity = Decimal(line.quantity) * scale
        cost = cost_of(quantity, line.unit, ingredient.cost_per_unit, ingredient.unit, table)
        result.lines.append(LineCost(
            line_id=line.id,
            ingredient_id=ingredient.id,
            ingredient_name=ingredient.name,
            quantity=quantity,
            unit=line.unit,
            cost=cost,
        ))
        if cost is None:
            logger.warning("Cannot cost %s %s of %s (stock unit %s) in recipe %s",
                           quantity, line.unit, ingredient.name, ingredient.unit, recipe.name)
        else:
            result.total += cost
    return result


def refresh_recipe_cost(recipe, table):
    """Recompute and cache recipe.total_cost. Caller commits."""
    costed = recipe_cost(recipe, table)
    recipe.total_cost = costed.total
    return costed
