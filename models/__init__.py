"""
Models Package

Exports all database models and the db instance for use throughout the application.
"""

from .base import db, atomic, utcnow

from .bakery import Bakery, Vendor
from .units import UnitConversion
from .ingredient import Ingredient
from .inventory import InventoryLot, InventoryTransaction, InventoryUsage
from .recipe import Recipe, RecipeSection, RecipeSectionIngredient
from .production import ProductionSheet, ProductionSheetRecipe

__all__ = [
    'db',
    'atomic',
    'utcnow',
    'Bakery',
    'Vendor',
    'UnitConversion',
    'Ingredient',
    'InventoryLot',
    'InventoryTransaction',
    'InventoryUsage',
    'Recipe',
    'RecipeSection',
    'RecipeSectionIngredient',
    'ProductionSheet',
    'ProductionSheetRecipe',
]
