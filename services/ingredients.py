"""
Ingredient Service

Create, update and delete ingredients and the vendors lots are bought from.
Stock quantity is never edited here; it only moves through the ledger.
"""

import logging

from sqlalchemy.exc import IntegrityError

from constants import MAX_LENGTHS
from models import db, atomic, Ingredient, InventoryLot, RecipeSectionIngredient, Vendor
from utils.sanitizer import sanitize_notes, sanitize_text
from .errors import InUse, ValidationError
from .recipes import refresh_recipes_using
from .tenancy import get_scoped, scoped_query
from .units import normalize_unit
from .validation import optional_decimal, require_decimal, require_name, require_unit

logger = logging.getLogger(__name__)


def _duplicate(entity, name):
    return ValidationError(f'{entity} "{name}" already exists')


def list_ingredients(bakery_id, search=None):
    query = scoped_query(Ingredient, bakery_id)
    if search:
        query = query.filter(Ingredient.name.ilike(f'%{search.strip()}%'))
    return query.order_by(Ingredient.name).all()


def get_ingredient(bakery_id, ingredient_id):
    return get_scoped(Ingredient, ingredient_id, bakery_id)


def create_ingredient(bakery_id, name, unit, cost_per_unit=0, low_stock_threshold=None):
    name = require_name(name)
    unit = normalize_unit(require_unit(unit))
    ingredient = Ingredient(
        bakery_id=bakery_id,
        name=name,
        unit=unit,
        cost_per_unit=require_decimal(cost_per_unit, 'Cost per unit', non_negative=True),
        low_stock_threshold=optional_decimal(low_stock_threshold, 'Low stock threshold', non_negative=True),
    )
    try:
        with atomic():
            db.session.add(ingredient)
    except IntegrityError:
        raise _duplicate('Ingredient', name)
    logger.info("Created ingredient %s (%s)", name, unit)
    return ingredient


def update_ingredient(bakery_id, ingredient_id, changes, table=None):
    """
    Update name, unit, reference cost or low stock threshold.

    The stock unit cannot change while lots still hold stock, since
    current_qty is kept in it. A cost or unit change re-prices every recipe
    that uses the ingredient.
    """
    try:
        with atomic():
            ingredient = get_scoped(Ingredient, ingredient_id, bakery_id, for_update=True)
            repriced = False

            if 'name' in changes:
                ingredient.name = require_name(changes['name'])
            if 'unit' in changes:
                unit = normalize_unit(require_unit(changes['unit']))
                if unit != ingredient.unit:
                    active = InventoryLot.query.filter(
                        InventoryLot.ingredient_id == ingredient.id,
                        InventoryLot.remaining_qty > 0,
                    ).count()
                    if active:
                        raise InUse(f'Cannot change the unit of {ingredient.name} while '
                                    f'{active} inventory lot(s) hold stock')
                    ingredient.unit = unit
                    repriced = True
            if 'cost_per_unit' in changes:
                cost = require_decimal(changes['cost_per_unit'], 'Cost per unit', non_negative=True)
                if cost != ingredient.cost_per_unit:
                    ingredient.cost_per_unit = cost
                    repriced = True
            if 'low_stock_threshold' in changes:
                ingredient.low_stock_threshold = optional_decimal(
                    changes['low_stock_threshold'], 'Low stock threshold', non_negative=True
                )

            if repriced:
                db.session.flush()
                refresh_recipes_using(ingredient, table)
    except IntegrityError:
        raise _duplicate('Ingredient', changes.get('name'))
    return ingredient


def delete_ingredient(bakery_id, ingredient_id):
    with atomic():
        ingredient = get_scoped(Ingredient, ingredient_id, bakery_id, for_update=True)

        recipe_uses = RecipeSectionIngredient.query.filter_by(ingredient_id=ingredient.id).count()
        if recipe_uses:
            raise InUse(f'Cannot delete ingredient with {recipe_uses} recipe usage(s). '
                        'Please remove from recipes first.')
        lots = InventoryLot.query.filter_by(ingredient_id=ingredient.id).count()
        if lots:
            raise InUse(f'Cannot delete ingredient with {lots} inventory lot(s). '
                        'Please remove inventory first.')
        db.session.delete(ingredient)
    logger.info("Deleted ingredient %s", ingredient.name)


# ============================================
# VENDORS
# ============================================

def list_vendors(bakery_id):
    return scoped_query(Vendor, bakery_id).order_by(Vendor.name).all()


def create_vendor(bakery_id, name, email=None, phone=None, notes=None):
    name = require_name(name)
    vendor = Vendor(
        bakery_id=bakery_id,
        name=name,
        email=sanitize_text(email, MAX_LENGTHS['name']) or None,
        phone=sanitize_text(phone, 50) or None,
        notes=sanitize_notes(notes, max_length=MAX_LENGTHS['notes']),
    )
    try:
        with atomic():
            db.session.add(vendor)
    except IntegrityError:
        raise _duplicate('Vendor', name)
    return vendor
