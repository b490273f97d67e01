"""
Recipe Service

Recipes are saved as a whole: sections and ingredient lines are replaced on
every update. Each save recomputes the cached total_cost and writes a
snapshot to the archive.
"""

import logging
from decimal import Decimal

from sqlalchemy.exc import IntegrityError

from constants import MAX_LENGTHS, MAX_RECIPE_SCALE, SNAPSHOT_TRIGGER_SAVE
from models import (
    db, atomic, Ingredient, ProductionSheetRecipe, Recipe, RecipeSection, RecipeSectionIngredient,
)
from utils.sanitizer import sanitize_text
from .aggregation import scale_recipe
from .cost import refresh_recipe_cost
from .errors import InUse, ValidationError
from .snapshots import ENTITY_RECIPE, get_snapshot_archive, serialize_recipe
from .tenancy import get_scoped, scoped_query
from .units import load_conversion_table, normalize_unit
from .validation import require_decimal, require_name, require_unit

logger = logging.getLogger(__name__)

ONE = Decimal('1')


def list_recipes(bakery_id, search=None):
    query = scoped_query(Recipe, bakery_id)
    if search:
        query = query.filter(Recipe.name.ilike(f'%{search.strip()}%'))
    return query.order_by(Recipe.name).all()


def get_recipe(bakery_id, recipe_id):
    return get_scoped(Recipe, recipe_id, bakery_id)


def _build_sections(recipe, bakery_id, sections):
    """Replace recipe.sections from request data, checking each ingredient's tenant."""
    if not sections:
        raise ValidationError('At least one section is required')

    recipe.sections.clear()
    for section_index, section_data in enumerate(sections):
        section = RecipeSection(
            name=require_name(section_data.get('name') or f'Section {section_index + 1}', 'Section name'),
            order=section_data.get('order', section_index),
            instructions=sanitize_text(section_data.get('instructions'), MAX_LENGTHS['instructions']),
        )
        for line_index, line_data in enumerate(section_data.get('ingredients') or []):
            ingredient = get_scoped(Ingredient, line_data.get('ingredient_id'), bakery_id)
            section.ingredients.append(RecipeSectionIngredient(
                ingredient=ingredient,
                quantity=require_decimal(line_data.get('quantity'), f'Quantity of {ingredient.name}',
                                         positive=True),
                unit=normalize_unit(require_unit(line_data.get('unit'))),
                preparation=sanitize_text(line_data.get('preparation'), MAX_LENGTHS['preparation']) or None,
                order=line_data.get('order', line_index),
            ))
        recipe.sections.append(section)


def _apply(recipe, bakery_id, data):
    if 'name' in data or recipe.name is None:
        recipe.name = require_name(data.get('name'))
    if 'description' in data:
        recipe.description = sanitize_text(data['description'], MAX_LENGTHS['instructions']) or None
    if 'yield_qty' in data or recipe.yield_qty is None:
        recipe.yield_qty = require_decimal(data.get('yield_qty'), 'Yield quantity', positive=True,
                                           default=ONE)
    if 'yield_unit' in data or recipe.yield_unit is None:
        recipe.yield_unit = normalize_unit(data.get('yield_unit') or 'each')
    if 'sections' in data or not recipe.sections:
        _build_sections(recipe, bakery_id, data.get('sections'))


def create_recipe(actor, data, table=None):
    table = table or load_conversion_table()
    recipe = Recipe(bakery_id=actor.bakery_id)
    try:
        with atomic():
            _apply(recipe, actor.bakery_id, data)
            db.session.add(recipe)
            db.session.flush()
            refresh_recipe_cost(recipe, table)
    except IntegrityError:
        raise ValidationError(f'Recipe "{data.get("name")}" already exists')

    logger.info("Created recipe %s (cost %s)", recipe.name, recipe.total_cost)
    archive_recipe(recipe, actor)
    return recipe


def update_recipe(actor, recipe_id, data, table=None):
    table = table or load_conversion_table()
    try:
        with atomic():
            recipe = get_scoped(Recipe, recipe_id, actor.bakery_id, for_update=True)
            _apply(recipe, actor.bakery_id, data)
            db.session.flush()
            refresh_recipe_cost(recipe, table)
    except IntegrityError:
        raise ValidationError(f'Recipe "{data.get("name")}" already exists')

    archive_recipe(recipe, actor)
    return recipe


def delete_recipe(bakery_id, recipe_id):
    with atomic():
        recipe = get_scoped(Recipe, recipe_id, bakery_id, for_update=True)
        sheet_count = ProductionSheetRecipe.query.filter_by(recipe_id=recipe.id).count()
        if sheet_count:
            raise InUse(f'Cannot delete recipe with {sheet_count} production sheet(s). '
                        'Please remove from production sheets first.')
        db.session.delete(recipe)
    logger.info("Deleted recipe %s", recipe.name)


def scaled_recipe(bakery_id, recipe_id, factor, table=None, max_scale=MAX_RECIPE_SCALE):
    recipe = get_scoped(Recipe, recipe_id, bakery_id)
    factor = require_decimal(factor, 'Scale', positive=True, max_value=max_scale, default=ONE)
    return scale_recipe(recipe, factor, table or load_conversion_table())


def recipes_using(ingredient):
    return Recipe.query.join(RecipeSection).join(RecipeSectionIngredient).filter(
        RecipeSectionIngredient.ingredient_id == ingredient.id
    ).distinct().all()


def refresh_recipes_using(ingredient, table=None):
    """Re-price every recipe that uses ingredient. Caller commits."""
    table = table or load_conversion_table()
    recipes = recipes_using(ingredient)
    for recipe in recipes:
        refresh_recipe_cost(recipe, table)
    if recipes:
        logger.info("Re-priced %d recipe(s) using %s", len(recipes), ingredient.name)
    return recipes


def archive_recipe(recipe, actor, trigger=SNAPSHOT_TRIGGER_SAVE):
    try:
        get_snapshot_archive().upload(
            recipe.bakery_id, ENTITY_RECIPE, recipe.id, recipe.name,
            serialize_recipe(recipe), trigger, triggered_by=actor.user_id,
        )
    except Exception:
        logger.exception("Failed to archive snapshot for recipe %s", recipe.id)
