"""
Production Sheet Service

Production sheets group scaled recipes for one bake. A sheet is PENDING
until it is completed; completion deducts every ingredient from inventory
(FIFO), freezes a snapshot of quantities and costs on the sheet, and locks
it against further edits.
"""

import logging

from constants import (
    MAX_LENGTHS, MAX_RECIPE_SCALE, TRANSACTION_USE,
    SNAPSHOT_TRIGGER_COMPLETE, SNAPSHOT_TRIGGER_PRODUCTION,
)
from models import db, atomic, utcnow, Ingredient, ProductionSheet, ProductionSheetRecipe, Recipe
from utils.sanitizer import sanitize_notes, sanitize_text
from .aggregation import aggregate_across_recipes, requirements, scale_sheet, total_cost
from .errors import AlreadyCompleted, ConversionUnavailable, InsufficientStock, SheetLocked, ValidationError
from .ledger import check_availability, consume_locked, find_shortage
from .snapshots import (
    ENTITY_PRODUCTION_SHEET, ENTITY_RECIPE,
    build_sheet_snapshot, get_snapshot_archive, serialize_recipe,
)
from .tenancy import get_scoped, scoped_query
from .units import load_conversion_table
from .validation import optional_datetime, require_decimal, require_int

logger = logging.getLogger(__name__)


def _require_scale(value, max_scale):
    return require_decimal(value, 'Scale', positive=True, max_value=max_scale)


def _require_pending(sheet, action='edit'):
    if sheet.completed:
        raise SheetLocked(f'Cannot {action} a completed production sheet')


def _add_entry(sheet, bakery_id, recipe_id, scale, order, max_scale):
    recipe = get_scoped(Recipe, recipe_id, bakery_id)
    if any(entry.recipe.id == recipe.id for entry in sheet.recipes):
        raise ValidationError(f'{recipe.name} is already on this production sheet')
    entry = ProductionSheetRecipe(
        recipe=recipe,
        scale=_require_scale(scale, max_scale),
        order=order if order is not None else len(sheet.recipes),
    )
    sheet.recipes.append(entry)
    return entry


def create_sheet(actor, recipes, description=None, scheduled_for=None, notes=None,
                 max_scale=MAX_RECIPE_SCALE):
    """
    Create a PENDING sheet.

    Args:
        actor: Actor creating the sheet
        recipes: list of {'recipe_id', 'scale', 'order'(optional)}
    """
    if not recipes:
        raise ValidationError('At least one recipe is required')

    with atomic():
        sheet = ProductionSheet(
            bakery_id=actor.bakery_id,
            description=sanitize_text(description, MAX_LENGTHS['description']) or None,
            scheduled_for=optional_datetime(scheduled_for, 'Scheduled date'),
            notes=sanitize_notes(notes, max_length=MAX_LENGTHS['notes']),
            created_by=actor.user_id,
        )
        for index, item in enumerate(recipes):
            _add_entry(sheet, actor.bakery_id, item.get('recipe_id'), item.get('scale'),
                       item.get('order', index), max_scale)
        db.session.add(sheet)

    logger.info("Created production sheet %s with %d recipe(s)", sheet.id, len(sheet.recipes))
    return sheet


def update_sheet(bakery_id, sheet_id, changes, max_scale=MAX_RECIPE_SCALE):
    """Update description, schedule or notes; 'recipes' replaces the whole recipe list."""
    with atomic():
        sheet = get_scoped(ProductionSheet, sheet_id, bakery_id, for_update=True)
        _require_pending(sheet)

        if 'description' in changes:
            sheet.description = sanitize_text(changes['description'], MAX_LENGTHS['description']) or None
        if 'scheduled_for' in changes:
            sheet.scheduled_for = optional_datetime(changes['scheduled_for'], 'Scheduled date')
        if 'notes' in changes:
            sheet.notes = sanitize_notes(changes['notes'], max_length=MAX_LENGTHS['notes'])
        if 'recipes' in changes:
            items = changes['recipes']
            if not items:
                raise ValidationError('At least one recipe is required')
            sheet.recipes.clear()
            db.session.flush()
            for index, item in enumerate(items):
                _add_entry(sheet, bakery_id, item.get('recipe_id'), item.get('scale'),
                           item.get('order', index), max_scale)
    return sheet


def add_recipe(bakery_id, sheet_id, recipe_id, scale, order=None, max_scale=MAX_RECIPE_SCALE):
    with atomic():
        sheet = get_scoped(ProductionSheet, sheet_id, bakery_id, for_update=True)
        _require_pending(sheet)
        entry = _add_entry(sheet, bakery_id, recipe_id, scale, order, max_scale)
    return entry


def _get_entry(sheet, entry_id):
    entry_id = require_int(entry_id, 'Sheet recipe')
    for entry in sheet.recipes:
        if entry.id == entry_id:
            return entry
    raise ValidationError('Recipe is not on this production sheet')


def update_recipe_on_sheet(bakery_id, sheet_id, entry_id, scale=None, order=None,
                           max_scale=MAX_RECIPE_SCALE):
    with atomic():
        sheet = get_scoped(ProductionSheet, sheet_id, bakery_id, for_update=True)
        _require_pending(sheet)
        entry = _get_entry(sheet, entry_id)
        if scale is not None:
            entry.scale = _require_scale(scale, max_scale)
        if order is not None:
            entry.order = require_int(order, 'Order')
    return entry


def remove_recipe(bakery_id, sheet_id, entry_id):
    with atomic():
        sheet = get_scoped(ProductionSheet, sheet_id, bakery_id, for_update=True)
        _require_pending(sheet)
        entry = _get_entry(sheet, entry_id)
        if len(sheet.recipes) <= 1:
            raise ValidationError('A production sheet needs at least one recipe')
        sheet.recipes.remove(entry)
    return sheet


def delete_sheet(bakery_id, sheet_id):
    with atomic():
        sheet = get_scoped(ProductionSheet, sheet_id, bakery_id, for_update=True)
        _require_pending(sheet, 'delete')
        db.session.delete(sheet)
    logger.info("Deleted production sheet %s", sheet_id)


def get_sheet(bakery_id, sheet_id):
    return get_scoped(ProductionSheet, sheet_id, bakery_id)


def list_sheets(bakery_id, completed=None):
    query = scoped_query(ProductionSheet, bakery_id)
    if completed is not None:
        query = query.filter(ProductionSheet.completed == completed)
    return query.order_by(ProductionSheet.created_at.desc(), ProductionSheet.id.desc()).all()


def sheet_view(bakery_id, sheet_id, table=None):
    """
    Scaled recipes and ingredient totals for display.

    A completed sheet returns its frozen snapshot, never a recomputation.
    A pending sheet is computed live from current recipes and prices and
    also lists the shortages completion would hit right now.
    """
    sheet = get_scoped(ProductionSheet, sheet_id, bakery_id)
    if sheet.completed:
        return {'live': False, 'status': sheet.status, 'snapshot': sheet.snapshot_data, 'shortages': []}

    table = table or load_conversion_table()
    scaled = scale_sheet(sheet, table)
    aggregated = aggregate_across_recipes(scaled, table)
    shortages = check_availability(bakery_id, requirements(aggregated), table)
    return {
        'live': True,
        'status': sheet.status,
        'snapshot': build_sheet_snapshot(scaled, aggregated, None, total_cost(scaled)),
        'shortages': [s.to_dict() for s in shortages],
    }


def complete(bakery_id, sheet_id, actor, table=None):
    """
    Complete a sheet: deduct every ingredient and freeze the snapshot.

    Runs as one transaction. Any shortage or missing conversion rolls the
    whole completion back, leaving inventory untouched and the sheet
    PENDING. The sheet row is locked first so concurrent completions of
    the same sheet serialise and the loser sees AlreadyCompleted.
    """
    table = table or load_conversion_table()

    with atomic():
        sheet = get_scoped(ProductionSheet, sheet_id, bakery_id, for_update=True)
        if sheet.completed:
            raise AlreadyCompleted(sheet.id)

        scaled = scale_sheet(sheet, table)
        aggregated = aggregate_across_recipes(scaled, table)
        for entry in aggregated:
            if entry.unconvertible:
                raise ConversionUnavailable(entry.unconvertible[0].unit, entry.unit, entry.ingredient_name)

        needed = requirements(aggregated)
        # Lock in id order so overlapping completions cannot deadlock
        ingredients = {}
        for requirement in sorted(needed, key=lambda r: r.ingredient_id):
            ingredients[requirement.ingredient_id] = get_scoped(
                Ingredient, requirement.ingredient_id, bakery_id, for_update=True
            )

        shortages = []
        for requirement in needed:
            shortage = find_shortage(ingredients[requirement.ingredient_id], requirement.quantity,
                                     table, lock=True)
            if shortage:
                shortages.append(shortage)
        if shortages:
            logger.warning("Production sheet %s cannot be completed: %d ingredient(s) short",
                           sheet.id, len(shortages))
            raise InsufficientStock(shortages)

        for requirement in needed:
            consume_locked(
                ingredients[requirement.ingredient_id], requirement.quantity, requirement.unit,
                TRANSACTION_USE, table, production_sheet_id=sheet.id,
                notes=f'Production sheet #{sheet.id}', actor=actor,
            )

        completed_at = utcnow()
        sheet.snapshot_data = build_sheet_snapshot(scaled, aggregated, completed_at, total_cost(scaled))
        sheet.completed = True
        sheet.completed_at = completed_at
        sheet.completed_by = actor.user_id

    logger.info("Completed production sheet %s: %d recipe(s), %d ingredient(s) deducted",
                sheet.id, len(scaled), len(needed))
    archive_completion(sheet, actor)
    return sheet


def archive_completion(sheet, actor):
    """
    Copy the frozen sheet and the recipes it used to the snapshot archive.

    Runs after the completion has committed; a failed upload is logged and
    leaves the completed sheet as it is.
    """
    try:
        archive = get_snapshot_archive()
        label = sheet.description or f'Production sheet #{sheet.id}'
        archive.upload(sheet.bakery_id, ENTITY_PRODUCTION_SHEET, sheet.id, label,
                       sheet.snapshot_data, SNAPSHOT_TRIGGER_COMPLETE, triggered_by=actor.user_id)
        for entry in sheet.recipes:
            archive.upload(sheet.bakery_id, ENTITY_RECIPE, entry.recipe_id, entry.recipe.name,
                           serialize_recipe(entry.recipe), SNAPSHOT_TRIGGER_PRODUCTION,
                           triggered_by=actor.user_id)
    except Exception:
        logger.exception("Failed to archive snapshot for production sheet %s", sheet.id)
