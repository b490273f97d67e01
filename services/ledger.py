"""
FIFO Inventory Ledger

Stock for each ingredient is a sequence of purchased lots, consumed oldest
first. Every mutation (receive, consume, adjust, delete) runs in a single
transaction that also:

- re-derives the ingredient's cached current_qty from its lots, in the
  stock unit, and
- appends an InventoryTransaction audit record.

Lots are ordered by (purchased_at, id) so ties on the purchase timestamp
still resolve deterministically. Lot and ingredient rows are read with
SELECT ... FOR UPDATE, so two concurrent consumptions of one ingredient
serialise instead of both deducting from the same remaining quantity.
"""

import logging
from collections import namedtuple
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP, ROUND_UP

from constants import (
    TRANSACTION_RECEIVE, TRANSACTION_USE, TRANSACTION_ADJUST,
    VALID_CONSUME_REASONS, MAX_LENGTHS,
)
from models import (
    db, atomic, utcnow, Ingredient, InventoryLot, InventoryTransaction,
    InventoryUsage, Vendor,
)
from utils.sanitizer import sanitize_notes
from .errors import InsufficientStock, InvalidAdjustment, LotInUse, Shortage, ValidationError
from .tenancy import get_scoped, scoped_query
from .units import load_conversion_table, normalize_unit
from .validation import (
    require_decimal, require_unit, require_choice, optional_datetime, require_int,
)

logger = logging.getLogger(__name__)

ZERO = Decimal('0')
# Lot quantities are stored with 6 decimal places
QTY_PLACES = Decimal('0.000001')
# Shortfalls below this are conversion rounding, not missing stock
TOLERANCE = Decimal('1e-9')

Requirement = namedtuple('Requirement', ['ingredient_id', 'quantity', 'unit'])


# ============================================
# FIFO PLANNING (pure)
# ============================================

@dataclass
class LotUsage:
    lot: InventoryLot
    quantity: Decimal        # taken from the lot, in the lot's purchase unit
    stock_quantity: Decimal  # same amount in the ingredient's stock unit


@dataclass
class FifoPlan:
    requested: Decimal
    usages: list = field(default_factory=list)
    fulfilled: Decimal = ZERO

    @property
    def shortfall(self):
        return max(self.requested - self.fulfilled, ZERO)

    @property
    def has_shortfall(self):
        return self.shortfall > TOLERANCE


def fifo_order(lots):
    """Non-depleted lots, oldest first; id breaks purchased_at ties."""
    active = [lot for lot in lots if not lot.is_depleted]
    return sorted(active, key=lambda lot: (lot.purchased_at, lot.id or 0))


def plan_fifo(lots, requested, stock_unit, table, ingredient_name=None):
    """
    Work out how much to take from each lot to cover requested.

    Args:
        lots: The ingredient's lots (any order, depleted ones are skipped)
        requested: Quantity needed, already in stock_unit
        stock_unit: The ingredient's stock unit
        table: ConversionTable used to bring lot quantities into stock_unit

    Returns:
        FifoPlan. Nothing is mutated; callers decide whether to apply it.
    """
    plan = FifoPlan(requested=requested)
    need = requested
    for lot in fifo_order(lots):
        if need <= TOLERANCE:
            break
        factor = table.require_factor(lot.purchase_unit, stock_unit, ingredient_name)
        available = lot.remaining_qty * factor
        if available <= 0:
            continue

        if available <= need:
            take_stock = available
            take_lot = lot.remaining_qty
        else:
            # Round up to the stored precision so the lot covers need
            take_lot = min((need / factor).quantize(QTY_PLACES, rounding=ROUND_UP), lot.remaining_qty)
            take_stock = take_lot * factor

        plan.usages.append(LotUsage(lot=lot, quantity=take_lot, stock_quantity=take_stock))
        plan.fulfilled += take_stock
        need -= take_stock
    return plan


def _active_lots(ingredient_id, lock=False):
    query = InventoryLot.query.filter(
        InventoryLot.ingredient_id == ingredient_id,
        InventoryLot.remaining_qty > 0,
    ).order_by(InventoryLot.purchased_at, InventoryLot.id)
    if lock:
        query = query.with_for_update().populate_existing()
    return query.all()


def _record(ingredient, type_, quantity, unit, actor=None, lot_id=None,
            production_sheet_id=None, notes=None):
    transaction = InventoryTransaction(
        bakery_id=ingredient.bakery_id,
        ingredient_id=ingredient.id,
        lot_id=lot_id,
        type=type_,
        quantity=quantity,
        unit=unit,
        production_sheet_id=production_sheet_id,
        notes=notes,
        created_by=actor.user_id if actor else None,
    )
    db.session.add(transaction)
    db.session.flush()
    return transaction


def _current_qty(ingredient):
    return ingredient.current_qty if ingredient.current_qty is not None else ZERO


def _lots_in_stock_unit(ingredient, lots, table):
    total = ZERO
    for lot in lots:
        if not lot.is_depleted:
            total += table.require(lot.remaining_qty, lot.purchase_unit, ingredient.unit, ingredient.name)
    return total


def _sync_current_qty(ingredient, table):
    """
    Re-derive the cached current_qty from the ingredient's lots.

    Called after every lot mutation, with the ingredient row locked, so the
    cache never accumulates rounding from repeated conversions.
    """
    db.session.flush()
    total = _lots_in_stock_unit(ingredient, _active_lots(ingredient.id, lock=True), table)
    ingredient.current_qty = total.quantize(QTY_PLACES, rounding=ROUND_HALF_UP)


# ============================================
# LEDGER OPERATIONS
# ============================================

def receive(bakery_id, ingredient_id, quantity, unit, cost_per_unit, vendor_id=None,
            expires_at=None, notes=None, purchased_at=None, actor=None, table=None):
    """
    Record a purchase as a new lot.

    The quantity is converted into the ingredient's stock unit for
    current_qty; if no conversion exists the whole receipt is rejected.
    """
    quantity = require_decimal(quantity, 'Quantity', positive=True)
    unit = normalize_unit(require_unit(unit))
    cost_per_unit = require_decimal(cost_per_unit, 'Cost per unit', non_negative=True)
    expires_at = optional_datetime(expires_at, 'Expiry date')
    purchased_at = optional_datetime(purchased_at, 'Purchase date') or utcnow()
    notes = sanitize_notes(notes, max_length=MAX_LENGTHS['notes'])
    table = table or load_conversion_table()

    with atomic():
        ingredient = get_scoped(Ingredient, ingredient_id, bakery_id, for_update=True)
        if vendor_id:
            get_scoped(Vendor, vendor_id, bakery_id)

        table.require_factor(unit, ingredient.unit, ingredient.name)

        lot = InventoryLot(
            bakery_id=bakery_id,
            ingredient_id=ingredient.id,
            purchase_qty=quantity,
            purchase_unit=unit,
            remaining_qty=quantity,
            cost_per_unit=cost_per_unit,
            purchased_at=purchased_at,
            expires_at=expires_at,
            vendor_id=int(vendor_id) if vendor_id else None,
            notes=notes,
        )
        db.session.add(lot)
        db.session.flush()

        _sync_current_qty(ingredient, table)
        _record(ingredient, TRANSACTION_RECEIVE, quantity, unit, actor=actor,
                lot_id=lot.id, notes=notes)

    logger.info("Received %s %s of %s into lot %s at %s/%s",
                quantity, unit, ingredient.name, lot.id, cost_per_unit, unit)
    return lot


def consume(bakery_id, ingredient_id, quantity, unit, reason=TRANSACTION_USE,
            production_sheet_id=None, notes=None, actor=None, table=None):
    """
    Deduct stock oldest-lot-first for USE or WASTE.

    Fails with InsufficientStock, leaving every lot untouched, when the
    ingredient's lots hold less than the requested amount.
    """
    quantity = require_decimal(quantity, 'Quantity', positive=True)
    unit = normalize_unit(require_unit(unit))
    reason = require_choice(reason, 'reason', VALID_CONSUME_REASONS)
    notes = sanitize_notes(notes, max_length=MAX_LENGTHS['notes'])
    table = table or load_conversion_table()

    with atomic():
        ingredient = get_scoped(Ingredient, ingredient_id, bakery_id, for_update=True)
        transaction = consume_locked(
            ingredient, quantity, unit, reason, table,
            production_sheet_id=production_sheet_id, notes=notes, actor=actor,
        )
    return transaction


def consume_locked(ingredient, quantity, unit, reason, table, production_sheet_id=None,
                   notes=None, actor=None):
    """
    FIFO deduction for an ingredient row the caller has already locked.

    Must run inside atomic(); used directly by workflows that deduct several
    ingredients in one transaction.
    """
    requested = table.require(quantity, unit, ingredient.unit, ingredient.name)
    plan = plan_fifo(_active_lots(ingredient.id, lock=True), requested,
                     ingredient.unit, table, ingredient.name)

    if plan.has_shortfall:
        logger.warning("Insufficient stock for %s: need %s %s, have %s %s",
                       ingredient.name, requested, ingredient.unit, plan.fulfilled, ingredient.unit)
        raise InsufficientStock([
            Shortage(ingredient.id, ingredient.name, requested, plan.fulfilled, ingredient.unit)
        ])

    consumed = plan.fulfilled.quantize(QTY_PLACES, rounding=ROUND_HALF_UP)
    transaction = _record(ingredient, reason, consumed, ingredient.unit, actor=actor,
                          production_sheet_id=production_sheet_id, notes=notes)
    for usage in plan.usages:
        usage.lot.remaining_qty = usage.lot.remaining_qty - usage.quantity
        db.session.add(InventoryUsage(
            transaction_id=transaction.id, lot_id=usage.lot.id, quantity=usage.quantity
        ))
    _sync_current_qty(ingredient, table)

    logger.info("Consumed %s %s of %s (%s) from %d lot(s)",
                consumed, ingredient.unit, ingredient.name, reason, len(plan.usages))
    return transaction


def adjust(bakery_id, lot_id, delta, notes=None, actor=None, table=None):
    """
    Correct one lot's remaining quantity by delta (in the lot's purchase unit).

    A zero delta, or one that would leave the lot below zero or above its
    purchased quantity, raises InvalidAdjustment.
    """
    try:
        delta = require_decimal(delta, 'Adjustment')
    except ValidationError as e:
        raise InvalidAdjustment(e.message)
    if delta == 0:
        raise InvalidAdjustment('Adjustment cannot be zero')
    notes = sanitize_notes(notes, max_length=MAX_LENGTHS['notes'])
    table = table or load_conversion_table()

    with atomic():
        lot = get_scoped(InventoryLot, lot_id, bakery_id, for_update=True)
        ingredient = get_scoped(Ingredient, lot.ingredient_id, bakery_id, for_update=True)

        new_remaining = lot.remaining_qty + delta
        if new_remaining < 0:
            raise InvalidAdjustment('Adjustment would result in negative inventory')
        if new_remaining > lot.purchase_qty:
            raise InvalidAdjustment('Adjustment would exceed the purchased quantity of the lot')

        table.require_factor(lot.purchase_unit, ingredient.unit, ingredient.name)
        lot.remaining_qty = new_remaining
        _sync_current_qty(ingredient, table)

        transaction = _record(ingredient, TRANSACTION_ADJUST, delta, lot.purchase_unit,
                              actor=actor, lot_id=lot.id, notes=notes)
        # Usage rows count what left the lot, so an increase is negative
        db.session.add(InventoryUsage(transaction_id=transaction.id, lot_id=lot.id, quantity=-delta))

    logger.info("Adjusted lot %s of %s by %s %s (remaining %s)",
                lot.id, ingredient.name, delta, lot.purchase_unit, lot.remaining_qty)
    return lot


def update_lot(bakery_id, lot_id, changes):
    """Update lot metadata (expiry, vendor, notes). Quantities only move through the ledger."""
    with atomic():
        lot = get_scoped(InventoryLot, lot_id, bakery_id)
        if 'expires_at' in changes:
            lot.expires_at = optional_datetime(changes['expires_at'], 'Expiry date')
        if 'vendor_id' in changes:
            vendor_id = changes['vendor_id']
            if vendor_id:
                lot.vendor_id = get_scoped(Vendor, vendor_id, bakery_id).id
            else:
                lot.vendor_id = None
        if 'notes' in changes:
            lot.notes = sanitize_notes(changes['notes'], max_length=MAX_LENGTHS['notes'])
    return lot


def delete_lot(bakery_id, lot_id, actor=None, table=None):
    """
    Delete a lot that has never been drawn from or adjusted.

    Its quantity is reversed out of current_qty and an ADJUST record keeps
    the audit trail balanced.
    """
    table = table or load_conversion_table()
    with atomic():
        lot = get_scoped(InventoryLot, lot_id, bakery_id, for_update=True)
        usage_count = InventoryUsage.query.filter_by(lot_id=lot.id).count()
        if usage_count:
            raise LotInUse(lot.id, usage_count)

        ingredient = get_scoped(Ingredient, lot.ingredient_id, bakery_id, for_update=True)
        InventoryTransaction.query.filter_by(lot_id=lot.id).update({'lot_id': None})
        _record(ingredient, TRANSACTION_ADJUST, -lot.remaining_qty, lot.purchase_unit, actor=actor,
                notes=f'Deleted unused lot #{lot.id} ({lot.purchase_qty} {lot.purchase_unit})')
        db.session.delete(lot)
        _sync_current_qty(ingredient, table)

    logger.info("Deleted unused lot %s of %s", lot_id, ingredient.name)


# ============================================
# REPORTING
# ============================================

def remaining_value(bakery_id, ingredient_id):
    """
    Value of stock on hand at each lot's own purchase cost.

    True FIFO costing: older, cheaper layers are valued at what was paid
    for them, not at the ingredient's reference cost.
    """
    ingredient = get_scoped(Ingredient, ingredient_id, bakery_id)
    return lots_value(ingredient.lots)


def lots_value(lots):
    return sum((lot.remaining_qty * lot.cost_per_unit for lot in lots if not lot.is_depleted), ZERO)


def available_quantity(ingredient, table):
    """Sum of remaining lot quantity in the ingredient's stock unit."""
    return _lots_in_stock_unit(ingredient, ingredient.lots, table)


def weighted_average_cost(ingredient, table):
    """Cost per stock unit across active lots, or None with nothing in stock."""
    quantity = available_quantity(ingredient, table)
    if quantity <= 0:
        return None
    return lots_value(ingredient.lots) / quantity


@dataclass
class InventorySummary:
    ingredient: Ingredient
    unit: str
    current_qty: Decimal
    total_value: Decimal
    weighted_average_cost: Decimal
    active_lots: list
    depleted_lots: list


def inventory_summary(bakery_id, ingredient_id, table=None):
    ingredient = get_scoped(Ingredient, ingredient_id, bakery_id)
    table = table or load_conversion_table()
    lots = sorted(ingredient.lots, key=lambda lot: (lot.purchased_at, lot.id))
    return InventorySummary(
        ingredient=ingredient,
        unit=ingredient.unit,
        current_qty=_current_qty(ingredient),
        total_value=lots_value(lots),
        weighted_average_cost=weighted_average_cost(ingredient, table),
        active_lots=[lot for lot in lots if not lot.is_depleted],
        depleted_lots=[lot for lot in lots if lot.is_depleted],
    )


def check_availability(bakery_id, requirements, table=None):
    """
    Shortages for a list of Requirement without changing anything.

    Ingredients that cannot be converted raise ConversionUnavailable.
    """
    table = table or load_conversion_table()
    shortages = []
    for requirement in requirements:
        ingredient = get_scoped(Ingredient, requirement.ingredient_id, bakery_id)
        requested = table.require(requirement.quantity, requirement.unit, ingredient.unit, ingredient.name)
        shortage = find_shortage(ingredient, requested, table)
        if shortage:
            shortages.append(shortage)
    return shortages


def find_shortage(ingredient, requested, table, lock=False):
    """Shortage if the ingredient's lots cannot cover requested (stock unit), else None."""
    plan = plan_fifo(_active_lots(ingredient.id, lock=lock), requested,
                     ingredient.unit, table, ingredient.name)
    if not plan.has_shortfall:
        return None
    return Shortage(ingredient.id, ingredient.name, requested, plan.fulfilled, ingredient.unit)


def expiring_lots(bakery_id, within_days=7, now=None):
    """Active lots expiring within the window (already expired ones included)."""
    now = now or utcnow()
    cutoff = now + timedelta(days=within_days)
    return scoped_query(InventoryLot, bakery_id).filter(
        InventoryLot.remaining_qty > 0,
        InventoryLot.expires_at.isnot(None),
        InventoryLot.expires_at <= cutoff,
    ).order_by(InventoryLot.expires_at, InventoryLot.id).all()


def expired_lots(bakery_id, now=None):
    now = now or utcnow()
    return scoped_query(InventoryLot, bakery_id).filter(
        InventoryLot.remaining_qty > 0,
        InventoryLot.expires_at.isnot(None),
        InventoryLot.expires_at < now,
    ).order_by(InventoryLot.expires_at, InventoryLot.id).all()


def low_stock_ingredients(bakery_id):
    return scoped_query(Ingredient, bakery_id).filter(
        Ingredient.low_stock_threshold.isnot(None),
        Ingredient.current_qty <= Ingredient.low_stock_threshold,
    ).order_by(Ingredient.name).all()


def reconcile(bakery_id, ingredient_id, table=None):
    """Compare the cached current_qty with the sum over lots."""
    ingredient = get_scoped(Ingredient, ingredient_id, bakery_id)
    table = table or load_conversion_table()
    actual = available_quantity(ingredient, table)
    cached = _current_qty(ingredient)
    drift = cached - actual
    if abs(drift) > QTY_PLACES:
        logger.warning("current_qty drift for %s: cached %s, lots %s", ingredient.name, cached, actual)
    return {'cached': cached, 'actual': actual, 'drift': drift, 'in_sync': abs(drift) <= QTY_PLACES}


def list_transactions(bakery_id, ingredient_id=None, limit=50):
    query = scoped_query(InventoryTransaction, bakery_id)
    if ingredient_id is not None:
        query = query.filter(InventoryTransaction.ingredient_id == require_int(ingredient_id, 'Ingredient'))
    return query.order_by(InventoryTransaction.created_at.desc(), InventoryTransaction.id.desc()).limit(limit).all()
