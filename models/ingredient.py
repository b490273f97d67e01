"""
Ingredient Model

Contains the Ingredient model: the stock unit and reference cost used for
recipe costing, plus the running stock total maintained by the ledger.
"""

from decimal import Decimal

from .base import db, utcnow, QTY, MONEY


class Ingredient(db.Model):
    """
    Ingredient tracked in one stock unit.

    - unit:          canonical stock unit (what quantities and cost are kept in)
    - cost_per_unit: reference cost of ONE stock unit, used for recipe costing
    - current_qty:   running total of remaining lot quantity in the stock unit.
                     Only the ledger writes it, always in the same transaction
                     as the lot change that caused it.
    """
    __table_args__ = (db.UniqueConstraint('bakery_id', 'name', name='uq_ingredient_bakery_name'),)

    id = db.Column(db.Integer, primary_key=True)
    bakery_id = db.Column(db.Integer, db.ForeignKey('bakery.id', ondelete='CASCADE'), nullable=False, index=True)
    name = db.Column(db.String(200), nullable=False, index=True)
    unit = db.Column(db.String(20), nullable=False)
    cost_per_unit = db.Column(MONEY, nullable=False, default=Decimal('0'))
    current_qty = db.Column(QTY, nullable=False, default=Decimal('0'))
    low_stock_threshold = db.Column(QTY, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    lots = db.relationship(
        'InventoryLot', backref='ingredient', lazy=True,
        order_by='[InventoryLot.purchased_at, InventoryLot.id]'
    )

    @property
    def is_low_stock(self):
        if self.low_stock_threshold is None:
            return False
        return self.current_qty <= self.low_stock_threshold
