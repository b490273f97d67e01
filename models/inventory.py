"""
Inventory Models

Contains the InventoryLot, InventoryTransaction and InventoryUsage models
that make up the FIFO ledger.
"""

from decimal import Decimal

from .base import db, utcnow, QTY, MONEY


class InventoryLot(db.Model):
    """
    One purchase of an ingredient.

    remaining_qty starts at purchase_qty and only moves through ledger
    operations; 0 <= remaining_qty <= purchase_qty always. Quantities are in
    purchase_unit and cost_per_unit is the price paid for one purchase_unit
    of THIS lot. FIFO order is (purchased_at, id).
    """
    __table_args__ = (
        db.CheckConstraint('remaining_qty >= 0', name='ck_lot_remaining_non_negative'),
        db.CheckConstraint('remaining_qty <= purchase_qty', name='ck_lot_remaining_le_purchase'),
        db.Index('ix_lot_fifo', 'ingredient_id', 'purchased_at', 'id'),
    )

    id = db.Column(db.Integer, primary_key=True)
    bakery_id = db.Column(db.Integer, db.ForeignKey('bakery.id', ondelete='CASCADE'), nullable=False, index=True)
    ingredient_id = db.Column(db.Integer, db.ForeignKey('ingredient.id'), nullable=False)
    purchase_qty = db.Column(QTY, nullable=False)
    purchase_unit = db.Column(db.String(20), nullable=False)
    remaining_qty = db.Column(QTY, nullable=False)
    cost_per_unit = db.Column(MONEY, nullable=False, default=Decimal('0'))
    purchased_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey('vendor.id', ondelete='SET NULL'), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    vendor = db.relationship('Vendor')
    usages = db.relationship('InventoryUsage', backref='lot', lazy=True)

    @property
    def is_depleted(self):
        return self.remaining_qty <= 0


class InventoryTransaction(db.Model):
    """Append-only audit record of a ledger mutation (RECEIVE, USE, ADJUST, WASTE)."""
    id = db.Column(db.Integer, primary_key=True)
    bakery_id = db.Column(db.Integer, db.ForeignKey('bakery.id', ondelete='CASCADE'), nullable=False, index=True)
    ingredient_id = db.Column(db.Integer, db.ForeignKey('ingredient.id'), nullable=False, index=True)
    lot_id = db.Column(db.Integer, db.ForeignKey('inventory_lot.id', ondelete='SET NULL'), nullable=True)
    type = db.Column(db.String(20), nullable=False, index=True)
    # Signed for ADJUST, positive otherwise
    quantity = db.Column(QTY, nullable=False)
    unit = db.Column(db.String(20), nullable=False)
    production_sheet_id = db.Column(db.Integer, db.ForeignKey('production_sheet.id'), nullable=True, index=True)
    notes = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.String(100), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)

    ingredient = db.relationship('Ingredient')
    usages = db.relationship('InventoryUsage', backref='transaction', lazy=True)


class InventoryUsage(db.Model):
    """
    Lot-level detail of a transaction, in the lot's purchase unit.

    quantity is what left the lot: positive for USE, WASTE and downward
    adjustments, negative when an adjustment puts stock back.
    """
    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey('inventory_transaction.id'), nullable=False, index=True)
    lot_id = db.Column(db.Integer, db.ForeignKey('inventory_lot.id'), nullable=False, index=True)
    quantity = db.Column(QTY, nullable=False)
