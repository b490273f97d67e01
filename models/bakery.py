"""
Bakery Models

Contains the Bakery (tenant) and Vendor models.
"""

from .base import db, utcnow


class Bakery(db.Model):
    """A tenant. Every ingredient, lot, recipe and sheet belongs to one bakery."""
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(100), unique=True, nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)


class Vendor(db.Model):
    """Supplier an inventory lot was purchased from."""
    __table_args__ = (db.UniqueConstraint('bakery_id', 'name', name='uq_vendor_bakery_name'),)

    id = db.Column(db.Integer, primary_key=True)
    bakery_id = db.Column(db.Integer, db.ForeignKey('bakery.id', ondelete='CASCADE'), nullable=False, index=True)
    name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(200), nullable=True)
    phone = db.Column(db.String(50), nullable=True)
    notes = db.Column(db.Text, nullable=True)
