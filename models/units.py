"""
Unit Conversion Model

Directed conversion factors between unit codes. The table is static
reference data; conversions are never inferred from the inverse pair.
"""

from .base import db, FACTOR


class UnitConversion(db.Model):
    """quantity_in_to_unit = quantity_in_from_unit * factor"""
    __table_args__ = (
        db.UniqueConstraint('from_unit', 'to_unit', name='uq_unit_conversion_pair'),
        db.CheckConstraint('factor > 0', name='ck_unit_conversion_factor_positive'),
    )

    id = db.Column(db.Integer, primary_key=True)
    from_unit = db.Column(db.String(20), nullable=False, index=True)
    to_unit = db.Column(db.String(20), nullable=False)
    factor = db.Column(FACTOR, nullable=False)
    category = db.Column(db.String(50), nullable=False)  # 'weight', 'volume', 'count'
