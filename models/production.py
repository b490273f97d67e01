"""
Production Sheet Models

Contains the ProductionSheet and ProductionSheetRecipe models.
"""

from .base import db, utcnow, QTY


class ProductionSheet(db.Model):
    """
    Production run over one or more scaled recipes.

    PENDING -> COMPLETED only. Once completed, snapshot_data is the permanent
    record of quantities and costs and is never recomputed.
    """
    id = db.Column(db.Integer, primary_key=True)
    bakery_id = db.Column(db.Integer, db.ForeignKey('bakery.id', ondelete='CASCADE'), nullable=False, index=True)
    description = db.Column(db.String(500), nullable=True)
    scheduled_for = db.Column(db.DateTime, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    completed = db.Column(db.Boolean, nullable=False, default=False, index=True)
    completed_at = db.Column(db.DateTime, nullable=True)
    completed_by = db.Column(db.String(100), nullable=True)
    snapshot_data = db.Column(db.JSON, nullable=True)
    created_by = db.Column(db.String(100), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    recipes = db.relationship(
        'ProductionSheetRecipe', backref='production_sheet', lazy=True,
        cascade='all, delete-orphan',
        order_by='[ProductionSheetRecipe.order, ProductionSheetRecipe.id]'
    )

    @property
    def status(self):
        return 'COMPLETED' if self.completed else 'PENDING'


class ProductionSheetRecipe(db.Model):
    """A recipe on a sheet with its own scale factor and display order."""
    __table_args__ = (
        db.UniqueConstraint('production_sheet_id', 'recipe_id', name='uq_sheet_recipe'),
    )

    id = db.Column(db.Integer, primary_key=True)
    production_sheet_id = db.Column(
        db.Integer, db.ForeignKey('production_sheet.id', ondelete='CASCADE'), nullable=False, index=True
    )
    recipe_id = db.Column(db.Integer, db.ForeignKey('recipe.id'), nullable=False, index=True)
    scale = db.Column(QTY, nullable=False)
    order = db.Column(db.Integer, nullable=False, default=0)
    recipe = db.relationship('Recipe')
