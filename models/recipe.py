"""
Recipe Models

Contains the Recipe, RecipeSection and RecipeSectionIngredient models.
"""

from decimal import Decimal

from .base import db, utcnow, QTY, MONEY


class Recipe(db.Model):
    """Recipe with ordered sections. total_cost is a cache recomputed on save."""
    __table_args__ = (db.UniqueConstraint('bakery_id', 'name', name='uq_recipe_bakery_name'),)

    id = db.Column(db.Integer, primary_key=True)
    bakery_id = db.Column(db.Integer, db.ForeignKey('bakery.id', ondelete='CASCADE'), nullable=False, index=True)
    name = db.Column(db.String(200), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    yield_qty = db.Column(QTY, nullable=False, default=Decimal('1'))
    yield_unit = db.Column(db.String(20), nullable=False, default='each')
    total_cost = db.Column(MONEY, nullable=False, default=Decimal('0'))
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    sections = db.relationship(
        'RecipeSection', backref='recipe', lazy=True,
        cascade='all, delete-orphan', order_by='RecipeSection.order'
    )

    def iter_lines(self):
        for section in self.sections:
            for line in section.ingredients:
                yield section, line


class RecipeSection(db.Model):
    """Named step of a recipe (e.g. 'Dough', 'Filling')."""
    id = db.Column(db.Integer, primary_key=True)
    recipe_id = db.Column(db.Integer, db.ForeignKey('recipe.id', ondelete='CASCADE'), nullable=False, index=True)
    name = db.Column(db.String(200), nullable=False)
    order = db.Column(db.Integer, nullable=False, default=0)
    instructions = db.Column(db.Text, default='')

    ingredients = db.relationship(
        'RecipeSectionIngredient', backref='section', lazy=True,
        cascade='all, delete-orphan', order_by='RecipeSectionIngredient.order'
    )


class RecipeSectionIngredient(db.Model):
    """Ingredient line: quantity in any unit, converted on demand."""
    id = db.Column(db.Integer, primary_key=True)
    section_id = db.Column(db.Integer, db.ForeignKey('recipe_section.id', ondelete='CASCADE'), nullable=False, index=True)
    ingredient_id = db.Column(db.Integer, db.ForeignKey('ingredient.id'), nullable=False, index=True)
    quantity = db.Column(QTY, nullable=False)
    unit = db.Column(db.String(20), nullable=False)
    preparation = db.Column(db.String(200), nullable=True)
    order = db.Column(db.Integer, nullable=False, default=0)
    ingredient = db.relationship('Ingredient')
