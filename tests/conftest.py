"""Pytest configuration and fixtures."""

from datetime import datetime
from decimal import Decimal

import pytest

from app import create_app
from config import TestingConfig
from models import db, Bakery
from services import ingredients, ledger, recipes
from services.snapshots import SnapshotArchive
from services.tenancy import Actor
from services.units import load_conversion_table, seed_unit_conversions


@pytest.fixture(scope="function")
def app(tmp_path):
    """App on a fresh in-memory database with the reference conversions seeded."""
    app = create_app(TestingConfig)
    app.extensions['snapshot_archive'] = SnapshotArchive(
        bucket='test-snapshots', local_dir=tmp_path / 'snapshots'
    )
    with app.app_context():
        db.create_all()
        seed_unit_conversions()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def archive(app):
    return app.extensions['snapshot_archive']


@pytest.fixture
def table(app):
    return load_conversion_table()


@pytest.fixture
def bakery(app):
    bakery = Bakery(name="Test Bakery", slug="test-bakery")
    db.session.add(bakery)
    db.session.commit()
    return bakery


@pytest.fixture
def other_bakery(app):
    bakery = Bakery(name="Other Bakery", slug="other-bakery")
    db.session.add(bakery)
    db.session.commit()
    return bakery


@pytest.fixture
def actor(bakery):
    return Actor(user_id="baker-1", bakery_id=bakery.id)


@pytest.fixture
def other_actor(other_bakery):
    return Actor(user_id="baker-2", bakery_id=other_bakery.id)


@pytest.fixture
def headers(actor):
    return {"X-User-Id": actor.user_id, "X-Bakery-Id": str(actor.bakery_id)}


@pytest.fixture
def make_ingredient(bakery):
    """Create an ingredient in the test bakery (or the given one)."""
    def _make(name, unit="g", cost="0", bakery_id=None, low_stock_threshold=None):
        return ingredients.create_ingredient(
            bakery_id or bakery.id, name, unit, cost_per_unit=Decimal(cost),
            low_stock_threshold=low_stock_threshold,
        )
    return _make


@pytest.fixture
def make_lot(bakery, actor):
    """Receive a lot; purchased_at defaults to a fixed day so order is explicit."""
    def _make(ingredient, quantity, unit=None, cost="0", purchased_at=None, **kwargs):
        return ledger.receive(
            ingredient.bakery_id, ingredient.id, Decimal(str(quantity)), unit or ingredient.unit,
            Decimal(cost),
            purchased_at=purchased_at or datetime(2026, 1, 1),
            actor=actor,
            **kwargs,
        )
    return _make


@pytest.fixture
def make_recipe(actor):
    """Create a one-section recipe from (ingredient, quantity, unit) tuples."""
    def _make(name, lines, yield_qty="1", yield_unit="each", section="Dough"):
        return recipes.create_recipe(actor, {
            'name': name,
            'yield_qty': yield_qty,
            'yield_unit': yield_unit,
            'sections': [{
                'name': section,
                'ingredients': [
                    {'ingredient_id': ingredient.id, 'quantity': str(quantity), 'unit': unit}
                    for ingredient, quantity, unit in lines
                ],
            }],
        })
    return _make
