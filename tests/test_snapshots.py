"""Tests for snapshot serialization and the local snapshot archive."""

from datetime import datetime
from decimal import Decimal

from services.snapshots import (
    ENTITY_PRODUCTION_SHEET, ENTITY_RECIPE, SnapshotArchive,
    build_sheet_snapshot, generate_key, is_valid_sheet_snapshot, parse_key, serialize_recipe,
)


def test_generate_and_parse_key():
    key = generate_key(3, ENTITY_RECIPE, 42, '2026-01-15T10:30:00.123456', 1)

    assert key == 'snapshots/3/recipe/42/2026-01-15T10-30-00.123456-v1.json'
    assert parse_key(key) == {
        'bakery_id': '3',
        'entity_type': 'recipe',
        'entity_id': '42',
        'timestamp': '2026-01-15T10:30:00.123456',
        'version': 1,
    }


def test_parse_key_rejects_other_objects():
    assert parse_key('uploads/3/photo.jpg') is None


def test_sheet_snapshot_is_strings_only():
    snapshot = build_sheet_snapshot([], [], datetime(2026, 3, 1, 6, 0), Decimal('12.500000'))

    assert snapshot['totalCost'] == '12.5'
    assert snapshot['completedAt'] == '2026-03-01T06:00:00'
    assert is_valid_sheet_snapshot(snapshot)


def test_live_snapshot_is_not_a_valid_frozen_one():
    snapshot = build_sheet_snapshot([], [], None, Decimal('0'))
    assert snapshot['totalCost'] == '0'
    assert not is_valid_sheet_snapshot(snapshot)
    assert not is_valid_sheet_snapshot(None)


def test_serialize_recipe(make_ingredient, make_recipe):
    flour = make_ingredient("Flour", "g", "0.002")
    recipe = make_recipe("Bread", [(flour, "500", "g")], yield_qty="2", yield_unit="loaf")

    data = serialize_recipe(recipe)

    assert data['name'] == "Bread"
    assert data['yieldQty'] == '2'
    assert data['totalCost'] == '1'
    assert data['sections'][0]['ingredients'][0] == {
        'ingredientId': flour.id,
        'ingredientName': "Flour",
        'quantity': '500',
        'unit': 'g',
        'preparation': None,
    }


class TestLocalArchive:

    def test_without_credentials_falls_back_to_disk(self, tmp_path):
        archive = SnapshotArchive(bucket='snapshots', local_dir=tmp_path)
        assert not archive.is_remote

    def test_upload_and_get(self, tmp_path):
        archive = SnapshotArchive(bucket='snapshots', local_dir=tmp_path)

        key = archive.upload(1, ENTITY_PRODUCTION_SHEET, 7, "Saturday bake", {'totalCost': '3.1'},
                             'COMPLETE', triggered_by='baker-1', created_at=datetime(2026, 3, 1, 6, 0))

        assert (tmp_path / key).is_file()
        stored = archive.get(key)
        assert stored['data'] == {'totalCost': '3.1'}
        assert stored['metadata']['entityName'] == "Saturday bake"
        assert stored['metadata']['entityId'] == '7'
        assert stored['metadata']['schemaVersion'] == 1

    def test_missing_key(self, tmp_path):
        archive = SnapshotArchive(bucket='snapshots', local_dir=tmp_path)
        assert archive.get('snapshots/1/recipe/1/2026-01-01T00-00-00-v1.json') is None
        assert archive.latest(1, ENTITY_RECIPE, 1) is None

    def test_list_newest_first_and_compare(self, tmp_path):
        archive = SnapshotArchive(bucket='snapshots', local_dir=tmp_path)
        older = archive.upload(1, ENTITY_RECIPE, 5, "Bread", {'name': "Bread", 'yieldQty': '1'},
                               'SAVE', created_at=datetime(2026, 3, 1, 6, 0))
        newer = archive.upload(1, ENTITY_RECIPE, 5, "Sourdough",
                               {'name': "Sourdough", 'yieldQty': '1', 'description': "Slow rise"},
                               'SAVE', created_at=datetime(2026, 3, 1, 7, 0))
        archive.upload(1, ENTITY_RECIPE, 6, "Rolls", {'name': "Rolls"}, 'SAVE')

        listed = archive.list(1, ENTITY_RECIPE, 5)
        assert [item['key'] for item in listed] == [newer, older]
        assert archive.latest(1, ENTITY_RECIPE, 5)['data']['name'] == "Sourdough"

        diff = archive.compare(older, newer)
        assert diff['time_delta'] == '1 hour'
        assert diff['added'] == ['description']
        assert diff['removed'] == []
        assert diff['modified'] == [{'path': 'name', 'old_value': "Bread", 'new_value': "Sourdough"}]

    def test_recipe_save_is_archived(self, archive, bakery, make_ingredient, make_recipe):
        flour = make_ingredient("Flour", "g", "0.002")
        recipe = make_recipe("Bread", [(flour, "500", "g")])

        stored = archive.latest(bakery.id, ENTITY_RECIPE, recipe.id)
        assert stored['metadata']['trigger'] == 'SAVE'
        assert stored['data']['name'] == "Bread"
