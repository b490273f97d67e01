"""
Snapshot Service

Frozen, human-readable copies of recipes and completed production sheets.

A completed sheet keeps its snapshot in ProductionSheet.snapshot_data; every
snapshot is also written to an append-only archive (MinIO, or a local
directory when MinIO is not configured) for history and diff views.
Archive keys look like:

    snapshots/{bakery_id}/{entity_type}/{entity_id}/{timestamp}-v{version}.json

with the colons of the ISO timestamp replaced by dashes.
"""

import io
import json
import logging
import os
import re
import uuid
from datetime import datetime
from pathlib import Path

from flask import current_app
from minio import Minio
from minio.error import S3Error

from models import utcnow
from utils.numbers import decimal_str

logger = logging.getLogger(__name__)

SHEET_SNAPSHOT_VERSION = 1
RECIPE_SNAPSHOT_VERSION = 1

ENTITY_RECIPE = 'recipe'
ENTITY_PRODUCTION_SHEET = 'production-sheet'
ENTITY_SCHEMA_VERSIONS = {
    ENTITY_RECIPE: RECIPE_SNAPSHOT_VERSION,
    ENTITY_PRODUCTION_SHEET: SHEET_SNAPSHOT_VERSION,
}

KEY_PATTERN = re.compile(r'^snapshots/([^/]+)/([^/]+)/([^/]+)/(.+)-v(\d+)\.json$')
TIMESTAMP_PATTERN = re.compile(r'(\d{4})-(\d{2})-(\d{2})T(\d{2})-(\d{2})-(\d{2})')


# ============================================
# SERIALIZERS
# ============================================

def build_sheet_snapshot(scaled_recipes, aggregated, completed_at, total_cost):
    """
    Version 1 production sheet snapshot.

    Every quantity and cost is a string so the stored totals read back
    exactly as they were computed.
    """
    recipes = []
    unconvertible = []
    for recipe in scaled_recipes:
        recipes.append({
            'recipeId': recipe.recipe_id,
            'recipeName': recipe.recipe_name,
            'scale': decimal_str(recipe.scale),
            'yieldQty': decimal_str(recipe.yield_qty),
            'yieldUnit': recipe.yield_unit,
            'scaledYieldQty': decimal_str(recipe.scaled_yield_qty),
            'totalCost': decimal_str(recipe.estimated_cost),
            'sections': [
                {
                    'sectionId': section_id,
                    'sectionName': section_name,
                    'ingredients': [
                        {
                            'ingredientId': line.ingredient_id,
                            'ingredientName': line.ingredient_name,
                            'originalQuantity': decimal_str(line.original_quantity),
                            'scaledQuantity': decimal_str(line.scaled_quantity),
                            'unit': line.unit,
                            'cost': decimal_str(line.cost) if line.cost is not None else None,
                        }
                        for line in lines
                    ],
                }
                for section_id, section_name, lines in recipe.sections()
            ],
        })
        for line in recipe.unconvertible_lines:
            unconvertible.append({
                'recipeId': recipe.recipe_id,
                'ingredientId': line.ingredient_id,
                'ingredientName': line.ingredient_name,
                'quantity': decimal_str(line.scaled_quantity),
                'unit': line.unit,
            })

    return {
        'version': SHEET_SNAPSHOT_VERSION,
        'completedAt': completed_at.isoformat() if completed_at else None,
        'recipes': recipes,
        'aggregatedIngredients': [
            {
                'ingredientId': entry.ingredient_id,
                'ingredientName': entry.ingredient_name,
                'totalQuantity': decimal_str(entry.total_quantity),
                'unit': entry.unit,
                'contributions': [
                    {
                        'recipeId': c.recipe_id,
                        'recipeName': c.recipe_name,
                        'quantity': decimal_str(c.quantity),
                        'unit': c.unit,
                    }
                    for c in entry.contributions
                ],
            }
            for entry in aggregated
        ],
        'totalCost': decimal_str(total_cost),
        'unconvertibleLines': unconvertible,
    }


def is_valid_sheet_snapshot(data):
    if not isinstance(data, dict):
        return False
    return (
        data.get('version') == SHEET_SNAPSHOT_VERSION
        and isinstance(data.get('completedAt'), str)
        and isinstance(data.get('recipes'), list)
        and isinstance(data.get('aggregatedIngredients'), list)
        and isinstance(data.get('totalCost'), str)
    )


def serialize_recipe(recipe):
    return {
        'id': recipe.id,
        'name': recipe.name,
        'description': recipe.description,
        'yieldQty': decimal_str(recipe.yield_qty),
        'yieldUnit': recipe.yield_unit,
        'totalCost': decimal_str(recipe.total_cost),
        'sections': [
            {
                'id': section.id,
                'name': section.name,
                'order': section.order,
                'instructions': section.instructions or '',
                'ingredients': [
                    {
                        'ingredientId': line.ingredient_id,
                        'ingredientName': line.ingredient.name,
                        'quantity': decimal_str(line.quantity),
                        'unit': line.unit,
                        'preparation': line.preparation,
                    }
                    for line in section.ingredients
                ],
            }
            for section in recipe.sections
        ],
    }


# ============================================
# ARCHIVE
# ============================================

def generate_key(bakery_id, entity_type, entity_id, timestamp, version):
    sanitized = timestamp.replace(':', '-')
    return f'snapshots/{bakery_id}/{entity_type}/{entity_id}/{sanitized}-v{version}.json'


def parse_key(key):
    """Split an archive key into its parts, or None if it is not a snapshot key."""
    match = KEY_PATTERN.match(key)
    if not match:
        return None
    bakery_id, entity_type, entity_id, sanitized, version = match.groups()
    return {
        'bakery_id': bakery_id,
        'entity_type': entity_type,
        'entity_id': entity_id,
        'timestamp': TIMESTAMP_PATTERN.sub(r'\1-\2-\3T\4:\5:\6', sanitized, count=1),
        'version': int(version),
    }


def _prefix(bakery_id, entity_type, entity_id):
    return f'snapshots/{bakery_id}/{entity_type}/{entity_id}/'


class SnapshotArchive:
    """Append-only snapshot store on MinIO, or on local disk as a fallback."""

    def __init__(self, bucket, endpoint=None, access_key=None, secret_key=None,
                 secure=True, local_dir='snapshots'):
        self.bucket = bucket
        self.local_dir = Path(local_dir)
        self._client = None
        self._init_client(endpoint, access_key, secret_key, secure)

    @classmethod
    def from_config(cls, config):
        return cls(
            bucket=config['SNAPSHOT_BUCKET'],
            endpoint=config.get('SNAPSHOT_ENDPOINT'),
            access_key=config.get('SNAPSHOT_ACCESS_KEY'),
            secret_key=config.get('SNAPSHOT_SECRET_KEY'),
            secure=config.get('SNAPSHOT_SECURE', True),
            local_dir=config.get('SNAPSHOT_LOCAL_DIR') or 'snapshots',
        )

    def _init_client(self, endpoint, access_key, secret_key, secure):
        if not endpoint or not access_key or not secret_key:
            logger.warning("MinIO not configured, archiving snapshots under %s", self.local_dir)
            return
        try:
            client = Minio(endpoint, access_key=access_key, secret_key=secret_key, secure=secure)
            if not client.bucket_exists(self.bucket):
                client.make_bucket(self.bucket)
                logger.info("Created MinIO bucket: %s", self.bucket)
            self._client = client
        except Exception as e:
            logger.error("Failed to initialize MinIO, falling back to %s: %s", self.local_dir, e)
            self._client = None

    @property
    def is_remote(self):
        return self._client is not None

    def upload(self, bakery_id, entity_type, entity_id, entity_name, data,
               trigger, triggered_by=None, created_at=None):
        """Store one snapshot and return its key."""
        created_at = (created_at or utcnow()).isoformat()
        version = ENTITY_SCHEMA_VERSIONS[entity_type]
        key = generate_key(bakery_id, entity_type, entity_id, created_at, version)
        snapshot = {
            'metadata': {
                'id': uuid.uuid4().hex,
                'schemaVersion': version,
                'entityType': entity_type,
                'entityId': str(entity_id),
                'entityName': entity_name,
                'bakeryId': str(bakery_id),
                'createdAt': created_at,
                'trigger': trigger,
                'triggeredBy': triggered_by,
            },
            'data': data,
        }
        body = json.dumps(snapshot, indent=2).encode('utf-8')

        if self.is_remote:
            self._client.put_object(
                self.bucket, key, io.BytesIO(body), length=len(body),
                content_type='application/json',
            )
        else:
            path = self.local_dir / key
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(body)

        logger.info("Archived %s snapshot %s", entity_type, key)
        return key

    def get(self, key):
        """Stored snapshot for key, or None if it does not exist."""
        if self.is_remote:
            try:
                response = self._client.get_object(self.bucket, key)
            except S3Error:
                return None
            try:
                body = response.read()
            finally:
                response.close()
                response.release_conn()
        else:
            path = self.local_dir / key
            if not path.is_file():
                return None
            body = path.read_bytes()
        return json.loads(body)

    def list(self, bakery_id, entity_type, entity_id):
        """Snapshot keys for one entity with their parsed parts, newest first."""
        prefix = _prefix(bakery_id, entity_type, entity_id)
        if self.is_remote:
            keys = [obj.object_name for obj in
                    self._client.list_objects(self.bucket, prefix=prefix, recursive=True)]
        else:
            directory = self.local_dir / prefix
            keys = []
            if directory.is_dir():
                keys = [prefix + name for name in os.listdir(directory)]

        items = []
        for key in keys:
            parsed = parse_key(key)
            if parsed:
                parsed['key'] = key
                items.append(parsed)
        items.sort(key=lambda item: item['key'], reverse=True)
        return items

    def latest(self, bakery_id, entity_type, entity_id):
        items = self.list(bakery_id, entity_type, entity_id)
        if not items:
            return None
        return self.get(items[0]['key'])

    def compare(self, older_key, newer_key):
        """Field-level diff between two stored snapshots, or None if either is missing."""
        older = self.get(older_key)
        newer = self.get(newer_key)
        if older is None or newer is None:
            return None

        diff = {
            'older_key': older_key,
            'newer_key': newer_key,
            'time_delta': _time_delta(older['metadata']['createdAt'], newer['metadata']['createdAt']),
            'added': [],
            'removed': [],
            'modified': [],
        }
        diff_values(older['data'], newer['data'], '', diff)
        return diff


def diff_values(older, newer, path, diff):
    """Walk two JSON values and record added, removed and modified paths in diff."""
    if older is None:
        if newer is not None:
            diff['added'].append(path or 'root')
        return
    if newer is None:
        diff['removed'].append(path or 'root')
        return

    if isinstance(older, list) and isinstance(newer, list):
        for i in range(max(len(older), len(newer))):
            item_path = f'{path}[{i}]'
            if i >= len(older):
                diff['added'].append(item_path)
            elif i >= len(newer):
                diff['removed'].append(item_path)
            else:
                diff_values(older[i], newer[i], item_path, diff)
        return

    if isinstance(older, dict) and isinstance(newer, dict):
        for key in list(older) + [k for k in newer if k not in older]:
            key_path = f'{path}.{key}' if path else key
            if key not in older:
                diff['added'].append(key_path)
            elif key not in newer:
                diff['removed'].append(key_path)
            else:
                diff_values(older[key], newer[key], key_path, diff)
        return

    if older != newer:
        diff['modified'].append({'path': path or 'root', 'old_value': older, 'new_value': newer})


def _time_delta(older, newer):
    seconds = int((datetime.fromisoformat(newer) - datetime.fromisoformat(older)).total_seconds())
    for unit, size in (('day', 86400), ('hour', 3600), ('minute', 60)):
        if seconds >= size:
            count = seconds // size
            return f"{count} {unit}{'s' if count > 1 else ''}"
    return f"{seconds} second{'s' if seconds != 1 else ''}"


def init_snapshot_archive(app):
    app.extensions['snapshot_archive'] = SnapshotArchive.from_config(app.config)


def get_snapshot_archive():
    return current_app.extensions['snapshot_archive']
