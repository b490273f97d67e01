"""
Bakery Operations API

Flask application factory and the JSON endpoints over the core services.
Identity comes from the trusted upstream headers X-User-Id, X-Bakery-Id and
X-Platform-Admin; every query is scoped to the caller's bakery.
"""

import json
import logging
import sqlite3
import sys

from flask import Blueprint, Flask, current_app, g, jsonify, request
from flask_migrate import Migrate
from sqlalchemy import event
from sqlalchemy.engine import Engine

from config import get_config
from models import db
from services import errors, ingredients, ledger, production, recipes, units
from services.errors import BakeryError
from services.snapshots import ENTITY_SCHEMA_VERSIONS, get_snapshot_archive, init_snapshot_archive
from services.tenancy import Actor
from services.validation import require_decimal
from utils.numbers import decimal_str

logger = logging.getLogger(__name__)

migrate = Migrate()
api = Blueprint('api', __name__, url_prefix='/api')


# ============================================
# APPLICATION FACTORY
# ============================================

class JSONFormatter(logging.Formatter):
    def format(self, record):
        return json.dumps({
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        })


def configure_logging(app):
    """JSON lines in production, human-readable otherwise. Left alone under test."""
    if app.testing:
        return
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, app.config['LOG_LEVEL'].upper(), logging.INFO))
    root_logger.handlers.clear()

    if app.config['LOG_FORMAT'] == 'json':
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    root_logger.addHandler(handler)


def _set_sqlite_pragma(dbapi_connection, connection_record):
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_app(config_object=None):
    app = Flask(__name__)
    app.config.from_object(config_object or get_config())

    configure_logging(app)

    # Enable SQLite foreign key enforcement
    if not event.contains(Engine, 'connect', _set_sqlite_pragma):
        event.listen(Engine, 'connect', _set_sqlite_pragma)

    db.init_app(app)
    migrate.init_app(app, db)
    init_snapshot_archive(app)

    app.register_blueprint(api)

    @app.cli.command('init-db')
    def init_db_command():
        """Create tables and install the reference unit conversions."""
        added = init_db(app)
        print(f"Database ready ({added} unit conversions added)")

    return app


def init_db(app):
    with app.app_context():
        db.create_all()
        return units.seed_unit_conversions()


# ============================================
# REQUEST HELPERS
# ============================================

@api.before_request
def load_actor():
    user_id = request.headers.get('X-User-Id', '').strip()
    bakery_id = request.headers.get('X-Bakery-Id', '').strip()
    if not user_id or not bakery_id.isdigit():
        return jsonify({'success': False, 'error': 'Unauthorized: You must be logged in',
                        'code': 'Unauthorized'}), 401
    g.actor = Actor(
        user_id=user_id,
        bakery_id=int(bakery_id),
        is_platform_admin=request.headers.get('X-Platform-Admin', '').lower() in ('1', 'true', 'yes'),
    )


@api.errorhandler(BakeryError)
def handle_bakery_error(error):
    return jsonify(error.to_dict()), error.status_code


def require_platform_admin():
    if not g.actor.is_platform_admin:
        return jsonify({'success': False, 'error': 'Platform admin access required',
                        'code': 'Forbidden'}), 403
    return None


def payload():
    return request.get_json(silent=True) or {}


def max_scale():
    return current_app.config['MAX_RECIPE_SCALE']


def _iso(value):
    return value.isoformat() if value else None


# ============================================
# SERIALIZERS
# ============================================

def conversion_to_dict(conversion):
    return {
        'id': conversion.id,
        'from_unit': conversion.from_unit,
        'to_unit': conversion.to_unit,
        'factor': decimal_str(conversion.factor),
        'category': conversion.category,
    }


def ingredient_to_dict(ingredient):
    return {
        'id': ingredient.id,
        'name': ingredient.name,
        'unit': ingredient.unit,
        'cost_per_unit': decimal_str(ingredient.cost_per_unit),
        'current_qty': decimal_str(ingredient.current_qty),
        'low_stock_threshold': decimal_str(ingredient.low_stock_threshold),
        'is_low_stock': ingredient.is_low_stock,
    }


def vendor_to_dict(vendor):
    return {'id': vendor.id, 'name': vendor.name, 'email': vendor.email,
            'phone': vendor.phone, 'notes': vendor.notes}


def lot_to_dict(lot):
    return {
        'id': lot.id,
        'ingredient_id': lot.ingredient_id,
        'purchase_qty': decimal_str(lot.purchase_qty),
        'purchase_unit': lot.purchase_unit,
        'remaining_qty': decimal_str(lot.remaining_qty),
        'cost_per_unit': decimal_str(lot.cost_per_unit),
        'purchased_at': _iso(lot.purchased_at),
        'expires_at': _iso(lot.expires_at),
        'vendor': vendor_to_dict(lot.vendor) if lot.vendor else None,
        'notes': lot.notes,
    }


def transaction_to_dict(transaction):
    return {
        'id': transaction.id,
        'ingredient_id': transaction.ingredient_id,
        'ingredient_name': transaction.ingredient.name,
        'lot_id': transaction.lot_id,
        'type': transaction.type,
        'quantity': decimal_str(transaction.quantity),
        'unit': transaction.unit,
        'production_sheet_id': transaction.production_sheet_id,
        'notes': transaction.notes,
        'created_by': transaction.created_by,
        'created_at': _iso(transaction.created_at),
        'usages': [
            {'lot_id': usage.lot_id, 'quantity': decimal_str(usage.quantity)}
            for usage in transaction.usages
        ],
    }


def summary_to_dict(summary):
    return {
        'ingredient': ingredient_to_dict(summary.ingredient),
        'unit': summary.unit,
        'current_qty': decimal_str(summary.current_qty),
        'total_value': decimal_str(summary.total_value),
        'weighted_average_cost': decimal_str(summary.weighted_average_cost),
        'active_lots': [lot_to_dict(lot) for lot in summary.active_lots],
        'depleted_lots': [lot_to_dict(lot) for lot in summary.depleted_lots],
    }


def recipe_to_dict(recipe, detail=False):
    data = {
        'id': recipe.id,
        'name': recipe.name,
        'description': recipe.description,
        'yield_qty': decimal_str(recipe.yield_qty),
        'yield_unit': recipe.yield_unit,
        'total_cost': decimal_str(recipe.total_cost),
    }
    if detail:
        data['sections'] = [
            {
                'id': section.id,
                'name': section.name,
                'order': section.order,
                'instructions': section.instructions,
                'ingredients': [
                    {
                        'id': line.id,
                        'ingredient_id': line.ingredient_id,
                        'ingredient_name': line.ingredient.name,
                        'quantity': decimal_str(line.quantity),
                        'unit': line.unit,
                        'preparation': line.preparation,
                    }
                    for line in section.ingredients
                ],
            }
            for section in recipe.sections
        ]
    return data


def scaled_recipe_to_dict(scaled):
    return {
        'recipe_id': scaled.recipe_id,
        'recipe_name': scaled.recipe_name,
        'scale': decimal_str(scaled.scale),
        'yield_qty': decimal_str(scaled.yield_qty),
        'yield_unit': scaled.yield_unit,
        'scaled_yield_qty': decimal_str(scaled.scaled_yield_qty),
        'estimated_cost': decimal_str(scaled.estimated_cost),
        'lines': [
            {
                'section_name': line.section_name,
                'ingredient_id': line.ingredient_id,
                'ingredient_name': line.ingredient_name,
                'original_quantity': decimal_str(line.original_quantity),
                'scaled_quantity': decimal_str(line.scaled_quantity),
                'unit': line.unit,
                'cost': decimal_str(line.cost),
            }
            for line in scaled.lines
        ],
        'unconvertible_lines': [line.ingredient_name for line in scaled.unconvertible_lines],
    }


def sheet_to_dict(sheet):
    return {
        'id': sheet.id,
        'description': sheet.description,
        'scheduled_for': _iso(sheet.scheduled_for),
        'notes': sheet.notes,
        'status': sheet.status,
        'completed': sheet.completed,
        'completed_at': _iso(sheet.completed_at),
        'completed_by': sheet.completed_by,
        'created_by': sheet.created_by,
        'created_at': _iso(sheet.created_at),
        'recipes': [
            {
                'id': entry.id,
                'recipe_id': entry.recipe_id,
                'recipe_name': entry.recipe.name,
                'scale': decimal_str(entry.scale),
                'order': entry.order,
            }
            for entry in sheet.recipes
        ],
    }


# ============================================
# UNIT CONVERSIONS
# ============================================

@api.route('/unit-conversions', methods=['GET'])
def unit_conversions_list():
    return jsonify({'success': True, 'conversions': [
        conversion_to_dict(c) for c in units.list_conversions()
    ]})


@api.route('/unit-conversions', methods=['POST'])
def unit_conversion_create():
    denied = require_platform_admin()
    if denied:
        return denied
    data = payload()
    conversion = units.create_conversion(
        data.get('from_unit'), data.get('to_unit'), data.get('factor'), data.get('category')
    )
    return jsonify({'success': True, 'conversion': conversion_to_dict(conversion)}), 201


@api.route('/unit-conversions/<int:conversion_id>', methods=['PATCH'])
def unit_conversion_update(conversion_id):
    denied = require_platform_admin()
    if denied:
        return denied
    data = payload()
    conversion = units.update_conversion(conversion_id, factor=data.get('factor'),
                                         category=data.get('category'))
    return jsonify({'success': True, 'conversion': conversion_to_dict(conversion)})


@api.route('/unit-conversions/<int:conversion_id>', methods=['DELETE'])
def unit_conversion_delete(conversion_id):
    denied = require_platform_admin()
    if denied:
        return denied
    units.delete_conversion(conversion_id)
    return jsonify({'success': True})


@api.route('/unit-conversions/convert', methods=['POST'])
def unit_conversion_convert():
    data = payload()
    quantity = require_decimal(data.get('quantity'), 'Quantity')
    from_unit = units.normalize_unit(data.get('from_unit'))
    to_unit = units.normalize_unit(data.get('to_unit'))
    result = units.load_conversion_table().require(quantity, from_unit, to_unit)
    return jsonify({'success': True, 'quantity': decimal_str(result), 'unit': to_unit})


# ============================================
# INGREDIENTS
# ============================================

@api.route('/ingredients', methods=['GET'])
def ingredients_list():
    found = ingredients.list_ingredients(g.actor.bakery_id, search=request.args.get('q'))
    return jsonify({'success': True, 'ingredients': [ingredient_to_dict(i) for i in found]})


@api.route('/ingredients', methods=['POST'])
def ingredient_create():
    data = payload()
    ingredient = ingredients.create_ingredient(
        g.actor.bakery_id, data.get('name'), data.get('unit'),
        cost_per_unit=data.get('cost_per_unit', 0),
        low_stock_threshold=data.get('low_stock_threshold'),
    )
    return jsonify({'success': True, 'ingredient': ingredient_to_dict(ingredient)}), 201


@api.route('/ingredients/<int:ingredient_id>', methods=['GET'])
def ingredient_detail(ingredient_id):
    ingredient = ingredients.get_ingredient(g.actor.bakery_id, ingredient_id)
    return jsonify({'success': True, 'ingredient': ingredient_to_dict(ingredient)})


@api.route('/ingredients/<int:ingredient_id>', methods=['PATCH'])
def ingredient_update(ingredient_id):
    ingredient = ingredients.update_ingredient(g.actor.bakery_id, ingredient_id, payload())
    return jsonify({'success': True, 'ingredient': ingredient_to_dict(ingredient)})


@api.route('/ingredients/<int:ingredient_id>', methods=['DELETE'])
def ingredient_delete(ingredient_id):
    ingredients.delete_ingredient(g.actor.bakery_id, ingredient_id)
    return jsonify({'success': True})


@api.route('/ingredients/<int:ingredient_id>/inventory', methods=['GET'])
def ingredient_inventory(ingredient_id):
    summary = ledger.inventory_summary(g.actor.bakery_id, ingredient_id)
    return jsonify({'success': True, 'inventory': summary_to_dict(summary)})


# ============================================
# INVENTORY
# ============================================

@api.route('/inventory/lots', methods=['POST'])
def lot_create():
    data = payload()
    lot = ledger.receive(
        g.actor.bakery_id, data.get('ingredient_id'), data.get('quantity'), data.get('unit'),
        data.get('cost_per_unit'),
        vendor_id=data.get('vendor_id'),
        expires_at=data.get('expires_at'),
        purchased_at=data.get('purchased_at'),
        notes=data.get('notes'),
        actor=g.actor,
    )
    return jsonify({'success': True, 'lot': lot_to_dict(lot)}), 201


@api.route('/inventory/lots/<int:lot_id>', methods=['PATCH'])
def lot_update(lot_id):
    data = payload()
    changes = {key: data[key] for key in ('expires_at', 'vendor_id', 'notes') if key in data}
    lot = ledger.update_lot(g.actor.bakery_id, lot_id, changes)
    return jsonify({'success': True, 'lot': lot_to_dict(lot)})


@api.route('/inventory/lots/<int:lot_id>', methods=['DELETE'])
def lot_delete(lot_id):
    ledger.delete_lot(g.actor.bakery_id, lot_id, actor=g.actor)
    return jsonify({'success': True})


@api.route('/inventory/lots/<int:lot_id>/adjust', methods=['POST'])
def lot_adjust(lot_id):
    data = payload()
    lot = ledger.adjust(g.actor.bakery_id, lot_id, data.get('quantity'),
                        notes=data.get('notes'), actor=g.actor)
    return jsonify({'success': True, 'lot': lot_to_dict(lot)})


@api.route('/inventory/use', methods=['POST'])
def inventory_use():
    data = payload()
    transaction = ledger.consume(
        g.actor.bakery_id, data.get('ingredient_id'), data.get('quantity'), data.get('unit'),
        reason=data.get('reason') or 'USE',
        notes=data.get('notes'),
        actor=g.actor,
    )
    return jsonify({'success': True, 'transaction': transaction_to_dict(transaction)}), 201


@api.route('/inventory/transactions', methods=['GET'])
def inventory_transactions():
    limit = min(request.args.get('limit', 50, type=int), 500)
    found = ledger.list_transactions(g.actor.bakery_id, request.args.get('ingredient_id'), limit=limit)
    return jsonify({'success': True, 'transactions': [transaction_to_dict(t) for t in found]})


@api.route('/inventory/alerts', methods=['GET'])
def inventory_alerts():
    bakery_id = g.actor.bakery_id
    days = request.args.get('days', current_app.config['EXPIRY_WARNING_DAYS'], type=int)
    return jsonify({
        'success': True,
        'expiring': [lot_to_dict(lot) for lot in ledger.expiring_lots(bakery_id, within_days=days)],
        'expired': [lot_to_dict(lot) for lot in ledger.expired_lots(bakery_id)],
        'low_stock': [ingredient_to_dict(i) for i in ledger.low_stock_ingredients(bakery_id)],
    })


# ============================================
# RECIPES
# ============================================

@api.route('/recipes', methods=['GET'])
def recipes_list():
    found = recipes.list_recipes(g.actor.bakery_id, search=request.args.get('q'))
    return jsonify({'success': True, 'recipes': [recipe_to_dict(r) for r in found]})


@api.route('/recipes', methods=['POST'])
def recipe_create():
    recipe = recipes.create_recipe(g.actor, payload())
    return jsonify({'success': True, 'recipe': recipe_to_dict(recipe, detail=True)}), 201


@api.route('/recipes/<int:recipe_id>', methods=['GET'])
def recipe_detail(recipe_id):
    recipe = recipes.get_recipe(g.actor.bakery_id, recipe_id)
    return jsonify({'success': True, 'recipe': recipe_to_dict(recipe, detail=True)})


@api.route('/recipes/<int:recipe_id>', methods=['PUT'])
def recipe_update(recipe_id):
    recipe = recipes.update_recipe(g.actor, recipe_id, payload())
    return jsonify({'success': True, 'recipe': recipe_to_dict(recipe, detail=True)})


@api.route('/recipes/<int:recipe_id>', methods=['DELETE'])
def recipe_delete(recipe_id):
    recipes.delete_recipe(g.actor.bakery_id, recipe_id)
    return jsonify({'success': True})


@api.route('/recipes/<int:recipe_id>/scale', methods=['GET'])
def recipe_scale(recipe_id):
    scaled = recipes.scaled_recipe(g.actor.bakery_id, recipe_id, request.args.get('factor'),
                                   max_scale=max_scale())
    return jsonify({'success': True, 'scaled': scaled_recipe_to_dict(scaled)})


# ============================================
# PRODUCTION SHEETS
# ============================================

@api.route('/production-sheets', methods=['GET'])
def production_sheets_list():
    status = (request.args.get('status') or '').upper()
    completed = {'COMPLETED': True, 'PENDING': False}.get(status)
    found = production.list_sheets(g.actor.bakery_id, completed=completed)
    return jsonify({'success': True, 'sheets': [sheet_to_dict(s) for s in found]})


@api.route('/production-sheets', methods=['POST'])
def production_sheet_create():
    data = payload()
    sheet = production.create_sheet(
        g.actor, data.get('recipes') or [],
        description=data.get('description'),
        scheduled_for=data.get('scheduled_for'),
        notes=data.get('notes'),
        max_scale=max_scale(),
    )
    return jsonify({'success': True, 'sheet': sheet_to_dict(sheet)}), 201


@api.route('/production-sheets/<int:sheet_id>', methods=['GET'])
def production_sheet_detail(sheet_id):
    view = production.sheet_view(g.actor.bakery_id, sheet_id)
    sheet = production.get_sheet(g.actor.bakery_id, sheet_id)
    return jsonify({'success': True, 'sheet': sheet_to_dict(sheet), **view})


@api.route('/production-sheets/<int:sheet_id>', methods=['PATCH'])
def production_sheet_update(sheet_id):
    sheet = production.update_sheet(g.actor.bakery_id, sheet_id, payload(), max_scale=max_scale())
    return jsonify({'success': True, 'sheet': sheet_to_dict(sheet)})


@api.route('/production-sheets/<int:sheet_id>', methods=['DELETE'])
def production_sheet_delete(sheet_id):
    production.delete_sheet(g.actor.bakery_id, sheet_id)
    return jsonify({'success': True})


@api.route('/production-sheets/<int:sheet_id>/complete', methods=['POST'])
def production_sheet_complete(sheet_id):
    sheet = production.complete(g.actor.bakery_id, sheet_id, g.actor)
    return jsonify({'success': True, 'sheet': sheet_to_dict(sheet), 'snapshot': sheet.snapshot_data})


# ============================================
# SNAPSHOTS
# ============================================

@api.route('/snapshots/<entity_type>/<int:entity_id>', methods=['GET'])
def snapshots_list(entity_type, entity_id):
    if entity_type not in ENTITY_SCHEMA_VERSIONS:
        raise errors.NotFound('Snapshot type', entity_type)
    items = get_snapshot_archive().list(g.actor.bakery_id, entity_type, entity_id)
    return jsonify({'success': True, 'snapshots': items})


# ============================================
# VENDORS
# ============================================

@api.route('/vendors', methods=['GET'])
def vendors_list():
    return jsonify({'success': True, 'vendors': [
        vendor_to_dict(v) for v in ingredients.list_vendors(g.actor.bakery_id)
    ]})


@api.route('/vendors', methods=['POST'])
def vendor_create():
    data = payload()
    vendor = ingredients.create_vendor(
        g.actor.bakery_id, data.get('name'),
        email=data.get('email'), phone=data.get('phone'), notes=data.get('notes'),
    )
    return jsonify({'success': True, 'vendor': vendor_to_dict(vendor)}), 201


if __name__ == '__main__':
    app = create_app()
    init_db(app)
    # host='0.0.0.0' allows access from other devices on the network
    app.run(debug=app.config.get('DEBUG', False), host='0.0.0.0', port=5000, use_reloader=False)
