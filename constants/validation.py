"""
Validation Constants

Whitelists and limits for validating input before it reaches the ledger.
"""

from decimal import Decimal

# Ledger transaction types
TRANSACTION_RECEIVE = 'RECEIVE'
TRANSACTION_USE = 'USE'
TRANSACTION_ADJUST = 'ADJUST'
TRANSACTION_WASTE = 'WASTE'

# Reasons accepted by a FIFO consumption
VALID_CONSUME_REASONS = {TRANSACTION_USE, TRANSACTION_WASTE}

# Valid unit conversion categories
VALID_UNIT_CATEGORIES = {'weight', 'volume', 'count'}

# Upper bound on the scale of a recipe on a production sheet
MAX_RECIPE_SCALE = Decimal('100')

# Maximum field lengths
MAX_LENGTHS = {
    'name': 200,
    'unit': 20,
    'category': 50,
    'description': 500,
    'notes': 2000,
    'instructions': 50000,
    'preparation': 200,
}

# Snapshot triggers
SNAPSHOT_TRIGGER_SAVE = 'SAVE'
SNAPSHOT_TRIGGER_PRODUCTION = 'PRODUCTION'
SNAPSHOT_TRIGGER_COMPLETE = 'COMPLETE'
