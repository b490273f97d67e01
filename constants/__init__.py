"""
Constants Package

Reference data and whitelists shared across the application.
"""

from .units import (
    UNIT_ALIASES,
    WEIGHT_TO_G,
    VOLUME_TO_ML,
    COUNT_TO_EACH,
    UNIT_CATEGORIES,
)

from .validation import (
    TRANSACTION_RECEIVE,
    TRANSACTION_USE,
    TRANSACTION_ADJUST,
    TRANSACTION_WASTE,
    VALID_CONSUME_REASONS,
    VALID_UNIT_CATEGORIES,
    MAX_RECIPE_SCALE,
    MAX_LENGTHS,
    SNAPSHOT_TRIGGER_SAVE,
    SNAPSHOT_TRIGGER_PRODUCTION,
    SNAPSHOT_TRIGGER_COMPLETE,
)
