"""
Services Package

Business logic modules for the bakery operations core.
"""

from .errors import (
    BakeryError,
    ValidationError,
    NotFound,
    ConversionUnavailable,
    Shortage,
    InsufficientStock,
    InvalidAdjustment,
    AlreadyCompleted,
    SheetLocked,
    LotInUse,
    InUse,
)

from .tenancy import Actor, get_scoped

from .units import (
    ConversionTable,
    normalize_unit,
    load_conversion_table,
    seed_unit_conversions,
)

from .cost import (
    cost_of,
    recipe_cost,
    refresh_recipe_cost,
)

from .ledger import (
    plan_fifo,
    receive,
    consume,
    adjust,
    remaining_value,
    delete_lot,
    check_availability,
)

from .aggregation import (
    scale_recipe,
    aggregate_across_recipes,
    total_cost,
)

from .production import (
    create_sheet,
    complete,
    sheet_view,
)

__all__ = [
    # Errors
    'BakeryError',
    'ValidationError',
    'NotFound',
    'ConversionUnavailable',
    'Shortage',
    'InsufficientStock',
    'InvalidAdjustment',
    'AlreadyCompleted',
    'SheetLocked',
    'LotInUse',
    'InUse',
    # Tenancy
    'Actor',
    'get_scoped',
    # Units
    'ConversionTable',
    'normalize_unit',
    'load_conversion_table',
    'seed_unit_conversions',
    # Cost
    'cost_of',
    'recipe_cost',
    'refresh_recipe_cost',
    # Ledger
    'plan_fifo',
    'receive',
    'consume',
    'adjust',
    'remaining_value',
    'delete_lot',
    'check_availability',
    # Aggregation
    'scale_recipe',
    'aggregate_across_recipes',
    'total_cost',
    # Production
    'create_sheet',
    'complete',
    'sheet_view',
]
