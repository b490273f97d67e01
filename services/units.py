"""
Unit Conversion Service

Directed conversion factors between unit codes, grouped by category
(weight, volume, count).

A conversion exists only if the exact (from_unit, to_unit) pair is stored.
The inverse pair is never derived and conversions are never chained, because
real pairs (volume to weight for a given ingredient, say) are not always
symmetric or even definable. Same-unit conversion is always factor 1.
"""

import logging
from decimal import Decimal
from itertools import permutations

from sqlalchemy.exc import IntegrityError

from constants import UNIT_ALIASES, UNIT_CATEGORIES, VALID_UNIT_CATEGORIES
from models import db, atomic, UnitConversion
from .errors import ConversionUnavailable, NotFound, ValidationError
from .validation import require_decimal, require_unit

logger = logging.getLogger(__name__)

ONE = Decimal('1')
FACTOR_PLACES = Decimal('1e-12')


def normalize_unit(unit):
    """Canonical unit code: trimmed, lowercased, aliases resolved ('Grams' -> 'g')."""
    if unit is None:
        return ''
    key = ' '.join(str(unit).strip().lower().split())
    return UNIT_ALIASES.get(key, key)


class ConversionTable:
    """
    In-memory copy of the conversion table for one computation.

    Read-only once built, so lookups need no locking.
    """

    def __init__(self):
        self._factors = {}

    @classmethod
    def from_rows(cls, rows):
        table = cls()
        for row in rows:
            table.add(row.from_unit, row.to_unit, row.factor, row.category)
        return table

    def add(self, from_unit, to_unit, factor, category=None):
        self._factors[(normalize_unit(from_unit), normalize_unit(to_unit))] = (Decimal(factor), category)

    def resolve_factor(self, from_unit, to_unit):
        """Factor for the exact directed pair, 1 for the same unit, None if not stored."""
        from_unit = normalize_unit(from_unit)
        to_unit = normalize_unit(to_unit)
        if from_unit == to_unit:
            return ONE
        entry = self._factors.get((from_unit, to_unit))
        if entry is None:
            return None
        return entry[0]

    def convert(self, quantity, from_unit, to_unit):
        """quantity * factor, or None when no conversion is stored."""
        factor = self.resolve_factor(from_unit, to_unit)
        if factor is None:
            return None
        return Decimal(quantity) * factor

    def require_factor(self, from_unit, to_unit, ingredient_name=None):
        factor = self.resolve_factor(from_unit, to_unit)
        if factor is None:
            logger.warning("No conversion found from %s to %s%s", from_unit, to_unit,
                           f" for {ingredient_name}" if ingredient_name else '')
            raise ConversionUnavailable(from_unit, to_unit, ingredient_name)
        return factor

    def require(self, quantity, from_unit, to_unit, ingredient_name=None):
        """Like convert() but raises ConversionUnavailable instead of returning None."""
        return Decimal(quantity) * self.require_factor(from_unit, to_unit, ingredient_name)

    def can_convert(self, from_unit, to_unit):
        return self.resolve_factor(from_unit, to_unit) is not None

    def category_of(self, unit):
        unit = normalize_unit(unit)
        for (from_unit, _), (_, category) in self._factors.items():
            if from_unit == unit and category:
                return category
        return None

    def available_conversions(self, unit):
        """Every stored conversion out of unit as (to_unit, factor, category), sorted by to_unit."""
        unit = normalize_unit(unit)
        return sorted(
            (to_unit, factor, category)
            for (from_unit, to_unit), (factor, category) in self._factors.items()
            if from_unit == unit
        )

    def __len__(self):
        return len(self._factors)

    def __contains__(self, pair):
        from_unit, to_unit = pair
        return (normalize_unit(from_unit), normalize_unit(to_unit)) in self._factors


def load_conversion_table():
    """Build a ConversionTable from the unit_conversion rows."""
    return ConversionTable.from_rows(UnitConversion.query.all())


def reference_conversions():
    """
    Directed pairs for the reference units, both directions stored explicitly.

    Returns list of (from_unit, to_unit, factor, category).
    """
    pairs = []
    for category, to_base in UNIT_CATEGORIES.items():
        for from_unit, to_unit in permutations(to_base, 2):
            factor = (to_base[from_unit] / to_base[to_unit]).quantize(FACTOR_PLACES)
            pairs.append((from_unit, to_unit, factor, category))
    return pairs


def seed_unit_conversions():
    """Install the reference conversions, leaving pairs that already exist untouched."""
    existing = {(c.from_unit, c.to_unit) for c in UnitConversion.query.all()}
    added = 0
    with atomic():
        for from_unit, to_unit, factor, category in reference_conversions():
            if (from_unit, to_unit) in existing:
                continue
            db.session.add(UnitConversion(
                from_unit=from_unit, to_unit=to_unit, factor=factor, category=category
            ))
            added += 1
    if added:
        logger.info("Seeded %d unit conversions", added)
    return added


# ============================================
# ADMIN MAINTENANCE
# ============================================

def list_conversions():
    return UnitConversion.query.order_by(
        UnitConversion.category, UnitConversion.from_unit, UnitConversion.to_unit
    ).all()


def _require_category(category):
    category = (category or '').strip().lower()
    if category not in VALID_UNIT_CATEGORIES:
        raise ValidationError(f'Invalid category: {category or "(blank)"}')
    return category


def create_conversion(from_unit, to_unit, factor, category):
    from_unit = normalize_unit(require_unit(from_unit, 'From unit'))
    to_unit = normalize_unit(require_unit(to_unit, 'To unit'))
    if from_unit == to_unit:
        raise ValidationError('From and to units must differ')
    factor = require_decimal(factor, 'Conversion factor', positive=True)
    category = _require_category(category)

    if UnitConversion.query.filter_by(from_unit=from_unit, to_unit=to_unit).first():
        raise ValidationError(f'Conversion from {from_unit} to {to_unit} already exists')

    conversion = UnitConversion(from_unit=from_unit, to_unit=to_unit, factor=factor, category=category)
    try:
        with atomic():
            db.session.add(conversion)
    except IntegrityError:
        raise ValidationError(f'Conversion from {from_unit} to {to_unit} already exists')
    logger.info("Created unit conversion %s -> %s (%s)", from_unit, to_unit, factor)
    return conversion


def update_conversion(conversion_id, factor=None, category=None):
    conversion = db.session.get(UnitConversion, conversion_id)
    if conversion is None:
        raise NotFound('Unit conversion', conversion_id)
    with atomic():
        if factor is not None:
            conversion.factor = require_decimal(factor, 'Conversion factor', positive=True)
        if category is not None:
            conversion.category = _require_category(category)
    return conversion


def delete_conversion(conversion_id):
    conversion = db.session.get(UnitConversion, conversion_id)
    if conversion is None:
        raise NotFound('Unit conversion', conversion_id)
    with atomic():
        db.session.delete(conversion)
    logger.info("Deleted unit conversion %s -> %s", conversion.from_unit, conversion.to_unit)
