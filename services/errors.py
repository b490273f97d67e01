"""
Service Errors

Typed failures raised by the core services. The web tier turns each into a
structured JSON error carrying the specific reason, so an operator sees
"need 5 kg flour, have 2 kg" rather than a generic failure.
"""

from utils.numbers import format_quantity


class BakeryError(Exception):
    """Base class for every failure the services report to callers."""
    status_code = 400

    def __init__(self, message):
        self.message = message
        super().__init__(message)

    def to_dict(self):
        return {'success': False, 'error': self.message, 'code': type(self).__name__}


class ValidationError(BakeryError):
    """Malformed input (bad number, unknown enum value, field too long)."""
    status_code = 400


class NotFound(BakeryError):
    """
    Entity missing, or owned by another bakery.

    Cross-tenant lookups raise this too so callers cannot check for
    existence.
    """
    status_code = 404

    def __init__(self, entity, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f'{entity} not found')


class ConversionUnavailable(BakeryError):
    """No stored factor between two distinct units."""
    status_code = 422

    def __init__(self, from_unit, to_unit, ingredient_name=None):
        self.from_unit = from_unit
        self.to_unit = to_unit
        self.ingredient_name = ingredient_name
        message = f"No conversion available from '{from_unit}' to '{to_unit}'"
        if ingredient_name:
            message += f" for {ingredient_name}"
        super().__init__(message)

    def to_dict(self):
        data = super().to_dict()
        data.update(from_unit=self.from_unit, to_unit=self.to_unit,
                    ingredient=self.ingredient_name)
        return data


class Shortage:
    """One ingredient that cannot be covered by the remaining lots."""

    def __init__(self, ingredient_id, ingredient_name, required, available, unit):
        self.ingredient_id = ingredient_id
        self.ingredient_name = ingredient_name
        self.required = required
        self.available = available
        self.unit = unit

    @property
    def shortfall(self):
        return self.required - self.available

    def describe(self):
        return (f'need {format_quantity(self.required)} {self.unit} {self.ingredient_name}, '
                f'have {format_quantity(self.available)} {self.unit}')

    def to_dict(self):
        return {
            'ingredient_id': self.ingredient_id,
            'ingredient_name': self.ingredient_name,
            'required': str(self.required),
            'available': str(self.available),
            'shortfall': str(self.shortfall),
            'unit': self.unit,
        }


class InsufficientStock(BakeryError):
    """Requested consumption exceeds what the lots hold. Nothing was deducted."""
    status_code = 409

    def __init__(self, shortages):
        self.shortages = list(shortages)
        super().__init__('Insufficient stock: ' + '; '.join(s.describe() for s in self.shortages))

    def to_dict(self):
        data = super().to_dict()
        data['shortages'] = [s.to_dict() for s in self.shortages]
        return data


class InvalidAdjustment(BakeryError):
    """Zero delta, or a delta that would leave a lot outside [0, purchase_qty]."""
    status_code = 422


class AlreadyCompleted(BakeryError):
    """Completion attempted on a sheet that is already COMPLETED."""
    status_code = 409

    def __init__(self, sheet_id):
        self.sheet_id = sheet_id
        super().__init__('Production sheet is already completed')


class SheetLocked(BakeryError):
    """Edit or delete attempted on a completed sheet."""
    status_code = 409


class LotInUse(BakeryError):
    """Lot has usage history and must be kept for the audit trail."""
    status_code = 409

    def __init__(self, lot_id, usage_count):
        self.lot_id = lot_id
        self.usage_count = usage_count
        super().__init__(
            f'Cannot delete lot with {usage_count} usage record(s). '
            'Lot has been partially or fully used.'
        )


class InUse(BakeryError):
    """Entity is still referenced and cannot be removed or changed."""
    status_code = 409
