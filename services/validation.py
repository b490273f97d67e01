"""
Input Validation

Helpers that turn raw request values into clean Decimals and strings, or
raise ValidationError naming the offending field.
"""

from datetime import datetime, timezone

from constants import MAX_LENGTHS
from utils.numbers import to_decimal
from utils.sanitizer import sanitize_name, sanitize_unit
from .errors import ValidationError


def require_decimal(value, field, positive=False, non_negative=False, non_zero=False,
                    max_value=None, default=None):
    """Parse value as Decimal and enforce the requested bounds."""
    try:
        result = to_decimal(value, default=default)
    except ValueError:
        raise ValidationError(f'{field} must be a number')

    if positive and result <= 0:
        raise ValidationError(f'{field} must be positive')
    if non_negative and result < 0:
        raise ValidationError(f'{field} cannot be negative')
    if non_zero and result == 0:
        raise ValidationError(f'{field} cannot be zero')
    if max_value is not None and result > max_value:
        raise ValidationError(f'{field} cannot exceed {max_value}')
    return result


def optional_decimal(value, field, **bounds):
    if value is None or value == '':
        return None
    return require_decimal(value, field, **bounds)


def require_name(value, field='Name', max_length=None):
    name = sanitize_name(value, max_length=max_length or MAX_LENGTHS['name'])
    if not name:
        raise ValidationError(f'{field} is required')
    return name


def require_unit(value, field='Unit'):
    unit = sanitize_unit(value, max_length=MAX_LENGTHS['unit'])
    if not unit:
        raise ValidationError(f'{field} is required')
    return unit


def require_int(value, field):
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} is invalid')


def optional_datetime(value, field):
    """Accept a datetime or an ISO-8601 string; returns naive UTC-style datetime."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    try:
        parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        raise ValidationError(f'{field} must be an ISO date')
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def require_choice(value, field, choices):
    value = (value or '').strip().upper()
    if value not in choices:
        raise ValidationError(f'Invalid {field}: {value or "(blank)"}')
    return value
