"""
Decimal Helpers

Parsing and display formatting for quantities. Arithmetic stays in
Decimal end to end; floats are never used for stored values.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP


def to_decimal(value, default=None):
    """
    Coerce a number or numeric string to Decimal.

    Floats go through str() so 0.1 becomes Decimal('0.1'), not its binary
    expansion. Returns default for None/''; raises ValueError for anything
    that is not a finite number.
    """
    if value is None or value == '':
        if default is None:
            raise ValueError('A number is required')
        return default
    if isinstance(value, bool):
        raise ValueError(f'Not a number: {value!r}')
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise ValueError(f'Not a number: {value!r}')
    if not result.is_finite():
        raise ValueError(f'Not a number: {value!r}')
    return result


def format_quantity(value, places=3):
    """Format a quantity for display, dropping trailing zeros: 1200.000 -> '1200'."""
    if value is None:
        return 'N/A'
    quantized = Decimal(value).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
    text = f'{quantized:f}'
    if '.' in text:
        text = text.rstrip('0').rstrip('.')
    return text


def decimal_str(value):
    """Serialize a Decimal for JSON without exponent notation; None stays None."""
    if value is None:
        return None
    text = f'{Decimal(value).normalize():f}'
    return '0' if text in ('-0', '') else text
