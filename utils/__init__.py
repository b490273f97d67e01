# Utility modules for the bakery app
from .numbers import to_decimal, format_quantity, decimal_str
from .sanitizer import sanitize_text, sanitize_name, sanitize_notes, sanitize_unit
