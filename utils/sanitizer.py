"""
Input Sanitization Module

Cleans free-text input (names, notes, instructions) before it is stored.
"""

import html
import re


def sanitize_text(text, max_length=10000):
    """
    Sanitize text by HTML-escaping special characters.

    This prevents XSS by ensuring that any HTML/JS in the text
    is displayed as literal text rather than being executed.

    Args:
        text: The text to sanitize (can be None)
        max_length: Maximum allowed length (default 10000)

    Returns:
        Sanitized string, truncated if necessary
    """
    if text is None:
        return ''

    if not isinstance(text, str):
        text = str(text)

    text = text.strip()
    text = html.escape(text)

    if len(text) > max_length:
        text = text[:max_length]

    return text


def sanitize_name(name, max_length=200):
    """Sanitize a display name (ingredient, recipe, vendor): single line, collapsed spaces."""
    if not name:
        return ''
    name = re.sub(r'[\r\n\t]+', ' ', str(name))
    name = re.sub(r'\s{2,}', ' ', name)
    return sanitize_text(name, max_length=max_length)


def sanitize_notes(notes, max_length=2000):
    """Sanitize optional notes; blank input becomes None so the column stays NULL."""
    if notes is None:
        return None
    cleaned = sanitize_text(notes, max_length=max_length)
    return cleaned or None


def sanitize_unit(unit, max_length=20):
    """Units are short codes: strip control characters and surrounding space."""
    if not unit:
        return ''
    unit = re.sub(r'[\x00-\x1f<>"\']+', '', str(unit)).strip()
    return unit[:max_length]
