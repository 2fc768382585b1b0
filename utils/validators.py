"""
Input validation helper functions.
Provides validation for common input types.
"""

import re
from datetime import datetime


def validate_phone(phone: str) -> bool:
    """
    Validate a guest phone number.
    Accepts any format with 7 to 15 digits (E.164 length), e.g. +375 29 123-45-67.

    Args:
        phone: Phone number to validate

    Returns:
        True if valid phone format
    """
    if not phone or not isinstance(phone, str):
        return False

    if not re.match(r'^\+?[\d\s\-\(\)]+$', phone.strip()):
        return False

    digits = re.sub(r'\D', '', phone)
    return 7 <= len(digits) <= 15


def normalize_phone(phone: str) -> str:
    """
    Normalize phone to '+<digits>' so the same guest always maps to one key.

    Args:
        phone: Phone number (already validated)

    Returns:
        Normalized phone string
    """
    return '+' + re.sub(r'\D', '', phone)


def validate_date_format(date_str: str) -> bool:
    """
    Validate date is in YYYY-MM-DD format.

    Args:
        date_str: Date string to validate

    Returns:
        True if valid format
    """
    if not isinstance(date_str, str):
        return False
    try:
        datetime.strptime(date_str, '%Y-%m-%d')
        return True
    except ValueError:
        return False


def validate_time_format(time_str: str) -> bool:
    """
    Validate time is zero-padded 24-hour HH:MM.

    Args:
        time_str: Time string to validate

    Returns:
        True if valid format
    """
    if not isinstance(time_str, str):
        return False
    return bool(re.match(r'^([01]\d|2[0-3]):[0-5]\d$', time_str))


def sanitize_input(text: str, max_length: int = None) -> str:
    """
    Sanitize text input by trimming and limiting length.

    Args:
        text: Text to sanitize
        max_length: Maximum length (optional)

    Returns:
        Sanitized text
    """
    if not text:
        return ''

    # Strip whitespace
    sanitized = str(text).strip()

    # Limit length if specified
    if max_length and len(sanitized) > max_length:
        sanitized = sanitized[:max_length]

    return sanitized
