"""Shared utilities used across the callback queue."""

import re

MIN_PHONE_DIGITS = 7


def normalize_phone(value: str) -> str:
    """Normalize a phone number by stripping everything except digits and a leading +.

    Examples:
        >>> normalize_phone("+1 (555) 123-4567")
        '+15551234567'
        >>> normalize_phone("0412 345 678")
        '0412345678'
    """
    value = value.strip()
    if value.startswith("+"):
        return "+" + re.sub(r"[^\d]", "", value[1:])
    return re.sub(r"[^\d]", "", value)


def is_dialable_phone(value: str) -> bool:
    """Return True if the number has enough digits to place a callback."""
    return len(normalize_phone(value).lstrip("+")) >= MIN_PHONE_DIGITS
