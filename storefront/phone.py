"""Phone number helpers.

Customers are identified by phone, and phones arrive in whatever format the
user typed. Two phones belong to the same customer exactly when their digit
sequences are equal. Country-code variants are not unified: "8701..." and
"7701..." are different customers as far as this module is concerned.
"""

from __future__ import annotations

import re

DISPLAY_PHONE_RE = re.compile(r"^\+7 \(\d{3}\) \d{3}-\d{2}-\d{2}$")
LOOSE_PHONE_RE = re.compile(r"^\+?[0-9\s\-()]+$")
_NON_DIGITS_RE = re.compile(r"\D")


def normalize_phone(value: str | None) -> str:
    """
    Reduce a free-form phone string to its digits.

    Example:
        normalize_phone("+7 (777) 123-45-67") -> "77771234567"
    """
    if not value:
        return ""
    return _NON_DIGITS_RE.sub("", str(value))


def phones_match(first: str | None, second: str | None) -> bool:
    """True if both phones normalize to the same non-empty digit sequence."""
    first_digits = normalize_phone(first)
    return bool(first_digits) and first_digits == normalize_phone(second)


def format_phone(value: str) -> str:
    """
    Render a phone in the display format "+7 (XXX) XXX-XX-XX".

    Accepts 10 digits (no country code) or 11 digits starting with 7 or 8.
    Anything else is returned as given.
    """
    digits = normalize_phone(value)
    if len(digits) == 11 and digits[0] in "78":
        digits = digits[1:]
    if len(digits) != 10:
        return value
    return f"+7 ({digits[0:3]}) {digits[3:6]}-{digits[6:8]}-{digits[8:10]}"


def is_display_phone(value: str | None) -> bool:
    return bool(value) and DISPLAY_PHONE_RE.match(value) is not None


def is_loose_phone(value: str | None) -> bool:
    """Digits, spaces, dashes and parentheses with an optional leading plus."""
    return bool(value) and LOOSE_PHONE_RE.match(value) is not None
