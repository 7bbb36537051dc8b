"""Shared validation utilities"""

import re
import uuid
from typing import Optional

BRAZIL_COUNTRY_CODE = "55"


def validate_uuid(value: str) -> bool:
    """Validate UUID format"""
    try:
        uuid.UUID(value)
        return True
    except (ValueError, AttributeError, TypeError):
        return False


def normalize_phone(phone: Optional[str]) -> str:
    """Strip every non-digit character"""
    if not phone:
        return ""
    return re.sub(r"\D", "", phone)


def strip_country_code(digits: str) -> str:
    # Only strip when what remains is still a full national number
    if digits.startswith(BRAZIL_COUNTRY_CODE) and len(digits) in (12, 13):
        return digits[2:]
    return digits


def is_valid_br_phone(phone: Optional[str]) -> bool:
    """
    Validate a Brazilian phone number.

    Accepts 10 (landline) or 11 (mobile) national digits, optionally prefixed
    with the 55 country code. The area code (DDD) must be 11-99 and mobile
    numbers must start with 9 after the DDD.
    """
    digits = normalize_phone(phone)
    if len(digits) < 10 or len(digits) > 13:
        return False

    national = strip_country_code(digits)
    if len(national) not in (10, 11):
        return False

    ddd = int(national[:2])
    if ddd < 11 or ddd > 99:
        return False

    if len(national) == 11 and national[2] != "9":
        return False

    return True


def format_br_phone(phone: str) -> str:
    """
    Format a phone number for display.

    11987654321 -> (11) 98765-4321
    1133334444  -> (11) 3333-4444
    Anything else is returned unchanged.
    """
    national = strip_country_code(normalize_phone(phone))

    if len(national) == 11:
        return f"({national[:2]}) {national[2:7]}-{national[7:]}"
    if len(national) == 10:
        return f"({national[:2]}) {national[2:6]}-{national[6:]}"
    return phone


def phones_are_equal(first: str, second: str) -> bool:
    """Compare two phone numbers ignoring formatting and country code"""
    return strip_country_code(normalize_phone(first)) == strip_country_code(normalize_phone(second))
