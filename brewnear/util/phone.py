"""Moroccan mobile number validation and normalisation.

Sellers are contacted over WhatsApp, which needs E.164 numbers
(``+212`` followed by nine digits starting with 6 or 7). Users type
numbers in several shapes, all of which are accepted:

* ``212606060606`` international
* ``2120606060606`` international with the trunk 0 kept
* ``0606060606`` local
* ``606060606`` local without the trunk 0
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

NON_DIGIT_RE = re.compile(r"\D")
MOBILE_RE = re.compile(r"^212[67]\d{8}$")
COUNTRY_CODE = "212"


@dataclass
class PhoneValidationResult:
    is_valid: bool = False
    normalized: str = ""  # +212XXXXXXXXX
    clean: str = ""  # 212XXXXXXXXX
    display: str = ""  # +212 6XX XXX XXX
    input_format: str = "invalid"
    error: Optional[str] = None


def format_for_display(digits: str) -> str:
    if len(digits) != 12 or not digits.startswith(COUNTRY_CODE):
        return digits
    return f"+{digits[:3]} {digits[3:6]} {digits[6:9]} {digits[9:12]}"


def validate_moroccan_phone(phone: str) -> PhoneValidationResult:
    result = PhoneValidationResult()
    if not phone or not isinstance(phone, str):
        result.error = "Phone number is required"
        return result

    digits = NON_DIGIT_RE.sub("", phone)
    if not digits:
        result.error = "Phone number must contain digits"
        return result

    if digits.startswith("2120"):
        normalized = COUNTRY_CODE + digits[4:]
        result.input_format = "international_with_zero"
    elif digits.startswith(COUNTRY_CODE):
        normalized = digits
        result.input_format = "international"
    elif digits.startswith("0"):
        normalized = COUNTRY_CODE + digits[1:]
        result.input_format = "local_with_zero"
    else:
        normalized = COUNTRY_CODE + digits
        result.input_format = "local"

    if not MOBILE_RE.match(normalized):
        result.input_format = "invalid"
        result.error = "Invalid Moroccan phone number. Must be a valid mobile number starting with 6 or 7"
        return result

    result.is_valid = True
    result.clean = normalized
    result.normalized = "+" + normalized
    result.display = format_for_display(normalized)
    return result


def is_valid_moroccan_phone(phone: str) -> bool:
    return validate_moroccan_phone(phone).is_valid


def normalize_for_whatsapp(phone: str) -> str:
    """E.164 form, or ``""`` when the number is not a Moroccan mobile."""
    result = validate_moroccan_phone(phone)
    return result.normalized if result.is_valid else ""


def whatsapp_api_number(phone: str) -> str:
    result = validate_moroccan_phone(phone)
    return result.clean if result.is_valid else ""


def phone_validation_error(phone: str) -> Optional[str]:
    result = validate_moroccan_phone(phone)
    return None if result.is_valid else (result.error or "Invalid phone number")
