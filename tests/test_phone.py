"""Moroccan phone number validation."""
import pytest

from brewnear.util.phone import (
    is_valid_moroccan_phone,
    normalize_for_whatsapp,
    phone_validation_error,
    validate_moroccan_phone,
    whatsapp_api_number,
)


@pytest.mark.parametrize(
    "raw, input_format",
    [
        ("0612345678", "local_with_zero"),
        ("612345678", "local"),
        ("+212612345678", "international"),
        ("212612345678", "international"),
        ("+212 0612345678", "international_with_zero"),
        ("06 12 34 56 78", "local_with_zero"),
        ("(+212) 6-12-34-56-78", "international"),
    ],
)
def test_accepted_formats_normalise_to_e164(raw, input_format) -> None:
    result = validate_moroccan_phone(raw)
    assert result.is_valid
    assert result.normalized == "+212612345678"
    assert result.clean == "212612345678"
    assert result.display == "+212 612 345 678"
    assert result.input_format == input_format
    assert result.error is None


def test_landline_is_rejected() -> None:
    result = validate_moroccan_phone("0522123456")
    assert not result.is_valid
    assert result.input_format == "invalid"
    assert result.error == "Invalid Moroccan phone number. Must be a valid mobile number starting with 6 or 7"


def test_seven_prefix_is_a_mobile() -> None:
    assert is_valid_moroccan_phone("0712345678")


@pytest.mark.parametrize(
    "raw, error",
    [
        ("", "Phone number is required"),
        (None, "Phone number is required"),
        ("phone", "Phone number must contain digits"),
        ("06123", "Invalid Moroccan phone number. Must be a valid mobile number starting with 6 or 7"),
    ],
)
def test_validation_errors(raw, error) -> None:
    assert phone_validation_error(raw) == error


def test_whatsapp_forms() -> None:
    assert normalize_for_whatsapp("0612345678") == "+212612345678"
    assert whatsapp_api_number("0612345678") == "212612345678"
    assert normalize_for_whatsapp("12") == ""
    assert whatsapp_api_number("12") == ""
