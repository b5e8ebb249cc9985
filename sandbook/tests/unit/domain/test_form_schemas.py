from __future__ import annotations

import pytest

from sandbook.domain.errors import FormValidationError
from sandbook.domain.form_schemas import validate_master_data, validate_user


def _fields(**overrides):
    fields = {
        "name": " Krishna home site ",
        "booking_user": "5",
        "district": "3",
        "stockyard": "Krishna Yard A",
        "gstin": "",
        "sand_purpose": "1",
        "vehicle_no": "ap16tx1234",
        "delivery_district": "3",
        "delivery_mandal": "31",
        "delivery_village": "311",
        "delivery_slot": "11-03-2024 (12NOON - 06PM)",
        "payment_mode": "upi",
    }
    fields.update(overrides)
    return fields


def test_valid_form_builds_gateway_payload() -> None:
    payload = validate_master_data(_fields()).to_payload()

    assert payload["name"] == "Krishna home site"
    assert payload["booking_user"] == 5
    assert payload["delivery_village"] == 311
    assert payload["stockyard"] == "Krishna Yard A"
    assert payload["vehicle_no"] == "AP16TX1234"
    assert payload["payment_mode"] == "UPI"
    assert payload["gstin"] == ""


def test_required_fields_are_reported_by_label() -> None:
    with pytest.raises(FormValidationError) as info:
        validate_master_data(_fields(name="", delivery_mandal="  "))

    errors = info.value.field_errors
    assert errors["name"] == "Name is required"
    assert errors["delivery_mandal"] == "Delivery Mandal is required"
    assert info.value.code == "INVALID_FORM"


def test_unknown_options_are_rejected() -> None:
    with pytest.raises(FormValidationError) as info:
        validate_master_data(_fields(sand_purpose="9", payment_mode="CASH", district="Krishna"))

    errors = info.value.field_errors
    assert errors["sand_purpose"] == "Purpose of Sand is not a valid option"
    assert errors["payment_mode"] == "Payment Mode is not a valid option"
    assert errors["district"] == "District must be a numeric id"


def test_user_form_minimum_lengths() -> None:
    with pytest.raises(FormValidationError) as info:
        validate_user({"username": "ab", "password": "12345"})

    assert info.value.code == "INVALID_USER"
    assert info.value.field_errors == {
        "username": "Username must be at least 3 characters",
        "password": "Password must be at least 6 characters",
    }
    assert validate_user({"username": "abc", "password": "123456"}).to_payload() == {
        "username": "abc",
        "password": "123456",
    }
