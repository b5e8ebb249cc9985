"""Input schemas for the master-data and user forms.

Both forms hold plain strings (select values and text inputs). The schemas
check them before anything is sent to the gateway and translate pydantic
errors into one operator-facing message per field.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .entities import PAYMENT_MODES, SAND_PURPOSES
from .errors import FormValidationError

MASTER_DATA_LABELS: Dict[str, str] = {
    "name": "Name",
    "booking_user": "Booking User",
    "district": "District",
    "stockyard": "Stockyard",
    "gstin": "GSTIN",
    "sand_purpose": "Purpose of Sand",
    "vehicle_no": "Vehicle No",
    "delivery_district": "Delivery District",
    "delivery_mandal": "Delivery Mandal",
    "delivery_village": "Delivery Village",
    "delivery_slot": "Delivery Slot",
    "payment_mode": "Payment Mode",
}

USER_LABELS: Dict[str, str] = {
    "username": "Username",
    "password": "Password",
}

MASTER_DATA_FIELDS = tuple(MASTER_DATA_LABELS)
NUMERIC_REFERENCE_FIELDS = (
    "booking_user",
    "district",
    "delivery_district",
    "delivery_mandal",
    "delivery_village",
)


class MasterDataForm(BaseModel):
    """Validated master-data form; ``to_payload`` yields the gateway body."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    name: str = Field(min_length=1)
    booking_user: str = Field(min_length=1)
    district: str = Field(min_length=1)
    stockyard: str = Field(min_length=1)
    gstin: Optional[str] = None
    sand_purpose: str = Field(min_length=1)
    vehicle_no: str = Field(min_length=1)
    delivery_district: str = Field(min_length=1)
    delivery_mandal: str = Field(min_length=1)
    delivery_village: str = Field(min_length=1)
    delivery_slot: str = Field(min_length=1)
    payment_mode: str = Field(min_length=1)

    @field_validator(*NUMERIC_REFERENCE_FIELDS)
    @classmethod
    def _numeric_reference(cls, value: str) -> str:
        if not value.isdigit():
            raise ValueError("must be a numeric id")
        return value

    @field_validator("sand_purpose")
    @classmethod
    def _known_purpose(cls, value: str) -> str:
        if value not in SAND_PURPOSES:
            raise ValueError("is not a valid option")
        return value

    @field_validator("payment_mode")
    @classmethod
    def _known_payment_mode(cls, value: str) -> str:
        upper = value.upper()
        if upper not in PAYMENT_MODES:
            raise ValueError("is not a valid option")
        return upper

    @field_validator("vehicle_no")
    @classmethod
    def _vehicle_upper(cls, value: str) -> str:
        return value.upper()

    @field_validator("gstin")
    @classmethod
    def _blank_gstin(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value:
            return None
        return value.upper()

    def to_payload(self) -> Dict[str, Any]:
        # Locations and the user go out as numeric ids, the stockyard by name.
        return {
            "name": self.name,
            "booking_user": int(self.booking_user),
            "district": int(self.district),
            "stockyard": self.stockyard,
            "gstin": self.gstin or "",
            "sand_purpose": self.sand_purpose,
            "vehicle_no": self.vehicle_no,
            "delivery_district": int(self.delivery_district),
            "delivery_mandal": int(self.delivery_mandal),
            "delivery_village": int(self.delivery_village),
            "delivery_slot": self.delivery_slot,
            "payment_mode": self.payment_mode,
        }


class UserForm(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    username: str = Field(min_length=3)
    password: str = Field(min_length=6)

    def to_payload(self) -> Dict[str, Any]:
        return {"username": self.username, "password": self.password}


def field_errors_from(exc: ValidationError, labels: Mapping[str, str]) -> Dict[str, str]:
    """Collapse pydantic errors into the first message per field."""
    errors: Dict[str, str] = {}
    for err in exc.errors():
        loc = err.get("loc") or ("form",)
        field = str(loc[0])
        if field in errors:
            continue
        label = labels.get(field, field)
        kind = err.get("type")
        ctx = err.get("ctx") or {}
        if kind == "missing":
            errors[field] = f"{label} is required"
        elif kind == "string_too_short":
            minimum = int(ctx.get("min_length", 1))
            if minimum <= 1:
                errors[field] = f"{label} is required"
            else:
                errors[field] = f"{label} must be at least {minimum} characters"
        elif kind == "value_error" and ctx.get("error") is not None:
            errors[field] = f"{label} {ctx['error']}"
        else:
            errors[field] = f"{label}: {err.get('msg', 'invalid value')}"
    return errors


def validate_master_data(fields: Mapping[str, Any]) -> MasterDataForm:
    """Return the validated form or raise ``FormValidationError``."""
    try:
        return MasterDataForm.model_validate(_as_text(fields))
    except ValidationError as exc:
        raise FormValidationError(field_errors_from(exc, MASTER_DATA_LABELS)) from exc


def validate_user(fields: Mapping[str, Any]) -> UserForm:
    try:
        return UserForm.model_validate(_as_text(fields))
    except ValidationError as exc:
        raise FormValidationError(field_errors_from(exc, USER_LABELS), code="INVALID_USER") from exc


def _as_text(fields: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: ("" if value is None else str(value)) for key, value in fields.items()}


__all__ = [
    "MASTER_DATA_FIELDS",
    "MASTER_DATA_LABELS",
    "MasterDataForm",
    "USER_LABELS",
    "UserForm",
    "field_errors_from",
    "validate_master_data",
    "validate_user",
]
