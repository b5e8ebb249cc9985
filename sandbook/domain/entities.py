from __future__ import annotations

"""Domain value objects shared across adapters, use-cases, and view models."""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Literal, Mapping, Optional, Tuple

from .time_utils import parse_server_datetime

SessionStatus = Literal["success", "failed"]
SlotBand = Literal["morning", "afternoon"]

SESSION_STATUSES: Tuple[str, ...] = ("success", "failed")
IN_FLIGHT_TOKENS = frozenset({"pending", "queued", "running", "started"})

SAND_PURPOSES: Dict[str, str] = {
    "1": "Domestic",
    "2": "Commercial",
    "3": "Govt.Civil Works",
}

PAYMENT_MODES: Dict[str, str] = {
    "PAYU": "PAYU",
    "UPI": "UPI",
    "QR": "QR",
    "CF": "Cash Free (Other Banks)",
    "CFM": "Cash Free (Major Banks)",
}


def _require_mapping(payload: Any, kind: str) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise ValueError(f"{kind}: expected object payload, got {type(payload).__name__}")
    return payload


def _pick(payload: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    return None


def coerce_id(value: Any, *, kind: str) -> int:
    """Return the integer id behind a scalar or nested ``{"id": ...}`` reference."""
    if isinstance(value, Mapping):
        value = _pick(value, "id", "did", "mid", "vid", "pk")
    if isinstance(value, bool) or value is None:
        raise ValueError(f"{kind}: missing id")
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if not text.lstrip("-").isdigit():
        raise ValueError(f"{kind}: id '{text}' is not numeric")
    return int(text)


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


@dataclass(frozen=True)
class District:
    """Root of both location chains (source stockyard and delivery location)."""

    id: int
    name: str

    @classmethod
    def from_payload(cls, payload: Any) -> "District":
        data = _require_mapping(payload, "district")
        return cls(id=coerce_id(_pick(data, "did", "id"), kind="district"), name=_text(data.get("name")))


@dataclass(frozen=True)
class Stockyard:
    """Sand supply point; referenced by ``name`` rather than a surrogate id."""

    name: str
    """Stable reference used in forms and in the master-data payload."""
    sand_quality: Optional[str] = None
    sand_price: Optional[str] = None
    parent_district_id: Optional[int] = None
    """District that produced this entry; the entry is meaningless under any other district."""

    @classmethod
    def from_payload(cls, payload: Any, *, district_id: Optional[int] = None) -> "Stockyard":
        data = _require_mapping(payload, "stockyard")
        name = _text(data.get("name"))
        if not name:
            raise ValueError("stockyard: missing name")
        return cls(
            name=name,
            sand_quality=_optional_text(data.get("sand_quality")),
            sand_price=_optional_text(data.get("sand_price")),
            parent_district_id=district_id,
        )


@dataclass(frozen=True)
class Mandal:
    id: int
    name: str
    parent_district_id: Optional[int] = None

    @classmethod
    def from_payload(cls, payload: Any, *, district_id: Optional[int] = None) -> "Mandal":
        data = _require_mapping(payload, "mandal")
        return cls(
            id=coerce_id(_pick(data, "mid", "id"), kind="mandal"),
            name=_text(data.get("name")),
            parent_district_id=district_id,
        )


@dataclass(frozen=True)
class Village:
    id: int
    name: str
    parent_mandal_id: Optional[int] = None

    @classmethod
    def from_payload(cls, payload: Any, *, mandal_id: Optional[int] = None) -> "Village":
        data = _require_mapping(payload, "village")
        return cls(
            id=coerce_id(_pick(data, "vid", "id"), kind="village"),
            name=_text(data.get("name")),
            parent_mandal_id=mandal_id,
        )


@dataclass(frozen=True)
class DeliverySlot:
    """Generated delivery window; ``value`` is what forms and the backend store."""

    label: str
    value: str
    date: date
    band: SlotBand


@dataclass(frozen=True)
class User:
    """Credential record referenced by ``MasterDataRecord.booking_user``."""

    id: int
    username: str
    password: str = ""

    @classmethod
    def from_payload(cls, payload: Any) -> "User":
        data = _require_mapping(payload, "user")
        return cls(
            id=coerce_id(data.get("id"), kind="user"),
            username=_text(data.get("username")),
            password=_text(data.get("password")),
        )


@dataclass(frozen=True)
class MasterDataRecord:
    """Saved, reusable booking configuration (who, where from, where to, when, how paid)."""

    id: int
    name: str
    booking_user: int
    district: int
    stockyard: str
    sand_purpose: str
    vehicle_no: str
    delivery_district: int
    delivery_mandal: int
    delivery_village: int
    delivery_slot: str
    payment_mode: str
    gstin: Optional[str] = None
    booking_username: Optional[str] = None
    """Username when the backend nests the user object into the record."""

    @classmethod
    def from_payload(cls, payload: Any) -> "MasterDataRecord":
        data = _require_mapping(payload, "master_data")
        user_ref = data.get("booking_user")
        username = None
        if isinstance(user_ref, Mapping):
            username = _optional_text(user_ref.get("username"))
        stockyard = data.get("stockyard")
        if isinstance(stockyard, Mapping):
            stockyard = stockyard.get("name")
        return cls(
            id=coerce_id(data.get("id"), kind="master_data"),
            name=_text(data.get("name")),
            booking_user=coerce_id(user_ref, kind="booking_user"),
            district=coerce_id(data.get("district"), kind="district"),
            stockyard=_text(stockyard),
            sand_purpose=_text(data.get("sand_purpose")),
            vehicle_no=_text(data.get("vehicle_no")),
            delivery_district=coerce_id(data.get("delivery_district"), kind="delivery_district"),
            delivery_mandal=coerce_id(data.get("delivery_mandal"), kind="delivery_mandal"),
            delivery_village=coerce_id(data.get("delivery_village"), kind="delivery_village"),
            delivery_slot=_text(data.get("delivery_slot")),
            payment_mode=_text(data.get("payment_mode")),
            gstin=_optional_text(data.get("gstin")),
            booking_username=username,
        )

    def to_form_fields(self) -> Dict[str, str]:
        """Flatten the record into the string values used by form selects."""
        return {
            "name": self.name,
            "booking_user": str(self.booking_user),
            "district": str(self.district),
            "stockyard": self.stockyard,
            "gstin": self.gstin or "",
            "sand_purpose": self.sand_purpose,
            "vehicle_no": self.vehicle_no,
            "delivery_district": str(self.delivery_district),
            "delivery_mandal": str(self.delivery_mandal),
            "delivery_village": str(self.delivery_village),
            "delivery_slot": self.delivery_slot,
            "payment_mode": self.payment_mode,
        }


def normalize_session_status(raw: Any) -> Optional[SessionStatus]:
    """Map backend status tokens onto a final session status, ``None`` otherwise.

    In-flight tokens such as ``running`` also give ``None``; sessions are
    never polled, so only the single start response decides the outcome.
    """
    key = _text(raw).lower()
    if key in ("success", "succeeded", "completed", "booked", "done"):
        return "success"
    if key in ("failed", "failure", "error", "cancelled", "canceled"):
        return "failed"
    return None


@dataclass(frozen=True)
class BookingSession:
    """One launched execution attempt of a MasterDataRecord."""

    id: str
    master_data_id: int
    username: str
    stockyard: str
    status: SessionStatus
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    proxy: Optional[str] = None
    message: Optional[str] = None

    def __post_init__(self) -> None:
        if self.status not in SESSION_STATUSES:
            raise ValueError(f"BookingSession.status must be one of {SESSION_STATUSES}.")
        if not str(self.id).strip():
            raise ValueError("BookingSession.id must be a non-empty string.")

    @classmethod
    def from_response(
        cls,
        payload: Any,
        *,
        record: MasterDataRecord,
        username: str,
    ) -> "BookingSession":
        """Build a session from the ``/booking/start`` response for ``record``.

        A non-final or unrecognised status token becomes ``failed`` with an
        explanatory message; ``pending`` is never stored on a session.
        """
        data = _require_mapping(payload, "booking_session")
        raw_status = data.get("status")
        status = normalize_session_status(raw_status)
        message = _optional_text(data.get("message"))
        if status is None:
            token = _text(raw_status) or "-"
            status = "failed"
            if token.lower() in IN_FLIGHT_TOKENS:
                message = message or f"Booking still '{token}' when the start call returned"
            else:
                message = message or f"Unexpected booking status '{token}'"
        session_id = _text(data.get("id"))
        if not session_id:
            raise ValueError("booking_session: missing id")
        return cls(
            id=session_id,
            master_data_id=record.id,
            username=username,
            stockyard=record.stockyard,
            status=status,
            started_at=parse_server_datetime(data.get("started_at")),
            ended_at=parse_server_datetime(data.get("ended_at")),
            proxy=_optional_text(data.get("proxy")),
            message=message,
        )


__all__ = [
    "BookingSession",
    "DeliverySlot",
    "District",
    "IN_FLIGHT_TOKENS",
    "Mandal",
    "MasterDataRecord",
    "PAYMENT_MODES",
    "SAND_PURPOSES",
    "SESSION_STATUSES",
    "SessionStatus",
    "SlotBand",
    "Stockyard",
    "User",
    "Village",
    "coerce_id",
    "normalize_session_status",
]
