"""Candidate delivery windows for a rolling date range.

Pure helpers: no I/O, deterministic for a given ``today``.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import List, Tuple

from .entities import DeliverySlot, SlotBand

DEFAULT_WINDOW_DAYS = 5
SLOT_DATE_FORMAT = "%d-%m-%Y"

# Band order is the intra-day ordering of the generated slots.
SLOT_BANDS: Tuple[Tuple[SlotBand, str], ...] = (
    ("morning", "(06AM - 12NOON)"),
    ("afternoon", "(12NOON - 06PM)"),
)


def format_slot_date(day: date) -> str:
    return day.strftime(SLOT_DATE_FORMAT)


def generate_delivery_slots(today: date, days: int = DEFAULT_WINDOW_DAYS) -> List[DeliverySlot]:
    """Return ``days * 2`` slots ordered by date, then morning before afternoon."""
    if days < 0:
        raise ValueError("days must be non-negative.")
    slots: List[DeliverySlot] = []
    for offset in range(days):
        day = today + timedelta(days=offset)
        day_text = format_slot_date(day)
        for band, window in SLOT_BANDS:
            text = f"{day_text} {window}"
            slots.append(DeliverySlot(label=text, value=text, date=day, band=band))
    return slots


class DeliverySlotCache:
    """Holds one generated slot set per calendar day.

    The form asks for slots on every render; they are regenerated only when
    the day passed in differs from the day they were built for.
    """

    def __init__(self, days: int = DEFAULT_WINDOW_DAYS) -> None:
        self.days = days
        self._built_for: date | None = None
        self._slots: List[DeliverySlot] = []

    def slots_for(self, today: date) -> List[DeliverySlot]:
        if self._built_for != today:
            self._slots = generate_delivery_slots(today, self.days)
            self._built_for = today
        return list(self._slots)

    def values_for(self, today: date) -> List[str]:
        return [slot.value for slot in self.slots_for(today)]

    def clear(self) -> None:
        self._built_for = None
        self._slots = []


__all__ = [
    "DEFAULT_WINDOW_DAYS",
    "DeliverySlotCache",
    "SLOT_BANDS",
    "format_slot_date",
    "generate_delivery_slots",
]
