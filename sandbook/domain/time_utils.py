from __future__ import annotations

"""Datetime helpers for gateway timestamps and the local calendar day."""

from datetime import date, datetime
from typing import Any, Optional


def parse_server_datetime(value: Any) -> Optional[datetime]:
    """Parse a gateway timestamp into a timezone-aware datetime.

    Returns ``None`` for empty values and for text that matches none of the
    accepted formats; the booking backend leaves ``ended_at`` unset while a
    run has not finished.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if not text:
            return None
        normalized = text.replace(" ", "T", 1)
        if normalized.endswith("Z"):
            normalized = normalized[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(normalized)
        except ValueError:
            fallback = _parse_with_fallback(text)
            if fallback is None:
                return None
            parsed = fallback

    if parsed.tzinfo is None or parsed.tzinfo.utcoffset(parsed) is None:
        local_zone = datetime.now().astimezone().tzinfo
        parsed = parsed.replace(tzinfo=local_zone)

    return parsed.astimezone()


def local_today() -> date:
    """Return the operator's local calendar day."""
    return datetime.now().astimezone().date()


def _parse_with_fallback(text: str) -> Optional[datetime]:
    fallback_formats = (
        "%Y-%m-%d %H:%M:%S.%f",
        "%Y-%m-%d %H:%M:%S",
        "%d-%m-%Y %H:%M:%S",
    )
    for fmt in fallback_formats:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


__all__ = ["local_today", "parse_server_datetime"]
