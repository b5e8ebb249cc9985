"""Session status normalization and display labels.

Call context:
    ``SessionsVM`` maps backend/domain status tokens into operator-facing
    labels through these helpers.
"""

from __future__ import annotations

from typing import Optional


def status_key(status: Optional[str]) -> str:
    """Normalize status text into a lowercase canonical token."""
    return (status or "").strip().lower()


def session_status_label(status: Optional[str]) -> str:
    key = status_key(status)
    mapping = {
        "pending": "In progress",
        "success": "Booked",
        "failed": "Failed",
    }
    if key in mapping:
        return mapping[key]
    if not key:
        return "Unknown"
    return key.replace("_", " ").replace("-", " ").title()


def is_terminal(status: Optional[str]) -> bool:
    return status_key(status) in {"success", "failed"}


__all__ = ["is_terminal", "session_status_label", "status_key"]
