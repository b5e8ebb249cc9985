"""Booking sessions table projection from ``BookingSessionTracker``.

Call context:
    ``ConsoleController`` owns the tracker; the sessions panel reads
    ``rows()`` after every tracker hook and closes rows through ``close``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sandbook.domain.entities import BookingSession
from sandbook.usecases.booking_sessions import BookingSessionTracker

from .status_format import is_terminal, session_status_label


@dataclass
class SessionRow:
    """Display row consumed by the sessions table."""

    session_id: str
    master_data_id: int
    username: str
    stockyard: str
    status: str
    status_label: str
    started_at: str
    ended_at: str
    proxy: str
    message: str
    finished: bool


class SessionsVM:
    """Exposes tracked sessions as plain rows in start order."""

    def __init__(self, tracker: BookingSessionTracker) -> None:
        self._tracker = tracker
        self.selected_id: Optional[str] = None

    def rows(self) -> List[SessionRow]:
        return [self._to_row(session) for session in self._tracker.sessions]

    def select(self, session_id: Optional[str]) -> None:
        self.selected_id = session_id

    def close(self, session_id: str) -> bool:
        """Remove one row locally; no server call is made."""
        closed = self._tracker.close(session_id)
        if closed and self.selected_id == session_id:
            self.selected_id = None
        return closed

    def is_starting(self, record_id: int) -> bool:
        return self._tracker.is_starting(record_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _to_row(self, session: BookingSession) -> SessionRow:
        return SessionRow(
            session_id=session.id,
            master_data_id=session.master_data_id,
            username=session.username or "-",
            stockyard=session.stockyard or "-",
            status=session.status,
            status_label=session_status_label(session.status),
            started_at=self._format_dt(session.started_at),
            ended_at=self._format_dt(session.ended_at),
            proxy=session.proxy or "-",
            message=session.message or "",
            finished=is_terminal(session.status),
        )

    @staticmethod
    def _format_dt(value: Optional[datetime]) -> str:
        if value is None:
            return "-"
        return value.strftime("%Y-%m-%d %H:%M:%S")


__all__ = ["SessionRow", "SessionsVM"]
