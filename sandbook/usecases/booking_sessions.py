"""Launch booking automation runs and track the resulting sessions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Literal, Optional, Tuple
from uuid import uuid4

from sandbook.domain.entities import BookingSession, MasterDataRecord, coerce_id
from sandbook.domain.errors import SubmissionError
from sandbook.domain.ports import GatewayPort, UseCaseError

from .error_mapping import map_api_error

DuplicateStartPolicy = Literal["allow", "reject"]
DUPLICATE_START_POLICIES: Tuple[str, ...] = ("allow", "reject")

RecordLookup = Callable[[int], Optional[MasterDataRecord]]
UsernameLookup = Callable[[int], Optional[str]]


def _noop(*_: object, **__: object) -> None:
    """Default no-op callback used for hooks."""


@dataclass
class TrackerHooks:
    """Optional callbacks fired when the tracked collection changes."""

    on_session_added: Callable[[BookingSession], None] = _noop
    on_session_closed: Callable[[BookingSession], None] = _noop
    on_starting_changed: Callable[[int, bool], None] = _noop

    def __post_init__(self) -> None:
        self.on_session_added = self.on_session_added or _noop
        self.on_session_closed = self.on_session_closed or _noop
        self.on_starting_changed = self.on_starting_changed or _noop


class BookingSessionTracker:
    """Owns the in-memory list of booking sessions for one console session.

    A session's status is fixed by the single response to ``start``; there is
    no polling. ``close`` is purely local.
    """

    def __init__(
        self,
        gateway: GatewayPort,
        lookup_record: RecordLookup,
        *,
        lookup_username: Optional[UsernameLookup] = None,
        duplicate_policy: DuplicateStartPolicy = "allow",
        hooks: Optional[TrackerHooks] = None,
    ) -> None:
        if duplicate_policy not in DUPLICATE_START_POLICIES:
            raise ValueError(
                f"duplicate_policy must be one of {DUPLICATE_START_POLICIES}, got '{duplicate_policy}'"
            )
        self._gateway = gateway
        self._lookup_record = lookup_record
        self._lookup_username = lookup_username
        self.duplicate_policy: DuplicateStartPolicy = duplicate_policy
        self.hooks = hooks or TrackerHooks()
        self._sessions: List[BookingSession] = []
        self._starting: Dict[int, int] = {}
        self._log = logging.getLogger(__name__)

    @property
    def sessions(self) -> Tuple[BookingSession, ...]:
        return tuple(self._sessions)

    @property
    def starting(self) -> Tuple[int, ...]:
        """Record ids with a launch request still awaiting its response."""
        return tuple(sorted(self._starting))

    def is_starting(self, record_id: int) -> bool:
        return self._starting.get(int(record_id), 0) > 0

    async def start(self, record_id: int | str) -> BookingSession:
        """Launch automation for a master-data record and track the outcome.

        Raises:
            UseCaseError: ``UNKNOWN_MASTER_DATA`` for ids not in the known
                collection, ``START_IN_PROGRESS`` when the duplicate policy
                is ``reject`` and a launch for the record is in flight. No
                gateway call is made in either case.
            SubmissionError: The gateway rejected the launch (HTTP 4xx); no
                session is recorded.
        """
        try:
            rid = coerce_id(record_id, kind="master_data")
        except ValueError as exc:
            raise UseCaseError("UNKNOWN_MASTER_DATA", str(exc)) from exc
        record = self._lookup_record(rid)
        if record is None:
            raise UseCaseError(
                "UNKNOWN_MASTER_DATA", f"Master data #{rid} is not in the loaded list."
            )
        if self.duplicate_policy == "reject" and self.is_starting(rid):
            raise UseCaseError(
                "START_IN_PROGRESS", f"A booking for '{record.name}' is already being started."
            )

        username = self._username_for(record)
        self._mark_starting(rid, +1)
        try:
            session = await self._launch(record, username)
        finally:
            self._mark_starting(rid, -1)

        self._sessions.append(session)
        self._log.info(
            "booking session %s for master data #%d: %s", session.id, rid, session.status
        )
        self.hooks.on_session_added(session)
        return session

    def close(self, session_id: str) -> bool:
        """Drop one session from the tracked list; ``False`` if it was not there."""
        key = str(session_id)
        for index, session in enumerate(self._sessions):
            if session.id == key:
                del self._sessions[index]
                self.hooks.on_session_closed(session)
                return True
        return False

    def clear(self) -> None:
        self._sessions.clear()
        self._starting.clear()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    async def _launch(self, record: MasterDataRecord, username: str) -> BookingSession:
        try:
            payload = await self._gateway.start_booking(record.id)
        except Exception as exc:
            error = map_api_error(exc, default_code="START_FAILED", mutation=True)
            if isinstance(error, SubmissionError):
                self._log.warning("booking start for #%d rejected: %s", record.id, error.message)
                raise error from exc
            self._log.warning("booking start for #%d failed: %s", record.id, error.message)
            return self._failed_session(record, username, error.message)
        try:
            return BookingSession.from_response(payload, record=record, username=username)
        except ValueError as exc:
            return self._failed_session(record, username, f"Malformed booking response: {exc}")

    def _failed_session(
        self, record: MasterDataRecord, username: str, message: str
    ) -> BookingSession:
        now = datetime.now().astimezone()
        return BookingSession(
            id=f"local-{uuid4().hex[:8]}",
            master_data_id=record.id,
            username=username,
            stockyard=record.stockyard,
            status="failed",
            started_at=now,
            ended_at=now,
            message=message,
        )

    def _username_for(self, record: MasterDataRecord) -> str:
        if record.booking_username:
            return record.booking_username
        if self._lookup_username is not None:
            name = self._lookup_username(record.booking_user)
            if name:
                return name
        return str(record.booking_user)

    def _mark_starting(self, record_id: int, delta: int) -> None:
        count = self._starting.get(record_id, 0) + delta
        was_starting = self._starting.get(record_id, 0) > 0
        if count > 0:
            self._starting[record_id] = count
        else:
            self._starting.pop(record_id, None)
        if was_starting != (count > 0):
            self.hooks.on_starting_changed(record_id, count > 0)


__all__ = [
    "BookingSessionTracker",
    "DUPLICATE_START_POLICIES",
    "DuplicateStartPolicy",
    "TrackerHooks",
]
