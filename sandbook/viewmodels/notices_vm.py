"""Dismissible operator notices (the console's toast area).

Call context:
    View models post a notice whenever a non-fatal error must reach the
    operator; reference-data failures attach a retry coroutine.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Literal, Optional

from sandbook.domain.ports import UseCaseError

NoticeLevel = Literal["info", "warning", "error"]
RetryFn = Callable[[], Awaitable[None]]

_LOG_LEVELS = {"info": logging.INFO, "warning": logging.WARNING, "error": logging.WARNING}


@dataclass(frozen=True)
class Notice:
    id: int
    message: str
    level: NoticeLevel = "info"
    code: Optional[str] = None
    retry: Optional[RetryFn] = None

    @property
    def retryable(self) -> bool:
        return self.retry is not None


class NoticesVM:
    """Ordered list of notices; oldest first."""

    def __init__(self, on_change: Optional[Callable[[List[Notice]], None]] = None) -> None:
        self._notices: List[Notice] = []
        self._ids = itertools.count(1)
        self._log = logging.getLogger(__name__)
        self.on_change = on_change

    @property
    def notices(self) -> List[Notice]:
        return list(self._notices)

    def post(
        self,
        message: str,
        *,
        level: NoticeLevel = "info",
        code: Optional[str] = None,
        retry: Optional[RetryFn] = None,
    ) -> Notice:
        notice = Notice(id=next(self._ids), message=message, level=level, code=code, retry=retry)
        self._notices.append(notice)
        self._log.log(_LOG_LEVELS.get(level, logging.INFO), "%s%s", f"[{code}] " if code else "", message)
        self._changed()
        return notice

    def post_error(
        self, error: UseCaseError, *, context: Optional[str] = None, retry: Optional[RetryFn] = None
    ) -> Notice:
        message = f"{context}: {error.message}" if context else error.message
        return self.post(message, level="error", code=error.code, retry=retry)

    def dismiss(self, notice_id: int) -> bool:
        for index, notice in enumerate(self._notices):
            if notice.id == notice_id:
                del self._notices[index]
                self._changed()
                return True
        return False

    async def retry(self, notice_id: int) -> bool:
        """Dismiss a retryable notice and run its retry; ``False`` if not retryable."""
        notice = next((n for n in self._notices if n.id == notice_id), None)
        if notice is None or notice.retry is None:
            return False
        self.dismiss(notice_id)
        await notice.retry()
        return True

    def clear(self) -> None:
        self._notices.clear()
        self._changed()

    def _changed(self) -> None:
        if self.on_change:
            self.on_change(self.notices)


__all__ = ["Notice", "NoticeLevel", "NoticesVM"]
