"""Translate adapter errors into the console's domain error taxonomy."""

from __future__ import annotations

from typing import Optional

from sandbook.adapters.api_errors import (
    ApiClientError,
    ApiError,
    ApiServerError,
    ApiTimeoutError,
    extract_error_hint,
)
from sandbook.domain.errors import NetworkError, SubmissionError
from sandbook.domain.ports import UseCaseError


def map_api_error(
    exc: Exception,
    *,
    default_code: str,
    default_message: Optional[str] = None,
    mutation: bool = False,
) -> UseCaseError:
    """Map adapter exceptions to stable error codes.

    Args:
        exc: Exception raised by an adapter or use case.
        default_code: Code used when ``exc`` is not a known adapter error.
        default_message: Message used for unknown errors without text.
        mutation: Whether the failed call was a write or launch. HTTP 4xx on
            a mutation becomes ``SubmissionError``; everything else
            transport-related becomes ``NetworkError``.

    Returns:
        A ``UseCaseError`` instance; ``exc`` itself when it already is one.
    """
    if isinstance(exc, UseCaseError):
        return exc
    if isinstance(exc, ApiTimeoutError):
        return NetworkError("REQUEST_TIMEOUT", "Request timed out. Check connection.")
    if isinstance(exc, ApiClientError):
        status = exc.status or 0
        hint = exc.hint or extract_error_hint(getattr(exc, "payload", None))
        kind = SubmissionError if mutation else NetworkError
        meta = {"status": status}
        if status in (401, 403):
            return kind("AUTH_FAILED", "Auth failed / API key invalid.", meta=meta)
        if status == 404:
            return kind("NOT_FOUND", _compose_error_message("Not found", hint), meta=meta)
        if status in (400, 422):
            return kind(
                "INVALID_PARAMS", _compose_error_message("Invalid parameters", hint), meta=meta
            )
        label = f"Request failed (HTTP {status})" if status else "Request failed"
        return kind("REQUEST_FAILED", _compose_error_message(label, hint), meta=meta)
    if isinstance(exc, ApiServerError):
        return NetworkError(
            "SERVER_ERROR", "Booking server error, try again.", meta={"status": exc.status}
        )
    if isinstance(exc, ApiError):
        return NetworkError("API_ERROR", str(exc))

    message = default_message or str(exc) or "Unexpected error."
    return UseCaseError(default_code, message)


def _compose_error_message(base: str, hint: Optional[str]) -> str:
    hint_text = (hint or "").strip()
    if hint_text:
        return f"{base}: {hint_text}"
    if base.endswith("."):
        return base
    return f"{base}."


__all__ = ["map_api_error"]
