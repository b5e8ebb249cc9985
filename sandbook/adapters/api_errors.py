"""Typed failures raised by the gateway REST adapter.

Adapters raise these; use cases translate them into domain errors through
``sandbook.usecases.error_mapping.map_api_error``.
"""

from __future__ import annotations

from typing import Any, Optional


class ApiError(RuntimeError):
    """Base class for REST adapter failures."""

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        code: Optional[str] = None,
        hint: Optional[str] = None,
        payload: Any = None,
        context: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.code = code
        self.hint = hint
        self.payload = payload
        self.context = context


class ApiClientError(ApiError):
    """HTTP 4xx from the booking gateway."""

    def __init__(
        self,
        message: str,
        *,
        status: int,
        code: Optional[str] = None,
        hint: Optional[str] = None,
        payload: Any = None,
        context: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            status=status,
            code=code,
            hint=hint,
            payload=payload,
            context=context,
        )


class ApiServerError(ApiError):
    """HTTP 5xx from the booking gateway."""

    def __init__(
        self,
        message: str,
        *,
        status: int,
        payload: Any = None,
        context: Optional[str] = None,
    ) -> None:
        super().__init__(message, status=status, payload=payload, context=context)


class ApiTimeoutError(ApiError):
    """Transport level timeout or connectivity failure."""

    def __init__(self, message: str, *, context: Optional[str] = None) -> None:
        super().__init__(message, context=context)


def ensure_ok(resp: Any, ctx: str) -> None:
    """Raise the matching ``ApiError`` subclass for non-2xx responses."""
    status = int(resp.status_code)
    if 200 <= status < 300:
        return
    payload = parse_error_payload(resp)
    message = build_error_message(ctx, status, payload)
    if 400 <= status < 500:
        raise ApiClientError(
            message,
            status=status,
            code=extract_error_code(payload),
            hint=extract_error_hint(payload),
            payload=payload,
            context=ctx,
        )
    if 500 <= status < 600:
        raise ApiServerError(message, status=status, payload=payload, context=ctx)
    raise ApiError(message, status=status, payload=payload, context=ctx)


def json_body(resp: Any, ctx: str) -> Any:
    """Decode a JSON response body; empty bodies (204) decode to ``None``."""
    if int(resp.status_code) == 204:
        return None
    content = getattr(resp, "content", None)
    if content is not None and not content:
        return None
    try:
        return resp.json()
    except ValueError as exc:
        snippet = (getattr(resp, "text", "") or "")[:400]
        raise ApiError(
            f"{ctx}: invalid JSON response: {snippet}",
            status=int(resp.status_code),
            context=ctx,
        ) from exc


def parse_error_payload(resp: Any) -> Any:
    """Best-effort extraction of error payload without raising."""
    try:
        return resp.json()
    except Exception:
        snippet = getattr(resp, "text", "")
        if not snippet:
            return None
        return snippet[:400]


def build_error_message(ctx: str, status: int, payload: Any) -> str:
    detail = first_string(payload)
    if detail:
        return f"{ctx}: {detail} (HTTP {status})"
    return f"{ctx}: HTTP {status}"


def extract_error_code(payload: Any) -> Optional[str]:
    if isinstance(payload, dict):
        for key in ("code", "error_code"):
            value = payload.get(key)
            if value is None:
                continue
            return value if isinstance(value, str) else str(value)
    return None


def extract_error_hint(payload: Any) -> Optional[str]:
    # Django REST style bodies: {"detail": "..."} or {"field": ["msg", ...]}.
    if isinstance(payload, dict):
        for key in ("detail", "message", "hint", "errors", "non_field_errors"):
            if key not in payload:
                continue
            text = stringify(payload[key])
            if text:
                return text
        return stringify(payload)
    if isinstance(payload, list):
        return stringify(payload)
    if isinstance(payload, str):
        return payload.strip() or None
    return None


def first_string(payload: Any) -> Optional[str]:
    if isinstance(payload, str):
        text = payload.strip()
        return text or None
    if isinstance(payload, dict):
        for key in ("detail", "message", "error", "title"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
            if isinstance(value, (list, dict)):
                candidate = first_string(value)
                if candidate:
                    return candidate
    if isinstance(payload, list):
        for item in payload:
            candidate = first_string(item)
            if candidate:
                return candidate
    return None


def stringify(data: Any, *, limit: int = 200) -> Optional[str]:
    if data is None:
        return None
    if isinstance(data, str):
        cleaned = data.strip()
        return cleaned[:limit] if cleaned else None
    if isinstance(data, list):
        parts = [text for text in (stringify(item, limit=limit) for item in data[:3]) if text]
        return "; ".join(parts)[:limit] if parts else None
    if isinstance(data, dict):
        pairs = []
        for key, value in list(data.items())[:4]:
            value_text = stringify(value, limit=limit)
            if value_text:
                pairs.append(f"{key}={value_text}")
        return ", ".join(pairs)[:limit] if pairs else None
    text = str(data).strip()
    return text[:limit] if text else None


__all__ = [
    "ApiClientError",
    "ApiError",
    "ApiServerError",
    "ApiTimeoutError",
    "build_error_message",
    "ensure_ok",
    "extract_error_code",
    "extract_error_hint",
    "first_string",
    "json_body",
    "parse_error_payload",
    "stringify",
]
