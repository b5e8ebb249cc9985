"""Shared HTTP transport utilities for the gateway adapter.

This module provides a thin wrapper around ``requests.Session`` that owns the
timeout policy, retry behavior, and API-key header construction.

Dependencies:
    - ``requests`` for network I/O.
    - ``sandbook.adapters.api_errors.ApiTimeoutError`` for typed transport failures.

Call context:
    - Constructed by ``sandbook.adapters.gateway_rest.GatewayRestAdapter``.
    - Every method blocks; the adapter runs them through ``asyncio.to_thread``
      so the console event loop never waits on the network. Each worker thread
      gets its own ``requests.Session`` since sessions are not thread-safe.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import requests
from requests import exceptions as req_exc

from sandbook.adapters.api_errors import ApiError, ApiTimeoutError

_log = logging.getLogger(__name__)


@dataclass
class HttpConfig:
    """Timeout and retry configuration for gateway HTTP calls.

    Attributes:
        request_timeout_s: Timeout in seconds applied to every request.
        retries: Retry attempts after the initial request. Only GET requests
            are retried; writes and job launches are sent exactly once.
        verify_tls: Whether to verify the gateway's TLS certificate.
    """
    request_timeout_s: float = 10
    retries: int = 2
    verify_tls: bool = True


class RetryingSession:
    """Shared requests wrapper with API-key headers and a GET retry loop.

    This class is intentionally transport-only. Callers provide endpoint URLs and
    decide how to map non-2xx responses into domain/use-case errors.
    """

    def __init__(
        self,
        api_key: Optional[str],
        cfg: HttpConfig,
        session_factory: Callable[[], requests.Session] = requests.Session,
    ) -> None:
        self.api_key = api_key
        self.cfg = cfg
        self.session_factory = session_factory
        self._local = threading.local()
        self._sessions: List[requests.Session] = []
        self._lock = threading.Lock()

    @property
    def session(self) -> requests.Session:
        """The calling thread's session, created on first use."""
        session = getattr(self._local, "session", None)
        if session is None:
            session = self.session_factory()
            self._local.session = session
            with self._lock:
                self._sessions.append(session)
        return session

    def _headers(self, accept: str = "application/json", json_body: bool = False) -> Dict[str, str]:
        headers = {"Accept": accept}
        if self.api_key:
            headers["X-API-Key"] = self.api_key
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    def get(
        self,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> requests.Response:
        """Send a GET request with retries on timeout/connectivity failures.

        Raises:
            ApiTimeoutError: If all attempts fail with timeout/connection errors.
            ApiError: For any other ``requests`` failure.
        """
        context = f"GET {url}"
        last_err: ApiError | None = None
        attempts = self.cfg.retries + 1
        for attempt in range(1, attempts + 1):
            try:
                return self.session.get(
                    url,
                    params=params,
                    headers=self._headers(),
                    timeout=timeout or self.cfg.request_timeout_s,
                    verify=self.cfg.verify_tls,
                )
            except (req_exc.Timeout, req_exc.ConnectionError):
                _log.debug("%s: attempt %d/%d failed", context, attempt, attempts)
                last_err = ApiTimeoutError(f"Timeout contacting {url}", context=context)
            except req_exc.RequestException as exc:
                raise ApiError(str(exc), context=context) from exc
        raise last_err

    def send(
        self,
        method: str,
        url: str,
        *,
        json_body: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> requests.Response:
        """Send a single POST/PUT/DELETE request.

        Raises:
            ApiTimeoutError: If the request fails with a timeout/connection error.
            ApiError: For any other ``requests`` failure.
        """
        verb = method.upper()
        context = f"{verb} {url}"
        data = None if json_body is None else json.dumps(json_body)
        try:
            return self.session.request(
                verb,
                url,
                data=data,
                headers=self._headers(json_body=json_body is not None),
                timeout=timeout or self.cfg.request_timeout_s,
                verify=self.cfg.verify_tls,
            )
        except (req_exc.Timeout, req_exc.ConnectionError) as exc:
            raise ApiTimeoutError(f"Timeout contacting {url}", context=context) from exc
        except req_exc.RequestException as exc:
            raise ApiError(str(exc), context=context) from exc

    def close(self) -> None:
        with self._lock:
            sessions, self._sessions = self._sessions, []
        self._local = threading.local()
        for session in sessions:
            session.close()


__all__ = ["HttpConfig", "RetryingSession"]
