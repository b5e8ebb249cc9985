from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, TypeVar

from sandbook.domain.entities import (
    District,
    Mandal,
    MasterDataRecord,
    Stockyard,
    User,
    Village,
)
from sandbook.domain.ports import DistrictId, GatewayPort, MandalId, MasterDataId, UserId

from .api_errors import ApiError, ensure_ok, json_body
from .http_client import HttpConfig, RetryingSession

T = TypeVar("T")


class GatewayRestAdapter(GatewayPort):
    """REST adapter for the booking backend.

    Each public coroutine hands its blocking ``requests`` call to
    ``asyncio.to_thread``; parsing happens in the worker as well, so only
    ready domain objects come back to the event loop.
    """

    def __init__(
        self,
        base_url: str,
        *,
        api_key: Optional[str] = None,
        request_timeout_s: float = 10,
        retries: int = 2,
        verify_tls: bool = True,
    ) -> None:
        cleaned = str(base_url or "").strip()
        if not cleaned:
            raise ValueError("GatewayRestAdapter requires a base URL")
        self.base_url = cleaned.rstrip("/")
        self.cfg = HttpConfig(
            request_timeout_s=request_timeout_s, retries=retries, verify_tls=verify_tls
        )
        self.http = RetryingSession(api_key, self.cfg)
        self._log = logging.getLogger(__name__)

    # ---------- reference data ----------

    async def list_districts(self) -> List[District]:
        return await asyncio.to_thread(
            self._get_list, "/districts", "districts", District.from_payload
        )

    async def list_stockyards(self, district_id: DistrictId) -> List[Stockyard]:
        did = int(district_id)
        return await asyncio.to_thread(
            self._get_list,
            f"/districts/{did}/stockyards",
            f"stockyards[{did}]",
            lambda entry: Stockyard.from_payload(entry, district_id=did),
        )

    async def list_mandals(self, district_id: DistrictId) -> List[Mandal]:
        did = int(district_id)
        return await asyncio.to_thread(
            self._get_list,
            f"/districts/{did}/mandals",
            f"mandals[{did}]",
            lambda entry: Mandal.from_payload(entry, district_id=did),
        )

    async def list_villages(self, mandal_id: MandalId) -> List[Village]:
        mid = int(mandal_id)
        return await asyncio.to_thread(
            self._get_list,
            f"/districts/mandals/{mid}/villages",
            f"villages[{mid}]",
            lambda entry: Village.from_payload(entry, mandal_id=mid),
        )

    # ---------- master data ----------

    async def list_master_data(self) -> List[MasterDataRecord]:
        return await asyncio.to_thread(
            self._get_list, "/master-data", "master_data", MasterDataRecord.from_payload
        )

    async def get_master_data(self, record_id: MasterDataId) -> MasterDataRecord:
        rid = int(record_id)
        return await asyncio.to_thread(
            self._get_object, f"/master-data/{rid}", f"master_data[{rid}]", MasterDataRecord.from_payload
        )

    async def create_master_data(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        return await asyncio.to_thread(
            self._send, "POST", "/master-data", "create_master_data", dict(payload)
        )

    async def update_master_data(
        self, record_id: MasterDataId, payload: Mapping[str, Any]
    ) -> Dict[str, Any]:
        rid = int(record_id)
        return await asyncio.to_thread(
            self._send, "PUT", f"/master-data/{rid}", f"update_master_data[{rid}]", dict(payload)
        )

    async def delete_master_data(self, record_id: MasterDataId) -> None:
        rid = int(record_id)
        await asyncio.to_thread(
            self._send, "DELETE", f"/master-data/{rid}", f"delete_master_data[{rid}]", None
        )

    # ---------- users ----------

    async def list_users(self) -> List[User]:
        return await asyncio.to_thread(self._get_list, "/users", "users", User.from_payload)

    async def create_user(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        return await asyncio.to_thread(self._send, "POST", "/users", "create_user", dict(payload))

    async def update_user(self, user_id: UserId, payload: Mapping[str, Any]) -> Dict[str, Any]:
        uid = int(user_id)
        return await asyncio.to_thread(
            self._send, "PUT", f"/users/{uid}", f"update_user[{uid}]", dict(payload)
        )

    # ---------- automation ----------

    async def start_booking(self, record_id: MasterDataId) -> Dict[str, Any]:
        rid = int(record_id)
        return await asyncio.to_thread(
            self._send,
            "POST",
            "/booking/start",
            f"booking_start[{rid}]",
            {"booking_master_id": rid},
        )

    def close(self) -> None:
        self.http.close()

    # ------------------------------------------------------------------
    # Helpers (run inside worker threads)
    # ------------------------------------------------------------------
    def _make_url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _get_list(self, path: str, ctx: str, factory: Callable[[Any], T]) -> List[T]:
        resp = self.http.get(self._make_url(path))
        ensure_ok(resp, ctx)
        data = json_body(resp, ctx)
        if isinstance(data, dict) and isinstance(data.get("results"), list):
            data = data["results"]
        if not isinstance(data, list):
            raise ApiError(f"{ctx}: expected list response", status=resp.status_code, context=ctx)
        items: List[T] = []
        for entry in data:
            try:
                items.append(factory(entry))
            except ValueError as exc:
                self._log.warning("%s: skipping malformed entry: %s", ctx, exc)
        return items

    def _get_object(self, path: str, ctx: str, factory: Callable[[Any], T]) -> T:
        resp = self.http.get(self._make_url(path))
        ensure_ok(resp, ctx)
        data = json_body(resp, ctx)
        try:
            return factory(data)
        except ValueError as exc:
            raise ApiError(f"{ctx}: {exc}", status=resp.status_code, payload=data, context=ctx) from exc

    def _send(
        self, method: str, path: str, ctx: str, body: Optional[Dict[str, Any]]
    ) -> Dict[str, Any]:
        resp = self.http.send(method, self._make_url(path), json_body=body)
        ensure_ok(resp, ctx)
        data = json_body(resp, ctx)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ApiError(f"{ctx}: expected object response", status=resp.status_code, context=ctx)
        return data


__all__ = ["GatewayRestAdapter"]
