"""In-memory gateway and fixtures shared by use-case, view-model and app tests."""

from __future__ import annotations

import asyncio
import itertools
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sandbook.adapters.api_errors import ApiClientError
from sandbook.domain.entities import District, Mandal, MasterDataRecord, Stockyard, User, Village
from sandbook.viewmodels.master_data_form_vm import MasterDataFormVM
from sandbook.viewmodels.master_data_list_vm import MasterDataListVM
from sandbook.viewmodels.notices_vm import NoticesVM
from sandbook.viewmodels.users_vm import UsersVM

TODAY = date(2024, 3, 10)
SLOT = "11-03-2024 (12NOON - 06PM)"

CallKey = Tuple[str, Any]


class FakeGateway:
    """Async GatewayPort double.

    ``hold(op, key)`` returns an ``asyncio.Event``; the matching call waits on
    it before answering, which lets a test release responses out of order.
    ``failures[(op, key)]`` makes the matching call raise.
    """

    def __init__(self) -> None:
        self.districts: List[District] = []
        self.stockyards: Dict[int, List[Stockyard]] = {}
        self.mandals: Dict[int, List[Mandal]] = {}
        self.villages: Dict[int, List[Village]] = {}
        self.records: Dict[int, MasterDataRecord] = {}
        self.users: List[User] = []
        self.start_responses: Dict[int, Any] = {}
        self.failures: Dict[CallKey, Exception] = {}
        self.calls: List[CallKey] = []
        self.created: List[Dict[str, Any]] = []
        self.updated: List[Tuple[int, Dict[str, Any]]] = []
        self.deleted: List[int] = []
        self.user_writes: List[Tuple[Optional[int], Dict[str, Any]]] = []
        self._gates: Dict[CallKey, asyncio.Event] = {}
        self._ids = itertools.count(100)
        self._session_ids = itertools.count(1)

    def hold(self, op: str, key: Any = None) -> asyncio.Event:
        gate = asyncio.Event()
        self._gates[(op, key)] = gate
        return gate

    def count(self, op: str, key: Any = None) -> int:
        return sum(1 for call in self.calls if call == (op, key))

    async def _call(self, op: str, key: Any = None) -> None:
        self.calls.append((op, key))
        gate = self._gates.get((op, key))
        if gate is not None:
            await gate.wait()
        exc = self.failures.get((op, key))
        if exc is not None:
            raise exc

    # reference data
    async def list_districts(self) -> List[District]:
        await self._call("districts")
        return list(self.districts)

    async def list_stockyards(self, district_id: int) -> List[Stockyard]:
        await self._call("stockyards", district_id)
        return list(self.stockyards.get(district_id, []))

    async def list_mandals(self, district_id: int) -> List[Mandal]:
        await self._call("mandals", district_id)
        return list(self.mandals.get(district_id, []))

    async def list_villages(self, mandal_id: int) -> List[Village]:
        await self._call("villages", mandal_id)
        return list(self.villages.get(mandal_id, []))

    # master data
    async def list_master_data(self) -> List[MasterDataRecord]:
        await self._call("master_data")
        return list(self.records.values())

    async def get_master_data(self, record_id: int) -> MasterDataRecord:
        await self._call("get_master_data", record_id)
        if record_id not in self.records:
            raise ApiClientError("not found", status=404, context="get_master_data")
        return self.records[record_id]

    async def create_master_data(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        await self._call("create_master_data")
        new_id = next(self._ids)
        self.created.append(dict(payload))
        self.records[new_id] = MasterDataRecord.from_payload({**payload, "id": new_id})
        return {"id": new_id}

    async def update_master_data(self, record_id: int, payload: Mapping[str, Any]) -> Dict[str, Any]:
        await self._call("update_master_data", record_id)
        self.updated.append((record_id, dict(payload)))
        self.records[record_id] = MasterDataRecord.from_payload({**payload, "id": record_id})
        return {"id": record_id}

    async def delete_master_data(self, record_id: int) -> None:
        await self._call("delete_master_data", record_id)
        self.deleted.append(record_id)
        self.records.pop(record_id, None)

    # users
    async def list_users(self) -> List[User]:
        await self._call("users")
        return list(self.users)

    async def create_user(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        await self._call("create_user")
        new_id = next(self._ids)
        self.user_writes.append((None, dict(payload)))
        self.users.append(User(id=new_id, username=payload["username"], password=payload["password"]))
        return {"id": new_id}

    async def update_user(self, user_id: int, payload: Mapping[str, Any]) -> Dict[str, Any]:
        await self._call("update_user", user_id)
        self.user_writes.append((user_id, dict(payload)))
        self.users = [
            User(id=user_id, username=payload["username"], password=payload["password"])
            if user.id == user_id
            else user
            for user in self.users
        ]
        return {"id": user_id}

    # automation
    async def start_booking(self, record_id: int) -> Dict[str, Any]:
        await self._call("start_booking", record_id)
        if record_id in self.start_responses:
            return self.start_responses[record_id]
        return {"id": f"sess-{next(self._session_ids)}", "status": "success"}


def make_record(record_id: int = 1, **overrides: Any) -> MasterDataRecord:
    values: Dict[str, Any] = dict(
        id=record_id,
        name="Krishna home site",
        booking_user=5,
        district=3,
        stockyard="Krishna Yard A",
        sand_purpose="1",
        vehicle_no="AP16TX1234",
        delivery_district=3,
        delivery_mandal=31,
        delivery_village=311,
        delivery_slot=SLOT,
        payment_mode="UPI",
    )
    values.update(overrides)
    return MasterDataRecord(**values)


def seeded_gateway() -> FakeGateway:
    """Krishna (3) and Guntur (7) with their stockyards, mandals and villages."""
    gw = FakeGateway()
    gw.districts = [District(3, "Krishna"), District(7, "Guntur")]
    gw.stockyards = {
        3: [Stockyard("Krishna Yard A", "Fine", "550", 3)],
        7: [Stockyard("Guntur Yard B", "Coarse", "480", 7)],
    }
    gw.mandals = {
        3: [Mandal(31, "Vijayawada", 3), Mandal(32, "Machilipatnam", 3)],
        7: [Mandal(71, "Tenali", 7)],
    }
    gw.villages = {
        31: [Village(311, "Gollapudi", 31)],
        32: [Village(321, "Pedana", 32)],
        71: [Village(711, "Angalakuduru", 71)],
    }
    gw.users = [User(5, "operator1", "secret1")]
    gw.records = {1: make_record(1)}
    return gw


def make_form(gw: FakeGateway, notices: Optional[NoticesVM] = None) -> MasterDataFormVM:
    notices = notices or NoticesVM()
    return MasterDataFormVM(
        gw,
        notices=notices,
        master_list=MasterDataListVM(gw, notices),
        users=UsersVM(gw, notices),
        today=lambda: TODAY,
    )


async def drain(rounds: int = 25) -> None:
    """Let pending tasks run up to their next suspension point."""
    for _ in range(rounds):
        await asyncio.sleep(0)
