from __future__ import annotations
from typing import Any, Dict, List, Mapping, Optional, Protocol, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - type checking helper
    from .entities import (
        District,
        Mandal,
        MasterDataRecord,
        Stockyard,
        User,
        Village,
    )

DistrictId = int
MandalId = int
MasterDataId = int
UserId = int


# ---- Error model ----
class UseCaseError(Exception):
    """Base class for use case level errors (user-presentable)."""

    def __init__(self, code: str, message: str, *, meta: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.meta = meta


# ---- Ports (Hexagonal boundaries) ----
class GatewayPort(Protocol):
    """Reference-data, CRUD and job-launch operations against the booking backend.

    Every method is a coroutine; implementations must not block the event loop.
    """

    # reference data
    async def list_districts(self) -> List["District"]: ...
    async def list_stockyards(self, district_id: DistrictId) -> List["Stockyard"]: ...
    async def list_mandals(self, district_id: DistrictId) -> List["Mandal"]: ...
    async def list_villages(self, mandal_id: MandalId) -> List["Village"]: ...

    # master data
    async def list_master_data(self) -> List["MasterDataRecord"]: ...
    async def get_master_data(self, record_id: MasterDataId) -> "MasterDataRecord": ...
    async def create_master_data(self, payload: Mapping[str, Any]) -> Dict[str, Any]: ...
    async def update_master_data(
        self, record_id: MasterDataId, payload: Mapping[str, Any]
    ) -> Dict[str, Any]: ...
    async def delete_master_data(self, record_id: MasterDataId) -> None: ...

    # users
    async def list_users(self) -> List["User"]: ...
    async def create_user(self, payload: Mapping[str, Any]) -> Dict[str, Any]: ...
    async def update_user(self, user_id: UserId, payload: Mapping[str, Any]) -> Dict[str, Any]: ...

    # automation
    async def start_booking(self, record_id: MasterDataId) -> Dict[str, Any]: ...  # raw session payload


class StoragePort(Protocol):
    """Persistence for console settings."""

    def save_user_settings(self, payload: Dict) -> None: ...
    def load_user_settings(self) -> Optional[Dict]: ...
