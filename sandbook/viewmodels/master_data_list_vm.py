"""Read-through cache of saved booking configurations.

The list is never patched locally: every successful mutation is followed by a
fresh ``GET /master-data``.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from sandbook.domain.entities import MasterDataRecord
from sandbook.domain.ports import GatewayPort
from sandbook.usecases.error_mapping import map_api_error

from .notices_vm import NoticesVM


class MasterDataListVM:
    def __init__(self, gateway: GatewayPort, notices: NoticesVM) -> None:
        self._gateway = gateway
        self._notices = notices
        self._records: Dict[int, MasterDataRecord] = {}
        self.loading = False
        self.loaded = False
        self._log = logging.getLogger(__name__)

    @property
    def records(self) -> List[MasterDataRecord]:
        return list(self._records.values())

    def get(self, record_id: int) -> Optional[MasterDataRecord]:
        return self._records.get(int(record_id))

    def ids(self) -> List[int]:
        return list(self._records)

    async def refresh(self) -> bool:
        """Reload from the gateway; on failure keep the previous list and post a notice."""
        self.loading = True
        try:
            records = await self._gateway.list_master_data()
        except Exception as exc:
            error = map_api_error(exc, default_code="LIST_FAILED")
            self._notices.post_error(error, context="Master data", retry=self._retry_refresh)
            return False
        finally:
            self.loading = False
        self._records = {record.id: record for record in records}
        self.loaded = True
        self._log.debug("loaded %d master data records", len(self._records))
        return True

    async def fetch_one(self, record_id: int) -> MasterDataRecord:
        """``GET /master-data/{id}``; raises ``UseCaseError`` on failure."""
        try:
            return await self._gateway.get_master_data(int(record_id))
        except Exception as exc:
            raise map_api_error(exc, default_code="FETCH_FAILED") from exc

    async def delete(self, record_id: int) -> bool:
        rid = int(record_id)
        try:
            await self._gateway.delete_master_data(rid)
        except Exception as exc:
            error = map_api_error(exc, default_code="DELETE_FAILED", mutation=True)
            self._notices.post_error(error, context=f"Delete #{rid}")
            return False
        await self.refresh()
        return True

    async def _retry_refresh(self) -> None:
        await self.refresh()


__all__ = ["MasterDataListVM"]
