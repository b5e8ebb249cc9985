"""Adapter and view-model wiring for one console session.

This module owns lazy construction of the REST gateway and the session-scoped
state built on it (notices, master-data cache, users, booking sessions). The
gateway depends on values in :class:`sandbook.viewmodels.settings_vm.SettingsVM`.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Callable, List, Optional

from ..adapters.gateway_rest import GatewayRestAdapter
from ..domain.delivery_slots import DeliverySlotCache
from ..domain.entities import BookingSession, DeliverySlot
from ..domain.ports import GatewayPort, UseCaseError
from ..domain.time_utils import local_today
from ..usecases.booking_sessions import BookingSessionTracker, TrackerHooks
from ..viewmodels.master_data_form_vm import MasterDataFormVM
from ..viewmodels.master_data_list_vm import MasterDataListVM
from ..viewmodels.notices_vm import NoticesVM
from ..viewmodels.sessions_vm import SessionsVM
from ..viewmodels.settings_vm import SettingsVM
from ..viewmodels.users_vm import UsersVM


class ConsoleController:
    """Create and cache the gateway and session state from settings.

    Call chain:
        ``sandbook.app.main`` creates one instance per invocation and calls
        ``ensure_ready`` before any command. Tests inject a fake ``gateway``.
    """

    def __init__(
        self,
        settings_vm: SettingsVM,
        *,
        gateway: Optional[GatewayPort] = None,
        tracker_hooks: Optional[TrackerHooks] = None,
        today: Callable[[], date] = local_today,
    ) -> None:
        self.settings_vm = settings_vm
        self._gateway: Optional[GatewayPort] = gateway
        self._owns_gateway = gateway is None
        self._tracker_hooks = tracker_hooks
        self._today = today
        self._log = logging.getLogger(__name__)

        self.notices = NoticesVM()
        self._master_data: Optional[MasterDataListVM] = None
        self._users: Optional[UsersVM] = None
        self._tracker: Optional[BookingSessionTracker] = None
        self._sessions: Optional[SessionsVM] = None
        self._slots = DeliverySlotCache(settings_vm.slot_window_days)

    # ------------------------------------------------------------------
    # Lazy wiring
    # ------------------------------------------------------------------
    def ensure_ready(self) -> bool:
        """Build the gateway and view models on first use.

        Returns:
            ``False`` when no gateway was injected and settings carry no base URL.
        """
        if self._gateway is None:
            base_url = self.settings_vm.api_base_url
            if not base_url:
                return False
            self._gateway = GatewayRestAdapter(
                base_url,
                api_key=self.settings_vm.api_key or None,
                request_timeout_s=self.settings_vm.request_timeout_s,
                retries=self.settings_vm.retries,
            )
            self._owns_gateway = True
            self._log.debug("gateway ready for %s", base_url)

        if self._master_data is None:
            self._master_data = MasterDataListVM(self._gateway, self.notices)
            self._users = UsersVM(self._gateway, self.notices)
            self._tracker = BookingSessionTracker(
                self._gateway,
                self._master_data.get,
                lookup_username=self._users.username_for,
                duplicate_policy=self.settings_vm.duplicate_start_policy,
                hooks=self._tracker_hooks,
            )
            self._sessions = SessionsVM(self._tracker)
        return True

    def require_ready(self) -> None:
        if not self.ensure_ready():
            raise UseCaseError(
                "NOT_CONFIGURED",
                "No booking server configured. Set api_base_url or SANDBOOK_API_URL.",
            )

    @property
    def gateway(self) -> GatewayPort:
        self.require_ready()
        return self._gateway

    @property
    def master_data(self) -> MasterDataListVM:
        self.require_ready()
        return self._master_data

    @property
    def users(self) -> UsersVM:
        self.require_ready()
        return self._users

    @property
    def tracker(self) -> BookingSessionTracker:
        self.require_ready()
        return self._tracker

    @property
    def sessions(self) -> SessionsVM:
        self.require_ready()
        return self._sessions

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def new_form(self, on_change: Optional[Callable[[], None]] = None) -> MasterDataFormVM:
        """A form bound to the shared caches, notices and slot window."""
        self.require_ready()
        return MasterDataFormVM(
            self._gateway,
            notices=self.notices,
            master_list=self._master_data,
            users=self._users,
            slot_cache=self._slots,
            today=self._today,
            on_change=on_change,
        )

    def delivery_slots(self) -> List[DeliverySlot]:
        return self._slots.slots_for(self._today())

    async def refresh_all(self) -> bool:
        self.require_ready()
        results = await asyncio.gather(self._master_data.refresh(), self._users.refresh())
        return all(results)

    async def start_booking(self, record_id: int) -> BookingSession:
        """Start automation for ``record_id``, loading the master-data list first if needed."""
        self.require_ready()
        if not self._master_data.loaded:
            await self._master_data.refresh()
        return await self._tracker.start(record_id)

    def reset(self) -> None:
        """Drop cached view models so the next ``ensure_ready`` rebuilds them."""
        if self._tracker is not None:
            self._tracker.clear()
        self._master_data = None
        self._users = None
        self._tracker = None
        self._sessions = None
        self._slots.clear()

    async def close(self) -> None:
        self.reset()
        gateway, self._gateway = self._gateway, None
        if gateway is not None and self._owns_gateway:
            close = getattr(gateway, "close", None)
            if callable(close):
                close()

    async def __aenter__(self) -> "ConsoleController":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


__all__ = ["ConsoleController"]
