"""Credential records used as the booking user of a master-data record."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from sandbook.domain.entities import User
from sandbook.domain.errors import FormValidationError
from sandbook.domain.form_schemas import validate_user
from sandbook.domain.ports import GatewayPort, UseCaseError
from sandbook.usecases.error_mapping import map_api_error

from .notices_vm import NoticesVM


class UsersVM:
    """User list plus a small create/edit form.

    ``field_errors`` holds inline messages from the last ``save`` attempt.
    ``loaded`` and ``load_error`` describe the last ``refresh``; a form
    cannot resolve a booking user until the list has loaded.
    """

    def __init__(self, gateway: GatewayPort, notices: NoticesVM) -> None:
        self._gateway = gateway
        self._notices = notices
        self._users: Dict[int, User] = {}
        self.loaded = False
        self.load_error: Optional[UseCaseError] = None
        self.field_errors: Dict[str, str] = {}
        self.saving = False
        self._log = logging.getLogger(__name__)

    @property
    def users(self) -> List[User]:
        return list(self._users.values())

    def get(self, user_id: int) -> Optional[User]:
        return self._users.get(int(user_id))

    def username_for(self, user_id: int) -> Optional[str]:
        user = self._users.get(int(user_id))
        return user.username if user else None

    async def refresh(self) -> bool:
        try:
            users = await self._gateway.list_users()
        except Exception as exc:
            self.load_error = map_api_error(exc, default_code="LIST_FAILED")
            self._notices.post_error(self.load_error, context="Users", retry=self.refresh)
            return False
        self._users = {user.id: user for user in users}
        self.loaded = True
        self.load_error = None
        return True

    async def save(self, username: str, password: str, *, user_id: Optional[int] = None) -> bool:
        """Create (``user_id`` is None) or update a user, then reload the list."""
        self.field_errors = {}
        try:
            form = validate_user({"username": username, "password": password})
        except FormValidationError as exc:
            self.field_errors = exc.field_errors
            return False

        self.saving = True
        try:
            if user_id is None:
                await self._gateway.create_user(form.to_payload())
            else:
                await self._gateway.update_user(int(user_id), form.to_payload())
        except Exception as exc:
            error = map_api_error(exc, default_code="SAVE_FAILED", mutation=True)
            self._notices.post_error(error, context="Save user")
            return False
        finally:
            self.saving = False
        self._log.info("user '%s' saved", form.username)
        await self.refresh()
        return True


__all__ = ["UsersVM"]
