"""Master-data form state across create, edit and read-only view.

Call context:
    ``ConsoleController.new_form`` builds one instance per open form. The view
    binds selects to ``options(field)`` and pushes every committed value
    through ``set_field``; ``open_edit`` replays a stored record with the
    ``rehydration`` origin so dependent values survive their option reloads.

Responsibilities:
    - Own field values and the dependent option cells (stockyard, delivery
      mandal, delivery village).
    - Clear dependent values on user-driven parent changes only.
    - Validate locally before any create/update call.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from functools import partial
from typing import Any, Callable, Dict, List, Literal, Optional, Tuple

from sandbook.domain.delivery_slots import DeliverySlotCache
from sandbook.domain.dependency_graph import (
    EDGES,
    DependentCell,
    FieldChange,
    FieldOrigin,
    children_of,
    descendants_of,
    parent_of,
)
from sandbook.domain.entities import (
    PAYMENT_MODES,
    SAND_PURPOSES,
    DeliverySlot,
    District,
    MasterDataRecord,
    Stockyard,
)
from sandbook.domain.errors import FormValidationError, StaleResultDiscarded
from sandbook.domain.form_schemas import (
    MASTER_DATA_FIELDS,
    MASTER_DATA_LABELS,
    MasterDataForm,
    validate_master_data,
)
from sandbook.domain.ports import GatewayPort, UseCaseError
from sandbook.domain.time_utils import local_today
from sandbook.usecases.error_mapping import map_api_error
from sandbook.usecases.resolve_reference_data import ReferenceDataResolver, Resolution

from .master_data_list_vm import MasterDataListVM
from .notices_vm import NoticesVM
from .users_vm import UsersVM

FormMode = Literal["create", "edit", "view"]
Option = Tuple[str, str]


def empty_fields() -> Dict[str, str]:
    return {name: "" for name in MASTER_DATA_FIELDS}


def _list_state_error(label: str, loaded: bool, error: Optional[UseCaseError]) -> Optional[str]:
    # A failed reload reports failure even when an older list is still cached.
    if error is not None:
        return f"{label} options failed to load"
    if not loaded:
        return f"{label} options are still loading"
    return None


class MasterDataFormVM:
    """Form controller for one master-data record."""

    def __init__(
        self,
        gateway: GatewayPort,
        *,
        notices: NoticesVM,
        master_list: MasterDataListVM,
        users: Optional[UsersVM] = None,
        resolver: Optional[ReferenceDataResolver] = None,
        slot_cache: Optional[DeliverySlotCache] = None,
        today: Callable[[], date] = local_today,
        on_change: Optional[Callable[[], None]] = None,
    ) -> None:
        self._gateway = gateway
        self._notices = notices
        self._list = master_list
        self._users = users
        self._resolver = resolver or ReferenceDataResolver.for_gateway(gateway)
        self._slots = slot_cache or DeliverySlotCache()
        self._today = today
        self.on_change = on_change
        self._log = logging.getLogger(__name__)

        self.mode: Optional[FormMode] = None
        self.record_id: Optional[int] = None
        self.view_record: Optional[MasterDataRecord] = None
        self.fields: Dict[str, str] = empty_fields()
        self.field_errors: Dict[str, str] = {}
        self.submit_error: Optional[UseCaseError] = None
        self.submitting = False
        self.districts: List[District] = []
        self.districts_loaded = False
        self.districts_error: Optional[UseCaseError] = None
        self.cells: Dict[str, DependentCell[Any]] = {
            "stockyard": DependentCell("stockyard", key=lambda s: s.name),
            "delivery_mandal": DependentCell("delivery_mandal", key=lambda m: str(m.id)),
            "delivery_village": DependentCell("delivery_village", key=lambda v: str(v.id)),
        }

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def is_open(self) -> bool:
        return self.mode is not None

    @property
    def read_only(self) -> bool:
        return self.mode == "view"

    @property
    def delivery_slots(self) -> List[DeliverySlot]:
        """Slots for today's window; rebuilt only when the date rolls over."""
        return self._slots.slots_for(self._today())

    @property
    def selected_stockyard(self) -> Optional[Stockyard]:
        return self.cells["stockyard"].find(self.fields["stockyard"])

    def options(self, field: str) -> List[Option]:
        """``(value, label)`` pairs for a select field."""
        if field in ("district", "delivery_district"):
            return [(str(d.id), d.name) for d in self.districts]
        if field == "booking_user":
            users = self._users.users if self._users else []
            return [(str(u.id), u.username) for u in users]
        if field == "stockyard":
            return [(s.name, s.name) for s in self.cells["stockyard"].items]
        if field in ("delivery_mandal", "delivery_village"):
            return [(str(item.id), item.name) for item in self.cells[field].items]
        if field == "sand_purpose":
            return list(SAND_PURPOSES.items())
        if field == "payment_mode":
            return list(PAYMENT_MODES.items())
        if field == "delivery_slot":
            return [(slot.value, slot.label) for slot in self.delivery_slots]
        raise KeyError(f"'{field}' is not a select field")

    def is_enabled(self, field: str) -> bool:
        if self.read_only or not self.is_open:
            return False
        cell = self.cells.get(field)
        return cell.enabled if cell is not None else True

    # ------------------------------------------------------------------
    # Modes
    # ------------------------------------------------------------------
    async def open_create(self) -> None:
        self._reset("create")
        await self._load_options()
        self._changed()

    async def open_edit(self, record: MasterDataRecord) -> None:
        """Prefill from ``record`` and reload dependent options without clearing values."""
        self._reset("edit")
        self.record_id = record.id
        self.fields.update(record.to_form_fields())
        await self._load_options()
        if self.mode != "edit" or self.record_id != record.id:
            return
        await asyncio.gather(
            *(
                self._refresh_children(
                    FieldChange(edge.parent, self.fields[edge.parent], "rehydration")
                )
                for edge in EDGES
            )
        )
        slot = self.fields["delivery_slot"]
        if slot and slot not in self._slots.values_for(self._today()):
            self.field_errors["delivery_slot"] = (
                f"Delivery Slot '{slot}' is outside the bookable window"
            )
        self._changed()

    async def open_view(self, record_id: int) -> bool:
        """Load one record by id for read-only display.

        Only the district and user lists are loaded for name lookups;
        dependent option lists are never fetched in view mode.
        """
        self._reset("view")
        try:
            record = await self._list.fetch_one(record_id)
        except UseCaseError as exc:
            self._notices.post_error(exc, context=f"Master data #{record_id}")
            self.close()
            return False
        if self.mode != "view":
            return False
        await self._load_options()
        if self.mode != "view":
            return False
        self.view_record = record
        self.record_id = record.id
        self.fields.update(record.to_form_fields())
        self._changed()
        return True

    def view_rows(self) -> List[Tuple[str, str]]:
        """Label/value pairs for the read-only projection.

        Districts and the booking user are shown by name when the cached lists
        know them. Delivery mandal and village stay as ids since their lists
        are not loaded in view mode.
        """
        names = {str(d.id): d.name for d in self.districts}
        usernames = {str(u.id): u.username for u in (self._users.users if self._users else [])}
        rows: List[Tuple[str, str]] = []
        for field in MASTER_DATA_FIELDS:
            value = self.fields.get(field, "")
            if field in ("district", "delivery_district"):
                value = names.get(value, value)
            elif field == "sand_purpose":
                value = SAND_PURPOSES.get(value, value)
            elif field == "payment_mode":
                value = PAYMENT_MODES.get(value, value)
            elif field == "booking_user":
                nested = self.view_record.booking_username if self.view_record else None
                value = nested or usernames.get(value, value)
            rows.append((MASTER_DATA_LABELS[field], value or "-"))
        return rows

    def close(self) -> None:
        """Close the form; in-flight option loads become stale."""
        for cell in self.cells.values():
            cell.reset()
        self.mode = None
        self.record_id = None
        self.view_record = None
        self.fields = empty_fields()
        self.field_errors = {}
        self.submit_error = None
        self._changed()

    # ------------------------------------------------------------------
    # Field updates
    # ------------------------------------------------------------------
    async def set_field(self, field: str, value: Any, *, origin: FieldOrigin = "user") -> None:
        if not self.is_open:
            raise UseCaseError("FORM_CLOSED", "The form is not open.")
        if self.read_only:
            raise UseCaseError("READ_ONLY", "This record is open read-only.")
        if field not in self.fields:
            raise KeyError(f"Unknown field '{field}'")
        text = "" if value is None else str(value).strip()
        await self.apply_change(FieldChange(field, text, origin))

    async def apply_change(self, change: FieldChange) -> None:
        previous = self.fields.get(change.field, "")
        self.fields[change.field] = change.value
        self.field_errors.pop(change.field, None)
        children = children_of(change.field)
        if not children:
            self._changed()
            return
        if change.origin == "user":
            if change.value == previous and self._children_settled_for(change.field):
                self._changed()
                return
            self._clear_descendants(change.field)
        await self._refresh_children(change)

    async def retry_options(self, field: str) -> None:
        """Reload a dependent field's options for the current parent value."""
        parent = parent_of(field)
        if parent is None or not self.is_open or self.read_only:
            return
        # Re-checks the kept value against the reloaded list, never clears it.
        await self._resolve_child(field, FieldChange(parent, self.fields[parent], "rehydration"))

    # ------------------------------------------------------------------
    # Validation and submission
    # ------------------------------------------------------------------
    def validate(self) -> bool:
        try:
            self._build_form()
        except FormValidationError as exc:
            self.field_errors = exc.field_errors
            self._changed()
            return False
        self.field_errors = {}
        return True

    async def submit(self) -> bool:
        """Insert or update the record; closes the form only on success."""
        if self.mode not in ("create", "edit"):
            raise UseCaseError("READ_ONLY", "Only create and edit forms can be submitted.")
        try:
            form = self._build_form()
        except FormValidationError as exc:
            self.field_errors = exc.field_errors
            self._changed()
            return False

        self.field_errors = {}
        self.submit_error = None
        payload = form.to_payload()
        self.submitting = True
        try:
            if self.mode == "create":
                await self._gateway.create_master_data(payload)
            else:
                await self._gateway.update_master_data(int(self.record_id), payload)
        except Exception as exc:
            error = map_api_error(exc, default_code="SAVE_FAILED", mutation=True)
            self.submit_error = error
            self._notices.post_error(error, context="Save booking")
            return False
        finally:
            self.submitting = False
            self._changed()

        self._log.info("master data '%s' saved (%s)", form.name, self.mode)
        await self._list.refresh()
        self.close()
        return True

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _reset(self, mode: FormMode) -> None:
        self.close()
        self.mode = mode

    async def _load_options(self) -> None:
        tasks = []
        if not self.districts_loaded:
            tasks.append(self._load_districts())
        if self._users is not None and not self._users.loaded:
            tasks.append(self._users.refresh())
        if tasks:
            await asyncio.gather(*tasks)

    async def _load_districts(self) -> None:
        try:
            districts = await self._gateway.list_districts()
        except Exception as exc:
            self.districts_error = map_api_error(exc, default_code="REFERENCE_FETCH_FAILED")
            self._notices.post_error(
                self.districts_error, context="Districts", retry=self._load_districts
            )
            self._changed()
            return
        self.districts = list(districts)
        self.districts_loaded = True
        self.districts_error = None
        self._changed()

    def _children_settled_for(self, field: str) -> bool:
        value = self.fields[field]
        return all(
            self.cells[child].parent_value == value
            and not self.cells[child].loading
            and self.cells[child].error is None
            for child in children_of(field)
        )

    def _clear_descendants(self, field: str) -> None:
        for descendant in descendants_of(field):
            self.fields[descendant] = ""
            self.field_errors.pop(descendant, None)
            for grandchild in children_of(descendant):
                self.cells[grandchild].reset()

    async def _refresh_children(self, change: FieldChange) -> None:
        await asyncio.gather(
            *(self._resolve_child(child, change) for child in children_of(change.field))
        )

    async def _resolve_child(self, child: str, change: FieldChange) -> None:
        cell = self.cells[child]
        if not change.value:
            cell.reset()
            self._changed()
            return
        ticket = cell.begin(change.value)
        self._changed()
        resolution = await self._resolver.resolve(ticket)
        if not self._settle(cell, resolution):
            return
        if change.origin == "rehydration":
            self._check_kept_value(child)
        self._changed()

    def _settle(self, cell: DependentCell[Any], resolution: Resolution) -> bool:
        """Apply a resolution to its cell; ``False`` if stale or failed."""
        try:
            if resolution.ok:
                cell.apply(resolution.ticket, resolution.items)
            else:
                cell.fail(resolution.ticket, resolution.error.message)
        except StaleResultDiscarded as exc:
            self._log.debug("%s", exc)
            return False
        if not resolution.ok:
            self._notices.post_error(
                resolution.error,
                context=MASTER_DATA_LABELS[cell.field],
                retry=partial(self.retry_options, cell.field),
            )
            self._changed()
            return False
        return True

    def _check_kept_value(self, field: str) -> None:
        value = self.fields[field]
        if not value:
            return
        if self.cells[field].contains(value):
            self.field_errors.pop(field, None)
            return
        parent = parent_of(field)
        self.field_errors[field] = (
            f"{MASTER_DATA_LABELS[field]} '{value}' is not available for the selected "
            f"{MASTER_DATA_LABELS[parent]}"
        )

    def _build_form(self) -> MasterDataForm:
        errors: Dict[str, str] = {}
        form: Optional[MasterDataForm] = None
        try:
            form = validate_master_data(self.fields)
        except FormValidationError as exc:
            errors.update(exc.field_errors)
        for field, message in self._reference_errors().items():
            errors.setdefault(field, message)
        if errors or form is None:
            raise FormValidationError(errors)
        return form

    def _reference_errors(self) -> Dict[str, str]:
        """References that cannot be resolved through the current chain state."""
        errors: Dict[str, str] = {}
        district_ids = {str(d.id) for d in self.districts}
        for field in ("district", "delivery_district"):
            value = self.fields[field]
            if not value:
                continue
            message = _list_state_error(
                MASTER_DATA_LABELS[field], self.districts_loaded, self.districts_error
            )
            if message is None and value not in district_ids:
                message = f"{MASTER_DATA_LABELS[field]} is not a known district"
            if message:
                errors[field] = message
        user_value = self.fields["booking_user"]
        if user_value:
            users = self._users
            message = _list_state_error(
                "Booking User",
                users is not None and users.loaded,
                users.load_error if users is not None else None,
            )
            if message is None and user_value not in {str(u.id) for u in users.users}:
                message = "Booking User is not a known user"
            if message:
                errors["booking_user"] = message
        for field, cell in self.cells.items():
            value = self.fields[field]
            if not value:
                continue
            label = MASTER_DATA_LABELS[field]
            parent_value = self.fields[cell.parent_field]
            if cell.parent_value != parent_value or cell.loading:
                errors[field] = f"{label} options are still loading"
            elif cell.error is not None:
                errors[field] = f"{label} options failed to load"
            elif not cell.contains(value):
                errors[field] = (
                    f"{label} '{value}' is not available for the selected "
                    f"{MASTER_DATA_LABELS[cell.parent_field]}"
                )
        slot = self.fields["delivery_slot"]
        if slot and slot not in self._slots.values_for(self._today()):
            errors["delivery_slot"] = f"Delivery Slot '{slot}' is outside the bookable window"
        return errors

    def _changed(self) -> None:
        if self.on_change:
            self.on_change()


__all__ = ["FormMode", "MasterDataFormVM", "empty_fields"]
