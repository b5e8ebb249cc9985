"""Command-line entry point for the operator console."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, TextIO, Tuple

from ..adapters.storage_local import StorageLocal
from ..domain.form_schemas import MASTER_DATA_FIELDS
from ..domain.ports import UseCaseError
from ..usecases.error_mapping import map_api_error
from ..utils import logging as logging_utils
from ..viewmodels.master_data_form_vm import MasterDataFormVM
from ..viewmodels.settings_vm import SettingsVM
from .controller import ConsoleController

log = logging.getLogger(__name__)

Command = Callable[[ConsoleController, argparse.Namespace, TextIO], Awaitable[int]]
Assignment = Tuple[str, str]


def _assignment(text: str) -> Assignment:
    field, sep, value = text.partition("=")
    field = field.strip()
    if not sep or field not in MASTER_DATA_FIELDS:
        raise argparse.ArgumentTypeError(
            f"expected FIELD=VALUE with FIELD one of: {', '.join(MASTER_DATA_FIELDS)}"
        )
    return field, value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sandbook-console", description="Sand booking operator console."
    )
    parser.add_argument("--settings", metavar="DIR", help="Directory holding user_settings.json")
    parser.add_argument("--base-url", metavar="URL", help="Booking server base URL")
    parser.add_argument("--debug", action="store_true", help="Enable DEBUG logging")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("districts", help="List districts")
    for name, target in (
        ("stockyards", "DISTRICT_ID"),
        ("mandals", "DISTRICT_ID"),
        ("villages", "MANDAL_ID"),
    ):
        sub = commands.add_parser(name, help=f"List {name} for {target}")
        sub.add_argument("parent_id", type=int, metavar=target)
    commands.add_parser("slots", help="List bookable delivery slots")
    commands.add_parser("records", help="List master data records")
    show = commands.add_parser("show", help="Show one master data record")
    show.add_argument("record_id", type=int, metavar="MASTER_ID")
    commands.add_parser("users", help="List booking users")
    start = commands.add_parser("start", help="Start booking automation for a record")
    start.add_argument("record_id", type=int, metavar="MASTER_ID")
    create = commands.add_parser("create", help="Create a master data record")
    create.add_argument("values", nargs="+", type=_assignment, metavar="FIELD=VALUE")
    edit = commands.add_parser("edit", help="Update fields of a master data record")
    edit.add_argument("record_id", type=int, metavar="MASTER_ID")
    edit.add_argument("values", nargs="+", type=_assignment, metavar="FIELD=VALUE")
    save_user = commands.add_parser("save-user", help="Create a booking user, or update one with --id")
    save_user.add_argument("username")
    save_user.add_argument("password")
    save_user.add_argument("--id", type=int, dest="user_id", metavar="USER_ID")
    commands.add_parser("save-settings", help="Write the effective settings to --settings DIR")
    return parser


def load_settings(args: argparse.Namespace) -> SettingsVM:
    """Settings file, then ``SANDBOOK_*`` env, then command-line flags."""
    settings = SettingsVM()
    if args.settings:
        payload = StorageLocal(args.settings).load_user_settings()
        if payload:
            settings.apply_dict(payload)
    settings.apply_env()
    if args.base_url:
        settings.api_base_url = args.base_url
    if args.debug:
        settings.set_debug_logging(True)
    return settings


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def _fetch(call: Awaitable, *, code: str):
    try:
        return await call
    except Exception as exc:
        raise map_api_error(exc, default_code=code) from exc


async def cmd_districts(ctrl: ConsoleController, args: argparse.Namespace, out: TextIO) -> int:
    for district in await _fetch(ctrl.gateway.list_districts(), code="REFERENCE_FETCH_FAILED"):
        print(f"{district.id}\t{district.name}", file=out)
    return 0


async def cmd_stockyards(ctrl: ConsoleController, args: argparse.Namespace, out: TextIO) -> int:
    yards = await _fetch(ctrl.gateway.list_stockyards(args.parent_id), code="REFERENCE_FETCH_FAILED")
    for yard in yards:
        print(f"{yard.name}\t{yard.sand_quality or '-'}\t{yard.sand_price or '-'}", file=out)
    return 0


async def cmd_mandals(ctrl: ConsoleController, args: argparse.Namespace, out: TextIO) -> int:
    for mandal in await _fetch(ctrl.gateway.list_mandals(args.parent_id), code="REFERENCE_FETCH_FAILED"):
        print(f"{mandal.id}\t{mandal.name}", file=out)
    return 0


async def cmd_villages(ctrl: ConsoleController, args: argparse.Namespace, out: TextIO) -> int:
    for village in await _fetch(ctrl.gateway.list_villages(args.parent_id), code="REFERENCE_FETCH_FAILED"):
        print(f"{village.id}\t{village.name}", file=out)
    return 0


async def cmd_slots(ctrl: ConsoleController, args: argparse.Namespace, out: TextIO) -> int:
    for slot in ctrl.delivery_slots():
        print(f"{slot.value}\t{slot.label}", file=out)
    return 0


async def cmd_records(ctrl: ConsoleController, args: argparse.Namespace, out: TextIO) -> int:
    if not await ctrl.master_data.refresh():
        return 1
    for record in ctrl.master_data.records:
        print(f"{record.id}\t{record.name}\t{record.stockyard}\t{record.vehicle_no}", file=out)
    return 0


async def cmd_show(ctrl: ConsoleController, args: argparse.Namespace, out: TextIO) -> int:
    form = ctrl.new_form()
    if not await form.open_view(args.record_id):
        return 1
    for label, value in form.view_rows():
        print(f"{label}: {value}", file=out)
    form.close()
    return 0


async def cmd_users(ctrl: ConsoleController, args: argparse.Namespace, out: TextIO) -> int:
    if not await ctrl.users.refresh():
        return 1
    for user in ctrl.users.users:
        print(f"{user.id}\t{user.username}", file=out)
    return 0


async def cmd_start(ctrl: ConsoleController, args: argparse.Namespace, out: TextIO) -> int:
    if not ctrl.users.loaded:
        await ctrl.users.refresh()
    session = await ctrl.start_booking(args.record_id)
    row = next(row for row in ctrl.sessions.rows() if row.session_id == session.id)
    print(f"{row.session_id}\t{row.status_label}\t{row.username}\t{row.stockyard}", file=out)
    if row.message:
        print(row.message, file=out)
    return 0 if session.status != "failed" else 1


async def _submit_form(form: MasterDataFormVM, values: List[Assignment], out: TextIO) -> int:
    """Apply ``values`` in form order so parents settle before their children."""
    given = dict(values)
    for field in MASTER_DATA_FIELDS:
        if field in given:
            await form.set_field(field, given[field])
    name = form.fields["name"]
    if await form.submit():
        print(f"saved\t{name}", file=out)
        return 0
    if form.submit_error is None:
        messages = [form.field_errors[f] for f in MASTER_DATA_FIELDS if f in form.field_errors]
        raise UseCaseError("INVALID_FORM", "; ".join(messages))
    return 1


async def cmd_create(ctrl: ConsoleController, args: argparse.Namespace, out: TextIO) -> int:
    form = ctrl.new_form()
    await form.open_create()
    return await _submit_form(form, args.values, out)


async def cmd_edit(ctrl: ConsoleController, args: argparse.Namespace, out: TextIO) -> int:
    record = await ctrl.master_data.fetch_one(args.record_id)
    form = ctrl.new_form()
    await form.open_edit(record)
    return await _submit_form(form, args.values, out)


async def cmd_save_user(ctrl: ConsoleController, args: argparse.Namespace, out: TextIO) -> int:
    users = ctrl.users
    if await users.save(args.username, args.password, user_id=args.user_id):
        print(f"saved\t{args.username.strip()}", file=out)
        return 0
    if users.field_errors:
        raise UseCaseError("INVALID_USER", "; ".join(users.field_errors.values()))
    return 1


async def cmd_save_settings(ctrl: ConsoleController, args: argparse.Namespace, out: TextIO) -> int:
    if not args.settings:
        raise UseCaseError("NO_SETTINGS_DIR", "save-settings needs --settings DIR.")
    storage = StorageLocal(args.settings)
    ctrl.settings_vm.on_save = storage.save_user_settings
    try:
        ctrl.settings_vm.cmd_save()
    except ValueError as exc:
        raise UseCaseError("INVALID_SETTINGS", str(exc)) from exc
    print(storage.settings_path, file=out)
    return 0


COMMANDS: Dict[str, Command] = {
    "districts": cmd_districts,
    "stockyards": cmd_stockyards,
    "mandals": cmd_mandals,
    "villages": cmd_villages,
    "slots": cmd_slots,
    "records": cmd_records,
    "show": cmd_show,
    "users": cmd_users,
    "start": cmd_start,
    "create": cmd_create,
    "edit": cmd_edit,
    "save-user": cmd_save_user,
    "save-settings": cmd_save_settings,
}


async def run(
    args: argparse.Namespace,
    settings: SettingsVM,
    *,
    controller: Optional[ConsoleController] = None,
    out: Optional[TextIO] = None,
    err: Optional[TextIO] = None,
) -> int:
    out = out or sys.stdout
    err = err or sys.stderr
    ctrl = controller or ConsoleController(settings)
    async with ctrl:
        try:
            code = await COMMANDS[args.command](ctrl, args, out)
        except UseCaseError as exc:
            log.debug("command %s failed", args.command, exc_info=True)
            print(f"error [{exc.code}]: {exc.message}", file=err)
            code = 1
        for notice in ctrl.notices.notices:
            print(f"{notice.level}: {notice.message}", file=err)
    return code


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(list(argv) if argv is not None else None)
    logging_utils.configure_root()
    try:
        settings = load_settings(args)
    except ValueError as exc:
        print(f"error [INVALID_SETTINGS]: {exc}", file=sys.stderr)
        return 1
    logging_utils.apply_preferences(settings.debug_logging)
    return asyncio.run(run(args, settings))


__all__ = ["COMMANDS", "build_parser", "load_settings", "main", "run"]


if __name__ == "__main__":
    raise SystemExit(main())


