from __future__ import annotations

import pytest

from sandbook.usecases.booking_sessions import BookingSessionTracker
from sandbook.viewmodels.sessions_vm import SessionsVM
from sandbook.viewmodels.status_format import is_terminal, session_status_label
from sandbook.tests.unit.fakes import make_record, seeded_gateway


def test_status_labels() -> None:
    assert session_status_label("pending") == "In progress"
    assert session_status_label(" SUCCESS ") == "Booked"
    assert session_status_label("failed") == "Failed"
    assert session_status_label("") == "Unknown"
    assert is_terminal("failed") and not is_terminal("pending")


@pytest.mark.asyncio
async def test_rows_follow_tracker_order() -> None:
    gw = seeded_gateway()
    gw.records[2] = make_record(2, stockyard="Guntur Yard B")
    gw.start_responses[2] = {
        "id": "s-9",
        "status": "failed",
        "message": "Slot unavailable",
        "started_at": "2024-03-10 06:00:00",
    }
    tracker = BookingSessionTracker(gw, gw.records.get, lookup_username={5: "operator1"}.get)
    vm = SessionsVM(tracker)

    await tracker.start(1)
    await tracker.start(2)
    rows = vm.rows()

    assert [row.master_data_id for row in rows] == [1, 2]
    assert rows[0].status_label == "Booked"
    assert rows[0].finished is True
    assert rows[0].ended_at == "-"
    assert rows[1].status_label == "Failed"
    assert rows[1].finished is True
    assert rows[1].message == "Slot unavailable"
    assert rows[1].started_at == "2024-03-10 06:00:00"
    assert rows[1].stockyard == "Guntur Yard B"


@pytest.mark.asyncio
async def test_close_removes_row_and_selection() -> None:
    gw = seeded_gateway()
    tracker = BookingSessionTracker(gw, gw.records.get)
    vm = SessionsVM(tracker)
    session = await tracker.start(1)
    vm.select(session.id)

    assert vm.close(session.id) is True
    assert vm.rows() == []
    assert vm.selected_id is None
    assert vm.close(session.id) is False
