from __future__ import annotations

import asyncio
from unittest import mock

import pytest

from sandbook.adapters.api_errors import ApiClientError, ApiTimeoutError
from sandbook.domain.errors import SubmissionError
from sandbook.domain.ports import UseCaseError
from sandbook.usecases.booking_sessions import BookingSessionTracker, TrackerHooks
from sandbook.tests.unit.fakes import drain, make_record, seeded_gateway


def _tracker(gw, **kwargs) -> BookingSessionTracker:
    return BookingSessionTracker(
        gw,
        gw.records.get,
        lookup_username={5: "operator1"}.get,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_unknown_record_makes_no_gateway_call() -> None:
    gw = seeded_gateway()
    tracker = _tracker(gw)

    with pytest.raises(UseCaseError) as info:
        await tracker.start(99)

    assert info.value.code == "UNKNOWN_MASTER_DATA"
    assert gw.calls == []
    assert tracker.sessions == ()


@pytest.mark.asyncio
async def test_successful_start_records_session() -> None:
    gw = seeded_gateway()
    gw.start_responses[1] = {
        "id": "s-1",
        "status": "success",
        "started_at": "2024-03-10T06:00:00Z",
        "ended_at": "2024-03-10T06:01:10Z",
        "proxy": "10.0.0.1:8080",
    }
    hooks = TrackerHooks(on_session_added=mock.Mock())
    tracker = _tracker(gw, hooks=hooks)

    session = await tracker.start(1)

    assert session.status == "success"
    assert session.username == "operator1"
    assert session.stockyard == "Krishna Yard A"
    assert tracker.sessions == (session,)
    hooks.on_session_added.assert_called_once_with(session)


@pytest.mark.asyncio
async def test_backend_failure_status_is_kept_with_message() -> None:
    gw = seeded_gateway()
    gw.start_responses[1] = {"id": "s-2", "status": "failed", "message": "Slot unavailable"}

    session = await _tracker(gw).start("1")

    assert session.status == "failed"
    assert session.message == "Slot unavailable"


@pytest.mark.asyncio
async def test_in_flight_status_is_stored_as_failed() -> None:
    gw = seeded_gateway()
    gw.start_responses[1] = {"id": "s-1", "status": "running"}
    tracker = _tracker(gw)

    session = await tracker.start(1)

    assert tracker.sessions == (session,)
    assert session.status == "failed"
    assert "running" in session.message
    assert not tracker.is_starting(1)


@pytest.mark.asyncio
async def test_transport_failure_yields_local_failed_session() -> None:
    gw = seeded_gateway()
    gw.failures[("start_booking", 1)] = ApiTimeoutError("t")
    tracker = _tracker(gw)

    session = await tracker.start(1)

    assert session.status == "failed"
    assert session.id.startswith("local-")
    assert session.message == "Request timed out. Check connection."
    assert len(tracker.sessions) == 1


@pytest.mark.asyncio
async def test_rejected_launch_raises_and_records_nothing() -> None:
    gw = seeded_gateway()
    gw.failures[("start_booking", 1)] = ApiClientError("c", status=400, hint="Vehicle blocked")
    tracker = _tracker(gw)

    with pytest.raises(SubmissionError) as info:
        await tracker.start(1)

    assert info.value.message == "Invalid parameters: Vehicle blocked"
    assert tracker.sessions == ()
    assert not tracker.is_starting(1)


@pytest.mark.asyncio
async def test_malformed_response_becomes_failed_session() -> None:
    gw = seeded_gateway()
    gw.start_responses[1] = ["not", "an", "object"]

    session = await _tracker(gw).start(1)

    assert session.status == "failed"
    assert session.message.startswith("Malformed booking response")


@pytest.mark.asyncio
async def test_close_keeps_order_and_is_idempotent() -> None:
    gw = seeded_gateway()
    gw.records[2] = make_record(2, name="Second")
    closed = mock.Mock()
    tracker = _tracker(gw, hooks=TrackerHooks(on_session_closed=closed))

    first = await tracker.start(1)
    second = await tracker.start(2)
    third = await tracker.start(1)

    assert tracker.close(second.id) is True
    assert [s.id for s in tracker.sessions] == [first.id, third.id]
    assert tracker.close(second.id) is False
    closed.assert_called_once_with(second)


@pytest.mark.asyncio
async def test_allow_policy_runs_concurrent_starts() -> None:
    gw = seeded_gateway()
    gate = gw.hold("start_booking", 1)
    starting = mock.Mock()
    tracker = _tracker(gw, hooks=TrackerHooks(on_starting_changed=starting))

    tasks = [asyncio.create_task(tracker.start(1)) for _ in range(2)]
    await drain()
    assert tracker.starting == (1,)
    gate.set()
    sessions = await asyncio.gather(*tasks)

    assert len({s.id for s in sessions}) == 2
    assert len(tracker.sessions) == 2
    assert tracker.starting == ()
    assert starting.call_args_list == [mock.call(1, True), mock.call(1, False)]


@pytest.mark.asyncio
async def test_reject_policy_blocks_second_start_while_in_flight() -> None:
    gw = seeded_gateway()
    gate = gw.hold("start_booking", 1)
    tracker = _tracker(gw, duplicate_policy="reject")

    first = asyncio.create_task(tracker.start(1))
    await drain()
    with pytest.raises(UseCaseError) as info:
        await tracker.start(1)
    gate.set()
    await first

    assert info.value.code == "START_IN_PROGRESS"
    assert gw.count("start_booking", 1) == 1
    await tracker.start(1)
    assert len(tracker.sessions) == 2


def test_unknown_policy_is_rejected() -> None:
    with pytest.raises(ValueError):
        _tracker(seeded_gateway(), duplicate_policy="queue")
