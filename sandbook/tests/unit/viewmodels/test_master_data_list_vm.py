from __future__ import annotations

import pytest

from sandbook.adapters.api_errors import ApiClientError, ApiTimeoutError
from sandbook.domain.ports import UseCaseError
from sandbook.viewmodels.master_data_list_vm import MasterDataListVM
from sandbook.viewmodels.notices_vm import NoticesVM
from sandbook.tests.unit.fakes import make_record, seeded_gateway


@pytest.mark.asyncio
async def test_refresh_replaces_cache() -> None:
    gw = seeded_gateway()
    vm = MasterDataListVM(gw, NoticesVM())

    assert await vm.refresh() is True

    assert vm.loaded
    assert vm.ids() == [1]
    assert vm.get(1).stockyard == "Krishna Yard A"


@pytest.mark.asyncio
async def test_failed_refresh_keeps_previous_list_and_posts_retryable_notice() -> None:
    gw = seeded_gateway()
    notices = NoticesVM()
    vm = MasterDataListVM(gw, notices)
    await vm.refresh()
    gw.records[2] = make_record(2, name="Second")
    gw.failures[("master_data", None)] = ApiTimeoutError("t")

    assert await vm.refresh() is False

    assert vm.ids() == [1]
    notice = notices.notices[-1]
    assert notice.code == "REQUEST_TIMEOUT"
    assert notice.retryable

    del gw.failures[("master_data", None)]
    await notices.retry(notice.id)
    assert vm.ids() == [1, 2]


@pytest.mark.asyncio
async def test_delete_refreshes_after_success() -> None:
    gw = seeded_gateway()
    vm = MasterDataListVM(gw, NoticesVM())
    await vm.refresh()

    assert await vm.delete(1) is True

    assert gw.deleted == [1]
    assert vm.records == []


@pytest.mark.asyncio
async def test_rejected_delete_posts_notice() -> None:
    gw = seeded_gateway()
    gw.failures[("delete_master_data", 1)] = ApiClientError("c", status=409, hint="Record in use")
    notices = NoticesVM()
    vm = MasterDataListVM(gw, notices)

    assert await vm.delete(1) is False
    assert notices.notices[-1].message == "Delete #1: Request failed (HTTP 409): Record in use"


@pytest.mark.asyncio
async def test_fetch_one_raises_mapped_error() -> None:
    vm = MasterDataListVM(seeded_gateway(), NoticesVM())

    assert (await vm.fetch_one(1)).id == 1
    with pytest.raises(UseCaseError) as info:
        await vm.fetch_one(5)
    assert info.value.code == "NOT_FOUND"
