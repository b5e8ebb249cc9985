from __future__ import annotations

import pytest

from sandbook.adapters.api_errors import ApiServerError
from sandbook.domain.dependency_graph import ResolutionTicket
from sandbook.usecases.resolve_reference_data import ReferenceDataResolver
from sandbook.tests.unit.fakes import seeded_gateway


@pytest.mark.asyncio
async def test_resolves_children_for_parent_value() -> None:
    gw = seeded_gateway()
    resolver = ReferenceDataResolver.for_gateway(gw)
    ticket = ResolutionTicket("delivery_mandal", "3", 4)

    result = await resolver.resolve(ticket)

    assert result.ok
    assert result.ticket is ticket
    assert [m.id for m in result.items] == [31, 32]
    assert gw.calls == [("mandals", 3)]


@pytest.mark.asyncio
async def test_failure_is_returned_as_data() -> None:
    gw = seeded_gateway()
    gw.failures[("stockyards", 7)] = ApiServerError("boom", status=500)
    resolver = ReferenceDataResolver.for_gateway(gw)

    result = await resolver.resolve(ResolutionTicket("stockyard", "7", 1))

    assert not result.ok
    assert result.items == []
    assert result.error.code == "SERVER_ERROR"


@pytest.mark.asyncio
async def test_non_numeric_parent_never_reaches_gateway() -> None:
    gw = seeded_gateway()
    resolver = ReferenceDataResolver.for_gateway(gw)

    result = await resolver.resolve(ResolutionTicket("delivery_village", "abc", 1))

    assert result.error.code == "INVALID_PARENT"
    assert gw.calls == []


@pytest.mark.asyncio
async def test_unknown_field_is_a_programming_error() -> None:
    resolver = ReferenceDataResolver.for_gateway(seeded_gateway())

    assert resolver.supports("delivery_village")
    assert not resolver.supports("district")
    with pytest.raises(KeyError):
        await resolver.resolve(ResolutionTicket("district", "3", 1))
