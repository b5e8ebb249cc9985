"""Fetch dependent option lists for the location chains.

The resolver only supplies results. It receives a ``ResolutionTicket`` issued
by a ``DependentCell`` and returns a ``Resolution`` carrying the same ticket,
so the owner of the cell decides whether the result is still current.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

from sandbook.domain.dependency_graph import ResolutionTicket
from sandbook.domain.ports import GatewayPort, UseCaseError

from .error_mapping import map_api_error

Fetcher = Callable[[int], Awaitable[List[Any]]]

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolution:
    """Outcome of one fetch, keyed by the ticket that requested it."""

    ticket: ResolutionTicket
    items: List[Any] = field(default_factory=list)
    error: Optional[UseCaseError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ReferenceDataResolver:
    """Dependent-lookup engine: dependent field name -> fetch by parent id."""

    def __init__(self, fetchers: Mapping[str, Fetcher]) -> None:
        self._fetchers: Dict[str, Fetcher] = dict(fetchers)

    @classmethod
    def for_gateway(cls, gateway: GatewayPort) -> "ReferenceDataResolver":
        return cls(
            {
                "stockyard": gateway.list_stockyards,
                "delivery_mandal": gateway.list_mandals,
                "delivery_village": gateway.list_villages,
            }
        )

    def supports(self, field_name: str) -> bool:
        return field_name in self._fetchers

    async def resolve(self, ticket: ResolutionTicket) -> Resolution:
        """Fetch options for ``ticket.parent_value``; failures come back as data."""
        fetch = self._fetchers.get(ticket.field)
        if fetch is None:
            raise KeyError(f"No fetcher registered for '{ticket.field}'")
        try:
            parent_id = int(ticket.parent_value)
        except (TypeError, ValueError):
            error = UseCaseError(
                "INVALID_PARENT", f"'{ticket.parent_value}' is not a valid selection."
            )
            return Resolution(ticket=ticket, error=error)

        _log.debug(
            "resolving %s for %s (generation %d)", ticket.field, parent_id, ticket.generation
        )
        try:
            items = await fetch(parent_id)
        except Exception as exc:
            error = map_api_error(
                exc,
                default_code="REFERENCE_FETCH_FAILED",
                default_message=f"Failed to load {ticket.field.replace('_', ' ')} options.",
            )
            _log.warning(
                "%s for %s failed: %s", ticket.field, ticket.parent_value, error.message
            )
            return Resolution(ticket=ticket, error=error)
        return Resolution(ticket=ticket, items=list(items or []))


__all__ = ["Fetcher", "ReferenceDataResolver", "Resolution"]
