"""Parent/child edges between form fields and the cells that hold child options.

A dependent field (stockyard, delivery mandal, delivery village) owns a
``DependentCell``: the option list loaded for one parent value plus a
generation counter. Every new resolution bumps the generation; a result is
only applied when the ticket it was issued under is still current.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, List, Literal, Optional, Sequence, Tuple, TypeVar

from .errors import StaleResultDiscarded

T = TypeVar("T")

FieldOrigin = Literal["user", "rehydration"]


@dataclass(frozen=True)
class DependencyEdge:
    parent: str
    child: str


# Source chain: district -> stockyard.
# Delivery chain: delivery_district -> delivery_mandal -> delivery_village.
EDGES: Tuple[DependencyEdge, ...] = (
    DependencyEdge("district", "stockyard"),
    DependencyEdge("delivery_district", "delivery_mandal"),
    DependencyEdge("delivery_mandal", "delivery_village"),
)

def children_of(field: str) -> Tuple[str, ...]:
    return tuple(edge.child for edge in EDGES if edge.parent == field)


def parent_of(field: str) -> Optional[str]:
    for edge in EDGES:
        if edge.child == field:
            return edge.parent
    return None


def descendants_of(field: str) -> Tuple[str, ...]:
    """All fields downstream of ``field``, nearest first."""
    ordered: List[str] = []
    frontier = list(children_of(field))
    while frontier:
        current = frontier.pop(0)
        if current in ordered:
            continue
        ordered.append(current)
        frontier.extend(children_of(current))
    return tuple(ordered)


@dataclass(frozen=True)
class FieldChange:
    """One committed field value, tagged with what caused it."""

    field: str
    value: str
    origin: FieldOrigin = "user"


@dataclass(frozen=True)
class ResolutionTicket:
    """Identifies one fetch of a cell's options for a specific parent value."""

    field: str
    parent_value: str
    generation: int


class DependentCell(Generic[T]):
    """Options for one dependent field, valid only for ``parent_value``."""

    def __init__(self, field: str, key: Callable[[T], str]) -> None:
        parent = parent_of(field)
        if parent is None:
            raise ValueError(f"'{field}' is not a dependent field.")
        self.field = field
        self.parent_field = parent
        self._key = key
        self.parent_value: str = ""
        self.items: List[T] = []
        self.generation: int = 0
        self.loading: bool = False
        self.error: Optional[str] = None

    @property
    def enabled(self) -> bool:
        """Selectable once a parent value is set and its options did not fail to load."""
        return bool(self.parent_value) and self.error is None

    def begin(self, parent_value: str) -> ResolutionTicket:
        """Start a resolution for ``parent_value``; older tickets become stale."""
        self.generation += 1
        self.parent_value = parent_value
        self.items = []
        self.loading = True
        self.error = None
        return ResolutionTicket(self.field, parent_value, self.generation)

    def reset(self) -> None:
        """Empty the cell; any in-flight resolution becomes stale."""
        self.generation += 1
        self.parent_value = ""
        self.items = []
        self.loading = False
        self.error = None

    def is_current(self, ticket: ResolutionTicket) -> bool:
        return ticket.field == self.field and ticket.generation == self.generation

    def apply(self, ticket: ResolutionTicket, items: Sequence[T]) -> None:
        self._ensure_current(ticket)
        self.items = list(items)
        self.loading = False
        self.error = None

    def fail(self, ticket: ResolutionTicket, message: str) -> None:
        self._ensure_current(ticket)
        self.items = []
        self.loading = False
        self.error = message or "Failed to load options."

    def keys(self) -> List[str]:
        return [self._key(item) for item in self.items]

    def contains(self, value: str) -> bool:
        return bool(value) and value in self.keys()

    def find(self, value: str) -> Optional[T]:
        for item in self.items:
            if self._key(item) == value:
                return item
        return None

    def snapshot(self) -> Dict[str, Any]:
        return {
            "field": self.field,
            "parent_value": self.parent_value,
            "generation": self.generation,
            "loading": self.loading,
            "enabled": self.enabled,
            "error": self.error,
            "options": self.keys(),
        }

    def _ensure_current(self, ticket: ResolutionTicket) -> None:
        if not self.is_current(ticket):
            raise StaleResultDiscarded(
                ticket.field, ticket.parent_value, ticket.generation, self.generation
            )


__all__ = [
    "DependencyEdge",
    "DependentCell",
    "EDGES",
    "FieldChange",
    "FieldOrigin",
    "ResolutionTicket",
    "children_of",
    "descendants_of",
    "parent_of",
]
