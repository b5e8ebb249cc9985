"""Domain-level error types for use-case and adapter mapping.

These errors cross layer boundaries without leaking transport-specific
exception details. Everything except ``StaleResultDiscarded`` is
user-presentable; none of them is fatal to the console.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from .ports import UseCaseError


class NetworkError(UseCaseError):
    """Transport failure or non-success status reported by the gateway."""


class SubmissionError(UseCaseError):
    """The gateway rejected a create/update/delete or launch request."""


class FormValidationError(UseCaseError):
    """Local validation failed; ``field_errors`` maps field name to message."""

    def __init__(
        self,
        field_errors: Mapping[str, str],
        *,
        code: str = "INVALID_FORM",
        meta: Optional[Dict[str, Any]] = None,
    ) -> None:
        fields = ", ".join(sorted(field_errors)) or "-"
        super().__init__(code, f"Please correct the highlighted fields: {fields}", meta=meta)
        self.field_errors: Dict[str, str] = dict(field_errors)


class StaleResultDiscarded(Exception):
    """Internal signal: a resolution arrived for a parent value that is no longer current."""

    def __init__(self, field: str, parent_value: str, generation: int, current: int) -> None:
        super().__init__(
            f"{field}: dropped result for '{parent_value}' "
            f"(generation {generation}, current {current})"
        )
        self.field = field
        self.parent_value = parent_value
        self.generation = generation
        self.current = current


__all__ = [
    "FormValidationError",
    "NetworkError",
    "StaleResultDiscarded",
    "SubmissionError",
    "UseCaseError",
]
