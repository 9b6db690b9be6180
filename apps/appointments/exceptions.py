# apps/appointments/exceptions.py
"""
Scheduling error taxonomy.

Every write failure carries a stable `code` and a human `detail` so the API
layer (and any other caller) can tell "slot no longer available" apart from
"invalid status change" without string matching.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class SchedulingError(Exception):
    code = "scheduling_error"
    default_detail = "Scheduling request failed."
    hint: str = ""

    def __init__(self, detail: Optional[str] = None, **context: Any):
        self.detail = detail or self.default_detail
        self.context: Dict[str, Any] = context
        super().__init__(self.detail)

    def as_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"detail": self.detail, "code": self.code}
        if self.hint:
            payload["hint"] = self.hint
        payload.update(self.context)
        return payload


class ValidationError(SchedulingError):
    """Malformed or missing input, or a slot outside the grid."""

    code = "invalid"
    default_detail = "Invalid scheduling request."


class NotFoundError(SchedulingError):
    code = "not_found"
    default_detail = "Not found."


class ConflictError(SchedulingError):
    """
    Lost a race at commit time. `slot` or `state` in the context tells the
    caller what was attempted; the core never picks another slot on its own.
    """

    code = "conflict"
    default_detail = "Slot no longer available."
    hint = "Re-query free slots and pick another time."


class InvalidTransitionError(SchedulingError):
    code = "invalid_transition"
    default_detail = "Invalid status change."


class DependencyError(SchedulingError):
    """Directory or persistence unreachable."""

    code = "unavailable"
    default_detail = "Scheduling storage is unavailable."
    hint = "Retry shortly."


class DataIntegrityError(SchedulingError):
    """A stored value falls outside its closed set (e.g. unknown status code)."""

    code = "data_integrity"
    default_detail = "Stored appointment data is inconsistent."
