# apps/appointments/slots.py
"""
The bookable time grid.

One global grid for every staff member: fixed-length slots laid over the
clinic's sessions (morning and afternoon, lunch gap in between). Slots are
values computed on demand, never stored.
"""
from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional, Tuple

from django.conf import settings

from .exceptions import ValidationError

TIME_FORMAT = "%H:%M"


def _policy() -> dict:
    return getattr(settings, "SCHEDULING", {}) or {}


def slot_minutes() -> int:
    return int(_policy().get("SLOT_MINUTES", 30))


def _sessions() -> List[Tuple[time, time]]:
    out = []
    for start, end in _policy().get("SESSIONS", [("08:00", "12:30"), ("14:00", "17:30")]):
        out.append((parse_time(start), parse_time(end)))
    return out


def _working_weekdays() -> Iterable[int]:
    return _policy().get("WORKING_WEEKDAYS", range(7))


def parse_date(value) -> date:
    """Accept a date or an ISO 'YYYY-MM-DD' string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError(f"'{value}' is not a valid date (YYYY-MM-DD).", field="date")


def parse_time(value) -> time:
    """Accept a time or an 'HH:MM' / 'HH:MM:SS' string; seconds must be zero."""
    if isinstance(value, time):
        return value.replace(microsecond=0)
    raw = str(value or "").strip()
    for fmt in (TIME_FORMAT, "%H:%M:%S"):
        try:
            return datetime.strptime(raw, fmt).time()
        except ValueError:
            continue
    raise ValidationError(f"'{value}' is not a valid time (HH:MM).", field="start_time")


def format_time(value: time) -> str:
    return value.strftime(TIME_FORMAT)


def generate_slots(day, step_minutes: Optional[int] = None) -> List[time]:
    """
    Ordered start times for `day`.

    Each session is an end-exclusive window; a slot fits when its start plus
    the slot length stays within the window. Non-working weekdays are empty.
    """
    day = parse_date(day)
    if day.weekday() not in _working_weekdays():
        return []

    length = timedelta(minutes=slot_minutes())
    step = timedelta(minutes=int(step_minutes or slot_minutes()))
    if length <= timedelta(0) or step <= timedelta(0):
        raise ValidationError("Slot length must be positive.")

    out: List[time] = []
    for win_start, win_end in _sessions():
        cur = datetime.combine(day, win_start)
        end = datetime.combine(day, win_end)
        while cur + length <= end:
            out.append(cur.time())
            cur += step
    return sorted(set(out))


def is_on_grid(day, start) -> bool:
    return parse_time(start) in generate_slots(day)
