# apps/appointments/utilization.py
from __future__ import annotations

import logging
from typing import Dict, List, Optional

from django.db import DatabaseError
from django.db.models import Sum

from apps.staff import directory

from .exceptions import DependencyError
from .models import Appointment
from .slots import parse_date

logger = logging.getLogger(__name__)

# Front-desk colour bands: below 60% is light, 80% and up is full.
MODERATE_LOAD = 60.0
HIGH_LOAD = 80.0


def _percentage(booked: int, capacity: int) -> float:
    if capacity <= 0:
        return 0.0
    return round(min(100.0, 100.0 * booked / capacity), 2)


def load_band(percentage: float) -> str:
    if percentage >= HIGH_LOAD:
        return "high"
    if percentage >= MODERATE_LOAD:
        return "moderate"
    return "low"


def booked_minutes(staff_id, day) -> int:
    """Σ duration of the staff member's non-cancelled appointments on `day`."""
    qs = Appointment.objects.active().for_staff_day(staff_id, parse_date(day))
    try:
        total = qs.aggregate(total=Sum("duration_minutes"))["total"]
    except DatabaseError as exc:
        raise DependencyError() from exc
    return int(total or 0)


def compute_utilization(staff_id, day) -> float:
    """Booked minutes as a percentage of daily capacity, capped at 100."""
    day = parse_date(day)
    capacity = directory.get_capacity(staff_id, day)
    return _percentage(booked_minutes(staff_id, day), capacity)


def utilization_board(day, role: Optional[str] = None) -> List[Dict]:
    """
    Utilization of every available staff member for `day`.

    Read-side view: if the roster or the ledger can't be read, the board comes
    back empty instead of failing.
    """
    day = parse_date(day)
    try:
        roster = directory.list_available(role, day)
    except DependencyError:
        logger.warning("utilization board for %s degraded: staff directory unavailable", day, exc_info=True)
        return []
    if not roster:
        return []

    try:
        totals = dict(
            Appointment.objects.active()
            .filter(appointment_date=day, staff__in=roster)
            .order_by()
            .values("staff_id")
            .annotate(total=Sum("duration_minutes"))
            .values_list("staff_id", "total")
        )
    except DatabaseError:
        logger.warning("utilization board for %s degraded: ledger unavailable", day, exc_info=True)
        return []

    rows = []
    for staff in roster:
        booked = int(totals.get(staff.pk) or 0)
        capacity = directory.capacity_of(staff, day)
        pct = _percentage(booked, capacity)
        rows.append(
            {
                "staff_id": staff.pk,
                "display_name": staff.display_name,
                "role": staff.role,
                "booked_minutes": booked,
                "capacity_minutes": capacity,
                "utilization": pct,
                "load": load_band(pct),
            }
        )
    return rows
