# apps/staff/directory.py
"""Read-only view of the staff roster used by booking and the read-side aggregates."""
from __future__ import annotations

from datetime import date
from typing import List, Optional

from django.conf import settings
from django.db import DatabaseError

from apps.appointments.exceptions import DependencyError, NotFoundError, ValidationError

from .models import StaffMember


def _default_capacity() -> int:
    return int(settings.SCHEDULING.get("DEFAULT_DAILY_CAPACITY_MINUTES", 480))


def list_available(role: Optional[str] = None, on_date: Optional[date] = None) -> List[StaffMember]:
    """
    Available staff of `role` (all roles when None), ordered by display name.

    `on_date` is accepted for per-day exceptions supplied from outside; the
    roster itself has no calendar, so it does not narrow the result.
    """
    if role and role not in StaffMember.Role.values:
        raise ValidationError(f"Unknown staff role '{role}'.", field="role")

    qs = StaffMember.objects.filter(is_available=True)
    if role:
        qs = qs.filter(role=role)
    try:
        return list(qs.order_by("display_name", "id"))
    except DatabaseError as exc:
        raise DependencyError("Staff directory is unavailable.") from exc


def get_staff(staff_id) -> StaffMember:
    try:
        return StaffMember.objects.get(pk=staff_id)
    except (StaffMember.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"Staff member {staff_id} not found.", staff_id=str(staff_id))
    except DatabaseError as exc:
        raise DependencyError("Staff directory is unavailable.") from exc


def capacity_of(staff: StaffMember, on_date: Optional[date] = None) -> int:
    """Bookable minutes for the day: the member's own figure, else the clinic default."""
    capacity = staff.daily_capacity_minutes
    return int(capacity if capacity is not None else _default_capacity())


def get_capacity(staff_id, on_date: Optional[date] = None) -> int:
    return capacity_of(get_staff(staff_id), on_date)
