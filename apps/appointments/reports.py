# apps/appointments/reports.py
"""Read contracts for dashboards and exports. Shapes only; rendering happens elsewhere."""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Dict, List, Optional

from django.db import DatabaseError
from django.utils import timezone

from apps.patients.services import UNKNOWN_PATIENT, display_names

from .exceptions import DependencyError, ValidationError
from .models import Appointment, AppointmentStatus
from .slots import parse_date


def list_today_appointments(day=None) -> List[Appointment]:
    day = parse_date(day) if day else timezone.localdate()
    qs = (
        Appointment.objects.select_related("staff")
        .filter(appointment_date=day)
        .order_by("appointment_time", "staff__display_name", "id")
    )
    try:
        return list(qs)
    except DatabaseError as exc:
        raise DependencyError() from exc


def list_waiting_patients(day, older_than_minutes: int = 0, now: Optional[datetime] = None) -> List[Dict]:
    """
    Pending appointments on `day` booked at least `older_than_minutes` ago,
    earliest slot first, with how long each has been waiting.
    """
    try:
        threshold = int(older_than_minutes)
    except (TypeError, ValueError):
        raise ValidationError("older_than_minutes must be an integer.", field="older_than_minutes")
    if threshold < 0:
        raise ValidationError("older_than_minutes must be >= 0.", field="older_than_minutes")

    day = parse_date(day)
    now = now or timezone.now()
    cutoff = now - timedelta(minutes=threshold)

    qs = (
        Appointment.objects.select_related("staff")
        .filter(appointment_date=day, status=AppointmentStatus.PENDING, created_at__lte=cutoff)
        .order_by("appointment_time", "id")
    )
    try:
        rows = list(qs)
    except DatabaseError as exc:
        raise DependencyError() from exc

    return [
        {
            "appointment_id": a.pk,
            "patient_id": a.patient_id,
            "staff_id": a.staff_id,
            "staff_name": a.staff.display_name,
            "appointment_time": a.appointment_time,
            "reason": a.reason or "Consultation",
            "waiting_minutes": max(0, int((now - a.created_at).total_seconds() // 60)),
        }
        for a in rows
    ]


def export_appointments(date_from, date_to) -> List[Dict]:
    """Flat rows {patient_name, staff_name, date, status, reason} for an inclusive date range."""
    df = parse_date(date_from)
    dt = parse_date(date_to)
    if dt < df:
        raise ValidationError("date_to must not be before date_from.", field="date_to")

    qs = (
        Appointment.objects.select_related("staff")
        .filter(appointment_date__gte=df, appointment_date__lte=dt)
        .order_by("appointment_date", "appointment_time", "id")
    )
    try:
        rows = list(qs)
    except DatabaseError as exc:
        raise DependencyError() from exc

    names = display_names({a.patient_id for a in rows})
    return [
        {
            "patient_name": names.get(a.patient_id, UNKNOWN_PATIENT),
            "staff_name": a.staff.display_name,
            "date": a.appointment_date,
            "status": a.status,
            "reason": a.reason,
        }
        for a in rows
    ]
