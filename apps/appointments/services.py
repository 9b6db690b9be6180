# apps/appointments/services.py
from __future__ import annotations

import logging
from datetime import date, time
from typing import Dict, List, Optional, Set

from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from apps.staff import directory

from .exceptions import (
    ConflictError,
    DependencyError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from .models import Appointment, AppointmentStatus, Urgency
from .slots import format_time, generate_slots, parse_date, parse_time, slot_minutes

logger = logging.getLogger(__name__)

# Appointments that may still be moved to another slot.
RESCHEDULABLE = {AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED}

REASON_MAX_LENGTH = Appointment._meta.get_field("reason").max_length


def _slot(staff_id, day: date, start: time) -> Dict[str, str]:
    return {"staff_id": str(staff_id), "date": day.isoformat(), "start_time": format_time(start)}


def get_appointment(appointment_id) -> Appointment:
    try:
        return Appointment.objects.get(pk=appointment_id)
    except (Appointment.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"Appointment {appointment_id} not found.", appointment_id=str(appointment_id))
    except DatabaseError as exc:
        raise DependencyError() from exc


# -------- Conflict resolution --------

def occupied_slots(staff_id, day, exclude_id: Optional[int] = None) -> Set[time]:
    """Start times held by non-cancelled appointments of the staff member on `day`."""
    qs = Appointment.objects.active().for_staff_day(staff_id, parse_date(day))
    if exclude_id:
        qs = qs.exclude(pk=exclude_id)
    try:
        return set(qs.values_list("appointment_time", flat=True))
    except DatabaseError as exc:
        raise DependencyError() from exc


def compute_available_slots(staff_id, day, exclude_id: Optional[int] = None) -> List[time]:
    """
    The grid for `day` minus the slots already held for `staff_id`.

    `exclude_id` ignores one appointment's own occupancy (used when moving it).
    The result is a snapshot; the unique index decides at commit time.
    """
    day = parse_date(day)
    taken = occupied_slots(staff_id, day, exclude_id=exclude_id)
    return [t for t in generate_slots(day) if t not in taken]


# -------- Booking --------

def _clean_booking_input(patient_id, staff_id, day, start_time, reason, urgency):
    patient_ref = str(patient_id or "").strip()
    if not patient_ref:
        raise ValidationError("patient_id is required.", field="patient_id")
    if staff_id is None or str(staff_id).strip() == "":
        raise ValidationError("staff_id is required.", field="staff_id")
    if urgency not in Urgency.values:
        raise ValidationError(
            f"Unknown urgency '{urgency}'.", field="urgency", allowed=list(Urgency.values)
        )
    reason = (reason or "").strip()
    if len(reason) > REASON_MAX_LENGTH:
        raise ValidationError(f"reason is longer than {REASON_MAX_LENGTH} characters.", field="reason")

    day = parse_date(day)
    start = parse_time(start_time)
    if start not in generate_slots(day):
        raise ValidationError(
            "Requested time is outside the booking grid.",
            slot={"date": day.isoformat(), "start_time": format_time(start)},
        )
    return patient_ref, day, start, reason


def book_appointment(
    patient_id,
    staff_id,
    day,
    start_time,
    reason: str = "",
    urgency: str = Urgency.ROUTINE,
) -> Appointment:
    """
    Book a patient into a free slot; the new appointment starts as pending.

    Availability is re-checked right before the insert, but the partial unique
    index on (staff, date, time) for non-cancelled rows is what settles a race:
    the loser gets ConflictError and must re-query free slots.
    """
    patient_ref, day, start, reason = _clean_booking_input(
        patient_id, staff_id, day, start_time, reason, urgency
    )

    staff = directory.get_staff(staff_id)
    if not staff.is_available:
        raise ValidationError(
            f"{staff.display_name} is not accepting bookings.", field="staff_id", staff_id=str(staff.pk)
        )

    slot = _slot(staff.pk, day, start)
    if start not in compute_available_slots(staff.pk, day):
        logger.info("booking rejected, slot taken: %s", slot)
        raise ConflictError("Slot no longer available.", slot=slot)

    try:
        with transaction.atomic():
            appt = Appointment.objects.create(
                staff=staff,
                patient_id=patient_ref,
                appointment_date=day,
                appointment_time=start,
                duration_minutes=slot_minutes(),
                reason=reason,
                urgency=urgency,
                status=AppointmentStatus.PENDING,
            )
    except IntegrityError as exc:
        logger.warning("booking lost race at commit: %s", slot)
        raise ConflictError("Slot no longer available.", slot=slot) from exc
    except DatabaseError as exc:
        logger.error("booking aborted, ledger unavailable: %s", slot, exc_info=True)
        raise DependencyError() from exc

    logger.info("booked appointment %s for patient %s: %s", appt.pk, patient_ref, slot)
    return appt


def reschedule_appointment(appointment_id, new_date, new_start_time) -> Appointment:
    """
    Move a pending/confirmed appointment to another slot of the same staff member.

    The move is one conditional UPDATE guarded by the slot and status we read;
    if anything changed underneath, or the destination was taken meanwhile,
    the original booking stays exactly as it was.
    """
    appt = get_appointment(appointment_id)
    current = appt.current_status
    if current not in RESCHEDULABLE:
        raise InvalidTransitionError(
            f"A {current.value} appointment cannot be rescheduled.",
            state={"current": current.value},
        )

    day = parse_date(new_date)
    start = parse_time(new_start_time)
    if start not in generate_slots(day):
        raise ValidationError(
            "Requested time is outside the booking grid.",
            slot={"date": day.isoformat(), "start_time": format_time(start)},
        )
    if (day, start) == (appt.appointment_date, appt.appointment_time):
        raise ValidationError("Appointment is already booked at that slot.", field="start_time")

    slot = _slot(appt.staff_id, day, start)
    if start not in compute_available_slots(appt.staff_id, day, exclude_id=appt.pk):
        logger.info("reschedule of %s rejected, slot taken: %s", appt.pk, slot)
        raise ConflictError("Slot no longer available.", slot=slot)

    try:
        with transaction.atomic():
            moved = Appointment.objects.filter(
                pk=appt.pk,
                status=appt.status,
                appointment_date=appt.appointment_date,
                appointment_time=appt.appointment_time,
            ).update(appointment_date=day, appointment_time=start, updated_at=timezone.now())
    except IntegrityError as exc:
        logger.warning("reschedule of %s lost race at commit: %s", appt.pk, slot)
        raise ConflictError("Slot no longer available.", slot=slot) from exc
    except DatabaseError as exc:
        raise DependencyError() from exc

    if not moved:
        raise ConflictError(
            "Appointment changed while it was being rescheduled.",
            slot=slot,
            state={"observed": current.value},
        )

    appt.refresh_from_db()
    logger.info("rescheduled appointment %s to %s", appt.pk, slot)
    return appt
