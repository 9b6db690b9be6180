# apps/appointments/tasks.py
from __future__ import annotations

import logging

from celery import shared_task
from django.conf import settings

from . import policies, services
from .exceptions import InvalidTransitionError
from .models import AppointmentStatus

logger = logging.getLogger(__name__)

# Statuses where a patient is physically or virtually waiting for staff.
WAITING_STATUSES = {AppointmentStatus.PENDING, AppointmentStatus.CHECKED_IN}


@shared_task(bind=True, max_retries=2)
def notify_staff_waiting_patient(self, appointment_id: int, staff_id: int, patient_id: str):
    """
    Hand-off point for the notification collaborator.

    Scheduling only records the intent; delivery (push, SMS, pager) is owned
    by whoever consumes this task.
    """
    if not getattr(settings, "NOTIFY_STAFF", True):
        return {"skipped": True, "reason": "notifications disabled", "appointment_id": appointment_id}

    payload = {
        "intent": "notify_staff_waiting_patient",
        "appointment_id": appointment_id,
        "staff_id": staff_id,
        "patient_id": patient_id,
    }
    logger.info("staff notification intent: %s", payload)
    return payload


def emit_waiting_patient_intent(appointment_id):
    """Queue a "patient X is waiting" notice for the appointment's staff member."""
    appt = services.get_appointment(appointment_id)
    if appt.current_status not in WAITING_STATUSES:
        raise InvalidTransitionError(
            f"Patient is not waiting (appointment is {appt.status}).",
            state={"current": appt.status},
        )
    return notify_staff_waiting_patient.delay(appt.pk, appt.staff_id, appt.patient_id)


@shared_task(bind=True, max_retries=1)
def expire_stale_pending_appointments(self):
    """Periodic sweep; a no-op unless a pending-expiry policy is configured."""
    expired = policies.expire_stale_pending()
    return {"expired": len(expired), "ids": expired}
