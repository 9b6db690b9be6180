# apps/appointments/workflow.py
"""
Appointment status state machine.

    pending      -> confirmed | cancelled
    confirmed    -> checked_in | cancelled
    checked_in   -> in_progress | cancelled
    in_progress  -> completed
    completed, cancelled: terminal

Every change is a single conditional UPDATE that also matches the status we
read, so two concurrent transitions on the same row produce one winner.
"""
from __future__ import annotations

import logging
from typing import FrozenSet, Optional

from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from . import services
from .exceptions import ConflictError, DependencyError, InvalidTransitionError, NotFoundError, ValidationError
from .models import Appointment, AppointmentStatus

logger = logging.getLogger(__name__)

S = AppointmentStatus

VALID_TRANSITIONS: dict[AppointmentStatus, FrozenSet[AppointmentStatus]] = {
    S.PENDING: frozenset({S.CONFIRMED, S.CANCELLED}),
    S.CONFIRMED: frozenset({S.CHECKED_IN, S.CANCELLED}),
    S.CHECKED_IN: frozenset({S.IN_PROGRESS, S.CANCELLED}),
    S.IN_PROGRESS: frozenset({S.COMPLETED}),
    S.COMPLETED: frozenset(),
    S.CANCELLED: frozenset(),
}


def _as_status(value, field: str) -> AppointmentStatus:
    try:
        return AppointmentStatus(value)
    except ValueError:
        raise ValidationError(
            f"Unknown appointment status '{value}'.", field=field, allowed=list(AppointmentStatus.values)
        )


def allowed_targets(current) -> FrozenSet[AppointmentStatus]:
    return VALID_TRANSITIONS.get(AppointmentStatus(current), frozenset())


def can_transition(current, target) -> bool:
    """Check if a status change is a defined edge."""
    return AppointmentStatus(target) in allowed_targets(current)


def is_terminal(status) -> bool:
    return not allowed_targets(status)


def transition(appointment_id, target_status, expected_status: Optional[str] = None) -> Appointment:
    """
    Move an appointment to `target_status`.

    `expected_status` pins the state the caller saw; if the stored state moved
    on since, the call fails with ConflictError instead of acting on stale data.
    """
    target = _as_status(target_status, "status")
    expected = _as_status(expected_status, "expected_status") if expected_status else None

    appt = services.get_appointment(appointment_id)
    observed = appt.current_status
    state = {"current": observed.value, "target": target.value}

    if expected is not None and expected != observed:
        raise ConflictError(
            "Appointment status changed since it was read.",
            state={**state, "expected": expected.value},
        )

    if not can_transition(observed, target):
        raise InvalidTransitionError(
            f"Cannot change status from {observed.value} to {target.value}.",
            state={**state, "allowed": sorted(s.value for s in allowed_targets(observed))},
        )

    try:
        with transaction.atomic():
            updated = Appointment.objects.filter(pk=appt.pk, status=observed).update(
                status=target, updated_at=timezone.now()
            )
    except IntegrityError as exc:
        raise ConflictError("Status change rejected by the ledger.", state=state) from exc
    except DatabaseError as exc:
        logger.error("transition of %s aborted, ledger unavailable", appt.pk, exc_info=True)
        raise DependencyError() from exc

    if not updated:
        if not Appointment.objects.filter(pk=appt.pk).exists():
            raise NotFoundError(f"Appointment {appt.pk} not found.", appointment_id=str(appt.pk))
        logger.warning("transition of %s lost race: %s", appt.pk, state)
        raise ConflictError("Appointment status changed concurrently.", state=state)

    appt.refresh_from_db()
    logger.info("appointment %s: %s -> %s", appt.pk, observed.value, target.value)
    return appt


def cancel(appointment_id, expected_status: Optional[str] = None) -> Appointment:
    return transition(appointment_id, AppointmentStatus.CANCELLED, expected_status=expected_status)
