# apps/appointments/policies.py
"""
Pending-expiry policy.

Nothing expires unless SCHEDULING["PENDING_EXPIRY_MINUTES"] is set (or a
max age is passed explicitly). Expiring means cancelling through the normal
state machine, so the slot is freed the same way a front-desk cancel frees it.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from django.conf import settings
from django.utils import timezone

from . import workflow
from .exceptions import ConflictError, InvalidTransitionError, NotFoundError, ValidationError
from .models import Appointment, AppointmentStatus

logger = logging.getLogger(__name__)


def pending_expiry_minutes() -> Optional[int]:
    value = settings.SCHEDULING.get("PENDING_EXPIRY_MINUTES")
    return int(value) if value else None


def stale_pending(max_age_minutes: int, now: Optional[datetime] = None):
    cutoff = (now or timezone.now()) - timedelta(minutes=max_age_minutes)
    return Appointment.objects.filter(status=AppointmentStatus.PENDING, created_at__lte=cutoff).order_by(
        "created_at", "id"
    )


def expire_stale_pending(
    now: Optional[datetime] = None,
    max_age_minutes: Optional[int] = None,
    dry_run: bool = False,
) -> List[int]:
    """Cancel pending appointments older than the threshold; returns the affected ids."""
    minutes = max_age_minutes if max_age_minutes is not None else pending_expiry_minutes()
    if minutes is None:
        return []
    if minutes <= 0:
        raise ValidationError("Pending expiry must be a positive number of minutes.")

    ids = list(stale_pending(minutes, now).values_list("pk", flat=True))
    if dry_run:
        return ids

    expired = []
    for pk in ids:
        try:
            workflow.transition(pk, AppointmentStatus.CANCELLED, expected_status=AppointmentStatus.PENDING)
        except (ConflictError, InvalidTransitionError, NotFoundError) as exc:
            # Someone confirmed or cancelled it meanwhile; leave it alone.
            logger.info("pending expiry skipped appointment %s: %s", pk, exc.detail)
            continue
        expired.append(pk)

    if expired:
        logger.info("expired %d stale pending appointment(s) older than %d min", len(expired), minutes)
    return expired
