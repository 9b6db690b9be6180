# apps/appointments/models.py
from django.db import models
from django.db.models import Q

from .exceptions import DataIntegrityError


class AppointmentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    CONFIRMED = "confirmed", "Confirmed"
    CHECKED_IN = "checked_in", "Checked in"
    IN_PROGRESS = "in_progress", "In progress"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"

    @classmethod
    def from_code(cls, code: str) -> "AppointmentStatus":
        """Map a stored status_code onto the enumeration; anything else is corrupt data."""
        try:
            return cls(code)
        except ValueError:
            raise DataIntegrityError(f"Unknown appointment status code '{code}'.", status_code=code)


class Urgency(models.TextChoices):
    ROUTINE = "routine", "Routine"
    URGENT = "urgent", "Urgent"
    EMERGENCY = "emergency", "Emergency"


class AppointmentQuerySet(models.QuerySet):
    def active(self) -> "AppointmentQuerySet":
        """Rows that hold their slot (everything except cancelled)."""
        return self.exclude(status=AppointmentStatus.CANCELLED)

    def for_staff_day(self, staff_id, day) -> "AppointmentQuerySet":
        return self.filter(staff_id=staff_id, appointment_date=day)


class Appointment(models.Model):
    """
    One booking of a patient into a staff member's slot.

    Column names follow the clinic's existing schema. Rows are never deleted in
    normal flow; cancellation is a status and releases the slot.
    """

    staff = models.ForeignKey(
        "staff.StaffMember",
        on_delete=models.PROTECT,
        related_name="appointments",
    )
    # Opaque reference into the patient registry.
    patient_id = models.CharField(max_length=64)

    appointment_date = models.DateField()
    appointment_time = models.TimeField()
    duration_minutes = models.PositiveSmallIntegerField(db_column="duration", default=30)

    reason = models.CharField(max_length=255, blank=True, default="")
    urgency = models.CharField(max_length=20, choices=Urgency.choices, default=Urgency.ROUTINE)
    status = models.CharField(
        db_column="status_code",
        max_length=20,
        choices=AppointmentStatus.choices,
        default=AppointmentStatus.PENDING,
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = AppointmentQuerySet.as_manager()

    class Meta:
        indexes = [
            models.Index(fields=["appointment_date", "appointment_time"], name="appt_date_time_idx"),
            models.Index(fields=["staff", "appointment_date"], name="appt_staff_date_idx"),
            models.Index(fields=["status", "appointment_date"], name="appt_status_date_idx"),
            models.Index(fields=["patient_id"], name="appt_patient_idx"),
        ]
        constraints = [
            # One live booking per staff slot; cancelled rows drop out of the index.
            models.UniqueConstraint(
                name="uniq_active_staff_slot",
                fields=["staff", "appointment_date", "appointment_time"],
                condition=~Q(status="cancelled"),
            ),
            models.CheckConstraint(
                name="appt_status_code_valid",
                condition=Q(status__in=[
                    "pending", "confirmed", "checked_in", "in_progress", "completed", "cancelled",
                ]),
            ),
            models.CheckConstraint(
                name="appt_duration_positive",
                condition=Q(duration_minutes__gt=0),
            ),
        ]
        ordering = ["appointment_date", "appointment_time", "id"]

    def __str__(self) -> str:
        return (
            f"#{self.pk} patient {self.patient_id} with staff {self.staff_id} "
            f"@ {self.appointment_date} {self.appointment_time:%H:%M} ({self.status})"
        )

    @property
    def current_status(self) -> AppointmentStatus:
        return AppointmentStatus.from_code(self.status)

    def is_cancelled(self) -> bool:
        return self.status == AppointmentStatus.CANCELLED
