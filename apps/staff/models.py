# apps/staff/models.py
from django.conf import settings
from django.db import models


def default_daily_capacity() -> int:
    return int(settings.SCHEDULING.get("DEFAULT_DAILY_CAPACITY_MINUTES", 480))


class StaffMember(models.Model):
    """
    Bookable clinician as seen by scheduling.

    The roster is owned upstream; scheduling only reads role, specialization,
    availability and daily capacity. Flipping `is_available` off stops new
    bookings but leaves existing ones alone.
    """

    class Role(models.TextChoices):
        DOCTOR = "doctor", "Doctor"
        NURSE = "nurse", "Nurse"

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="staff_profile",
    )
    display_name = models.CharField(max_length=150)
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.DOCTOR)
    specialization = models.CharField(max_length=120, blank=True, default="")
    is_available = models.BooleanField(default=True)
    daily_capacity_minutes = models.PositiveIntegerField(default=default_daily_capacity)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["role", "is_available"], name="staff_role_available_idx"),
        ]
        ordering = ["display_name", "id"]

    def __str__(self) -> str:
        spec = f" ({self.specialization})" if self.specialization else ""
        return f"{self.display_name}{spec}"
