from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("staff", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Appointment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("patient_id", models.CharField(max_length=64)),
                ("appointment_date", models.DateField()),
                ("appointment_time", models.TimeField()),
                ("duration_minutes", models.PositiveSmallIntegerField(db_column="duration", default=30)),
                ("reason", models.CharField(blank=True, default="", max_length=255)),
                (
                    "urgency",
                    models.CharField(
                        choices=[("routine", "Routine"), ("urgent", "Urgent"), ("emergency", "Emergency")],
                        default="routine",
                        max_length=20,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("confirmed", "Confirmed"),
                            ("checked_in", "Checked in"),
                            ("in_progress", "In progress"),
                            ("completed", "Completed"),
                            ("cancelled", "Cancelled"),
                        ],
                        db_column="status_code",
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "staff",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="appointments",
                        to="staff.staffmember",
                    ),
                ),
            ],
            options={
                "ordering": ["appointment_date", "appointment_time", "id"],
                "indexes": [
                    models.Index(fields=["appointment_date", "appointment_time"], name="appt_date_time_idx"),
                    models.Index(fields=["staff", "appointment_date"], name="appt_staff_date_idx"),
                    models.Index(fields=["status", "appointment_date"], name="appt_status_date_idx"),
                    models.Index(fields=["patient_id"], name="appt_patient_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("status", "cancelled"), _negated=True),
                        fields=("staff", "appointment_date", "appointment_time"),
                        name="uniq_active_staff_slot",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("status__in", ["pending", "confirmed", "checked_in", "in_progress", "completed", "cancelled"])
                        ),
                        name="appt_status_code_valid",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("duration_minutes__gt", 0)),
                        name="appt_duration_positive",
                    ),
                ],
            },
        ),
    ]
