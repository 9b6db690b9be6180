from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion

import apps.staff.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="StaffMember",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("display_name", models.CharField(max_length=150)),
                (
                    "role",
                    models.CharField(
                        choices=[("doctor", "Doctor"), ("nurse", "Nurse")],
                        default="doctor",
                        max_length=20,
                    ),
                ),
                ("specialization", models.CharField(blank=True, default="", max_length=120)),
                ("is_available", models.BooleanField(default=True)),
                ("daily_capacity_minutes", models.PositiveIntegerField(default=apps.staff.models.default_daily_capacity)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "user",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="staff_profile",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["display_name", "id"],
                "indexes": [
                    models.Index(fields=["role", "is_available"], name="staff_role_available_idx"),
                ],
            },
        ),
    ]
