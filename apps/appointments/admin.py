# apps/appointments/admin.py
from django.contrib import admin
from .models import Appointment


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ("id", "patient_id", "staff", "appointment_date", "appointment_time", "status", "urgency")
    list_filter = ("status", "urgency", "staff", "appointment_date")
    search_fields = ("reason", "patient_id", "staff__display_name")
    # Status and slot only change through the booking engine and state machine.
    readonly_fields = ("status", "appointment_date", "appointment_time", "created_at", "updated_at")
