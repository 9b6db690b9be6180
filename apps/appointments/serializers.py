# apps/appointments/serializers.py
from __future__ import annotations

from rest_framework import serializers

from .models import Appointment, AppointmentStatus, Urgency

TIME_INPUT_FORMATS = ["%H:%M", "%H:%M:%S"]


class AppointmentSerializer(serializers.ModelSerializer):
    staff_name = serializers.CharField(source="staff.display_name", read_only=True)
    appointment_time = serializers.TimeField(format="%H:%M")

    class Meta:
        model = Appointment
        fields = [
            "id",
            "patient_id",
            "staff",
            "staff_name",
            "appointment_date",
            "appointment_time",
            "duration_minutes",
            "reason",
            "urgency",
            "status",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class BookAppointmentSerializer(serializers.Serializer):
    patient_id = serializers.CharField(max_length=64)
    staff_id = serializers.IntegerField(min_value=1)
    date = serializers.DateField()
    start_time = serializers.TimeField(input_formats=TIME_INPUT_FORMATS)
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    urgency = serializers.ChoiceField(choices=Urgency.choices, required=False, default=Urgency.ROUTINE)


class RescheduleSerializer(serializers.Serializer):
    date = serializers.DateField()
    start_time = serializers.TimeField(input_formats=TIME_INPUT_FORMATS)


class TransitionSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=AppointmentStatus.choices)
    # The status the caller saw; the change is refused if it moved on since.
    expected_status = serializers.ChoiceField(choices=AppointmentStatus.choices, required=False)


class CancelSerializer(serializers.Serializer):
    expected_status = serializers.ChoiceField(choices=AppointmentStatus.choices, required=False)


class FreeSlotsSerializer(serializers.Serializer):
    staff_id = serializers.IntegerField()
    date = serializers.DateField()
    slot_minutes = serializers.IntegerField()
    slots = serializers.ListField(child=serializers.TimeField(format="%H:%M"))


class WaitingPatientSerializer(serializers.Serializer):
    appointment_id = serializers.IntegerField()
    patient_id = serializers.CharField()
    staff_id = serializers.IntegerField()
    staff_name = serializers.CharField()
    appointment_time = serializers.TimeField(format="%H:%M")
    reason = serializers.CharField()
    waiting_minutes = serializers.IntegerField()


class ExportRowSerializer(serializers.Serializer):
    patient_name = serializers.CharField()
    staff_name = serializers.CharField()
    date = serializers.DateField()
    status = serializers.CharField()
    reason = serializers.CharField(allow_blank=True)
