# apps/appointments/schemas.py
from rest_framework import serializers
from drf_spectacular.utils import OpenApiExample


class SchedulingErrorSerializer(serializers.Serializer):
    detail = serializers.CharField()
    code = serializers.CharField()
    hint = serializers.CharField(required=False)


# 409 body: which slot (booking/reschedule) or which states (transition) lost.
class SchedulingConflictSerializer(SchedulingErrorSerializer):
    slot = serializers.DictField(child=serializers.CharField(), required=False)
    state = serializers.DictField(required=False)


# ---- Swagger example payloads ----

BookAppointmentExample = OpenApiExample(
    "Book appointment",
    value={
        "patient_id": "1042",
        "staff_id": 2,
        "date": "2024-06-10",
        "start_time": "09:00",
        "reason": "Fever for three days",
        "urgency": "urgent",
    },
)

RescheduleAppointmentExample = OpenApiExample(
    "Reschedule",
    value={"date": "2024-06-11", "start_time": "14:30"},
)

TransitionExample = OpenApiExample(
    "Check in",
    value={"status": "checked_in", "expected_status": "confirmed"},
)

ConflictExample = OpenApiExample(
    "Slot taken",
    value={
        "detail": "Slot no longer available.",
        "code": "conflict",
        "hint": "Re-query free slots and pick another time.",
        "slot": {"staff_id": "2", "date": "2024-06-10", "start_time": "09:00"},
    },
    response_only=True,
    status_codes=["409"],
)
