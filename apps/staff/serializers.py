# apps/staff/serializers.py
from rest_framework import serializers

from .models import StaffMember


class StaffMemberSerializer(serializers.ModelSerializer):
    class Meta:
        model = StaffMember
        fields = ["id", "display_name", "role", "specialization", "is_available", "daily_capacity_minutes"]
        read_only_fields = fields


class RecommendedStaffSerializer(StaffMemberSerializer):
    # True when the specialization matches the symptom context.
    recommended = serializers.BooleanField(read_only=True)

    class Meta(StaffMemberSerializer.Meta):
        fields = StaffMemberSerializer.Meta.fields + ["recommended"]
        read_only_fields = fields


class UtilizationRowSerializer(serializers.Serializer):
    staff_id = serializers.IntegerField()
    display_name = serializers.CharField()
    role = serializers.CharField()
    booked_minutes = serializers.IntegerField()
    capacity_minutes = serializers.IntegerField()
    utilization = serializers.FloatField()
    load = serializers.CharField()
