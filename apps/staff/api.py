# apps/staff/api.py
from django.utils import timezone

from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from drf_spectacular.utils import extend_schema, extend_schema_view, OpenApiParameter
from drf_spectacular.types import OpenApiTypes

from apps.rbac.permissions import SCHEDULE_READERS, roles_required
from apps.appointments.api import error_response
from apps.appointments.exceptions import SchedulingError
from apps.appointments.slots import parse_date
from apps.appointments.utilization import compute_utilization, utilization_board

from . import directory
from .models import StaffMember
from .recommendations import is_recommended, recommend_available_staff, specialization_keywords
from .serializers import RecommendedStaffSerializer, StaffMemberSerializer, UtilizationRowSerializer


def _day(request):
    raw = request.query_params.get("date")
    return parse_date(raw) if raw else timezone.localdate()


@extend_schema_view(
    list=extend_schema(
        summary="Available staff",
        description="Staff currently accepting bookings, optionally narrowed by `role` (doctor|nurse).",
        parameters=[
            OpenApiParameter(name="role", required=False, type=OpenApiTypes.STR),
            OpenApiParameter(name="date", required=False, type=OpenApiTypes.DATE),
        ],
        responses={200: StaffMemberSerializer(many=True)},
    ),
    retrieve=extend_schema(summary="Get staff member", responses={200: StaffMemberSerializer}),
)
class StaffViewSet(viewsets.ReadOnlyModelViewSet):
    """Read-only roster plus the read-side aggregates used when picking who to book."""
    schema_tags = ["Staff"]
    queryset = StaffMember.objects.all()
    serializer_class = StaffMemberSerializer
    permission_classes = [IsAuthenticated, roles_required(*SCHEDULE_READERS)]
    pagination_class = None
    lookup_value_regex = r"\d+"

    def handle_exception(self, exc):
        if isinstance(exc, SchedulingError):
            return error_response(exc)
        return super().handle_exception(exc)

    def list(self, request, *args, **kwargs):
        rows = directory.list_available(request.query_params.get("role") or None, _day(request))
        return Response(StaffMemberSerializer(rows, many=True).data)

    @extend_schema(
        methods=["GET"],
        summary="Staff utilization for a day",
        description=(
            "Booked minutes against daily capacity. Pass `staff_id` for a single figure; "
            "otherwise the whole available roster is returned (empty if it can't be read)."
        ),
        parameters=[
            OpenApiParameter(name="date", required=False, type=OpenApiTypes.DATE),
            OpenApiParameter(name="role", required=False, type=OpenApiTypes.STR),
            OpenApiParameter(name="staff_id", required=False, type=OpenApiTypes.INT),
        ],
        responses={200: UtilizationRowSerializer(many=True)},
    )
    @action(detail=False, methods=["get"], url_path="utilization")
    def utilization(self, request):
        day = _day(request)
        staff_id = request.query_params.get("staff_id")
        if staff_id:
            staff = directory.get_staff(staff_id)
            return Response(
                {"staff_id": staff.pk, "date": day.isoformat(), "utilization": compute_utilization(staff.pk, day)}
            )

        rows = utilization_board(day, request.query_params.get("role") or None)
        return Response(UtilizationRowSerializer(rows, many=True).data)

    @extend_schema(
        methods=["GET"],
        summary="Staff ranked for a symptom context",
        description=(
            "Available staff with matching specializations first (e.g. fever → infectious disease, "
            "internal/general/family medicine), then everyone else, each group in roster order."
        ),
        parameters=[
            OpenApiParameter(name="symptoms", description="comma-separated tags", required=False, type=OpenApiTypes.STR),
            OpenApiParameter(name="role", required=False, type=OpenApiTypes.STR),
            OpenApiParameter(name="date", required=False, type=OpenApiTypes.DATE),
        ],
        responses={200: RecommendedStaffSerializer(many=True)},
    )
    @action(detail=False, methods=["get"], url_path="recommend")
    def recommend(self, request):
        tags = [t.strip() for t in request.query_params.get("symptoms", "").split(",") if t.strip()]
        role = request.query_params.get("role") or "doctor"
        ranked = recommend_available_staff(tags, role, _day(request))

        keywords = specialization_keywords(tags)
        for staff in ranked:
            staff.recommended = is_recommended(staff, keywords)
        return Response(RecommendedStaffSerializer(ranked, many=True).data)
