# apps/appointments/api.py
from django.utils import timezone

from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.filters import OrderingFilter, SearchFilter

from drf_spectacular.utils import (
    extend_schema,
    extend_schema_view,
    OpenApiParameter,
)
from drf_spectacular.types import OpenApiTypes

from apps.rbac.permissions import SCHEDULE_READERS, SCHEDULE_WRITERS, roles_required
from apps.audit.utils import log_event
from apps.staff import directory

from . import reports, services, tasks, workflow
from .exceptions import (
    ConflictError,
    DataIntegrityError,
    DependencyError,
    InvalidTransitionError,
    NotFoundError,
    SchedulingError,
    ValidationError,
)
from .models import Appointment, AppointmentStatus
from .serializers import (
    AppointmentSerializer,
    BookAppointmentSerializer,
    CancelSerializer,
    ExportRowSerializer,
    FreeSlotsSerializer,
    RescheduleSerializer,
    TransitionSerializer,
    WaitingPatientSerializer,
)
from .schemas import (
    BookAppointmentExample,
    ConflictExample,
    RescheduleAppointmentExample,
    SchedulingConflictSerializer,
    SchedulingErrorSerializer,
    TransitionExample,
)
from .slots import parse_date, slot_minutes

HTTP_STATUS_FOR = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (InvalidTransitionError, status.HTTP_409_CONFLICT),
    (DependencyError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (DataIntegrityError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def error_response(exc: SchedulingError) -> Response:
    """Turn a scheduling error into a JSON body the front desk can act on."""
    for cls, code in HTTP_STATUS_FOR:
        if isinstance(exc, cls):
            return Response(exc.as_dict(), status=code)
    return Response(exc.as_dict(), status=status.HTTP_400_BAD_REQUEST)


WRITE_ACTIONS = {"create", "reschedule", "cancel", "notify_staff"}

ERROR_RESPONSES = {
    400: SchedulingErrorSerializer,
    404: SchedulingErrorSerializer,
    409: SchedulingConflictSerializer,
    503: SchedulingErrorSerializer,
}


@extend_schema_view(
    list=extend_schema(
        summary="List appointments (paginated)",
        description=(
            "Filters: `date`, or an inclusive `date_from`..`date_to` range for week and month views; "
            "`staff_id`, `patient_id`, `status`; `q` searches the reason."
        ),
        parameters=[
            OpenApiParameter(name="date", required=False, type=OpenApiTypes.DATE),
            OpenApiParameter(name="date_from", required=False, type=OpenApiTypes.DATE),
            OpenApiParameter(name="date_to", required=False, type=OpenApiTypes.DATE),
            OpenApiParameter(name="staff_id", required=False, type=OpenApiTypes.INT),
            OpenApiParameter(name="patient_id", required=False, type=OpenApiTypes.STR),
            OpenApiParameter(name="status", required=False, type=OpenApiTypes.STR),
            OpenApiParameter(name="q", description="search in reason", required=False, type=OpenApiTypes.STR),
            OpenApiParameter(name="sort", required=False, type=OpenApiTypes.STR),
            OpenApiParameter(name="limit", required=False, type=OpenApiTypes.INT),
            OpenApiParameter(name="offset", required=False, type=OpenApiTypes.INT),
        ],
    ),
    retrieve=extend_schema(
        summary="Get appointment",
        description="Fetch one appointment by id. Emits `appt.view` audit.",
        responses={200: AppointmentSerializer},
    ),
)
class AppointmentViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """
    Booking, rescheduling and status changes go through the scheduling
    services; there is no raw update/delete on appointments.
    """
    schema_tags = ["Appointments"]
    queryset = Appointment.objects.select_related("staff").all()
    serializer_class = AppointmentSerializer
    filter_backends = [SearchFilter, OrderingFilter]
    search_fields = ["reason"]
    ordering_fields = ["appointment_date", "appointment_time", "status", "created_at"]
    ordering = ["appointment_date", "appointment_time", "id"]
    lookup_value_regex = r"\d+"

    def get_permissions(self):
        roles = SCHEDULE_WRITERS if self.action in WRITE_ACTIONS else SCHEDULE_READERS
        return [IsAuthenticated(), roles_required(*roles)()]

    def get_queryset(self):
        qs = super().get_queryset()
        if self.action != "list":
            return qs

        params = self.request.query_params
        if params.get("date"):
            qs = qs.filter(appointment_date=parse_date(params["date"]))

        # Week and month views.
        date_from = parse_date(params["date_from"]) if params.get("date_from") else None
        date_to = parse_date(params["date_to"]) if params.get("date_to") else None
        if date_from and date_to and date_to < date_from:
            raise ValidationError("date_to must not be before date_from.", field="date_to")
        if date_from:
            qs = qs.filter(appointment_date__gte=date_from)
        if date_to:
            qs = qs.filter(appointment_date__lte=date_to)

        staff_id = params.get("staff_id", "").strip()
        if staff_id:
            if not staff_id.isdigit():
                raise ValidationError(f"'{staff_id}' is not a valid staff id.", field="staff_id")
            qs = qs.filter(staff_id=int(staff_id))
        if params.get("patient_id"):
            qs = qs.filter(patient_id=params["patient_id"])
        if params.get("status"):
            if params["status"] not in AppointmentStatus.values:
                raise ValidationError(
                    f"Unknown appointment status '{params['status']}'.",
                    field="status",
                    allowed=list(AppointmentStatus.values),
                )
            qs = qs.filter(status=params["status"])
        return qs

    def handle_exception(self, exc):
        if isinstance(exc, SchedulingError):
            return error_response(exc)
        return super().handle_exception(exc)

    # ---- retrieve ----
    def retrieve(self, request, *args, **kwargs):
        obj = self.get_object()
        log_event(request, "appt.view", "Appointment", obj.id)
        return Response(AppointmentSerializer(obj).data)

    # ---- book ----
    @extend_schema(
        summary="Book appointment (conflict-safe)",
        description=(
            "Books a pending appointment into a free grid slot. A slot taken in the meantime "
            "returns **409** with the attempted slot; re-query free slots before retrying."
        ),
        request=BookAppointmentSerializer,
        examples=[BookAppointmentExample, ConflictExample],
        responses={201: AppointmentSerializer, **ERROR_RESPONSES},
    )
    def create(self, request, *args, **kwargs):
        ser = BookAppointmentSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        vd = ser.validated_data

        try:
            obj = services.book_appointment(
                patient_id=vd["patient_id"],
                staff_id=vd["staff_id"],
                day=vd["date"],
                start_time=vd["start_time"],
                reason=vd.get("reason", ""),
                urgency=vd.get("urgency"),
            )
        except ConflictError as exc:
            log_event(request, "appt.conflict", "Appointment", "", detail=exc.as_dict())
            raise

        log_event(request, "appt.create", "Appointment", obj.id)
        return Response(AppointmentSerializer(obj).data, status=status.HTTP_201_CREATED)

    # ---- reschedule ----
    @extend_schema(
        methods=["POST"],
        summary="Reschedule appointment",
        description="Moves a pending/confirmed appointment to another free slot; **409** if it was taken.",
        request=RescheduleSerializer,
        examples=[RescheduleAppointmentExample],
        responses={200: AppointmentSerializer, **ERROR_RESPONSES},
    )
    @action(detail=True, methods=["post"], url_path="reschedule")
    def reschedule(self, request, pk=None):
        ser = RescheduleSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        vd = ser.validated_data

        obj = services.reschedule_appointment(pk, vd["date"], vd["start_time"])
        log_event(request, "appt.reschedule", "Appointment", obj.id)
        return Response(AppointmentSerializer(obj).data)

    # ---- status changes ----
    @extend_schema(
        methods=["POST"],
        summary="Change appointment status",
        description=(
            "Applies one legal status edge. Illegal edges return **409** `invalid_transition`; "
            "losing a race (or a stale `expected_status`) returns **409** `conflict`. "
            "Moving to `cancelled` requires a front-desk role."
        ),
        request=TransitionSerializer,
        examples=[TransitionExample],
        responses={200: AppointmentSerializer, **ERROR_RESPONSES},
    )
    @action(detail=True, methods=["post"], url_path="transition")
    def transition(self, request, pk=None):
        ser = TransitionSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        vd = ser.validated_data

        # Cancelling here needs the same roles as /cancel/.
        if vd["status"] == AppointmentStatus.CANCELLED:
            writers = roles_required(*SCHEDULE_WRITERS)()
            if not writers.has_permission(request, self):
                self.permission_denied(request, message="Only front desk staff may cancel appointments.")

        obj = workflow.transition(pk, vd["status"], expected_status=vd.get("expected_status"))
        log_event(request, f"appt.{obj.status}", "Appointment", obj.id)
        return Response(AppointmentSerializer(obj).data)

    @extend_schema(
        methods=["POST"],
        summary="Cancel appointment",
        description="Cancels and frees the slot. Cancelling twice is an invalid transition.",
        request=CancelSerializer,
        responses={200: AppointmentSerializer, **ERROR_RESPONSES},
    )
    @action(detail=True, methods=["post"], url_path="cancel")
    def cancel(self, request, pk=None):
        ser = CancelSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        obj = workflow.cancel(pk, expected_status=ser.validated_data.get("expected_status"))
        log_event(request, "appt.cancel", "Appointment", obj.id)
        return Response(AppointmentSerializer(obj).data)

    @extend_schema(
        methods=["POST"],
        summary="Notify staff about a waiting patient",
        description="Queues a notification intent for the appointment's staff member; nothing is delivered here.",
        request=None,
        responses={202: OpenApiTypes.OBJECT, **ERROR_RESPONSES},
    )
    @action(detail=True, methods=["post"], url_path="notify-staff")
    def notify_staff(self, request, pk=None):
        result = tasks.emit_waiting_patient_intent(pk)
        log_event(request, "appt.notify_staff", "Appointment", pk)
        return Response({"queued": True, "task_id": getattr(result, "id", None)}, status=status.HTTP_202_ACCEPTED)

    # ---- read contracts ----
    @extend_schema(
        methods=["GET"],
        summary="Free slots for a staff member",
        parameters=[
            OpenApiParameter(name="staff_id", required=True, type=OpenApiTypes.INT),
            OpenApiParameter(name="date", required=True, type=OpenApiTypes.DATE),
        ],
        responses={200: FreeSlotsSerializer, **ERROR_RESPONSES},
    )
    @action(detail=False, methods=["get"], url_path="free-slots")
    def free_slots(self, request):
        staff_id = request.query_params.get("staff_id")
        raw_date = request.query_params.get("date")
        if not (staff_id and raw_date):
            raise ValidationError("staff_id and date are required.")

        day = parse_date(raw_date)
        staff = directory.get_staff(staff_id)
        slots = services.compute_available_slots(staff.pk, day)
        payload = {"staff_id": staff.pk, "date": day, "slot_minutes": slot_minutes(), "slots": slots}
        return Response(FreeSlotsSerializer(payload).data)

    @extend_schema(
        methods=["GET"],
        summary="Appointments for a day (defaults to today)",
        parameters=[OpenApiParameter(name="date", required=False, type=OpenApiTypes.DATE)],
        responses={200: AppointmentSerializer(many=True)},
    )
    @action(detail=False, methods=["get"], url_path="today")
    def today(self, request):
        raw_date = request.query_params.get("date")
        rows = reports.list_today_appointments(parse_date(raw_date) if raw_date else None)
        return Response(AppointmentSerializer(rows, many=True).data)

    @extend_schema(
        methods=["GET"],
        summary="Waiting patients",
        description="Pending appointments on the day booked at least `older_than_minutes` ago.",
        parameters=[
            OpenApiParameter(name="date", required=False, type=OpenApiTypes.DATE),
            OpenApiParameter(name="older_than_minutes", required=False, type=OpenApiTypes.INT),
        ],
        responses={200: WaitingPatientSerializer(many=True)},
    )
    @action(detail=False, methods=["get"], url_path="waiting")
    def waiting(self, request):
        raw_date = request.query_params.get("date")
        day = parse_date(raw_date) if raw_date else timezone.localdate()
        rows = reports.list_waiting_patients(day, request.query_params.get("older_than_minutes", 0))
        return Response(WaitingPatientSerializer(rows, many=True).data)

    @extend_schema(
        methods=["GET"],
        summary="Export appointments (flat rows)",
        parameters=[
            OpenApiParameter(name="date_from", required=True, type=OpenApiTypes.DATE),
            OpenApiParameter(name="date_to", required=True, type=OpenApiTypes.DATE),
        ],
        responses={200: ExportRowSerializer(many=True)},
    )
    @action(detail=False, methods=["get"], url_path="export")
    def export(self, request):
        df = request.query_params.get("date_from")
        dt = request.query_params.get("date_to")
        if not (df and dt):
            raise ValidationError("date_from and date_to are required.")

        rows = reports.export_appointments(df, dt)
        log_event(request, "appt.export", "Appointment", f"{df}..{dt}")
        return Response(ExportRowSerializer(rows, many=True).data)
