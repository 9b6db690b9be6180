from datetime import time

import pytest
from django.db import IntegrityError, OperationalError, transaction

from apps.appointments import services
from apps.appointments.exceptions import (
    ConflictError,
    DependencyError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from apps.appointments.models import Appointment, AppointmentStatus
from apps.appointments.services import (
    book_appointment,
    compute_available_slots,
    occupied_slots,
    reschedule_appointment,
)
from apps.appointments.slots import generate_slots
from apps.appointments.workflow import transition


def _hhmm(slots):
    return [t.strftime("%H:%M") for t in slots]


@pytest.mark.django_db
def test_free_day_offers_full_grid_and_booking_removes_the_slot(doctor, day):
    assert len(compute_available_slots(doctor.pk, "2024-06-10")) == 16

    appt = book_appointment("P-1", doctor.pk, day, "09:00", reason="Fever")

    assert appt.status == AppointmentStatus.PENDING
    assert appt.duration_minutes == 30
    free = compute_available_slots(doctor.pk, "2024-06-10")
    assert len(free) == 15
    assert "09:00" not in _hhmm(free)


@pytest.mark.django_db
def test_available_and_occupied_partition_the_grid(doctor, make_staff, day):
    other = make_staff("Nurse Kofi", role="nurse", specialization="")
    book_appointment("P-1", doctor.pk, day, "08:00")
    book_appointment("P-2", doctor.pk, day, "10:30")
    cancelled = book_appointment("P-3", doctor.pk, day, "16:00")
    transition(cancelled.pk, "cancelled")
    book_appointment("P-4", other.pk, day, "08:30")

    free = set(compute_available_slots(doctor.pk, day))
    taken = occupied_slots(doctor.pk, day)

    assert free.isdisjoint(taken)
    assert free | taken == set(generate_slots(day))
    assert taken == {time(8, 0), time(10, 30)}


@pytest.mark.django_db
def test_taken_slot_is_a_conflict_with_the_attempted_slot(doctor, day):
    book_appointment("P-1", doctor.pk, day, "09:00")

    with pytest.raises(ConflictError) as exc:
        book_appointment("P-2", doctor.pk, day, "09:00")

    assert exc.value.context["slot"] == {"staff_id": str(doctor.pk), "date": "2024-06-10", "start_time": "09:00"}
    assert Appointment.objects.active().filter(staff=doctor, appointment_date=day).count() == 1


@pytest.mark.django_db
def test_race_is_settled_by_the_unique_index(doctor, day, monkeypatch):
    # Both callers read the slot as free before either commits.
    stale_grid = list(generate_slots(day))
    book_appointment("P-1", doctor.pk, day, "09:00")
    monkeypatch.setattr(services, "compute_available_slots", lambda *a, **k: stale_grid)

    with pytest.raises(ConflictError):
        book_appointment("P-2", doctor.pk, day, "09:00")

    rows = Appointment.objects.active().filter(staff=doctor, appointment_date=day, appointment_time=time(9, 0))
    assert list(rows.values_list("patient_id", flat=True)) == ["P-1"]


@pytest.mark.django_db
def test_database_rejects_second_live_row_for_the_same_slot(doctor, day):
    Appointment.objects.create(staff=doctor, patient_id="P-1", appointment_date=day, appointment_time=time(9, 0))

    with pytest.raises(IntegrityError):
        with transaction.atomic():
            Appointment.objects.create(
                staff=doctor, patient_id="P-2", appointment_date=day, appointment_time=time(9, 0)
            )


@pytest.mark.django_db
def test_cancelled_booking_frees_the_slot_for_rebooking(doctor, day):
    first = book_appointment("P-1", doctor.pk, day, "09:00")
    transition(first.pk, "cancelled")

    assert time(9, 0) in compute_available_slots(doctor.pk, day)
    second = book_appointment("P-2", doctor.pk, day, "09:00")
    assert second.pk != first.pk


@pytest.mark.django_db
@pytest.mark.parametrize(
    "kwargs",
    [
        {"patient_id": ""},
        {"patient_id": "   "},
        {"staff_id": ""},
        {"start_time": "12:30"},
        {"start_time": "07:30"},
        {"start_time": "09:15"},
        {"start_time": "nine"},
        {"day": "2024-02-30"},
        {"urgency": "whenever"},
        {"reason": "x" * 300},
    ],
)
def test_malformed_bookings_are_validation_errors(doctor, day, kwargs):
    args = {"patient_id": "P-1", "staff_id": doctor.pk, "day": day, "start_time": "09:00", **kwargs}

    with pytest.raises(ValidationError):
        book_appointment(**args)
    assert not Appointment.objects.exists()


@pytest.mark.django_db
def test_unknown_staff_is_not_found(day):
    with pytest.raises(NotFoundError):
        book_appointment("P-1", 4242, day, "09:00")


@pytest.mark.django_db
def test_unavailable_staff_cannot_take_new_bookings_but_keeps_old_ones(doctor, day):
    kept = book_appointment("P-1", doctor.pk, day, "09:00")
    doctor.is_available = False
    doctor.save()

    with pytest.raises(ValidationError):
        book_appointment("P-2", doctor.pk, day, "10:00")

    kept.refresh_from_db()
    assert kept.status == AppointmentStatus.PENDING
    assert time(9, 0) not in compute_available_slots(doctor.pk, day)


@pytest.mark.django_db
def test_ledger_outage_aborts_booking_without_commit(doctor, day, monkeypatch):
    def boom(**kwargs):
        raise OperationalError("database is locked")

    monkeypatch.setattr(Appointment.objects, "create", boom)

    with pytest.raises(DependencyError):
        book_appointment("P-1", doctor.pk, day, "09:00")
    assert not Appointment.objects.exists()


# -------- rescheduling --------

@pytest.mark.django_db
def test_reschedule_moves_the_booking_and_frees_the_old_slot(doctor, day):
    appt = book_appointment("P-1", doctor.pk, day, "09:00")

    moved = reschedule_appointment(appt.pk, "2024-06-11", "14:30")

    assert (moved.appointment_date.isoformat(), moved.appointment_time) == ("2024-06-11", time(14, 30))
    assert moved.status == AppointmentStatus.PENDING
    assert time(9, 0) in compute_available_slots(doctor.pk, day)


@pytest.mark.django_db
def test_availability_check_ignores_the_appointments_own_slot(doctor, day):
    appt = book_appointment("P-1", doctor.pk, day, "09:00")

    assert time(9, 0) in compute_available_slots(doctor.pk, day, exclude_id=appt.pk)


@pytest.mark.django_db
def test_reschedule_into_taken_slot_conflicts_and_leaves_original(doctor, day):
    appt = book_appointment("P-1", doctor.pk, day, "09:00")
    book_appointment("P-2", doctor.pk, day, "10:00")

    with pytest.raises(ConflictError):
        reschedule_appointment(appt.pk, day, "10:00")

    appt.refresh_from_db()
    assert appt.appointment_time == time(9, 0)


@pytest.mark.django_db
def test_reschedule_race_at_commit_leaves_original(doctor, day, monkeypatch):
    appt = book_appointment("P-1", doctor.pk, day, "09:00")
    book_appointment("P-2", doctor.pk, day, "10:00")
    stale_grid = list(generate_slots(day))
    monkeypatch.setattr(services, "compute_available_slots", lambda *a, **k: stale_grid)

    with pytest.raises(ConflictError):
        reschedule_appointment(appt.pk, day, "10:00")

    appt.refresh_from_db()
    assert appt.appointment_time == time(9, 0)
    assert appt.status == AppointmentStatus.PENDING


@pytest.mark.django_db
def test_reschedule_is_refused_once_the_visit_started(doctor, day):
    appt = book_appointment("P-1", doctor.pk, day, "09:00")
    for status in ("confirmed", "checked_in"):
        transition(appt.pk, status)

    with pytest.raises(InvalidTransitionError):
        reschedule_appointment(appt.pk, day, "11:00")


@pytest.mark.django_db
def test_reschedule_to_same_slot_is_invalid(doctor, day):
    appt = book_appointment("P-1", doctor.pk, day, "09:00")

    with pytest.raises(ValidationError):
        reschedule_appointment(appt.pk, day, "09:00")


@pytest.mark.django_db
def test_reschedule_unknown_appointment_is_not_found():
    with pytest.raises(NotFoundError):
        reschedule_appointment(999, "2024-06-10", "09:00")
