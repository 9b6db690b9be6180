import pytest
from django.contrib.auth import get_user_model
from django.urls import Resolver404, resolve, reverse
from rest_framework.test import APIClient

from apps.appointments.services import book_appointment
from apps.audit.models import AuditEvent

BOOK_URL = "appointments_api:appointment-list"


def _booking(staff, **overrides):
    return {"patient_id": "P-1", "staff_id": staff.pk, "date": "2024-06-10", "start_time": "09:00",
            "reason": "Fever", **overrides}


@pytest.mark.django_db
def test_jwt_login_then_read_the_roster(doctor, make_user):
    make_user("apiuser", "clinician")
    client = APIClient()

    res = client.post(reverse("token_obtain_pair"), {"username": "apiuser", "password": "pass12345!"}, format="json")
    assert res.status_code == 200, res.content

    client.credentials(HTTP_AUTHORIZATION=f"Bearer {res.json()['access']}")
    r2 = client.get(reverse("staff_api:staff-list"))
    assert r2.status_code == 200, r2.content
    assert [row["display_name"] for row in r2.json()] == ["Dr. Amara Mensah"]


@pytest.mark.django_db
def test_book_returns_created_pending_appointment(front_desk, doctor):
    res = front_desk.post(reverse(BOOK_URL), _booking(doctor), format="json")

    assert res.status_code == 201, res.content
    body = res.json()
    assert body["status"] == "pending"
    assert body["appointment_time"] == "09:00"
    assert body["staff_name"] == doctor.display_name
    assert AuditEvent.objects.filter(action="appt.create", object_id=str(body["id"])).exists()


@pytest.mark.django_db
def test_double_booking_is_409_with_the_attempted_slot(front_desk, doctor):
    front_desk.post(reverse(BOOK_URL), _booking(doctor), format="json")

    res = front_desk.post(reverse(BOOK_URL), _booking(doctor, patient_id="P-2"), format="json")

    assert res.status_code == 409, res.content
    body = res.json()
    assert body["code"] == "conflict"
    assert body["slot"] == {"staff_id": str(doctor.pk), "date": "2024-06-10", "start_time": "09:00"}
    assert body["hint"]
    assert AuditEvent.objects.filter(action="appt.conflict").count() == 1


@pytest.mark.django_db
def test_off_grid_booking_is_400(front_desk, doctor):
    res = front_desk.post(reverse(BOOK_URL), _booking(doctor, start_time="12:30"), format="json")

    assert res.status_code == 400
    assert res.json()["code"] == "invalid"


@pytest.mark.django_db
def test_booking_unknown_staff_is_404(front_desk):
    res = front_desk.post(
        reverse(BOOK_URL),
        {"patient_id": "P-1", "staff_id": 999, "date": "2024-06-10", "start_time": "09:00"},
        format="json",
    )

    assert res.status_code == 404
    assert res.json()["code"] == "not_found"


@pytest.mark.django_db
def test_illegal_status_change_is_409_invalid_transition(front_desk, doctor, day):
    appt = book_appointment("P-1", doctor.pk, day, "09:00")
    url = reverse("appointments_api:appointment-transition", args=[appt.pk])

    res = front_desk.post(url, {"status": "completed"}, format="json")

    assert res.status_code == 409
    body = res.json()
    assert body["code"] == "invalid_transition"
    assert body["state"]["allowed"] == ["cancelled", "confirmed"]


@pytest.mark.django_db
def test_stale_expected_status_is_409_conflict(front_desk, doctor, day):
    appt = book_appointment("P-1", doctor.pk, day, "09:00")
    url = reverse("appointments_api:appointment-transition", args=[appt.pk])
    front_desk.post(url, {"status": "confirmed"}, format="json")

    res = front_desk.post(url, {"status": "checked_in", "expected_status": "pending"}, format="json")

    assert res.status_code == 409
    assert res.json()["code"] == "conflict"


@pytest.mark.django_db
def test_cancel_then_free_slots_offers_the_slot_again(front_desk, doctor, day):
    appt = book_appointment("P-1", doctor.pk, day, "09:00")
    free_url = reverse("appointments_api:appointment-free-slots")
    params = {"staff_id": doctor.pk, "date": "2024-06-10"}

    before = front_desk.get(free_url, params).json()
    assert before["slot_minutes"] == 30
    assert len(before["slots"]) == 15
    assert "09:00" not in before["slots"]

    res = front_desk.post(reverse("appointments_api:appointment-cancel", args=[appt.pk]), {}, format="json")
    assert res.status_code == 200
    assert res.json()["status"] == "cancelled"

    after = front_desk.get(free_url, params).json()
    assert after["slots"][0] == "08:00"
    assert "09:00" in after["slots"]
    assert len(after["slots"]) == 16


@pytest.mark.django_db
def test_free_slots_requires_staff_and_date(front_desk):
    res = front_desk.get(reverse("appointments_api:appointment-free-slots"), {"date": "2024-06-10"})

    assert res.status_code == 400


@pytest.mark.django_db
def test_reschedule_endpoint(front_desk, doctor, day):
    appt = book_appointment("P-1", doctor.pk, day, "09:00")
    url = reverse("appointments_api:appointment-reschedule", args=[appt.pk])

    res = front_desk.post(url, {"date": "2024-06-11", "start_time": "14:00"}, format="json")

    assert res.status_code == 200, res.content
    assert (res.json()["appointment_date"], res.json()["appointment_time"]) == ("2024-06-11", "14:00")


@pytest.mark.django_db
def test_list_is_paginated_and_filterable(front_desk, doctor, day):
    book_appointment("P-1", doctor.pk, day, "09:00")
    book_appointment("P-2", doctor.pk, day, "08:00")
    book_appointment("P-3", doctor.pk, "2024-06-11", "08:00")

    res = front_desk.get(reverse(BOOK_URL), {"date": "2024-06-10"})

    assert res.status_code == 200
    body = res.json()
    assert body["count"] == 2
    assert [r["appointment_time"] for r in body["results"]] == ["08:00", "09:00"]


@pytest.mark.django_db
def test_notify_staff_is_accepted_for_waiting_patient(front_desk, doctor, day):
    appt = book_appointment("P-1", doctor.pk, day, "09:00")

    res = front_desk.post(reverse("appointments_api:appointment-notify-staff", args=[appt.pk]))

    assert res.status_code == 202
    assert res.json()["queued"] is True


@pytest.mark.django_db
def test_export_rejects_inverted_range(front_desk):
    res = front_desk.get(
        reverse("appointments_api:appointment-export"), {"date_from": "2024-06-12", "date_to": "2024-06-10"}
    )

    assert res.status_code == 400


# -------- roles --------

@pytest.mark.django_db
def test_clinician_can_read_and_move_status_but_not_book(make_user, api_client_for, doctor, day):
    client = api_client_for(make_user("drbones", "clinician"))
    appt = book_appointment("P-1", doctor.pk, day, "09:00")

    assert client.get(reverse(BOOK_URL)).status_code == 200
    assert client.post(reverse(BOOK_URL), _booking(doctor, start_time="10:00"), format="json").status_code == 403
    res = client.post(
        reverse("appointments_api:appointment-transition", args=[appt.pk]), {"status": "confirmed"}, format="json"
    )
    assert res.status_code == 200


@pytest.mark.django_db
def test_user_without_roles_is_refused(make_user, api_client_for):
    client = api_client_for(make_user("visitor"))

    assert client.get(reverse(BOOK_URL)).status_code == 403
    assert client.get(reverse("staff_api:staff-list")).status_code == 403


@pytest.mark.django_db
def test_anonymous_is_refused():
    assert APIClient().get(reverse(BOOK_URL)).status_code == 401


@pytest.mark.django_db
def test_superuser_passes_without_bindings(api_client_for, doctor):
    root = get_user_model().objects.create_superuser("root", "root@example.com", "pass12345!")

    res = api_client_for(root).post(reverse(BOOK_URL), _booking(doctor), format="json")

    assert res.status_code == 201


# -------- staff read side --------

@pytest.mark.django_db
def test_staff_list_filters_by_role(front_desk, doctor, make_staff):
    make_staff("Nurse Efua", role="nurse", specialization="")
    make_staff("Dr. Away", is_available=False)

    res = front_desk.get(reverse("staff_api:staff-list"), {"role": "nurse"})

    assert [r["display_name"] for r in res.json()] == ["Nurse Efua"]
    assert front_desk.get(reverse("staff_api:staff-list"), {"role": "surgeon"}).status_code == 400


@pytest.mark.django_db
def test_staff_utilization_endpoint(front_desk, doctor, day):
    book_appointment("P-1", doctor.pk, day, "09:00")
    url = reverse("staff_api:staff-utilization")

    single = front_desk.get(url, {"staff_id": doctor.pk, "date": "2024-06-10"}).json()
    board = front_desk.get(url, {"date": "2024-06-10"}).json()

    assert single["utilization"] == 6.25
    assert board == [
        {"staff_id": doctor.pk, "display_name": doctor.display_name, "role": "doctor", "booked_minutes": 30,
         "capacity_minutes": 480, "utilization": 6.25, "load": "low"},
    ]


@pytest.mark.django_db
def test_staff_recommendation_endpoint(front_desk, make_staff):
    make_staff("Dr. A", specialization="Infectious Disease")
    make_staff("Dr. B", specialization="Cardiology")
    make_staff("Dr. C", specialization="General Medicine")

    res = front_desk.get(reverse("staff_api:staff-recommend"), {"symptoms": "fever"})

    assert [(r["display_name"], r["recommended"]) for r in res.json()] == [
        ("Dr. A", True), ("Dr. C", True), ("Dr. B", False),
    ]


@pytest.mark.django_db
def test_clinician_cannot_cancel_through_the_transition_endpoint(make_user, api_client_for, doctor, day):
    client = api_client_for(make_user("drbones", "clinician"))
    first = book_appointment("P-1", doctor.pk, day, "09:00")
    second = book_appointment("P-2", doctor.pk, day, "10:00")

    via_cancel = client.post(reverse("appointments_api:appointment-cancel", args=[first.pk]), {}, format="json")
    via_transition = client.post(
        reverse("appointments_api:appointment-transition", args=[second.pk]), {"status": "cancelled"}, format="json"
    )

    assert via_cancel.status_code == 403
    assert via_transition.status_code == 403
    second.refresh_from_db()
    assert second.status == "pending"


@pytest.mark.django_db
def test_front_desk_may_cancel_through_the_transition_endpoint(front_desk, doctor, day):
    appt = book_appointment("P-1", doctor.pk, day, "09:00")

    res = front_desk.post(
        reverse("appointments_api:appointment-transition", args=[appt.pk]), {"status": "cancelled"}, format="json"
    )

    assert res.status_code == 200
    assert res.json()["status"] == "cancelled"


# -------- list filters --------

@pytest.mark.django_db
@pytest.mark.parametrize("params", [{"staff_id": "abc"}, {"status": "arrived"}, {"date_from": "june"}])
def test_malformed_list_filters_are_400(front_desk, params):
    res = front_desk.get(reverse(BOOK_URL), params)

    assert res.status_code == 400
    assert res.json()["code"] == "invalid"


@pytest.mark.django_db
def test_week_view_for_one_staff_member(front_desk, doctor, make_staff, day):
    other = make_staff("Dr. Kofi Boateng")
    book_appointment("P-1", doctor.pk, "2024-06-09", "09:00")
    monday = book_appointment("P-2", doctor.pk, day, "09:00")
    friday = book_appointment("P-3", doctor.pk, "2024-06-14", "15:00")
    book_appointment("P-4", doctor.pk, "2024-06-17", "08:00")
    book_appointment("P-5", other.pk, day, "10:00")

    res = front_desk.get(
        reverse(BOOK_URL), {"date_from": "2024-06-10", "date_to": "2024-06-16", "staff_id": str(doctor.pk)}
    )

    assert res.status_code == 200, res.content
    assert [r["id"] for r in res.json()["results"]] == [monday.pk, friday.pk]


@pytest.mark.django_db
def test_open_ended_range_and_inverted_range(front_desk, doctor, day):
    book_appointment("P-1", doctor.pk, day, "09:00")
    later = book_appointment("P-2", doctor.pk, "2024-07-01", "09:00")

    since = front_desk.get(reverse(BOOK_URL), {"date_from": "2024-06-11"}).json()
    inverted = front_desk.get(reverse(BOOK_URL), {"date_from": "2024-06-30", "date_to": "2024-06-01"})

    assert [r["id"] for r in since["results"]] == [later.pk]
    assert inverted.status_code == 400


def test_only_the_versioned_api_is_routed():
    with pytest.raises(Resolver404):
        resolve("/api/appointments/")
