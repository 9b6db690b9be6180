import pytest
from django.db import OperationalError

from apps.appointments.exceptions import DependencyError, NotFoundError, ValidationError
from apps.staff import directory
from apps.staff.models import StaffMember


@pytest.mark.django_db
def test_list_available_filters_role_and_availability(doctor, make_staff):
    nurse = make_staff("Nurse Efua", role="nurse", specialization="")
    make_staff("Dr. Away", is_available=False)

    assert directory.list_available() == [doctor, nurse]
    assert directory.list_available("nurse") == [nurse]
    assert directory.list_available("doctor") == [doctor]


@pytest.mark.django_db
def test_unknown_role_is_rejected():
    with pytest.raises(ValidationError):
        directory.list_available("surgeon")


@pytest.mark.django_db
@pytest.mark.parametrize("staff_id", [4242, "abc", None])
def test_get_staff_not_found(staff_id):
    with pytest.raises(NotFoundError):
        directory.get_staff(staff_id)


@pytest.mark.django_db
def test_capacity_defaults_from_settings(make_staff, settings):
    settings.SCHEDULING = {**settings.SCHEDULING, "DEFAULT_DAILY_CAPACITY_MINUTES": 360}

    assert make_staff("Dr. Default").daily_capacity_minutes == 360
    assert directory.get_capacity(make_staff("Dr. Own", daily_capacity_minutes=240).pk) == 240


@pytest.mark.django_db
def test_directory_outage_is_a_dependency_error(monkeypatch):
    def down(*args, **kwargs):
        raise OperationalError("no such table")

    monkeypatch.setattr(StaffMember.objects, "get", down)

    with pytest.raises(DependencyError):
        directory.get_staff(1)
