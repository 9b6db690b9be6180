from datetime import date

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from apps.rbac.models import Role, RoleBinding
from apps.staff.models import StaffMember

# A Monday.
CLINIC_DAY = date(2024, 6, 10)


@pytest.fixture
def day():
    return CLINIC_DAY


@pytest.fixture
def make_staff(db):
    def _make(display_name="Dr. Amara Mensah", **kwargs):
        kwargs.setdefault("role", StaffMember.Role.DOCTOR)
        kwargs.setdefault("specialization", "Internal Medicine")
        return StaffMember.objects.create(display_name=display_name, **kwargs)

    return _make


@pytest.fixture
def doctor(make_staff):
    return make_staff()


@pytest.fixture
def make_user(db):
    def _make(username, *roles, **kwargs):
        user = get_user_model().objects.create_user(username=username, password="pass12345!", **kwargs)
        for name in roles:
            role, _ = Role.objects.get_or_create(name=name)
            RoleBinding.objects.create(user=user, role=role)
        return user

    return _make


@pytest.fixture
def api_client_for():
    def _client(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    return _client


@pytest.fixture
def front_desk(make_user, api_client_for):
    return api_client_for(make_user("frontdesk", "staff"))
