"""Pytest configuration and shared fixtures."""

import itertools
from datetime import datetime, timedelta, timezone

import pytest
from django.contrib.auth.models import Group, User
from rest_framework.test import APIClient

from volunteering.conf import LifecycleSettings
from volunteering.domain import Principal, Role
from volunteering.services import EventDraft, build_lifecycle

NOW = datetime(2030, 6, 1, 9, 0, tzinfo=timezone.utc)


class Clock:
    """Controllable stand-in for timezone.now."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> None:
        self.now += timedelta(**delta)


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture
def clock() -> Clock:
    return Clock(NOW)


@pytest.fixture
def lifecycle_settings() -> LifecycleSettings:
    return LifecycleSettings()


@pytest.fixture
def lifecycle(lifecycle_settings, clock):
    return build_lifecycle(lifecycle_settings, clock=clock)


@pytest.fixture
def admin(db) -> User:
    return User.objects.create_user(username="admin", is_staff=True)


@pytest.fixture
def manager(db) -> User:
    user = User.objects.create_user(username="manager")
    user.groups.add(Group.objects.get_or_create(name="managers")[0])
    return user


@pytest.fixture
def make_volunteer(db):
    counter = itertools.count(1)

    def make() -> User:
        return User.objects.create_user(username=f"volunteer{next(counter)}")

    return make


@pytest.fixture
def volunteer(make_volunteer) -> User:
    return make_volunteer()


@pytest.fixture
def admin_principal(admin) -> Principal:
    return Principal(user_id=admin.pk, role=Role.ADMIN)


@pytest.fixture
def manager_principal(manager) -> Principal:
    return Principal(user_id=manager.pk, role=Role.MANAGER)


@pytest.fixture
def volunteer_principal(volunteer) -> Principal:
    return Principal(user_id=volunteer.pk, role=Role.VOLUNTEER)


@pytest.fixture
def make_draft():
    def make(**overrides) -> EventDraft:
        values = {
            "title": "Beach cleanup",
            "description": "Bring gloves.",
            "location": "North beach",
            "category": "environment",
            "starts_at": NOW + timedelta(days=7),
            "ends_at": NOW + timedelta(days=7, hours=4),
            "max_participants": 10,
        }
        values.update(overrides)
        return EventDraft(**values)

    return make


@pytest.fixture
def make_approved_event(lifecycle, manager_principal, admin_principal, make_draft):
    """Factory for events owned by the manager and already approved."""

    def make(**overrides):
        coordinator = lifecycle.coordinator
        event = coordinator.create_event(manager_principal, make_draft(**overrides))
        coordinator.submit_event(manager_principal, str(event.id))
        return coordinator.approve_event(admin_principal, str(event.id))

    return make


@pytest.fixture
def approved_event(make_approved_event):
    return make_approved_event()
