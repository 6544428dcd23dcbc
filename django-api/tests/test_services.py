"""Unit tests for the lifecycle services.

These test error handling, domain error mapping, the capacity counter and the
coordinator's retry policy against autospecced stores.
Run with: pytest tests/test_services.py -v
"""

import logging
from contextlib import nullcontext
from datetime import datetime, timedelta, timezone
from unittest.mock import create_autospec, sentinel
from uuid import uuid4

import pytest

from volunteering.conf import LifecycleSettings
from volunteering.domain import Capacity, Event, EventId, EventStatus, Principal, Role
from volunteering.domain.errors import (
    CapacityExceededError,
    ConcurrentModificationError,
    DuplicateRegistrationError,
    EventNotFoundError,
    InvalidIdError,
    InvalidStateError,
    InvariantViolationError,
    NotificationNotFoundError,
    UnauthorizedError,
    ValidationError,
)
from volunteering.services.capacity import CapacityCounter
from volunteering.services.coordinator import LifecycleCoordinator
from volunteering.services.event_service import EventDraft, EventService
from volunteering.services.notifications import NotificationInbox, NotificationTrigger
from volunteering.services.registration_service import RegistrationService
from volunteering.stores.interfaces import (
    EventStore,
    NotificationStore,
    RegistrationStore,
    UnitOfWork,
)

NOW = datetime(2030, 6, 1, 9, 0, tzinfo=timezone.utc)
VOLUNTEER = Principal(user_id=7, role=Role.VOLUNTEER)
MANAGER = Principal(user_id=1, role=Role.MANAGER)


class InlineUnitOfWork(UnitOfWork):
    """Runs callbacks on demand instead of on commit."""

    def __init__(self) -> None:
        self.callbacks = []

    def atomic(self):
        return nullcontext()

    def on_commit(self, callback) -> None:
        self.callbacks.append(callback)


def build_event(**overrides) -> Event:
    values = {
        "id": EventId(uuid4()),
        "title": "Park restoration",
        "description": "",
        "location": "",
        "category": "",
        "starts_at": NOW + timedelta(days=7),
        "ends_at": NOW + timedelta(days=7, hours=3),
        "max_participants": Capacity(1),
        "current_participants": 0,
        "status": EventStatus.APPROVED,
        "creator_id": MANAGER.user_id,
        "created_at": NOW,
        "updated_at": NOW,
        "version": 4,
    }
    values.update(overrides)
    return Event(**values)


@pytest.fixture
def event_store():
    return create_autospec(EventStore, instance=True)


@pytest.fixture
def registration_store():
    return create_autospec(RegistrationStore, instance=True)


@pytest.fixture
def uow():
    return InlineUnitOfWork()


@pytest.fixture
def registration_service(event_store, registration_store, uow):
    return RegistrationService(
        events=event_store,
        registrations=registration_store,
        counter=CapacityCounter(event_store),
        notifier=NotificationTrigger(uow),
        uow=uow,
        settings=LifecycleSettings(),
        clock=lambda: NOW,
    )


@pytest.fixture
def event_service(event_store, registration_store, registration_service, uow):
    return EventService(
        events=event_store,
        registrations=registration_store,
        registration_service=registration_service,
        notifier=NotificationTrigger(uow),
        uow=uow,
        settings=LifecycleSettings(),
        clock=lambda: NOW,
    )


class TestEventService:
    """Tests for EventService."""

    def test_get_event_invalid_id_raises_error(self, event_service, event_store):
        """get_event raises InvalidIdError for malformed UUID."""
        with pytest.raises(InvalidIdError):
            event_service.get_event(None, "not-a-uuid")
        event_store.get_event.assert_not_called()

    def test_get_event_not_found_raises_error(self, event_service, event_store):
        """get_event raises EventNotFoundError when store returns None."""
        event_store.get_event.return_value = None

        with pytest.raises(EventNotFoundError):
            event_service.get_event(None, str(uuid4()))

    def test_get_event_hides_drafts_from_the_public(self, event_service, event_store):
        """Events the caller may not see surface as not found."""
        event = build_event(status=EventStatus.DRAFT)
        event_store.get_event.return_value = event

        with pytest.raises(EventNotFoundError):
            event_service.get_event(VOLUNTEER, str(event.id))
        assert event_service.get_event(MANAGER, str(event.id)) == event

    def test_create_event_requires_organizer(self, event_service, event_store):
        draft = EventDraft(
            title="Tree planting",
            starts_at=NOW,
            ends_at=NOW + timedelta(hours=2),
            max_participants=5,
        )

        with pytest.raises(UnauthorizedError):
            event_service.create_event(VOLUNTEER, draft)
        event_store.create_event.assert_not_called()

    @pytest.mark.parametrize(
        "overrides",
        [
            {"title": "   "},
            {"max_participants": 0},
            {"ends_at": NOW - timedelta(hours=1)},
            {
                "registration_opens_at": NOW - timedelta(days=1),
                "registration_closes_at": NOW - timedelta(days=2),
            },
        ],
    )
    def test_create_event_validates_draft(self, event_service, event_store, overrides):
        values = {
            "title": "Tree planting",
            "starts_at": NOW,
            "ends_at": NOW + timedelta(hours=2),
            "max_participants": 5,
        }
        values.update(overrides)

        with pytest.raises(ValidationError):
            event_service.create_event(MANAGER, EventDraft(**values))
        event_store.create_event.assert_not_called()

    def test_update_event_rejects_lifecycle_fields(self, event_service, event_store):
        with pytest.raises(ValidationError):
            event_service.update_event(MANAGER, str(uuid4()), {"status": "APPROVED"})
        event_store.get_event.assert_not_called()

    def test_reject_requires_reason(self, event_service):
        admin = Principal(user_id=3, role=Role.ADMIN)

        with pytest.raises(ValidationError):
            event_service.reject(admin, str(uuid4()), "  ")

    def test_list_events_public_scope(self, event_service, event_store):
        event_store.list_events.return_value = ([], 0)

        page = event_service.list_events(None, page=2, page_size=500)

        kwargs = event_store.list_events.call_args.kwargs
        assert kwargs["statuses"] == {EventStatus.APPROVED, EventStatus.COMPLETED}
        assert kwargs["or_creator_id"] is None
        assert kwargs["offset"] == 100 and kwargs["limit"] == 100
        assert (page.page, page.page_size) == (2, 100)

    def test_list_events_draft_filter_for_anonymous_is_empty(self, event_service, event_store):
        page = event_service.list_events(None, status=EventStatus.DRAFT)

        assert page.total == 0
        event_store.list_events.assert_not_called()

    def test_cancel_terminal_event_checked_before_cascade(
        self, event_service, event_store, registration_store
    ):
        """A completed event is refused before any registration is touched."""
        event_store.get_event.return_value = build_event(status=EventStatus.COMPLETED)

        with pytest.raises(InvalidStateError):
            event_service.cancel(MANAGER, str(uuid4()))
        registration_store.registrations_for_event.assert_not_called()
        event_store.save_event.assert_not_called()

    def test_delete_event_by_owner_after_approval(self, event_service, event_store):
        event_store.get_event.return_value = build_event(status=EventStatus.APPROVED)

        with pytest.raises(UnauthorizedError):
            event_service.delete_event(MANAGER, str(uuid4()))
        event_store.delete_event.assert_not_called()

    def test_delete_event_with_registrations(
        self, event_service, event_store, registration_store
    ):
        event_store.get_event.return_value = build_event(status=EventStatus.DRAFT)
        registration_store.registrations_for_event.return_value = [sentinel.registration]

        with pytest.raises(InvalidStateError):
            event_service.delete_event(MANAGER, str(uuid4()))
        event_store.delete_event.assert_not_called()

    def test_delete_event_writes_with_expected_version(
        self, event_service, event_store, registration_store
    ):
        event = build_event(status=EventStatus.PENDING_APPROVAL)
        event_store.get_event.return_value = event
        registration_store.registrations_for_event.return_value = []

        event_service.delete_event(MANAGER, str(event.id))

        event_store.delete_event.assert_called_once_with(event.id, expected_version=4)


class TestRegistrationService:
    """Tests for RegistrationService error mapping."""

    def test_register_invalid_id_raises_error(self, registration_service):
        with pytest.raises(InvalidIdError):
            registration_service.register(VOLUNTEER, "42")

    def test_register_event_not_found(self, registration_service, event_store):
        event_store.get_event.return_value = None

        with pytest.raises(EventNotFoundError):
            registration_service.register(VOLUNTEER, str(uuid4()))

    def test_register_duplicate_checked_before_capacity(
        self, registration_service, event_store, registration_store
    ):
        event = build_event(current_participants=1)
        event_store.get_event.return_value = event
        registration_store.find_active_registration.return_value = sentinel.existing

        with pytest.raises(DuplicateRegistrationError):
            registration_service.register(VOLUNTEER, str(event.id))
        registration_store.create_registration.assert_not_called()

    def test_register_full_event(self, registration_service, event_store, registration_store):
        event = build_event(current_participants=1)
        event_store.get_event.return_value = event
        registration_store.find_active_registration.return_value = None

        with pytest.raises(CapacityExceededError):
            registration_service.register(VOLUNTEER, str(event.id))
        registration_store.create_registration.assert_not_called()

    def test_register_pins_event_version(
        self, registration_service, event_store, registration_store
    ):
        """A pending registration is only written under the version it read."""
        event = build_event()
        event_store.get_event.return_value = event
        registration_store.find_active_registration.return_value = None
        event_store.touch.side_effect = ConcurrentModificationError("event", str(event.id))

        with pytest.raises(ConcurrentModificationError):
            registration_service.register(VOLUNTEER, str(event.id))
        event_store.touch.assert_called_once_with(event.id, expected_version=4)
        registration_store.create_registration.assert_not_called()


class TestCapacityCounter:
    """Tests for CapacityCounter."""

    def test_increment_writes_with_expected_version(self, event_store):
        event = build_event()
        event_store.set_participant_count.return_value = sentinel.updated

        assert CapacityCounter(event_store).increment(event) is sentinel.updated
        event_store.set_participant_count.assert_called_once_with(
            event.id, 1, expected_version=4
        )

    def test_increment_when_full_raises(self, event_store):
        with pytest.raises(CapacityExceededError):
            CapacityCounter(event_store).increment(build_event(current_participants=1))
        event_store.set_participant_count.assert_not_called()

    def test_decrement_at_zero_fails_closed(self, event_store, caplog):
        event = build_event(current_participants=0)

        with caplog.at_level(logging.ERROR, logger="volunteering.services.capacity"):
            with pytest.raises(InvariantViolationError):
                CapacityCounter(event_store).decrement(event)

        event_store.set_participant_count.assert_not_called()
        assert "Invariant violation" in caplog.text

    def test_lost_race_propagates(self, event_store):
        event_store.set_participant_count.side_effect = ConcurrentModificationError(
            "event", "e"
        )

        with pytest.raises(ConcurrentModificationError):
            CapacityCounter(event_store).decrement(build_event(current_participants=1))


class TestLifecycleCoordinator:
    """Tests for the coordinator's retry policy."""

    @pytest.fixture
    def events(self):
        return create_autospec(EventService, instance=True)

    @pytest.fixture
    def registrations(self):
        return create_autospec(RegistrationService, instance=True)

    @pytest.fixture
    def coordinator(self, events, registrations, uow):
        return LifecycleCoordinator(
            events, registrations, uow, LifecycleSettings(max_conflict_retries=3)
        )

    def test_retries_lost_race(self, coordinator, events):
        events.approve.side_effect = [ConcurrentModificationError("event", "e"), sentinel.event]

        assert coordinator.approve_event(MANAGER, "e") is sentinel.event
        assert events.approve.call_count == 2

    def test_gives_up_after_max_attempts(self, coordinator, events):
        events.approve.side_effect = ConcurrentModificationError("event", "e")

        with pytest.raises(ConcurrentModificationError):
            coordinator.approve_event(MANAGER, "e")
        assert events.approve.call_count == 3

    def test_other_errors_are_not_retried(self, coordinator, registrations):
        registrations.approve.side_effect = CapacityExceededError("e")

        with pytest.raises(CapacityExceededError):
            coordinator.approve_registration(MANAGER, "r")
        assert registrations.approve.call_count == 1

    def test_register_returns_existing_registration(self, coordinator, registrations):
        registrations.register.side_effect = DuplicateRegistrationError("e", VOLUNTEER.user_id)
        registrations.get_active_registration.return_value = sentinel.existing

        assert coordinator.register_for_event(VOLUNTEER, "e") is sentinel.existing
        registrations.get_active_registration.assert_called_once_with(VOLUNTEER, "e")

    def test_register_duplicate_without_active_registration_propagates(
        self, coordinator, registrations
    ):
        registrations.register.side_effect = DuplicateRegistrationError("e", VOLUNTEER.user_id)
        registrations.get_active_registration.return_value = None

        with pytest.raises(DuplicateRegistrationError):
            coordinator.register_for_event(VOLUNTEER, "e")


class TestNotificationInbox:
    def test_mark_read_unknown_notification(self):
        store = create_autospec(NotificationStore, instance=True)
        store.mark_read.return_value = None
        inbox = NotificationInbox(store, LifecycleSettings())

        with pytest.raises(NotificationNotFoundError):
            inbox.mark_read(VOLUNTEER, str(uuid4()))

    def test_mark_read_invalid_id(self):
        store = create_autospec(NotificationStore, instance=True)
        inbox = NotificationInbox(store, LifecycleSettings())

        with pytest.raises(InvalidIdError):
            inbox.mark_read(VOLUNTEER, "nope")
        store.mark_read.assert_not_called()
