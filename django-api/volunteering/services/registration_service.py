"""Registration state machine.

PENDING -> APPROVED -> ATTENDED, PENDING -> REJECTED and
{PENDING, APPROVED} -> CANCELLED. A registration counts toward its event's
participant count exactly while it is APPROVED or ATTENDED, so every
transition into or out of those states goes through the capacity counter in
the same unit of work.
"""

import logging
from collections.abc import Callable, Collection
from datetime import datetime
from uuid import uuid4

from django.utils import timezone

from volunteering.conf import LifecycleSettings
from volunteering.domain import (
    Event,
    EventId,
    Page,
    Principal,
    Registration,
    RegistrationId,
    RegistrationStatus,
)
from volunteering.domain.errors import (
    DuplicateRegistrationError,
    EventNotFoundError,
    InvalidStateError,
    RegistrationNotFoundError,
    UnauthorizedError,
)
from volunteering.domain.lifecycle import EventStatus
from volunteering.services.capacity import CapacityCounter, OverflowPolicy, RejectWhenFull
from volunteering.services.ids import parse_id
from volunteering.services.notifications import NotificationTrigger
from volunteering.stores.interfaces import EventStore, RegistrationStore, UnitOfWork

logger = logging.getLogger(__name__)


class RegistrationService:
    """Service for registration lifecycle operations."""

    def __init__(
        self,
        events: EventStore,
        registrations: RegistrationStore,
        counter: CapacityCounter,
        notifier: NotificationTrigger,
        uow: UnitOfWork,
        settings: LifecycleSettings,
        overflow: OverflowPolicy | None = None,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._events = events
        self._registrations = registrations
        self._counter = counter
        self._notifier = notifier
        self._uow = uow
        self._settings = settings
        self._overflow = overflow or RejectWhenFull()
        self._clock = clock

    def register(self, principal: Principal, event_id: str) -> Registration:
        """Apply to an event as the principal.

        Raises:
            InvalidIdError: If the event_id is not a valid UUID.
            EventNotFoundError: If the event does not exist.
            DuplicateRegistrationError: If the principal already holds an
                active registration for the event.
            InvalidStateError: If the event is not open for registration.
            CapacityExceededError: If the event is full.
        """
        eid = parse_id(EventId, event_id)
        with self._uow.atomic():
            event = self._events.get_event(eid)
            if event is None:
                raise EventNotFoundError(event_id)
            if self._registrations.find_active_registration(eid, principal.user_id):
                raise DuplicateRegistrationError(event_id, principal.user_id)

            now = self._clock()
            if not event.is_registration_open(now):
                raise InvalidStateError(
                    "Event is not open for registration", current=event.status.value
                )
            if event.is_full:
                self._overflow.handle_full(event, principal.user_id)

            registration = Registration(
                id=RegistrationId(uuid4()),
                event_id=eid,
                user_id=principal.user_id,
                status=RegistrationStatus.PENDING,
                applied_at=now,
            )
            if self._settings.auto_approve_registrations:
                registration = registration.approve(now)
                event = self._counter.increment(event)
            else:
                # Pins the version read above; a cancellation committed since conflicts.
                event = self._events.touch(event.id, expected_version=event.version)
            created = self._registrations.create_registration(registration)

            self._notifier.new_registration(event, created)
            if created.status is RegistrationStatus.APPROVED:
                self._notifier.registration_approved(event, created)

        logger.info(
            "User %s registered for event %s as %s (registration %s)",
            principal.user_id,
            eid,
            created.status.value,
            created.id,
        )
        return created

    def approve(self, principal: Principal, registration_id: str) -> Registration:
        """Approve a pending registration, taking one seat.

        Capacity is checked again here, not only at registration time.
        Approving an APPROVED registration returns it unchanged.

        Raises:
            InvalidIdError, RegistrationNotFoundError, UnauthorizedError,
            InvalidStateError, CapacityExceededError.
        """
        with self._uow.atomic():
            registration, event = self._load_for_manager(principal, registration_id)
            if registration.status is RegistrationStatus.APPROVED:
                return registration
            if event.status is not EventStatus.APPROVED:
                raise InvalidStateError(
                    "Registrations can only be approved for approved events",
                    current=event.status.value,
                )
            approved = registration.approve(self._clock())
            event = self._counter.increment(event)
            saved = self._registrations.save_registration(
                approved, expected_status=registration.status
            )
            self._notifier.registration_approved(event, saved)

        logger.info(
            "Registration %s approved by user %s; event %s now %d/%d",
            saved.id,
            principal.user_id,
            event.id,
            event.current_participants,
            event.max_participants.value,
        )
        return saved

    def reject(self, principal: Principal, registration_id: str) -> Registration:
        with self._uow.atomic():
            registration, event = self._load_for_manager(principal, registration_id)
            if registration.status is RegistrationStatus.REJECTED:
                return registration
            rejected = registration.reject()
            saved = self._registrations.save_registration(
                rejected, expected_status=registration.status
            )
            self._notifier.registration_rejected(event, saved)

        logger.info("Registration %s rejected by user %s", saved.id, principal.user_id)
        return saved

    def cancel(self, principal: Principal, registration_id: str) -> Registration:
        """Cancel a pending or approved registration.

        The registrant, the event owner and admins may cancel. The registrant
        is notified only when someone else cancels.
        """
        with self._uow.atomic():
            registration = self._load_registration(registration_id)
            event = self._load_event(registration.event_id)
            if registration.user_id != principal.user_id and not event.can_be_managed_by(
                principal
            ):
                raise UnauthorizedError(
                    "Only the registrant, the event owner or an admin can cancel"
                )
            if registration.status is RegistrationStatus.CANCELLED:
                return registration
            event, saved = self.cancel_for_event(event, registration)
            if principal.user_id != registration.user_id:
                self._notifier.registration_cancelled(event, saved)

        logger.info("Registration %s cancelled by user %s", saved.id, principal.user_id)
        return saved

    def cancel_for_event(
        self, event: Event, registration: Registration
    ) -> tuple[Event, Registration]:
        """Cancel one registration of ``event`` and release its seat if counted.

        Performs no authorization and sends no notification; callers own both.
        Returns the event as updated by the counter, and the saved registration.
        """
        cancelled = registration.cancel(self._clock())
        if registration.status.counts_toward_capacity:
            event = self._counter.decrement(event)
        saved = self._registrations.save_registration(
            cancelled, expected_status=registration.status
        )
        return event, saved

    def mark_attended(self, principal: Principal, registration_id: str) -> Registration:
        """Record attendance once the event has ended. Repeated calls are no-ops."""
        with self._uow.atomic():
            registration, event = self._load_for_manager(principal, registration_id)
            if registration.status is RegistrationStatus.ATTENDED:
                return registration
            now = self._clock()
            if not event.has_ended(now):
                raise InvalidStateError(
                    "Attendance can only be recorded after the event has ended",
                    current=registration.status.value,
                )
            attended = registration.mark_attended(now)
            saved = self._registrations.save_registration(
                attended, expected_status=registration.status
            )

        logger.info("Registration %s marked attended by user %s", saved.id, principal.user_id)
        return saved

    def get_registration(self, principal: Principal, registration_id: str) -> Registration:
        registration = self._load_registration(registration_id)
        if registration.user_id != principal.user_id:
            event = self._load_event(registration.event_id)
            if not event.can_be_managed_by(principal):
                raise RegistrationNotFoundError(registration_id)
        return registration

    def get_active_registration(self, principal: Principal, event_id: str) -> Registration | None:
        return self._registrations.find_active_registration(
            parse_id(EventId, event_id), principal.user_id
        )

    def list_event_registrations(
        self,
        principal: Principal,
        event_id: str,
        statuses: Collection[RegistrationStatus] | None = None,
        page: int | None = None,
        page_size: int | None = None,
    ) -> Page[Registration]:
        """Return registrations of an event for its owner or an admin."""
        eid = parse_id(EventId, event_id)
        event = self._events.get_event(eid)
        if event is None or not event.is_visible_to(principal):
            raise EventNotFoundError(event_id)
        if not event.can_be_managed_by(principal):
            raise UnauthorizedError("Only the event owner or an admin can list its registrations")
        page, size = self._settings.clamp_page(page, page_size)
        items, total = self._registrations.list_registrations(
            event_id=eid,
            user_id=None,
            statuses=statuses,
            offset=(page - 1) * size,
            limit=size,
        )
        return Page(items=tuple(items), total=total, page=page, page_size=size)

    def list_user_registrations(
        self,
        principal: Principal,
        statuses: Collection[RegistrationStatus] | None = None,
        page: int | None = None,
        page_size: int | None = None,
    ) -> Page[Registration]:
        page, size = self._settings.clamp_page(page, page_size)
        items, total = self._registrations.list_registrations(
            event_id=None,
            user_id=principal.user_id,
            statuses=statuses,
            offset=(page - 1) * size,
            limit=size,
        )
        return Page(items=tuple(items), total=total, page=page, page_size=size)

    def _load_registration(self, registration_id: str) -> Registration:
        registration = self._registrations.get_registration(
            parse_id(RegistrationId, registration_id)
        )
        if registration is None:
            raise RegistrationNotFoundError(registration_id)
        return registration

    def _load_event(self, event_id: EventId) -> Event:
        event = self._events.get_event(event_id)
        if event is None:
            raise EventNotFoundError(str(event_id))
        return event

    def _load_for_manager(
        self, principal: Principal, registration_id: str
    ) -> tuple[Registration, Event]:
        registration = self._load_registration(registration_id)
        event = self._load_event(registration.event_id)
        if not event.can_be_managed_by(principal):
            raise UnauthorizedError(
                "Only the event owner or an admin can change this registration"
            )
        return registration, event
