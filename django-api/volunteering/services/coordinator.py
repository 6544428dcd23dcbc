"""Lifecycle coordinator: the entry point for every state-changing intent.

Each intent runs as one unit of work. When an optimistic-concurrency check
fails the whole unit is rolled back and replayed against fresh state, a
bounded number of times. Notifications queued by a rolled-back attempt are
discarded with it, so only the committed attempt notifies anyone.
"""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, TypeVar

from django.utils import timezone

from volunteering.conf import LifecycleSettings
from volunteering.domain import Event, EventCancellation, Principal, Registration
from volunteering.domain.errors import ConcurrentModificationError, DuplicateRegistrationError
from volunteering.services.capacity import CapacityCounter, OverflowPolicy
from volunteering.services.event_service import EventDraft, EventService
from volunteering.services.notifications import NotificationInbox, NotificationTrigger
from volunteering.services.registration_service import RegistrationService
from volunteering.stores.django_store import (
    DjangoEventStore,
    DjangoNotificationStore,
    DjangoRegistrationStore,
    DjangoUnitOfWork,
)
from volunteering.stores.interfaces import EventStore, RegistrationStore, UnitOfWork

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LifecycleCoordinator:
    """Orchestrates event and registration transitions."""

    def __init__(
        self,
        events: EventService,
        registrations: RegistrationService,
        uow: UnitOfWork,
        settings: LifecycleSettings,
    ) -> None:
        self._events = events
        self._registrations = registrations
        self._uow = uow
        self._settings = settings

    def _run(self, intent: str, operation: Callable[..., T], *args: Any) -> T:
        attempts = self._settings.max_conflict_retries
        for attempt in range(1, attempts + 1):
            try:
                with self._uow.atomic():
                    return operation(*args)
            except ConcurrentModificationError as exc:
                if attempt == attempts:
                    logger.warning(
                        "%s gave up after %d attempts on %s %s",
                        intent,
                        attempt,
                        exc.entity,
                        exc.entity_id,
                    )
                    raise
                logger.warning(
                    "%s lost a race on %s %s (attempt %d/%d), retrying",
                    intent,
                    exc.entity,
                    exc.entity_id,
                    attempt,
                    attempts,
                )
        raise AssertionError("unreachable")

    # Events

    def create_event(self, principal: Principal, draft: EventDraft) -> Event:
        return self._run("create_event", self._events.create_event, principal, draft)

    def update_event(
        self, principal: Principal, event_id: str, changes: Mapping[str, Any]
    ) -> Event:
        return self._run("update_event", self._events.update_event, principal, event_id, changes)

    def submit_event(self, principal: Principal, event_id: str, note: str | None = None) -> Event:
        return self._run("submit_event", self._events.submit, principal, event_id, note)

    def queue_event_for_review(self, principal: Principal, event_id: str) -> Event:
        return self._run(
            "queue_event_for_review", self._events.queue_for_review, principal, event_id
        )

    def approve_event(self, principal: Principal, event_id: str) -> Event:
        return self._run("approve_event", self._events.approve, principal, event_id)

    def reject_event(self, principal: Principal, event_id: str, reason: str) -> Event:
        return self._run("reject_event", self._events.reject, principal, event_id, reason)

    def cancel_event(
        self, principal: Principal, event_id: str, reason: str | None = None
    ) -> EventCancellation:
        return self._run("cancel_event", self._events.cancel, principal, event_id, reason)

    def complete_event(self, principal: Principal | None, event_id: str) -> Event:
        return self._run("complete_event", self._events.complete, principal, event_id)

    def delete_event(self, principal: Principal, event_id: str) -> None:
        self._run("delete_event", self._events.delete_event, principal, event_id)

    # Registrations

    def register_for_event(self, principal: Principal, event_id: str) -> Registration:
        """Register the principal, or return the registration they already hold.

        A repeated request never creates a second registration or takes a
        second seat.
        """
        try:
            return self._run(
                "register_for_event", self._registrations.register, principal, event_id
            )
        except DuplicateRegistrationError:
            existing = self._registrations.get_active_registration(principal, event_id)
            if existing is None:
                raise
            logger.info(
                "User %s already registered for event %s, returning registration %s",
                principal.user_id,
                event_id,
                existing.id,
            )
            return existing

    def approve_registration(self, principal: Principal, registration_id: str) -> Registration:
        return self._run(
            "approve_registration", self._registrations.approve, principal, registration_id
        )

    def reject_registration(self, principal: Principal, registration_id: str) -> Registration:
        return self._run(
            "reject_registration", self._registrations.reject, principal, registration_id
        )

    def cancel_registration(self, principal: Principal, registration_id: str) -> Registration:
        return self._run(
            "cancel_registration", self._registrations.cancel, principal, registration_id
        )

    def mark_attended(self, principal: Principal, registration_id: str) -> Registration:
        return self._run(
            "mark_attended", self._registrations.mark_attended, principal, registration_id
        )


@dataclass(frozen=True)
class Lifecycle:
    """The coordinator plus the read-side services it is built from."""

    coordinator: LifecycleCoordinator
    events: EventService
    registrations: RegistrationService
    inbox: NotificationInbox


def build_lifecycle(
    settings: LifecycleSettings | None = None,
    clock: Callable[[], datetime] = timezone.now,
    overflow: OverflowPolicy | None = None,
    event_store: EventStore | None = None,
    registration_store: RegistrationStore | None = None,
) -> Lifecycle:
    """Wire the services over the Django stores, or the given replacements."""
    settings = settings or LifecycleSettings.from_django()
    uow = DjangoUnitOfWork()
    event_store = event_store or DjangoEventStore()
    registration_store = registration_store or DjangoRegistrationStore()
    notifier = NotificationTrigger(uow)
    registrations = RegistrationService(
        events=event_store,
        registrations=registration_store,
        counter=CapacityCounter(event_store),
        notifier=notifier,
        uow=uow,
        settings=settings,
        overflow=overflow,
        clock=clock,
    )
    events = EventService(
        events=event_store,
        registrations=registration_store,
        registration_service=registrations,
        notifier=notifier,
        uow=uow,
        settings=settings,
        clock=clock,
    )
    return Lifecycle(
        coordinator=LifecycleCoordinator(events, registrations, uow, settings),
        events=events,
        registrations=registrations,
        inbox=NotificationInbox(DjangoNotificationStore(), settings),
    )
