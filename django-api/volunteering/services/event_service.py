"""Event service - approval lifecycle and event queries.

Services:
- Depend only on interfaces (stores)
- Validate domain invariants
- Perform orchestration and error mapping
- Return domain models or domain errors

DRAFT -> SUBMITTED -> PENDING_APPROVAL -> APPROVED -> COMPLETED, with
PENDING_APPROVAL -> REJECTED and cancellation from any non-terminal state.
Cancelling cascades to the event's open registrations.
"""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any
from uuid import uuid4

from django.utils import timezone

from volunteering.conf import LifecycleSettings
from volunteering.domain import (
    Capacity,
    CascadeFailure,
    Event,
    EventCancellation,
    EventId,
    EventStatus,
    Page,
    Principal,
    Registration,
    RegistrationStatus,
)
from volunteering.domain.errors import (
    ConcurrentModificationError,
    DomainError,
    EventNotFoundError,
    InvalidStateError,
    UnauthorizedError,
    ValidationError,
)
from volunteering.domain.lifecycle import (
    CASCADE_CANCELLABLE_STATUSES,
    PUBLIC_EVENT_STATUSES,
    ensure_event_transition,
)
from volunteering.services.ids import parse_id
from volunteering.services.notifications import NotificationTrigger
from volunteering.services.registration_service import RegistrationService
from volunteering.stores.interfaces import EventStore, RegistrationStore, UnitOfWork

logger = logging.getLogger(__name__)

EDITABLE_STATUSES = frozenset(
    {EventStatus.DRAFT, EventStatus.SUBMITTED, EventStatus.PENDING_APPROVAL}
)
EDITABLE_FIELDS = frozenset(
    {
        "title",
        "description",
        "location",
        "category",
        "starts_at",
        "ends_at",
        "registration_opens_at",
        "registration_closes_at",
        "max_participants",
    }
)


@dataclass(frozen=True)
class EventDraft:
    """Caller-supplied fields of a new event."""

    title: str
    starts_at: datetime
    ends_at: datetime
    max_participants: int
    description: str = ""
    location: str = ""
    category: str = ""
    registration_opens_at: datetime | None = None
    registration_closes_at: datetime | None = None


def _validate(event: Event) -> None:
    if not event.title.strip():
        raise ValidationError("Title is required")
    if event.ends_at < event.starts_at:
        raise ValidationError("Event cannot end before it starts")
    opens, closes = event.registration_opens_at, event.registration_closes_at
    if opens is not None and closes is not None and closes < opens:
        raise ValidationError("Registration cannot close before it opens")
    if closes is not None and closes > event.ends_at:
        raise ValidationError("Registration cannot close after the event ends")


def _capacity(value: Any) -> Capacity:
    try:
        return Capacity(int(value))
    except (TypeError, ValueError):
        raise ValidationError("max_participants must be a positive integer") from None


class EventService:
    """Service for event lifecycle operations and event queries."""

    def __init__(
        self,
        events: EventStore,
        registrations: RegistrationStore,
        registration_service: RegistrationService,
        notifier: NotificationTrigger,
        uow: UnitOfWork,
        settings: LifecycleSettings,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._events = events
        self._registrations = registrations
        self._registration_service = registration_service
        self._notifier = notifier
        self._uow = uow
        self._settings = settings
        self._clock = clock

    def create_event(self, principal: Principal, draft: EventDraft) -> Event:
        """Create a DRAFT event owned by the principal.

        Raises:
            UnauthorizedError: If the principal is not a manager or admin.
            ValidationError: If the draft breaks a scheduling or capacity rule.
        """
        if not principal.can_organize:
            raise UnauthorizedError("Only managers and admins can create events")
        now = self._clock()
        event = Event(
            id=EventId(uuid4()),
            title=draft.title,
            description=draft.description,
            location=draft.location,
            category=draft.category,
            starts_at=draft.starts_at,
            ends_at=draft.ends_at,
            registration_opens_at=draft.registration_opens_at,
            registration_closes_at=draft.registration_closes_at,
            max_participants=_capacity(draft.max_participants),
            current_participants=0,
            status=EventStatus.DRAFT,
            creator_id=principal.user_id,
            created_at=now,
            updated_at=now,
        )
        _validate(event)
        created = self._events.create_event(event)
        logger.info("Event %s created by user %s", created.id, principal.user_id)
        return created

    def update_event(
        self, principal: Principal, event_id: str, changes: Mapping[str, Any]
    ) -> Event:
        """Edit descriptive fields of an event that has not been decided yet."""
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")
        with self._uow.atomic():
            event = self._load_owned(principal, event_id)
            if event.status not in EDITABLE_STATUSES:
                raise InvalidStateError(
                    "Event can no longer be edited", current=event.status.value
                )
            values = dict(changes)
            if "max_participants" in values:
                values["max_participants"] = _capacity(values["max_participants"])
            edited = replace(event, **values)
            _validate(edited)
            saved = self._events.save_event(edited, expected_version=event.version)
        logger.info("Event %s edited by user %s", saved.id, principal.user_id)
        return saved

    def submit(self, principal: Principal, event_id: str, note: str | None = None) -> Event:
        """Send a draft for review.

        Lands in PENDING_APPROVAL, or in SUBMITTED when review queueing is
        configured as a separate admin step.
        """
        with self._uow.atomic():
            event = self._load_owned(principal, event_id)
            submitted = event.submit(note, self._settings.submit_queues_for_review)
            saved = self._events.save_event(submitted, expected_version=event.version)
        logger.info("Event %s submitted, now %s", saved.id, saved.status.value)
        return saved

    def queue_for_review(self, principal: Principal, event_id: str) -> Event:
        self._require_admin(principal)
        with self._uow.atomic():
            event = self._load(principal, event_id)
            if event.status is EventStatus.PENDING_APPROVAL:
                return event
            queued = event.queue_for_review()
            saved = self._events.save_event(queued, expected_version=event.version)
        logger.info("Event %s queued for review by user %s", saved.id, principal.user_id)
        return saved

    def approve(self, principal: Principal, event_id: str) -> Event:
        self._require_admin(principal)
        with self._uow.atomic():
            event = self._load(principal, event_id)
            if event.status is EventStatus.APPROVED:
                return event
            approved = event.approve()
            saved = self._events.save_event(approved, expected_version=event.version)
            self._notifier.event_approved(saved)
        logger.info("Event %s approved by user %s", saved.id, principal.user_id)
        return saved

    def reject(self, principal: Principal, event_id: str, reason: str) -> Event:
        self._require_admin(principal)
        if not (reason or "").strip():
            raise ValidationError("Rejection reason is required")
        with self._uow.atomic():
            event = self._load(principal, event_id)
            if event.status is EventStatus.REJECTED:
                return event
            rejected = event.reject(reason.strip())
            saved = self._events.save_event(rejected, expected_version=event.version)
            self._notifier.event_rejected(saved)
        logger.info("Event %s rejected by user %s", saved.id, principal.user_id)
        return saved

    def cancel(
        self, principal: Principal, event_id: str, reason: str | None = None
    ) -> EventCancellation:
        """Cancel an event and every PENDING or APPROVED registration to it.

        Each registration is cancelled in its own savepoint. One that fails is
        reported in the result and left as it was; the event is cancelled
        regardless. Cancelling a CANCELLED event returns an empty report.
        """
        with self._uow.atomic():
            event = self._load(principal, event_id)
            if not event.can_be_managed_by(principal):
                raise UnauthorizedError("Only the event owner or an admin can cancel it")
            if event.status is EventStatus.CANCELLED:
                return EventCancellation(event=event)
            ensure_event_transition(event.status, EventStatus.CANCELLED)

            cancelled: list[Registration] = []
            failures: list[CascadeFailure] = []
            for registration in self._registrations.registrations_for_event(
                event.id, CASCADE_CANCELLABLE_STATUSES
            ):
                try:
                    with self._uow.atomic():
                        event, done = self._registration_service.cancel_for_event(
                            event, registration
                        )
                except ConcurrentModificationError as exc:
                    if exc.entity == "event":
                        raise
                    failures.append(CascadeFailure(registration.id, exc))
                except DomainError as exc:
                    failures.append(CascadeFailure(registration.id, exc))
                else:
                    cancelled.append(done)

            saved = self._events.save_event(event.cancel(), expected_version=event.version)

            for registration in cancelled:
                self._notifier.event_cancelled(saved, registration.user_id, reason)
            if not saved.is_owned_by(principal):
                self._notifier.event_cancelled(saved, saved.creator_id, reason)

        for failure in failures:
            logger.warning(
                "Cascade could not cancel registration %s of event %s: %s",
                failure.registration_id,
                saved.id,
                failure.error,
            )
        logger.info(
            "Event %s cancelled by user %s; %d registrations cancelled, %d failed",
            saved.id,
            principal.user_id,
            len(cancelled),
            len(failures),
        )
        return EventCancellation(
            event=saved, cancelled_registrations=tuple(cancelled), failures=tuple(failures)
        )

    def complete(self, principal: Principal | None, event_id: str) -> Event:
        """Close an approved event once it has ended.

        ``principal`` is None when a scheduled job completes events.
        Registrations are left untouched.
        """
        with self._uow.atomic():
            event = self._get(event_id) if principal is None else self._load(principal, event_id)
            if principal is not None and not event.can_be_managed_by(principal):
                raise UnauthorizedError("Only the event owner or an admin can complete it")
            if event.status is EventStatus.COMPLETED:
                return event
            if not event.has_ended(self._clock()):
                raise InvalidStateError(
                    "Event cannot be completed before it ends", current=event.status.value
                )
            saved = self._events.save_event(event.complete(), expected_version=event.version)
        logger.info("Event %s completed", saved.id)
        return saved

    def delete_event(self, principal: Principal, event_id: str) -> None:
        """Delete an event nobody has registered for.

        The owner may delete their event until it is approved; admins may
        delete any event. Events with registrations, even cancelled ones,
        must be cancelled instead.
        """
        with self._uow.atomic():
            event = self._load(principal, event_id)
            if not principal.is_admin and not (
                event.is_owned_by(principal) and event.status not in PUBLIC_EVENT_STATUSES
            ):
                raise UnauthorizedError("Not authorized to delete this event")
            if self._registrations.registrations_for_event(event.id, frozenset(RegistrationStatus)):
                raise InvalidStateError(
                    "Event has registrations and cannot be deleted; cancel it instead",
                    current=event.status.value,
                )
            self._events.delete_event(event.id, expected_version=event.version)
        logger.info("Event %s deleted by user %s", event.id, principal.user_id)

    def get_event(self, principal: Principal | None, event_id: str) -> Event:
        """Return an event by ID.

        Raises:
            InvalidIdError: If the event_id is not a valid UUID.
            EventNotFoundError: If the event does not exist or is not visible
                to the principal.
        """
        return self._load(principal, event_id)

    def list_events(
        self,
        principal: Principal | None,
        status: EventStatus | None = None,
        mine: bool = False,
        page: int | None = None,
        page_size: int | None = None,
    ) -> Page[Event]:
        """Return the events the principal may see, newest first.

        Public callers see APPROVED and COMPLETED events; owners also see
        their own events in any state; admins see everything. ``mine``
        restricts the listing to the principal's own events.
        """
        page, size = self._settings.clamp_page(page, page_size)
        statuses = None if status is None else {status}
        creator_id = or_creator_id = None
        if mine and principal is not None:
            creator_id = principal.user_id
        elif principal is None or not principal.is_admin:
            if statuses is None:
                statuses = PUBLIC_EVENT_STATUSES
                or_creator_id = principal.user_id if principal is not None else None
            elif status not in PUBLIC_EVENT_STATUSES:
                if principal is None:
                    return Page(items=(), total=0, page=page, page_size=size)
                creator_id = principal.user_id
        items, total = self._events.list_events(
            statuses=statuses,
            creator_id=creator_id,
            or_creator_id=or_creator_id,
            offset=(page - 1) * size,
            limit=size,
        )
        return Page(items=tuple(items), total=total, page=page, page_size=size)

    def _get(self, event_id: str) -> Event:
        event = self._events.get_event(parse_id(EventId, event_id))
        if event is None:
            raise EventNotFoundError(event_id)
        return event

    def _load(self, principal: Principal | None, event_id: str) -> Event:
        event = self._get(event_id)
        if not event.is_visible_to(principal):
            raise EventNotFoundError(event_id)
        return event

    def _load_owned(self, principal: Principal, event_id: str) -> Event:
        event = self._load(principal, event_id)
        if not event.is_owned_by(principal):
            raise UnauthorizedError("Only the event owner can do this")
        return event

    @staticmethod
    def _require_admin(principal: Principal) -> None:
        if not principal.is_admin:
            raise UnauthorizedError("Only admins can review events")
