"""Domain models representing persisted state.

These are pure domain objects with no API input rules. Each lifecycle method
returns a new instance and raises InvalidStateError for illegal transitions.
Django ORM models are in volunteering/models.py (persistence layer).
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Generic, TypeVar

from volunteering.domain.errors import DomainError
from volunteering.domain.lifecycle import (
    PUBLIC_EVENT_STATUSES,
    EventStatus,
    RegistrationStatus,
    ensure_event_transition,
    ensure_registration_transition,
)
from volunteering.domain.value_objects import (
    Capacity,
    EventId,
    NotificationId,
    Principal,
    RegistrationId,
)

T = TypeVar("T")


@dataclass(frozen=True)
class Event:
    """Domain representation of an Event."""

    id: EventId
    title: str
    description: str
    location: str
    category: str
    starts_at: datetime
    ends_at: datetime
    max_participants: Capacity
    current_participants: int
    status: EventStatus
    creator_id: int
    created_at: datetime
    updated_at: datetime
    registration_opens_at: datetime | None = None
    registration_closes_at: datetime | None = None
    submission_note: str | None = None
    rejection_reason: str | None = None
    version: int = 1

    @property
    def headroom(self) -> int:
        return self.max_participants.value - self.current_participants

    @property
    def is_full(self) -> bool:
        return self.headroom <= 0

    @property
    def registration_deadline(self) -> datetime:
        return self.registration_closes_at or self.starts_at

    def is_owned_by(self, principal: Principal) -> bool:
        return self.creator_id == principal.user_id

    def can_be_managed_by(self, principal: Principal) -> bool:
        return principal.is_admin or self.is_owned_by(principal)

    def is_visible_to(self, principal: Principal | None) -> bool:
        if self.status in PUBLIC_EVENT_STATUSES:
            return True
        return principal is not None and self.can_be_managed_by(principal)

    def is_registration_open(self, at: datetime) -> bool:
        if self.status is not EventStatus.APPROVED:
            return False
        if self.registration_opens_at is not None and at < self.registration_opens_at:
            return False
        return at < self.registration_deadline

    def has_ended(self, at: datetime) -> bool:
        return at >= self.ends_at

    def _move_to(self, target: EventStatus, **changes: Any) -> "Event":
        ensure_event_transition(self.status, target)
        return replace(self, status=target, **changes)

    def submit(self, note: str | None, queue_for_review: bool) -> "Event":
        target = EventStatus.PENDING_APPROVAL if queue_for_review else EventStatus.SUBMITTED
        return self._move_to(target, submission_note=note)

    def queue_for_review(self) -> "Event":
        return self._move_to(EventStatus.PENDING_APPROVAL)

    def approve(self) -> "Event":
        return self._move_to(EventStatus.APPROVED)

    def reject(self, reason: str) -> "Event":
        return self._move_to(EventStatus.REJECTED, rejection_reason=reason)

    def cancel(self) -> "Event":
        return self._move_to(EventStatus.CANCELLED)

    def complete(self) -> "Event":
        return self._move_to(EventStatus.COMPLETED)


@dataclass(frozen=True)
class Registration:
    """Domain representation of a user's Registration to an Event."""

    id: RegistrationId
    event_id: EventId
    user_id: int
    status: RegistrationStatus
    applied_at: datetime
    approved_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status.is_active

    def _move_to(self, target: RegistrationStatus, **changes: Any) -> "Registration":
        ensure_registration_transition(self.status, target)
        return replace(self, status=target, **changes)

    def approve(self, at: datetime) -> "Registration":
        return self._move_to(RegistrationStatus.APPROVED, approved_at=at)

    def reject(self) -> "Registration":
        return self._move_to(RegistrationStatus.REJECTED)

    def cancel(self, at: datetime) -> "Registration":
        return self._move_to(RegistrationStatus.CANCELLED, cancelled_at=at)

    def mark_attended(self, at: datetime) -> "Registration":
        return self._move_to(RegistrationStatus.ATTENDED, completed_at=at)


class NotificationType(Enum):
    """Kinds of status-change notifications."""

    EVENT_APPROVED = "EVENT_APPROVED"
    EVENT_REJECTED = "EVENT_REJECTED"
    EVENT_CANCELLED = "EVENT_CANCELLED"
    NEW_REGISTRATION = "NEW_REGISTRATION"
    REGISTRATION_APPROVED = "REGISTRATION_APPROVED"
    REGISTRATION_REJECTED = "REGISTRATION_REJECTED"
    REGISTRATION_CANCELLED = "REGISTRATION_CANCELLED"


@dataclass(frozen=True)
class NotificationRequest:
    """A notification queued for delivery once its transaction commits."""

    recipient_id: int
    type: NotificationType
    title: str
    message: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Notification:
    """Domain representation of a delivered inbox Notification."""

    id: NotificationId
    recipient_id: int
    type: NotificationType
    title: str
    message: str
    payload: dict[str, Any]
    created_at: datetime
    is_read: bool = False


@dataclass(frozen=True)
class CascadeFailure:
    """A registration the event-cancellation cascade could not cancel."""

    registration_id: RegistrationId
    error: DomainError


@dataclass(frozen=True)
class EventCancellation:
    """Outcome of cancelling an event and cascading to its registrations."""

    event: Event
    cancelled_registrations: tuple[Registration, ...] = ()
    failures: tuple[CascadeFailure, ...] = ()


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of a listing ordered by creation time descending."""

    items: tuple[T, ...]
    total: int
    page: int
    page_size: int

    @property
    def has_next(self) -> bool:
        return self.page * self.page_size < self.total
