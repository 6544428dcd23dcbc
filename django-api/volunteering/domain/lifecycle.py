"""Lifecycle states and their transition tables.

Every allowed transition is listed explicitly; anything absent is illegal.
"""

from enum import Enum
from typing import Self

from volunteering.domain.errors import InvalidStateError, ValidationError


class _Status(Enum):
    @classmethod
    def parse(cls, value: str) -> Self:
        """Parse a status string from outside the engine."""
        try:
            return cls(value.upper())
        except (AttributeError, ValueError):
            raise ValidationError(f"Unknown {cls.__name__} value: {value!r}") from None


class EventStatus(_Status):
    """Approval lifecycle of an event."""

    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return not EVENT_TRANSITIONS[self]


class RegistrationStatus(_Status):
    """Lifecycle of a single user's registration to an event."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"
    ATTENDED = "ATTENDED"

    @property
    def is_terminal(self) -> bool:
        return not REGISTRATION_TRANSITIONS[self]

    @property
    def is_active(self) -> bool:
        return self in ACTIVE_REGISTRATION_STATUSES

    @property
    def counts_toward_capacity(self) -> bool:
        return self in COUNTED_REGISTRATION_STATUSES


EVENT_TRANSITIONS: dict[EventStatus, frozenset[EventStatus]] = {
    EventStatus.DRAFT: frozenset(
        {EventStatus.SUBMITTED, EventStatus.PENDING_APPROVAL, EventStatus.CANCELLED}
    ),
    EventStatus.SUBMITTED: frozenset({EventStatus.PENDING_APPROVAL, EventStatus.CANCELLED}),
    EventStatus.PENDING_APPROVAL: frozenset(
        {EventStatus.APPROVED, EventStatus.REJECTED, EventStatus.CANCELLED}
    ),
    EventStatus.APPROVED: frozenset({EventStatus.COMPLETED, EventStatus.CANCELLED}),
    EventStatus.REJECTED: frozenset(),
    EventStatus.COMPLETED: frozenset(),
    EventStatus.CANCELLED: frozenset(),
}

REGISTRATION_TRANSITIONS: dict[RegistrationStatus, frozenset[RegistrationStatus]] = {
    RegistrationStatus.PENDING: frozenset(
        {RegistrationStatus.APPROVED, RegistrationStatus.REJECTED, RegistrationStatus.CANCELLED}
    ),
    RegistrationStatus.APPROVED: frozenset(
        {RegistrationStatus.ATTENDED, RegistrationStatus.CANCELLED}
    ),
    RegistrationStatus.REJECTED: frozenset(),
    RegistrationStatus.CANCELLED: frozenset(),
    RegistrationStatus.ATTENDED: frozenset(),
}

ACTIVE_REGISTRATION_STATUSES = frozenset(
    {RegistrationStatus.PENDING, RegistrationStatus.APPROVED, RegistrationStatus.ATTENDED}
)
COUNTED_REGISTRATION_STATUSES = frozenset(
    {RegistrationStatus.APPROVED, RegistrationStatus.ATTENDED}
)
# Registrations an event cancellation must move to CANCELLED.
CASCADE_CANCELLABLE_STATUSES = frozenset(
    {RegistrationStatus.PENDING, RegistrationStatus.APPROVED}
)
PUBLIC_EVENT_STATUSES = frozenset({EventStatus.APPROVED, EventStatus.COMPLETED})


def ensure_event_transition(current: EventStatus, target: EventStatus) -> None:
    if target not in EVENT_TRANSITIONS[current]:
        raise InvalidStateError(
            f"Event cannot move from {current.value} to {target.value}",
            current=current.value,
        )


def ensure_registration_transition(
    current: RegistrationStatus, target: RegistrationStatus
) -> None:
    if target not in REGISTRATION_TRANSITIONS[current]:
        raise InvalidStateError(
            f"Registration cannot move from {current.value} to {target.value}",
            current=current.value,
        )
