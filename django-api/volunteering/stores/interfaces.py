"""Store interfaces (repository pattern).

Stores must be swappable and return domain models. Writes that guard the
engine's invariants are conditional: they raise ConcurrentModificationError
instead of overwriting a row that changed since it was read.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Collection
from contextlib import AbstractContextManager

from volunteering.domain import (
    Event,
    EventId,
    EventStatus,
    Notification,
    NotificationId,
    NotificationRequest,
    Registration,
    RegistrationId,
    RegistrationStatus,
)


class UnitOfWork(ABC):
    """Transaction boundary shared by all stores."""

    @abstractmethod
    def atomic(self) -> AbstractContextManager:
        """Return a context manager running its block as one transaction.

        Nested blocks behave as savepoints.
        """
        ...

    @abstractmethod
    def on_commit(self, callback: Callable[[], None]) -> None:
        """Run callback after the outermost transaction commits.

        The callback is discarded if the transaction rolls back.
        """
        ...


class EventStore(ABC):
    """Interface for event persistence operations."""

    @abstractmethod
    def create_event(self, event: Event) -> Event:
        """Insert a new event and return it as stored."""
        ...

    @abstractmethod
    def get_event(self, event_id: EventId) -> Event | None:
        """Return an event by ID, or None if not found."""
        ...

    @abstractmethod
    def list_events(
        self,
        statuses: Collection[EventStatus] | None,
        creator_id: int | None,
        or_creator_id: int | None,
        offset: int,
        limit: int,
    ) -> tuple[list[Event], int]:
        """Return a slice of events and the total count.

        Events match when their status is in ``statuses`` (any status when
        None) or, if given, when they were created by ``or_creator_id``.
        ``creator_id`` additionally restricts the result to one creator.
        Ordered by created_at descending.
        """
        ...

    @abstractmethod
    def save_event(self, event: Event, expected_version: int) -> Event:
        """Persist lifecycle and descriptive fields of an event.

        Never writes current_participants.

        Raises:
            ConcurrentModificationError: If the stored version differs.
            EventNotFoundError: If the event does not exist.
        """
        ...

    @abstractmethod
    def set_participant_count(
        self, event_id: EventId, value: int, expected_version: int
    ) -> Event:
        """Write current_participants. Reserved for the capacity counter.

        Raises:
            ConcurrentModificationError: If the stored version differs.
            EventNotFoundError: If the event does not exist.
        """
        ...

    @abstractmethod
    def touch(self, event_id: EventId, expected_version: int) -> Event:
        """Bump the version of an event without changing any field.

        Used by writes that depend on the event's state without modifying
        the event itself.

        Raises:
            ConcurrentModificationError: If the stored version differs.
            EventNotFoundError: If the event does not exist.
        """
        ...

    @abstractmethod
    def delete_event(self, event_id: EventId, expected_version: int) -> None:
        """Delete an event that no registration references.

        Raises:
            ConcurrentModificationError: If the stored version differs.
            EventNotFoundError: If the event does not exist.
            InvalidStateError: If registrations still reference the event.
        """
        ...


class RegistrationStore(ABC):
    """Interface for registration persistence operations."""

    @abstractmethod
    def create_registration(self, registration: Registration) -> Registration:
        """Insert a registration.

        Raises:
            DuplicateRegistrationError: If an active registration already
                exists for the same user and event.
        """
        ...

    @abstractmethod
    def get_registration(self, registration_id: RegistrationId) -> Registration | None:
        """Return a registration by ID, or None if not found."""
        ...

    @abstractmethod
    def find_active_registration(self, event_id: EventId, user_id: int) -> Registration | None:
        """Return the active registration of a user for an event, if any."""
        ...

    @abstractmethod
    def list_registrations(
        self,
        event_id: EventId | None,
        user_id: int | None,
        statuses: Collection[RegistrationStatus] | None,
        offset: int,
        limit: int,
    ) -> tuple[list[Registration], int]:
        """Return a filtered slice of registrations (newest first) and the total."""
        ...

    @abstractmethod
    def registrations_for_event(
        self, event_id: EventId, statuses: Collection[RegistrationStatus]
    ) -> list[Registration]:
        """Return every registration of an event in one of ``statuses``, oldest first."""
        ...

    @abstractmethod
    def save_registration(
        self, registration: Registration, expected_status: RegistrationStatus
    ) -> Registration:
        """Persist a status change.

        Raises:
            ConcurrentModificationError: If the stored status is not
                ``expected_status``.
            RegistrationNotFoundError: If the registration does not exist.
        """
        ...


class NotificationStore(ABC):
    """Interface for the notification inbox."""

    @abstractmethod
    def add(self, request: NotificationRequest) -> Notification:
        """Persist a delivered notification."""
        ...

    @abstractmethod
    def list_for_recipient(
        self, recipient_id: int, unread_only: bool, offset: int, limit: int
    ) -> tuple[list[Notification], int]:
        """Return a slice of a recipient's notifications (newest first) and the total."""
        ...

    @abstractmethod
    def count_unread(self, recipient_id: int) -> int:
        ...

    @abstractmethod
    def mark_read(self, notification_id: NotificationId, recipient_id: int) -> Notification | None:
        """Mark one notification read; None if it does not belong to the recipient."""
        ...

    @abstractmethod
    def mark_all_read(self, recipient_id: int) -> int:
        """Mark every unread notification read and return how many changed."""
        ...
