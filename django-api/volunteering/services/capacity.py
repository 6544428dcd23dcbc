"""Capacity counter: the only writer of an event's current_participants.

Callers must invoke it inside the unit of work that also applies the
registration transition, so the count and the status commit together.
"""

import logging
from abc import ABC, abstractmethod

from volunteering.domain import Event
from volunteering.domain.errors import CapacityExceededError, InvariantViolationError
from volunteering.stores.interfaces import EventStore

logger = logging.getLogger(__name__)


class OverflowPolicy(ABC):
    """Decides what happens when a registration targets a full event."""

    @abstractmethod
    def handle_full(self, event: Event, user_id: int) -> None:
        """Raise to refuse the registration, or return to let it through as PENDING."""
        ...


class RejectWhenFull(OverflowPolicy):
    """Hard rejection; the default until waitlisting exists."""

    def handle_full(self, event: Event, user_id: int) -> None:
        raise CapacityExceededError(str(event.id))


class CapacityCounter:
    """Atomic accounting of approved participants per event."""

    def __init__(self, store: EventStore) -> None:
        self._store = store

    def increment(self, event: Event) -> Event:
        """Take one seat.

        Raises:
            CapacityExceededError: If the event has no headroom.
            ConcurrentModificationError: If the event changed since it was read.
        """
        if event.is_full:
            raise CapacityExceededError(str(event.id))
        updated = self._store.set_participant_count(
            event.id, event.current_participants + 1, expected_version=event.version
        )
        logger.debug(
            "Event %s participants %d -> %d",
            event.id,
            event.current_participants,
            updated.current_participants,
        )
        return updated

    def decrement(self, event: Event) -> Event:
        """Release one seat.

        A release at zero means a counted registration was never counted.
        The stored value stays clamped at zero and the operation fails closed.

        Raises:
            InvariantViolationError: If the counter is already zero.
            ConcurrentModificationError: If the event changed since it was read.
        """
        if event.current_participants <= 0:
            logger.error(
                "Invariant violation: decrement below zero requested for event %s "
                "(version %d); counter left at 0",
                event.id,
                event.version,
            )
            raise InvariantViolationError(
                f"participant count of event {event.id} would go negative"
            )
        updated = self._store.set_participant_count(
            event.id, event.current_participants - 1, expected_version=event.version
        )
        logger.debug(
            "Event %s participants %d -> %d",
            event.id,
            event.current_participants,
            updated.current_participants,
        )
        return updated
