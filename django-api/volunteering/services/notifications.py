"""Notification trigger and the recipient-facing inbox.

The trigger never delivers inside the transaction that caused it: requests are
handed to the unit of work's on-commit hook and dropped if it rolls back.
Delivery errors are logged, never raised back into the lifecycle operation.
"""

import logging
from functools import partial

from volunteering.conf import LifecycleSettings
from volunteering.domain import (
    Event,
    Notification,
    NotificationId,
    NotificationRequest,
    NotificationType,
    Page,
    Principal,
    Registration,
)
from volunteering.domain.errors import NotificationNotFoundError
from volunteering.services.ids import parse_id
from volunteering.signals import notification_requested
from volunteering.stores.interfaces import NotificationStore, UnitOfWork

logger = logging.getLogger(__name__)


class NotificationTrigger:
    """Queues status-change notifications for post-commit delivery."""

    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def emit(self, request: NotificationRequest) -> None:
        self._uow.on_commit(partial(self._dispatch, request))

    def _dispatch(self, request: NotificationRequest) -> None:
        responses = notification_requested.send_robust(sender=type(self), request=request)
        for receiver, response in responses:
            if isinstance(response, Exception):
                logger.error(
                    "Delivery of %s notification to user %s failed in %s",
                    request.type.value,
                    request.recipient_id,
                    getattr(receiver, "__qualname__", receiver),
                    exc_info=response,
                )

    # Builders for each transition that notifies someone.

    def event_approved(self, event: Event) -> None:
        self.emit(
            NotificationRequest(
                recipient_id=event.creator_id,
                type=NotificationType.EVENT_APPROVED,
                title="Event Approved",
                message=f'Your event "{event.title}" has been approved by an administrator.',
                payload=_event_payload(event),
            )
        )

    def event_rejected(self, event: Event) -> None:
        self.emit(
            NotificationRequest(
                recipient_id=event.creator_id,
                type=NotificationType.EVENT_REJECTED,
                title="Event Rejected",
                message=(
                    f'Your event "{event.title}" has been rejected by an administrator. '
                    f"Reason: {event.rejection_reason}"
                ),
                payload={**_event_payload(event), "reason": event.rejection_reason},
            )
        )

    def event_cancelled(self, event: Event, recipient_id: int, reason: str | None) -> None:
        self.emit(
            NotificationRequest(
                recipient_id=recipient_id,
                type=NotificationType.EVENT_CANCELLED,
                title="Event Cancelled",
                message=f'The event "{event.title}" has been cancelled.',
                payload={**_event_payload(event), "reason": reason},
            )
        )

    def new_registration(self, event: Event, registration: Registration) -> None:
        self.emit(
            NotificationRequest(
                recipient_id=event.creator_id,
                type=NotificationType.NEW_REGISTRATION,
                title="New Registration",
                message=f'A volunteer applied to "{event.title}".',
                payload=_registration_payload(event, registration),
            )
        )

    def registration_approved(self, event: Event, registration: Registration) -> None:
        self.emit(
            NotificationRequest(
                recipient_id=registration.user_id,
                type=NotificationType.REGISTRATION_APPROVED,
                title="Registration Approved",
                message=f'Your registration for "{event.title}" has been approved.',
                payload=_registration_payload(event, registration),
            )
        )

    def registration_rejected(self, event: Event, registration: Registration) -> None:
        self.emit(
            NotificationRequest(
                recipient_id=registration.user_id,
                type=NotificationType.REGISTRATION_REJECTED,
                title="Registration Rejected",
                message=f'Your registration for "{event.title}" has been rejected.',
                payload=_registration_payload(event, registration),
            )
        )

    def registration_cancelled(self, event: Event, registration: Registration) -> None:
        self.emit(
            NotificationRequest(
                recipient_id=registration.user_id,
                type=NotificationType.REGISTRATION_CANCELLED,
                title="Registration Cancelled",
                message=f'Your registration for "{event.title}" has been cancelled.',
                payload=_registration_payload(event, registration),
            )
        )


def _event_payload(event: Event) -> dict:
    return {"eventId": str(event.id), "eventTitle": event.title}


def _registration_payload(event: Event, registration: Registration) -> dict:
    return {**_event_payload(event), "registrationId": str(registration.id)}


class NotificationInbox:
    """Read side of delivered notifications, scoped to the recipient."""

    def __init__(self, store: NotificationStore, settings: LifecycleSettings) -> None:
        self._store = store
        self._settings = settings

    def list_notifications(
        self,
        principal: Principal,
        unread_only: bool = False,
        page: int | None = None,
        page_size: int | None = None,
    ) -> Page[Notification]:
        page, size = self._settings.clamp_page(page, page_size)
        items, total = self._store.list_for_recipient(
            principal.user_id, unread_only, offset=(page - 1) * size, limit=size
        )
        return Page(items=tuple(items), total=total, page=page, page_size=size)

    def unread_count(self, principal: Principal) -> int:
        return self._store.count_unread(principal.user_id)

    def mark_read(self, principal: Principal, notification_id: str) -> Notification:
        """Mark one of the principal's notifications read.

        Raises:
            InvalidIdError: If the id is not a valid UUID.
            NotificationNotFoundError: If no such notification belongs to the principal.
        """
        notification = self._store.mark_read(
            parse_id(NotificationId, notification_id), principal.user_id
        )
        if notification is None:
            raise NotificationNotFoundError(notification_id)
        return notification

    def mark_all_read(self, principal: Principal) -> int:
        return self._store.mark_all_read(principal.user_id)
