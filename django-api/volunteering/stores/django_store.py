"""Django ORM implementation of the stores.

Event writes use optimistic versioning: ``UPDATE ... WHERE id = %s AND
version = %s`` followed by a version bump. Registration status writes are
conditional on the prior status. Both report a lost race as
ConcurrentModificationError.
"""

from collections.abc import Callable, Collection
from contextlib import AbstractContextManager

from django.db import IntegrityError, transaction
from django.db.models import F, ProtectedError, Q
from django.utils import timezone

from volunteering import models
from volunteering.domain import (
    Capacity,
    Event,
    EventId,
    EventStatus,
    Notification,
    NotificationId,
    NotificationRequest,
    NotificationType,
    Registration,
    RegistrationId,
    RegistrationStatus,
)
from volunteering.domain.errors import (
    ConcurrentModificationError,
    DuplicateRegistrationError,
    EventNotFoundError,
    InvalidStateError,
    InvariantViolationError,
    RegistrationNotFoundError,
)
from volunteering.domain.lifecycle import ACTIVE_REGISTRATION_STATUSES
from volunteering.stores.interfaces import (
    EventStore,
    NotificationStore,
    RegistrationStore,
    UnitOfWork,
)


def _to_event(row: models.Event) -> Event:
    return Event(
        id=EventId(row.id),
        title=row.title,
        description=row.description,
        location=row.location,
        category=row.category,
        starts_at=row.starts_at,
        ends_at=row.ends_at,
        registration_opens_at=row.registration_opens_at,
        registration_closes_at=row.registration_closes_at,
        max_participants=Capacity(row.max_participants),
        current_participants=row.current_participants,
        status=EventStatus(row.status),
        creator_id=row.creator_id,
        submission_note=row.submission_note,
        rejection_reason=row.rejection_reason,
        version=row.version,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _to_registration(row: models.Registration) -> Registration:
    return Registration(
        id=RegistrationId(row.id),
        event_id=EventId(row.event_id),
        user_id=row.user_id,
        status=RegistrationStatus(row.status),
        applied_at=row.applied_at,
        approved_at=row.approved_at,
        completed_at=row.completed_at,
        cancelled_at=row.cancelled_at,
    )


def _to_notification(row: models.Notification) -> Notification:
    return Notification(
        id=NotificationId(row.id),
        recipient_id=row.recipient_id,
        type=NotificationType(row.type),
        title=row.title,
        message=row.message,
        payload=row.payload,
        created_at=row.created_at,
        is_read=row.is_read,
    )


class DjangoUnitOfWork(UnitOfWork):
    """Unit of work over the default database connection."""

    def atomic(self) -> AbstractContextManager:
        return transaction.atomic()

    def on_commit(self, callback: Callable[[], None]) -> None:
        transaction.on_commit(callback, robust=True)


class DjangoEventStore(EventStore):
    """Relational event store using Django ORM."""

    def create_event(self, event: Event) -> Event:
        row = models.Event.objects.create(
            id=event.id.value,
            title=event.title,
            description=event.description,
            location=event.location,
            category=event.category,
            starts_at=event.starts_at,
            ends_at=event.ends_at,
            registration_opens_at=event.registration_opens_at,
            registration_closes_at=event.registration_closes_at,
            max_participants=event.max_participants.value,
            current_participants=0,
            status=event.status.value,
            creator_id=event.creator_id,
            submission_note=event.submission_note,
            version=1,
        )
        return _to_event(row)

    def get_event(self, event_id: EventId) -> Event | None:
        row = models.Event.objects.filter(pk=event_id.value).first()
        return _to_event(row) if row is not None else None

    def list_events(
        self,
        statuses: Collection[EventStatus] | None,
        creator_id: int | None,
        or_creator_id: int | None,
        offset: int,
        limit: int,
    ) -> tuple[list[Event], int]:
        queryset = models.Event.objects.all()
        if creator_id is not None:
            queryset = queryset.filter(creator_id=creator_id)
        if statuses is not None:
            condition = Q(status__in=[status.value for status in statuses])
            if or_creator_id is not None:
                condition |= Q(creator_id=or_creator_id)
            queryset = queryset.filter(condition)
        total = queryset.count()
        rows = queryset.order_by("-created_at")[offset : offset + limit]
        return [_to_event(row) for row in rows], total

    def save_event(self, event: Event, expected_version: int) -> Event:
        updated = models.Event.objects.filter(
            pk=event.id.value, version=expected_version
        ).update(
            title=event.title,
            description=event.description,
            location=event.location,
            category=event.category,
            starts_at=event.starts_at,
            ends_at=event.ends_at,
            registration_opens_at=event.registration_opens_at,
            registration_closes_at=event.registration_closes_at,
            max_participants=event.max_participants.value,
            status=event.status.value,
            submission_note=event.submission_note,
            rejection_reason=event.rejection_reason,
            version=F("version") + 1,
            updated_at=timezone.now(),
        )
        if not updated:
            self._raise_lost_update(event.id)
        return self._reload(event.id)

    def set_participant_count(
        self, event_id: EventId, value: int, expected_version: int
    ) -> Event:
        try:
            with transaction.atomic():
                updated = models.Event.objects.filter(
                    pk=event_id.value, version=expected_version
                ).update(
                    current_participants=value,
                    version=F("version") + 1,
                    updated_at=timezone.now(),
                )
        except IntegrityError as exc:
            raise InvariantViolationError(
                f"participant count {value} rejected by storage for event {event_id}"
            ) from exc
        if not updated:
            self._raise_lost_update(event_id)
        return self._reload(event_id)

    def touch(self, event_id: EventId, expected_version: int) -> Event:
        updated = models.Event.objects.filter(
            pk=event_id.value, version=expected_version
        ).update(version=F("version") + 1, updated_at=timezone.now())
        if not updated:
            self._raise_lost_update(event_id)
        return self._reload(event_id)

    def delete_event(self, event_id: EventId, expected_version: int) -> None:
        try:
            with transaction.atomic():
                deleted, _ = models.Event.objects.filter(
                    pk=event_id.value, version=expected_version
                ).delete()
        except ProtectedError as exc:
            raise InvalidStateError(
                "Event has registrations and cannot be deleted; cancel it instead"
            ) from exc
        if not deleted:
            self._raise_lost_update(event_id)

    def _reload(self, event_id: EventId) -> Event:
        event = self.get_event(event_id)
        if event is None:
            raise EventNotFoundError(str(event_id))
        return event

    def _raise_lost_update(self, event_id: EventId) -> None:
        if not models.Event.objects.filter(pk=event_id.value).exists():
            raise EventNotFoundError(str(event_id))
        raise ConcurrentModificationError("event", str(event_id))


class DjangoRegistrationStore(RegistrationStore):
    """Relational registration store using Django ORM."""

    def create_registration(self, registration: Registration) -> Registration:
        try:
            with transaction.atomic():
                row = models.Registration.objects.create(
                    id=registration.id.value,
                    event_id=registration.event_id.value,
                    user_id=registration.user_id,
                    status=registration.status.value,
                    applied_at=registration.applied_at,
                    approved_at=registration.approved_at,
                )
        except IntegrityError as exc:
            raise DuplicateRegistrationError(
                str(registration.event_id), registration.user_id
            ) from exc
        return _to_registration(row)

    def get_registration(self, registration_id: RegistrationId) -> Registration | None:
        row = models.Registration.objects.filter(pk=registration_id.value).first()
        return _to_registration(row) if row is not None else None

    def find_active_registration(self, event_id: EventId, user_id: int) -> Registration | None:
        row = (
            models.Registration.objects.filter(
                event_id=event_id.value,
                user_id=user_id,
                status__in=[status.value for status in ACTIVE_REGISTRATION_STATUSES],
            )
            .order_by("-applied_at")
            .first()
        )
        return _to_registration(row) if row is not None else None

    def list_registrations(
        self,
        event_id: EventId | None,
        user_id: int | None,
        statuses: Collection[RegistrationStatus] | None,
        offset: int,
        limit: int,
    ) -> tuple[list[Registration], int]:
        queryset = models.Registration.objects.all()
        if event_id is not None:
            queryset = queryset.filter(event_id=event_id.value)
        if user_id is not None:
            queryset = queryset.filter(user_id=user_id)
        if statuses:
            queryset = queryset.filter(status__in=[status.value for status in statuses])
        total = queryset.count()
        rows = queryset.order_by("-applied_at")[offset : offset + limit]
        return [_to_registration(row) for row in rows], total

    def registrations_for_event(
        self, event_id: EventId, statuses: Collection[RegistrationStatus]
    ) -> list[Registration]:
        rows = models.Registration.objects.filter(
            event_id=event_id.value, status__in=[status.value for status in statuses]
        ).order_by("applied_at")
        return [_to_registration(row) for row in rows]

    def save_registration(
        self, registration: Registration, expected_status: RegistrationStatus
    ) -> Registration:
        updated = models.Registration.objects.filter(
            pk=registration.id.value, status=expected_status.value
        ).update(
            status=registration.status.value,
            approved_at=registration.approved_at,
            completed_at=registration.completed_at,
            cancelled_at=registration.cancelled_at,
            updated_at=timezone.now(),
        )
        if not updated:
            if not models.Registration.objects.filter(pk=registration.id.value).exists():
                raise RegistrationNotFoundError(str(registration.id))
            raise ConcurrentModificationError("registration", str(registration.id))
        return _to_registration(models.Registration.objects.get(pk=registration.id.value))


class DjangoNotificationStore(NotificationStore):
    """Notification inbox backed by Django ORM."""

    def add(self, request: NotificationRequest) -> Notification:
        row = models.Notification.objects.create(
            recipient_id=request.recipient_id,
            type=request.type.value,
            title=request.title,
            message=request.message,
            payload=request.payload,
        )
        return _to_notification(row)

    def list_for_recipient(
        self, recipient_id: int, unread_only: bool, offset: int, limit: int
    ) -> tuple[list[Notification], int]:
        queryset = models.Notification.objects.filter(recipient_id=recipient_id)
        if unread_only:
            queryset = queryset.filter(is_read=False)
        total = queryset.count()
        rows = queryset.order_by("-created_at")[offset : offset + limit]
        return [_to_notification(row) for row in rows], total

    def count_unread(self, recipient_id: int) -> int:
        return models.Notification.objects.filter(
            recipient_id=recipient_id, is_read=False
        ).count()

    def mark_read(self, notification_id: NotificationId, recipient_id: int) -> Notification | None:
        queryset = models.Notification.objects.filter(
            pk=notification_id.value, recipient_id=recipient_id
        )
        if not queryset.update(is_read=True):
            return None
        return _to_notification(queryset.get())

    def mark_all_read(self, recipient_id: int) -> int:
        return models.Notification.objects.filter(
            recipient_id=recipient_id, is_read=False
        ).update(is_read=True)
