"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/models.py.
The check and partial unique constraints back the engine's invariants at the
storage level, so they hold across processes.
"""

import uuid

from django.conf import settings
from django.db import models
from django.db.models import F, Q

from volunteering.domain.lifecycle import (
    ACTIVE_REGISTRATION_STATUSES,
    EventStatus,
    RegistrationStatus,
)
from volunteering.domain.models import NotificationType


def _choices(enum_cls) -> list[tuple[str, str]]:
    return [(member.value, member.name.replace("_", " ").title()) for member in enum_cls]


class Event(models.Model):
    """Persistence model for volunteer events."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    location = models.CharField(max_length=255, blank=True)
    category = models.CharField(max_length=100, blank=True)
    starts_at = models.DateTimeField()
    ends_at = models.DateTimeField()
    registration_opens_at = models.DateTimeField(blank=True, null=True)
    registration_closes_at = models.DateTimeField(blank=True, null=True)
    max_participants = models.PositiveIntegerField()
    current_participants = models.PositiveIntegerField(default=0)
    status = models.CharField(
        max_length=20, choices=_choices(EventStatus), default=EventStatus.DRAFT.value
    )
    creator = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="created_events"
    )
    submission_note = models.TextField(blank=True, null=True)
    rejection_reason = models.TextField(blank=True, null=True)
    version = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["-created_at"], name="event_created_idx"),
            models.Index(fields=["status", "-created_at"], name="event_status_created_idx"),
            models.Index(fields=["creator", "-created_at"], name="event_creator_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(max_participants__gt=0),
                name="event_max_participants_positive",
            ),
            models.CheckConstraint(
                condition=Q(current_participants__gte=0)
                & Q(current_participants__lte=F("max_participants")),
                name="event_current_participants_within_capacity",
            ),
        ]

    def __str__(self) -> str:
        return self.title


class Registration(models.Model):
    """Persistence model for a user's registration to an event."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(Event, on_delete=models.PROTECT, related_name="registrations")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="registrations"
    )
    status = models.CharField(
        max_length=20,
        choices=_choices(RegistrationStatus),
        default=RegistrationStatus.PENDING.value,
    )
    applied_at = models.DateTimeField()
    approved_at = models.DateTimeField(blank=True, null=True)
    completed_at = models.DateTimeField(blank=True, null=True)
    cancelled_at = models.DateTimeField(blank=True, null=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-applied_at"]
        indexes = [
            models.Index(fields=["event", "status"], name="registration_event_status_idx"),
            models.Index(fields=["user", "-applied_at"], name="registration_user_applied_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "event"],
                condition=Q(status__in=sorted(s.value for s in ACTIVE_REGISTRATION_STATUSES)),
                name="registration_one_active_per_user_event",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.user_id} -> {self.event_id} ({self.status})"


class Notification(models.Model):
    """Persistence model for inbox notifications."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="notifications"
    )
    type = models.CharField(max_length=40, choices=_choices(NotificationType))
    title = models.CharField(max_length=255)
    message = models.TextField()
    payload = models.JSONField(default=dict, blank=True)
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["recipient", "is_read", "-created_at"], name="notification_inbox_idx"
            ),
        ]

    def __str__(self) -> str:
        return f"{self.type} -> {self.recipient_id}"
