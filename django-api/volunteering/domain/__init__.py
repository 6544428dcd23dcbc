from volunteering.domain.lifecycle import EventStatus, RegistrationStatus
from volunteering.domain.models import (
    CascadeFailure,
    Event,
    EventCancellation,
    Notification,
    NotificationRequest,
    NotificationType,
    Page,
    Registration,
)
from volunteering.domain.value_objects import (
    Capacity,
    EventId,
    NotificationId,
    Principal,
    RegistrationId,
    Role,
)

__all__ = [
    "Event",
    "Registration",
    "Notification",
    "NotificationRequest",
    "NotificationType",
    "EventCancellation",
    "CascadeFailure",
    "Page",
    "EventStatus",
    "RegistrationStatus",
    "EventId",
    "RegistrationId",
    "NotificationId",
    "Capacity",
    "Principal",
    "Role",
]
