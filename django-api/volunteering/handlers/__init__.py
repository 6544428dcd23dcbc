from volunteering.handlers.views import (
    EventActionView,
    EventDetailView,
    EventListView,
    EventRegistrationListView,
    MyRegistrationListView,
    NotificationListView,
    NotificationReadAllView,
    NotificationReadView,
    RegistrationActionView,
    RegistrationDetailView,
    UnreadCountView,
)

__all__ = [
    "EventListView",
    "EventDetailView",
    "EventActionView",
    "EventRegistrationListView",
    "MyRegistrationListView",
    "RegistrationDetailView",
    "RegistrationActionView",
    "NotificationListView",
    "UnreadCountView",
    "NotificationReadView",
    "NotificationReadAllView",
]
