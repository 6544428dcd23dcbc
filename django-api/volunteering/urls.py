from django.urls import path

from volunteering.handlers import (
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

EVENT_ACTIONS = ["submit", "review", "approve", "reject", "cancel", "complete"]
REGISTRATION_ACTIONS = ["approve", "reject", "cancel", "attend"]

urlpatterns = [
    path("events", EventListView.as_view(), name="event-list"),
    path("events/<str:event_id>", EventDetailView.as_view(), name="event-detail"),
    path(
        "events/<str:event_id>/registrations",
        EventRegistrationListView.as_view(),
        name="event-registrations",
    ),
    *[
        path(
            f"events/<str:event_id>/{action}",
            EventActionView.as_view(action=action),
            name=f"event-{action}",
        )
        for action in EVENT_ACTIONS
    ],
    path("registrations", MyRegistrationListView.as_view(), name="registration-list"),
    path(
        "registrations/<str:registration_id>",
        RegistrationDetailView.as_view(),
        name="registration-detail",
    ),
    *[
        path(
            f"registrations/<str:registration_id>/{action}",
            RegistrationActionView.as_view(action=action),
            name=f"registration-{action}",
        )
        for action in REGISTRATION_ACTIONS
    ],
    path("notifications", NotificationListView.as_view(), name="notification-list"),
    path(
        "notifications/unread-count",
        UnreadCountView.as_view(),
        name="notification-unread-count",
    ),
    path(
        "notifications/read-all",
        NotificationReadAllView.as_view(),
        name="notification-read-all",
    ),
    path(
        "notifications/<str:notification_id>/read",
        NotificationReadView.as_view(),
        name="notification-read",
    ),
]
