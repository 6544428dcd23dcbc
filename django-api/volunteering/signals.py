"""Django signals carrying committed lifecycle notifications.

``notification_requested`` is sent only after the triggering transaction
commits, with a ``request`` keyword holding a NotificationRequest. Delivery
transports (push, email) connect their own receivers; the inbox receiver
below is always connected.
"""

import logging

from django.dispatch import Signal, receiver

from volunteering.stores.django_store import DjangoNotificationStore

logger = logging.getLogger(__name__)

notification_requested = Signal()


@receiver(notification_requested, dispatch_uid="volunteering.deliver_to_inbox")
def deliver_to_inbox(sender, request, **kwargs):
    """Persist the notification to the recipient's inbox."""
    notification = DjangoNotificationStore().add(request)
    logger.debug(
        "Stored %s notification %s for user %s",
        request.type.value,
        notification.id,
        request.recipient_id,
    )
