"""Serializers for transforming domain models to API responses, and for
validating the shape of request bodies."""

from rest_framework import serializers


class EventSerializer(serializers.Serializer):
    """Serializer for Event domain model."""

    id = serializers.CharField()
    title = serializers.CharField()
    description = serializers.CharField()
    location = serializers.CharField()
    category = serializers.CharField()
    starts_at = serializers.DateTimeField()
    ends_at = serializers.DateTimeField()
    registration_opens_at = serializers.DateTimeField(allow_null=True)
    registration_closes_at = serializers.DateTimeField(allow_null=True)
    max_participants = serializers.IntegerField(source="max_participants.value")
    current_participants = serializers.IntegerField()
    status = serializers.CharField(source="status.value")
    creator_id = serializers.IntegerField()
    submission_note = serializers.CharField(allow_null=True)
    rejection_reason = serializers.CharField(allow_null=True)
    created_at = serializers.DateTimeField()
    updated_at = serializers.DateTimeField()


class RegistrationSerializer(serializers.Serializer):
    """Serializer for Registration domain model."""

    id = serializers.CharField()
    event_id = serializers.CharField()
    user_id = serializers.IntegerField()
    status = serializers.CharField(source="status.value")
    applied_at = serializers.DateTimeField()
    approved_at = serializers.DateTimeField(allow_null=True)
    completed_at = serializers.DateTimeField(allow_null=True)
    cancelled_at = serializers.DateTimeField(allow_null=True)


class NotificationSerializer(serializers.Serializer):
    """Serializer for Notification domain model."""

    id = serializers.CharField()
    type = serializers.CharField(source="type.value")
    title = serializers.CharField()
    message = serializers.CharField()
    payload = serializers.JSONField()
    is_read = serializers.BooleanField()
    created_at = serializers.DateTimeField()


class CascadeFailureSerializer(serializers.Serializer):
    registration_id = serializers.CharField()
    code = serializers.CharField(source="error.code.value")
    message = serializers.CharField(source="error.message")


class EventCancellationSerializer(serializers.Serializer):
    event = EventSerializer()
    cancelled_registrations = RegistrationSerializer(many=True)
    failures = CascadeFailureSerializer(many=True)


class EventInputSerializer(serializers.Serializer):
    """Request body for creating (or, partially, editing) an event."""

    title = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True)
    location = serializers.CharField(required=False, allow_blank=True, max_length=255)
    category = serializers.CharField(required=False, allow_blank=True, max_length=100)
    starts_at = serializers.DateTimeField()
    ends_at = serializers.DateTimeField()
    registration_opens_at = serializers.DateTimeField(required=False, allow_null=True)
    registration_closes_at = serializers.DateTimeField(required=False, allow_null=True)
    max_participants = serializers.IntegerField(min_value=1)


class NoteSerializer(serializers.Serializer):
    note = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class ReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True)


def page_payload(page, serializer_class) -> dict:
    """Render a domain Page with the given item serializer."""
    return {
        "count": page.total,
        "page": page.page,
        "page_size": page.page_size,
        "has_next": page.has_next,
        "results": serializer_class(page.items, many=True).data,
    }
