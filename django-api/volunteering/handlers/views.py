"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and validate input format
- Call the lifecycle coordinator or query services
- Never contain business logic
- Leave domain error mapping to handlers.errors.exception_handler
"""

from functools import cached_property

from rest_framework import status
from rest_framework.exceptions import NotAuthenticated
from rest_framework.permissions import IsAuthenticated, IsAuthenticatedOrReadOnly
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from volunteering.conf import LifecycleSettings
from volunteering.domain import EventStatus, Principal, RegistrationStatus
from volunteering.handlers.principal import principal_for_user
from volunteering.handlers.serializers import (
    EventCancellationSerializer,
    EventInputSerializer,
    EventSerializer,
    NoteSerializer,
    NotificationSerializer,
    ReasonSerializer,
    RegistrationSerializer,
    page_payload,
)
from volunteering.services import EventDraft, Lifecycle, build_lifecycle


def _int_param(request: Request, name: str) -> int | None:
    value = request.query_params.get(name)
    try:
        return int(value) if value else None
    except ValueError:
        return None


def _flag_param(request: Request, name: str) -> bool:
    return request.query_params.get(name, "").lower() in ("1", "true", "yes")


def _registration_statuses(request: Request) -> list[RegistrationStatus] | None:
    raw = request.query_params.getlist("status")
    values = [part for item in raw for part in item.split(",") if part]
    return [RegistrationStatus.parse(value) for value in values] or None


class LifecycleView(APIView):
    """Base view giving access to the lifecycle services and the principal."""

    @cached_property
    def lifecycle_settings(self) -> LifecycleSettings:
        return LifecycleSettings.from_django()

    @cached_property
    def lifecycle(self) -> Lifecycle:
        return build_lifecycle(self.lifecycle_settings)

    @property
    def principal(self) -> Principal | None:
        return principal_for_user(self.request.user, self.lifecycle_settings)

    @property
    def actor(self) -> Principal:
        principal = self.principal
        if principal is None:
            raise NotAuthenticated()
        return principal

    def page_args(self) -> dict:
        return {
            "page": _int_param(self.request, "page"),
            "page_size": _int_param(self.request, "page_size"),
        }


class EventListView(LifecycleView):
    """Handler for GET/POST /api/events"""

    permission_classes = [IsAuthenticatedOrReadOnly]

    def get(self, request: Request) -> Response:
        raw_status = request.query_params.get("status")
        page = self.lifecycle.events.list_events(
            self.principal,
            status=EventStatus.parse(raw_status) if raw_status else None,
            mine=_flag_param(request, "mine"),
            **self.page_args(),
        )
        return Response(page_payload(page, EventSerializer))

    def post(self, request: Request) -> Response:
        serializer = EventInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        event = self.lifecycle.coordinator.create_event(
            self.actor, EventDraft(**serializer.validated_data)
        )
        return Response(EventSerializer(event).data, status=status.HTTP_201_CREATED)


class EventDetailView(LifecycleView):
    """Handler for GET/PATCH/DELETE /api/events/{event_id}"""

    permission_classes = [IsAuthenticatedOrReadOnly]

    def get(self, request: Request, event_id: str) -> Response:
        event = self.lifecycle.events.get_event(self.principal, event_id)
        return Response(EventSerializer(event).data)

    def patch(self, request: Request, event_id: str) -> Response:
        serializer = EventInputSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        event = self.lifecycle.coordinator.update_event(
            self.actor, event_id, serializer.validated_data
        )
        return Response(EventSerializer(event).data)

    def delete(self, request: Request, event_id: str) -> Response:
        self.lifecycle.coordinator.delete_event(self.actor, event_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class EventActionView(LifecycleView):
    """Handler for POST /api/events/{event_id}/{action}"""

    permission_classes = [IsAuthenticated]
    action = ""

    def post(self, request: Request, event_id: str) -> Response:
        coordinator = self.lifecycle.coordinator
        if self.action == "cancel":
            body = self._body(ReasonSerializer)
            result = coordinator.cancel_event(self.actor, event_id, body.get("reason"))
            return Response(EventCancellationSerializer(result).data)
        if self.action == "submit":
            event = coordinator.submit_event(
                self.actor, event_id, self._body(NoteSerializer).get("note")
            )
        elif self.action == "review":
            event = coordinator.queue_event_for_review(self.actor, event_id)
        elif self.action == "approve":
            event = coordinator.approve_event(self.actor, event_id)
        elif self.action == "reject":
            event = coordinator.reject_event(
                self.actor, event_id, self._body(ReasonSerializer).get("reason") or ""
            )
        elif self.action == "complete":
            event = coordinator.complete_event(self.actor, event_id)
        else:
            raise ValueError(f"Unknown event action: {self.action}")
        return Response(EventSerializer(event).data)

    def _body(self, serializer_class) -> dict:
        serializer = serializer_class(data=self.request.data)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data


class EventRegistrationListView(LifecycleView):
    """Handler for GET/POST /api/events/{event_id}/registrations"""

    permission_classes = [IsAuthenticated]

    def get(self, request: Request, event_id: str) -> Response:
        page = self.lifecycle.registrations.list_event_registrations(
            self.actor, event_id, statuses=_registration_statuses(request), **self.page_args()
        )
        return Response(page_payload(page, RegistrationSerializer))

    def post(self, request: Request, event_id: str) -> Response:
        registration = self.lifecycle.coordinator.register_for_event(self.actor, event_id)
        return Response(RegistrationSerializer(registration).data, status=status.HTTP_201_CREATED)


class MyRegistrationListView(LifecycleView):
    """Handler for GET /api/registrations"""

    permission_classes = [IsAuthenticated]

    def get(self, request: Request) -> Response:
        page = self.lifecycle.registrations.list_user_registrations(
            self.actor, statuses=_registration_statuses(request), **self.page_args()
        )
        return Response(page_payload(page, RegistrationSerializer))


class RegistrationDetailView(LifecycleView):
    """Handler for GET /api/registrations/{registration_id}"""

    permission_classes = [IsAuthenticated]

    def get(self, request: Request, registration_id: str) -> Response:
        registration = self.lifecycle.registrations.get_registration(self.actor, registration_id)
        return Response(RegistrationSerializer(registration).data)


class RegistrationActionView(LifecycleView):
    """Handler for POST /api/registrations/{registration_id}/{action}"""

    permission_classes = [IsAuthenticated]
    action = ""

    def post(self, request: Request, registration_id: str) -> Response:
        coordinator = self.lifecycle.coordinator
        operations = {
            "approve": coordinator.approve_registration,
            "reject": coordinator.reject_registration,
            "cancel": coordinator.cancel_registration,
            "attend": coordinator.mark_attended,
        }
        registration = operations[self.action](self.actor, registration_id)
        return Response(RegistrationSerializer(registration).data)


class NotificationListView(LifecycleView):
    """Handler for GET /api/notifications"""

    permission_classes = [IsAuthenticated]

    def get(self, request: Request) -> Response:
        page = self.lifecycle.inbox.list_notifications(
            self.actor, unread_only=_flag_param(request, "unread_only"), **self.page_args()
        )
        return Response(page_payload(page, NotificationSerializer))


class UnreadCountView(LifecycleView):
    """Handler for GET /api/notifications/unread-count"""

    permission_classes = [IsAuthenticated]

    def get(self, request: Request) -> Response:
        return Response({"count": self.lifecycle.inbox.unread_count(self.actor)})


class NotificationReadView(LifecycleView):
    """Handler for POST /api/notifications/{notification_id}/read"""

    permission_classes = [IsAuthenticated]

    def post(self, request: Request, notification_id: str) -> Response:
        notification = self.lifecycle.inbox.mark_read(self.actor, notification_id)
        return Response(NotificationSerializer(notification).data)


class NotificationReadAllView(LifecycleView):
    """Handler for POST /api/notifications/read-all"""

    permission_classes = [IsAuthenticated]

    def post(self, request: Request) -> Response:
        return Response({"updated": self.lifecycle.inbox.mark_all_read(self.actor)})
