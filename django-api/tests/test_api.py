"""Integration tests for the HTTP API.

These validate routing, status codes and the error body contract.
Run with: pytest tests/test_api.py -v
"""

from uuid import uuid4

import pytest
from rest_framework.test import APIClient

from volunteering import models


def error_code(response) -> str:
    return response.json()["error"]["code"]


@pytest.mark.django_db
class TestEventList:
    """Tests for GET/POST /api/events"""

    def test_list_events_returns_paginated_results(
        self, api_client: APIClient, make_approved_event
    ):
        """Given approved events exist, returns a page of them."""
        for n in range(3):
            make_approved_event(title=f"Shift {n}")

        response = api_client.get("/api/events", {"page_size": 2})

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 3
        assert body["page_size"] == 2
        assert body["has_next"] is True
        assert body["results"][0]["title"] == "Shift 2"
        assert body["results"][0]["status"] == "APPROVED"
        assert body["results"][0]["max_participants"] == 10

    def test_list_events_empty_catalog(self, api_client: APIClient, db):
        """Given no events, returns empty list."""
        response = api_client.get("/api/events")

        assert response.status_code == 200
        assert response.json()["results"] == []

    def test_unknown_status_filter(self, api_client: APIClient, db):
        response = api_client.get("/api/events", {"status": "OPEN"})

        assert response.status_code == 400
        assert error_code(response) == "VALIDATION_ERROR"

    def test_create_event_as_manager(self, api_client: APIClient, manager):
        api_client.force_authenticate(manager)

        response = api_client.post(
            "/api/events",
            {
                "title": "Library reading hour",
                "starts_at": "2031-03-01T10:00:00Z",
                "ends_at": "2031-03-01T12:00:00Z",
                "max_participants": 4,
            },
            format="json",
        )

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "DRAFT"
        assert body["current_participants"] == 0
        assert body["creator_id"] == manager.pk

    def test_create_event_as_volunteer(self, api_client: APIClient, volunteer):
        api_client.force_authenticate(volunteer)

        response = api_client.post(
            "/api/events",
            {
                "title": "Library reading hour",
                "starts_at": "2031-03-01T10:00:00Z",
                "ends_at": "2031-03-01T12:00:00Z",
                "max_participants": 4,
            },
            format="json",
        )

        assert response.status_code == 403
        assert error_code(response) == "UNAUTHORIZED"

    def test_create_event_requires_authentication(self, api_client: APIClient, db):
        response = api_client.post("/api/events", {}, format="json")

        assert response.status_code == 403

    def test_create_event_rejects_zero_capacity(self, api_client: APIClient, manager):
        api_client.force_authenticate(manager)

        response = api_client.post(
            "/api/events",
            {
                "title": "Library reading hour",
                "starts_at": "2031-03-01T10:00:00Z",
                "ends_at": "2031-03-01T12:00:00Z",
                "max_participants": 0,
            },
            format="json",
        )

        assert response.status_code == 400
        assert "max_participants" in response.json()


@pytest.mark.django_db
class TestEventDetail:
    """Tests for GET/PATCH/DELETE /api/events/{id}"""

    def test_get_event_returns_details(self, api_client: APIClient, approved_event):
        """Given event exists, returns event details."""
        response = api_client.get(f"/api/events/{approved_event.id}")

        assert response.status_code == 200
        assert response.json()["id"] == str(approved_event.id)

    def test_get_event_not_found(self, api_client: APIClient, db):
        """Given event does not exist, returns 404."""
        response = api_client.get(f"/api/events/{uuid4()}")

        assert response.status_code == 404
        assert response.json() == {
            "error": {"code": "EVENT_NOT_FOUND", "message": "Event not found"}
        }

    def test_get_event_invalid_id_format(self, api_client: APIClient, db):
        """Given invalid UUID, returns 400."""
        response = api_client.get("/api/events/not-a-uuid")

        assert response.status_code == 400
        assert error_code(response) == "INVALID_ID"

    def test_draft_is_hidden_from_public(
        self, api_client: APIClient, lifecycle, manager_principal, make_draft
    ):
        draft = lifecycle.coordinator.create_event(manager_principal, make_draft())

        response = api_client.get(f"/api/events/{draft.id}")

        assert response.status_code == 404

    def test_patch_draft(
        self, api_client: APIClient, lifecycle, manager, manager_principal, make_draft
    ):
        draft = lifecycle.coordinator.create_event(manager_principal, make_draft())
        api_client.force_authenticate(manager)

        response = api_client.patch(
            f"/api/events/{draft.id}", {"location": "Town hall"}, format="json"
        )

        assert response.status_code == 200
        assert response.json()["location"] == "Town hall"

    def test_delete_draft(
        self, api_client: APIClient, lifecycle, manager, manager_principal, make_draft
    ):
        draft = lifecycle.coordinator.create_event(manager_principal, make_draft())
        api_client.force_authenticate(manager)

        response = api_client.delete(f"/api/events/{draft.id}")

        assert response.status_code == 204
        assert api_client.get(f"/api/events/{draft.id}").status_code == 404

    def test_delete_approved_event_as_owner(
        self, api_client: APIClient, approved_event, manager
    ):
        api_client.force_authenticate(manager)

        response = api_client.delete(f"/api/events/{approved_event.id}")

        assert response.status_code == 403
        assert error_code(response) == "UNAUTHORIZED"

    def test_delete_event_with_registrations(
        self, api_client: APIClient, lifecycle, approved_event, admin, volunteer_principal
    ):
        lifecycle.coordinator.register_for_event(volunteer_principal, str(approved_event.id))
        api_client.force_authenticate(admin)

        response = api_client.delete(f"/api/events/{approved_event.id}")

        assert response.status_code == 409
        assert error_code(response) == "INVALID_STATE"

    def test_delete_requires_authentication(self, api_client: APIClient, approved_event):
        response = api_client.delete(f"/api/events/{approved_event.id}")

        assert response.status_code == 403
        assert models.Event.objects.filter(pk=approved_event.id.value).exists()


@pytest.mark.django_db
class TestEventActions:
    """Tests for POST /api/events/{id}/{action}"""

    def test_submit_and_approve(
        self, api_client: APIClient, lifecycle, manager, admin, manager_principal, make_draft
    ):
        draft = lifecycle.coordinator.create_event(manager_principal, make_draft())

        api_client.force_authenticate(manager)
        submitted = api_client.post(
            f"/api/events/{draft.id}/submit", {"note": "Ready"}, format="json"
        )
        api_client.force_authenticate(admin)
        approved = api_client.post(f"/api/events/{draft.id}/approve")

        assert submitted.status_code == 200
        assert submitted.json()["status"] == "PENDING_APPROVAL"
        assert submitted.json()["submission_note"] == "Ready"
        assert approved.status_code == 200
        assert approved.json()["status"] == "APPROVED"

    def test_submit_twice_is_a_state_error(
        self, api_client: APIClient, lifecycle, manager, manager_principal, make_draft
    ):
        draft = lifecycle.coordinator.create_event(manager_principal, make_draft())
        lifecycle.coordinator.submit_event(manager_principal, str(draft.id))
        api_client.force_authenticate(manager)

        response = api_client.post(f"/api/events/{draft.id}/submit")

        assert response.status_code == 409
        assert error_code(response) == "INVALID_STATE"

    def test_reject_requires_reason(
        self, api_client: APIClient, lifecycle, admin, manager_principal, make_draft
    ):
        draft = lifecycle.coordinator.create_event(manager_principal, make_draft())
        lifecycle.coordinator.submit_event(manager_principal, str(draft.id))
        api_client.force_authenticate(admin)

        response = api_client.post(f"/api/events/{draft.id}/reject", {}, format="json")

        assert response.status_code == 400
        assert error_code(response) == "VALIDATION_ERROR"

    def test_cancel_returns_cascade_report(
        self, api_client: APIClient, lifecycle, approved_event, manager, volunteer_principal
    ):
        registration = lifecycle.coordinator.register_for_event(
            volunteer_principal, str(approved_event.id)
        )
        api_client.force_authenticate(manager)

        response = api_client.post(
            f"/api/events/{approved_event.id}/cancel", {"reason": "Flooding"}, format="json"
        )

        assert response.status_code == 200
        body = response.json()
        assert body["event"]["status"] == "CANCELLED"
        assert [r["id"] for r in body["cancelled_registrations"]] == [str(registration.id)]
        assert body["cancelled_registrations"][0]["status"] == "CANCELLED"
        assert body["failures"] == []

    def test_complete_before_end(self, api_client: APIClient, approved_event, manager):
        api_client.force_authenticate(manager)

        response = api_client.post(f"/api/events/{approved_event.id}/complete")

        assert response.status_code == 409


@pytest.mark.django_db
class TestRegistrations:
    """Tests for the registration routes."""

    def test_register_is_idempotent(self, api_client: APIClient, approved_event, volunteer):
        api_client.force_authenticate(volunteer)

        first = api_client.post(f"/api/events/{approved_event.id}/registrations")
        second = api_client.post(f"/api/events/{approved_event.id}/registrations")

        assert first.status_code == 201
        assert first.json()["status"] == "PENDING"
        assert second.json()["id"] == first.json()["id"]
        assert models.Registration.objects.count() == 1

    def test_approve_when_full(
        self, api_client: APIClient, lifecycle, make_approved_event, make_volunteer, manager
    ):
        event = make_approved_event(max_participants=1)
        ids = []
        for _ in range(2):
            api_client.force_authenticate(make_volunteer())
            ids.append(api_client.post(f"/api/events/{event.id}/registrations").json()["id"])
        api_client.force_authenticate(manager)

        first = api_client.post(f"/api/registrations/{ids[0]}/approve")
        second = api_client.post(f"/api/registrations/{ids[1]}/approve")

        assert first.status_code == 200
        assert first.json()["status"] == "APPROVED"
        assert second.status_code == 422
        assert error_code(second) == "CAPACITY_EXCEEDED"

    def test_list_event_registrations_filtered(
        self, api_client: APIClient, approved_event, volunteer, manager
    ):
        api_client.force_authenticate(volunteer)
        api_client.post(f"/api/events/{approved_event.id}/registrations")
        api_client.force_authenticate(manager)

        pending = api_client.get(
            f"/api/events/{approved_event.id}/registrations", {"status": "pending"}
        )
        approved = api_client.get(
            f"/api/events/{approved_event.id}/registrations", {"status": "APPROVED"}
        )

        assert pending.json()["count"] == 1
        assert approved.json()["count"] == 0

    def test_volunteer_cannot_list_event_registrations(
        self, api_client: APIClient, approved_event, volunteer
    ):
        api_client.force_authenticate(volunteer)

        response = api_client.get(f"/api/events/{approved_event.id}/registrations")

        assert response.status_code == 403

    def test_my_registrations_and_detail(self, api_client: APIClient, approved_event, volunteer):
        api_client.force_authenticate(volunteer)
        created = api_client.post(f"/api/events/{approved_event.id}/registrations").json()

        listing = api_client.get("/api/registrations")
        detail = api_client.get(f"/api/registrations/{created['id']}")

        assert [r["id"] for r in listing.json()["results"]] == [created["id"]]
        assert detail.json()["event_id"] == str(approved_event.id)

    def test_cancel_own_registration(self, api_client: APIClient, approved_event, volunteer):
        api_client.force_authenticate(volunteer)
        created = api_client.post(f"/api/events/{approved_event.id}/registrations").json()

        response = api_client.post(f"/api/registrations/{created['id']}/cancel")

        assert response.status_code == 200
        assert response.json()["status"] == "CANCELLED"

    def test_attend_before_event_ends(
        self, api_client: APIClient, approved_event, volunteer, manager
    ):
        api_client.force_authenticate(volunteer)
        created = api_client.post(f"/api/events/{approved_event.id}/registrations").json()
        api_client.force_authenticate(manager)
        api_client.post(f"/api/registrations/{created['id']}/approve")

        response = api_client.post(f"/api/registrations/{created['id']}/attend")

        assert response.status_code == 409
        assert error_code(response) == "INVALID_STATE"


@pytest.mark.django_db
class TestNotifications:
    """Tests for the notification inbox routes."""

    def test_inbox_routes(
        self,
        api_client: APIClient,
        approved_event,
        volunteer,
        manager,
        django_capture_on_commit_callbacks,
    ):
        api_client.force_authenticate(volunteer)
        with django_capture_on_commit_callbacks(execute=True):
            api_client.post(f"/api/events/{approved_event.id}/registrations")
        api_client.force_authenticate(manager)

        count = api_client.get("/api/notifications/unread-count")
        listing = api_client.get("/api/notifications", {"unread_only": "true"})
        notification_id = listing.json()["results"][0]["id"]
        read = api_client.post(f"/api/notifications/{notification_id}/read")
        read_all = api_client.post("/api/notifications/read-all")

        assert count.json() == {"count": 1}
        assert listing.json()["results"][0]["type"] == "NEW_REGISTRATION"
        assert read.json()["is_read"] is True
        assert read_all.json() == {"updated": 0}

    def test_read_unknown_notification(self, api_client: APIClient, volunteer):
        api_client.force_authenticate(volunteer)

        response = api_client.post(f"/api/notifications/{uuid4()}/read")

        assert response.status_code == 404
        assert error_code(response) == "NOTIFICATION_NOT_FOUND"
