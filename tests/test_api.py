"""HTTP tests through the FastAPI application on a temporary SQLite database."""

import re
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from helpdesk.config import Settings
from helpdesk.main import create_app

ROOT = Path(__file__).parent.parent
FIXTURES = Path(__file__).parent / "fixtures"

STUDENT = {"X-User-Id": "student-1", "X-User-Role": "student"}
STAFF = {"X-User-Id": "staff-1", "X-User-Role": "staff", "X-User-Department": "Library"}
TECH = {"X-User-Id": "tech-1", "X-User-Role": "technician", "X-User-Department": "ICT"}
ADMIN = {"X-User-Id": "admin-1", "X-User-Role": "admin", "X-User-Department": "ICT"}

NEW_TICKET = {
    "title": "Projector not working",
    "description": "Lecture theatre projector shows no signal.",
    "category": "hardware",
    "priority": "low",
    "location": {"building": "Science", "room": "LT1"},
}


@pytest.fixture
def client(tmp_path):
    settings = Settings(
        environment="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'api.db'}",
        sla_alerts_enabled=False,
        sla_config_path=ROOT / "sla_config.yaml",
        identity_directory_path=FIXTURES / "users.yaml",
    )
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture
def ticket_code(client):
    response = client.post("/tickets", json=NEW_TICKET, headers=STUDENT)
    assert response.status_code == 201
    return response.json()["ticket"]["ticket_code"]


class TestCreateTicket:
    """POST /tickets"""

    def test_created_with_deadlines(self, client):
        response = client.post("/tickets", json=NEW_TICKET, headers=STUDENT)

        assert response.status_code == 201
        body = response.json()
        ticket = body["ticket"]
        assert re.fullmatch(r"TKT-\d{6}-0001", ticket["ticket_code"])
        assert ticket["status"] == "open"
        assert ticket["created_by"] == "student-1"
        assert ticket["sla_response_deadline"] is not None
        assert ticket["sla_state"] == "normal"
        assert [c["action"] for c in body["changes"]] == ["CREATE"]

    def test_codes_are_sequential(self, client):
        first = client.post("/tickets", json=NEW_TICKET, headers=STUDENT).json()
        second = client.post("/tickets", json=NEW_TICKET, headers=STUDENT).json()

        assert first["ticket"]["ticket_code"].endswith("-0001")
        assert second["ticket"]["ticket_code"].endswith("-0002")

    def test_missing_identity_is_401(self, client):
        response = client.post("/tickets", json=NEW_TICKET)

        assert response.status_code == 401
        assert response.json()["error_code"] == "AUTHENTICATION_REQUIRED"

    def test_unknown_role_is_401(self, client):
        response = client.post(
            "/tickets", json=NEW_TICKET, headers={"X-User-Id": "x", "X-User-Role": "dean"}
        )

        assert response.status_code == 401

    def test_invalid_body_is_400(self, client):
        response = client.post("/tickets", json={**NEW_TICKET, "title": "Hi"}, headers=STUDENT)

        assert response.status_code == 400
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    def test_unknown_priority_is_400(self, client):
        response = client.post("/tickets", json={**NEW_TICKET, "priority": "urgent"}, headers=STUDENT)

        assert response.status_code == 400


class TestReadTickets:
    """GET /tickets and GET /tickets/{code}"""

    def test_get_ticket(self, client, ticket_code):
        response = client.get(f"/tickets/{ticket_code}", headers=TECH)

        assert response.status_code == 200
        assert response.json()["ticket_code"] == ticket_code

    def test_unknown_ticket_is_404(self, client):
        response = client.get("/tickets/TKT-202001-0001", headers=ADMIN)

        assert response.status_code == 404
        assert response.json()["error_code"] == "NOT_FOUND"

    def test_other_student_is_403(self, client, ticket_code):
        response = client.get(
            f"/tickets/{ticket_code}", headers={"X-User-Id": "student-2", "X-User-Role": "student"}
        )

        assert response.status_code == 403
        assert response.json()["error_code"] == "PERMISSION_DENIED"

    def test_list_is_scoped_and_paginated(self, client, ticket_code):
        client.post("/tickets", json=NEW_TICKET, headers=TECH)

        student_view = client.get("/tickets", headers=STUDENT).json()
        admin_view = client.get("/tickets", params={"limit": 1}, headers=ADMIN).json()

        assert [t["ticket_code"] for t in student_view["tickets"]] == [ticket_code]
        assert admin_view["pagination"] == {"page": 1, "limit": 1, "total": 2, "pages": 2}

    def test_list_filters(self, client, ticket_code):
        response = client.get(
            "/tickets", params={"status": "open", "priority": "low", "search": "projector"}, headers=ADMIN
        )

        assert response.json()["pagination"]["total"] == 1

    def test_list_rejects_bad_limit(self, client):
        response = client.get("/tickets", params={"limit": 500}, headers=ADMIN)

        assert response.status_code == 400


class TestLifecycle:
    """Assignment, comments, resolution and rating over HTTP."""

    def test_assign_moves_to_in_progress(self, client, ticket_code):
        response = client.post(
            f"/tickets/{ticket_code}/assign", json={"handler_id": "tech-1"}, headers=ADMIN
        )

        assert response.status_code == 200
        body = response.json()
        assert body["ticket"]["status"] == "in-progress"
        assert {c["field"] for c in body["changes"]} == {"assigned_to", "status"}

    def test_assign_to_student_is_404(self, client, ticket_code):
        response = client.post(
            f"/tickets/{ticket_code}/assign", json={"handler_id": "student-1"}, headers=ADMIN
        )

        assert response.status_code == 404
        assert response.json()["error_code"] == "HANDLER_NOT_FOUND"

    def test_student_cannot_assign(self, client, ticket_code):
        response = client.post(
            f"/tickets/{ticket_code}/assign", json={"handler_id": "tech-1"}, headers=STUDENT
        )

        assert response.status_code == 403

    def test_invalid_transition_is_409(self, client, ticket_code):
        client.patch(f"/tickets/{ticket_code}", json={"status": "closed"}, headers=TECH)
        response = client.patch(f"/tickets/{ticket_code}", json={"status": "pending"}, headers=TECH)

        assert response.status_code == 409
        body = response.json()
        assert body["error_code"] == "INVALID_TRANSITION"
        assert body["retryable"] is False
        assert set(body) == {"detail", "error_code", "details", "retryable", "correlation_id", "timestamp"}

    def test_patch_cannot_resolve(self, client, ticket_code):
        client.post(f"/tickets/{ticket_code}/assign", json={"handler_id": "tech-1"}, headers=ADMIN)

        response = client.patch(f"/tickets/{ticket_code}", json={"status": "resolved"}, headers=TECH)

        assert response.status_code == 400
        assert response.json()["error_code"] == "VALIDATION_ERROR"
        assert client.get(f"/tickets/{ticket_code}", headers=TECH).json()["resolved_at"] is None

    def test_unknown_status_is_400(self, client, ticket_code):
        response = client.patch(f"/tickets/{ticket_code}", json={"status": "parked"}, headers=TECH)

        assert response.status_code == 400

    def test_full_lifecycle(self, client, ticket_code):
        client.post(f"/tickets/{ticket_code}/assign", json={"handler_id": "tech-1"}, headers=ADMIN)
        client.post(f"/tickets/{ticket_code}/comments", json={"message": "On my way"}, headers=TECH)
        resolved = client.post(
            f"/tickets/{ticket_code}/resolve", json={"summary": "Replaced HDMI cable"}, headers=TECH
        )
        rated = client.post(f"/tickets/{ticket_code}/rating", json={"rating": 5}, headers=STUDENT)

        assert resolved.status_code == 200
        assert resolved.json()["ticket"]["status"] == "resolved"
        assert rated.json()["ticket"]["resolution"]["satisfaction"]["rating"] == 5

        sla = client.get(f"/tickets/{ticket_code}/sla", headers=STUDENT).json()
        assert sla["state"] == "completed"
        assert sla["first_response_at"] is not None
        assert sla["breached"] is False

    def test_rating_open_ticket_is_400(self, client, ticket_code):
        response = client.post(f"/tickets/{ticket_code}/rating", json={"rating": 5}, headers=STUDENT)

        assert response.status_code == 400

    def test_escalation_lifts_priority(self, client, ticket_code):
        client.post(f"/tickets/{ticket_code}/escalate", json={"reason": "Exam in an hour"}, headers=TECH)
        response = client.post(
            f"/tickets/{ticket_code}/escalate", json={"reason": "Still broken"}, headers=TECH
        )

        assert response.status_code == 200
        ticket = response.json()["ticket"]
        assert ticket["escalation_level"] == 3
        assert ticket["priority"] == "critical"

    def test_attachment(self, client, ticket_code):
        response = client.post(
            f"/tickets/{ticket_code}/attachments",
            json={"name": "screen.png", "reference": "blob://screen.png", "size": 2048, "content_type": "image/png"},
            headers=STUDENT,
        )

        assert response.status_code == 201
        assert response.json()["changes"][0]["action"] == "ADD"


class TestInternalComments:
    """Internal notes are only visible to support staff."""

    @pytest.fixture
    def commented(self, client, ticket_code):
        client.post(
            f"/tickets/{ticket_code}/comments",
            json={"message": "Check the spare cable store", "is_internal": True},
            headers=TECH,
        )
        client.post(f"/tickets/{ticket_code}/comments", json={"message": "Any update?"}, headers=STUDENT)
        return ticket_code

    def test_requester_sees_public_comments_only(self, client, commented):
        ticket = client.get(f"/tickets/{commented}", headers=STUDENT).json()

        assert [c["message"] for c in ticket["comments"]] == ["Any update?"]

    def test_support_sees_everything(self, client, commented):
        ticket = client.get(f"/tickets/{commented}", headers=TECH).json()

        assert len(ticket["comments"]) == 2

    def test_history_hides_internal_entries_from_requester(self, client, commented):
        student_history = client.get(f"/tickets/{commented}/history", headers=STUDENT).json()
        tech_history = client.get(f"/tickets/{commented}/history", headers=TECH).json()

        assert len(tech_history) == len(student_history) + 1

    def test_student_cannot_write_internal_comment(self, client, ticket_code):
        response = client.post(
            f"/tickets/{ticket_code}/comments",
            json={"message": "sneaky", "is_internal": True},
            headers=STUDENT,
        )

        assert response.status_code == 403


class TestDashboardAndPolicy:
    """GET /dashboard/stats and GET /sla/policy"""

    def test_dashboard_counts(self, client, ticket_code):
        response = client.get("/dashboard/stats", headers=ADMIN)

        assert response.status_code == 200
        stats = response.json()
        assert stats["total"] == 1
        assert stats["open"] == 1
        assert stats["by_priority"]["low"] == 1
        assert stats["compliance_rate"] == 0.0

    def test_staff_dashboard_excludes_other_departments(self, client, ticket_code):
        stats = client.get("/dashboard/stats", headers=STAFF).json()

        assert stats["total"] == 0

    def test_policy_needs_no_identity(self, client):
        response = client.get("/sla/policy")

        assert response.status_code == 200
        targets = {t["priority"]: t for t in response.json()["targets"]}
        assert targets["critical"]["response_minutes"] == 30
        assert targets["low"]["resolution_minutes"] == 2880


class TestServiceEndpoints:
    """Health and root."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["checks"] == {"database": "connected", "sla_scheduler": "stopped"}

    def test_correlation_id_is_echoed(self, client):
        response = client.get("/", headers={"X-Correlation-ID": "req-42"})

        assert response.headers["X-Correlation-ID"] == "req-42"

    def test_error_carries_correlation_id(self, client):
        response = client.get("/tickets/TKT-202001-0001", headers={**ADMIN, "X-Correlation-ID": "req-7"})

        assert response.json()["correlation_id"] == "req-7"
