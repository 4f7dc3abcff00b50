"""API-level tests for the /work-items and /notifications endpoints."""

import pytest
from fastapi.testclient import TestClient

from delivery_workflow.api import app
from delivery_workflow.db.base import get_db

ASSIGNEE_HEADERS = {"X-Principal-Id": "U1", "X-Principal-Role": "dev"}
OPS_HEADERS = {"X-Principal-Id": "OPS1", "X-Principal-Role": "devops"}
REVIEWER_HEADERS = {"X-Principal-Id": "U2", "X-Principal-Role": "reviewer"}
QA_HEADERS = {"X-Principal-Id": "QA1", "X-Principal-Role": "qa"}
OUTSIDER_HEADERS = {"X-Principal-Id": "U3", "X-Principal-Role": "dev"}


@pytest.fixture
def client(session_factory):
    """Test client bound to the per-test database."""

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_work_item_payload(**overrides) -> dict:
    """Create a valid registration payload with optional overrides."""
    defaults = {
        "kind": "module",
        "title": "Payments module",
        "assignee_id": "U1",
        "operations_contact_id": "OPS1",
        "reviewer_id": "U2",
        "qa_id": "QA1",
    }
    defaults.update(overrides)
    return defaults


@pytest.fixture
def item_id(client) -> str:
    response = client.post(
        "/work-items", json=make_work_item_payload(), headers=OPS_HEADERS
    )
    assert response.status_code == 201
    return response.json()["work_item"]["id"]


def submit(client, item_id, headers=ASSIGNEE_HEADERS, **payload):
    body = {"artifacts": ["files/payments-1.0.zip"], "note": "ready"}
    body.update(payload)
    return client.post(f"/work-items/{item_id}/deliveries", json=body, headers=headers)


def decide(client, item_id, decision, note=None, headers=REVIEWER_HEADERS):
    return client.post(
        f"/work-items/{item_id}/approval",
        json={"decision": decision, "note": note},
        headers=headers,
    )


class TestRegistration:
    def test_register(self, client):
        response = client.post(
            "/work-items", json=make_work_item_payload(), headers=OPS_HEADERS
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "success"
        item = data["work_item"]
        assert item["delivery_status"] == "none"
        assert item["lifecycle_status"] == "planning"
        assert item["history"] == []
        assert item["version"] == 1

    def test_delivery_fields_not_accepted(self, client):
        response = client.post(
            "/work-items",
            json=make_work_item_payload(delivery_status="accepted"),
            headers=OPS_HEADERS,
        )
        assert response.status_code == 422

    def test_engine_owned_lifecycle_rejected(self, client):
        response = client.post(
            "/work-items",
            json=make_work_item_payload(lifecycle_status="delivered"),
            headers=OPS_HEADERS,
        )
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "INVALID_INPUT"

    def test_list_filters(self, client, item_id):
        client.post(
            "/work-items",
            json=make_work_item_payload(kind="task", title="Write docs"),
            headers=OPS_HEADERS,
        )

        response = client.get("/work-items", params={"kind": "task"}, headers=OPS_HEADERS)
        assert response.status_code == 200
        assert [i["title"] for i in response.json()] == ["Write docs"]

        response = client.get(
            "/work-items", params={"delivery_status": "none"}, headers=OPS_HEADERS
        )
        assert len(response.json()) == 2


class TestIdentity:
    def test_missing_principal(self, client, item_id):
        response = client.get(f"/work-items/{item_id}")
        assert response.status_code == 401

    def test_unknown_role(self, client, item_id):
        response = client.get(
            f"/work-items/{item_id}",
            headers={"X-Principal-Id": "U1", "X-Principal-Role": "wizard"},
        )
        assert response.status_code == 401

    def test_unknown_role_message(self, client, item_id):
        response = client.get(
            f"/work-items/{item_id}",
            headers={"X-Principal-Id": "U1", "X-Principal-Role": "wizard"},
        )
        assert response.json()["detail"] == "Unknown principal role 'wizard'"

    def test_overlong_principal_id(self, client, item_id):
        response = client.get(
            f"/work-items/{item_id}",
            headers={"X-Principal-Id": "U" * 129, "X-Principal-Role": "dev"},
        )
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid principal identity"

    def test_role_is_case_insensitive(self, client, item_id):
        response = client.get(
            f"/work-items/{item_id}",
            headers={"X-Principal-Id": "U1", "X-Principal-Role": "DEV"},
        )
        assert response.status_code == 200


class TestDeliveryFlow:
    def test_submit_then_accept(self, client, item_id):
        response = submit(client, item_id)
        assert response.status_code == 200
        assert response.json()["work_item"]["delivery_status"] == "pending"

        response = decide(client, item_id, "accepted", note="Looks good")
        assert response.status_code == 200
        item = response.json()["work_item"]
        assert item["delivery_status"] == "accepted"
        assert item["approved_by"] == "U2"
        assert item["lifecycle_status"] == "delivered"

        history = client.get(f"/work-items/{item_id}/history", headers=QA_HEADERS).json()
        assert [(h["from_status"], h["to_status"]) for h in history] == [
            ("none", "pending"),
            ("pending", "accepted"),
        ]

        page = client.get(
            f"/work-items/{item_id}/history",
            params={"limit": 1, "offset": 1},
            headers=QA_HEADERS,
        ).json()
        assert [h["action_type"] for h in page] == ["approved"]

    def test_reject_then_resubmit(self, client, item_id):
        submit(client, item_id)
        response = decide(client, item_id, "rejected", note="Missing migration")
        assert response.json()["work_item"]["delivery_status"] == "rejected"

        response = submit(client, item_id, headers=OPS_HEADERS, artifacts=["v2.zip"])
        assert response.status_code == 200
        assert response.json()["work_item"]["delivery_status"] == "pending"

    def test_outsider_cannot_submit(self, client, item_id):
        response = submit(client, item_id, headers=OUTSIDER_HEADERS)

        assert response.status_code == 403
        detail = response.json()["detail"]
        assert detail["code"] == "FORBIDDEN"
        assert detail["reason"] == "NOT_ASSIGNED"
        assert detail["retryable"] is False

    def test_assignee_cannot_approve(self, client, item_id):
        submit(client, item_id)
        response = decide(client, item_id, "accepted", headers=ASSIGNEE_HEADERS)
        assert response.status_code == 403
        assert response.json()["detail"]["reason"] == "NOT_REVIEWER"

    def test_approve_without_pending_delivery(self, client, item_id):
        response = decide(client, item_id, "accepted")
        assert response.status_code == 403
        assert response.json()["detail"]["reason"] == "NOT_PENDING"

    def test_submit_after_accept(self, client, item_id):
        submit(client, item_id)
        decide(client, item_id, "accepted")

        response = submit(client, item_id)
        assert response.status_code == 403
        assert response.json()["detail"]["reason"] == "ALREADY_ACCEPTED"

    def test_empty_artifacts(self, client, item_id):
        response = submit(client, item_id, artifacts=[])
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "INVALID_INPUT"

    def test_rejection_without_note(self, client, item_id):
        submit(client, item_id)
        response = decide(client, item_id, "rejected")
        assert response.status_code == 400

    def test_unknown_item(self, client):
        response = submit(client, "missing")
        assert response.status_code == 404
        detail = response.json()["detail"]
        assert detail["code"] == "NOT_FOUND"
        assert detail["work_item_id"] == "missing"

    def test_invalid_decision(self, client, item_id):
        submit(client, item_id)
        response = decide(client, item_id, "maybe")
        assert response.status_code == 422


class TestPermissions:
    def test_assignee_permissions(self, client, item_id):
        response = client.get(f"/work-items/{item_id}/permissions", headers=ASSIGNEE_HEADERS)

        assert response.status_code == 200
        data = response.json()
        assert data["can_submit_delivery"] is True
        assert data["can_approve_delivery"] is False
        assert data["reasons"] == {"submit-delivery": None, "approve": "NOT_REVIEWER"}

    def test_reviewer_permissions_when_pending(self, client, item_id):
        submit(client, item_id)
        data = client.get(
            f"/work-items/{item_id}/permissions", headers=REVIEWER_HEADERS
        ).json()
        assert data["can_submit_delivery"] is False
        assert data["can_approve_delivery"] is True
        assert data["reasons"]["submit-delivery"] == "NOT_ASSIGNED"


class TestLifecycleStatus:
    def test_update_status(self, client, item_id):
        response = client.patch(
            f"/work-items/{item_id}/status",
            json={"status": "in-progress"},
            headers=ASSIGNEE_HEADERS,
        )
        assert response.status_code == 200
        item = response.json()["work_item"]
        assert item["lifecycle_status"] == "in-progress"
        assert item["history"][-1]["action_type"] == "status-changed"

    def test_reviewer_cannot_update_status(self, client, item_id):
        response = client.patch(
            f"/work-items/{item_id}/status",
            json={"status": "testing"},
            headers=REVIEWER_HEADERS,
        )
        assert response.status_code == 403


class TestNotificationsApi:
    def test_inbox_flow(self, client, item_id):
        submit(client, item_id)

        response = client.get("/notifications", headers=REVIEWER_HEADERS)
        assert response.status_code == 200
        data = response.json()
        assert data["unread_count"] == 1
        notification = data["notifications"][0]
        assert notification["type"] == "delivery-submitted"
        assert notification["work_item_id"] == item_id

        response = client.put(
            f"/notifications/{notification['id']}/read", headers=REVIEWER_HEADERS
        )
        assert response.status_code == 200
        assert response.json()["notification"]["is_read"] is True

        count = client.get("/notifications/unread-count", headers=REVIEWER_HEADERS).json()
        assert count == {"unread_count": 0}

    def test_cannot_read_someone_elses(self, client, item_id):
        submit(client, item_id)
        notification = client.get("/notifications", headers=REVIEWER_HEADERS).json()[
            "notifications"
        ][0]

        response = client.put(f"/notifications/{notification['id']}/read", headers=QA_HEADERS)
        assert response.status_code == 404

    def test_mark_all_read(self, client, item_id):
        submit(client, item_id)
        decide(client, item_id, "rejected", note="Missing migration")

        response = client.put("/notifications/mark-all-read", headers=ASSIGNEE_HEADERS)
        assert response.json() == {"status": "success", "updated": 1}


def test_healthz(client):
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
