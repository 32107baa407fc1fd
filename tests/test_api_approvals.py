"""
Tests: HTTP API for the approval workflow and request completion.
"""

import pytest

REQUESTS_URL = "/api/v1/requests"


@pytest.fixture()
def request_id(client, make_form):
    client.put("/api/v1/session", json={"currentUser": "Pat Contact"})
    res = client.post(REQUESTS_URL, json=make_form("accounting_procurement"))
    assert res.status_code == 201
    return res.get_json()["request"]["id"]


def _approvals(client, request_id):
    res = client.get(f"{REQUESTS_URL}/{request_id}/approvals")
    assert res.status_code == 200
    return res.get_json()


class TestApprovalsAPI:
    def test_list_in_workflow_order(self, client, request_id):
        body = _approvals(client, request_id)

        assert [a["step"] for a in body["items"]] == [
            "user_signature", "supervisor_approval",
            "accounting_director_approval", "security_admin_approval",
        ]
        assert body["items"][2]["approver_email"] == "dana.director@state.mn.us"
        assert body["next_pending_step"]["step"] == "user_signature"
        assert body["all_approved"] is False
        assert body["can_complete"] is False

    def test_list_unknown_request(self, client):
        assert client.get(f"{REQUESTS_URL}/missing/approvals").status_code == 404

    def test_signature_page(self, client, request_id):
        step = _approvals(client, request_id)["items"][1]
        res = client.get(f"{REQUESTS_URL}/{request_id}/approvals/{step['id']}")

        assert res.status_code == 200
        body = res.get_json()
        assert body["step"] == "supervisor_approval"
        assert body["review_link"].endswith("?mode=review")
        assert body["request"]["id"] == request_id

    def test_approve_then_conflict(self, client, request_id):
        step = _approvals(client, request_id)["next_pending_step"]
        url = f"{REQUESTS_URL}/{request_id}/approvals/{step['id']}/approve"

        res = client.post(url, json={"signatureData": "Jordan E.", "comments": "Looks right"})
        assert res.status_code == 200
        assert res.get_json()["status"] == "approved"
        assert _approvals(client, request_id)["next_pending_step"]["step"] == "supervisor_approval"

        again = client.post(url, json={"signatureData": "Jordan E."})
        assert again.status_code == 409

    def test_approve_without_signature(self, client, request_id):
        step = _approvals(client, request_id)["next_pending_step"]
        res = client.post(f"{REQUESTS_URL}/{request_id}/approvals/{step['id']}/approve", json={})
        assert res.status_code == 422

    def test_deny(self, client, request_id):
        step = _approvals(client, request_id)["next_pending_step"]
        url = f"{REQUESTS_URL}/{request_id}/approvals/{step['id']}/deny"

        assert client.post(url, json={}).status_code == 422
        res = client.post(url, json={"comments": "Wrong employee"})
        assert res.status_code == 200
        assert res.get_json()["status"] == "denied"

    def test_step_from_other_request(self, client, request_id, make_form):
        other = client.post(REQUESTS_URL, json=make_form()).get_json()["request"]["id"]
        foreign = _approvals(client, other)["items"][0]["id"]

        res = client.post(f"{REQUESTS_URL}/{request_id}/approvals/{foreign}/approve",
                          json={"signature_data": "x"})
        assert res.status_code == 404


class TestAutoApproveAndComplete:
    def test_auto_approve_requires_test_mode(self, client, request_id):
        res = client.post(f"{REQUESTS_URL}/{request_id}/approvals/auto-approve")
        assert res.status_code == 409

    def test_full_flow_to_completion(self, client, request_id):
        client.put("/api/v1/session", json={"testMode": True})

        res = client.post(f"{REQUESTS_URL}/{request_id}/approvals/auto-approve")
        assert res.get_json() == {"approved": 4}
        body = _approvals(client, request_id)
        assert body["all_approved"] is True
        assert body["can_complete"] is True
        assert body["next_pending_step"] is None

        complete_url = f"{REQUESTS_URL}/{request_id}/complete"
        assert client.post(complete_url, json={"completedBy": " "}).status_code == 422

        res = client.post(complete_url, json={"completedBy": "Casey Closer"})
        assert res.status_code == 200
        assert res.get_json()["status"] == "completed"
        assert res.get_json()["completed_by"] == "Casey Closer"

        assert client.post(complete_url, json={"completedBy": "Casey Closer"}).status_code == 409
        assert client.get(f"{REQUESTS_URL}/{request_id}/edit").status_code == 409

        listed = client.get(REQUESTS_URL).get_json()["items"][0]
        assert listed["badge"] == {"label": "Completed", "tone": "blue"}

    def test_complete_with_pending_steps(self, client, request_id):
        res = client.post(f"{REQUESTS_URL}/{request_id}/complete",
                          json={"completed_by": "Casey Closer"})
        assert res.status_code == 409


class TestHealth:
    def test_ready(self, client):
        assert client.get("/api/v1/health/ready").get_json() == {"status": "ok"}

    def test_live(self, client):
        res = client.get("/api/v1/health/live")
        assert res.status_code == 200
        assert res.get_json()["checks"]["database"]["status"] == "ok"

    def test_request_id_header(self, client):
        res = client.get("/api/v1/health/ready", headers={"X-Request-ID": "abc-123"})
        assert res.headers["X-Request-ID"] == "abc-123"
