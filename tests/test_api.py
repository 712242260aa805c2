"""Tests for the FastAPI API endpoints."""

import pytest
from fastapi.testclient import TestClient

from studio_agent.api.app import create_app
from studio_agent.audit.log import AuditLog
from studio_agent.config import AgentSettings
from studio_agent.execution.dispatcher import ToolDispatcher
from studio_agent.execution.tools import register_default_tools
from studio_agent.governance.policies import PolicyStore
from studio_agent.proposals.store import ProposalStore

IDS = {"studio_id": "studio_1", "user_id": "user_1"}


@pytest.fixture
def client():
    """Create a test client with fresh components."""
    dispatcher = ToolDispatcher(
        proposal_store=ProposalStore(ttl_seconds=60),
        audit_log=AuditLog(db_path=":memory:"),
    )
    register_default_tools(dispatcher)

    app = create_app(
        dispatcher=dispatcher,
        policy_store=PolicyStore(),
        settings=AgentSettings(audit_db_path=":memory:", log_level="WARNING"),
    )
    return TestClient(app)


def _set_propose_policy(client):
    response = client.put("/policies/studio_1", json={
        "mode": "propose",
        "authorities": ["READ_CLIENTS", "CREATE_LEAD", "SEND_INVOICE", "SEND_EMAIL"],
    })
    assert response.status_code == 200


def _send_invoice(client, session_id="s1"):
    return client.post("/agent/tool-calls", json={
        **IDS,
        "session_id": session_id,
        "tool": "send_invoice",
        "args": {"invoiceId": "123"},
    })


class TestToolAndPolicyEndpoints:
    def test_list_tools(self, client):
        response = client.get("/tools")
        assert response.status_code == 200
        tools = {t["name"]: t for t in response.json()}
        assert tools["send_invoice"]["authority"] == "SEND_INVOICE"
        assert tools["read_clients"]["writes"] is False

    def test_default_policy(self, client):
        response = client.get("/policies/studio_1")
        assert response.status_code == 200
        assert response.json()["mode"] == "auto_safe"

    def test_put_policy(self, client):
        _set_propose_policy(client)
        data = client.get("/policies/studio_1").json()
        assert data["mode"] == "propose"
        assert "SEND_INVOICE" in data["authorities"]

    def test_put_invalid_policy(self, client):
        response = client.put("/policies/studio_1", json={"mode": "yolo"})
        assert response.status_code == 422


class TestToolCallEndpoints:
    def test_denied_envelope(self, client):
        response = _send_invoice(client)
        assert response.status_code == 200
        data = response.json()
        assert set(data) == {"status", "message"}
        assert data["status"] == "denied"

    def test_success_envelope(self, client):
        response = client.post("/agent/tool-calls", json={
            **IDS, "session_id": "s1", "tool": "create_lead", "args": {"name": "Anna"},
        })
        data = response.json()
        assert data["status"] == "success"
        assert data["result"]["status"] == "created"
        assert "error" not in data

    def test_unknown_tool_envelope(self, client):
        response = client.post("/agent/tool-calls", json={
            **IDS, "session_id": "s1", "tool": "nope",
        })
        assert response.json() == {"status": "error", "error": "Tool 'nope' not found in registry"}

    def test_needs_approval_envelope(self, client):
        _set_propose_policy(client)
        data = _send_invoice(client).json()
        assert set(data) == {"status", "message", "proposed_actions"}
        assert data["status"] == "needs_approval"
        [action] = data["proposed_actions"]
        assert action["tool"] == "send_invoice"
        assert action["requires_approval"] is True
        assert action["risk_level"] == "med"
        assert len(action["id"]) == 12

    def test_turn(self, client):
        response = client.post("/agent/turns", json={
            **IDS,
            "session_id": "s1",
            "calls": [
                {"tool": "read_clients"},
                {"tool": "create_lead", "args": {"name": "Anna"}},
            ],
        })
        data = response.json()
        assert data["status"] == "success"
        assert len(data["result"]) == 2


class TestApprovalEndpoints:
    def test_pending_and_prompt(self, client):
        _set_propose_policy(client)
        _send_invoice(client)
        data = client.get("/agent/sessions/s1/proposals").json()
        assert len(data["proposals"]) == 1
        assert "• Send invoice #123 (med risk) - immediate" in data["prompt"]

    def test_no_pending(self, client):
        data = client.get("/agent/sessions/empty/proposals").json()
        assert data == {"proposals": [], "prompt": ""}

    def test_approve_then_404(self, client):
        _set_propose_policy(client)
        proposal_id = _send_invoice(client).json()["proposed_actions"][0]["id"]
        url = f"/agent/sessions/s1/proposals/{proposal_id}/approve"

        first = client.post(url, json={**IDS, "approved_by": "owner"})
        assert first.status_code == 200
        assert first.json()["status"] == "success"

        second = client.post(url, json=IDS)
        assert second.status_code == 404

    def test_deny(self, client):
        _set_propose_policy(client)
        proposal_id = _send_invoice(client).json()["proposed_actions"][0]["id"]
        response = client.post(
            f"/agent/sessions/s1/proposals/{proposal_id}/deny",
            json={**IDS, "reason": "no budget"},
        )
        assert response.json() == {"status": "denied", "message": "no budget"}
        assert client.get("/agent/sessions/s1/proposals").json()["proposals"] == []

    def test_deny_unknown(self, client):
        response = client.post(
            "/agent/sessions/s1/proposals/000000000000/deny", json=IDS
        )
        assert response.status_code == 404


class TestAuditEndpoints:
    def test_audit_trail(self, client):
        _set_propose_policy(client)
        proposal_id = _send_invoice(client).json()["proposed_actions"][0]["id"]
        client.post(f"/agent/sessions/s1/proposals/{proposal_id}/approve", json=IDS)

        entries = client.get("/audit", params={"studio_id": "studio_1"}).json()
        assert [e["status"] for e in entries] == ["proposed", "approved", "executed"]

    def test_audit_other_studio_empty(self, client):
        _send_invoice(client)
        assert client.get("/audit", params={"studio_id": "studio_2"}).json() == []
        assert len(client.get("/audit").json()) == 1
