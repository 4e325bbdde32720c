# tests/zap_server/routers/test_trigger_routes.py
"""Test the webhook receiver and the execute endpoint."""
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from zap_server.main import app
from zap_server.services.registry import delete_zap
from zap_server.services.runs import count_zap_runs, get_zap_run

EMAIL = {"type": "EMAIL", "metadata": {"to": "a@example.com", "body": "hello"}}
UNKNOWN = {"type": "FAX", "metadata": {}}


@pytest.fixture
def client(db):
    return TestClient(app)


class TestWebhookReceiver:
    """Test POST /webhook/{webhook_id}."""

    def test_unknown_webhook_is_404_without_run(self, client):
        response = client.post("/webhook/does-not-exist", json={"a": 1})

        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Webhook not found or inactive"}
        assert count_zap_runs() == 0

    def test_deleted_zap_webhook_is_404(self, client, make_zap):
        zap = make_zap(trigger_type="webhook", trigger_metadata={"webhookId": "hook-1"}, actions=[EMAIL])
        delete_zap(zap.id)

        assert client.post("/webhook/hook-1", json={}).status_code == 404
        assert count_zap_runs() == 0

    def test_webhook_executes_zap(self, client, make_zap):
        zap = make_zap(trigger_type="webhook", trigger_metadata={"webhookId": "hook-1"}, actions=[EMAIL])

        response = client.post("/webhook/hook-1", json={"order": 42}, headers={"X-Signature": "abc"})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["zap_id"] == zap.id
        assert data["status"] == "completed"
        assert data["action_results"][0]["message"] == "Email would be sent to a@example.com"

        run = get_zap_run(data["zap_run_id"])
        assert run.run_metadata["source"] == "webhook"
        webhook = run.run_metadata["trigger"]["webhook"]
        assert webhook["id"] == "hook-1"
        assert webhook["payload"] == {"order": 42}
        assert webhook["headers"]["x-signature"] == "abc"

    def test_non_json_body_kept_as_text(self, client, make_zap):
        make_zap(trigger_type="webhook", trigger_metadata={"webhookId": "hook-1"}, actions=[EMAIL])

        response = client.post("/webhook/hook-1", content=b"plain text", headers={"Content-Type": "text/plain"})

        run = get_zap_run(response.json()["zap_run_id"])
        assert run.run_metadata["trigger"]["webhook"]["payload"] == "plain text"

    def test_partial_failure_still_200(self, client, make_zap):
        make_zap(trigger_type="webhook", trigger_metadata={"webhookId": "hook-1"}, actions=[EMAIL, UNKNOWN])

        response = client.post("/webhook/hook-1", json={})

        assert response.status_code == 200
        assert response.json()["status"] == "partially_completed"

    def test_unexpected_error_is_500(self, client, make_zap):
        make_zap(trigger_type="webhook", trigger_metadata={"webhookId": "hook-1"}, actions=[EMAIL])

        with patch("zap_server.routers.webhooks.execute_zap", side_effect=RuntimeError("db down")):
            response = client.post("/webhook/hook-1", json={})

        assert response.status_code == 500
        assert response.json() == {"success": False, "message": "Failed to process webhook", "error": "db down"}


class TestExecuteEndpoint:
    """Test POST /execute/{zap_id}."""

    def test_execute_zap(self, client, make_zap):
        zap = make_zap(actions=[EMAIL])

        response = client.post(f"/execute/{zap.id}", json={"trigger_payload": {"price": 2100}, "source": "schedule"})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["status"] == "completed"
        assert data["zap_name"] == "Test zap"
        assert get_zap_run(data["zap_run_id"]).run_metadata["trigger"] == {"price": 2100}

    def test_camel_case_payload(self, client, make_zap):
        zap = make_zap(actions=[EMAIL])

        response = client.post(f"/execute/{zap.id}", json={"triggerPayload": {"price": 1}})

        assert get_zap_run(response.json()["zap_run_id"]).run_metadata["trigger"] == {"price": 1}

    def test_missing_zap_is_404_without_run(self, client):
        response = client.post("/execute/nope", json={})

        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Zap with ID nope not found"}
        assert count_zap_runs() == 0

    def test_deleted_zap_is_404(self, client, make_zap):
        zap = make_zap(actions=[EMAIL])
        delete_zap(zap.id)

        assert client.post(f"/execute/{zap.id}", json={}).status_code == 404
        assert count_zap_runs() == 0
