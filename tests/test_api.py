"""Summary: Tests for the FastAPI application.

Importance: Ensures HTTP routes map onto services and errors map onto status codes.
Alternatives: Test only the service layer.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

from inboxsift.ai import MockAiProvider
from inboxsift.api import create_app
from inboxsift.config import AppConfig
from inboxsift.jobs import ExtractionJob, ExtractionJobRunner
from inboxsift.services import WorkspaceService

PAYLOAD = {
    "events": [{"title": "Meeting", "date": "2026-01-25", "time": "14:00", "end_time": None, "location": None}],
    "reminders": [],
    "tasks": [{"title": "Book room", "due_date": None, "priority": None}],
}

SECRET = "whsec_" + base64.b64encode(b"api-signing-key").decode("ascii")


def _config(tmp_path: Path, **overrides: Any) -> AppConfig:
    values = dict(
        db_path=str(tmp_path / "api.db"),
        ai_provider="mock",
        openai_api_key=None,
        openai_model="gpt-4o-mini",
        openai_base_url="https://api.openai.com/v1",
        ollama_url="http://localhost:11434",
        ollama_model="llama3.1",
        ai_timeout_seconds=5.0,
        app_timezone="UTC",
        app_locale="en",
        extraction_max_attempts=3,
        extraction_backoff_seconds=0.0,
        job_workers=1,
        api_host="127.0.0.1",
        api_port=8000,
        api_key="",
        default_workspace_name="Personal",
        resend_webhook_secret="",
    )
    values.update(overrides)
    return AppConfig(**values)


def _client(tmp_path: Path, **overrides: Any) -> TestClient:
    return TestClient(create_app(_config(tmp_path, **overrides), provider=MockAiProvider(PAYLOAD)))


def test_health(tmp_path: Path) -> None:
    client = _client(tmp_path)
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_create_extract_and_review(tmp_path: Path) -> None:
    """Summary: Verify the full flow from item creation to accepted suggestion.

    Importance: Exercises the async extraction path end to end.
    Alternatives: Run extraction synchronously in tests.
    """

    client = _client(tmp_path)
    created = client.post("/inbox-items", json={"raw_content": "Meeting tomorrow at 2pm"})
    assert created.status_code == 201
    item_id = created.json()["id"]
    assert created.json()["status"] == "new"

    queued = client.post(f"/inbox-items/{item_id}/extract")
    assert queued.status_code == 202
    assert queued.json() == {"message": "Extraction job has been queued."}
    client.app.state.job_runner.shutdown(wait=True)

    detail = client.get(f"/inbox-items/{item_id}").json()
    assert detail["status"] == "parsed"
    assert len(detail["extractions"]) == 1
    assert detail["latest_extraction_id"] == detail["extractions"][0]["id"]
    assert detail["extractions"][0]["raw_response"] == PAYLOAD
    assert [s["type"] for s in detail["suggestions"]] == ["event", "task"]

    event_id = detail["suggestions"][0]["id"]
    accepted = client.post(f"/suggestions/{event_id}/accept")
    assert accepted.json()["status"] == "accepted"
    proposed = client.get("/suggestions", params={"status": "proposed"}).json()
    assert [s["type"] for s in proposed] == ["task"]


def test_archived_item_cannot_be_extracted(tmp_path: Path) -> None:
    """Summary: Verify extraction requests on archived items return 409."""

    client = _client(tmp_path)
    item_id = client.post("/inbox-items", json={"raw_content": "Old note"}).json()["id"]
    archived = client.patch(f"/inbox-items/{item_id}", json={"status": "archived"})
    assert archived.json()["status"] == "archived"

    response = client.post(f"/inbox-items/{item_id}/extract")
    assert response.status_code == 409
    assert client.get("/inbox-items", params={"status": "archived"}).json()[0]["id"] == item_id


def test_invalid_requests_return_422(tmp_path: Path) -> None:
    client = _client(tmp_path)
    assert client.post("/inbox-items", json={"raw_content": ""}).status_code == 422
    assert client.post("/inbox-items", json={"raw_content": "   "}).status_code == 422
    assert client.post("/inbox-items", json={"raw_content": "x", "source": "email"}).status_code == 422
    item_id = client.post("/inbox-items", json={"raw_content": "x"}).json()["id"]
    assert client.patch(f"/inbox-items/{item_id}", json={"status": "parsed"}).status_code == 422


def test_workspaces_are_isolated(tmp_path: Path) -> None:
    """Summary: Verify items of one workspace are invisible to another.

    Importance: Workspace scoping is the tenancy boundary.
    Alternatives: Share all items between workspaces.
    """

    client = _client(tmp_path)
    other = WorkspaceService(client.app.state.context.store).create_workspace("Work")
    item_id = client.post("/inbox-items", json={"raw_content": "Personal errand"}).json()["id"]
    headers = {"X-Workspace-Id": str(other.id)}

    assert client.get(f"/inbox-items/{item_id}", headers=headers).status_code == 404
    assert client.post(f"/inbox-items/{item_id}/extract", headers=headers).status_code == 404
    assert client.get("/inbox-items", headers=headers).json() == []
    assert client.get("/inbox-items", headers={"X-Workspace-Id": "9999"}).status_code == 404


def test_api_key_is_enforced(tmp_path: Path) -> None:
    client = _client(tmp_path, api_key="secret")
    assert client.get("/inbox-items").status_code == 401
    assert client.get("/inbox-items", headers={"X-API-Key": "secret"}).status_code == 200
    assert client.get("/health").status_code == 200


def test_inbound_email_webhook(tmp_path: Path) -> None:
    """Summary: Verify signed inbound emails land in the addressed workspace."""

    client = _client(tmp_path, resend_webhook_secret=SECRET)
    store = client.app.state.context.store
    workspace = store.get_workspace_by_name("Personal")
    body = json.dumps(
        {
            "to": [f"inbox+{workspace.inbound_email_token}@in.example.com"],
            "subject": "Dinner",
            "text": "Dinner Friday at 7",
        }
    ).encode("utf-8")
    signed = b"msg_2.1769299200." + body
    signature = base64.b64encode(hmac.new(b"api-signing-key", signed, hashlib.sha256).digest())
    headers = {
        "svix-id": "msg_2",
        "svix-timestamp": "1769299200",
        "svix-signature": "v1," + signature.decode("ascii"),
        "content-type": "application/json",
    }

    response = client.post("/webhooks/inbound-email", content=body, headers=headers)
    assert response.status_code == 200
    items = client.get("/inbox-items").json()
    assert [(i["source"], i["raw_subject"]) for i in items] == [("email", "Dinner")]

    forged = client.post("/webhooks/inbound-email", content=body, headers={"svix-id": "x"})
    assert forged.status_code == 401
    assert client.post("/webhooks/inbound-email", content=b"not json").status_code == 400


def test_shutdown_stops_job_runner(tmp_path: Path) -> None:
    """Summary: Verify the extraction worker pool is stopped when the app shuts down.

    Importance: Leaves no worker threads running after the server exits.
    Alternatives: Rely on interpreter exit to reap worker threads.
    """

    runner = ExtractionJobRunner(lambda job: None, backoff_seconds=0.0, workers=1)
    app = create_app(_config(tmp_path), provider=MockAiProvider(PAYLOAD), job_runner=runner)
    with TestClient(app) as client:
        assert client.get("/health").status_code == 200
        assert runner.dispatch(ExtractionJob(inbox_item_id=1, workspace_id=1)).result(timeout=10) is None

    with pytest.raises(RuntimeError):
        runner.dispatch(ExtractionJob(inbox_item_id=1, workspace_id=1))


def test_webhook_acknowledges_structured_content(tmp_path: Path) -> None:
    client = _client(tmp_path)
    workspace = client.app.state.context.store.get_workspace_by_name("Personal")
    body = {"to": f"inbox+{workspace.inbound_email_token}@in.example.com", "html": {"a": 1}}

    response = client.post("/webhooks/inbound-email", json=body)
    assert response.status_code == 200
    assert client.get("/inbox-items").json() == []
