"""Tests for webhook handling."""

import hashlib
import hmac
import json

from fastapi import FastAPI
from fastapi.testclient import TestClient

from steprun_api.src.config import Settings
from steprun_api.src.routes import webhooks
from steprun_api.src.routes import webhooks_router
from steprun_api.src.services.github import (
    event_from_github,
    parse_pull_request_payload,
    parse_push_payload,
    verify_signature,
)
from steprun_controller.src.models import EventKind, PipelineDefinition, StepDescriptor, Trigger
from steprun_controller.src.services.executor import Executor
from steprun_controller.src.services.registry import HandlerRegistry
from steprun_controller.src.services.trigger import TriggerListener

PR_PAYLOAD = {
    "action": "opened",
    "number": 12,
    "pull_request": {
        "title": "Add coverage",
        "head": {
            "sha": "abc123def456",
            "ref": "feature/coverage",
            "repo": {"clone_url": "https://github.com/fork/test-repo.git"},
        },
        "base": {"ref": "main"},
    },
    "repository": {
        "name": "test-repo",
        "full_name": "user/test-repo",
        "clone_url": "https://github.com/user/test-repo.git",
    },
    "sender": {"login": "testuser"},
}

def make_client(dispatch="inline", enqueue=None, handler=None):
    registry = HandlerRegistry()
    registry.register("coverage", handler or (lambda config, event, cancel: None))
    pipeline = PipelineDefinition(
        name="coverage",
        trigger=Trigger(kinds=frozenset({EventKind.PULL_REQUEST_OPENED})),
        steps=(StepDescriptor(name="run_code_coverage", handler_id="coverage"),),
    )
    executor = Executor(registry) if dispatch == "inline" else None
    listener = TriggerListener([pipeline], executor=executor, dispatch=dispatch, enqueue=enqueue)

    app = FastAPI()
    app.include_router(webhooks_router, prefix="/api")
    app.state.listener = listener
    return TestClient(app)

def test_parse_pull_request_payload():
    event = parse_pull_request_payload(PR_PAYLOAD)

    assert event.kind == EventKind.PULL_REQUEST_OPENED
    assert event.metadata["repo_full_name"] == "user/test-repo"
    assert event.metadata["clone_url"] == "https://github.com/fork/test-repo.git"
    assert event.metadata["head_sha"] == "abc123def456"
    assert event.metadata["base_branch"] == "main"
    assert event.metadata["number"] == 12
    assert event.metadata["sender"] == "testuser"

def test_pull_request_actions():
    synced = dict(PR_PAYLOAD, action="synchronize")
    assert parse_pull_request_payload(synced).kind == EventKind.PULL_REQUEST_UPDATED
    assert parse_pull_request_payload(dict(PR_PAYLOAD, action="labeled")) is None

def test_parse_push_payload():
    payload = {
        "ref": "refs/heads/main",
        "repository": {
            "name": "test-repo",
            "full_name": "user/test-repo",
            "clone_url": "https://github.com/user/test-repo.git",
        },
        "head_commit": {"id": "abc123def456", "message": "Test commit"},
        "pusher": {"name": "testuser"},
    }

    event = parse_push_payload(payload)

    assert event.kind == EventKind.PUSH
    assert event.metadata["head_branch"] == "main"
    assert event.metadata["head_sha"] == "abc123def456"
    assert event.metadata["sender"] == "testuser"

def test_parse_push_payload_with_after():
    """Test fallback to 'after' field for commit SHA."""
    payload = {"ref": "refs/heads/feature", "after": "xyz789", "head_commit": None, "repository": {}}
    event = parse_push_payload(payload)
    assert event.metadata["head_sha"] == "xyz789"
    assert event.metadata["head_branch"] == "feature"

def test_unhandled_github_event():
    assert event_from_github("issues", {}) is None

def test_verify_signature_without_secret():
    """When no secret is configured, verification should pass."""
    assert verify_signature(b"payload", "sha256=anything", "") is True

def test_verify_signature_with_secret():
    body = b'{"zen": "Keep it simple"}'
    good = "sha256=" + hmac.new(b"s3cret", body, hashlib.sha256).hexdigest()
    assert verify_signature(body, good, "s3cret")
    assert not verify_signature(body, "sha256=0000", "s3cret")
    assert not verify_signature(body, None, "s3cret")

def test_ping():
    response = make_client().post("/api/webhooks/github", json={"zen": "hi"}, headers={"X-GitHub-Event": "ping"})
    assert response.status_code == 200
    assert response.json()["status"] == "pong"

def test_pull_request_webhook_starts_run():
    seen = []

    def handler(config, event, cancel):
        seen.append(event.metadata["head_sha"])

    client = make_client(handler=handler)
    response = client.post("/api/webhooks/github", json=PR_PAYLOAD, headers={"X-GitHub-Event": "pull_request"})

    assert response.status_code == 200
    assert response.json()["status"] == "accepted"
    assert response.json()["matched"] == ["coverage"]
    assert seen == ["abc123def456"]

def test_push_webhook_is_ignored_by_pr_pipeline():
    client = make_client()
    payload = {"ref": "refs/heads/main", "after": "abc", "repository": {}}
    response = client.post("/api/webhooks/github", json=payload, headers={"X-GitHub-Event": "push"})
    body = response.json()
    assert body["status"] == "ignored"
    assert body["event"] == "push"
    assert body["matched"] == [] and body["runs"] == []

def test_bad_signature_rejected(monkeypatch):
    monkeypatch.setattr(webhooks, "get_settings", lambda: Settings(github_webhook_secret="s3cret"))
    response = make_client().post(
        "/api/webhooks/github",
        content=json.dumps(PR_PAYLOAD),
        headers={"X-GitHub-Event": "pull_request", "X-Hub-Signature-256": "sha256=bad"},
    )
    assert response.status_code == 401

def test_invalid_json_rejected():
    response = make_client().post(
        "/api/webhooks/github",
        content=b"not json",
        headers={"X-GitHub-Event": "pull_request"},
    )
    assert response.status_code == 400

def test_generic_event_waits_for_records():
    def failing(config, event, cancel):
        return False

    client = make_client(handler=failing)
    response = client.post(
        "/api/events?wait=true",
        json={"kind": "pull_request_opened", "metadata": {"number": 3}},
    )

    body = response.json()
    assert body["status"] == "completed"
    assert body["runs"][0]["status"] == "failed"
    assert body["runs"][0]["results"][0]["step_name"] == "run_code_coverage"

def test_generic_event_queued():
    queued = []

    async def enqueue(run_id, pipeline, event):
        queued.append(pipeline)

    client = make_client(dispatch="queue", enqueue=enqueue)
    response = client.post("/api/events", json={"kind": "pull_request_opened"})

    assert response.json()["status"] == "queued"
    assert queued == ["coverage"]

def test_generic_event_rejects_unknown_kind():
    response = make_client().post("/api/events", json={"kind": "deploy"})
    assert response.status_code == 422

def test_malformed_payload_reports_error():
    response = make_client().post(
        "/api/webhooks/github",
        json={"action": "opened", "pull_request": {"head": None}},
        headers={"X-GitHub-Event": "pull_request"},
    )
    assert response.status_code == 200
    assert response.json()["status"] == "error"
    assert response.json()["reason"]
