"""Tests for the coverage upload handler."""

import httpx

from steprun_controller.src.handlers import CancelSignal, UploadHandler
from steprun_controller.src.handlers.upload import build_upload_params
from steprun_controller.src.models import Event, EventKind

EVENT = Event(
    kind=EventKind.PULL_REQUEST_UPDATED,
    metadata={
        "run_id": "r1",
        "head_sha": "abc123",
        "head_branch": "feature",
        "repo_full_name": "org/repo",
        "number": 42,
    },
)

def write_report(tmp_path, name="cobertura.xml"):
    workspace = tmp_path / "r1"
    workspace.mkdir(exist_ok=True)
    (workspace / name).write_text("<coverage line-rate='0.9'/>")

def test_upload_params():
    params = build_upload_params({"flags": ["unit", "linux"]}, EVENT)
    assert params == {
        "commit": "abc123",
        "branch": "feature",
        "slug": "org/repo",
        "service": "steprun",
        "build": "r1",
        "pr": "42",
        "flags": "unit,linux",
    }

def test_upload_sends_report_with_explicit_token(tmp_path):
    write_report(tmp_path)
    requests = []

    def respond(request):
        requests.append(request)
        return httpx.Response(200, json={"ok": True})

    handler = UploadHandler(tmp_path, url="https://coverage.test/upload", token="secret", transport=httpx.MockTransport(respond))

    outcome = handler.execute({}, EVENT, CancelSignal())

    assert outcome.ok
    assert outcome.exit_info["uploaded"] is True
    assert outcome.exit_info["status_code"] == 200
    assert requests[0].headers["Authorization"] == "token secret"
    assert requests[0].url.params["commit"] == "abc123"
    assert b"line-rate" in requests[0].content

def test_step_config_overrides_url_and_token(tmp_path):
    write_report(tmp_path, "lcov.info")
    requests = []

    def respond(request):
        requests.append(request)
        return httpx.Response(201)

    handler = UploadHandler(tmp_path, url="https://default.test", token="default", transport=httpx.MockTransport(respond))

    outcome = handler.execute(
        {"file": "lcov.info", "url": "https://other.test/up", "token": "step-token"},
        EVENT,
        CancelSignal(),
    )

    assert outcome.ok
    assert requests[0].url.host == "other.test"
    assert requests[0].headers["Authorization"] == "token step-token"

def test_upload_error_does_not_fail_step_by_default(tmp_path):
    write_report(tmp_path)
    handler = UploadHandler(
        tmp_path,
        url="https://coverage.test/upload",
        transport=httpx.MockTransport(lambda request: httpx.Response(503)),
    )

    outcome = handler.execute({}, EVENT, CancelSignal())

    assert outcome.ok
    assert outcome.exit_info["uploaded"] is False

def test_upload_error_fails_step_when_requested(tmp_path):
    write_report(tmp_path)
    handler = UploadHandler(
        tmp_path,
        url="https://coverage.test/upload",
        transport=httpx.MockTransport(lambda request: httpx.Response(503)),
    )

    outcome = handler.execute({"fail_ci_if_error": True}, EVENT, CancelSignal())

    assert not outcome.ok
    assert "503" in outcome.exit_info["error"]

def test_missing_report_fails_when_requested(tmp_path):
    handler = UploadHandler(tmp_path, url="https://coverage.test/upload")
    outcome = handler.execute({"fail_ci_if_error": True}, EVENT, CancelSignal())
    assert not outcome.ok
    assert "cobertura.xml" in outcome.exit_info["file"]
