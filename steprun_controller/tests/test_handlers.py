"""Tests for the built-in command handlers."""

import threading
import time

import pytest

from steprun_controller.src.errors import StepFailure
from steprun_controller.src.handlers import (
    CancelSignal,
    CheckoutHandler,
    CoverageHandler,
    HandlerOutcome,
    ShellHandler,
    ToolchainHandler,
    coerce_outcome,
    run_command,
    workspace_for,
)
from steprun_controller.src.handlers.coverage import build_coverage_command, parse_coverage
from steprun_controller.src.handlers.shell import build_shell_command
from steprun_controller.src.handlers.toolchain import build_install_commands
from steprun_controller.src.models import Event, EventKind

def run_event(run_id="run-1", **metadata):
    return Event(kind=EventKind.PULL_REQUEST_OPENED, metadata=dict(metadata, run_id=run_id))

def test_run_command_captures_output():
    result = run_command(["sh", "-c", "echo hello; echo oops >&2; exit 3"])
    assert result.returncode == 3
    assert "hello" in result.output
    assert "oops" in result.output
    assert not result.cancelled

def test_run_command_kills_process_on_cancel():
    cancel = CancelSignal()
    threading.Timer(0.2, cancel.set).start()

    started = time.monotonic()
    result = run_command(["sleep", "10"], cancel=cancel, poll_interval=0.05)

    assert result.cancelled
    assert time.monotonic() - started < 5

def test_run_command_missing_binary():
    with pytest.raises(StepFailure, match="Cannot run"):
        run_command(["definitely-not-a-real-binary-xyz"])

def test_workspace_is_per_run(tmp_path):
    assert workspace_for(run_event("abc"), tmp_path) == tmp_path / "abc"
    assert workspace_for(run_event("../evil"), tmp_path) == tmp_path / "..-evil"

def test_coerce_outcome():
    assert coerce_outcome(None).ok
    assert not coerce_outcome(False).ok
    assert coerce_outcome({"x": 1}).exit_info == {"x": 1}
    outcome = HandlerOutcome(ok=False, exit_info="nope")
    assert coerce_outcome(outcome) is outcome

def test_shell_commands_joined():
    assert build_shell_command(["cargo build", "cargo test"]) == "cargo build && cargo test"
    assert build_shell_command("make") == "make"
    with pytest.raises(StepFailure):
        build_shell_command([])

def test_shell_handler_runs_in_workspace(tmp_path):
    handler = ShellHandler(tmp_path)
    outcome = handler.execute(
        {"commands": ["echo $GREETING > out.txt", "cat out.txt"], "env": {"GREETING": "hi"}},
        run_event("r1"),
        CancelSignal(),
    )
    assert outcome.ok
    assert (tmp_path / "r1" / "out.txt").read_text().strip() == "hi"
    assert outcome.exit_info["returncode"] == 0

def test_shell_handler_failure(tmp_path):
    outcome = ShellHandler(tmp_path).execute({"commands": ["false", "echo never"]}, run_event(), CancelSignal())
    assert not outcome.ok
    assert "never" not in outcome.exit_info["output"]

def test_shell_handler_requires_commands(tmp_path):
    with pytest.raises(StepFailure, match="commands"):
        ShellHandler(tmp_path).execute({}, run_event(), CancelSignal())

def test_checkout_requires_repository(tmp_path):
    with pytest.raises(StepFailure, match="No repository"):
        CheckoutHandler(tmp_path).execute({}, run_event(), CancelSignal())

def test_checkout_runs_git_commands(tmp_path):
    # `true` stands in for git and accepts any arguments
    handler = CheckoutHandler(tmp_path, git="true")
    event = run_event("r2", clone_url="https://example.com/org/repo.git", head_sha="deadbeef")

    outcome = handler.execute({}, event, CancelSignal())

    assert outcome.ok
    assert outcome.exit_info == {
        "path": str(tmp_path / "r2"),
        "repository": "https://example.com/org/repo.git",
        "ref": "deadbeef",
    }

def test_checkout_reports_git_failure(tmp_path):
    handler = CheckoutHandler(tmp_path, git="false")
    outcome = handler.execute({"repository": "https://example.com/r.git"}, run_event(), CancelSignal())
    assert not outcome.ok

def test_toolchain_commands():
    commands = build_install_commands(
        {"toolchain": "nightly", "profile": "minimal", "override": True, "components": ["llvm-tools-preview"]}
    )
    assert commands == [
        ["rustup", "toolchain", "install", "nightly", "--profile", "minimal", "--component", "llvm-tools-preview"],
        ["rustup", "override", "set", "nightly"],
    ]

def test_toolchain_requires_name():
    with pytest.raises(StepFailure, match="toolchain"):
        build_install_commands({"profile": "minimal"})

def test_toolchain_handler_stops_on_failure(tmp_path):
    handler = ToolchainHandler(tmp_path, rustup="false")
    outcome = handler.execute({"toolchain": "nightly", "override": True}, run_event(), CancelSignal())
    assert not outcome.ok
    assert len(outcome.exit_info) == 1

def test_parse_coverage():
    output = "|| Tested/Total Lines:\n|| src/lib.rs: 6/7\n85.71% coverage, 6/7 lines covered"
    assert parse_coverage(output) == 85.71
    assert parse_coverage("no numbers here") is None

def test_coverage_command_passes_args_verbatim():
    args = build_coverage_command({"args": "--all-features --frozen --timeout 1500 -- --test-threads=1"})
    assert args == [
        "cargo", "tarpaulin", "--all-features", "--frozen", "--timeout", "1500", "--", "--test-threads=1",
    ]

def test_coverage_threshold_not_met(tmp_path):
    (tmp_path / "r1").mkdir()
    config = {"command": ["sh", "-c", "echo '61.00% coverage, 61/100 lines covered'"], "fail_under": 80}

    outcome = CoverageHandler(tmp_path).execute(config, run_event("r1"), CancelSignal())

    assert not outcome.ok
    assert outcome.exit_info["reason"] == "threshold not met"
    assert outcome.exit_info["coverage"] == 61.0

def test_coverage_threshold_met(tmp_path):
    (tmp_path / "r1").mkdir()
    config = {"command": "sh -c", "args": ["echo '91.20% coverage'"], "fail_under": 80}

    outcome = CoverageHandler(tmp_path).execute(config, run_event("r1"), CancelSignal())

    assert outcome.ok
    assert outcome.exit_info["coverage"] == 91.2

def test_coverage_creates_missing_workspace(tmp_path):
    config = {"command": ["sh", "-c", "pwd; echo '75.00% coverage'"]}

    outcome = CoverageHandler(tmp_path).execute(config, run_event("fresh"), CancelSignal())

    assert outcome.ok
    assert outcome.exit_info["coverage"] == 75.0
    assert (tmp_path / "fresh").is_dir()
