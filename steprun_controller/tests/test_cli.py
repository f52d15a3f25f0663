"""Tests for the steprun command line."""

from typer.testing import CliRunner

from steprun_controller.src.main import app, parse_meta

runner = CliRunner()

LINT_PIPELINE = """
name: lint
on: manual
steps:
  - name: say
    run: echo linting
"""

FAILING_PIPELINE = """
name: broken
on: manual
steps:
  - name: fail
    run: exit 4
  - name: never
    run: echo unreachable
"""

def test_parse_meta():
    assert parse_meta(["head_sha=abc", "number=3"]) == {"head_sha": "abc", "number": "3"}

def test_validate_ok(tmp_path):
    path = tmp_path / "lint.yml"
    path.write_text(LINT_PIPELINE)

    result = runner.invoke(app, ["validate", str(path)])

    assert result.exit_code == 0
    assert "lint: say" in result.output

def test_validate_rejects_empty_steps(tmp_path):
    path = tmp_path / "empty.yml"
    path.write_text("on: manual\nsteps: []\n")

    result = runner.invoke(app, ["validate", str(path)])

    assert result.exit_code == 2
    assert "Invalid" in result.output

def test_run_succeeds(tmp_path):
    path = tmp_path / "lint.yml"
    path.write_text(LINT_PIPELINE)

    result = runner.invoke(app, ["run", str(path)])

    assert result.exit_code == 0
    assert "succeeded" in result.output

def test_run_failure_exit_code(tmp_path):
    path = tmp_path / "broken.yml"
    path.write_text(FAILING_PIPELINE)

    result = runner.invoke(app, ["run", str(path)])

    assert result.exit_code == 1
    assert "skipped" in result.output

def test_run_skips_when_trigger_does_not_match(tmp_path):
    path = tmp_path / "lint.yml"
    path.write_text(LINT_PIPELINE)

    result = runner.invoke(app, ["run", str(path), "--event", "push"])

    assert result.exit_code == 0
    assert "nothing to run" in result.output
