"""
Coverage handler - runs an external coverage tool and checks its result.

Tool flags such as `--frozen` or `-- --test-threads=1` are passed through
untouched; the tool's own concurrency and lock-file behaviour is its concern.
"""

import logging
import re
import shlex
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from steprun_controller.src.handlers.base import (
    CancelSignal,
    HandlerOutcome,
    run_command,
    workspace_for,
)
from steprun_controller.src.models.event import Event

logger = logging.getLogger(__name__)

DEFAULT_COMMAND = ["cargo", "tarpaulin"]

# tarpaulin: "85.71% coverage, 6/7 lines covered"
COVERAGE_PATTERN = re.compile(r"(\d+(?:\.\d+)?)% coverage")

def parse_coverage(output: str) -> Optional[float]:
    """Return the last reported coverage percentage, if any."""
    matches = COVERAGE_PATTERN.findall(output)
    if not matches:
        return None
    return float(matches[-1])

def build_coverage_command(config: Dict[str, Any]) -> List[str]:
    command = config.get("command", DEFAULT_COMMAND)
    if isinstance(command, str):
        command = shlex.split(command)
    args = config.get("args", "")
    if isinstance(args, str):
        args = shlex.split(args)
    return list(command) + list(args)

class CoverageHandler:
    def __init__(self, workspace_root: Union[str, Path]):
        self.workspace_root = workspace_root

    def execute(self, config: Dict[str, Any], event: Event, cancel: CancelSignal) -> HandlerOutcome:
        args = build_coverage_command(config)
        cwd = workspace_for(event, self.workspace_root) / config.get("path", ".")
        cwd.mkdir(parents=True, exist_ok=True)

        result = run_command(args, cwd=cwd, env=config.get("env"), cancel=cancel)
        exit_info = result.as_exit_info()
        if result.cancelled or result.returncode != 0:
            return HandlerOutcome(ok=False, exit_info=exit_info)

        coverage = parse_coverage(result.output)
        exit_info["coverage"] = coverage

        fail_under = config.get("fail_under")
        if fail_under is not None:
            if coverage is None or coverage < float(fail_under):
                logger.warning(f"Coverage {coverage} below threshold {fail_under}")
                exit_info["reason"] = "threshold not met"
                exit_info["fail_under"] = float(fail_under)
                return HandlerOutcome(ok=False, exit_info=exit_info)

        return HandlerOutcome(ok=True, exit_info=exit_info)
