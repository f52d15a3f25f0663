"""
Checkout handler - clones the event's repository into the run workspace.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Union

from steprun_controller.src.errors import StepFailure
from steprun_controller.src.handlers.base import (
    CancelSignal,
    HandlerOutcome,
    run_command,
    workspace_for,
)
from steprun_controller.src.models.event import Event

logger = logging.getLogger(__name__)

class CheckoutHandler:
    def __init__(self, workspace_root: Union[str, Path], git: str = "git"):
        self.workspace_root = workspace_root
        self.git = git

    def execute(self, config: Dict[str, Any], event: Event, cancel: CancelSignal) -> HandlerOutcome:
        clone_url = config.get("repository") or event.metadata.get("clone_url")
        if not clone_url:
            raise StepFailure("No repository to check out (set 'repository' or event clone_url)")

        ref = config.get("ref") or event.metadata.get("head_sha")
        depth = str(config.get("depth", 1))

        workspace = workspace_for(event, self.workspace_root)
        repo_path = workspace / config.get("path", ".")
        repo_path.parent.mkdir(parents=True, exist_ok=True)

        commands = [[self.git, "clone", "--depth", depth, clone_url, str(repo_path)]]
        if ref:
            commands.append([self.git, "-C", str(repo_path), "fetch", "--depth", depth, "origin", ref])
            commands.append([self.git, "-C", str(repo_path), "checkout", "FETCH_HEAD"])

        for args in commands:
            result = run_command(args, cancel=cancel)
            if result.cancelled:
                return HandlerOutcome(ok=False, exit_info=result.as_exit_info())
            if result.returncode != 0:
                logger.error(f"Checkout of {clone_url} failed: {result.output[-500:]}")
                return HandlerOutcome(ok=False, exit_info=result.as_exit_info())

        logger.info(f"Checked out {clone_url}@{ref or 'HEAD'} into {repo_path}")
        return HandlerOutcome(
            ok=True,
            exit_info={"path": str(repo_path), "repository": clone_url, "ref": ref},
        )
