"""
Shell handler - runs a list of commands in the run workspace.
"""

from pathlib import Path
from typing import Any, Dict, List, Union

from steprun_controller.src.errors import StepFailure
from steprun_controller.src.handlers.base import (
    CancelSignal,
    HandlerOutcome,
    run_command,
    workspace_for,
)
from steprun_controller.src.models.event import Event

def build_shell_command(commands: Union[str, List[str]]) -> str:
    """Join commands with && so the first failing command stops the step."""
    if isinstance(commands, str):
        return commands
    if not commands or not all(isinstance(c, str) for c in commands):
        raise StepFailure("'commands' must be a string or a non-empty list of strings")
    return " && ".join(commands)

class ShellHandler:
    def __init__(self, workspace_root: Union[str, Path], shell: str = "/bin/sh"):
        self.workspace_root = workspace_root
        self.shell = shell

    def execute(self, config: Dict[str, Any], event: Event, cancel: CancelSignal) -> HandlerOutcome:
        if "commands" not in config:
            raise StepFailure("Shell step missing 'commands'")

        shell_command = build_shell_command(config["commands"])
        cwd = Path(config.get("working_directory") or workspace_for(event, self.workspace_root))
        cwd.mkdir(parents=True, exist_ok=True)

        result = run_command(
            [self.shell, "-c", shell_command],
            cwd=cwd,
            env=config.get("env"),
            cancel=cancel,
        )
        return HandlerOutcome(ok=result.returncode == 0, exit_info=result.as_exit_info())
