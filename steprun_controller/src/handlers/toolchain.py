"""
Toolchain handler - installs a Rust toolchain through rustup.
"""

import logging
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

logger = logging.getLogger(__name__)

def build_install_commands(config: Dict[str, Any], rustup: str = "rustup") -> List[List[str]]:
    toolchain = config.get("toolchain")
    if not toolchain or not isinstance(toolchain, str):
        raise StepFailure("Toolchain step missing 'toolchain'")

    install = [rustup, "toolchain", "install", toolchain, "--profile", config.get("profile", "minimal")]
    for component in config.get("components", []):
        install += ["--component", component]
    for target in config.get("targets", []):
        install += ["--target", target]

    commands = [install]
    if config.get("override", False):
        commands.append([rustup, "override", "set", toolchain])
    return commands

class ToolchainHandler:
    def __init__(self, workspace_root: Union[str, Path], rustup: str = "rustup"):
        self.workspace_root = workspace_root
        self.rustup = rustup

    def execute(self, config: Dict[str, Any], event: Event, cancel: CancelSignal) -> HandlerOutcome:
        commands = build_install_commands(config, self.rustup)
        cwd = workspace_for(event, self.workspace_root)
        cwd.mkdir(parents=True, exist_ok=True)

        outputs = []
        for args in commands:
            result = run_command(args, cwd=cwd, cancel=cancel)
            outputs.append(result.as_exit_info())
            if result.cancelled or result.returncode != 0:
                return HandlerOutcome(ok=False, exit_info=outputs)

        logger.info(f"Installed toolchain {config['toolchain']}")
        return HandlerOutcome(ok=True, exit_info={"toolchain": config["toolchain"], "commands": outputs})
