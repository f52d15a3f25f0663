"""
Step capability interface and shared helpers for built-in handlers.

A capability is either a callable or an object with an `execute` method,
invoked as `execute(config, event, cancel)`. Coroutine functions run on the
event loop; plain functions run in a worker thread, so they must poll
`cancel` to honour step timeouts.
"""

import logging
import os
import re
import subprocess
import threading
from collections import deque
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Union

from pydantic import BaseModel

from steprun_controller.src.errors import StepFailure
from steprun_controller.src.models.event import Event

logger = logging.getLogger(__name__)

OUTPUT_TAIL_LINES = 1000

class CancelSignal:
    """Thread-safe flag fired by the executor when a step's timeout expires."""

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout
        self._event = threading.Event()

    def set(self):
        self._event.set()

    def is_set(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._event.wait(timeout)

class HandlerOutcome(BaseModel):
    ok: bool = True
    exit_info: Any = None

    class Config:
        frozen = True

class StepHandler(Protocol):
    def execute(self, config: Dict[str, Any], event: Event, cancel: CancelSignal) -> Any:
        ...

def coerce_outcome(value: Any) -> HandlerOutcome:
    """Normalize whatever a handler returned into a HandlerOutcome."""
    if isinstance(value, HandlerOutcome):
        return value
    if value is None or value is True:
        return HandlerOutcome(ok=True)
    if value is False:
        return HandlerOutcome(ok=False, exit_info="handler reported failure")
    return HandlerOutcome(ok=True, exit_info=value)

def workspace_for(event: Event, root: Union[str, Path]) -> Path:
    """Per-run working directory shared by the steps of one run."""
    run_id = event.metadata.get("run_id", "adhoc")
    safe = re.sub(r"[^A-Za-z0-9_.-]", "-", str(run_id))
    return Path(root) / safe

class CommandResult(BaseModel):
    args: List[str]
    returncode: int
    output: str
    cancelled: bool = False

    def as_exit_info(self) -> Dict[str, Any]:
        return {
            "command": " ".join(self.args),
            "returncode": self.returncode,
            "output": self.output,
        }

def run_command(
    args: List[str],
    cwd: Optional[Union[str, Path]] = None,
    env: Optional[Dict[str, str]] = None,
    cancel: Optional[CancelSignal] = None,
    poll_interval: float = 0.2,
) -> CommandResult:
    """
    Run an external command, polling `cancel` while it runs.
    Stdout and stderr are merged; only the last lines are kept.
    Never raises on non-zero exit; raises StepFailure if the command cannot start.
    """
    full_env = None
    if env:
        full_env = os.environ.copy()
        full_env.update({k: str(v) for k, v in env.items()})

    logger.debug(f"Running {args} in {cwd}")
    try:
        proc = subprocess.Popen(
            args,
            cwd=cwd,
            env=full_env,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
        )
    except FileNotFoundError as e:
        raise StepFailure(f"Cannot run {args[0]}: {e}", {"command": " ".join(args), "error": str(e)})

    cancelled = False
    while True:
        try:
            output, _ = proc.communicate(timeout=poll_interval)
            break
        except subprocess.TimeoutExpired:
            if cancel is not None and cancel.is_set():
                logger.warning(f"Cancelling {args[0]} (pid {proc.pid})")
                proc.kill()
                output, _ = proc.communicate()
                cancelled = True
                break

    tail = deque((output or "").splitlines(), maxlen=OUTPUT_TAIL_LINES)
    return CommandResult(
        args=list(args),
        returncode=proc.returncode,
        output="\n".join(tail),
        cancelled=cancelled,
    )
