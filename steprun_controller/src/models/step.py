"""
Step execution models.
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional, Tuple
from enum import Enum

from steprun_controller.src.models.event import EventKind

# Status stored for steps that never ran because an earlier step stopped the run
SKIPPED = "skipped"

class StepStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"

class RunStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"

class StepDescriptor(BaseModel):
    name: str = Field(min_length=1)
    handler_id: str = Field(min_length=1)
    config: Dict[str, Any] = {}
    timeout: Optional[float] = Field(default=None, ge=0)  # seconds, None = unbounded

    class Config:
        frozen = True

class StepResult(BaseModel):
    step_name: str
    status: StepStatus
    exit_info: Any = None

    class Config:
        frozen = True

    @property
    def succeeded(self) -> bool:
        return self.status == StepStatus.SUCCEEDED

class RunRecord(BaseModel):
    """Ordered outcome log of one pipeline run."""
    pipeline: str
    event_kind: EventKind
    results: Tuple[StepResult, ...] = ()
    skipped: Tuple[str, ...] = ()

    class Config:
        frozen = True

    @property
    def status(self) -> RunStatus:
        if not self.skipped and all(r.succeeded for r in self.results):
            return RunStatus.SUCCEEDED
        return RunStatus.FAILED

    @property
    def succeeded(self) -> bool:
        return self.status == RunStatus.SUCCEEDED

    def export(self) -> List[Dict[str, Any]]:
        return [
            {
                "step_name": r.step_name,
                "status": r.status.value,
                "exit_info": r.exit_info,
            }
            for r in self.results
        ]
