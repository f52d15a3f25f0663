"""
Inbound events that may trigger pipeline runs.
"""

from pydantic import BaseModel
from typing import Any, Dict, Optional
from enum import Enum

class EventKind(str, Enum):
    PULL_REQUEST_OPENED = "pull_request_opened"
    PULL_REQUEST_UPDATED = "pull_request_updated"
    PULL_REQUEST_REOPENED = "pull_request_reopened"
    PULL_REQUEST_CLOSED = "pull_request_closed"
    PUSH = "push"
    MANUAL = "manual"

class Event(BaseModel):
    kind: EventKind
    metadata: Dict[str, Any] = {}

    class Config:
        frozen = True

    @property
    def branch(self) -> Optional[str]:
        """Branch a trigger filters on: the PR base branch, or the pushed branch."""
        if self.kind == EventKind.PUSH:
            return self.metadata.get("head_branch") or self.metadata.get("branch")
        return self.metadata.get("base_branch")

    def for_step(self, run_id: str, pipeline: str, step: str, step_order: int) -> "Event":
        """Copy of this event carrying the run context handed to a step handler."""
        metadata = dict(self.metadata)
        metadata.update({
            "run_id": run_id,
            "pipeline": pipeline,
            "step": step,
            "step_order": step_order,
        })
        return Event(kind=self.kind, metadata=metadata)
