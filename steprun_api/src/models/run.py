from pydantic import BaseModel
from typing import Any, Dict, List, Optional
from datetime import datetime

from steprun_controller.src.models.event import EventKind

class EventRequest(BaseModel):
    kind: EventKind
    metadata: Dict[str, Any] = {}

class StepResultResponse(BaseModel):
    step_name: str
    status: str
    exit_info: Any = None

class RunRecordResponse(BaseModel):
    pipeline: str
    status: str
    results: List[StepResultResponse]
    skipped: List[str] = []

class EventResponse(BaseModel):
    status: str
    event: str
    matched: List[str] = []
    runs: List[RunRecordResponse] = []
    reason: Optional[str] = None

class StepDescriptorResponse(BaseModel):
    name: str
    uses: str
    timeout: Optional[float] = None

class PipelineResponse(BaseModel):
    name: str
    trigger: Optional[Dict[str, Any]] = None
    steps: List[StepDescriptorResponse]

class StepResponse(BaseModel):
    name: str
    order: int
    status: str
    exit_info: Any = None

class PipelineRunResponse(BaseModel):
    id: str
    pipeline: str
    event_kind: str
    event_metadata: Optional[Dict[str, Any]] = None
    status: str
    created_at: Optional[datetime] = None
    steps: List[StepResponse] = []
