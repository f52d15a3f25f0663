from steprun_controller.src.models.event import Event, EventKind
from steprun_controller.src.models.step import (
    SKIPPED,
    StepStatus,
    RunStatus,
    StepDescriptor,
    StepResult,
    RunRecord,
)
from steprun_controller.src.models.pipeline import Trigger, PipelineDefinition

__all__ = [
    "Event",
    "EventKind",
    "SKIPPED",
    "StepStatus",
    "RunStatus",
    "StepDescriptor",
    "StepResult",
    "RunRecord",
    "Trigger",
    "PipelineDefinition",
]
