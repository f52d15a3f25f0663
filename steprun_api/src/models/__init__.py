from steprun_api.src.models.run import (
    EventRequest,
    EventResponse,
    StepResultResponse,
    RunRecordResponse,
    StepDescriptorResponse,
    PipelineResponse,
    StepResponse,
    PipelineRunResponse,
)

__all__ = [
    "EventRequest",
    "EventResponse",
    "StepResultResponse",
    "RunRecordResponse",
    "StepDescriptorResponse",
    "PipelineResponse",
    "StepResponse",
    "PipelineRunResponse",
]
