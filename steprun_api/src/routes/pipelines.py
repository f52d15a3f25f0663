from fastapi import APIRouter, Depends, HTTPException
from typing import List, Optional

from steprun_api.src.dependencies import get_listener, get_run_store
from steprun_api.src.models.run import PipelineResponse, PipelineRunResponse, StepDescriptorResponse
from steprun_controller.src.models.pipeline import Trigger
from steprun_controller.src.services.status_reporter import DatabaseRunSink
from steprun_controller.src.services.trigger import TriggerListener

router = APIRouter(prefix="/pipelines", tags=["pipelines"])

@router.get("", response_model=List[PipelineResponse])
def list_pipelines(listener: TriggerListener = Depends(get_listener)):
    """List loaded pipeline definitions."""
    return [
        PipelineResponse(
            name=p.name,
            trigger=p.trigger.describe() if isinstance(p.trigger, Trigger) else None,
            steps=[
                StepDescriptorResponse(name=s.name, uses=s.handler_id, timeout=s.timeout)
                for s in p.steps
            ],
        )
        for p in listener.pipelines
    ]

@router.get("/runs", response_model=List[PipelineRunResponse])
def list_runs(
    limit: int = 20,
    offset: int = 0,
    status: Optional[str] = None,
    store: DatabaseRunSink = Depends(get_run_store),
):
    """List recorded pipeline runs, newest first."""
    return store.list_runs(limit=limit, offset=offset, status=status)

@router.get("/runs/{run_id}", response_model=PipelineRunResponse)
def get_run(run_id: str, store: DatabaseRunSink = Depends(get_run_store)):
    run = store.get_run(run_id)
    if not run:
        raise HTTPException(status_code=404, detail="Pipeline run not found")
    return run

@router.get("/stats")
def get_pipeline_stats(
    listener: TriggerListener = Depends(get_listener),
    store: DatabaseRunSink = Depends(get_run_store),
):
    stats = store.get_stats()
    stats["pipelines"] = len(listener.pipelines)
    return stats
