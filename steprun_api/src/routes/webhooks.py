"""
Event intake endpoints: GitHub webhooks and generic events.
"""

from fastapi import APIRouter, Request, HTTPException, Header, Depends, BackgroundTasks
from typing import Optional
import logging

from steprun_api.src.config import get_settings
from steprun_api.src.dependencies import get_listener
from steprun_api.src.models.run import EventRequest, EventResponse, RunRecordResponse
from steprun_api.src.services.github import event_from_github, verify_signature
from steprun_controller.src.models.event import Event
from steprun_controller.src.models.step import RunRecord
from steprun_controller.src.services.trigger import TriggerListener

logger = logging.getLogger(__name__)

router = APIRouter(tags=["events"])

def record_response(record: RunRecord) -> RunRecordResponse:
    return RunRecordResponse(
        pipeline=record.pipeline,
        status=record.status.value,
        results=record.export(),
        skipped=list(record.skipped),
    )

async def dispatch_event(
    event: Event,
    listener: TriggerListener,
    background_tasks: BackgroundTasks,
    wait: bool = False,
) -> EventResponse:
    """Hand an event to the listener; inline runs go to the background unless `wait`."""
    matched = [p.name for p in listener.match(event)]
    if not matched:
        return EventResponse(status="ignored", event=event.kind.value)

    if listener.dispatch == "queue" or wait:
        records = await listener.on_event(event)
        status = "queued" if listener.dispatch == "queue" else "completed"
        return EventResponse(
            status=status,
            event=event.kind.value,
            matched=matched,
            runs=[record_response(r) for r in records],
        )

    background_tasks.add_task(listener.on_event, event)
    logger.info(f"Accepted {event.kind.value} for {matched}")
    return EventResponse(status="accepted", event=event.kind.value, matched=matched)

@router.post("/webhooks/github", response_model=EventResponse)
async def github_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    listener: TriggerListener = Depends(get_listener),
    x_hub_signature_256: Optional[str] = Header(None),
    x_github_event: Optional[str] = Header(None),
):
    """
    Receive GitHub webhook events.
    """
    # Raw body for signature verification
    body = await request.body()
    if not verify_signature(body, x_hub_signature_256, get_settings().github_webhook_secret):
        raise HTTPException(status_code=401, detail="Invalid signature")

    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    if x_github_event == "ping":
        return EventResponse(status="pong", event="ping")

    try:
        event = event_from_github(x_github_event, payload)
    except (AttributeError, TypeError, ValueError) as e:
        logger.error(f"Failed to process {x_github_event} payload: {e}")
        return EventResponse(status="error", event=x_github_event or "unknown", reason=str(e))
    if event is None:
        return EventResponse(status="ignored", event=x_github_event or "unknown")

    return await dispatch_event(event, listener, background_tasks)

@router.post("/events", response_model=EventResponse)
async def receive_event(
    body: EventRequest,
    background_tasks: BackgroundTasks,
    wait: bool = False,
    listener: TriggerListener = Depends(get_listener),
):
    """Deliver a generic event. With `wait=true` inline runs complete before responding."""
    event = Event(kind=body.kind, metadata=body.metadata)
    return await dispatch_event(event, listener, background_tasks, wait=wait)
