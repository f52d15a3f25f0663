"""
Redis queue for runs dispatched to the worker.
"""

import redis.asyncio as redis
import json
from typing import Dict, Any, Optional
from datetime import datetime, timezone

from steprun_controller.src.config import get_settings
from steprun_controller.src.models.event import Event

settings = get_settings()

RUN_QUEUE = "steprun:jobs"
RUN_STATUS = "steprun:status"

async def get_redis_client() -> redis.Redis:
    """Get async Redis client."""
    return redis.from_url(settings.redis_url, decode_responses=True)

async def enqueue_run(run_id: str, pipeline: str, event: Event):
    """Add a pipeline run to the processing queue."""
    client = await get_redis_client()

    job = {
        "run_id": run_id,
        "pipeline": pipeline,
        "event": event.model_dump(mode="json"),
        "queued_at": datetime.now(timezone.utc).isoformat(),
    }

    try:
        await client.lpush(RUN_QUEUE, json.dumps(job))
        await client.hset(RUN_STATUS, run_id, "queued")
    finally:
        await client.aclose()

async def dequeue_run(timeout: int = 5) -> Optional[Dict[str, Any]]:
    """
    Get next pipeline run from queue.
    Blocks for `timeout` seconds if queue is empty.
    """
    client = await get_redis_client()

    try:
        result = await client.brpop(RUN_QUEUE, timeout=timeout)
        if result:
            _, job_data = result
            return json.loads(job_data)
        return None
    finally:
        await client.aclose()

async def update_run_status(run_id: str, status: str):
    client = await get_redis_client()

    try:
        await client.hset(RUN_STATUS, run_id, status)
    finally:
        await client.aclose()

async def get_run_status(run_id: str) -> Optional[str]:
    client = await get_redis_client()

    try:
        return await client.hget(RUN_STATUS, run_id)
    finally:
        await client.aclose()

async def get_queue_length() -> int:
    client = await get_redis_client()

    try:
        return await client.llen(RUN_QUEUE)
    finally:
        await client.aclose()
