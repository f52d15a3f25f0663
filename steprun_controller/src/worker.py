"""
Queue worker - pulls runs from Redis and executes them.
"""

import asyncio
import logging
from typing import Any, Dict

from steprun_controller.src.models.event import Event
from steprun_controller.src.services import queue
from steprun_controller.src.services.trigger import TriggerListener

logger = logging.getLogger(__name__)

async def process_job(listener: TriggerListener, job: Dict[str, Any]) -> str:
    """Run one dequeued job. Returns the final status written to Redis."""
    run_id = job.get("run_id", "unknown")
    pipeline = listener.get_pipeline(job.get("pipeline", ""))
    if pipeline is None:
        logger.error(f"Run {run_id} refers to unknown pipeline '{job.get('pipeline')}'")
        await queue.update_run_status(run_id, "error")
        return "error"

    event = Event.model_validate(job["event"])
    await queue.update_run_status(run_id, "running")
    try:
        record = await listener.executor.run(pipeline, event, run_id=run_id)
    except Exception:
        await queue.update_run_status(run_id, "error")
        raise

    status = record.status.value
    await queue.update_run_status(run_id, status)
    return status

async def worker_loop(listener: TriggerListener, concurrency: int = 4):
    """Main worker loop."""
    logger.info(f"Worker started with concurrency {concurrency}, waiting for jobs...")
    slots = asyncio.Semaphore(concurrency)
    running = set()

    async def guarded(job):
        try:
            await process_job(listener, job)
        except Exception:
            logger.exception(f"Failed to execute run {job.get('run_id', 'unknown')}")
        finally:
            slots.release()

    while True:
        await slots.acquire()
        try:
            job = await queue.dequeue_run()
        except Exception as e:
            slots.release()
            logger.exception(f"Worker error: {e}")
            await asyncio.sleep(5)
            continue

        if job is None:
            slots.release()
            continue

        logger.info(f"Received job for run {job.get('run_id', 'unknown')}")
        task = asyncio.create_task(guarded(job))
        running.add(task)
        task.add_done_callback(running.discard)

def run_worker(listener: TriggerListener, concurrency: int = 4):
    """Entry point for worker."""
    try:
        asyncio.run(worker_loop(listener, concurrency))
    except KeyboardInterrupt:
        logger.info("Worker shutting down...")
