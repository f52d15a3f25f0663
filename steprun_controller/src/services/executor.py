"""
Pipeline executor - runs pipeline steps in order through their handlers.
"""

import asyncio
import copy
import inspect
import logging
import time
import uuid
from typing import Any, List, Optional, Sequence

from steprun_controller.src.errors import StepFailure, StepTimeout, UnknownHandlerError
from steprun_controller.src.handlers.base import CancelSignal, coerce_outcome
from steprun_controller.src.models.event import Event
from steprun_controller.src.models.pipeline import PipelineDefinition
from steprun_controller.src.models.step import RunRecord, StepDescriptor, StepResult, StepStatus
from steprun_controller.src.services.registry import HandlerRegistry

logger = logging.getLogger(__name__)

# How long a cancelled coroutine handler gets to unwind before we move on
CANCEL_GRACE_SECONDS = 5.0

class Executor:
    """
    Runs one pipeline per call to `run`. Holds no per-run state, so any number
    of runs may share one executor concurrently.
    """

    def __init__(self, registry: HandlerRegistry, sinks: Sequence[Any] = ()):
        registry.freeze()
        self.registry = registry
        self.sinks = list(sinks)

    async def run(
        self,
        pipeline: PipelineDefinition,
        event: Event,
        run_id: Optional[str] = None,
    ) -> RunRecord:
        run_id = run_id or str(uuid.uuid4())
        steps = pipeline.steps
        results: List[StepResult] = []

        logger.info(f"Starting run {run_id} of '{pipeline.name}' ({event.kind.value}) with {len(steps)} steps")

        for i, step in enumerate(steps):
            step_event = event.for_step(run_id, pipeline.name, step.name, i)
            result = await self.execute_step(step, step_event)
            results.append(result)
            if not result.succeeded:
                break  # Stop on first failure

        record = RunRecord(
            pipeline=pipeline.name,
            event_kind=event.kind,
            results=tuple(results),
            skipped=tuple(s.name for s in steps[len(results):]),
        )
        logger.info(f"Run {run_id} of '{pipeline.name}' finished with status: {record.status.value}")

        await self._export(run_id, event, record)
        return record

    async def execute_step(self, step: StepDescriptor, event: Event) -> StepResult:
        """Run a single step to a terminal status. Never raises for handler errors."""
        run_id = event.metadata.get("run_id", "adhoc")
        try:
            handler = self.registry.resolve(step.handler_id)
        except UnknownHandlerError as e:
            logger.error(f"Run {run_id}: step '{step.name}': {e}")
            return StepResult(step_name=step.name, status=StepStatus.FAILED, exit_info={"error": str(e)})

        logger.info(f"Run {run_id}: executing step '{step.name}' ({step.handler_id})")
        cancel = CancelSignal(step.timeout)
        started = time.monotonic()

        task = asyncio.ensure_future(
            self._invoke(handler, copy.deepcopy(step.config), event, cancel)
        )
        done, _ = await asyncio.wait({task}, timeout=step.timeout)

        if task not in done:
            cancel.set()
            task.cancel()
            await asyncio.wait({task}, timeout=CANCEL_GRACE_SECONDS)
            timeout = StepTimeout(step.name, step.timeout)
            logger.error(f"Run {run_id}: {timeout}")
            return StepResult(step_name=step.name, status=StepStatus.TIMED_OUT, exit_info=timeout.exit_info)

        elapsed = time.monotonic() - started
        try:
            outcome = coerce_outcome(task.result())
        except StepFailure as e:
            logger.error(f"Run {run_id}: step '{step.name}' failed after {elapsed:.1f}s: {e}")
            return StepResult(step_name=step.name, status=StepStatus.FAILED, exit_info=e.exit_info)
        except Exception as e:
            logger.exception(f"Run {run_id}: step '{step.name}' failed with exception")
            return StepResult(
                step_name=step.name,
                status=StepStatus.FAILED,
                exit_info={"error": f"{type(e).__name__}: {e}"},
            )

        if outcome.ok:
            logger.info(f"Run {run_id}: step '{step.name}' succeeded in {elapsed:.1f}s")
            return StepResult(step_name=step.name, status=StepStatus.SUCCEEDED, exit_info=outcome.exit_info)

        logger.error(f"Run {run_id}: step '{step.name}' failed after {elapsed:.1f}s")
        return StepResult(step_name=step.name, status=StepStatus.FAILED, exit_info=outcome.exit_info)

    async def _invoke(self, handler: Any, config: dict, event: Event, cancel: CancelSignal) -> Any:
        execute = handler if not hasattr(handler, "execute") else handler.execute
        if inspect.iscoroutinefunction(execute):
            return await execute(config, event, cancel)
        result = await asyncio.to_thread(execute, config, event, cancel)
        if inspect.isawaitable(result):
            return await result
        return result

    async def _export(self, run_id: str, event: Event, record: RunRecord):
        for sink in self.sinks:
            try:
                if inspect.iscoroutinefunction(sink.export):
                    await sink.export(run_id, event, record)
                else:
                    # Blocking sinks run off the event loop
                    await asyncio.to_thread(sink.export, run_id, event, record)
            except Exception:
                logger.exception(f"Failed to export run {run_id} to {type(sink).__name__}")
