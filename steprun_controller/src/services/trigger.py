"""
Trigger listener - turns inbound events into pipeline runs.
"""

import asyncio
import logging
import uuid
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from steprun_controller.src.errors import DefinitionError
from steprun_controller.src.models.event import Event
from steprun_controller.src.models.pipeline import PipelineDefinition
from steprun_controller.src.models.step import RunRecord
from steprun_controller.src.services.executor import Executor

logger = logging.getLogger(__name__)

DISPATCH_MODES = ("inline", "queue")

Enqueue = Callable[[str, str, Event], Awaitable[None]]

class TriggerListener:
    def __init__(
        self,
        pipelines: Sequence[PipelineDefinition],
        executor: Optional[Executor] = None,
        dispatch: str = "inline",
        enqueue: Optional[Enqueue] = None,
    ):
        if dispatch not in DISPATCH_MODES:
            raise ValueError(f"Unknown dispatch mode '{dispatch}'")
        if dispatch == "inline" and executor is None:
            raise ValueError("Inline dispatch needs an executor")
        if dispatch == "queue" and enqueue is None:
            raise ValueError("Queue dispatch needs an enqueue function")

        self._pipelines: Dict[str, PipelineDefinition] = {}
        for pipeline in pipelines:
            if pipeline.name in self._pipelines:
                raise DefinitionError(f"Duplicate pipeline name '{pipeline.name}'")
            self._pipelines[pipeline.name] = pipeline

        self.executor = executor
        self.dispatch = dispatch
        self.enqueue = enqueue

    @property
    def pipelines(self) -> List[PipelineDefinition]:
        return list(self._pipelines.values())

    def get_pipeline(self, name: str) -> Optional[PipelineDefinition]:
        return self._pipelines.get(name)

    def match(self, event: Event) -> List[PipelineDefinition]:
        matched = []
        for pipeline in self._pipelines.values():
            try:
                if pipeline.trigger(event):
                    matched.append(pipeline)
            except Exception:
                logger.exception(f"Trigger of '{pipeline.name}' raised, treating as no match")
        return matched

    async def on_event(self, event: Event) -> List[RunRecord]:
        """
        Start every pipeline whose trigger matches the event.
        Inline dispatch returns the run records; queue dispatch returns [].
        """
        matched = self.match(event)
        if not matched:
            logger.info(f"No pipeline matches event {event.kind.value}")
            return []

        if self.dispatch == "queue":
            for pipeline in matched:
                run_id = str(uuid.uuid4())
                await self.enqueue(run_id, pipeline.name, event)
                logger.info(f"Queued run {run_id} of '{pipeline.name}'")
            return []

        records = await asyncio.gather(
            *(self.executor.run(pipeline, event) for pipeline in matched)
        )
        return list(records)
