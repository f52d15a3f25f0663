"""
Wire registry, pipelines, sinks and listener together from settings.
"""

import logging
from typing import Optional, Tuple

from steprun_controller.src.config import Settings
from steprun_controller.src.handlers import build_registry
from steprun_controller.src.services import queue
from steprun_controller.src.services.executor import Executor
from steprun_controller.src.services.pipeline_parser import load_pipelines
from steprun_controller.src.services.status_reporter import DatabaseRunSink, LoggingRunSink
from steprun_controller.src.services.trigger import TriggerListener

logger = logging.getLogger(__name__)

def build_listener(
    settings: Settings,
    dispatch: Optional[str] = None,
) -> Tuple[TriggerListener, DatabaseRunSink]:
    """
    Load pipelines once at start-up and build the listener that serves them.
    Raises DefinitionError if any pipeline file is invalid.
    """
    registry = build_registry(settings)
    pipelines = load_pipelines(settings.pipelines_path, registry)

    store = DatabaseRunSink(settings.database_url)
    store.init_db()

    executor = Executor(registry, sinks=[LoggingRunSink(), store])
    listener = TriggerListener(
        pipelines,
        executor=executor,
        dispatch=dispatch or settings.dispatch_mode,
        enqueue=queue.enqueue_run,
    )
    logger.info(
        f"Serving {len(pipelines)} pipeline(s) with handlers {registry.ids()} "
        f"({listener.dispatch} dispatch)"
    )
    return listener, store
