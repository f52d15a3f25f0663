from steprun_controller.src.services.registry import HandlerRegistry
from steprun_controller.src.services.executor import Executor
from steprun_controller.src.services.trigger import TriggerListener
from steprun_controller.src.services.pipeline_parser import (
    parse_pipeline_config,
    parse_pipeline_dict,
    load_pipeline_file,
    load_pipelines,
)
from steprun_controller.src.services.status_reporter import (
    LoggingRunSink,
    DatabaseRunSink,
)

__all__ = [
    "HandlerRegistry",
    "Executor",
    "TriggerListener",
    "parse_pipeline_config",
    "parse_pipeline_dict",
    "load_pipeline_file",
    "load_pipelines",
    "LoggingRunSink",
    "DatabaseRunSink",
]
