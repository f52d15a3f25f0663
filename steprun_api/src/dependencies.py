from fastapi import Request

from steprun_controller.src.services.status_reporter import DatabaseRunSink
from steprun_controller.src.services.trigger import TriggerListener

def get_listener(request: Request) -> TriggerListener:
    return request.app.state.listener

def get_run_store(request: Request) -> DatabaseRunSink:
    return request.app.state.run_store
