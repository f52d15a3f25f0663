"""
Steprun Controller - command line entry point.
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from steprun_controller.src.bootstrap import build_listener
from steprun_controller.src.config import get_settings
from steprun_controller.src.errors import DefinitionError
from steprun_controller.src.handlers import build_registry
from steprun_controller.src.models.event import Event, EventKind
from steprun_controller.src.models.step import RunRecord, StepStatus
from steprun_controller.src.services.executor import Executor
from steprun_controller.src.services.pipeline_parser import load_pipeline_file, load_pipelines
from steprun_controller.src.services.status_reporter import LoggingRunSink
from steprun_controller.src.worker import run_worker

logger = logging.getLogger(__name__)
console = Console()

app = typer.Typer(add_completion=False, help="Event-triggered step pipeline runner.")

STATUS_STYLES = {
    StepStatus.SUCCEEDED: "green",
    StepStatus.FAILED: "red",
    StepStatus.TIMED_OUT: "yellow",
}

def configure_logging(level: str):
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

def parse_meta(pairs: List[str]) -> dict:
    metadata = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got {pair!r}", param_hint="--meta")
        metadata[key] = value
    return metadata

def render_record(record: RunRecord):
    table = Table(title=f"{record.pipeline} ({record.event_kind.value})")
    table.add_column("Step")
    table.add_column("Status")
    table.add_column("Exit info", overflow="fold")
    for result in record.results:
        style = STATUS_STYLES.get(result.status, "")
        table.add_row(result.step_name, f"[{style}]{result.status.value}[/]", str(result.exit_info)[:200])
    for name in record.skipped:
        table.add_row(name, "[dim]skipped[/]", "")
    console.print(table)

@app.callback()
def main(log_level: Optional[str] = typer.Option(None, help="Logging level (default from settings).")):
    configure_logging(log_level or get_settings().log_level)

@app.command()
def run(
    pipeline_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Pipeline YAML file."),
    event: EventKind = typer.Option(EventKind.MANUAL, help="Event kind to deliver."),
    meta: List[str] = typer.Option([], "--meta", help="Event metadata as key=value (repeatable)."),
    force: bool = typer.Option(False, help="Run even if the trigger does not match."),
):
    """Run one pipeline inline and print its run record."""
    settings = get_settings()
    registry = build_registry(settings)
    try:
        pipeline = load_pipeline_file(pipeline_file, registry)
    except DefinitionError as e:
        console.print(f"[red]Invalid pipeline:[/] {e}")
        raise typer.Exit(2)

    incoming = Event(kind=event, metadata=parse_meta(meta))
    if not force and not pipeline.trigger(incoming):
        console.print(f"Trigger of '{pipeline.name}' does not match {event.value}; nothing to run.")
        raise typer.Exit(0)

    executor = Executor(registry, sinks=[LoggingRunSink()])
    record = asyncio.run(executor.run(pipeline, incoming))
    render_record(record)
    if not record.succeeded:
        raise typer.Exit(1)

@app.command()
def validate(path: Path = typer.Argument(..., exists=True, help="Pipeline file or directory.")):
    """Validate pipeline definitions without running them."""
    registry = build_registry(get_settings())
    try:
        pipelines = load_pipelines(path, registry)
    except DefinitionError as e:
        console.print(f"[red]Invalid:[/] {e}")
        raise typer.Exit(2)

    for pipeline in pipelines:
        console.print(f"[green]ok[/] {pipeline.name}: {', '.join(pipeline.step_names)}")

@app.command()
def worker():
    """Consume queued runs from Redis."""
    settings = get_settings()
    logger.info("Starting Steprun worker")
    logger.info(f"Redis URL: {settings.redis_url}")

    try:
        listener, _ = build_listener(settings, dispatch="inline")
    except DefinitionError as e:
        logger.error(f"Failed to load pipelines: {e}")
        raise typer.Exit(1)

    run_worker(listener, settings.worker_concurrency)

if __name__ == "__main__":
    app()
