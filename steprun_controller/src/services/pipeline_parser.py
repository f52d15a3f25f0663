"""
Pipeline YAML parser and validator.
"""

import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml
from pydantic import ValidationError

from steprun_controller.src.errors import DefinitionError
from steprun_controller.src.models.event import EventKind
from steprun_controller.src.models.pipeline import PipelineDefinition, Trigger
from steprun_controller.src.models.step import StepDescriptor

logger = logging.getLogger(__name__)

# `on: pull_request` without types, as CI platforms interpret it
PULL_REQUEST_DEFAULT_KINDS = frozenset({
    EventKind.PULL_REQUEST_OPENED,
    EventKind.PULL_REQUEST_UPDATED,
    EventKind.PULL_REQUEST_REOPENED,
})

PULL_REQUEST_TYPES = {
    "opened": EventKind.PULL_REQUEST_OPENED,
    "synchronize": EventKind.PULL_REQUEST_UPDATED,
    "updated": EventKind.PULL_REQUEST_UPDATED,
    "edited": EventKind.PULL_REQUEST_UPDATED,
    "reopened": EventKind.PULL_REQUEST_REOPENED,
    "closed": EventKind.PULL_REQUEST_CLOSED,
}

DURATION_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([smh]?)\s*$")
DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600}

def parse_pipeline_config(yaml_content: str, registry=None, name: Optional[str] = None) -> PipelineDefinition:
    """Parse pipeline YAML configuration from string."""
    try:
        config = yaml.safe_load(yaml_content)
    except yaml.YAMLError as e:
        raise DefinitionError(f"Invalid YAML: {e}")

    return validate_config(config, registry, name)

def parse_pipeline_dict(config: Dict[str, Any], registry=None, name: Optional[str] = None) -> PipelineDefinition:
    """Validate pipeline configuration from dict."""
    return validate_config(config, registry, name)

def load_pipeline_file(path: Union[str, Path], registry=None) -> PipelineDefinition:
    path = Path(path)
    try:
        content = path.read_text()
    except OSError as e:
        raise DefinitionError(f"Cannot read pipeline file {path}: {e}")

    try:
        return parse_pipeline_config(content, registry, name=path.stem)
    except DefinitionError as e:
        raise DefinitionError(f"{path}: {e}") from e

def load_pipelines(path: Union[str, Path], registry=None) -> List[PipelineDefinition]:
    """Load one pipeline file, or every *.yml / *.yaml file in a directory."""
    path = Path(path)
    if path.is_dir():
        files = sorted(p for p in path.iterdir() if p.suffix in (".yml", ".yaml"))
    elif path.exists():
        files = [path]
    else:
        raise DefinitionError(f"Pipeline path {path} does not exist")

    pipelines = [load_pipeline_file(f, registry) for f in files]

    names = [p.name for p in pipelines]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise DefinitionError(f"Duplicate pipeline names: {', '.join(duplicates)}")

    logger.info(f"Loaded {len(pipelines)} pipeline(s) from {path}")
    return pipelines

def validate_config(config: Any, registry=None, name: Optional[str] = None) -> PipelineDefinition:
    """Validate pipeline configuration structure."""
    if not config:
        raise DefinitionError("Empty pipeline configuration")

    if not isinstance(config, dict):
        raise DefinitionError("Pipeline configuration must be a dictionary")

    pipeline_name = config.get("name", name or "Unnamed Pipeline")
    if not isinstance(pipeline_name, str):
        raise DefinitionError("Pipeline 'name' must be a string")

    trigger = parse_trigger(_get_trigger_section(config))

    if "steps" not in config:
        raise DefinitionError("Pipeline must have 'steps' defined")

    steps = config["steps"]
    if not isinstance(steps, list):
        raise DefinitionError("Pipeline 'steps' must be a list")

    if len(steps) == 0:
        raise DefinitionError("Pipeline must have at least one step")

    descriptors = [validate_step(step, i, registry) for i, step in enumerate(steps)]

    seen = set()
    for step in descriptors:
        if step.name in seen:
            raise DefinitionError(f"Duplicate step name '{step.name}'")
        seen.add(step.name)

    return PipelineDefinition(name=pipeline_name, trigger=trigger, steps=tuple(descriptors))

def validate_step(step: Any, index: int, registry=None) -> StepDescriptor:
    """Validate a single pipeline step."""
    if not isinstance(step, dict):
        raise DefinitionError(f"Step {index} must be a dictionary")

    if "name" not in step:
        raise DefinitionError(f"Step {index} missing 'name'")
    if not isinstance(step["name"], str) or not step["name"]:
        raise DefinitionError(f"Step {index} 'name' must be a non-empty string")

    config = step.get("with", {})
    if config is None:
        config = {}
    if not isinstance(config, dict):
        raise DefinitionError(f"Step {index} 'with' must be a mapping")

    if "run" in step:
        # Shorthand for a shell step
        if "uses" in step:
            raise DefinitionError(f"Step {index} cannot have both 'uses' and 'run'")
        handler_id = "shell"
        config = dict(config, commands=step["run"])
    elif "uses" in step:
        handler_id = step["uses"]
    else:
        raise DefinitionError(f"Step {index} missing 'uses'")

    if not isinstance(handler_id, str) or not handler_id:
        raise DefinitionError(f"Step {index} 'uses' must be a non-empty string")

    if registry is not None and handler_id not in registry:
        raise DefinitionError(f"Step {index} uses unknown handler '{handler_id}'")

    timeout = parse_timeout(step.get("timeout"), index)

    try:
        return StepDescriptor(name=step["name"], handler_id=handler_id, config=config, timeout=timeout)
    except ValidationError as e:
        raise DefinitionError(f"Step {index} is invalid: {e}")

def parse_timeout(value: Any, index: int) -> Optional[float]:
    """Seconds as a number, or a string like '90s', '25m', '1h'."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise DefinitionError(f"Step {index} 'timeout' must be a duration")
    if isinstance(value, (int, float)):
        seconds = float(value)
    elif isinstance(value, str):
        match = DURATION_PATTERN.match(value)
        if not match:
            raise DefinitionError(f"Step {index} 'timeout' {value!r} is not a duration")
        seconds = float(match.group(1)) * DURATION_UNITS[match.group(2)]
    else:
        raise DefinitionError(f"Step {index} 'timeout' must be a duration")

    if seconds < 0:
        raise DefinitionError(f"Step {index} 'timeout' must not be negative")
    return seconds

def _get_trigger_section(config: Dict[str, Any]) -> Any:
    # YAML 1.1 reads a bare `on` key as boolean True
    for key in ("on", True, "trigger"):
        if key in config:
            return config[key]
    raise DefinitionError("Pipeline must have a trigger ('on') defined")

def parse_trigger(section: Any) -> Trigger:
    if isinstance(section, str):
        section = [section]

    if isinstance(section, list):
        kinds = set()
        for entry in section:
            if not isinstance(entry, str):
                raise DefinitionError("Trigger entries must be strings")
            kinds |= _kinds_for(entry, None)
        if not kinds:
            raise DefinitionError("Trigger must name at least one event")
        return Trigger(kinds=frozenset(kinds))

    if isinstance(section, dict):
        kinds = set()
        branch_filters: Dict[EventKind, Tuple[str, ...]] = {}
        for event_name, options in section.items():
            options = options or {}
            if not isinstance(options, dict):
                raise DefinitionError(f"Trigger '{event_name}' options must be a mapping")
            event_kinds = _kinds_for(str(event_name), options.get("types"))
            kinds |= event_kinds
            if "branches" in options:
                if not isinstance(options["branches"], list):
                    raise DefinitionError(f"Trigger '{event_name}' branches must be a list")
                names = tuple(str(b) for b in options["branches"])
                # A filter only narrows the kinds of the event it is declared under
                for kind in event_kinds:
                    branch_filters[kind] = branch_filters.get(kind, ()) + names
        if not kinds:
            raise DefinitionError("Trigger must name at least one event")
        return Trigger(kinds=frozenset(kinds), branch_filters=branch_filters)

    raise DefinitionError("Trigger must be an event name, a list or a mapping")

def _kinds_for(event_name: str, types: Optional[List[str]]) -> set:
    if event_name == "pull_request":
        if types is None:
            return set(PULL_REQUEST_DEFAULT_KINDS)
        kinds = set()
        for t in types:
            if t not in PULL_REQUEST_TYPES:
                raise DefinitionError(f"Unknown pull_request type '{t}'")
            kinds.add(PULL_REQUEST_TYPES[t])
        return kinds

    if types is not None:
        raise DefinitionError(f"Trigger '{event_name}' does not take 'types'")

    try:
        return {EventKind(event_name)}
    except ValueError:
        raise DefinitionError(f"Unknown trigger event '{event_name}'") from None
