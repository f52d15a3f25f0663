"""
Pipeline definition models.
"""

from pydantic import BaseModel, Field, model_validator
from typing import Callable, Dict, FrozenSet, List, Optional, Tuple

from steprun_controller.src.models.event import Event, EventKind
from steprun_controller.src.models.step import StepDescriptor

class Trigger(BaseModel):
    """
    Declarative trigger: event kinds plus optional branch filters.

    `branches` applies to every kind; `branch_filters` applies only to the
    kind it is keyed by.
    """
    kinds: FrozenSet[EventKind]
    branches: Optional[Tuple[str, ...]] = None
    branch_filters: Dict[EventKind, Tuple[str, ...]] = Field(default_factory=dict)

    class Config:
        frozen = True

    def matches(self, event: Event) -> bool:
        if event.kind not in self.kinds:
            return False
        if self.branches is not None and event.branch not in self.branches:
            return False
        allowed = self.branch_filters.get(event.kind)
        if allowed is not None and event.branch not in allowed:
            return False
        return True

    def __call__(self, event: Event) -> bool:
        return self.matches(event)

    def describe(self) -> dict:
        return {
            "kinds": sorted(k.value for k in self.kinds),
            "branches": list(self.branches) if self.branches is not None else None,
            "branch_filters": {
                kind.value: list(names)
                for kind, names in sorted(self.branch_filters.items(), key=lambda item: item[0].value)
            },
        }

class PipelineDefinition(BaseModel):
    name: str = "Unnamed Pipeline"
    trigger: Callable[[Event], bool]
    steps: Tuple[StepDescriptor, ...]

    class Config:
        frozen = True

    @model_validator(mode="after")
    def check_steps(self):
        if not self.steps:
            raise ValueError("Pipeline must have at least one step")
        seen = set()
        for step in self.steps:
            if step.name in seen:
                raise ValueError(f"Duplicate step name '{step.name}'")
            seen.add(step.name)
        return self

    @property
    def step_names(self) -> List[str]:
        return [s.name for s in self.steps]
