"""
Error taxonomy for pipeline definitions, handler lookup and step execution.
"""

from typing import Any, Optional

class StepRunError(Exception):
    """Base class for all steprun errors."""
    pass

class DefinitionError(StepRunError):
    """Raised when a pipeline definition is invalid. Fatal, raised before any run."""
    pass

class DuplicateHandlerError(StepRunError):
    """Raised when a handler id is registered twice."""

    def __init__(self, handler_id: str):
        super().__init__(f"Handler '{handler_id}' is already registered")
        self.handler_id = handler_id

class UnknownHandlerError(StepRunError):
    """Raised when a handler id does not resolve in the registry."""

    def __init__(self, handler_id: str):
        super().__init__(f"No handler registered for '{handler_id}'")
        self.handler_id = handler_id

class RegistryFrozenError(StepRunError):
    """Raised when registering into a registry that is already serving runs."""
    pass

class StepFailure(StepRunError):
    """
    Raised by a step handler to report a non-success outcome.
    `exit_info` ends up verbatim in the step result.
    """

    def __init__(self, message: str, exit_info: Optional[Any] = None):
        super().__init__(message)
        self.exit_info = exit_info if exit_info is not None else message

class StepTimeout(StepFailure):
    """A step exceeded its configured timeout."""

    def __init__(self, step_name: str, timeout: float):
        super().__init__(
            f"Step '{step_name}' timed out after {timeout}s",
            {"reason": "timeout", "timeout": timeout},
        )
        self.step_name = step_name
        self.timeout = timeout
