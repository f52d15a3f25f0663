from steprun_controller.src.handlers.base import (
    CancelSignal,
    HandlerOutcome,
    StepHandler,
    coerce_outcome,
    run_command,
    workspace_for,
)
from steprun_controller.src.handlers.checkout import CheckoutHandler
from steprun_controller.src.handlers.coverage import CoverageHandler
from steprun_controller.src.handlers.kubernetes import KubernetesJobHandler
from steprun_controller.src.handlers.shell import ShellHandler
from steprun_controller.src.handlers.toolchain import ToolchainHandler
from steprun_controller.src.handlers.upload import UploadHandler
from steprun_controller.src.services.registry import HandlerRegistry

def build_registry(settings) -> HandlerRegistry:
    """Registry with the built-in step handlers, configured from settings."""
    root = settings.workspace_root
    registry = HandlerRegistry()
    registry.register("checkout", CheckoutHandler(root))
    registry.register("toolchain", ToolchainHandler(root))
    registry.register("coverage", CoverageHandler(root))
    registry.register(
        "upload",
        UploadHandler(
            root,
            url=settings.coverage_upload_url,
            token=settings.coverage_upload_token,
        ),
    )
    registry.register("shell", ShellHandler(root))
    registry.register("kubernetes", KubernetesJobHandler(settings.k8s_namespace))
    return registry

__all__ = [
    "CancelSignal",
    "HandlerOutcome",
    "StepHandler",
    "coerce_outcome",
    "run_command",
    "workspace_for",
    "CheckoutHandler",
    "CoverageHandler",
    "KubernetesJobHandler",
    "ShellHandler",
    "ToolchainHandler",
    "UploadHandler",
    "build_registry",
]
