"""
Step handler registry - maps handler ids to step capabilities.
"""

import logging
from typing import Any, Dict, List

from steprun_controller.src.errors import (
    DuplicateHandlerError,
    RegistryFrozenError,
    UnknownHandlerError,
)

logger = logging.getLogger(__name__)

class HandlerRegistry:
    """
    Written once during process initialization, read-only while runs execute.
    Once frozen, lookups need no locking.
    """

    def __init__(self):
        self._handlers: Dict[str, Any] = {}
        self._frozen = False

    def register(self, handler_id: str, capability: Any):
        if self._frozen:
            raise RegistryFrozenError(
                f"Cannot register '{handler_id}': registry is frozen"
            )
        if not handler_id:
            raise ValueError("Handler id must be a non-empty string")
        if not callable(capability) and not callable(getattr(capability, "execute", None)):
            raise TypeError(f"Handler '{handler_id}' is not callable and has no execute()")
        if handler_id in self._handlers:
            raise DuplicateHandlerError(handler_id)

        self._handlers[handler_id] = capability
        logger.debug(f"Registered handler '{handler_id}'")

    def resolve(self, handler_id: str) -> Any:
        try:
            return self._handlers[handler_id]
        except KeyError:
            raise UnknownHandlerError(handler_id) from None

    def freeze(self):
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def ids(self) -> List[str]:
        return sorted(self._handlers)

    def __contains__(self, handler_id: str) -> bool:
        return handler_id in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)
