"""
Planner error hierarchy.

Hierarchy:
    PlannerError
    ├── ValidationError          : input rejected before it reaches storage
    ├── NotFoundError            : task id unknown to the caller's view
    ├── ConsistencyError         : storage did not honour a delete
    └── BackendUnavailableError  : native storage failed to initialise

Every error keeps its keyword context so the presentation layer (and the log)
can tell failures apart without parsing messages.
"""
from __future__ import annotations

from typing import Any, Dict


class PlannerError(Exception):
    """Base error for the task persistence layer."""

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.context: Dict[str, Any] = context
        super().__init__(message)

    @property
    def task_id(self) -> Any:
        return self.context.get("task_id")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": {k: str(v) for k, v in self.context.items()},
        }

    def __repr__(self) -> str:
        parts = [f"{self.__class__.__name__}: {self.message}"]
        if self.context:
            parts.extend(f"{key}={value!r}" for key, value in self.context.items())
        return " | ".join(parts)


class ValidationError(PlannerError):
    pass


class NotFoundError(PlannerError):
    pass


class ConsistencyError(PlannerError):
    pass


class BackendUnavailableError(PlannerError):
    pass


__all__ = [
    "BackendUnavailableError",
    "ConsistencyError",
    "NotFoundError",
    "PlannerError",
    "ValidationError",
]
