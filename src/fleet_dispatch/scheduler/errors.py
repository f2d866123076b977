"""Error taxonomy for task submission, scheduling and execution."""

from __future__ import annotations


class DispatchError(RuntimeError):
    """Base class for dispatcher errors."""


class SubmitError(DispatchError):
    """Submission rejected before anything was queued."""


class UnknownTaskError(SubmitError):
    """Reference to a task id that was never registered."""

    def __init__(self, task_id: int) -> None:
        super().__init__(f"Unknown task id: {task_id}")
        self.task_id = task_id


class DuplicateTaskError(SubmitError):
    """Task id already submitted."""

    def __init__(self, task_id: int) -> None:
        super().__init__(f"Task id already submitted: {task_id}")
        self.task_id = task_id


class CycleError(SubmitError):
    """Dependency edge would close a cycle."""

    def __init__(self, prerequisite_id: int, dependent_id: int) -> None:
        super().__init__(
            f"Dependency {prerequisite_id} -> {dependent_id} would create a cycle",
        )
        self.prerequisite_id = prerequisite_id
        self.dependent_id = dependent_id


class QueueClosedError(SubmitError):
    """Submission after shutdown."""


class ConfigError(DispatchError, ValueError):
    """Invalid dispatcher or pool configuration."""


class ExecutionFault(DispatchError):
    """Task payload failed during execution."""

    def __init__(self, task_id: int | None, message: str) -> None:
        super().__init__(message)
        self.task_id = task_id


class StateTransitionError(DispatchError):
    """Task state moved backwards or left a terminal state."""
