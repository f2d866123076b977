"""Domain models for dispatcher tasks and run accounting."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from fleet_dispatch.scheduler.errors import ExecutionFault, StateTransitionError

Payload = Callable[[], object]


class TaskState(str, Enum):
    """Task lifecycle states."""

    PENDING = "pending"
    READY = "ready"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class TaskOutcome(str, Enum):
    """Execution outcome reported by a worker."""

    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATES = frozenset({TaskState.COMPLETED, TaskState.FAILED})

_ALLOWED_TRANSITIONS: dict[TaskState, frozenset[TaskState]] = {
    TaskState.PENDING: frozenset({TaskState.READY, TaskState.FAILED}),
    TaskState.READY: frozenset({TaskState.RUNNING}),
    TaskState.RUNNING: frozenset({TaskState.COMPLETED, TaskState.FAILED}),
    TaskState.COMPLETED: frozenset(),
    TaskState.FAILED: frozenset(),
}


def check_transition(task_id: int, current: TaskState, target: TaskState) -> None:
    """Raise if ``current -> target`` is not a forward lifecycle step."""

    if target not in _ALLOWED_TRANSITIONS[current]:
        raise StateTransitionError(
            f"Task {task_id}: illegal transition {current.value} -> {target.value}",
        )


@dataclass(slots=True)
class Task:
    """Schedulable unit of work owned by the dispatcher."""

    task_id: int
    payload: Payload
    name: str | None = None
    prerequisites: tuple[int, ...] = ()
    state: TaskState = TaskState.PENDING
    error: str | None = None

    @property
    def label(self) -> str:
        return self.name or f"task-{self.task_id}"

    def transition(self, target: TaskState, *, error: str | None = None) -> None:
        check_transition(self.task_id, self.state, target)
        self.state = target
        if error is not None:
            self.error = error

    def execute(self) -> object:
        """Run the payload; any exception surfaces as :class:`ExecutionFault`.

        ``SystemExit`` and other ``BaseException`` subclasses raised by a
        payload are faults too; only ``KeyboardInterrupt`` propagates.
        """

        try:
            return self.payload()
        except ExecutionFault as fault:
            if fault.task_id is None:
                fault.task_id = self.task_id
            raise
        except KeyboardInterrupt:
            raise
        except BaseException as error:
            raise ExecutionFault(
                self.task_id,
                f"{type(error).__name__}: {error}",
            ) from error


@dataclass(slots=True)
class DispatchSummary:
    """Per-state task counts for reporting."""

    submitted: int = 0
    pending: int = 0
    ready: int = 0
    running: int = 0
    completed: int = 0
    failed: int = 0
    failed_task_ids: list[int] = field(default_factory=list)

    @property
    def all_terminal(self) -> bool:
        return self.completed + self.failed == self.submitted


@dataclass(slots=True)
class WorkerRunSummary:
    """Aggregate worker counters for CLI reporting."""

    processed: int = 0
    succeeded: int = 0
    failed: int = 0

    def add(self, other: WorkerRunSummary) -> None:
        self.processed += other.processed
        self.succeeded += other.succeeded
        self.failed += other.failed
