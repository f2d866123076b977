"""Dependency-gated task dispatch for a fixed pool of worker threads.

Callers ``submit`` payloads with optional prerequisite ids; the dispatcher
holds each task until every prerequisite has completed, then hands it to the
ready queue consumed by the worker pool. A failed task fails all of its
transitive dependents without running them.
"""

from fleet_dispatch.scheduler.dispatcher import Dispatcher
from fleet_dispatch.scheduler.errors import (
    ConfigError,
    CycleError,
    DispatchError,
    DuplicateTaskError,
    ExecutionFault,
    QueueClosedError,
    StateTransitionError,
    SubmitError,
    UnknownTaskError,
)
from fleet_dispatch.scheduler.graph import DependencyGraph
from fleet_dispatch.scheduler.models import (
    DispatchSummary,
    Task,
    TaskOutcome,
    TaskState,
    WorkerRunSummary,
)
from fleet_dispatch.scheduler.pool import WorkerPool
from fleet_dispatch.scheduler.ready_queue import ReadyQueue

__all__ = [
    "ConfigError",
    "CycleError",
    "DependencyGraph",
    "DispatchError",
    "DispatchSummary",
    "Dispatcher",
    "DuplicateTaskError",
    "ExecutionFault",
    "QueueClosedError",
    "ReadyQueue",
    "StateTransitionError",
    "SubmitError",
    "Task",
    "TaskOutcome",
    "TaskState",
    "UnknownTaskError",
    "WorkerPool",
    "WorkerRunSummary",
]
