"""Task dependency graph with cycle detection and failure propagation.

The graph is not thread-safe on its own; :class:`~fleet_dispatch.scheduler.dispatcher.Dispatcher`
serializes every call under its lock.
"""

from __future__ import annotations

from collections import deque

from fleet_dispatch.scheduler.errors import CycleError, StateTransitionError, UnknownTaskError
from fleet_dispatch.scheduler.models import TERMINAL_STATES, TaskState


class DependencyGraph:
    """Directed acyclic graph of ``prerequisite -> dependent`` edges.

    Besides the edges the graph keeps the scheduling record of each node:
    ``pending`` until released, ``ready`` once handed to the queue, then a
    terminal ``completed``/``failed`` state. Running is tracked by the task
    itself; for readiness purposes a running prerequisite is just "not
    completed yet".
    """

    def __init__(self) -> None:
        self._prerequisites: dict[int, list[int]] = {}
        self._dependents: dict[int, list[int]] = {}
        self._states: dict[int, TaskState] = {}

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._states

    def __len__(self) -> int:
        return len(self._states)

    def add_task(self, task_id: int) -> None:
        if task_id in self._states:
            return
        self._prerequisites[task_id] = []
        self._dependents[task_id] = []
        self._states[task_id] = TaskState.PENDING

    def add_dependency(self, prerequisite_id: int, dependent_id: int) -> None:
        """Add ``prerequisite_id -> dependent_id``; graph is unchanged on error."""

        self._require(prerequisite_id)
        self._require(dependent_id)
        if prerequisite_id in self._prerequisites[dependent_id]:
            return
        if prerequisite_id == dependent_id or self._reachable(dependent_id, prerequisite_id):
            raise CycleError(prerequisite_id, dependent_id)
        self._prerequisites[dependent_id].append(prerequisite_id)
        self._dependents[prerequisite_id].append(dependent_id)

    def discard_task(self, task_id: int) -> None:
        """Remove a task nothing depends on, together with its incoming edges."""

        self._require(task_id)
        if self._dependents[task_id]:
            raise StateTransitionError(f"Task {task_id} has dependents and cannot be discarded")
        for prerequisite_id in self._prerequisites.pop(task_id):
            self._dependents[prerequisite_id].remove(task_id)
        del self._dependents[task_id]
        del self._states[task_id]

    def is_ready(self, task_id: int) -> bool:
        self._require(task_id)
        if self._states[task_id] is not TaskState.PENDING:
            return False
        return all(
            self._states[prerequisite_id] is TaskState.COMPLETED
            for prerequisite_id in self._prerequisites[task_id]
        )

    def mark_ready(self, task_id: int) -> None:
        if not self.is_ready(task_id):
            raise StateTransitionError(f"Task {task_id} is not ready for dispatch")
        self._states[task_id] = TaskState.READY

    def mark_completed(self, task_id: int) -> list[int]:
        """Record completion and return dependents that just became ready."""

        self._set_terminal(task_id, TaskState.COMPLETED)
        return [
            dependent_id
            for dependent_id in self._dependents[task_id]
            if self.is_ready(dependent_id)
        ]

    def mark_failed(self, task_id: int) -> list[int]:
        """Record failure and fail every non-terminal downstream task.

        Returns the cascaded task ids in breadth-first order.
        """

        self._set_terminal(task_id, TaskState.FAILED)
        cascaded: list[int] = []
        frontier = deque(self._dependents[task_id])
        while frontier:
            dependent_id = frontier.popleft()
            if self._states[dependent_id] in TERMINAL_STATES:
                continue
            self._states[dependent_id] = TaskState.FAILED
            cascaded.append(dependent_id)
            frontier.extend(self._dependents[dependent_id])
        return cascaded

    def state(self, task_id: int) -> TaskState:
        self._require(task_id)
        return self._states[task_id]

    def prerequisites(self, task_id: int) -> tuple[int, ...]:
        self._require(task_id)
        return tuple(self._prerequisites[task_id])

    def dependents(self, task_id: int) -> tuple[int, ...]:
        self._require(task_id)
        return tuple(self._dependents[task_id])

    def edges(self) -> list[tuple[int, int]]:
        return [
            (prerequisite_id, dependent_id)
            for prerequisite_id, dependents in self._dependents.items()
            for dependent_id in dependents
        ]

    def _set_terminal(self, task_id: int, state: TaskState) -> None:
        self._require(task_id)
        current = self._states[task_id]
        if current in TERMINAL_STATES:
            raise StateTransitionError(
                f"Task {task_id} is already {current.value}, cannot mark {state.value}",
            )
        self._states[task_id] = state

    def _reachable(self, source_id: int, target_id: int) -> bool:
        seen = {source_id}
        stack = [source_id]
        while stack:
            node = stack.pop()
            if node == target_id:
                return True
            for dependent_id in self._dependents[node]:
                if dependent_id not in seen:
                    seen.add(dependent_id)
                    stack.append(dependent_id)
        return False

    def _require(self, task_id: int) -> None:
        if task_id not in self._states:
            raise UnknownTaskError(task_id)
