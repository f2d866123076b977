"""Dispatcher — sole mutator of the dependency graph and task states."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable

from fleet_dispatch.scheduler.errors import (
    CycleError,
    DuplicateTaskError,
    QueueClosedError,
    UnknownTaskError,
)
from fleet_dispatch.scheduler.graph import DependencyGraph
from fleet_dispatch.scheduler.models import (
    DispatchSummary,
    Payload,
    Task,
    TaskOutcome,
    TaskState,
)
from fleet_dispatch.scheduler.ready_queue import ReadyQueue

logger = logging.getLogger(__name__)

CLOSED_BEFORE_READY = "dispatch closed before task became ready"


class Dispatcher:
    """Registers tasks, gates them on prerequisites and feeds the ready queue.

    Every graph and task-state mutation happens under one condition lock, so a
    completion and the readiness check of its dependents are a single atomic
    step. The ready queue is only ever touched while holding that lock, except
    for :meth:`ReadyQueue.pop` in workers, which then come back through
    :meth:`mark_running` and :meth:`on_task_finished`.
    """

    def __init__(self, queue: ReadyQueue | None = None) -> None:
        self._queue = queue or ReadyQueue()
        self._graph = DependencyGraph()
        self._tasks: dict[int, Task] = {}
        self._terminal_count = 0
        self._next_id = 1
        self._condition = threading.Condition()

    @property
    def queue(self) -> ReadyQueue:
        return self._queue

    def submit(
        self,
        payload: Payload,
        *,
        task_id: int | None = None,
        prerequisites: Iterable[int] = (),
        name: str | None = None,
    ) -> Task:
        """Register a task and queue it once its prerequisites are completed.

        Raises a :class:`SubmitError` subclass without registering anything
        when the dispatcher is closed, the id is taken, a prerequisite is
        unknown, or the task would depend on itself.
        """

        prerequisite_ids = tuple(dict.fromkeys(prerequisites))
        with self._condition:
            if self._queue.closed:
                raise QueueClosedError("Dispatcher is closed, no new tasks accepted")
            resolved_id = self._resolve_id(task_id)
            for prerequisite_id in prerequisite_ids:
                if prerequisite_id == resolved_id:
                    raise CycleError(prerequisite_id, resolved_id)
                if prerequisite_id not in self._graph:
                    raise UnknownTaskError(prerequisite_id)

            task = Task(
                task_id=resolved_id,
                payload=payload,
                name=name,
                prerequisites=prerequisite_ids,
            )
            self._graph.add_task(resolved_id)
            for prerequisite_id in prerequisite_ids:
                self._graph.add_dependency(prerequisite_id, resolved_id)

            failed_prerequisites = [
                prerequisite_id
                for prerequisite_id in prerequisite_ids
                if self._graph.state(prerequisite_id) is TaskState.FAILED
            ]
            if failed_prerequisites:
                self._tasks[resolved_id] = task
                self._graph.mark_failed(resolved_id)
                self._finish(
                    task,
                    TaskState.FAILED,
                    error=f"upstream task {failed_prerequisites[0]} failed",
                )
                logger.warning(
                    "Task %s failed at submit: prerequisite %s already failed",
                    resolved_id,
                    failed_prerequisites[0],
                )
            elif self._graph.is_ready(resolved_id):
                try:
                    self._release(task)
                except QueueClosedError:
                    self._graph.discard_task(resolved_id)
                    raise
                self._tasks[resolved_id] = task
            else:
                self._tasks[resolved_id] = task

            if task_id is None:
                self._next_id = resolved_id + 1
            logger.debug(
                "Submitted task %s (%s) prerequisites=%s state=%s",
                resolved_id,
                task.label,
                list(prerequisite_ids),
                task.state.value,
            )
            self._condition.notify_all()
            return task

    def mark_running(self, task_id: int) -> Task:
        """Move a popped task from ready to running."""

        with self._condition:
            task = self._require(task_id)
            task.transition(TaskState.RUNNING)
            logger.debug("Task %s running", task_id)
            return task

    def on_task_finished(
        self,
        task_id: int,
        outcome: TaskOutcome,
        *,
        error: str | None = None,
    ) -> None:
        """Record a worker outcome and release or fail the dependents."""

        with self._condition:
            task = self._require(task_id)
            if outcome is TaskOutcome.COMPLETED:
                self._finish(task, TaskState.COMPLETED)
                for dependent_id in self._graph.mark_completed(task_id):
                    self._release_or_fail(self._tasks[dependent_id])
            else:
                self._finish(task, TaskState.FAILED, error=error or "execution failed")
                cascaded = self._graph.mark_failed(task_id)
                self._fail_cascade(task_id, cascaded)
            logger.debug("Task %s finished: %s", task_id, outcome.value)
            self._condition.notify_all()

    def drain(self, timeout: float | None = None) -> bool:
        """Block until every submitted task is terminal; False on timeout."""

        with self._condition:
            return self._condition.wait_for(
                lambda: self._terminal_count == len(self._tasks),
                timeout=timeout,
            )

    def close(self) -> None:
        """Stop accepting submissions and let workers exit once the queue drains."""

        with self._condition:
            if not self._queue.closed:
                logger.info("Closing dispatcher with %d queued task(s)", len(self._queue))
            self._queue.shutdown()

    def get(self, task_id: int) -> Task:
        with self._condition:
            return self._require(task_id)

    def tasks(self) -> list[Task]:
        """Tasks in submission order."""

        with self._condition:
            return list(self._tasks.values())

    def states(self) -> dict[int, TaskState]:
        with self._condition:
            return {task_id: task.state for task_id, task in self._tasks.items()}

    def summary(self) -> DispatchSummary:
        with self._condition:
            summary = DispatchSummary(submitted=len(self._tasks))
            for task in self._tasks.values():
                if task.state is TaskState.PENDING:
                    summary.pending += 1
                elif task.state is TaskState.READY:
                    summary.ready += 1
                elif task.state is TaskState.RUNNING:
                    summary.running += 1
                elif task.state is TaskState.COMPLETED:
                    summary.completed += 1
                else:
                    summary.failed += 1
                    summary.failed_task_ids.append(task.task_id)
            return summary

    def _resolve_id(self, task_id: int | None) -> int:
        if task_id is not None:
            if task_id in self._tasks:
                raise DuplicateTaskError(task_id)
            return task_id
        candidate = self._next_id
        while candidate in self._tasks:
            candidate += 1
        return candidate

    def _require(self, task_id: int) -> Task:
        task = self._tasks.get(task_id)
        if task is None:
            raise UnknownTaskError(task_id)
        return task

    def _release(self, task: Task) -> None:
        # Push first: a worker that pops the task blocks in mark_running until
        # this critical section ends, so it always sees the ready state.
        self._queue.push(task)
        self._graph.mark_ready(task.task_id)
        task.transition(TaskState.READY)

    def _release_or_fail(self, task: Task) -> None:
        try:
            self._release(task)
        except QueueClosedError:
            logger.warning("Task %s became ready after dispatcher closed", task.task_id)
            cascaded = self._graph.mark_failed(task.task_id)
            self._finish(task, TaskState.FAILED, error=CLOSED_BEFORE_READY)
            self._fail_cascade(task.task_id, cascaded)

    def _fail_cascade(self, source_id: int, cascaded: list[int]) -> None:
        if not cascaded:
            return
        logger.warning(
            "Task %s failed, cascading to %d dependent(s): %s",
            source_id,
            len(cascaded),
            cascaded,
        )
        for dependent_id in cascaded:
            self._finish(
                self._tasks[dependent_id],
                TaskState.FAILED,
                error=f"upstream task {source_id} failed",
            )

    def _finish(self, task: Task, state: TaskState, *, error: str | None = None) -> None:
        task.transition(state, error=error)
        self._terminal_count += 1
