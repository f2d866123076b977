"""Fixed-size pool of worker threads consuming the ready queue."""

from __future__ import annotations

import logging
import threading

from fleet_dispatch.scheduler.dispatcher import Dispatcher
from fleet_dispatch.scheduler.errors import ConfigError, ExecutionFault
from fleet_dispatch.scheduler.models import Task, TaskOutcome, WorkerRunSummary

logger = logging.getLogger(__name__)


class WorkerPool:
    """Runs ``pool_size`` workers: pop, execute, report, until the queue closes.

    Workers never touch the dependency graph; they only execute payloads and
    report outcomes back through the dispatcher.
    """

    def __init__(self, dispatcher: Dispatcher, pool_size: int) -> None:
        if pool_size < 1:
            raise ConfigError(f"Worker pool size must be >= 1, got {pool_size}")
        self.dispatcher = dispatcher
        self.pool_size = pool_size
        self._threads: list[threading.Thread] = []
        self._summaries: list[WorkerRunSummary] = []

    @property
    def alive(self) -> int:
        return sum(1 for thread in self._threads if thread.is_alive())

    def start(self) -> None:
        if self._threads:
            raise RuntimeError("Worker pool already started")
        for index in range(1, self.pool_size + 1):
            summary = WorkerRunSummary()
            thread = threading.Thread(
                target=self._worker_loop,
                args=(summary,),
                daemon=True,
                name=f"dispatch-worker-{index}",
            )
            self._summaries.append(summary)
            self._threads.append(thread)
            thread.start()
        logger.info("Worker pool started with %d worker(s)", self.pool_size)

    def join(self, timeout: float | None = None) -> WorkerRunSummary:
        """Wait for workers to exit and return their aggregated counters.

        ``timeout`` bounds the wait for each worker; workers still running
        after it are left alive and reported by :attr:`alive`.
        """

        for thread in self._threads:
            thread.join(timeout=timeout)
        still_running = self.alive
        if still_running:
            logger.warning("%d worker(s) still running after join timeout", still_running)
        else:
            logger.info("Worker pool stopped")

        aggregate = WorkerRunSummary()
        for summary in self._summaries:
            aggregate.add(summary)
        return aggregate

    def shutdown_and_join(self, timeout: float | None = None) -> WorkerRunSummary:
        self.dispatcher.close()
        return self.join(timeout=timeout)

    def _worker_loop(self, summary: WorkerRunSummary) -> None:
        queue = self.dispatcher.queue
        while True:
            task = queue.pop()
            if task is None:
                return
            summary.processed += 1
            if self._run_task(task):
                summary.succeeded += 1
            else:
                summary.failed += 1

    def _run_task(self, task: Task) -> bool:
        self.dispatcher.mark_running(task.task_id)
        try:
            task.execute()
        except ExecutionFault as fault:
            logger.warning("Task %s (%s) failed: %s", task.task_id, task.label, fault)
            self.dispatcher.on_task_finished(
                task.task_id,
                TaskOutcome.FAILED,
                error=str(fault),
            )
            return False
        except BaseException:
            # The task must still reach a terminal state before the worker exits.
            logger.exception("Task %s (%s) interrupted", task.task_id, task.label)
            self.dispatcher.on_task_finished(
                task.task_id,
                TaskOutcome.FAILED,
                error="worker interrupted",
            )
            raise
        self.dispatcher.on_task_finished(task.task_id, TaskOutcome.COMPLETED)
        return True
