"""Controllers for dispatcher CLI commands."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field

from fleet_dispatch.config import Settings
from fleet_dispatch.jobs import JobKind, JobSpec, create_job
from fleet_dispatch.scheduler.dispatcher import Dispatcher
from fleet_dispatch.scheduler.errors import SubmitError
from fleet_dispatch.scheduler.models import Task
from fleet_dispatch.scheduler.pool import WorkerPool

logger = logging.getLogger(__name__)

FINISHED_MESSAGE = "All the jobs have been scheduled and executed."


@dataclass(slots=True)
class RunJobsCommand:
    """CLI input for one dispatch run."""

    jobs: tuple[JobSpec, ...]
    fail_jobs: tuple[int, ...] = ()


@dataclass(slots=True)
class DispatchRunResult:
    """Rendered output and overall status of a dispatch run."""

    lines: list[str] = field(default_factory=list)
    success: bool = True


class DispatchCliController:
    """Submits equipment jobs, runs the worker pool and renders the outcome."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings

    def list_jobs(self) -> list[str]:
        return [f"{kind.value}: {kind.title}" for kind in JobKind]

    def run(self, command: RunJobsCommand) -> DispatchRunResult:
        settings = self._settings or Settings.from_env()
        settings.validate()

        result = DispatchRunResult()
        executed: list[str] = []
        executed_lock = threading.Lock()

        def _emit(line: str) -> None:
            with executed_lock:
                executed.append(line)

        dispatcher = Dispatcher()
        fail_jobs = set(command.fail_jobs)
        for number, spec in enumerate(command.jobs, start=1):
            try:
                dispatcher.submit(
                    create_job(spec.kind, emit=_emit, fail=number in fail_jobs),
                    task_id=number,
                    prerequisites=spec.prerequisites,
                    name=spec.kind.title,
                )
            except SubmitError as error:
                result.success = False
                result.lines.append(f"Rejected job {number} ({spec.kind.title}): {error}")
                continue
            result.lines.append(f"Scheduled Job: {spec.kind.title} (task {number})")

        pool = WorkerPool(dispatcher, settings.dispatch.pool_size)
        pool.start()
        drained = dispatcher.drain(timeout=settings.dispatch.drain_timeout_seconds)
        workers = pool.shutdown_and_join(timeout=settings.dispatch.join_timeout_seconds)
        if not drained:
            logger.error("Drain timed out with tasks still in flight")
            result.success = False
            result.lines.append("Timed out waiting for tasks to finish.")

        result.lines.extend(executed)
        for task in dispatcher.tasks():
            result.lines.append(_render_task(task))

        summary = dispatcher.summary()
        if summary.failed:
            result.success = False
        result.lines.append(
            f"Completed: {summary.completed}, failed: {summary.failed}, "
            f"executed by workers: {workers.processed}",
        )
        result.lines.append(FINISHED_MESSAGE)
        return result


def _render_task(task: Task) -> str:
    line = f"Task {task.task_id} {task.label}: {task.state.value}"
    if task.error:
        line += f" ({task.error})"
    return line
