"""Blocking FIFO of tasks whose prerequisites are satisfied."""

from __future__ import annotations

import threading
from collections import deque

from fleet_dispatch.scheduler.errors import QueueClosedError
from fleet_dispatch.scheduler.models import Task


class ReadyQueue:
    """Thread-safe FIFO with a close signal that wakes every waiting consumer."""

    def __init__(self) -> None:
        self._items: deque[Task] = deque()
        self._condition = threading.Condition()
        self._closed = False

    def __len__(self) -> int:
        with self._condition:
            return len(self._items)

    @property
    def closed(self) -> bool:
        with self._condition:
            return self._closed

    def push(self, task: Task) -> None:
        with self._condition:
            if self._closed:
                raise QueueClosedError(f"Ready queue is closed, cannot push task {task.task_id}")
            self._items.append(task)
            self._condition.notify()

    def pop(self) -> Task | None:
        """Block until a task is available; ``None`` once closed and empty."""

        with self._condition:
            self._condition.wait_for(lambda: self._items or self._closed)
            if not self._items:
                return None
            return self._items.popleft()

    def shutdown(self) -> None:
        with self._condition:
            self._closed = True
            self._condition.notify_all()
