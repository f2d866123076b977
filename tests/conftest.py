"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable, Iterator

import pytest

from fleet_dispatch.scheduler import Dispatcher, WorkerPool

JOIN_TIMEOUT_SECONDS = 5.0

_ENV_KEYS = (
    "FLEET_DISPATCH_POOL_SIZE",
    "FLEET_DISPATCH_DRAIN_TIMEOUT_SECONDS",
    "FLEET_DISPATCH_JOIN_TIMEOUT_SECONDS",
    "FLEET_DISPATCH_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep FLEET_DISPATCH_* settings from the developer shell out of tests."""
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture()
def dispatcher() -> Dispatcher:
    return Dispatcher()


@pytest.fixture()
def start_pool(dispatcher: Dispatcher) -> Iterator[Callable[[int], WorkerPool]]:
    """Start worker pools on ``dispatcher``; any left running are shut down on teardown."""
    pools: list[WorkerPool] = []

    def _start(pool_size: int = 2) -> WorkerPool:
        pool = WorkerPool(dispatcher, pool_size)
        pool.start()
        pools.append(pool)
        return pool

    yield _start
    for pool in pools:
        pool.shutdown_and_join(timeout=JOIN_TIMEOUT_SECONDS)
