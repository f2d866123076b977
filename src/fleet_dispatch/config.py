"""Runtime configuration for the dispatcher and worker pool."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from fleet_dispatch.scheduler.errors import ConfigError

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(slots=True)
class DispatchSettings:
    """Worker pool sizing and shutdown timeouts."""

    pool_size: int = 2
    drain_timeout_seconds: float | None = None
    join_timeout_seconds: float = 15.0


@dataclass(slots=True)
class LoggingSettings:
    """Root logger configuration for the CLI."""

    level: str = "WARNING"


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    dispatch: DispatchSettings = field(default_factory=DispatchSettings)
    log: LoggingSettings = field(default_factory=LoggingSettings)

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from ``FLEET_DISPATCH_*`` environment variables."""

        return cls(
            dispatch=DispatchSettings(
                pool_size=_env_int("FLEET_DISPATCH_POOL_SIZE", 2),
                drain_timeout_seconds=_env_optional_float(
                    "FLEET_DISPATCH_DRAIN_TIMEOUT_SECONDS",
                ),
                join_timeout_seconds=_env_float("FLEET_DISPATCH_JOIN_TIMEOUT_SECONDS", 15.0),
            ),
            log=LoggingSettings(
                level=os.getenv("FLEET_DISPATCH_LOG_LEVEL", "WARNING").strip().upper(),
            ),
        )

    def validate(self) -> None:
        """Raise :class:`ConfigError` on values the dispatcher cannot run with."""

        if self.dispatch.pool_size < 1:
            raise ConfigError("FLEET_DISPATCH_POOL_SIZE must be >= 1.")
        if (
            self.dispatch.drain_timeout_seconds is not None
            and self.dispatch.drain_timeout_seconds <= 0
        ):
            raise ConfigError("FLEET_DISPATCH_DRAIN_TIMEOUT_SECONDS must be > 0.")
        if self.dispatch.join_timeout_seconds <= 0:
            raise ConfigError("FLEET_DISPATCH_JOIN_TIMEOUT_SECONDS must be > 0.")
        if self.log.level not in _LOG_LEVELS:
            raise ConfigError(
                f"FLEET_DISPATCH_LOG_LEVEL must be one of {', '.join(_LOG_LEVELS)}; "
                f"got {self.log.level!r}.",
            )


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s",
    )


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as error:
        raise ConfigError(f"Invalid integer value for {name}: {raw!r}") from error


def _env_float(name: str, default: float) -> float:
    value = _env_optional_float(name)
    return default if value is None else value


def _env_optional_float(name: str) -> float | None:
    raw = os.getenv(name, "").strip()
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError as error:
        raise ConfigError(f"Invalid number value for {name}: {raw!r}") from error
