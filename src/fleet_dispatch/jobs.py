"""Equipment job kinds and the factory that turns them into task payloads."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from fleet_dispatch.scheduler.errors import ExecutionFault
from fleet_dispatch.scheduler.models import Payload

logger = logging.getLogger(__name__)


class JobKind(Enum):
    """Job kinds keyed by their menu number."""

    DIGGING = 1
    HAULING = 2
    LIFTING = 3
    DRILLING = 4
    PAVING = 5

    @property
    def title(self) -> str:
        return self.name.capitalize()


@dataclass(frozen=True, slots=True)
class JobSpec:
    """One job to submit: its kind and the submission numbers it waits for."""

    kind: JobKind
    prerequisites: tuple[int, ...] = ()


def parse_job_kind(value: str | int) -> JobKind:
    """Resolve a menu number or a case-insensitive job name."""

    token = str(value).strip()
    try:
        return JobKind(int(token)) if token.isdigit() else JobKind[token.upper()]
    except (KeyError, ValueError):
        raise ValueError(f"Invalid job type: {token!r}") from None


def parse_job_spec(value: str) -> JobSpec:
    """Parse ``<kind>[:<n>,<n>...]``, e.g. ``hauling:1,2``."""

    kind_part, _, deps_part = value.partition(":")
    kind = parse_job_kind(kind_part)
    prerequisites: list[int] = []
    for token in deps_part.split(","):
        token = token.strip()
        if not token:
            continue
        try:
            number = int(token)
        except ValueError as error:
            raise ValueError(
                f"Invalid prerequisite {token!r} in job spec {value!r}",
            ) from error
        if number < 1:
            raise ValueError(f"Prerequisite numbers start at 1, got {number} in {value!r}")
        prerequisites.append(number)
    return JobSpec(kind=kind, prerequisites=tuple(prerequisites))


def create_job(
    kind: JobKind,
    *,
    emit: Callable[[str], None] | None = None,
    fail: bool = False,
) -> Payload:
    """Build the payload for ``kind``.

    ``fail`` makes the payload raise :class:`ExecutionFault`; the CLI uses it
    to demonstrate failure propagation.
    """

    sink = emit or (lambda _line: None)

    def _run() -> None:
        if fail:
            raise ExecutionFault(None, f"{kind.title} job reported a fault")
        logger.info("Executing %s job", kind.title)
        sink(f"Executing {kind.title} Job")

    return _run
