"""CLI entrypoint for fleet-dispatch."""

import rich_click as click

from fleet_dispatch import __version__
from fleet_dispatch.config import Settings, configure_logging
from fleet_dispatch.jobs import JobKind, JobSpec, parse_job_kind, parse_job_spec
from fleet_dispatch.scheduler.controllers import DispatchCliController, RunJobsCommand
from fleet_dispatch.scheduler.errors import ConfigError

click.rich_click.USE_MARKDOWN = True
DISPATCH_CONTROLLER = DispatchCliController()

_MENU = "\n".join(
    ["Enter job type to add to the queue"]
    + [f"{kind.value}: {kind.title}" for kind in JobKind]
    + ["0: Exit"],
)


@click.group()
@click.version_option(version=__version__, prog_name="fleet-dispatch")
def fleet_dispatch() -> None:
    """Dependency-gated job dispatcher for equipment work queues."""


@fleet_dispatch.command("jobs")
def list_jobs() -> None:
    """List job kinds with their menu numbers."""

    _emit_lines(DISPATCH_CONTROLLER.list_jobs())


@fleet_dispatch.command("run")
@click.option(
    "--job",
    "job_specs",
    multiple=True,
    help=(
        "Job to submit as `KIND[:N,N...]`, where KIND is a name or menu number and "
        "N are numbers of earlier jobs it depends on. Can be repeated."
    ),
)
@click.option(
    "--workers",
    type=click.IntRange(min=1, max=64),
    default=None,
    help="Worker pool size. Defaults to FLEET_DISPATCH_POOL_SIZE or 2.",
)
@click.option(
    "--fail-job",
    "fail_jobs",
    type=click.IntRange(min=1),
    multiple=True,
    help="Job number whose execution should report a fault. Can be repeated.",
)
@click.option(
    "--interactive/--no-interactive",
    default=False,
    show_default=True,
    help="Prompt for job types before running (0 ends input).",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Log level. Defaults to FLEET_DISPATCH_LOG_LEVEL or WARNING.",
)
def run_jobs(
    job_specs: tuple[str, ...],
    workers: int | None,
    fail_jobs: tuple[int, ...],
    interactive: bool,
    log_level: str | None,
) -> None:
    """Submit jobs, execute them on the worker pool and print each task's status."""

    try:
        settings = Settings.from_env()
        if log_level is not None:
            settings.log.level = log_level.upper()
        if workers is not None:
            settings.dispatch.pool_size = workers
        settings.validate()
    except ConfigError as error:
        raise click.ClickException(str(error)) from error
    configure_logging(settings.log.level)

    jobs: list[JobSpec] = []
    for value in job_specs:
        try:
            jobs.append(parse_job_spec(value))
        except ValueError as error:
            raise click.BadParameter(str(error), param_hint="--job") from error
    if interactive:
        jobs.extend(_prompt_jobs())
    if not jobs:
        raise click.UsageError("No jobs given. Use --job or --interactive.")
    unknown_fail_jobs = sorted(number for number in set(fail_jobs) if number > len(jobs))
    if unknown_fail_jobs:
        raise click.BadParameter(
            f"No job number(s) {unknown_fail_jobs}; only {len(jobs)} job(s) given.",
            param_hint="--fail-job",
        )

    result = DispatchCliController(settings).run(
        RunJobsCommand(jobs=tuple(jobs), fail_jobs=fail_jobs),
    )
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException("Some jobs did not complete.")


def _prompt_jobs() -> list[JobSpec]:
    jobs: list[JobSpec] = []
    while True:
        choice = click.prompt(_MENU, type=int)
        if choice == 0:
            return jobs
        try:
            jobs.append(JobSpec(kind=parse_job_kind(choice)))
        except ValueError:
            click.echo("Invalid job type!")


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    fleet_dispatch()
