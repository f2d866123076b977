from __future__ import annotations

import allure
import pytest
from click.testing import CliRunner

from fleet_dispatch import __version__
from fleet_dispatch.main import fleet_dispatch
from fleet_dispatch.scheduler.controllers import FINISHED_MESSAGE

pytestmark = [
    allure.epic("Front-end"),
    allure.feature("CLI"),
]


def _lines(output: str) -> list[str]:
    return [line.strip() for line in output.splitlines()]


def test_jobs_lists_menu() -> None:
    result = CliRunner().invoke(fleet_dispatch, ["jobs"])

    assert result.exit_code == 0, result.output
    assert _lines(result.output) == [
        "1: Digging",
        "2: Hauling",
        "3: Lifting",
        "4: Drilling",
        "5: Paving",
    ]


def test_version_option() -> None:
    result = CliRunner().invoke(fleet_dispatch, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_run_executes_dependency_chain_in_order() -> None:
    result = CliRunner().invoke(
        fleet_dispatch,
        [
            "run",
            "--job",
            "digging",
            "--job",
            "hauling:1",
            "--job",
            "5:2",
            "--job",
            "lifting",
            "--workers",
            "3",
        ],
    )

    assert result.exit_code == 0, result.output
    lines = _lines(result.output)
    assert lines[:4] == [
        "Scheduled Job: Digging (task 1)",
        "Scheduled Job: Hauling (task 2)",
        "Scheduled Job: Paving (task 3)",
        "Scheduled Job: Lifting (task 4)",
    ]
    assert lines.index("Executing Digging Job") < lines.index("Executing Hauling Job")
    assert lines.index("Executing Hauling Job") < lines.index("Executing Paving Job")
    assert "Executing Lifting Job" in lines
    for expected in (
        "Task 1 Digging: completed",
        "Task 2 Hauling: completed",
        "Task 3 Paving: completed",
        "Task 4 Lifting: completed",
    ):
        assert expected in lines
    assert "Completed: 4, failed: 0, executed by workers: 4" in lines
    assert lines[-1] == FINISHED_MESSAGE


def test_run_reports_cascading_failure() -> None:
    result = CliRunner().invoke(
        fleet_dispatch,
        ["run", "--job", "digging", "--job", "hauling:1", "--job", "drilling", "--fail-job", "1"],
    )

    assert result.exit_code == 1
    lines = _lines(result.output)
    assert "Task 1 Digging: failed (Digging job reported a fault)" in lines
    assert "Task 2 Hauling: failed (upstream task 1 failed)" in lines
    assert "Task 3 Drilling: completed" in lines
    assert "Executing Hauling Job" not in lines
    assert "Executing Digging Job" not in lines
    assert "Completed: 1, failed: 2, executed by workers: 2" in lines
    assert "Some jobs did not complete." in result.output


def test_run_rejects_forward_prerequisite() -> None:
    result = CliRunner().invoke(fleet_dispatch, ["run", "--job", "hauling:2", "--job", "digging"])

    assert result.exit_code == 1
    lines = _lines(result.output)
    assert "Rejected job 1 (Hauling): Unknown task id: 2" in lines
    assert "Task 2 Digging: completed" in lines


def test_run_interactive_prompts_until_zero() -> None:
    result = CliRunner().invoke(
        fleet_dispatch,
        ["run", "--interactive", "--workers", "1"],
        input="1\n9\n4\n0\n",
    )

    assert result.exit_code == 0, result.output
    assert "Invalid job type!" in result.output
    assert "Scheduled Job: Digging (task 1)" in result.output
    assert "Scheduled Job: Drilling (task 2)" in result.output
    assert FINISHED_MESSAGE in result.output


@pytest.mark.parametrize(
    "args",
    [
        ["run"],
        ["run", "--job", "crane"],
        ["run", "--job", "digging", "--workers", "0"],
    ],
)
def test_run_usage_errors(args: list[str]) -> None:
    result = CliRunner().invoke(fleet_dispatch, args)

    assert result.exit_code == 2


def test_run_rejects_invalid_pool_size_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FLEET_DISPATCH_POOL_SIZE", "0")

    result = CliRunner().invoke(fleet_dispatch, ["run", "--job", "digging"])

    assert result.exit_code == 1
    assert "FLEET_DISPATCH_POOL_SIZE" in result.output


def test_run_rejects_fail_job_beyond_submitted_jobs() -> None:
    result = CliRunner().invoke(
        fleet_dispatch,
        ["run", "--job", "digging", "--job", "hauling:1", "--fail-job", "3"],
    )

    assert result.exit_code == 2
    assert "Scheduled Job" not in result.output


def test_run_workers_option_overrides_env_pool_size(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FLEET_DISPATCH_POOL_SIZE", "0")

    result = CliRunner().invoke(fleet_dispatch, ["run", "--job", "digging", "--workers", "2"])

    assert result.exit_code == 0, result.output
    assert "Task 1 Digging: completed" in _lines(result.output)
