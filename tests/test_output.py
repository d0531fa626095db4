from __future__ import annotations

import io
from datetime import UTC, datetime
from pathlib import Path

import pytest
from rich.console import Console

from ghrunner.constants import MarketType
from ghrunner.events import (
    AlreadyTerminated,
    InstanceLaunching,
    LaunchCompleted,
    RunningWaitFailed,
    TerminationCompleted,
    TerminationStarted,
    TokenAcquired,
    TokenRequested,
)
from ghrunner.output import Reporter, write_github_output
from ghrunner.types import LaunchResult, TerminationResult

pytestmark = [pytest.mark.unit]

LAUNCH = LaunchResult(
    instance_id="i-0abc",
    runner_name="runner-42-1-1700000000",
    labels="self-hosted,linux,x64,run-42-1",
    unique_label="run-42-1",
    market_type=MarketType.ON_DEMAND,
    running=True,
)


def make_reporter(output_format: str = "", github_output: Path | None = None) -> tuple[Reporter, io.StringIO]:
    buffer = io.StringIO()
    console = Console(file=buffer, width=200, color_system=None, highlight=False)
    return Reporter(console, output_format=output_format, github_output=github_output), buffer


class TestGithubActions:
    def test_launch_prints_bare_lines_only(self):
        reporter, buffer = make_reporter("github-actions")

        reporter(TokenRequested(repository="octo/hello"))
        reporter(LaunchCompleted(result=LAUNCH))

        assert buffer.getvalue().splitlines() == [
            "Instance ID: i-0abc",
            "Runner Name: runner-42-1-1700000000",
            "Labels: self-hosted,linux,x64,run-42-1",
        ]

    def test_launch_writes_step_outputs(self, tmp_path: Path):
        output = tmp_path / "github_output"
        output.write_text("existing=1\n")
        reporter, _ = make_reporter("github-actions", output)

        reporter(LaunchCompleted(result=LAUNCH))

        assert output.read_text().splitlines() == [
            "existing=1",
            "label=run-42-1",
            "ec2-instance-id=i-0abc",
            "runner-name=runner-42-1-1700000000",
        ]

    def test_terminate_status(self, tmp_path: Path):
        output = tmp_path / "github_output"
        reporter, buffer = make_reporter("github-actions", output)

        reporter(TerminationStarted(instance_id="i-0abc", timeout=300, force=False))
        reporter(TerminationCompleted(result=TerminationResult("i-0abc", "terminated")))

        assert buffer.getvalue() == "Termination Status: terminated\n"
        assert output.read_text() == "termination-status=terminated\n"

    def test_emoji_codes_are_printed_verbatim(self):
        reporter, buffer = make_reporter("github-actions")
        result = LaunchResult(
            instance_id="i-0abc",
            runner_name="runner-1",
            labels="self-hosted,:ok:,run-1-1",
            unique_label="run-1-1",
            market_type=MarketType.ON_DEMAND,
            running=True,
        )

        reporter(LaunchCompleted(result=result))

        assert "Labels: self-hosted,:ok:,run-1-1" in buffer.getvalue().splitlines()

    def test_no_output_file(self):
        reporter, buffer = make_reporter("github-actions")
        reporter(TerminationCompleted(result=TerminationResult("i-0abc", "terminated")))
        assert buffer.getvalue() == "Termination Status: terminated\n"


class TestHuman:
    def test_launch_narrative(self):
        reporter, buffer = make_reporter()

        reporter(TokenRequested(repository="octo/hello"))
        reporter(TokenAcquired(expires_at=datetime(2030, 1, 1, tzinfo=UTC)))
        reporter(InstanceLaunching(
            image_id="ami-0abc",
            instance_type="t3.micro",
            subnet_id="subnet-0abc",
            security_group_id="sg-0abc",
            market_type=MarketType.SPOT,
            spot_max_price="0.01",
            runner_name=LAUNCH.runner_name,
            labels=LAUNCH.labels,
        ))
        reporter(LaunchCompleted(result=LAUNCH))

        text = buffer.getvalue()
        assert "Fetching GitHub runner registration token" in text
        assert "Token expires at: 2030-01-01T00:00:00+00:00" in text
        assert "spot, max price 0.01" in text
        assert "Subnet ID: subnet-0abc" in text
        assert "Repository: octo/hello" in text
        assert "Unique Label: run-42-1" in text

    def test_soft_wait_failure_is_a_warning(self):
        reporter, buffer = make_reporter()
        reporter(RunningWaitFailed(instance_id="i-0abc", reason="Timeout waiting"))
        assert "failed to wait for running state: Timeout waiting" in buffer.getvalue()

    def test_already_terminated(self):
        reporter, buffer = make_reporter()
        reporter(AlreadyTerminated(instance_id="i-0abc"))
        reporter(TerminationCompleted(result=TerminationResult("i-0abc", "terminated", already_terminated=True)))
        assert buffer.getvalue().count("\n") == 1
        assert "already terminated" in buffer.getvalue()

    def test_markup_is_not_interpreted(self):
        reporter, buffer = make_reporter()
        reporter(RunningWaitFailed(instance_id="i-0abc", reason="[bold]oops[/bold]"))
        assert "[bold]oops[/bold]" in buffer.getvalue()


def test_write_github_output_appends(tmp_path: Path):
    path = tmp_path / "out"
    write_github_output(path, {"a": "1"})
    write_github_output(path, {"b": "2"})
    assert path.read_text() == "a=1\nb=2\n"
