"""Render controller events for humans or for GitHub Actions.

Human mode tells the story of the run as it happens:

    🔑 Fetching GitHub runner registration token...
    🚀 Launching EC2 instance...
    ⏳ Waiting for instance to be running...
    ✅ EC2 instance created successfully!

The github-actions mode prints only bare `Key: value` lines once the
operation completes and, when GITHUB_OUTPUT points at a file, appends the
step outputs (`label=`, `ec2-instance-id=`, `runner-name=` or
`termination-status=`) to it.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

from rich.console import Console
from rich.style import Style
from rich.text import Text

from ghrunner.constants import OUTPUT_GITHUB_ACTIONS, MarketType
from ghrunner.events import (
    AlreadyTerminated,
    ForceStopping,
    InstanceLaunched,
    InstanceLaunching,
    InstanceRunning,
    InstanceStateObserved,
    LaunchCompleted,
    RunnerEvent,
    RunningWaitFailed,
    TerminateRequested,
    TerminateRetrying,
    TerminationCompleted,
    TerminationStarted,
    TokenAcquired,
    TokenRequested,
    WaitingForRunning,
    WaitingForTermination,
)

DIM = Style(color="bright_black")
GREEN = Style(color="green", bold=True)
YELLOW = Style(color="yellow", bold=True)
CYAN = Style(color="cyan", bold=True)


def write_github_output(path: Path, values: Mapping[str, str]) -> None:
    """Append `key=value` step outputs to the GITHUB_OUTPUT file."""
    with path.open("a", encoding="utf-8") as f:
        for key, value in values.items():
            f.write(f"{key}={value}\n")


class Reporter:
    """Event callback that prints progress in the selected format.

    Args:
        console: Rich console to print to.
        output_format: "github-actions" for bare status lines, anything
            else for the human narrative.
        github_output: File receiving step outputs in github-actions mode.
    """

    def __init__(
        self,
        console: Console | None = None,
        *,
        output_format: str = "",
        github_output: Path | None = None,
    ) -> None:
        self._console = console or Console(highlight=False, soft_wrap=True, emoji=False)
        self._actions = output_format == OUTPUT_GITHUB_ACTIONS
        self._github_output = github_output
        self._repository = ""
        self._launching: InstanceLaunching | None = None

    def __call__(self, event: RunnerEvent) -> None:
        if self._actions:
            self._render_actions(event)
        else:
            self._render_human(event)

    # =========================================================================
    # github-actions
    # =========================================================================

    def _line(self, key: str, value: object) -> None:
        self._console.print(f"{key}: {value}", markup=False, highlight=False, emoji=False)

    def _render_actions(self, event: RunnerEvent) -> None:
        match event:
            case LaunchCompleted(result=r):
                self._line("Instance ID", r.instance_id)
                self._line("Runner Name", r.runner_name)
                self._line("Labels", r.labels)
                self._outputs({
                    "label": r.unique_label,
                    "ec2-instance-id": r.instance_id,
                    "runner-name": r.runner_name,
                })
            case TerminationCompleted(result=r):
                self._line("Termination Status", r.state)
                self._outputs({"termination-status": r.state})
            case _:
                pass

    def _outputs(self, values: Mapping[str, str]) -> None:
        if self._github_output is not None:
            write_github_output(self._github_output, values)

    # =========================================================================
    # human
    # =========================================================================

    def _say(self, text: str, style: Style | None = None) -> None:
        self._console.print(Text(text, style=style or ""))

    def _render_human(self, event: RunnerEvent) -> None:
        match event:
            case TokenRequested(repository=repo):
                self._repository = repo
                self._say("🚀 Creating EC2 instance for GitHub Actions runner...", CYAN)
                self._say("🔑 Fetching GitHub runner registration token...")
            case TokenAcquired(expires_at=expires):
                self._say("✅ Successfully obtained GitHub runner registration token", GREEN)
                self._say(f"🕐 Token expires at: {expires.isoformat()}", DIM)
            case InstanceLaunching() as launching:
                self._launching = launching
                market = launching.market_type.value
                if launching.market_type is MarketType.SPOT and launching.spot_max_price:
                    market = f"{market}, max price {launching.spot_max_price}"
                self._say(f"🚀 Launching EC2 instance ({launching.instance_type}, {market})...")
            case InstanceLaunched(instance_id=iid):
                self._say(f"Instance {iid} launched", DIM)
            case WaitingForRunning():
                self._say("⏳ Waiting for instance to be running...")
            case InstanceRunning():
                self._say("🎉 Instance is now running!", GREEN)
                self._say(
                    "📋 Check the user data log: ssh into the instance and run "
                    "'sudo tail -f /var/log/user-data.log'",
                    DIM,
                )
            case RunningWaitFailed(reason=reason):
                self._say(
                    f"⚠️  Instance created but failed to wait for running state: {reason}",
                    YELLOW,
                )
            case LaunchCompleted(result=r):
                self._say("✅ EC2 instance created successfully!", GREEN)
                self._say(f"Instance ID: {r.instance_id}")
                if self._launching is not None:
                    self._say(f"Instance Type: {self._launching.instance_type}")
                    self._say(f"Image ID: {self._launching.image_id}")
                    self._say(f"Subnet ID: {self._launching.subnet_id}")
                    self._say(f"Security Group ID: {self._launching.security_group_id}")
                if self._repository:
                    self._say(f"Repository: {self._repository}")
                self._say(f"Market Type: {r.market_type.value}")
                self._say(f"Runner Labels: {r.labels}")
                self._say(f"Runner Name: {r.runner_name}")
                self._say(f"Unique Label: {r.unique_label}")
            case TerminationStarted(instance_id=iid, force=force):
                suffix = " (force)" if force else ""
                self._say(f"🛑 Terminating EC2 instance {iid}{suffix}...", CYAN)
            case InstanceStateObserved(state=state):
                self._say(f"Current State: {state}", DIM)
            case AlreadyTerminated(instance_id=iid):
                self._say(f"✅ Instance {iid} is already terminated", GREEN)
            case TerminateRequested(instance_id=iid, state=state):
                self._say(f"✅ Instance {iid} termination initiated!", GREEN)
                self._say(f"Current State: {state}")
            case TerminateRetrying(attempt=n, delay=delay, error=error):
                self._say(
                    f"⚠️  Terminate attempt {n} failed, retrying in {delay:.0f}s: {error}",
                    YELLOW,
                )
            case ForceStopping(instance_id=iid, reason=reason):
                self._say(f"⚠️  Force-stopping {iid} before retrying terminate ({reason})", YELLOW)
            case WaitingForTermination(budget=budget):
                self._say(f"⏳ Waiting up to {budget:.0f}s for instance to terminate...")
            case TerminationCompleted(result=r) if not r.already_terminated:
                self._say(f"🎉 Instance {r.instance_id} is {r.state}", GREEN)
            case _:
                pass


__all__ = ["Reporter", "write_github_output"]
