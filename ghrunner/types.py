"""Value objects passed between the CLI, the controller and the adapters.

Everything here is immutable: a request is built once from CLI input and
handed down explicitly, never stored in module-level state.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation

from ghrunner.constants import (
    DEFAULT_RUNNER_LABELS,
    FORCE_WAIT_FLOOR,
    TAG_PURPOSE,
    TERMINATE_TIMEOUT_DEFAULT,
    TERMINATE_TIMEOUT_MAX,
    TERMINATE_TIMEOUT_MIN,
    InstanceState,
    MarketType,
    RunnerTag,
)
from ghrunner.core.exceptions import ConfigurationError

__all__ = [
    "Instance",
    "LaunchRequest",
    "LaunchResult",
    "LaunchSpec",
    "RegistrationToken",
    "RunContext",
    "TerminationRequest",
    "TerminationResult",
    "parse_market_type",
    "merge_labels",
]


def parse_market_type(value: str | MarketType) -> MarketType:
    """Parse a market type, rejecting anything but on-demand and spot."""
    try:
        return MarketType(value)
    except ValueError:
        valid = ", ".join(m.value for m in MarketType)
        raise ConfigurationError(
            f"Invalid market type '{value}'. Valid: {valid}"
        ) from None


def merge_labels(*groups: str) -> str:
    """Join comma-separated label groups, dropping blanks and duplicates."""
    seen: dict[str, None] = {}
    for group in groups:
        for label in group.split(","):
            if label := label.strip():
                seen.setdefault(label, None)
    return ",".join(seen)


@dataclass(frozen=True, slots=True)
class RegistrationToken:
    """Short-lived runner registration credential issued by GitHub."""

    value: str = field(repr=False)
    expires_at: datetime


@dataclass(frozen=True, slots=True)
class RunContext:
    """Identifies one workflow run attempt.

    Inside GitHub Actions this comes from GITHUB_RUN_NUMBER and
    GITHUB_RUN_ATTEMPT. Outside of it a random run id keeps labels unique.
    """

    run_number: str
    run_attempt: str = "1"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> RunContext:
        env = os.environ if environ is None else environ
        number = env.get("GITHUB_RUN_NUMBER", "").strip()
        attempt = env.get("GITHUB_RUN_ATTEMPT", "").strip() or "1"
        if not number:
            return cls(run_number=f"local{uuid.uuid4().hex[:8]}", run_attempt="1")
        return cls(run_number=number, run_attempt=attempt)

    @property
    def unique_label(self) -> str:
        return f"run-{self.run_number}-{self.run_attempt}"

    def runner_name(self, epoch: int) -> str:
        return f"runner-{self.run_number}-{self.run_attempt}-{epoch}"


@dataclass(frozen=True, slots=True)
class LaunchRequest:
    """Everything needed to launch one runner instance."""

    image_id: str
    instance_type: str
    subnet_id: str
    security_group_id: str
    repo_owner: str
    repo_name: str
    labels: str = ""
    pre_runner_script: str = ""
    runner_name: str = ""
    market_type: MarketType = MarketType.ON_DEMAND
    spot_max_price: str | None = None
    run: RunContext | None = None

    def __post_init__(self) -> None:
        required = {
            "image_id": self.image_id,
            "instance_type": self.instance_type,
            "subnet_id": self.subnet_id,
            "security_group_id": self.security_group_id,
            "repo_owner": self.repo_owner,
            "repo_name": self.repo_name,
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            raise ConfigurationError(f"Missing required launch parameters: {', '.join(missing)}")

        object.__setattr__(self, "market_type", parse_market_type(self.market_type))

        price = (self.spot_max_price or "").strip() or None
        object.__setattr__(self, "spot_max_price", price)
        if price is None:
            return
        if self.market_type is not MarketType.SPOT:
            raise ConfigurationError("Spot max price requires market type 'spot'")
        try:
            valid = Decimal(price) > 0
        except InvalidOperation:
            valid = False
        if not valid:
            raise ConfigurationError(f"Invalid spot max price '{price}': expected a positive number")

    @property
    def repository(self) -> str:
        return f"{self.repo_owner}/{self.repo_name}"

    @property
    def spot(self) -> bool:
        return self.market_type is MarketType.SPOT

    def tags(self, labels: str, runner_name: str) -> dict[str, str]:
        """Tag set attached to the instance at launch."""
        tags = {
            RunnerTag.NAME: f"GitHub Actions Runner - {self.repository}",
            RunnerTag.PURPOSE: TAG_PURPOSE,
            RunnerTag.REPOSITORY: self.repository,
            RunnerTag.LABELS: labels,
            RunnerTag.RUNNER_NAME: runner_name,
        }
        if self.spot:
            tags[RunnerTag.MARKET_TYPE] = MarketType.SPOT.value
            if self.spot_max_price:
                tags[RunnerTag.SPOT_MAX_PRICE] = self.spot_max_price
        return {str(k): v for k, v in tags.items()}

    def effective_labels(self, run: RunContext) -> str:
        return merge_labels(self.labels or DEFAULT_RUNNER_LABELS, run.unique_label)


@dataclass(frozen=True, slots=True)
class LaunchSpec:
    """Provider-level launch parameters.

    user_data is the plain script; botocore base64-encodes it for RunInstances.
    """

    image_id: str
    instance_type: str
    subnet_id: str
    security_group_id: str
    user_data: str = field(repr=False)
    tags: Mapping[str, str] = field(default_factory=dict)
    market_type: MarketType = MarketType.ON_DEMAND
    spot_max_price: str | None = None


@dataclass(frozen=True, slots=True)
class Instance:
    """An EC2 instance as last seen by the provider."""

    id: str
    state: str
    instance_type: str = ""
    spot: bool = False
    private_ip: str = ""

    @property
    def is_terminated(self) -> bool:
        return self.state == InstanceState.TERMINATED


@dataclass(frozen=True, slots=True)
class LaunchResult:
    instance_id: str
    runner_name: str
    labels: str
    unique_label: str
    market_type: MarketType
    running: bool


@dataclass(frozen=True, slots=True)
class TerminationRequest:
    """Terminate one instance within a bounded time budget.

    Args:
        instance_id: EC2 instance id.
        timeout: Seconds to wait for the instance to reach `terminated`.
            Must be within 60-3600.
        force: Allow the stop-then-terminate fallback. Halves the wait
            budget, with a 120s floor.
    """

    instance_id: str
    timeout: int = TERMINATE_TIMEOUT_DEFAULT
    force: bool = False

    def __post_init__(self) -> None:
        if not self.instance_id:
            raise ConfigurationError("instance-id is required")
        if not TERMINATE_TIMEOUT_MIN <= self.timeout <= TERMINATE_TIMEOUT_MAX:
            raise ConfigurationError(
                f"Timeout must be between {TERMINATE_TIMEOUT_MIN} and "
                f"{TERMINATE_TIMEOUT_MAX} seconds, got {self.timeout}"
            )

    @property
    def wait_budget(self) -> float:
        if self.force:
            return max(self.timeout / 2, FORCE_WAIT_FLOOR)
        return float(self.timeout)


@dataclass(frozen=True, slots=True)
class TerminationResult:
    instance_id: str
    state: str
    already_terminated: bool = False
    forced: bool = False
