"""Progress events emitted by the runner controller.

The controller never prints. It emits these immutable events and the
output layer decides how (and whether) to render them.

Launch:
    TokenRequested, TokenAcquired, InstanceLaunching, InstanceLaunched,
    WaitingForRunning, InstanceRunning, RunningWaitFailed, LaunchCompleted

Terminate:
    TerminationStarted, InstanceStateObserved, AlreadyTerminated,
    TerminateRequested, TerminateRetrying, ForceStopping,
    WaitingForTermination, TerminationCompleted
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from ghrunner.constants import MarketType
from ghrunner.types import LaunchResult, TerminationResult

# =============================================================================
# Launch Events
# =============================================================================


@dataclass(frozen=True, slots=True)
class TokenRequested:
    """Requesting a registration token for a repository."""

    repository: str


@dataclass(frozen=True, slots=True)
class TokenAcquired:
    """Registration token issued. The token itself is never carried."""

    expires_at: datetime


@dataclass(frozen=True, slots=True)
class InstanceLaunching:
    """RunInstances is about to be called."""

    image_id: str
    instance_type: str
    subnet_id: str
    security_group_id: str
    market_type: MarketType
    spot_max_price: str | None
    runner_name: str
    labels: str


@dataclass(frozen=True, slots=True)
class InstanceLaunched:
    """RunInstances returned an instance."""

    instance_id: str
    state: str


@dataclass(frozen=True, slots=True)
class WaitingForRunning:
    instance_id: str
    timeout: float


@dataclass(frozen=True, slots=True)
class InstanceRunning:
    instance_id: str


@dataclass(frozen=True, slots=True)
class RunningWaitFailed:
    """The running-state wait failed. The launch itself still succeeded."""

    instance_id: str
    reason: str


@dataclass(frozen=True, slots=True)
class LaunchCompleted:
    result: LaunchResult


# =============================================================================
# Terminate Events
# =============================================================================


@dataclass(frozen=True, slots=True)
class TerminationStarted:
    instance_id: str
    timeout: int
    force: bool


@dataclass(frozen=True, slots=True)
class InstanceStateObserved:
    """Current state read before choosing a termination path."""

    instance_id: str
    state: str


@dataclass(frozen=True, slots=True)
class AlreadyTerminated:
    instance_id: str


@dataclass(frozen=True, slots=True)
class TerminateRequested:
    """TerminateInstances accepted; `state` is the transitional state."""

    instance_id: str
    state: str


@dataclass(frozen=True, slots=True)
class TerminateRetrying:
    """A graceful terminate attempt failed and will be retried."""

    instance_id: str
    attempt: int
    delay: float
    error: str


@dataclass(frozen=True, slots=True)
class ForceStopping:
    """Force-stopping the instance before a second terminate attempt."""

    instance_id: str
    reason: str


@dataclass(frozen=True, slots=True)
class WaitingForTermination:
    instance_id: str
    budget: float


@dataclass(frozen=True, slots=True)
class TerminationCompleted:
    result: TerminationResult


# =============================================================================
# Union Type (ADT)
# =============================================================================

type RunnerEvent = (
    TokenRequested
    | TokenAcquired
    | InstanceLaunching
    | InstanceLaunched
    | WaitingForRunning
    | InstanceRunning
    | RunningWaitFailed
    | LaunchCompleted
    | TerminationStarted
    | InstanceStateObserved
    | AlreadyTerminated
    | TerminateRequested
    | TerminateRetrying
    | ForceStopping
    | WaitingForTermination
    | TerminationCompleted
)

type EventCallback = Callable[[RunnerEvent], None]


__all__ = [
    # Launch
    "TokenRequested",
    "TokenAcquired",
    "InstanceLaunching",
    "InstanceLaunched",
    "WaitingForRunning",
    "InstanceRunning",
    "RunningWaitFailed",
    "LaunchCompleted",
    # Terminate
    "TerminationStarted",
    "InstanceStateObserved",
    "AlreadyTerminated",
    "TerminateRequested",
    "TerminateRetrying",
    "ForceStopping",
    "WaitingForTermination",
    "TerminationCompleted",
    # Types
    "RunnerEvent",
    "EventCallback",
]
