"""Centralized constants and enums for ghrunner.

All magic strings, defaults and timing constants live here so the
controller, the AWS adapter and the CLI agree on them.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Final

# =============================================================================
# EC2 Instance States
# =============================================================================


class InstanceState(StrEnum):
    """EC2 instance state names."""

    PENDING = "pending"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"
    SHUTTING_DOWN = "shutting-down"
    TERMINATED = "terminated"


KNOWN_STATES: Final = frozenset(InstanceState)
TERMINABLE_STATES: Final = frozenset(
    {InstanceState.RUNNING, InstanceState.STOPPING, InstanceState.STOPPED}
)
TERMINATING_STATES: Final = frozenset(
    {InstanceState.SHUTTING_DOWN, InstanceState.TERMINATED}
)


# =============================================================================
# Market Types
# =============================================================================


class MarketType(StrEnum):
    """EC2 purchasing model for the runner instance."""

    ON_DEMAND = "on-demand"
    SPOT = "spot"


# =============================================================================
# Resource Tags
# =============================================================================


class RunnerTag(StrEnum):
    """EC2 tag keys attached to every runner instance."""

    NAME = "Name"
    PURPOSE = "Purpose"
    REPOSITORY = "Repository"
    LABELS = "Labels"
    RUNNER_NAME = "RunnerName"
    MARKET_TYPE = "InstanceMarketType"
    SPOT_MAX_PRICE = "SpotMaxPrice"


TAG_PURPOSE: Final = "GitHub Actions"


# =============================================================================
# GitHub
# =============================================================================

GITHUB_API_URL: Final = "https://api.github.com"
GITHUB_API_VERSION: Final = "2022-11-28"
RUNNER_VERSION: Final = "2.313.0"
DEFAULT_RUNNER_LABELS: Final = "self-hosted,linux,x64"
DEFAULT_RUNNER_NAME: Final = "$(hostname)-runner"

# =============================================================================
# AWS
# =============================================================================

DEFAULT_REGION: Final = "us-east-1"
DEFAULT_INSTANCE_TYPE: Final = "t3.micro"

# =============================================================================
# Timeouts (in seconds)
# =============================================================================

HTTP_TIMEOUT: Final = 30
LAUNCH_WAIT_TIMEOUT: Final = 300
RUNNING_POLL_INTERVAL: Final = 5

TERMINATE_TIMEOUT_DEFAULT: Final = 300
TERMINATE_TIMEOUT_MIN: Final = 60
TERMINATE_TIMEOUT_MAX: Final = 3600
FORCE_WAIT_FLOOR: Final = 120
FORCE_STOP_GRACE: Final = 10
TERMINAL_POLL_INTERVAL: Final = 10
GRACEFUL_TERMINATE_ATTEMPTS: Final = 3

# =============================================================================
# Output
# =============================================================================

OUTPUT_HUMAN: Final = "human"
OUTPUT_GITHUB_ACTIONS: Final = "github-actions"
