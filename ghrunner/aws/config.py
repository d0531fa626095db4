"""AWS provider configuration.

Immutable configuration dataclass for the EC2 adapter.
"""

from __future__ import annotations

from dataclasses import dataclass

from ghrunner.constants import DEFAULT_REGION, RUNNING_POLL_INTERVAL


@dataclass(frozen=True, slots=True)
class AWS:
    """AWS connection settings.

    Credentials are resolved by the standard boto credential chain
    (environment, shared credentials file, instance profile).

    Example:
        >>> from ghrunner.aws import AWS
        >>> config = AWS(region="us-west-2")

    Args:
        region: AWS region for the runner instances. Default: us-east-1
        poll_interval: Seconds between describe calls while waiting for
            an instance to start. Default: 5.
    """

    region: str = DEFAULT_REGION
    poll_interval: float = RUNNING_POLL_INTERVAL
