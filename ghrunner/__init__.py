"""ghrunner - Ephemeral EC2 runners for GitHub Actions.

Example:

    import asyncio

    from ghrunner import LaunchRequest, Settings, create_injector, RunnerController

    controller = create_injector(Settings()).get(RunnerController)
    request = LaunchRequest(
        image_id="ami-0123456789abcdef0",
        instance_type="t3.micro",
        subnet_id="subnet-0abc",
        security_group_id="sg-0abc",
        repo_owner="octo",
        repo_name="hello-world",
    )
    result = asyncio.run(controller.launch(request, access_token))
"""

# Logging (disables the "ghrunner" logger until configured)
from ghrunner.logging import LogConfig, setup_logging, teardown_logging

# Callback system
from ghrunner.callback import Callback, compose, emit, use_callback

# Configuration
from ghrunner.config import Settings, load_settings

# Constants
from ghrunner.constants import InstanceState, MarketType

# Controller
from ghrunner.controller import RunnerController

# Exceptions
from ghrunner.core import (
    ConfigurationError,
    LifecycleError,
    ProviderError,
    RegistrationError,
    RunnerError,
)

# Wiring
from ghrunner.module import create_injector

# Types
from ghrunner.types import (
    Instance,
    LaunchRequest,
    LaunchResult,
    RunContext,
    TerminationRequest,
    TerminationResult,
)

__all__ = [
    "Callback",
    "ConfigurationError",
    "Instance",
    "InstanceState",
    "LaunchRequest",
    "LaunchResult",
    "LifecycleError",
    "LogConfig",
    "MarketType",
    "ProviderError",
    "RegistrationError",
    "RunContext",
    "RunnerController",
    "RunnerError",
    "Settings",
    "TerminationRequest",
    "TerminationResult",
    "compose",
    "create_injector",
    "emit",
    "load_settings",
    "setup_logging",
    "teardown_logging",
    "use_callback",
]
