"""Dependency wiring for ghrunner.

Builds the whole object graph once at process start from the resolved
Settings:

- AWS config, aioboto3 session and EC2 client factory (AWSModule)
- GitHub HTTP client and registration-token client
- EC2 provider, clock and the RunnerController
"""

from __future__ import annotations

from injector import Binder, Injector, Module, provider, singleton

from .aws import AWS, AWSModule, EC2ClientFactory, EC2Provider
from .config import Settings
from .controller import RunnerController
from .github import RegistrationTokenClient, github_http_client
from .infra.http import HttpClient
from .protocols import ComputeProvider, TokenSource
from .wait import Clock, SystemClock


class SettingsModule(Module):
    """Binds the resolved Settings for this invocation."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def configure(self, binder: Binder) -> None:
        binder.bind(Settings, to=self._settings)
        binder.bind(AWS, to=AWS(region=self._settings.region))


class RunnerModule(Module):
    """Core module providing the controller and its collaborators.

    Usage:
        injector = Injector([SettingsModule(settings), AWSModule(), RunnerModule()])
        controller = injector.get(RunnerController)
    """

    @singleton
    @provider
    def provide_clock(self) -> Clock:
        return SystemClock()

    @singleton
    @provider
    def provide_http(self, settings: Settings) -> HttpClient:
        """Provide the GitHub API client; closed by the CLI on exit."""
        return github_http_client(settings.github_api_url, settings.request_timeout)

    @singleton
    @provider
    def provide_tokens(self, http: HttpClient) -> TokenSource:
        return RegistrationTokenClient(http)

    @singleton
    @provider
    def provide_compute(self, ec2: EC2ClientFactory, config: AWS, clock: Clock) -> ComputeProvider:
        return EC2Provider(ec2, config, clock)

    @singleton
    @provider
    def provide_controller(
        self,
        tokens: TokenSource,
        compute: ComputeProvider,
        clock: Clock,
        settings: Settings,
    ) -> RunnerController:
        return RunnerController(
            tokens,
            compute,
            clock,
            launch_wait_timeout=settings.launch_wait_timeout,
        )


def create_injector(settings: Settings) -> Injector:
    """Build the injector for one CLI invocation."""
    return Injector([SettingsModule(settings), AWSModule(), RunnerModule()])


__all__ = [
    "RunnerModule",
    "SettingsModule",
    "create_injector",
]
