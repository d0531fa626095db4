"""ghrunner command line.

    ghrunner create --image-id ami-... --subnet-id subnet-... \\
        --security-group sg-... --repo-owner octo --repo-name hello
    ghrunner terminate --instance-id i-... --timeout 600 --force

Each command resolves settings, builds the object graph once, runs a
single controller operation under asyncio.run and turns any RunnerError
into "Error: ..." on stderr with exit code 1.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Awaitable, Callable
from pathlib import Path

import click
from loguru import logger

from ghrunner.callback import compose, use_callback
from ghrunner.config import Settings, load_settings
from ghrunner.constants import (
    OUTPUT_GITHUB_ACTIONS,
    OUTPUT_HUMAN,
    TERMINATE_TIMEOUT_DEFAULT,
    MarketType,
)
from ghrunner.controller import RunnerController
from ghrunner.core.exceptions import ConfigurationError, RunnerError
from ghrunner.infra.http import HttpClient
from ghrunner.logging import LOG_LEVELS, LogConfig, log_events, setup_logging, teardown_logging
from ghrunner.module import create_injector
from ghrunner.output import Reporter
from ghrunner.types import LaunchRequest, TerminationRequest


def _resolve_repository(owner: str | None, name: str | None) -> tuple[str, str]:
    if owner and name:
        return owner, name

    repository = os.environ.get("GITHUB_REPOSITORY", "")
    env_owner, _, env_name = repository.partition("/")
    owner = owner or env_owner
    name = name or env_name
    if not owner or not name:
        raise ConfigurationError(
            "--repo-owner and --repo-name are required outside GitHub Actions "
            "(or set GITHUB_REPOSITORY=owner/name)"
        )
    return owner, name


def _reporter(output_format: str) -> Reporter:
    github_output = os.environ.get("GITHUB_OUTPUT")
    return Reporter(
        output_format=output_format,
        github_output=Path(github_output) if github_output else None,
    )


def _run[T](
    settings: Settings,
    reporter: Reporter,
    operation: Callable[[RunnerController], Awaitable[T]],
) -> T:
    async def main() -> T:
        injector = create_injector(settings)
        controller = injector.get(RunnerController)
        async with injector.get(HttpClient):
            with use_callback(compose(reporter, log_events)):
                return await operation(controller)

    try:
        return asyncio.run(main())
    except RunnerError as e:
        logger.opt(exception=e).debug("Command failed")
        raise click.ClickException(str(e)) from e


output_format_option = click.option(
    "--output-format",
    type=click.Choice([OUTPUT_HUMAN, OUTPUT_GITHUB_ACTIONS]),
    default=OUTPUT_HUMAN,
    show_default=True,
    help="Output format (github-actions for GitHub Actions compatibility)",
)


@click.group()
@click.option(
    "--region",
    default=None,
    help="AWS region [env: AWS_REGION, AWS_DEFAULT_REGION; default: us-east-1]",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Extra TOML settings file",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Enable diagnostic logging on stderr at this level",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also write DEBUG diagnostics to this file",
)
@click.pass_context
def cli(
    ctx: click.Context,
    region: str | None,
    config_path: Path | None,
    log_level: str | None,
    log_file: Path | None,
) -> None:
    """Launch and terminate ephemeral EC2 runners for GitHub Actions."""
    try:
        ctx.obj = load_settings(config_path=config_path, overrides={"region": region})
    except RunnerError as e:
        raise click.ClickException(str(e)) from e

    if log_level or log_file:
        logger.remove()
        handler_ids = setup_logging(LogConfig(
            level=(log_level or "WARNING").upper(),
            file=str(log_file) if log_file else None,
        ))
        ctx.call_on_close(lambda: teardown_logging(handler_ids))


@cli.command()
@click.option("--github-token", envvar="GITHUB_TOKEN", required=True, help="GitHub access token [env: GITHUB_TOKEN]")
@click.option("--image-id", required=True, help="AMI ID for the runner instance")
@click.option("--instance-type", default=None, help="EC2 instance type [default: t3.micro]")
@click.option("--subnet-id", required=True, help="Subnet ID for the instance")
@click.option("--security-group", "security_group_id", required=True, help="Security group ID")
@click.option("--repo-owner", default=None, help="Repository owner [default: from GITHUB_REPOSITORY]")
@click.option("--repo-name", default=None, help="Repository name [default: from GITHUB_REPOSITORY]")
@click.option("--labels", default="", help="Comma-separated runner labels [default: self-hosted,linux,x64]")
@click.option("--pre-runner-script", default="", help="Shell script run before the runner starts")
@click.option("--runner-name", default="", help="Runner name [default: runner-<run>-<attempt>-<epoch>]")
@click.option(
    "--market-type",
    type=click.Choice([m.value for m in MarketType]),
    default=MarketType.ON_DEMAND.value,
    show_default=True,
    help="EC2 purchasing option",
)
@click.option("--spot-max-price", default=None, help="Maximum hourly price for spot instances")
@output_format_option
@click.pass_obj
def create(
    settings: Settings,
    github_token: str,
    image_id: str,
    instance_type: str | None,
    subnet_id: str,
    security_group_id: str,
    repo_owner: str | None,
    repo_name: str | None,
    labels: str,
    pre_runner_script: str,
    runner_name: str,
    market_type: str,
    spot_max_price: str | None,
    output_format: str,
) -> None:
    """Create an EC2 instance that registers itself as a runner."""
    try:
        owner, name = _resolve_repository(repo_owner, repo_name)
        request = LaunchRequest(
            image_id=image_id,
            instance_type=instance_type or settings.instance_type,
            subnet_id=subnet_id,
            security_group_id=security_group_id,
            repo_owner=owner,
            repo_name=name,
            labels=labels or settings.labels,
            pre_runner_script=pre_runner_script,
            runner_name=runner_name,
            market_type=MarketType(market_type),
            spot_max_price=spot_max_price,
        )
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e

    _run(settings, _reporter(output_format), lambda c: c.launch(request, github_token))


@cli.command()
@click.option("--instance-id", required=True, help="EC2 instance ID to terminate")
@click.option(
    "--timeout",
    type=int,
    default=TERMINATE_TIMEOUT_DEFAULT,
    show_default=True,
    help="Seconds to wait for termination (60-3600)",
)
@click.option("--force", is_flag=True, help="Force-stop the instance if terminate does not take")
@output_format_option
@click.pass_obj
def terminate(settings: Settings, instance_id: str, timeout: int, force: bool, output_format: str) -> None:
    """Terminate a runner instance and wait until it is gone."""
    try:
        request = TerminationRequest(instance_id=instance_id, timeout=timeout, force=force)
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e

    _run(settings, _reporter(output_format), lambda c: c.terminate(request))


def main() -> None:
    cli(prog_name="ghrunner")


__all__ = ["cli", "main"]
