"""TOML and environment based settings.

Loads ~/.ghrunner/defaults.toml (global) and ghrunner.toml (project),
then an explicit --config file, then environment variables, then CLI
overrides. Later sources win.

Example ghrunner.toml:

    region = "eu-west-1"
    instance_type = "t3.small"
    labels = "self-hosted,linux,x64,docker"
    launch_wait_timeout = 600
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from ghrunner.constants import (
    DEFAULT_INSTANCE_TYPE,
    DEFAULT_REGION,
    GITHUB_API_URL,
    HTTP_TIMEOUT,
    LAUNCH_WAIT_TIMEOUT,
)
from ghrunner.core.exceptions import ConfigurationError

type RawConfig = dict[str, Any]

GLOBAL_CONFIG_PATH = Path.home() / ".ghrunner" / "defaults.toml"
PROJECT_CONFIG_NAME = "ghrunner.toml"

# Environment variables in increasing priority.
ENV_KEYS: tuple[tuple[str, str], ...] = (
    ("AWS_DEFAULT_REGION", "region"),
    ("AWS_REGION", "region"),
    ("GITHUB_API_URL", "github_api_url"),
)


@dataclass(frozen=True, slots=True)
class Settings:
    """Resolved process-wide settings.

    Args:
        region: AWS region for runner instances.
        github_api_url: GitHub REST API base URL (override for GHES).
        instance_type: Default EC2 instance type for `create`.
        labels: Default runner labels when none are given.
        launch_wait_timeout: Seconds to wait for a new instance to run.
        request_timeout: HTTP timeout for GitHub API calls.
    """

    region: str = DEFAULT_REGION
    github_api_url: str = GITHUB_API_URL
    instance_type: str = DEFAULT_INSTANCE_TYPE
    labels: str = ""
    launch_wait_timeout: float = LAUNCH_WAIT_TIMEOUT
    request_timeout: float = HTTP_TIMEOUT

    def __post_init__(self) -> None:
        for name in ("launch_wait_timeout", "request_timeout"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int | float) or value <= 0:
                raise ConfigurationError(f"'{name}' must be a positive number, got {value!r}")
        for name in ("region", "github_api_url", "instance_type", "labels"):
            if not isinstance(getattr(self, name), str):
                raise ConfigurationError(f"'{name}' must be a string")


SETTING_KEYS = frozenset(f.name for f in fields(Settings))


def _read_toml(path: Path) -> RawConfig:
    if not path.is_file():
        return {}
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {path}: {e}") from e


def _check_keys(raw: RawConfig, source: str) -> RawConfig:
    unknown = sorted(set(raw) - SETTING_KEYS)
    if unknown:
        raise ConfigurationError(
            f"Unknown setting(s) in {source}: {', '.join(unknown)}. "
            f"Valid: {', '.join(sorted(SETTING_KEYS))}"
        )
    return raw


def _from_env(environ: Mapping[str, str]) -> RawConfig:
    return {key: environ[var] for var, key in ENV_KEYS if environ.get(var)}


def load_settings(
    *,
    config_path: Path | None = None,
    project_dir: Path | None = None,
    global_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Merge every settings source into a Settings instance.

    Args:
        config_path: Explicit TOML file; must exist when given.
        project_dir: Directory searched for ghrunner.toml. Default: cwd.
        global_path: Global defaults file. Default: ~/.ghrunner/defaults.toml.
        environ: Environment mapping. Default: os.environ.
        overrides: CLI values; None entries are ignored.
    """
    global_file = global_path or GLOBAL_CONFIG_PATH
    project_file = (project_dir or Path.cwd()) / PROJECT_CONFIG_NAME

    merged: RawConfig = {}
    merged |= _check_keys(_read_toml(global_file), str(global_file))
    merged |= _check_keys(_read_toml(project_file), str(project_file))

    if config_path is not None:
        if not config_path.is_file():
            raise ConfigurationError(f"Config file not found: {config_path}")
        merged |= _check_keys(_read_toml(config_path), str(config_path))

    merged |= _from_env(os.environ if environ is None else environ)
    merged |= _check_keys(
        {k: v for k, v in (overrides or {}).items() if v is not None}, "overrides"
    )

    return Settings(**merged)


__all__ = [
    "GLOBAL_CONFIG_PATH",
    "PROJECT_CONFIG_NAME",
    "Settings",
    "load_settings",
]
