"""Declarative bootstrap script DSL.

This module provides a functional DSL for generating the shell script
passed to EC2 as user data.

Example:
    >>> from ghrunner.bootstrap import render
    >>>
    >>> script = render(token, "octo", "hello-world", labels="self-hosted,gpu")
"""

from __future__ import annotations

from .compose import Op, bootstrap, resolve
from .ops import cd, echo, env_export, file, function, mkdir, trap
from .runner import DEFAULT_PRE_RUNNER_SCRIPT, render

__all__ = [
    "DEFAULT_PRE_RUNNER_SCRIPT",
    "Op",
    "bootstrap",
    "cd",
    "echo",
    "env_export",
    "file",
    "function",
    "mkdir",
    "render",
    "resolve",
    "trap",
]
