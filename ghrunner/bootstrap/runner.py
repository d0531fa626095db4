"""GitHub Actions runner bootstrap.

Renders the user-data script that installs, registers and starts a
self-hosted runner on first boot. The result is opaque to the rest of
ghrunner: botocore base64-encodes it on the way to RunInstances.
"""

from __future__ import annotations

import shlex
from typing import Final

from ghrunner.constants import DEFAULT_RUNNER_LABELS, DEFAULT_RUNNER_NAME, RUNNER_VERSION

from .compose import Op, bootstrap
from .ops import cd, echo, env_export, file, function, mkdir, trap

RUNNER_DIR: Final = "actions-runner"
PRE_RUNNER_SCRIPT: Final = "pre-runner-script.sh"

DEFAULT_PRE_RUNNER_SCRIPT: Final = """# Default pre-runner script
echo "Starting GitHub Actions Runner setup..."
apt-get update -y
apt-get install -y curl jq git"""


def detect_arch() -> Op:
    return lambda: "\n".join([
        'case $(uname -m) in aarch64) ARCH="arm64" ;; amd64|x86_64) ARCH="x64" ;; esac',
        "export RUNNER_ARCH=${ARCH}",
        'echo "Detected architecture: ${RUNNER_ARCH}"',
    ])


def download_runner(version: str = RUNNER_VERSION) -> Op:
    tarball = f"actions-runner-linux-${{RUNNER_ARCH}}-{version}.tar.gz"
    url = f"https://github.com/actions/runner/releases/download/v{version}/{tarball}"
    return lambda: f"curl -o {tarball} -L {url}\ntar xzf ./{tarball}"


def pre_runner(script: str) -> Op:
    return [
        file(PRE_RUNNER_SCRIPT, script, mode="+x", delimiter="PRE_RUNNER_EOF"),
        f"source {PRE_RUNNER_SCRIPT}",
    ]


def configure_runner(url: str, token: str, labels: str, name: str) -> Op:
    # The name stays double-quoted so $(hostname) expands on the instance.
    return lambda: (
        f"./config.sh --unattended --url {shlex.quote(url)} --token {shlex.quote(token)} "
        f'--labels {shlex.quote(labels)} --name "{name}" --work _work --replace'
    )


def deregister_on_signal(token: str) -> Op:
    return [
        function(
            "cleanup",
            "echo 'Received shutdown signal, removing runner...'",
            f"./config.sh remove --token {shlex.quote(token)} || true",
        ),
        trap("cleanup", "TERM", "INT"),
    ]


def start_runner() -> Op:
    return [
        "./run.sh &",
        "RUNNER_PID=$!",
        echo("Runner started in background"),
        echo("GitHub Actions Runner setup completed successfully!"),
        "wait $RUNNER_PID",
    ]


def render(
    token: str,
    owner: str,
    repo: str,
    labels: str = "",
    pre_script: str = "",
    runner_name: str = "",
    *,
    version: str = RUNNER_VERSION,
) -> str:
    """Render the runner bootstrap script.

    Args:
        token: Runner registration token.
        owner: Repository owner.
        repo: Repository name.
        labels: Comma-separated runner labels. Empty uses the default set.
        pre_script: Shell run before the runner is installed. Empty uses a
            minimal apt update/install script.
        runner_name: Runner display name. Empty resolves to the instance
            hostname at boot time.
        version: actions/runner release to install.

    Returns:
        The complete user-data script.
    """
    return bootstrap(
        echo("Starting GitHub Actions Runner setup..."),
        [mkdir(RUNNER_DIR), cd(RUNNER_DIR)],
        pre_runner(pre_script or DEFAULT_PRE_RUNNER_SCRIPT),
        detect_arch(),
        download_runner(version),
        env_export(RUNNER_ALLOW_RUNASROOT="1"),
        [
            configure_runner(
                f"https://github.com/{owner}/{repo}",
                token,
                labels or DEFAULT_RUNNER_LABELS,
                runner_name or DEFAULT_RUNNER_NAME,
            ),
            echo("Runner configured successfully"),
        ],
        deregister_on_signal(token),
        start_runner(),
    )
