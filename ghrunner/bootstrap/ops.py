"""Core bootstrap operations.

Declarative operations for system setup: directories, files, variables.
Each operation is a function returning an Op (string or callable).
"""

from __future__ import annotations

from .compose import Op, resolve


def mkdir(path: str, parents: bool = True) -> Op:
    """Create a directory.

    Example:
        >>> mkdir("actions-runner")()
        'mkdir -p actions-runner'
    """
    flag = " -p" if parents else ""
    return lambda: f"mkdir{flag} {path}"


def cd(path: str) -> Op:
    """Change the working directory.

    Example:
        >>> cd("actions-runner")()
        'cd actions-runner'
    """
    return lambda: f"cd {path}"


def file(
    path: str,
    content: str,
    mode: str | None = None,
    delimiter: str = "EOF",
) -> Op:
    """Write content to a file using a quoted heredoc (no expansion).

    Args:
        path: File path to write.
        content: File content.
        mode: Optional chmod mode (e.g., "+x").
        delimiter: Heredoc delimiter; must not appear alone on a content line.

    Example:
        >>> file("pre.sh", "echo hi")()
        "cat > pre.sh << 'EOF'\\necho hi\\nEOF"
    """

    def generate() -> str:
        lines = [f"cat > {path} << '{delimiter}'", content.rstrip("\n"), delimiter]
        if mode:
            lines.append(f"chmod {mode} {path}")
        return "\n".join(lines)

    return generate


def env_export(**variables: str) -> Op:
    """Export environment variables.

    Example:
        >>> env_export(RUNNER_ALLOW_RUNASROOT="1")()
        'export RUNNER_ALLOW_RUNASROOT="1"'
    """
    if not variables:
        return lambda: "# No environment variables"

    def generate() -> str:
        return "\n".join(f'export {k}="{v}"' for k, v in variables.items())

    return generate


def echo(message: str) -> Op:
    return lambda: f"echo '{message}'"


def function(name: str, *ops: Op) -> Op:
    """Define a shell function.

    Example:
        >>> function("cleanup", "echo bye")()
        'cleanup() {\\n    echo bye\\n}'
    """

    def generate() -> str:
        body = "\n".join(resolve(op) for op in ops)
        indented = "\n".join(f"    {line}" if line else line for line in body.splitlines())
        return f"{name}() {{\n{indented}\n}}"

    return generate


def trap(handler: str, *signals: str) -> Op:
    """Run handler when any of the signals is received.

    Example:
        >>> trap("cleanup", "TERM", "INT")()
        'trap cleanup TERM INT'
    """
    return lambda: f"trap {handler} {' '.join(signals)}"
