"""Bootstrap script composition.

Core types and composition functions for the declarative bootstrap DSL.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Final

# =============================================================================
# Core Types
# =============================================================================

type Op = str | Callable[[], str] | list[Op]
"""Operation type: either a literal string or a function returning a string."""


def resolve(op: Op) -> str:
    """Resolve an operation to its string representation."""
    match op:
        case str(op):
            return op
        case list(op):
            return "\n".join(map(lambda o: resolve(o), op))
        case None:
            return ""
        case _:
            return op()


# =============================================================================
# Header
# =============================================================================

USER_DATA_LOG: Final = "/var/log/user-data.log"

HEADER: Final = f"""#!/bin/bash
exec > >(tee {USER_DATA_LOG} | logger -t user-data -s 2>/dev/console) 2>&1
"""


def bootstrap(*ops: Op | None, header: str = HEADER) -> str:
    """Compose operations into a complete bootstrap script.

    Args:
        *ops: Operations to compose. Can be strings or callables returning strings.
        header: Script header (shebang, shell options, log redirection).

    Returns:
        Complete shell script string.

    Example:
        >>> script = bootstrap(
        ...     mkdir("actions-runner"),
        ...     cd("actions-runner"),
        ...     "echo 'custom command'",
        ... )
    """
    commands = [resolve(op) for op in ops if op is not None]
    return header + "\n" + "\n\n".join(commands) + "\n"
