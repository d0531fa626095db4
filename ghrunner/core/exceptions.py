"""Custom exception hierarchy for ghrunner.

All ghrunner-specific exceptions inherit from RunnerError, so the CLI can
turn any of them into a non-zero exit with a single except clause.

Errors are grouped by the stage that raises them:

- Registration: AuthError, TransportError, DecodeError
- Provider: ProviderError, InstanceNotFoundError
- Lifecycle: LaunchError, InvalidStateError, StateConflictError,
  TerminationError, ForceTerminationError, TimeoutError, UnexpectedStateError
"""

from __future__ import annotations


class RunnerError(Exception):
    """Base exception for all ghrunner errors."""


class ConfigurationError(RunnerError):
    """Raised for invalid configuration or request parameters."""


# =============================================================================
# Registration Stage
# =============================================================================


class RegistrationError(RunnerError):
    """Raised when a runner registration token cannot be obtained."""


class AuthError(RegistrationError):
    """GitHub rejected the registration-token request."""

    def __init__(self, status: int, body: str) -> None:
        self.status = status
        self.body = body
        super().__init__(f"GitHub API returned status {status}: {body}")


class TransportError(RegistrationError):
    """The registration-token request never got an HTTP response."""


class DecodeError(RegistrationError):
    """The registration-token response could not be parsed."""


# =============================================================================
# Provider Stage
# =============================================================================

STATE_CONFLICT_CODES = frozenset({"IncorrectInstanceState", "IncorrectState"})


class ProviderError(RunnerError):
    """Raised when a call to the compute provider fails.

    Carries the provider's error code and original message untouched.
    """

    def __init__(
        self,
        message: str,
        *,
        code: str = "",
        operation: str = "",
        instance_id: str | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.operation = operation
        self.instance_id = instance_id

        target = f" {instance_id}" if instance_id else ""
        action = f"{operation}{target} failed" if operation else "provider call failed"
        detail = f"{code}: {message}" if code else message
        super().__init__(f"{action}: {detail}")

    @property
    def is_state_conflict(self) -> bool:
        """True when the instance's current state forbids the operation."""
        return self.code in STATE_CONFLICT_CODES


class InstanceNotFoundError(ProviderError):
    """Raised when the provider does not know the instance id."""


# =============================================================================
# Lifecycle Stage
# =============================================================================


class LifecycleError(RunnerError):
    """Base for errors raised by the instance lifecycle controller."""


class LaunchError(LifecycleError):
    """Raised when a launch request produced no instance."""


class InvalidStateError(LifecycleError):
    """Raised when termination is refused because of the instance state."""

    def __init__(self, instance_id: str, state: str) -> None:
        self.instance_id = instance_id
        self.state = state
        super().__init__(
            f"Instance {instance_id} is in state '{state}' and cannot be terminated"
        )


class StateConflictError(LifecycleError):
    """Raised when the provider refuses a graceful terminate."""

    def __init__(self, instance_id: str, cause: ProviderError) -> None:
        self.instance_id = instance_id
        self.cause = cause
        super().__init__(
            f"Instance {instance_id} state does not allow termination ({cause.message}). "
            "Retry with --force to stop it first."
        )


class TerminationError(LifecycleError):
    """Raised when graceful termination exhausted its attempts."""

    def __init__(self, instance_id: str, attempts: int, cause: BaseException | None) -> None:
        self.instance_id = instance_id
        self.attempts = attempts
        self.cause = cause
        super().__init__(
            f"Failed to terminate instance {instance_id} after {attempts} attempts: {cause}"
        )


class ForceTerminationError(LifecycleError):
    """Raised when the stop-then-terminate fallback also failed."""

    def __init__(self, instance_id: str, reason: str) -> None:
        self.instance_id = instance_id
        self.reason = reason
        super().__init__(f"Force termination of instance {instance_id} failed: {reason}")


class TimeoutError(LifecycleError):  # noqa: A001
    """Raised when a bounded wait exceeds its budget."""

    def __init__(self, description: str, timeout: float) -> None:
        self.description = description
        self.timeout = timeout
        super().__init__(f"Timeout waiting for {description} after {timeout:.0f}s")


class UnexpectedStateError(LifecycleError):
    """Raised when an instance shows a state the wait loop cannot progress from."""

    def __init__(self, instance_id: str, state: str, expected: str) -> None:
        self.instance_id = instance_id
        self.state = state
        self.expected = expected
        super().__init__(
            f"Instance {instance_id} reached unexpected state '{state}' "
            f"while waiting for '{expected}'"
        )
