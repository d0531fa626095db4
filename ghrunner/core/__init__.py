from .exceptions import (
    AuthError,
    ConfigurationError,
    DecodeError,
    ForceTerminationError,
    InstanceNotFoundError,
    InvalidStateError,
    LaunchError,
    LifecycleError,
    ProviderError,
    RegistrationError,
    RunnerError,
    StateConflictError,
    TerminationError,
    TimeoutError,
    TransportError,
    UnexpectedStateError,
)

__all__ = [
    "AuthError",
    "ConfigurationError",
    "DecodeError",
    "ForceTerminationError",
    "InstanceNotFoundError",
    "InvalidStateError",
    "LaunchError",
    "LifecycleError",
    "ProviderError",
    "RegistrationError",
    "RunnerError",
    "StateConflictError",
    "TerminationError",
    "TimeoutError",
    "TransportError",
    "UnexpectedStateError",
]
