"""Exceções utilitárias compartilhadas."""

from .exceptions import (
    TRANSITION_ERRORS,
    DispatchFailure,
    FutureCompletionError,
    InfrastructureError,
    InvalidCancellationReasonError,
    InvalidOptOutTokenError,
    InvalidTransitionError,
    LateCancellationError,
    OutOfWindowError,
    PermanentDispatchFailure,
    RedisConnectionError,
    SchedulingConflictError,
    SchedulingFailure,
    SessionNotFoundError,
    SessionTransitionError,
    SkippedInProgressError,
    TransitionErrorKind,
)

__all__ = [
    "TRANSITION_ERRORS",
    "DispatchFailure",
    "FutureCompletionError",
    "InfrastructureError",
    "InvalidCancellationReasonError",
    "InvalidOptOutTokenError",
    "InvalidTransitionError",
    "LateCancellationError",
    "OutOfWindowError",
    "PermanentDispatchFailure",
    "RedisConnectionError",
    "SchedulingConflictError",
    "SchedulingFailure",
    "SessionNotFoundError",
    "SessionTransitionError",
    "SkippedInProgressError",
    "TransitionErrorKind",
]
