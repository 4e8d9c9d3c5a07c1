"""
Exports públicos do módulo fsm/rules.

Guards temporais para transições de status.
"""

from fsm.rules.guards import (
    DEFAULT_GUARDS,
    IN_PROGRESS_WINDOW,
    LATE_CANCELLATION_HOURS,
    Guard,
    GuardResult,
    TransitionContext,
    evaluate_guards,
    guard_future_completion,
    guard_in_progress_window,
    guard_late_cancellation,
    guard_skipped_in_progress,
)

__all__ = [
    "DEFAULT_GUARDS",
    "IN_PROGRESS_WINDOW",
    "LATE_CANCELLATION_HOURS",
    "Guard",
    "GuardResult",
    "TransitionContext",
    "evaluate_guards",
    "guard_future_completion",
    "guard_in_progress_window",
    "guard_late_cancellation",
    "guard_skipped_in_progress",
]
