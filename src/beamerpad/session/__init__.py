"""Edit session: the single-flight action controller and its state models."""

from .controller import EditSessionController, format_failure
from .models import ActionGate, ActionState, ActionStatus, SessionInputs

__all__ = [
    "ActionGate",
    "ActionState",
    "ActionStatus",
    "EditSessionController",
    "SessionInputs",
    "format_failure",
]
