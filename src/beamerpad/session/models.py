"""Action state models for the edit session.

These dataclasses track the single in-flight action and the user inputs that
feed it. They are owned by :class:`~beamerpad.session.controller.EditSessionController`
and never touched by widgets directly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from ..core.models import ActionKind, MediaAttachment

LOGGER = logging.getLogger(__name__)


def _utcnow() -> datetime:
    """Return current UTC time."""
    return datetime.now(timezone.utc)


class ActionStatus(Enum):
    """Status of an action in its lifecycle.

    Values:
        PENDING: The network call is in flight.
        SUCCEEDED: The result was merged.
        FAILED: The action failed; nothing was merged.
        CANCELED: The action was canceled by the user.
    """

    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"


@dataclass(slots=True)
class ActionState:
    """State of one action from dispatch to settlement.

    Attributes:
        action_id: Unique identifier for this action.
        kind: Which of the four actions this is.
        version_id: Document version recorded at dispatch.
        status: Current status.
        error: Error message if the action failed.
        created_at: When the action was dispatched.
        completed_at: When the action settled.
    """

    action_id: str
    kind: ActionKind
    version_id: int
    status: ActionStatus = ActionStatus.PENDING
    error: str | None = None
    created_at: datetime = field(default_factory=_utcnow)
    completed_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == ActionStatus.PENDING

    def mark_succeeded(self) -> None:
        self.status = ActionStatus.SUCCEEDED
        self.completed_at = _utcnow()

    def mark_failed(self, error: str) -> None:
        self.status = ActionStatus.FAILED
        self.error = error
        self.completed_at = _utcnow()

    def mark_canceled(self) -> None:
        self.status = ActionStatus.CANCELED
        self.completed_at = _utcnow()


class ActionGate:
    """Idle/Busy state machine guaranteeing at most one action in flight.

    The gate is the only place the busy state changes; callers never write a
    flag directly.
    """

    __slots__ = ("_busy_kind",)

    def __init__(self) -> None:
        self._busy_kind: ActionKind | None = None

    @property
    def busy(self) -> bool:
        return self._busy_kind is not None

    @property
    def busy_kind(self) -> ActionKind | None:
        """The kind of the in-flight action, or ``None`` when idle."""
        return self._busy_kind

    def try_start(self, kind: ActionKind) -> bool:
        """Transition Idle to Busy(kind); return ``False`` if already busy."""
        if self._busy_kind is not None:
            LOGGER.debug("ActionGate.try_start(%s) rejected: busy with %s", kind.value, self._busy_kind.value)
            return False
        self._busy_kind = kind
        return True

    def finish(self) -> None:
        """Return to Idle. Finishing an idle gate is a no-op."""
        self._busy_kind = None


@dataclass(slots=True)
class SessionInputs:
    """User inputs consumed by the four actions.

    Attributes:
        instruction: Free-text instruction for updates and selection rewrites.
        image_attachment: Image for the image flow.
        image_prompt: Optional instruction for the image flow.
        pdf_attachment: PDF for the PDF flow.
        pdf_prompt: Optional instruction for the PDF flow.
    """

    instruction: str = ""
    image_attachment: MediaAttachment | None = None
    image_prompt: str = ""
    pdf_attachment: MediaAttachment | None = None
    pdf_prompt: str = ""


__all__ = ["ActionGate", "ActionState", "ActionStatus", "SessionInputs"]
