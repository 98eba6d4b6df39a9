"""Event bus infrastructure for decoupled communication.

The document store, selection tracker and session controller publish their
state transitions here; the window subscribes and re-renders. Nothing in the
core holds a reference to a widget.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Generic, TypeVar
from weakref import WeakMethod, ref

from ..core.errors import ErrorCategory
from ..core.models import ActionKind
from ..core.ranges import Selection

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from typing import DefaultDict

logger = logging.getLogger(__name__)

E = TypeVar("E", bound="Event")

Handler = Callable[[E], None]


@dataclass(slots=True)
class Event:
    """Base class for all events published on the bus."""

    pass


# =============================================================================
# Document Events
# =============================================================================


@dataclass(slots=True)
class DocumentModified(Event):
    """Emitted whenever the canonical document text changes.

    Attributes:
        version_id: The incremented version number after the change.
        source: Who changed it, ``"user"`` for typing or an action kind value.
    """

    version_id: int
    source: str = "user"


@dataclass(slots=True)
class SelectionChanged(Event):
    """Emitted when the tracked selection is captured or cleared.

    Attributes:
        selection: The new selection, or ``None`` when cleared.
    """

    selection: Selection | None


# =============================================================================
# Action Events
# =============================================================================


@dataclass(slots=True)
class ActionStarted(Event):
    action_id: str
    kind: ActionKind


@dataclass(slots=True)
class ActionSucceeded(Event):
    action_id: str
    kind: ActionKind


@dataclass(slots=True)
class ActionFailed(Event):
    """Emitted when an in-flight action settles with an error.

    Attributes:
        action_id: Identifier of the failed action.
        kind: The action kind.
        category: Classification used to pick the user-facing treatment.
        message: The message stored as the session error.
    """

    action_id: str
    kind: ActionKind
    category: ErrorCategory
    message: str


@dataclass(slots=True)
class ActionCanceled(Event):
    action_id: str
    kind: ActionKind


@dataclass(slots=True)
class EditorLockChanged(Event):
    """Emitted when the editor must become read-only (or writable again).

    Attributes:
        locked: Whether user edits should be blocked.
        reason: Action kind value while locked, empty when unlocked.
    """

    locked: bool
    reason: str


# =============================================================================
# UI Events
# =============================================================================


@dataclass(slots=True)
class ErrorChanged(Event):
    """Emitted when the single user-visible error message changes."""

    message: str | None


@dataclass(slots=True)
class InputsChanged(Event):
    """Emitted when a controller-owned input field changes.

    Attributes:
        field: One of ``instruction``, ``image``, ``image_prompt``, ``pdf``,
            ``pdf_prompt``.
    """

    field: str


_QUIET_EVENT_TYPES: set[type] = {SelectionChanged}


class EventBus(Generic[E]):
    """A typed publish-subscribe event bus.

    Handlers for bound methods are stored as weak references so a discarded
    widget does not keep receiving events. The bus is not thread-safe; all
    calls are expected from the event loop thread.

    Example::

        bus = EventBus()
        bus.subscribe(DocumentModified, lambda event: print(event.version_id))
        bus.publish(DocumentModified(version_id=2))
    """

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        self._handlers: DefaultDict[type[Event], list[_HandlerRef]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Register ``handler`` for events of exactly ``event_type``."""
        self._handlers[event_type].append(_HandlerRef.create(handler))
        logger.debug(
            "Subscribed handler %s to event type %s",
            _handler_name(handler),
            event_type.__name__,
        )

    def unsubscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Remove the first registration of ``handler``; unknown handlers are ignored."""
        handlers = self._handlers.get(event_type)
        if handlers is None:
            return
        for index, handler_ref in enumerate(handlers):
            if handler_ref.matches(handler):
                handlers.pop(index)
                return

    def publish(self, event: E) -> None:
        """Invoke every handler registered for the event's type, in order.

        A handler that raises is logged and does not stop the remaining
        handlers.
        """
        event_type = type(event)
        handlers = self._handlers.get(event_type)
        if not handlers:
            return

        if event_type not in _QUIET_EVENT_TYPES:
            logger.debug("Publishing %s to %d handler(s)", event_type.__name__, len(handlers))

        dead_indices: list[int] = []
        for index, handler_ref in enumerate(list(handlers)):
            handler = handler_ref.resolve()
            if handler is None:
                dead_indices.append(index)
                continue
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Handler %s raised exception for event %s",
                    _handler_name(handler),
                    event_type.__name__,
                )

        for index in reversed(dead_indices):
            handlers.pop(index)

    def clear(self) -> None:
        self._handlers.clear()

    def handler_count(self, event_type: type[E] | None = None) -> int:
        """Return the number of handlers for ``event_type`` (or in total)."""
        if event_type is not None:
            return len(self._handlers.get(event_type, []))
        return sum(len(handlers) for handlers in self._handlers.values())


class _HandlerRef:
    """Weak reference for bound methods, strong reference for everything else."""

    __slots__ = ("_ref", "_is_weak")

    def __init__(self, handler_ref: WeakMethod | ref | Handler, is_weak: bool) -> None:
        self._ref = handler_ref
        self._is_weak = is_weak

    @classmethod
    def create(cls, handler: Handler) -> _HandlerRef:
        if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
            try:
                return cls(WeakMethod(handler), is_weak=True)
            except TypeError:
                pass
        return cls(handler, is_weak=False)

    def resolve(self) -> Handler | None:
        if not self._is_weak:
            return self._ref  # type: ignore[return-value]
        return self._ref()  # type: ignore[operator]

    def matches(self, handler: Handler) -> bool:
        resolved = self.resolve()
        if resolved is None:
            return False
        return resolved == handler


def _handler_name(handler: Handler) -> str:
    if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
        return f"{type(handler.__self__).__name__}.{handler.__func__.__name__}"
    return getattr(handler, "__name__", repr(handler))


__all__ = [
    "Event",
    "EventBus",
    "Handler",
    "DocumentModified",
    "SelectionChanged",
    "ActionStarted",
    "ActionSucceeded",
    "ActionFailed",
    "ActionCanceled",
    "EditorLockChanged",
    "ErrorChanged",
    "InputsChanged",
]
