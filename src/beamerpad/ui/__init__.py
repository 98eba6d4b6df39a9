"""UI package: the event bus and the PySide6 window.

The window module imports PySide6 and is therefore not re-exported here.
"""

from .events import EventBus

__all__ = ["EventBus"]
