"""Shared pytest fixtures."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from beamerpad.core.models import MediaPayload
from beamerpad.editor.document_store import DocumentStore
from beamerpad.editor.selection_tracker import SelectionTracker
from beamerpad.session.controller import EditSessionController
from beamerpad.ui.events import Event, EventBus

_ENV_VARS = (
    "BEAMERPAD_API_KEY",
    "API_KEY",
    "BEAMERPAD_BASE_URL",
    "BEAMERPAD_MODEL",
    "BEAMERPAD_THEME",
    "BEAMERPAD_FONT_FAMILY",
    "BEAMERPAD_DEBUG_LOGGING",
    "BEAMERPAD_REQUEST_TIMEOUT",
    "BEAMERPAD_TEMPERATURE",
    "BEAMERPAD_MAX_RETRIES",
    "BEAMERPAD_FONT_SIZE",
    "BEAMERPAD_DEBUG",
    "BEAMERPAD_SETTINGS_PATH",
)

SAMPLE_DOCUMENT = "\\begin{document}X\\end{document}"


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Any) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("BEAMERPAD_LOG_DIR", str(tmp_path / "logs"))


class FakeGenerator:
    """Stand-in for :class:`GenerationClient` recording every call.

    Set ``result`` or ``error`` to control the outcome. Set ``hold`` to an
    :class:`asyncio.Event` to keep calls pending until it is set.
    """

    def __init__(self, result: str = "") -> None:
        self.result = result
        self.error: BaseException | None = None
        self.hold: asyncio.Event | None = None
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.started = asyncio.Event()

    async def _respond(self, name: str, *args: Any) -> str:
        self.calls.append((name, args))
        self.started.set()
        if self.hold is not None:
            await self.hold.wait()
        if self.error is not None:
            raise self.error
        return self.result

    async def update_presentation(self, document: str, instruction: str) -> str:
        return await self._respond("update_presentation", document, instruction)

    async def rewrite_selection(self, snippet: str, document: str, instruction: str) -> str:
        return await self._respond("rewrite_selection", snippet, document, instruction)

    async def generate_from_image(self, document: str, media: MediaPayload, instruction: str = "") -> str:
        return await self._respond("generate_from_image", document, media, instruction)

    async def generate_from_pdf(self, document: str, media: MediaPayload, instruction: str = "") -> str:
        return await self._respond("generate_from_pdf", document, media, instruction)

    async def aclose(self) -> None:
        return None


class EventRecorder:
    """Collects every event of the given types in publish order."""

    def __init__(self, bus: EventBus, *event_types: type[Event]) -> None:
        self.events: list[Event] = []
        for event_type in event_types:
            bus.subscribe(event_type, self.events.append)

    def of_type(self, event_type: type[Event]) -> list[Event]:
        return [event for event in self.events if isinstance(event, event_type)]


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def store(event_bus: EventBus) -> DocumentStore:
    return DocumentStore(event_bus, initial_text=SAMPLE_DOCUMENT)


@pytest.fixture
def tracker(store: DocumentStore, event_bus: EventBus) -> SelectionTracker:
    return SelectionTracker(store.get_document, lambda: store.version_id, event_bus)


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def controller(
    store: DocumentStore,
    tracker: SelectionTracker,
    generator: FakeGenerator,
    event_bus: EventBus,
) -> EditSessionController:
    return EditSessionController(store, tracker, generator, event_bus)  # type: ignore[arg-type]
