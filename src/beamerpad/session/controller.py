"""Edit session controller.

Owns the single-flight action lifecycle: checks preconditions, dispatches a
generation call, merges the result into the document store and maps every
failure onto one user-visible error string. This is the single source of
truth for the busy state and the session inputs.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from pathlib import Path
from typing import Any, Awaitable, Callable

from ..ai.generation import GenerationClient
from ..ai.media import attachment_from_bytes, extract_payload, read_media_file
from ..core.errors import (
    API_KEY_MISSING_MARKER,
    BeamerpadError,
    DocumentConflictError,
    InvalidLocalInputError,
    UpstreamError,
)
from ..core.models import ActionKind, ActionOutcome, MediaAttachment, MediaKind
from ..core.ranges import Selection, splice
from ..editor.document_store import DocumentStore
from ..editor.selection_tracker import SelectionTracker
from ..ui.events import (
    ActionCanceled,
    ActionFailed,
    ActionStarted,
    ActionSucceeded,
    EditorLockChanged,
    ErrorChanged,
    EventBus,
    InputsChanged,
)
from ..utils.logging import log_action
from .models import ActionGate, ActionState, SessionInputs

LOGGER = logging.getLogger(__name__)

_FAILURE_PREFIXES: dict[ActionKind, str] = {
    ActionKind.WHOLE_DOCUMENT_UPDATE: "Failed to update presentation",
    ActionKind.SELECTION_REWRITE: "Failed to modify selected code",
    ActionKind.IMAGE_GENERATION: "Failed to generate from image",
    ActionKind.PDF_GENERATION: "Failed to generate from PDF",
}

MISSING_INSTRUCTION = "Please enter a prompt to update the presentation."
MISSING_SELECTION = "No text selected to modify."
MISSING_REWRITE_INSTRUCTION = "Please enter a prompt describing how to modify the selected text."
STALE_SELECTION = "The selected text no longer matches the document. Please select it again."
MISSING_IMAGE = "Please provide an image."
MISSING_PDF = "Please select a PDF file."
NO_CLIPBOARD_IMAGE = "No image found on the clipboard."


def format_failure(kind: ActionKind, error: BeamerpadError) -> str:
    """Return the single user-facing string for ``error`` raised by ``kind``.

    Missing-configuration messages are shown verbatim; everything else gets a
    per-action prefix.
    """

    message = error.message or "Unknown error"
    if message.startswith(API_KEY_MISSING_MARKER):
        return message
    return f"{_FAILURE_PREFIXES[kind]}: {message}"


class EditSessionController:
    """Domain manager for the four edit actions.

    At most one action is in flight. While it is, the editor is locked and
    every further action request is rejected without side effects. Results are
    merged only if the document version is unchanged since dispatch.

    Events Emitted:
        - ActionStarted: When an action passes its preconditions and dispatches
        - ActionSucceeded: When a result is merged
        - ActionFailed: When the generator or the merge fails
        - ActionCanceled: When the user cancels the in-flight action
        - EditorLockChanged: On entering and leaving the busy state
        - InputsChanged: When an instruction, prompt or attachment changes
        - ErrorChanged: When the user-visible error changes
    """

    def __init__(
        self,
        store: DocumentStore,
        tracker: SelectionTracker,
        generator: GenerationClient,
        event_bus: EventBus,
    ) -> None:
        """Initialize the controller.

        Args:
            store: The canonical document.
            tracker: Source of the current selection.
            generator: Client used for all model calls.
            event_bus: Bus for publishing state transitions.
        """
        self._store = store
        self._tracker = tracker
        self._generator = generator
        self._bus = event_bus
        self._gate = ActionGate()
        self._inputs = SessionInputs()
        self._error: str | None = None
        self._current: ActionState | None = None
        self._task: asyncio.Task[str] | None = None
        self._cancel_requested = False

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def gate(self) -> ActionGate:
        return self._gate

    @property
    def busy(self) -> bool:
        return self._gate.busy

    @property
    def busy_kind(self) -> ActionKind | None:
        return self._gate.busy_kind

    @property
    def current_action(self) -> ActionState | None:
        """The most recent action, in flight or settled."""
        return self._current

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def inputs(self) -> SessionInputs:
        return self._inputs

    @property
    def instruction(self) -> str:
        return self._inputs.instruction

    @property
    def image_attachment(self) -> MediaAttachment | None:
        return self._inputs.image_attachment

    @property
    def image_prompt(self) -> str:
        return self._inputs.image_prompt

    @property
    def pdf_attachment(self) -> MediaAttachment | None:
        return self._inputs.pdf_attachment

    @property
    def pdf_prompt(self) -> str:
        return self._inputs.pdf_prompt

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def set_instruction(self, text: str) -> None:
        self._set_input("instruction", "instruction", text)

    def set_image_prompt(self, text: str) -> None:
        self._set_input("image_prompt", "image_prompt", text)

    def set_pdf_prompt(self, text: str) -> None:
        self._set_input("pdf_prompt", "pdf_prompt", text)

    def set_image_attachment(self, attachment: MediaAttachment | None) -> bool:
        """Attach an image; an attachment of the wrong kind sets the error instead."""
        if attachment is not None and attachment.kind is not MediaKind.IMAGE:
            self._set_error("Invalid file type. Please select an image.")
            return False
        self._set_input("image_attachment", "image", attachment)
        return True

    def set_pdf_attachment(self, attachment: MediaAttachment | None) -> bool:
        """Attach a PDF; an attachment of the wrong kind sets the error instead."""
        if attachment is not None and attachment.kind is not MediaKind.PDF:
            self._set_error("Invalid file type. Please select a PDF file.")
            return False
        self._set_input("pdf_attachment", "pdf", attachment)
        return True

    def clear_image(self) -> None:
        """Drop the image attachment and its prompt."""
        self.set_image_attachment(None)
        self.set_image_prompt("")

    def clear_pdf(self) -> None:
        """Drop the PDF attachment and its prompt."""
        self.set_pdf_attachment(None)
        self.set_pdf_prompt("")

    def paste_image(self, data: bytes, mime_type: str) -> bool:
        """Attach clipboard image bytes."""
        if self._gate.busy:
            return False
        if not data:
            self._set_error(NO_CLIPBOARD_IMAGE)
            return False
        try:
            attachment = attachment_from_bytes(data, mime_type, MediaKind.IMAGE)
        except InvalidLocalInputError as exc:
            self._set_error(exc.message)
            return False
        self._set_error(None)
        return self.set_image_attachment(attachment)

    async def load_image_file(self, path: Path | str) -> bool:
        """Read an image file to completion and attach it."""
        return await self._load_media(path, MediaKind.IMAGE)

    async def load_pdf_file(self, path: Path | str) -> bool:
        """Read a PDF file to completion and attach it."""
        return await self._load_media(path, MediaKind.PDF)

    def dismiss_error(self) -> None:
        self._set_error(None)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def update_document(self) -> ActionOutcome:
        """Replace the whole document following the current instruction."""
        kind = ActionKind.WHOLE_DOCUMENT_UPDATE
        if self._gate.busy:
            return self._reject(kind)
        instruction = self._inputs.instruction
        if not instruction.strip():
            return self._fail_precondition(MISSING_INSTRUCTION)

        document = self._store.get_document()

        async def call() -> str:
            return await self._generator.update_presentation(document, instruction)

        return await self._run(kind, call, on_success=self._finish_update)

    async def rewrite_selection(self) -> ActionOutcome:
        """Rewrite the selected range following the current instruction."""
        kind = ActionKind.SELECTION_REWRITE
        if self._gate.busy:
            return self._reject(kind)
        selection = self._tracker.selection
        if selection is None or selection.is_caret:
            return self._fail_precondition(MISSING_SELECTION)
        instruction = self._inputs.instruction
        if not instruction.strip():
            return self._fail_precondition(MISSING_REWRITE_INSTRUCTION)
        document = self._store.get_document()
        if not selection.matches(document):
            return self._fail_precondition(STALE_SELECTION)

        async def call() -> str:
            return await self._generator.rewrite_selection(selection.text, document, instruction)

        def merge(snippet: str) -> str:
            return self._splice(selection, snippet)

        return await self._run(kind, call, merge=merge, on_success=self._finish_rewrite)

    async def generate_from_image(self) -> ActionOutcome:
        """Add content derived from the attached image."""
        kind = ActionKind.IMAGE_GENERATION
        if self._gate.busy:
            return self._reject(kind)
        attachment = self._inputs.image_attachment
        if attachment is None:
            return self._fail_precondition(MISSING_IMAGE)
        try:
            media = extract_payload(attachment)
        except InvalidLocalInputError as exc:
            return self._fail_precondition(format_failure(kind, exc))

        document = self._store.get_document()
        instruction = self._inputs.image_prompt

        async def call() -> str:
            return await self._generator.generate_from_image(document, media, instruction)

        return await self._run(kind, call, on_success=self.clear_image)

    async def generate_from_pdf(self) -> ActionOutcome:
        """Add content derived from the attached PDF."""
        kind = ActionKind.PDF_GENERATION
        if self._gate.busy:
            return self._reject(kind)
        attachment = self._inputs.pdf_attachment
        if attachment is None:
            return self._fail_precondition(MISSING_PDF)
        try:
            media = extract_payload(attachment)
        except InvalidLocalInputError as exc:
            return self._fail_precondition(format_failure(kind, exc))

        document = self._store.get_document()
        instruction = self._inputs.pdf_prompt

        async def call() -> str:
            return await self._generator.generate_from_pdf(document, media, instruction)

        return await self._run(kind, call, on_success=self.clear_pdf)

    async def run(self, kind: ActionKind) -> ActionOutcome:
        """Dispatch to the action method for ``kind``."""
        handlers: dict[ActionKind, Callable[[], Awaitable[ActionOutcome]]] = {
            ActionKind.WHOLE_DOCUMENT_UPDATE: self.update_document,
            ActionKind.SELECTION_REWRITE: self.rewrite_selection,
            ActionKind.IMAGE_GENERATION: self.generate_from_image,
            ActionKind.PDF_GENERATION: self.generate_from_pdf,
        }
        return await handlers[kind]()

    def cancel(self) -> bool:
        """Cancel the in-flight action.

        Returns:
            ``True`` if a pending call was asked to stop.
        """
        task = self._task
        if task is None or task.done():
            LOGGER.debug("EditSessionController.cancel: no action running")
            return False
        LOGGER.debug(
            "EditSessionController.cancel: canceling action_id=%s",
            self._current.action_id if self._current else "unknown",
        )
        self._cancel_requested = True
        task.cancel()
        return True

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def _run(
        self,
        kind: ActionKind,
        call: Callable[[], Awaitable[str]],
        *,
        merge: Callable[[str], str] | None = None,
        on_success: Callable[[], Any] | None = None,
    ) -> ActionOutcome:
        if not self._gate.try_start(kind):
            return self._reject(kind)

        self._set_error(None)
        if kind.replaces_document:
            self._tracker.clear()

        state = ActionState(
            action_id=f"action-{uuid.uuid4().hex[:8]}",
            kind=kind,
            version_id=self._store.version_id,
        )
        self._current = state
        self._cancel_requested = False
        log_action(state.action_id, kind.value, "started", f"version={state.version_id}")
        self._bus.publish(EditorLockChanged(locked=True, reason=kind.value))
        self._bus.publish(ActionStarted(action_id=state.action_id, kind=kind))

        self._task = asyncio.ensure_future(call())
        try:
            result = await self._task
            if self._store.version_id != state.version_id:
                raise DocumentConflictError(
                    details={"dispatched": state.version_id, "current": self._store.version_id}
                )
            new_document = merge(result) if merge is not None else result
            self._store.set_document(new_document, source=kind.value)
        except asyncio.CancelledError:
            self._settle_canceled(state)
            if not self._cancel_requested:
                raise
            return ActionOutcome.CANCELED
        except BeamerpadError as exc:
            self._settle_failed(state, exc)
            return ActionOutcome.FAILED
        except Exception as exc:
            LOGGER.exception("Unexpected failure in action_id=%s", state.action_id)
            self._settle_failed(state, UpstreamError(message=str(exc) or "Unknown error"))
            return ActionOutcome.FAILED
        finally:
            self._task = None
            self._cancel_requested = False
            self._gate.finish()
            self._bus.publish(EditorLockChanged(locked=False, reason=""))

        state.mark_succeeded()
        if on_success is not None:
            on_success()
        log_action(state.action_id, kind.value, ActionOutcome.SUCCEEDED.value)
        self._bus.publish(ActionSucceeded(action_id=state.action_id, kind=kind))
        return ActionOutcome.SUCCEEDED

    def _settle_failed(self, state: ActionState, error: BeamerpadError) -> None:
        message = format_failure(state.kind, error)
        state.mark_failed(message)
        log_action(
            state.action_id,
            state.kind.value,
            ActionOutcome.FAILED.value,
            f"{error.category.value}: {error.message}",
            level=logging.WARNING,
        )
        self._set_error(message)
        self._bus.publish(ActionFailed(
            action_id=state.action_id,
            kind=state.kind,
            category=error.category,
            message=message,
        ))

    def _settle_canceled(self, state: ActionState) -> None:
        state.mark_canceled()
        log_action(state.action_id, state.kind.value, ActionOutcome.CANCELED.value)
        self._bus.publish(ActionCanceled(action_id=state.action_id, kind=state.kind))

    def _splice(self, selection: Selection, snippet: str) -> str:
        return splice(self._store.get_document(), selection.start, selection.end, snippet)

    def _finish_update(self) -> None:
        self.set_instruction("")

    def _finish_rewrite(self) -> None:
        self._tracker.clear()
        self.set_instruction("")

    # ------------------------------------------------------------------
    # Internal Helpers
    # ------------------------------------------------------------------

    def _reject(self, kind: ActionKind) -> ActionOutcome:
        busy = self._gate.busy_kind.value if self._gate.busy_kind else "another action"
        log_action("-", kind.value, ActionOutcome.REJECTED.value, f"{busy} is in flight")
        return ActionOutcome.REJECTED

    def _fail_precondition(self, message: str) -> ActionOutcome:
        LOGGER.debug("EditSessionController: precondition failed: %s", message)
        self._set_error(message)
        return ActionOutcome.FAILED

    async def _load_media(self, path: Path | str, kind: MediaKind) -> bool:
        if self._gate.busy:
            LOGGER.debug("EditSessionController: ignoring %s load while busy", kind.value)
            return False
        try:
            attachment = await read_media_file(path, kind)
        except InvalidLocalInputError as exc:
            self._set_error(exc.message)
            return False
        self._set_error(None)
        if kind is MediaKind.IMAGE:
            return self.set_image_attachment(attachment)
        return self.set_pdf_attachment(attachment)

    def _set_input(self, attribute: str, field_name: str, value: Any) -> None:
        if getattr(self._inputs, attribute) == value:
            return
        setattr(self._inputs, attribute, value)
        self._bus.publish(InputsChanged(field=field_name))

    def _set_error(self, message: str | None) -> None:
        if message == self._error:
            return
        self._error = message
        self._bus.publish(ErrorChanged(message=message))


__all__ = ["EditSessionController", "format_failure"]
