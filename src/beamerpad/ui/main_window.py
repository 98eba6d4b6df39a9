"""Desktop window for the Gujarati Beamer editor.

The window owns no editing state. It forwards keystrokes, selections and
button clicks to the store, tracker and session controller, and re-renders
from the events they publish.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from typing import Any, Coroutine

from PySide6.QtCore import QBuffer, QByteArray, QIODevice, Qt, QTimer, Signal
from PySide6.QtGui import QColor, QFont, QPixmap, QTextCursor
from PySide6.QtWidgets import (
    QApplication,
    QComboBox,
    QFileDialog,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QMainWindow,
    QPlainTextEdit,
    QPushButton,
    QSplitter,
    QStackedWidget,
    QTextEdit,
    QVBoxLayout,
    QWidget,
)

from ..ai.media import extract_payload
from ..core.errors import API_KEY_MISSING_MARKER, InvalidLocalInputError
from ..core.models import ActionKind
from ..editor.document_store import DocumentStore
from ..editor.selection_tracker import SelectionTracker
from ..services.settings import Settings
from ..session.controller import EditSessionController
from .events import (
    DocumentModified,
    EditorLockChanged,
    ErrorChanged,
    EventBus,
    InputsChanged,
    SelectionChanged,
)

LOGGER = logging.getLogger(__name__)

WINDOW_TITLE = "Interactive Gujarati LaTeX Beamer Editor"
COPY_FEEDBACK_MS = 2500
_HIGHLIGHT_BACKGROUND = (191, 219, 254)
SETUP_HINT = (
    "Set BEAMERPAD_API_KEY (or API_KEY) in the environment, or store a key with "
    "`beamerpad --store-api-key`. The editor cannot reach the model without it."
)
_INPUT_METHODS: tuple[tuple[str, str], ...] = (
    ("prompt", "General Prompt"),
    ("image", "From Image"),
    ("pdf", "From PDF"),
)
_BUSY_LABELS: dict[ActionKind, str] = {
    ActionKind.WHOLE_DOCUMENT_UPDATE: "Updating presentation…",
    ActionKind.SELECTION_REWRITE: "Modifying selection…",
    ActionKind.IMAGE_GENERATION: "Generating from image…",
    ActionKind.PDF_GENERATION: "Generating from PDF…",
}


def qt_to_py_offset(text: str, position: int) -> int:
    """Convert a Qt (UTF-16 code unit) position into a Python string index."""

    prefix = text.encode("utf-16-le")[: max(0, position) * 2]
    return len(prefix.decode("utf-16-le", errors="ignore"))


def py_to_qt_offset(text: str, index: int) -> int:
    """Convert a Python string index into a Qt (UTF-16 code unit) position."""

    return len(text[: max(0, index)].encode("utf-16-le")) // 2


class LatexEditor(QPlainTextEdit):
    """Plain-text LaTeX editor that reports focus transitions."""

    focusChanged = Signal(bool)

    def focusInEvent(self, event: Any) -> None:  # noqa: N802 - Qt override
        super().focusInEvent(event)
        self.focusChanged.emit(True)

    def focusOutEvent(self, event: Any) -> None:  # noqa: N802 - Qt override
        super().focusOutEvent(event)
        self.focusChanged.emit(False)


class MainWindow(QMainWindow):
    """Main application window.

    Layout: the LaTeX editor on the left; on the right the input-method
    selector with the prompt, image and PDF panels, the error banner and the
    busy indicator with its Cancel button.
    """

    def __init__(
        self,
        store: DocumentStore,
        tracker: SelectionTracker,
        controller: EditSessionController,
        event_bus: EventBus,
        *,
        settings: Settings | None = None,
    ) -> None:
        super().__init__()
        self._store = store
        self._tracker = tracker
        self._controller = controller
        self._bus = event_bus
        self._settings = settings or Settings()
        self._syncing = False
        self._pending: set[asyncio.Future[Any]] = set()

        self.setWindowTitle(WINDOW_TITLE)
        self.setAcceptDrops(True)
        self._build_widgets()
        self._connect_signals()
        self._subscribe_events()
        self._refresh_inputs()
        self._refresh_error(self._controller.error)
        self._apply_lock(self._controller.busy)

    # ------------------------------------------------------------------
    # Widget construction
    # ------------------------------------------------------------------

    def _build_widgets(self) -> None:
        self._editor = LatexEditor(self)
        self._editor.setObjectName("latex_editor")
        self._editor.setLineWrapMode(QPlainTextEdit.LineWrapMode.NoWrap)
        self._editor.setFont(QFont(self._settings.font_family, self._settings.font_size))
        self._editor.setPlainText(self._store.get_document())

        self._copy_button = QPushButton("Copy Code", self)
        editor_header = QHBoxLayout()
        editor_header.addWidget(QLabel("LaTeX Code", self))
        editor_header.addStretch(1)
        editor_header.addWidget(self._copy_button)

        editor_pane = QWidget(self)
        editor_layout = QVBoxLayout(editor_pane)
        editor_layout.addLayout(editor_header)
        editor_layout.addWidget(self._editor)

        self._method_selector = QComboBox(self)
        for key, label in _INPUT_METHODS:
            self._method_selector.addItem(label, key)
        self._panels = QStackedWidget(self)
        self._panels.addWidget(self._build_prompt_panel())
        self._panels.addWidget(self._build_image_panel())
        self._panels.addWidget(self._build_pdf_panel())

        self._error_label = QLabel(self)
        self._error_label.setObjectName("error_label")
        self._error_label.setWordWrap(True)
        self._error_label.setStyleSheet("color: #b91c1c;")
        self._dismiss_error_button = QPushButton("Dismiss", self)
        self._setup_hint_label = QLabel(SETUP_HINT, self)
        self._setup_hint_label.setObjectName("setup_hint_label")
        self._setup_hint_label.setWordWrap(True)
        self._setup_hint_label.setStyleSheet("color: #7f1d1d; font-size: 11px;")

        self._busy_label = QLabel(self)
        self._cancel_button = QPushButton("Cancel", self)

        error_row = QHBoxLayout()
        error_row.addWidget(self._error_label, 1)
        error_row.addWidget(self._dismiss_error_button)
        busy_row = QHBoxLayout()
        busy_row.addWidget(self._busy_label, 1)
        busy_row.addWidget(self._cancel_button)

        controls_pane = QWidget(self)
        controls_layout = QVBoxLayout(controls_pane)
        controls_layout.addWidget(QLabel("Choose Input Method", self))
        controls_layout.addWidget(self._method_selector)
        controls_layout.addWidget(self._panels)
        controls_layout.addLayout(error_row)
        controls_layout.addWidget(self._setup_hint_label)
        controls_layout.addLayout(busy_row)
        controls_layout.addStretch(1)

        splitter = QSplitter(Qt.Orientation.Horizontal, self)
        splitter.addWidget(editor_pane)
        splitter.addWidget(controls_pane)
        splitter.setStretchFactor(0, 3)
        splitter.setStretchFactor(1, 2)
        self.setCentralWidget(splitter)

    def _build_prompt_panel(self) -> QWidget:
        panel = QWidget(self)
        layout = QVBoxLayout(panel)
        self._instruction_edit = QPlainTextEdit(panel)
        self._instruction_edit.setPlaceholderText(
            "Describe the change, or select code on the left and describe how to modify it"
        )
        self._update_button = QPushButton("Update Presentation", panel)
        self._modify_button = QPushButton("Modify Selected", panel)
        buttons = QHBoxLayout()
        buttons.addWidget(self._update_button)
        buttons.addWidget(self._modify_button)
        layout.addWidget(QLabel("Your instruction", panel))
        layout.addWidget(self._instruction_edit)
        layout.addLayout(buttons)
        return panel

    def _build_image_panel(self) -> QWidget:
        panel = QWidget(self)
        layout = QVBoxLayout(panel)
        self._image_preview = QLabel("Drop, open or paste an image", panel)
        self._image_preview.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._image_preview.setMinimumHeight(160)
        self._open_image_button = QPushButton("Open Image…", panel)
        self._paste_image_button = QPushButton("Paste", panel)
        self._clear_image_button = QPushButton("Clear", panel)
        self._image_prompt_edit = QLineEdit(panel)
        self._image_prompt_edit.setPlaceholderText("Optional instruction for the image")
        self._generate_image_button = QPushButton("Generate from Image", panel)
        buttons = QHBoxLayout()
        buttons.addWidget(self._open_image_button)
        buttons.addWidget(self._paste_image_button)
        buttons.addWidget(self._clear_image_button)
        layout.addWidget(self._image_preview)
        layout.addLayout(buttons)
        layout.addWidget(self._image_prompt_edit)
        layout.addWidget(self._generate_image_button)
        return panel

    def _build_pdf_panel(self) -> QWidget:
        panel = QWidget(self)
        layout = QVBoxLayout(panel)
        self._pdf_label = QLabel("No PDF selected", panel)
        self._open_pdf_button = QPushButton("Open PDF…", panel)
        self._clear_pdf_button = QPushButton("Clear", panel)
        self._pdf_prompt_edit = QLineEdit(panel)
        self._pdf_prompt_edit.setPlaceholderText("Optional instruction for the PDF")
        self._generate_pdf_button = QPushButton("Generate from PDF", panel)
        buttons = QHBoxLayout()
        buttons.addWidget(self._open_pdf_button)
        buttons.addWidget(self._clear_pdf_button)
        layout.addWidget(self._pdf_label)
        layout.addLayout(buttons)
        layout.addWidget(self._pdf_prompt_edit)
        layout.addWidget(self._generate_pdf_button)
        return panel

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    def _connect_signals(self) -> None:
        self._editor.textChanged.connect(self._on_editor_text_changed)
        self._editor.selectionChanged.connect(self._on_editor_selection_changed)
        self._editor.focusChanged.connect(self._on_editor_focus_changed)
        self._copy_button.clicked.connect(self._copy_document)
        self._method_selector.currentIndexChanged.connect(self._panels.setCurrentIndex)

        self._instruction_edit.textChanged.connect(
            lambda: self._controller.set_instruction(self._instruction_edit.toPlainText())
        )
        self._image_prompt_edit.textChanged.connect(self._controller.set_image_prompt)
        self._pdf_prompt_edit.textChanged.connect(self._controller.set_pdf_prompt)

        self._update_button.clicked.connect(lambda: self.schedule_coroutine(self._controller.update_document()))
        self._modify_button.clicked.connect(lambda: self.schedule_coroutine(self._controller.rewrite_selection()))
        self._generate_image_button.clicked.connect(
            lambda: self.schedule_coroutine(self._controller.generate_from_image())
        )
        self._generate_pdf_button.clicked.connect(
            lambda: self.schedule_coroutine(self._controller.generate_from_pdf())
        )
        self._open_image_button.clicked.connect(self._choose_image_file)
        self._paste_image_button.clicked.connect(self._paste_image)
        self._clear_image_button.clicked.connect(self._controller.clear_image)
        self._open_pdf_button.clicked.connect(self._choose_pdf_file)
        self._clear_pdf_button.clicked.connect(self._controller.clear_pdf)
        self._cancel_button.clicked.connect(self._controller.cancel)
        self._dismiss_error_button.clicked.connect(self._controller.dismiss_error)

    def _subscribe_events(self) -> None:
        self._bus.subscribe(DocumentModified, self._on_document_modified)
        self._bus.subscribe(SelectionChanged, self._on_selection_changed)
        self._bus.subscribe(EditorLockChanged, self._on_editor_lock_changed)
        self._bus.subscribe(ErrorChanged, self._on_error_changed)
        self._bus.subscribe(InputsChanged, self._on_inputs_changed)

    # ------------------------------------------------------------------
    # Editor → core
    # ------------------------------------------------------------------

    def _on_editor_text_changed(self) -> None:
        if self._syncing:
            return
        self._store.set_document(self._editor.toPlainText(), source="user")

    def _on_editor_selection_changed(self) -> None:
        if self._syncing:
            return
        cursor = self._editor.textCursor()
        text = self._editor.toPlainText()
        start = qt_to_py_offset(text, cursor.selectionStart())
        end = qt_to_py_offset(text, cursor.selectionEnd())
        if start == end:
            # A collapsed cursor only clears while the editor has focus, so
            # clicking a button does not discard the selection.
            if self._editor.hasFocus():
                self._tracker.clear()
            return
        self._tracker.capture(text[start:end], start, end)

    def _on_editor_focus_changed(self, focused: bool) -> None:
        if focused:
            self._editor.setExtraSelections([])
        else:
            self._paint_highlight()

    # ------------------------------------------------------------------
    # Core → view
    # ------------------------------------------------------------------

    def _on_document_modified(self, event: DocumentModified) -> None:
        document = self._store.get_document()
        if self._editor.toPlainText() == document:
            return
        LOGGER.debug("MainWindow: reloading editor buffer (version=%d, source=%s)", event.version_id, event.source)
        scroll = self._editor.verticalScrollBar().value()
        self._syncing = True
        try:
            self._editor.setPlainText(document)
        finally:
            self._syncing = False
        self._editor.verticalScrollBar().setValue(scroll)

    def _on_selection_changed(self, event: SelectionChanged) -> None:
        self._modify_button.setEnabled(event.selection is not None and not self._controller.busy)
        if not self._editor.hasFocus():
            self._paint_highlight()

    def _on_editor_lock_changed(self, event: EditorLockChanged) -> None:
        self._apply_lock(event.locked)

    def _on_error_changed(self, event: ErrorChanged) -> None:
        self._refresh_error(event.message)

    def _on_inputs_changed(self, event: InputsChanged) -> None:
        del event
        self._refresh_inputs()

    def _apply_lock(self, locked: bool) -> None:
        self._editor.setReadOnly(locked)
        for widget in (
            self._update_button,
            self._generate_image_button,
            self._generate_pdf_button,
            self._method_selector,
            self._open_image_button,
            self._paste_image_button,
            self._clear_image_button,
            self._open_pdf_button,
            self._clear_pdf_button,
        ):
            widget.setEnabled(not locked)
        self._modify_button.setEnabled(not locked and self._tracker.has_selection())
        self._cancel_button.setVisible(locked)
        kind = self._controller.busy_kind
        self._busy_label.setText(_BUSY_LABELS.get(kind, "") if locked and kind else "")

    def _refresh_error(self, message: str | None) -> None:
        self._error_label.setText(message or "")
        self._error_label.setVisible(bool(message))
        self._dismiss_error_button.setVisible(bool(message))
        self._setup_hint_label.setVisible(bool(message) and API_KEY_MISSING_MARKER in message)

    def _refresh_inputs(self) -> None:
        controller = self._controller
        if self._instruction_edit.toPlainText() != controller.instruction:
            self._instruction_edit.setPlainText(controller.instruction)
        if self._image_prompt_edit.text() != controller.image_prompt:
            self._image_prompt_edit.setText(controller.image_prompt)
        if self._pdf_prompt_edit.text() != controller.pdf_prompt:
            self._pdf_prompt_edit.setText(controller.pdf_prompt)
        self._refresh_image_preview()
        pdf = controller.pdf_attachment
        if pdf is None:
            self._pdf_label.setText("No PDF selected")
        else:
            self._pdf_label.setText(pdf.file_name or "document.pdf")

    def _refresh_image_preview(self) -> None:
        attachment = self._controller.image_attachment
        if attachment is None:
            self._image_preview.setPixmap(QPixmap())
            self._image_preview.setText("Drop, open or paste an image")
            return
        pixmap = QPixmap()
        try:
            payload = extract_payload(attachment)
            pixmap.loadFromData(base64.b64decode(payload.data))
        except (InvalidLocalInputError, ValueError):
            LOGGER.debug("MainWindow: image preview unavailable", exc_info=True)
        if pixmap.isNull():
            self._image_preview.setText(attachment.file_name or "Image attached")
            return
        self._image_preview.setPixmap(
            pixmap.scaled(320, 200, Qt.AspectRatioMode.KeepAspectRatio, Qt.TransformationMode.SmoothTransformation)
        )

    def _paint_highlight(self) -> None:
        segments = self._tracker.highlight_segments()
        if segments is None:
            self._editor.setExtraSelections([])
            return
        text = self._editor.toPlainText()
        cursor = self._editor.textCursor()
        cursor.setPosition(py_to_qt_offset(text, segments.start))
        cursor.setPosition(py_to_qt_offset(text, segments.end), QTextCursor.MoveMode.KeepAnchor)
        selection = QTextEdit.ExtraSelection()
        selection.cursor = cursor
        selection.format.setBackground(QColor(*_HIGHLIGHT_BACKGROUND))
        self._editor.setExtraSelections([selection])

    # ------------------------------------------------------------------
    # Media + clipboard
    # ------------------------------------------------------------------

    def _choose_image_file(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "Open Image", "", "Images (*.png *.jpg *.jpeg *.gif *.webp *.bmp)")
        if path:
            self.schedule_coroutine(self._controller.load_image_file(path))

    def _choose_pdf_file(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "Open PDF", "", "PDF files (*.pdf)")
        if path:
            self.schedule_coroutine(self._controller.load_pdf_file(path))

    def _paste_image(self) -> None:
        image = QApplication.clipboard().image()
        if image.isNull():
            self._controller.paste_image(b"", "image/png")
            return
        buffer_bytes = QByteArray()
        buffer = QBuffer(buffer_bytes)
        buffer.open(QIODevice.OpenModeFlag.WriteOnly)
        image.save(buffer, "PNG")
        buffer.close()
        self._controller.paste_image(bytes(buffer_bytes.data()), "image/png")

    def _copy_document(self) -> None:
        QApplication.clipboard().setText(self._store.get_document())
        self._copy_button.setText("Copied!")
        QTimer.singleShot(COPY_FEEDBACK_MS, lambda: self._copy_button.setText("Copy Code"))

    def dragEnterEvent(self, event: Any) -> None:  # noqa: N802 - Qt override
        if event.mimeData().hasUrls() and self._current_method() in {"image", "pdf"}:
            event.acceptProposedAction()

    def dropEvent(self, event: Any) -> None:  # noqa: N802 - Qt override
        urls = event.mimeData().urls()
        if not urls:
            return
        path = urls[0].toLocalFile()
        if self._current_method() == "image":
            self.schedule_coroutine(self._controller.load_image_file(path))
        elif self._current_method() == "pdf":
            self.schedule_coroutine(self._controller.load_pdf_file(path))
        event.acceptProposedAction()

    def _current_method(self) -> str:
        return str(self._method_selector.currentData())

    # ------------------------------------------------------------------
    # Async Support
    # ------------------------------------------------------------------

    def schedule_coroutine(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Future[Any]:
        """Schedule ``coro`` on the running qasync loop and keep it referenced until done."""
        future = asyncio.ensure_future(coro)
        self._pending.add(future)
        future.add_done_callback(self._pending.discard)
        return future


__all__ = ["LatexEditor", "MainWindow", "WINDOW_TITLE", "py_to_qt_offset", "qt_to_py_offset"]
