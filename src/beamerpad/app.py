"""Application bootstrap helpers for the beamerpad desktop app."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import getpass
import json
import logging
import os
import sys
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, TextIO, cast, get_args, get_origin, get_type_hints

from .ai.generation import API_KEY_ENV_VARS, GenerationClient
from .editor.document_store import DocumentStore
from .editor.selection_tracker import SelectionTracker
from .services.settings import Settings, SettingsStore, redact_secret
from .session.controller import EditSessionController
from .ui.events import EventBus
from .utils import logging as logging_utils

_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}
_LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class QtRuntime:
    """Container returned by :func:`create_qapp`."""

    app: Any
    loop: asyncio.AbstractEventLoop


@dataclass(slots=True)
class Session:
    """The wired, UI-independent editing core."""

    event_bus: EventBus
    store: DocumentStore
    tracker: SelectionTracker
    generator: GenerationClient
    controller: EditSessionController


def configure_logging(debug: bool = False, *, force: bool = False) -> None:
    """Configure logging for the application."""

    level = logging.DEBUG if debug else logging.INFO
    logging_utils.setup_logging(level, force=force)
    _LOGGER.debug("Logging configured (level=%s)", logging.getLevelName(level))
    _install_qt_message_handler()


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    try:
        settings = active_store.load(overrides=overrides)
    except (OSError, ValueError, TypeError) as exc:
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        settings = Settings()
    return settings


def build_session(settings: Settings, *, generator: GenerationClient | None = None) -> Session:
    """Wire the document store, selection tracker and controller on one bus."""

    bus = EventBus()
    store = DocumentStore(bus)
    tracker = SelectionTracker(store.get_document, lambda: store.version_id, bus)
    client = generator or GenerationClient(settings)
    controller = EditSessionController(store, tracker, client, bus)
    return Session(event_bus=bus, store=store, tracker=tracker, generator=client, controller=controller)


def create_qapp(settings: Settings) -> QtRuntime:
    """Create a qasync-powered QApplication instance."""

    from PySide6.QtWidgets import QApplication
    from qasync import QEventLoop

    os.environ.setdefault("QT_ENABLE_HIGHDPI_SCALING", "1")
    app = cast(Any, QApplication.instance() or QApplication(sys.argv))
    app.setApplicationName("beamerpad")
    app.setApplicationDisplayName("Gujarati Beamer Editor")

    loop = QEventLoop(app)
    asyncio.set_event_loop(loop)
    app.aboutToQuit.connect(loop.stop)

    theme = (settings.theme or "").lower()
    if theme == "dark":
        app.setStyle("Fusion")

    return QtRuntime(app=app, loop=loop)


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point invoked by the `beamerpad` console script."""

    args, passthrough = _parse_cli_args(argv)
    _rewrite_sys_argv(passthrough)

    debug = _env_flag("BEAMERPAD_DEBUG", default=False)
    configure_logging(debug)

    settings_path = args.settings_path or os.environ.get("BEAMERPAD_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    settings_store = SettingsStore(resolved_path)
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc

    settings = load_settings(resolved_path, store=settings_store, overrides=cli_overrides or None)

    if args.store_api_key:
        try:
            saved_path = _store_api_key(settings_store)
        except ValueError as exc:
            print(f"API key not stored: {exc}", file=sys.stderr)
            raise SystemExit(2) from exc
        print(f"API key stored (encrypted) in {saved_path}")
        return

    if args.dump_settings:
        _dump_settings(settings, settings_store, overrides=cli_overrides)
        return

    if settings.debug_logging and not debug:
        logging_utils.set_debug_logging(True)
        _LOGGER.debug("Debug logging enabled from settings")

    session = build_session(settings)
    runtime = create_qapp(settings)

    from .ui.main_window import MainWindow

    window = MainWindow(
        session.store,
        session.tracker,
        session.controller,
        session.event_bus,
        settings=settings,
    )
    window.show()

    loop = runtime.loop
    try:
        loop.run_forever()
    except KeyboardInterrupt:  # pragma: no cover - manual shutdown path
        _LOGGER.info("Shutdown requested by user.")
    finally:
        with contextlib.suppress(RuntimeError):
            loop.run_until_complete(session.generator.aclose())
        _drain_event_loop(loop)
        loop.close()


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _drain_event_loop(loop: asyncio.AbstractEventLoop) -> None:
    """Cancel outstanding tasks and shutdown async machinery before closing."""

    if loop.is_closed():
        return

    async def _cleanup() -> None:
        current_task = asyncio.current_task(loop=loop)
        tasks = [
            task
            for task in asyncio.all_tasks(loop)
            if not task.done() and task is not current_task
        ]
        if tasks:
            _LOGGER.debug("Canceling %s pending asyncio task(s) before shutdown.", len(tasks))
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
        with contextlib.suppress(RuntimeError, NotImplementedError):
            await loop.shutdown_asyncgens()
        with contextlib.suppress(RuntimeError, NotImplementedError):
            await loop.shutdown_default_executor()

    try:
        loop.run_until_complete(_cleanup())
    except RuntimeError as exc:  # pragma: no cover - loop already stopped
        _LOGGER.debug("Unable to drain asyncio loop: %s", exc)


def _install_qt_message_handler() -> None:
    """Redirect Qt warnings to the Python logging stack."""

    from PySide6.QtCore import QtMsgType, qInstallMessageHandler

    level_map = {
        QtMsgType.QtDebugMsg: logging.DEBUG,
        QtMsgType.QtInfoMsg: logging.INFO,
        QtMsgType.QtWarningMsg: logging.WARNING,
        QtMsgType.QtCriticalMsg: logging.ERROR,
        QtMsgType.QtFatalMsg: logging.CRITICAL,
    }

    def _handler(mode, context, message):  # type: ignore[no-untyped-def]
        del context
        level = level_map.get(mode, logging.INFO)
        logging.getLogger("PySide6").log(level, message)

    qInstallMessageHandler(_handler)


def _parse_cli_args(argv: Sequence[str] | None) -> tuple[argparse.Namespace, list[str]]:
    parser = argparse.ArgumentParser(
        prog="beamerpad",
        add_help=True,
        description="Launch the Gujarati LaTeX Beamer editor or inspect its configuration.",
    )
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="Print the effective settings payload (with secrets redacted) and exit.",
    )
    parser.add_argument(
        "--store-api-key",
        action="store_true",
        help="Prompt for an API key, save it encrypted in the settings file and exit.",
    )
    parser.add_argument(
        "--settings",
        "--settings-path",
        dest="settings_path",
        metavar="PATH",
        help="Override the default ~/.beamerpad/settings.json path.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted settings before launch (repeatable).",
    )
    return parser.parse_known_args(argv)


def _rewrite_sys_argv(passthrough: Sequence[str]) -> None:
    program = sys.argv[0] if sys.argv else "beamerpad"
    sys.argv = [program, *passthrough]


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if not items:
        return overrides

    fields = Settings.__dataclass_fields__  # type: ignore[attr-defined]
    type_hints = get_type_hints(Settings)
    for entry in items:
        if "=" not in entry:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        key, raw_value = entry.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError("Override is missing a field name.")
        if key not in fields:
            raise ValueError(f"Unknown setting '{key}'.")
        if key == "api_key":
            raise ValueError("The API key cannot be set on the command line; use BEAMERPAD_API_KEY.")
        annotation = type_hints.get(key, fields[key].type)
        overrides[key] = _coerce_value(annotation, raw_value.strip())
    return overrides


def _coerce_value(annotation: Any, raw_value: str) -> Any:
    target = _resolve_annotation(annotation)
    normalized = raw_value.strip()

    if target is str or target is Any:
        return normalized
    if target is bool:
        return _parse_bool(normalized)
    if target is int:
        return int(normalized, 10)
    if target is float:
        return float(normalized)
    if target is dict:
        try:
            payload = json.loads(normalized or "{}")
        except json.JSONDecodeError as exc:
            raise ValueError("Dict overrides must be valid JSON objects") from exc
        if not isinstance(payload, dict):
            raise ValueError("Dict overrides must be valid JSON objects")
        return payload
    return normalized


def _resolve_annotation(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin is None:
        return annotation
    if origin in {list, dict}:
        return origin
    args = [arg for arg in get_args(annotation) if arg is not type(None)]
    if not args:
        return origin
    return args[0]


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce '{value}' to a boolean.")


def _dump_settings(
    settings: Settings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    destination = stream or sys.stdout
    payload = asdict(settings)
    payload["api_key"] = redact_secret(payload.get("api_key", "") or "")
    metadata = {
        "path": str(store.path),
        "api_key_source": _api_key_source(settings),
        "cli_overrides": sorted(overrides.keys()),
        "environment_variables": _active_env_overrides(),
    }
    output = {"settings": payload, "meta": metadata}
    json.dump(output, destination, indent=2)
    destination.write("\n")


def _store_api_key(store: SettingsStore, *, prompt: Callable[[str], str] = getpass.getpass) -> Path:
    """Read a key without echo and persist it through the settings vault.

    Only the on-disk settings are rewritten; environment overrides active in
    this shell are not baked into the file.
    """

    api_key = prompt("API key: ").strip()
    if not api_key:
        raise ValueError("no key entered")
    current = store.load(include_environment=False)
    path = store.save(replace(current, api_key=api_key))
    _LOGGER.info("API key stored for %s", store.path)
    return path


def _api_key_source(settings: Settings) -> str:
    for name in API_KEY_ENV_VARS:
        if (os.environ.get(name) or "").strip():
            return name
    if settings.api_key.strip():
        return "settings"
    return "missing"


def _active_env_overrides() -> list[str]:
    return sorted(name for name in os.environ if name.startswith("BEAMERPAD_"))


if __name__ == "__main__":  # pragma: no cover - manual launch
    main()
