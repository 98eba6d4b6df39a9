"""Tests for application bootstrap helpers."""

from __future__ import annotations

import asyncio
import io
import json
import logging
from pathlib import Path

import pytest

from beamerpad import app
from beamerpad.ai.generation import GenerationClient
from beamerpad.services.settings import Settings, SettingsStore
from beamerpad.ui.events import DocumentModified
from beamerpad.utils import logging as logging_utils


def test_coerce_cli_overrides_casts_types() -> None:
    overrides = app._coerce_cli_overrides(
        [
            "model=gemini-2.5-pro",
            "temperature=0.7",
            "max_retries=5",
            "debug_logging=off",
            'default_headers={"X-Team": "slides"}',
        ]
    )

    assert overrides == {
        "model": "gemini-2.5-pro",
        "temperature": 0.7,
        "max_retries": 5,
        "debug_logging": False,
        "default_headers": {"X-Team": "slides"},
    }


@pytest.mark.parametrize(
    "entry",
    ["model", "=value", "unknown=1", "api_key=sk-123", "debug_logging=maybe", "default_headers=[1]"],
)
def test_coerce_cli_overrides_rejects_bad_entries(entry: str) -> None:
    with pytest.raises(ValueError):
        app._coerce_cli_overrides([entry])


def test_dump_settings_redacts_key(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("API_KEY", "sk-from-env")
    store = SettingsStore(tmp_path / "settings.json")
    stream = io.StringIO()

    app._dump_settings(Settings(api_key="sk-stored-secret"), store, overrides={"model": "m"}, stream=stream)

    output = json.loads(stream.getvalue())
    assert "sk-stored-secret" not in stream.getvalue()
    assert output["settings"]["api_key"].startswith("sk")
    assert output["meta"]["api_key_source"] == "API_KEY"
    assert output["meta"]["cli_overrides"] == ["model"]
    assert output["meta"]["path"] == str(tmp_path / "settings.json")


def test_api_key_source_reports_missing() -> None:
    assert app._api_key_source(Settings()) == "missing"
    assert app._api_key_source(Settings(api_key="k")) == "settings"


def test_load_settings_applies_overrides(tmp_path: Path) -> None:
    settings = app.load_settings(tmp_path / "settings.json", overrides={"theme": "dark"})

    assert settings.theme == "dark"


def test_build_session_wires_one_bus() -> None:
    session = app.build_session(Settings())

    assert isinstance(session.generator, GenerationClient)
    assert session.controller.busy is False
    seen: list[DocumentModified] = []
    session.event_bus.subscribe(DocumentModified, seen.append)

    session.store.set_document("fresh")

    assert len(seen) == 1
    assert session.tracker.selection is None


def test_drain_event_loop_cancels_pending_tasks() -> None:
    loop = asyncio.new_event_loop()
    try:
        task = loop.create_task(asyncio.sleep(60))

        app._drain_event_loop(loop)

        assert task.cancelled()
    finally:
        loop.close()


def test_setup_logging_creates_rotating_file(tmp_path: Path) -> None:
    log_dir = tmp_path / "logs"

    log_path = logging_utils.setup_logging(level=logging.INFO, log_dir=log_dir, console=False, force=True)

    logging.getLogger("beamerpad.tests").info("Logging smoke test")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert log_path == log_dir / "beamerpad.log"
    assert logging_utils.get_log_path() == log_path
    assert "Logging smoke test" in log_path.read_text(encoding="utf-8")
    assert logging.getLogger("httpx").level == logging.WARNING


def test_action_records_get_their_own_log(tmp_path: Path) -> None:
    log_dir = tmp_path / "logs"
    logging_utils.setup_logging(level=logging.INFO, log_dir=log_dir, console=False, force=True)

    logging_utils.log_action("action-1234", "update", "started", "version=3")
    logging_utils.log_action("action-1234", "update", "failed", "quota_exceeded: boom", level=logging.WARNING)
    logging.getLogger(logging_utils.ACTION_LOGGER_NAME).info("stray record without action fields")
    logging.getLogger("beamerpad.tests").info("Application noise")
    for handler in logging.getLogger().handlers + logging.getLogger(logging_utils.ACTION_LOGGER_NAME).handlers:
        handler.flush()

    action_log = logging_utils.get_action_log_path()
    assert action_log == log_dir / "actions.log"
    lines = action_log.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    assert "action-1234 | update   | started   | version=3" in lines[0]
    assert "failed    | quota_exceeded: boom" in lines[1]
    main_log = (log_dir / "beamerpad.log").read_text(encoding="utf-8")
    assert "Application noise" in main_log
    assert "version=3" in main_log


def test_debug_toggle_leaves_action_log_at_info(tmp_path: Path) -> None:
    logging_utils.setup_logging(level=logging.INFO, log_dir=tmp_path / "logs", console=False, force=True)
    action_handlers = logging.getLogger(logging_utils.ACTION_LOGGER_NAME).handlers

    assert logging_utils.set_debug_logging(True) == logging.DEBUG
    assert logging.getLogger().level == logging.DEBUG
    assert all(handler.level == logging.DEBUG for handler in logging.getLogger().handlers)
    assert [handler.level for handler in action_handlers] == [logging.INFO]
    assert logging.getLogger("openai").level == logging.WARNING

    assert logging_utils.set_debug_logging(False) == logging.INFO
    assert logging.getLogger().level == logging.INFO
    assert all(handler.level == logging.INFO for handler in logging.getLogger().handlers)


def test_setup_without_force_only_changes_level(tmp_path: Path) -> None:
    first = logging_utils.setup_logging(level=logging.INFO, log_dir=tmp_path / "a", console=False, force=True)

    again = logging_utils.setup_logging(level=logging.DEBUG, log_dir=tmp_path / "b", console=False)

    assert again == first
    assert not (tmp_path / "b").exists()
    assert logging.getLogger().level == logging.DEBUG
    logging_utils.set_debug_logging(False)


def test_store_api_key_persists_encrypted_key(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    store = SettingsStore(path)
    store.save(Settings(theme="dark"))
    monkeypatch.setenv("BEAMERPAD_MODEL", "env-only-model")
    prompts: list[str] = []

    def fake_prompt(message: str) -> str:
        prompts.append(message)
        return "  sk-typed-secret \n"

    saved = app._store_api_key(store, prompt=fake_prompt)

    assert saved == path
    assert prompts == ["API key: "]
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["api_key_ciphertext"].startswith("fernet:")
    assert "sk-typed-secret" not in path.read_text(encoding="utf-8")
    assert payload["theme"] == "dark"
    assert payload["model"] != "env-only-model"

    reloaded = SettingsStore(path).load(include_environment=False)
    assert reloaded.api_key == "sk-typed-secret"
    assert app._api_key_source(reloaded) == "settings"


def test_store_api_key_rejects_blank_input(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"

    with pytest.raises(ValueError):
        app._store_api_key(SettingsStore(path), prompt=lambda _message: "   ")

    assert not path.exists()


def test_store_api_key_flag_is_parsed() -> None:
    args, passthrough = app._parse_cli_args(["--store-api-key", "--settings", "custom.json"])

    assert args.store_api_key is True
    assert args.settings_path == "custom.json"
    assert passthrough == []
