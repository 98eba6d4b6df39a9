"""Tests for GenerationClient and message construction."""

from __future__ import annotations

from typing import Any

import pytest

from beamerpad.ai.client import ClientSettings
from beamerpad.ai.generation import GenerationClient, GenerationRequest, build_messages, resolve_api_key
from beamerpad.ai.prompts import DEFAULT_IMAGE_INSTRUCTION, DEFAULT_PDF_INSTRUCTION, REWRITE_SYSTEM_PROMPT
from beamerpad.core.errors import (
    ConfigurationMissingError,
    EmptyResponseError,
    InvalidLocalInputError,
    QuotaExceededError,
)
from beamerpad.core.models import ActionKind, MediaPayload
from beamerpad.services.settings import Settings

DOCUMENT = "\\documentclass{beamer}\\begin{document}X\\end{document}"
IMAGE = MediaPayload(data="iVBORw0=", mime_type="image/png")
PDF = MediaPayload(data="JVBERi0=", mime_type="application/pdf", file_name="notes.pdf")


# =============================================================================
# Fixtures
# =============================================================================


class StubAIClient:
    """Stands in for AIClient; records messages and replays a response."""

    def __init__(self, settings: ClientSettings, response: Any = "result") -> None:
        self.settings = settings
        self.response = response
        self.messages: list[list[dict[str, Any]]] = []
        self.closed = False

    async def complete(self, messages: Any) -> str | None:
        self.messages.append(list(messages))
        if isinstance(self.response, BaseException):
            raise self.response
        return self.response

    async def aclose(self) -> None:
        self.closed = True


class StubFactory:
    def __init__(self, response: Any = "result") -> None:
        self.response = response
        self.clients: list[StubAIClient] = []

    def __call__(self, settings: ClientSettings) -> StubAIClient:
        client = StubAIClient(settings, self.response)
        self.clients.append(client)
        return client


def _generator(factory: StubFactory, key: str | None = "secret") -> GenerationClient:
    return GenerationClient(Settings(), api_key_provider=lambda: key, client_factory=factory)  # type: ignore[arg-type]


# =============================================================================
# Message construction
# =============================================================================


class TestBuildMessages:
    def test_update_is_plain_text(self) -> None:
        messages = build_messages(GenerationRequest(ActionKind.WHOLE_DOCUMENT_UPDATE, DOCUMENT, "add a frame"))

        assert [message["role"] for message in messages] == ["system", "user"]
        assert DOCUMENT in messages[1]["content"]
        assert messages[1]["content"].endswith("add a frame")

    def test_rewrite_includes_snippet_and_context(self) -> None:
        messages = build_messages(
            GenerationRequest(ActionKind.SELECTION_REWRITE, DOCUMENT, "translate", snippet="X")
        )

        assert messages[0]["content"] == REWRITE_SYSTEM_PROMPT
        assert "Selected LaTeX snippet to modify:\nX" in messages[1]["content"]
        assert DOCUMENT in messages[1]["content"]

    def test_image_adds_image_part_and_default_instruction(self) -> None:
        messages = build_messages(GenerationRequest(ActionKind.IMAGE_GENERATION, DOCUMENT, "  ", media=IMAGE))

        text_part, media_part = messages[1]["content"]
        assert text_part["type"] == "text"
        assert text_part["text"].endswith(DEFAULT_IMAGE_INSTRUCTION)
        assert media_part == {"type": "image_url", "image_url": {"url": "data:image/png;base64,iVBORw0="}}

    def test_pdf_adds_file_part(self) -> None:
        messages = build_messages(GenerationRequest(ActionKind.PDF_GENERATION, DOCUMENT, "summarize", media=PDF))

        text_part, media_part = messages[1]["content"]
        assert text_part["text"].endswith("summarize")
        assert media_part["type"] == "file"
        assert media_part["file"] == {
            "filename": "notes.pdf",
            "file_data": "data:application/pdf;base64,JVBERi0=",
        }

    def test_pdf_without_name_uses_default(self) -> None:
        unnamed = MediaPayload(data="JVBERi0=", mime_type="application/pdf")
        messages = build_messages(GenerationRequest(ActionKind.PDF_GENERATION, DOCUMENT, media=unnamed))

        text_part, media_part = messages[1]["content"]
        assert text_part["text"].endswith(DEFAULT_PDF_INSTRUCTION)
        assert media_part["file"]["filename"] == "document.pdf"


# =============================================================================
# Credentials
# =============================================================================


class TestResolveApiKey:
    def test_prefers_beamerpad_variable(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BEAMERPAD_API_KEY", " first ")
        monkeypatch.setenv("API_KEY", "second")

        assert resolve_api_key("stored") == "first"

    def test_falls_back_to_generic_then_stored(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BEAMERPAD_API_KEY", "   ")
        monkeypatch.setenv("API_KEY", "second")
        assert resolve_api_key("stored") == "second"

        monkeypatch.delenv("API_KEY")
        assert resolve_api_key("stored") == "stored"
        assert resolve_api_key("") is None


# =============================================================================
# GenerationClient
# =============================================================================


class TestGenerationClient:
    @pytest.mark.asyncio
    async def test_missing_key_fails_before_network(self) -> None:
        factory = StubFactory()
        generator = _generator(factory, key=None)

        with pytest.raises(ConfigurationMissingError) as excinfo:
            await generator.update_presentation(DOCUMENT, "add a frame")

        assert excinfo.value.message.startswith("API_KEY_MISSING:")
        assert factory.clients == []

    @pytest.mark.asyncio
    async def test_default_provider_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("API_KEY", "env-key")
        factory = StubFactory()
        generator = GenerationClient(Settings(api_key="stored"), client_factory=factory)  # type: ignore[arg-type]

        await generator.update_presentation(DOCUMENT, "go")

        assert factory.clients[0].settings.api_key == "env-key"

    @pytest.mark.asyncio
    async def test_update_returns_cleaned_text(self) -> None:
        factory = StubFactory("```latex\n\\begin{document}Y\\end{document}\n```")
        generator = _generator(factory)

        result = await generator.update_presentation(DOCUMENT, "change X to Y")

        assert result == "\\begin{document}Y\\end{document}"

    @pytest.mark.asyncio
    async def test_update_rejects_empty_response(self) -> None:
        generator = _generator(StubFactory("   "))

        with pytest.raises(EmptyResponseError):
            await generator.update_presentation(DOCUMENT, "go")

    @pytest.mark.asyncio
    async def test_rewrite_allows_empty_snippet(self) -> None:
        generator = _generator(StubFactory(None))

        assert await generator.rewrite_selection("X", DOCUMENT, "delete this") == ""

    @pytest.mark.asyncio
    async def test_media_modes_send_payload(self) -> None:
        factory = StubFactory("\\begin{document}Z\\end{document}")
        generator = _generator(factory)

        await generator.generate_from_image(DOCUMENT, IMAGE)
        await generator.generate_from_pdf(DOCUMENT, PDF, "summarize")

        image_messages, pdf_messages = factory.clients[0].messages
        assert image_messages[1]["content"][1]["type"] == "image_url"
        assert pdf_messages[1]["content"][1]["type"] == "file"

    @pytest.mark.asyncio
    async def test_upstream_errors_are_classified(self) -> None:
        generator = _generator(StubFactory(RuntimeError("429 You exceeded your current quota")))

        with pytest.raises(QuotaExceededError) as excinfo:
            await generator.update_presentation(DOCUMENT, "go")

        assert isinstance(excinfo.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_request_shape_is_validated(self) -> None:
        generator = _generator(StubFactory())

        with pytest.raises(InvalidLocalInputError):
            await generator.generate(GenerationRequest(ActionKind.IMAGE_GENERATION, DOCUMENT))
        with pytest.raises(InvalidLocalInputError):
            await generator.generate(GenerationRequest(ActionKind.WHOLE_DOCUMENT_UPDATE, DOCUMENT, media=IMAGE))
        with pytest.raises(InvalidLocalInputError):
            await generator.generate(GenerationRequest(ActionKind.SELECTION_REWRITE, DOCUMENT, "x"))

    @pytest.mark.asyncio
    async def test_clients_are_cached_per_key_and_closed(self) -> None:
        keys = iter(["one", "one", "two"])
        factory = StubFactory()
        generator = GenerationClient(
            Settings(model="m", default_headers={"X-Test": "1"}),
            api_key_provider=lambda: next(keys),
            client_factory=factory,  # type: ignore[arg-type]
        )

        for _ in range(3):
            await generator.update_presentation(DOCUMENT, "go")
        await generator.aclose()

        assert [client.settings.api_key for client in factory.clients] == ["one", "two"]
        assert factory.clients[0].settings.model == "m"
        assert factory.clients[0].settings.default_headers == {"X-Test": "1"}
        assert all(client.closed for client in factory.clients)
