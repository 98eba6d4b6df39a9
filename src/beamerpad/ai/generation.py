"""Generation client: the adapter between edit actions and the model endpoint.

Each action kind maps to one operation that builds a mode-specific prompt,
attaches at most one media payload, calls the model and returns cleaned
LaTeX. All failures leave this module as :class:`BeamerpadError` subclasses.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Any, Callable, Dict, List

from ..core.errors import ConfigurationMissingError, InvalidLocalInputError
from ..core.models import ActionKind, MediaPayload
from ..services.settings import Settings
from .cleaning import clean_latex_response
from .client import AIClient, ClientSettings
from .errors import classify_exception
from .prompts import system_prompt, user_prompt

LOGGER = logging.getLogger(__name__)

API_KEY_ENV_VARS: tuple[str, ...] = ("BEAMERPAD_API_KEY", "API_KEY")
_DEFAULT_PDF_NAME = "document.pdf"

ApiKeyProvider = Callable[[], "str | None"]
ClientFactory = Callable[[ClientSettings], AIClient]


@dataclass(slots=True, frozen=True)
class GenerationRequest:
    """Everything the model needs for one action.

    Attributes:
        kind: Which of the four modes to run.
        document: The full current document.
        instruction: User instruction, possibly empty for media modes.
        snippet: The selected text, only for selection rewrites.
        media: The single media payload, only for image/PDF modes.
    """

    kind: ActionKind
    document: str
    instruction: str = ""
    snippet: str | None = None
    media: MediaPayload | None = None


def resolve_api_key(fallback: str | None = None) -> str | None:
    """Return the first non-blank credential from the environment, else ``fallback``."""

    for name in API_KEY_ENV_VARS:
        value = os.environ.get(name)
        if value and value.strip():
            return value.strip()
    if fallback and fallback.strip():
        return fallback.strip()
    return None


def build_messages(request: GenerationRequest) -> List[Dict[str, Any]]:
    """Return the chat messages for ``request``."""

    text = user_prompt(request.kind, request.document, request.instruction, snippet=request.snippet)
    messages: List[Dict[str, Any]] = [{"role": "system", "content": system_prompt(request.kind)}]
    if request.media is None:
        messages.append({"role": "user", "content": text})
        return messages
    messages.append({
        "role": "user",
        "content": [
            {"type": "text", "text": text},
            _media_part(request.kind, request.media),
        ],
    })
    return messages


def _media_part(kind: ActionKind, media: MediaPayload) -> Dict[str, Any]:
    if kind is ActionKind.PDF_GENERATION:
        return {
            "type": "file",
            "file": {
                "filename": media.file_name or _DEFAULT_PDF_NAME,
                "file_data": media.as_data_uri(),
            },
        }
    return {"type": "image_url", "image_url": {"url": media.as_data_uri()}}


class GenerationClient:
    """Stateless facade over :class:`AIClient` offering one call per action kind."""

    def __init__(
        self,
        settings: Settings,
        *,
        api_key_provider: ApiKeyProvider | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Endpoint, model and retry configuration.
            api_key_provider: Returns the credential at call time. Defaults to
                reading the environment, falling back to ``settings.api_key``.
            client_factory: Builds the underlying :class:`AIClient`; tests
                inject fakes here.
        """
        self._settings = settings
        self._api_key_provider = api_key_provider or (lambda: resolve_api_key(settings.api_key))
        self._client_factory = client_factory or AIClient
        self._clients: dict[str, AIClient] = {}

    async def update_presentation(self, document: str, instruction: str) -> str:
        return await self.generate(GenerationRequest(
            kind=ActionKind.WHOLE_DOCUMENT_UPDATE,
            document=document,
            instruction=instruction,
        ))

    async def rewrite_selection(self, snippet: str, document: str, instruction: str) -> str:
        """Return a replacement for ``snippet``; an empty string means delete it."""
        return await self.generate(GenerationRequest(
            kind=ActionKind.SELECTION_REWRITE,
            document=document,
            instruction=instruction,
            snippet=snippet,
        ))

    async def generate_from_image(self, document: str, media: MediaPayload, instruction: str = "") -> str:
        return await self.generate(GenerationRequest(
            kind=ActionKind.IMAGE_GENERATION,
            document=document,
            instruction=instruction,
            media=media,
        ))

    async def generate_from_pdf(self, document: str, media: MediaPayload, instruction: str = "") -> str:
        return await self.generate(GenerationRequest(
            kind=ActionKind.PDF_GENERATION,
            document=document,
            instruction=instruction,
            media=media,
        ))

    async def generate(self, request: GenerationRequest) -> str:
        """Run ``request`` against the model and return cleaned LaTeX.

        Raises:
            BeamerpadError: A classified failure; configuration problems are
                raised before any network traffic.
        """
        self._validate(request)
        try:
            client = self._client_for_call()
            raw_text = await client.complete(build_messages(request))
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            error = classify_exception(exc)
            LOGGER.error(
                "Generation failed for %s: %s (%s)",
                request.kind.value,
                error.message,
                error.category.value,
            )
            raise error from exc

        allow_empty = request.kind is ActionKind.SELECTION_REWRITE
        return clean_latex_response(raw_text, allow_empty=allow_empty)

    async def aclose(self) -> None:
        """Close every cached :class:`AIClient`."""
        clients = list(self._clients.values())
        self._clients.clear()
        for client in clients:
            await client.aclose()

    def _client_for_call(self) -> AIClient:
        api_key = self._api_key_provider()
        if not api_key:
            raise ConfigurationMissingError()
        client = self._clients.get(api_key)
        if client is None:
            client = self._client_factory(self._client_settings(api_key))
            self._clients[api_key] = client
        return client

    def _client_settings(self, api_key: str) -> ClientSettings:
        settings = self._settings
        return ClientSettings(
            base_url=settings.base_url,
            api_key=api_key,
            model=settings.model,
            temperature=settings.temperature,
            request_timeout=settings.request_timeout,
            max_retries=settings.max_retries,
            retry_min_seconds=settings.retry_min_seconds,
            retry_max_seconds=settings.retry_max_seconds,
            default_headers=dict(settings.default_headers) or None,
            debug_logging=settings.debug_logging,
        )

    @staticmethod
    def _validate(request: GenerationRequest) -> None:
        media_kinds = (ActionKind.IMAGE_GENERATION, ActionKind.PDF_GENERATION)
        if request.kind in media_kinds and request.media is None:
            raise InvalidLocalInputError(f"{request.kind.value} requires a media payload")
        if request.kind not in media_kinds and request.media is not None:
            raise InvalidLocalInputError(f"{request.kind.value} does not accept media")
        if request.kind is ActionKind.SELECTION_REWRITE and request.snippet is None:
            raise InvalidLocalInputError("Selection rewrite requires the selected snippet")


__all__ = [
    "API_KEY_ENV_VARS",
    "GenerationClient",
    "GenerationRequest",
    "build_messages",
    "resolve_api_key",
]
