"""Async AI client wrapper built around OpenAI-compatible endpoints."""

from __future__ import annotations

import copy
import inspect
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, MutableMapping, Sequence, cast

import httpx
from openai import APIConnectionError, AsyncOpenAI, InternalServerError
from openai.types.chat import ChatCompletionMessageParam
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..core.errors import ContentPolicyError

LOGGER = logging.getLogger(__name__)
_ELIDED_MEDIA_PREFIX = "data:"
_ELIDED_MEDIA_KEEP = 48


@dataclass(slots=True)
class ClientSettings:
    """Subset of settings required to configure the AI client."""

    base_url: str
    api_key: str
    model: str
    temperature: float | None = 0.2
    request_timeout: float | None = 120.0
    max_retries: int = 3
    retry_min_seconds: float = 0.5
    retry_max_seconds: float = 6.0
    default_headers: Mapping[str, str] | None = None
    debug_logging: bool = False


class AIClient:
    """Async chat-completion client with retry semantics.

    Only transport-level failures (connection errors, timeouts, 5xx) are
    retried. Authentication, quota and policy failures surface immediately.
    """

    def __init__(self, settings: ClientSettings, *, client: AsyncOpenAI | None = None) -> None:
        self._settings = settings
        self._client = client or self._build_client(settings)

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    async def complete(
        self,
        messages: Iterable[Mapping[str, Any] | ChatCompletionMessageParam],
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
        **extra_params: Any,
    ) -> str | None:
        """Run a single non-streamed chat completion and return its text."""

        payload = self._build_chat_payload(
            messages=self._coerce_messages(messages),
            temperature=self._settings.temperature if temperature is None else temperature,
            max_tokens=max_tokens,
            extra_params=extra_params,
        )
        LOGGER.debug(
            "Starting chat completion via %s with %s message(s)",
            self._settings.model,
            len(payload["messages"]),
        )
        if self._settings.debug_logging:
            self._log_prompt_payload(payload)

        response: Any = None
        async for attempt in self._retrying():
            with attempt:
                response = await self._client.chat.completions.create(**payload)
        return self._extract_text(response)

    def _build_client(self, settings: ClientSettings) -> AsyncOpenAI:
        headers = dict(settings.default_headers) if settings.default_headers else None
        return AsyncOpenAI(
            api_key=settings.api_key,
            base_url=settings.base_url,
            timeout=settings.request_timeout,
            default_headers=headers,
            # Retries are driven by tenacity below.
            max_retries=0,
        )

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(max(1, self._settings.max_retries)),
            wait=wait_exponential(
                multiplier=self._settings.retry_min_seconds,
                max=self._settings.retry_max_seconds,
            ),
            retry=retry_if_exception_type(
                (
                    APIConnectionError,
                    InternalServerError,
                    httpx.TimeoutException,
                )
            ),
        )

    def _coerce_messages(
        self, messages: Iterable[Mapping[str, Any] | ChatCompletionMessageParam]
    ) -> List[ChatCompletionMessageParam]:
        normalized: List[ChatCompletionMessageParam] = []
        for message in messages:
            if isinstance(message, MutableMapping):
                normalized.append(cast(ChatCompletionMessageParam, dict(message)))
            else:
                try:
                    normalized.append(cast(ChatCompletionMessageParam, dict(message)))
                except TypeError as exc:
                    raise TypeError("Messages must be mapping-like objects") from exc
        if not normalized:
            raise ValueError("At least one message is required to start a chat")
        return normalized

    def _build_chat_payload(
        self,
        *,
        messages: Sequence[ChatCompletionMessageParam],
        temperature: float | None,
        max_tokens: int | None,
        extra_params: Mapping[str, Any],
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self._settings.model,
            "messages": list(messages),
        }
        if temperature is not None:
            payload["temperature"] = temperature
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens
        if extra_params:
            payload.update(extra_params)
        return payload

    @staticmethod
    def _extract_text(response: Any) -> str | None:
        choices = getattr(response, "choices", None) or []
        if not choices:
            return None
        choice = choices[0]
        message = getattr(choice, "message", None)
        refusal = getattr(message, "refusal", None)
        if getattr(choice, "finish_reason", None) == "content_filter" or refusal:
            raise ContentPolicyError(details={"finish_reason": getattr(choice, "finish_reason", None), "refusal": refusal})
        content = getattr(message, "content", None)
        return content if isinstance(content, str) else None

    def _log_prompt_payload(self, payload: Mapping[str, Any]) -> None:
        try:
            serialized = json.dumps(_elide_media(payload), ensure_ascii=False, indent=2)
        except (TypeError, ValueError):
            LOGGER.debug("AI prompt payload (unserializable): %s", payload)
        else:
            LOGGER.debug("AI prompt payload:\n%s", serialized)

    async def aclose(self) -> None:
        """Close the underlying OpenAI client to release network resources."""

        close = getattr(self._client, "close", None)
        if close is None:
            return
        result = close()
        if inspect.isawaitable(result):
            await result


def _elide_media(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``payload`` with base64 data URIs shortened for logs."""

    clone = copy.deepcopy(dict(payload))

    def _walk(node: Any) -> Any:
        if isinstance(node, dict):
            return {key: _walk(value) for key, value in node.items()}
        if isinstance(node, list):
            return [_walk(item) for item in node]
        if isinstance(node, str) and node.startswith(_ELIDED_MEDIA_PREFIX) and len(node) > _ELIDED_MEDIA_KEEP:
            return f"{node[:_ELIDED_MEDIA_KEEP]}...<{len(node)} chars>"
        return node

    return _walk(clone)


__all__ = ["AIClient", "ClientSettings"]
