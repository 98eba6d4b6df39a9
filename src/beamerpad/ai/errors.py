"""Mapping of OpenAI SDK and transport failures onto the user-facing taxonomy."""

from __future__ import annotations

import logging

import httpx
from openai import (
    APIConnectionError,
    APIError,
    APIStatusError,
    AuthenticationError,
    RateLimitError,
)

from ..core.errors import (
    API_KEY_MISSING_MARKER,
    BeamerpadError,
    ConfigurationMissingError,
    ContentPolicyError,
    InvalidCredentialError,
    QuotaExceededError,
    UpstreamError,
)

LOGGER = logging.getLogger(__name__)

_INVALID_KEY_MARKERS = ("api key not valid", "invalid api key", "incorrect api key", "api_key_invalid")
_QUOTA_MARKERS = ("quota", "resource_exhausted", "resource exhausted")
_POLICY_MARKERS = ("model_error", "candidate error", "safety settings", "blocked", "content_filter", "content policy")


def classify_exception(exc: BaseException) -> BeamerpadError:
    """Return the :class:`BeamerpadError` describing ``exc``.

    Already-classified errors pass through unchanged. SDK exception types are
    checked first, then the message text, so that OpenAI-compatible gateways
    which only report failures in prose are still classified.
    """

    if isinstance(exc, BeamerpadError):
        return exc

    message = _message_of(exc)
    lowered = message.lower()
    details = {"type": type(exc).__name__}
    status_code = getattr(exc, "status_code", None)
    if status_code is not None:
        details["status_code"] = status_code

    if message.startswith(API_KEY_MISSING_MARKER):
        return ConfigurationMissingError(message=message, details=details)
    if isinstance(exc, AuthenticationError) or any(marker in lowered for marker in _INVALID_KEY_MARKERS):
        return InvalidCredentialError(details=details)
    if any(marker in lowered for marker in _QUOTA_MARKERS):
        return QuotaExceededError(details=details)
    if any(marker in lowered for marker in _POLICY_MARKERS):
        return ContentPolicyError(details=details)
    if isinstance(exc, RateLimitError):
        return UpstreamError(message=f"AI generation failed: rate limited ({message})", details=details)
    if isinstance(exc, (APIStatusError, APIConnectionError, APIError, httpx.HTTPError)):
        return UpstreamError(message=f"AI generation failed: {message}", details=details)
    return UpstreamError(
        message=f"AI generation failed: {message or 'Unknown error during API call'}",
        details=details,
    )


def _message_of(exc: BaseException) -> str:
    message = getattr(exc, "message", None)
    if isinstance(message, str) and message:
        return message
    return str(exc)


__all__ = ["classify_exception"]
