"""Error hierarchy surfaced to the user by the edit session.

Every failure that reaches the session controller is one of these classes, so
the controller can render a single message without inspecting third-party
exception types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar

API_KEY_MISSING_MARKER = "API_KEY_MISSING:"


class ErrorCategory(Enum):
    """User-facing classification of a failed action."""

    CONFIGURATION_MISSING = "configuration_missing"
    INVALID_CREDENTIAL = "invalid_credential"
    QUOTA_EXCEEDED = "quota_exceeded"
    CONTENT_POLICY_BLOCKED = "content_policy_blocked"
    INVALID_LOCAL_INPUT = "invalid_local_input"
    UPSTREAM_FAILURE = "upstream_failure"
    EMPTY_RESPONSE = "empty_response"
    DOCUMENT_CONFLICT = "document_conflict"


@dataclass
class BeamerpadError(Exception):
    """Base exception for all errors raised by the editing core.

    Attributes:
        message: Human-readable description shown to the user.
        details: Additional structured information for logs.
    """

    message: str
    details: dict[str, Any] = field(default_factory=dict)

    category: ClassVar[ErrorCategory] = ErrorCategory.UPSTREAM_FAILURE
    # Local errors never reached the network; upstream ones did.
    local: ClassVar[bool] = False
    retryable: ClassVar[bool] = False

    def __post_init__(self) -> None:
        Exception.__init__(self, self.message)

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"category": self.category.value, "message": self.message}
        if self.details:
            payload["details"] = dict(self.details)
        return payload


@dataclass
class ConfigurationMissingError(BeamerpadError):
    """No API credential is configured."""

    message: str = (
        f"{API_KEY_MISSING_MARKER} The API key is not configured. "
        "Please ensure the BEAMERPAD_API_KEY (or API_KEY) environment variable is set up."
    )

    category: ClassVar[ErrorCategory] = ErrorCategory.CONFIGURATION_MISSING
    local = True


@dataclass
class InvalidCredentialError(BeamerpadError):
    message: str = "Invalid API Key. Please check your BEAMERPAD_API_KEY environment variable."

    category: ClassVar[ErrorCategory] = ErrorCategory.INVALID_CREDENTIAL


@dataclass
class QuotaExceededError(BeamerpadError):
    message: str = "API Quota Exceeded. Please check your API usage and limits."

    category: ClassVar[ErrorCategory] = ErrorCategory.QUOTA_EXCEEDED


@dataclass
class ContentPolicyError(BeamerpadError):
    message: str = (
        "The AI model encountered an issue processing your request (e.g. safety settings, "
        "content policy, model error). Please try a different prompt or modify your content."
    )

    category: ClassVar[ErrorCategory] = ErrorCategory.CONTENT_POLICY_BLOCKED


@dataclass
class UpstreamError(BeamerpadError):
    """Catch-all for network and model failures."""

    category: ClassVar[ErrorCategory] = ErrorCategory.UPSTREAM_FAILURE


@dataclass
class EmptyResponseError(BeamerpadError):
    message: str = (
        "Received empty response from AI model. Please try a different prompt or check model output."
    )

    category: ClassVar[ErrorCategory] = ErrorCategory.EMPTY_RESPONSE


@dataclass
class InvalidLocalInputError(BeamerpadError):
    """A precondition failed before any network call was attempted."""

    category: ClassVar[ErrorCategory] = ErrorCategory.INVALID_LOCAL_INPUT
    local = True


@dataclass
class DocumentConflictError(BeamerpadError):
    """The document changed while an action was in flight."""

    message: str = (
        "The document changed while the AI was working; the result was not applied. "
        "Please try again."
    )

    category: ClassVar[ErrorCategory] = ErrorCategory.DOCUMENT_CONFLICT
    local = True


__all__ = [
    "API_KEY_MISSING_MARKER",
    "BeamerpadError",
    "ConfigurationMissingError",
    "ContentPolicyError",
    "DocumentConflictError",
    "EmptyResponseError",
    "ErrorCategory",
    "InvalidCredentialError",
    "InvalidLocalInputError",
    "QuotaExceededError",
    "UpstreamError",
]
