"""Error taxonomy for story generation.

Every failure that leaves the narrative client or the story service is a
ClassifiedError: a plain message, a fixed ErrorCode and a retryable flag.
classify() is the only place where vendor error text is inspected.
"""

from __future__ import annotations

import asyncio
import enum


class ErrorCode(str, enum.Enum):
    CONFIGURATION = "CONFIGURATION_ERROR"
    VALIDATION = "VALIDATION_ERROR"
    API = "API_ERROR"
    TIMEOUT = "TIMEOUT"
    RATE_LIMITED = "RATE_LIMITED"
    SERVER = "SERVER_ERROR"
    NETWORK = "NETWORK_ERROR"
    CLIENT = "CLIENT_ERROR"
    # Relay-only: non-2xx other than 429/5xx, and 2xx bodies with success=false
    REQUEST = "REQUEST_ERROR"
    GENERATION = "GENERATION_ERROR"


class ClassifiedError(RuntimeError):
    """A failure normalised to a code and a retryability flag."""

    def __init__(self, message: str, code: ErrorCode, retryable: bool = False) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.retryable = retryable

    def to_dict(self) -> dict[str, object]:
        return {"message": self.message, "code": self.code.value, "retryable": self.retryable}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, {self.code.name}, retryable={self.retryable})"


class ProviderError(ClassifiedError):
    """Raised by NarrativeClient."""


class StoryServiceError(ClassifiedError):
    """Raised by StoryService; same shape as every ClassifiedError."""


# ---------------------------------------------------------------------------
# classify: vendor error text → ClassifiedError
# ---------------------------------------------------------------------------

_INVALID_KEY_MARKERS = ("API_KEY", "API key not valid", "invalid api key")
_QUOTA_MARKERS = ("QUOTA_EXCEEDED", "quota exceeded")
_RATE_LIMIT_MARKERS = ("RATE_LIMIT", "rate limit", "HTTP 429")
_TIMEOUT_MARKERS = ("timed out", "timeout")
_CONNECT_MARKERS = ("Cannot connect",)


def _contains(message: str, markers: tuple[str, ...]) -> bool:
    lowered = message.lower()
    return any(m.lower() in lowered for m in markers)


def classify(raw: BaseException) -> ClassifiedError:
    """Map any provider-side exception onto the error taxonomy.

    Already-classified errors are returned unchanged. Checks run in order:
    invalid key, quota, rate limit, timeout, connection; anything else is a
    retryable generic API error.
    """
    if isinstance(raw, ClassifiedError):
        return raw
    if isinstance(raw, asyncio.TimeoutError):
        return ProviderError("Request timeout", ErrorCode.TIMEOUT, retryable=True)

    message = str(raw) or type(raw).__name__
    if _contains(message, _INVALID_KEY_MARKERS):
        return ProviderError("Invalid API key", ErrorCode.CONFIGURATION, retryable=False)
    if _contains(message, _QUOTA_MARKERS):
        return ProviderError("API quota exceeded", ErrorCode.API, retryable=False)
    if _contains(message, _RATE_LIMIT_MARKERS):
        return ProviderError("Rate limit exceeded", ErrorCode.API, retryable=True)
    if _contains(message, _TIMEOUT_MARKERS):
        return ProviderError("Request timeout", ErrorCode.TIMEOUT, retryable=True)
    if _contains(message, _CONNECT_MARKERS):
        return ProviderError(message, ErrorCode.NETWORK, retryable=True)
    return ProviderError(f"API error: {message}", ErrorCode.API, retryable=True)
