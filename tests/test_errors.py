"""Tests for fantasy_quiz.errors: vendor failure classification."""

import asyncio

import pytest

from fantasy_quiz.errors import (
    ClassifiedError,
    ErrorCode,
    ProviderError,
    StoryServiceError,
    classify,
)
from fantasy_quiz.llm import LLMError


@pytest.mark.parametrize(
    ("message", "code", "retryable"),
    [
        ("LLM backend returned HTTP 400: API_KEY_INVALID", ErrorCode.CONFIGURATION, False),
        ("API key not valid. Please pass a valid API key.", ErrorCode.CONFIGURATION, False),
        ("QUOTA_EXCEEDED for project", ErrorCode.API, False),
        ("LLM backend returned HTTP 429: slow down", ErrorCode.API, True),
        ("RATE_LIMIT_EXCEEDED", ErrorCode.API, True),
        ("LLM backend timed out after 60.0s", ErrorCode.TIMEOUT, True),
        ("Cannot connect to LLM backend at http://x", ErrorCode.NETWORK, True),
        ("LLM backend returned HTTP 500: boom", ErrorCode.API, True),
    ],
)
def test_classify_vendor_messages(message, code, retryable):
    error = classify(LLMError(message))
    assert isinstance(error, ProviderError)
    assert error.code == code
    assert error.retryable is retryable


def test_classify_fixed_messages():
    assert classify(LLMError("API_KEY_INVALID")).message == "Invalid API key"
    assert classify(LLMError("quota exceeded")).message == "API quota exceeded"
    assert classify(LLMError("rate limit hit")).message == "Rate limit exceeded"
    assert classify(LLMError("something odd")).message == "API error: something odd"


def test_classify_asyncio_timeout():
    error = classify(asyncio.TimeoutError())
    assert error.code == ErrorCode.TIMEOUT
    assert error.retryable


def test_classify_passes_classified_through():
    original = StoryServiceError("Network error occurred", ErrorCode.NETWORK, True)
    assert classify(original) is original


def test_classify_empty_message_uses_type_name():
    assert classify(ValueError()).message == "API error: ValueError"


def test_error_codes_use_wire_values():
    assert ErrorCode.CONFIGURATION.value == "CONFIGURATION_ERROR"
    assert ErrorCode.RATE_LIMITED.value == "RATE_LIMITED"
    assert ErrorCode.TIMEOUT == "TIMEOUT"


def test_to_dict():
    error = ClassifiedError("Request timeout", ErrorCode.TIMEOUT, True)
    assert error.to_dict() == {"message": "Request timeout", "code": "TIMEOUT", "retryable": True}
    assert str(error) == "Request timeout"
