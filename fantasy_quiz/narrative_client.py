"""Narrative provider client: profile in, five-section Narrative out.

Call flow:
  1. Render the story prompt for the profile.
  2. Call the LLM, racing a timeout (the call is cancelled on expiry).
  3. Strip ```json / ``` fences from the reply and parse it as JSON.
  4. Validate the object against the Narrative shape.

Failures leave as ProviderError with a code from the fixed taxonomy; vendor
failures are mapped by errors.classify(). Retryable failures may be retried
with exponential backoff when max_retries > 0.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re

from pydantic import ValidationError

from fantasy_quiz.clock import Clock, SystemClock
from fantasy_quiz.errors import ClassifiedError, ErrorCode, ProviderError, classify
from fantasy_quiz.llm import LLM
from fantasy_quiz.models import Narrative, Profile
from fantasy_quiz.prompts import CONNECTION_TEST_PROMPT, build_story_prompt

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_RETRY_DELAY = 1.0

_FENCE_OPEN = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\s*```$")


def strip_code_fence(text: str) -> str:
    """Remove a leading ```json / ``` marker and a trailing ``` marker."""
    clean = text.strip()
    if clean.startswith("```"):
        clean = _FENCE_OPEN.sub("", clean, count=1)
        clean = _FENCE_CLOSE.sub("", clean, count=1)
    return clean


def parse_narrative(text: str) -> Narrative:
    """Parse a provider reply into a Narrative, or raise VALIDATION."""
    try:
        data = json.loads(strip_code_fence(text))
    except json.JSONDecodeError as e:
        raise ProviderError(
            f"Failed to parse API response as JSON: {e}", ErrorCode.VALIDATION
        ) from e
    if not isinstance(data, dict):
        raise ProviderError(
            f"Invalid story response format: expected a JSON object, got {type(data).__name__}",
            ErrorCode.VALIDATION,
        )
    try:
        return Narrative.model_validate(data)
    except ValidationError as e:
        raise ProviderError(
            f"Invalid story response format: {e}", ErrorCode.VALIDATION
        ) from e


class NarrativeClient:
    """Wraps one LLM backend for story generation.

    Args:
        llm:          The LLM callable.
        timeout:      Seconds allowed per provider call.
        max_retries:  Extra attempts for retryable failures (0 = single attempt).
        retry_delay:  Base delay; attempt n waits retry_delay * 2**n.
        clock:        Time source for the backoff sleeps.
    """

    def __init__(
        self,
        llm: LLM,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = 0,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        clock: Clock | None = None,
    ) -> None:
        self._llm = llm
        self._timeout = timeout
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._clock = clock or SystemClock()

    @property
    def timeout(self) -> float:
        return self._timeout

    def build_prompt(self, profile: Profile) -> str:
        return build_story_prompt(profile)

    async def generate(self, profile: Profile) -> Narrative:
        prompt = self.build_prompt(profile)
        attempt = 0
        while True:
            try:
                return await self._attempt(prompt)
            except ClassifiedError as e:
                if not e.retryable or self._max_retries == 0:
                    raise
                if attempt == self._max_retries:
                    raise ProviderError(
                        f"Failed after {attempt + 1} attempts: {e.message}",
                        e.code,
                        e.retryable,
                    ) from e
                delay = self._retry_delay * (2 ** attempt)
                logger.debug(
                    "narrative attempt %d failed (%s), retrying in %.1fs",
                    attempt + 1, e.code.name, delay,
                )
                await self._clock.sleep(delay)
            attempt += 1

    async def _attempt(self, prompt: str) -> Narrative:
        try:
            text = await asyncio.wait_for(self._llm("story", prompt), timeout=self._timeout)
        except asyncio.TimeoutError as e:
            raise ProviderError("Request timeout", ErrorCode.TIMEOUT, retryable=True) from e
        except Exception as e:
            raise classify(e) from e

        if not text or not text.strip():
            raise ProviderError("Empty response from API", ErrorCode.API, retryable=True)
        return parse_narrative(text)

    async def test_connection(self) -> bool:
        """Send a canary prompt; True only if the backend answers as asked."""
        try:
            text = await asyncio.wait_for(
                self._llm("connection_test", CONNECTION_TEST_PROMPT), timeout=self._timeout
            )
            parsed = json.loads(strip_code_fence(text))
            return isinstance(parsed, dict) and parsed.get("test") == "success"
        except Exception as e:
            logger.warning("Connection test failed: %s", e)
            return False
