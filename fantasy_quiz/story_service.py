"""Story service: chooses between the relay endpoint and a direct provider call.

Paths, attempted in order when both are enabled:
  a. POST {relay_url}/api/generate-story  {"playerProfile": ...}
  b. NarrativeClient.generate(profile) in the caller's process

If (a) fails and client fallback is on, (b) runs and its error is the one
reported when both fail. The service performs no retries of its own;
StoryGenerator owns the retry policy.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from fantasy_quiz.errors import ClassifiedError, ErrorCode, StoryServiceError
from fantasy_quiz.models import Narrative, Profile
from fantasy_quiz.narrative_client import NarrativeClient

logger = logging.getLogger(__name__)

RELAY_PATH = "/api/generate-story"
PROBE_TIMEOUT = 5.0


class StoryService:
    """Generation orchestrator.

    Args:
        relay_url:          Base URL of the relay server; None disables path (a).
        client:             Direct NarrativeClient; None disables path (b).
        use_server_api:     Try the relay first.
        fallback_to_client: Fall back to the direct client when the relay fails.
        timeout:            Relay request timeout in seconds.
        transport:          Optional httpx transport (tests mount the relay app here).
    """

    def __init__(
        self,
        *,
        relay_url: str | None = None,
        client: NarrativeClient | None = None,
        use_server_api: bool = True,
        fallback_to_client: bool = True,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._relay_url = relay_url.rstrip("/") if relay_url else None
        self._client = client
        self._use_server_api = use_server_api and self._relay_url is not None
        self._fallback_to_client = fallback_to_client
        self._timeout = timeout
        self._transport = transport

    def _http(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self._transport)

    async def generate_story(self, profile: Profile) -> Narrative:
        if self._use_server_api:
            try:
                return await self._generate_via_relay(profile)
            except StoryServiceError as e:
                logger.warning("Relay generation failed: %s (%s)", e.message, e.code.name)
                if not self._fallback_to_client or self._client is None:
                    raise
                logger.info("Falling back to direct provider generation")
        return await self._generate_via_client(profile)

    # ------------------------------------------------------------------
    # Path (a): relay endpoint
    # ------------------------------------------------------------------

    async def _generate_via_relay(self, profile: Profile) -> Narrative:
        url = f"{self._relay_url}{RELAY_PATH}"
        try:
            async with self._http(self._timeout) as http:
                resp = await http.post(url, json={"playerProfile": profile.to_wire()})
        except httpx.TimeoutException as e:
            raise StoryServiceError(
                "Request timed out. Please try again.", ErrorCode.TIMEOUT, True
            ) from e
        except httpx.HTTPError as e:
            raise StoryServiceError("Network error occurred", ErrorCode.NETWORK, True) from e

        data = _json_body(resp)
        status = resp.status_code
        if not 200 <= status < 300:
            if status == 429:
                raise StoryServiceError(
                    "Too many requests. Please wait a moment before trying again.",
                    ErrorCode.RATE_LIMITED,
                    True,
                )
            if status >= 500:
                raise StoryServiceError(
                    data.get("error") or "Server error occurred",
                    ErrorCode.SERVER,
                    bool(data.get("retryable", True)),
                )
            raise StoryServiceError(
                data.get("error") or "Request failed", ErrorCode.REQUEST, False
            )

        if not data.get("success"):
            raise StoryServiceError(
                data.get("error") or "Story generation failed",
                ErrorCode.GENERATION,
                bool(data.get("retryable", False)),
            )
        try:
            return Narrative.model_validate(data.get("data"))
        except ValidationError as e:
            raise StoryServiceError(
                f"Invalid story response format: {e}", ErrorCode.VALIDATION, False
            ) from e

    # ------------------------------------------------------------------
    # Path (b): direct provider call
    # ------------------------------------------------------------------

    async def _generate_via_client(self, profile: Profile) -> Narrative:
        if self._client is None:
            raise StoryServiceError(
                "Story generation is not configured", ErrorCode.CONFIGURATION, False
            )
        try:
            return await self._client.generate(profile)
        except ClassifiedError as e:
            raise StoryServiceError(e.message, e.code, e.retryable) from e
        except Exception as e:
            raise StoryServiceError(
                "Client-side generation failed", ErrorCode.CLIENT, False
            ) from e

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    async def test_service(self) -> dict[str, bool]:
        """Probe relay and provider reachability independently. Never raises."""
        results = {"server_api": False, "client_service": False}

        if self._use_server_api:
            try:
                async with self._http(PROBE_TIMEOUT) as http:
                    resp = await http.head(f"{self._relay_url}{RELAY_PATH}")
                results["server_api"] = 200 <= resp.status_code < 300
            except httpx.HTTPError as e:
                logger.warning("Relay probe failed: %s", e)

        if self._client is not None:
            results["client_service"] = await self._client.test_connection()

        return results


def _json_body(resp: httpx.Response) -> dict[str, Any]:
    try:
        data = resp.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}
