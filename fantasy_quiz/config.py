"""Settings loaded from the environment (and .env at the repo root).

Factories at the bottom build the production object graph from Settings:
HttpLLM -> NarrativeClient -> StoryService.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel

from fantasy_quiz.clock import Clock
from fantasy_quiz.llm import DEFAULT_GEMINI_URL, LLM, HttpLLM, ProviderFormat
from fantasy_quiz.narrative_client import NarrativeClient
from fantasy_quiz.story_service import StoryService

ROOT = Path(__file__).parent.parent
load_dotenv(ROOT / ".env")

RELAY_MAX_RETRIES = 2


class Settings(BaseModel):
    gemini_api_key: str = ""
    gemini_model: str = "gemini-1.5-flash"
    llm_provider_url: str = DEFAULT_GEMINI_URL
    llm_provider_format: ProviderFormat = "gemini"
    story_relay_url: str | None = None
    story_timeout: float = 30.0
    relay_timeout: float = 45.0
    session_dir: Path = ROOT / "data" / "sessions"
    host: str = "0.0.0.0"
    backend_port: int = 13013

    @property
    def has_api_key(self) -> bool:
        return bool(self.gemini_api_key.strip())


def load_settings() -> Settings:
    """Read Settings from environment variables; unset ones keep their defaults."""
    env = {
        "gemini_api_key": os.getenv("GEMINI_API_KEY"),
        "gemini_model": os.getenv("GEMINI_MODEL"),
        "llm_provider_url": os.getenv("LLM_PROVIDER_URL"),
        "llm_provider_format": os.getenv("LLM_PROVIDER_FORMAT"),
        "story_relay_url": os.getenv("STORY_RELAY_URL"),
        "story_timeout": os.getenv("STORY_TIMEOUT"),
        "relay_timeout": os.getenv("RELAY_TIMEOUT"),
        "session_dir": os.getenv("SESSION_DIR"),
        "host": os.getenv("HOST"),
        "backend_port": os.getenv("BACKEND_PORT"),
    }
    return Settings(**{k: v for k, v in env.items() if v})


def build_llm(settings: Settings, timeout: float | None = None) -> HttpLLM:
    return HttpLLM(
        provider_url=settings.llm_provider_url,
        api_key=settings.gemini_api_key,
        provider_format=settings.llm_provider_format,
        model=settings.gemini_model,
        timeout=timeout or settings.story_timeout,
    )


def build_narrative_client(
    settings: Settings,
    llm: LLM | None = None,
    *,
    for_relay: bool = False,
    clock: Clock | None = None,
) -> NarrativeClient:
    """Direct calls get one attempt; the relay gets bounded backoff retries."""
    timeout = settings.relay_timeout if for_relay else settings.story_timeout
    return NarrativeClient(
        llm or build_llm(settings, timeout),
        timeout=timeout,
        max_retries=RELAY_MAX_RETRIES if for_relay else 0,
        clock=clock,
    )


def build_story_service(settings: Settings, llm: LLM | None = None) -> StoryService:
    """Relay first when STORY_RELAY_URL is set; direct client only with a key or an injected LLM."""
    client = None
    if llm is not None or settings.has_api_key:
        client = build_narrative_client(settings, llm)
    return StoryService(
        relay_url=settings.story_relay_url,
        client=client,
        timeout=settings.story_timeout,
    )
