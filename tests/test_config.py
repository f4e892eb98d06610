"""Tests for fantasy_quiz.config: environment settings and factories."""

from pathlib import Path

import pytest
from unittest.mock import patch

from fantasy_quiz.config import (
    Settings,
    build_llm,
    build_narrative_client,
    build_story_service,
    load_settings,
)
from fantasy_quiz.errors import ErrorCode, StoryServiceError
from fantasy_quiz.llm import HttpLLM

from conftest import STORY_SECTIONS, StubLLM

ENV_VARS = (
    "GEMINI_API_KEY", "GEMINI_MODEL", "LLM_PROVIDER_URL", "LLM_PROVIDER_FORMAT",
    "STORY_RELAY_URL", "STORY_TIMEOUT", "RELAY_TIMEOUT", "SESSION_DIR",
    "HOST", "BACKEND_PORT",
)


@pytest.fixture
def clean_env(monkeypatch):
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    settings = load_settings()
    assert settings.gemini_model == "gemini-1.5-flash"
    assert settings.llm_provider_format == "gemini"
    assert settings.story_timeout == 30.0
    assert settings.relay_timeout == 45.0
    assert settings.story_relay_url is None
    assert not settings.has_api_key


def test_env_overrides(clean_env):
    clean_env.setenv("GEMINI_API_KEY", "k")
    clean_env.setenv("STORY_TIMEOUT", "12.5")
    clean_env.setenv("STORY_RELAY_URL", "http://relay:13013")
    clean_env.setenv("SESSION_DIR", "/tmp/sessions")
    clean_env.setenv("BACKEND_PORT", "9000")
    settings = load_settings()
    assert settings.has_api_key
    assert settings.story_timeout == 12.5
    assert settings.story_relay_url == "http://relay:13013"
    assert settings.session_dir == Path("/tmp/sessions")
    assert settings.backend_port == 9000


def test_invalid_provider_format_rejected(clean_env):
    clean_env.setenv("LLM_PROVIDER_FORMAT", "carrier-pigeon")
    with pytest.raises(ValueError):
        load_settings()


def test_build_llm():
    assert isinstance(build_llm(Settings(gemini_api_key="k")), HttpLLM)


def test_relay_client_uses_relay_timeout():
    settings = Settings()
    assert build_narrative_client(settings, StubLLM()).timeout == 30.0
    assert build_narrative_client(settings, StubLLM(), for_relay=True).timeout == 45.0


async def test_story_service_with_injected_llm(aria):
    service = build_story_service(Settings(), StubLLM())
    story = await service.generate_story(aria)
    assert story.narrative == STORY_SECTIONS["narrative"]


async def test_story_service_without_key_or_relay(aria):
    service = build_story_service(Settings())
    with pytest.raises(StoryServiceError) as exc:
        await service.generate_story(aria)
    assert exc.value.code == ErrorCode.CONFIGURATION


def test_launcher_binds_from_settings(clean_env):
    clean_env.setenv("HOST", "127.0.0.1")
    clean_env.setenv("BACKEND_PORT", "9100")
    clean_env.setattr("sys.argv", ["main.py", "--no-reload"])
    import main

    with patch("uvicorn.run") as run:
        main.main()
    kwargs = run.call_args.kwargs
    assert run.call_args[0][0] == "backend.app:app"
    assert kwargs["host"] == "127.0.0.1"
    assert kwargs["port"] == 9100
    assert kwargs["reload"] is False
