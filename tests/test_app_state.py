"""Tests for fantasy_quiz.app_state: the end-to-end application flow."""

import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock

from fantasy_quiz.app_state import INCOMPLETE_PROFILE_MESSAGE, AppState
from fantasy_quiz.config import Settings
from fantasy_quiz.errors import ErrorCode, StoryServiceError
from fantasy_quiz.fallback import fallback_story
from fantasy_quiz.models import Narrative
from fantasy_quiz.session import SESSION_KEY, MemorySessionBackend

from conftest import ARIA_ANSWERS, FakeClock, ManualScheduler, StubLLM

RETRYABLE = StoryServiceError("Network error occurred", ErrorCode.NETWORK, True)


def _service(*outcomes) -> MagicMock:
    service = MagicMock()
    service.generate_story = AsyncMock(side_effect=list(outcomes))
    return service


def _app(service, clock: FakeClock, backend=None, scheduler=None, auto_retry=False) -> AppState:
    app = AppState.create(
        service,
        backend=backend or MemorySessionBackend(),
        clock=clock,
        scheduler=scheduler or ManualScheduler(),
        auto_retry=auto_retry,
    )
    app.initialize()
    return app


def _answer_all(app: AppState) -> None:
    app.start_quiz()
    for qid, answer in ARIA_ANSWERS.items():
        assert app.set_answer(qid, answer)


async def test_full_flow(clock, story: Narrative):
    service = _service(story)
    app = _app(service, clock)
    _answer_all(app)
    assert app.stores.ui.current_page == "quiz"
    assert app.stores.player.is_profile_complete

    result = await app.complete_quiz()
    assert result == story
    assert app.stores.ui.current_page == "story"
    assert app.stores.story.phase == "succeeded"
    assert not app.stores.ui.loading_states["story_generation"]
    status = app.status()
    assert status["has_story"]
    assert status["quiz_progress"] == 100
    assert status["story_metadata"]["character_name"] == "Aria"


async def test_complete_quiz_with_incomplete_profile_does_not_generate(clock):
    service = _service()
    app = _app(service, clock)
    app.set_answer("name", "Aria")
    assert await app.complete_quiz() is None
    service.generate_story.assert_not_called()


def test_invalid_answer_rejected(clock):
    app = _app(_service(), clock)
    assert not app.set_answer("gender", "Dragon")
    assert app.stores.ui.error_states["profile_validation"] is not None
    assert "gender" not in app.stores.quiz.answers
    assert app.set_answer("gender", "Female")
    assert app.stores.ui.error_states["profile_validation"] is None


async def test_generate_with_incomplete_profile(clock):
    app = _app(_service(), clock)
    assert await app.generate_story() is None
    assert app.stores.ui.error == INCOMPLETE_PROFILE_MESSAGE


async def test_generation_failure_reported_in_ui(clock):
    app = _app(_service(RETRYABLE), clock)
    _answer_all(app)
    assert await app.generate_story() is None
    assert app.stores.ui.error_states["story_generation"] == RETRYABLE.message
    assert not app.stores.ui.has_any_loading()
    assert app.status()["story_error"] == RETRYABLE.message


async def test_retry_story(clock, story):
    app = _app(_service(RETRYABLE, story), clock)
    _answer_all(app)
    await app.generate_story()
    assert await app.retry_story() == story
    assert app.stores.ui.error_states["story_generation"] is None


async def test_retry_story_without_previous_request(clock):
    app = _app(_service(), clock)
    assert await app.retry_story() is None
    assert app.stores.ui.error_states["story_generation"] is not None


async def test_auto_retry_keeps_loading_until_surfaced(clock):
    scheduler = ManualScheduler()
    app = _app(_service(RETRYABLE, RETRYABLE, RETRYABLE), clock,
               scheduler=scheduler, auto_retry=True)
    _answer_all(app)
    assert await app.generate_story() is None
    assert app.stores.ui.loading_states["story_generation"]
    assert app.stores.ui.error_states["story_generation"] is None

    assert await scheduler.run_all() == 2
    assert not app.stores.ui.loading_states["story_generation"]
    assert app.stores.ui.error_states["story_generation"] == RETRYABLE.message


async def test_auto_retry_success_clears_loading(clock, story):
    scheduler = ManualScheduler()
    app = _app(_service(RETRYABLE, story), clock, scheduler=scheduler, auto_retry=True)
    _answer_all(app)
    await app.generate_story()
    await scheduler.run_next()
    assert app.stores.story.generated_story == story
    assert not app.stores.ui.has_any_loading()
    assert app.stores.ui.error_states["story_generation"] is None


async def test_from_settings_saves_under_session_dir(tmp_path, clock, story):
    settings = Settings(session_dir=tmp_path / "sessions")
    app = AppState.from_settings(settings, StubLLM(), clock=clock, auto_retry=False)
    app.initialize()
    _answer_all(app)
    assert await app.complete_quiz() == story
    assert app.persistence.save()
    assert (tmp_path / "sessions" / f"{SESSION_KEY}.json").is_file()

    restored = AppState.from_settings(settings, StubLLM(), clock=clock)
    assert restored.initialize()
    assert restored.stores.story.generated_story == story


# ── backup story ─────────────────────────────────────────────


async def test_backup_story_cancels_pending_retry(clock, aria):
    scheduler = ManualScheduler()
    service = _service(RETRYABLE, RETRYABLE)
    app = _app(service, clock, scheduler=scheduler, auto_retry=True)
    _answer_all(app)
    await app.generate_story()
    assert app.generator.is_generating
    assert scheduler.pending

    backup = app.use_backup_story()
    assert backup == fallback_story(aria)
    assert app.stores.story.generated_story == backup
    assert app.stores.story.phase == "succeeded"
    assert scheduler.pending == []
    assert not app.generator.is_generating
    assert service.generate_story.await_count == 1


async def test_backup_story_beats_in_flight_request(clock, story):
    gate = asyncio.Event()

    async def slow(profile):
        await gate.wait()
        return story

    service = MagicMock()
    service.generate_story = slow
    app = _app(service, clock)
    _answer_all(app)

    pending = asyncio.create_task(app.generate_story())
    await asyncio.sleep(0)
    backup = app.use_backup_story()
    gate.set()
    assert await pending is None
    assert app.stores.story.generated_story == backup


def test_backup_story_needs_a_profile(clock):
    app = _app(_service(), clock)
    assert app.use_backup_story() is None
    assert app.stores.ui.error is not None
    assert app.stores.story.phase == "idle"


# ── session ──────────────────────────────────────────────────


async def test_session_restored_on_initialize(clock, story):
    backend = MemorySessionBackend()
    first = _app(_service(story), clock, backend=backend)
    _answer_all(first)
    await first.complete_quiz()
    first.persistence.save()

    second = _app(_service(), clock, backend=backend)
    assert second.stores.story.generated_story == story
    assert second.stores.ui.current_page == "story"
    assert second.status()["has_session"]
    assert not second.status()["can_resume_session"]


async def test_start_new_adventure(clock, story):
    backend = MemorySessionBackend()
    app = _app(_service(story), clock, backend=backend)
    _answer_all(app)
    await app.complete_quiz()
    app.persistence.save()

    app.start_new_adventure()
    assert app.stores.ui.current_page == "landing"
    assert app.stores.quiz.answers == {}
    assert not app.stores.player.is_profile_complete
    assert app.stores.story.phase == "idle"
    assert not app.persistence.has_session()


def test_close_detaches_sync(clock):
    app = _app(_service(), clock)
    app.close()
    app.stores.quiz.set_answer("name", "Aria")
    assert "name" not in app.stores.player.profile


@pytest.mark.parametrize("page", ["landing", "story"])
def test_start_quiz_navigates(clock, page):
    app = _app(_service(), clock)
    app.stores.ui.set_current_page(page)
    app.stores.ui.set_error("old")
    app.start_quiz()
    assert app.stores.ui.current_page == "quiz"
    assert app.stores.ui.error is None
