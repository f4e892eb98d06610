"""Session persistence.

One JSON record per session key holds a snapshot of all four stores:

    {
      "quiz":   {"current_question_index", "answers", "is_complete", "progress"},
      "player": {"profile", "is_profile_complete"},
      "ui":     {"current_page"},
      "story":  {"generated_story", "last_generation_request", "generation_timestamp"},
      "timestamp": <seconds since epoch>
    }

A missing, malformed, or stale (older than max_age) record means "no
session"; malformed and stale records are removed. Loading restores stores
only through their own operations and then re-runs the store sync, so
derived state (progress, profile completeness) is recomputed, not copied.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel, Field, ValidationError

from fantasy_quiz.clock import Clock, SystemClock
from fantasy_quiz.models import Narrative, PageType, Profile
from fantasy_quiz.stores import AppStores
from fantasy_quiz.sync import StoreSync

logger = logging.getLogger(__name__)

SESSION_KEY = "fantasy-quiz-session"
MAX_SESSION_AGE = 24 * 60 * 60
DEFAULT_AUTOSAVE_INTERVAL = 10.0


# ---------------------------------------------------------------------------
# Snapshot schema
# ---------------------------------------------------------------------------

class QuizSnapshot(BaseModel):
    current_question_index: int = 0
    answers: dict[str, str] = Field(default_factory=dict)
    is_complete: bool = False
    progress: int = 0


class PlayerSnapshot(BaseModel):
    profile: dict[str, Any] = Field(default_factory=dict)
    is_profile_complete: bool = False


class UISnapshot(BaseModel):
    current_page: PageType = "landing"


class StorySnapshot(BaseModel):
    generated_story: Narrative | None = None
    last_generation_request: Profile | None = None
    generation_timestamp: float | None = None


class SessionSnapshot(BaseModel):
    quiz: QuizSnapshot = Field(default_factory=QuizSnapshot)
    player: PlayerSnapshot = Field(default_factory=PlayerSnapshot)
    ui: UISnapshot = Field(default_factory=UISnapshot)
    story: StorySnapshot = Field(default_factory=StorySnapshot)
    timestamp: float


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------

class SessionBackend(Protocol):
    def get(self, key: str) -> str | None: ...
    def set(self, key: str, value: str) -> None: ...
    def remove(self, key: str) -> None: ...


class MemorySessionBackend:
    """Process-local record store."""

    def __init__(self) -> None:
        self._records: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._records.get(key)

    def set(self, key: str, value: str) -> None:
        self._records[key] = value

    def remove(self, key: str) -> None:
        self._records.pop(key, None)


class FileSessionBackend:
    """One JSON file per key under base_dir."""

    def __init__(self, base_dir: Path) -> None:
        self._base = base_dir
        self._base.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self._base / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.is_file():
            return None
        return path.read_text()

    def set(self, key: str, value: str) -> None:
        self._path(key).write_text(value)

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


# ---------------------------------------------------------------------------
# SessionPersistence
# ---------------------------------------------------------------------------

class SessionPersistence:
    def __init__(
        self,
        stores: AppStores,
        backend: SessionBackend,
        *,
        sync: StoreSync | None = None,
        clock: Clock | None = None,
        key: str = SESSION_KEY,
        max_age: float = MAX_SESSION_AGE,
    ) -> None:
        self._stores = stores
        self._backend = backend
        self._sync = sync or StoreSync(stores)
        self._clock = clock or SystemClock()
        self._key = key
        self._max_age = max_age

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot.model_validate({
            "quiz": self._stores.quiz.state(),
            "player": self._stores.player.state(),
            "ui": self._stores.ui.state(),
            "story": self._stores.story.state(),
            "timestamp": self._clock.now(),
        })

    def save(self) -> bool:
        try:
            self._backend.set(self._key, self.snapshot().model_dump_json(by_alias=True))
        except OSError as e:
            logger.warning("Failed to save session: %s", e)
            return False
        return True

    def load(self) -> bool:
        """Restore the stores from the saved record. Returns True if a session was restored."""
        raw = self._backend.get(self._key)
        if raw is None:
            return False
        try:
            snapshot = SessionSnapshot.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("Discarding malformed session record: %s", e)
            self.clear()
            return False
        if self._clock.now() - snapshot.timestamp > self._max_age:
            logger.info("Discarding session older than %ds", self._max_age)
            self.clear()
            return False

        self._restore(snapshot)
        self._sync.sync_all()
        return True

    def clear(self) -> bool:
        try:
            self._backend.remove(self._key)
        except OSError as e:
            logger.warning("Failed to clear session: %s", e)
            return False
        return True

    def has_session(self) -> bool:
        return self._backend.get(self._key) is not None

    def _restore(self, snapshot: SessionSnapshot) -> None:
        quiz = self._stores.quiz
        quiz.reset_quiz()
        for question_id, answer in snapshot.quiz.answers.items():
            quiz.set_answer(question_id, answer)
        quiz.go_to_question(snapshot.quiz.current_question_index)
        if snapshot.quiz.is_complete:
            quiz.complete_quiz()

        player = self._stores.player
        player.reset_profile()
        player.update_profile(snapshot.player.profile)

        self._stores.ui.set_current_page(snapshot.ui.current_page)

        story = self._stores.story
        story.reset()
        story.set_generated_story(snapshot.story.generated_story)
        story.set_last_request(
            snapshot.story.last_generation_request,
            submitted_at=snapshot.story.generation_timestamp,
        )
        story.set_generation_timestamp(snapshot.story.generation_timestamp)


# ---------------------------------------------------------------------------
# AutoSaver
# ---------------------------------------------------------------------------

class AutoSaver:
    """Saves on a fixed interval, and once more when stopped.

    Use as an async context manager, or call start() / await stop().
    """

    def __init__(
        self,
        persistence: SessionPersistence,
        interval: float = DEFAULT_AUTOSAVE_INTERVAL,
        clock: Clock | None = None,
    ) -> None:
        self._persistence = persistence
        self._interval = interval
        self._clock = clock or SystemClock()
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        self._persistence.save()

    async def _loop(self) -> None:
        while True:
            await self._clock.sleep(self._interval)
            self._persistence.save()

    async def __aenter__(self) -> AutoSaver:
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()
