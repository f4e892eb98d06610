"""Application facade: the actions a front end drives.

AppState wires the four stores, the store sync, the story generator and
session persistence together. initialize() restores a saved session and
attaches the sync; everything afterwards goes through the action methods.
"""

from __future__ import annotations

import logging
from typing import Any

from fantasy_quiz.clock import Clock, Scheduler
from fantasy_quiz.config import Settings, build_story_service
from fantasy_quiz.errors import ClassifiedError
from fantasy_quiz.fallback import fallback_story
from fantasy_quiz.generation import StoryGenerator
from fantasy_quiz.llm import LLM
from fantasy_quiz.models import Narrative, validate_answer
from fantasy_quiz.session import (
    FileSessionBackend,
    MemorySessionBackend,
    SessionBackend,
    SessionPersistence,
)
from fantasy_quiz.stores import AppStores
from fantasy_quiz.story_service import StoryService
from fantasy_quiz.sync import StoreSync

logger = logging.getLogger(__name__)

INCOMPLETE_PROFILE_MESSAGE = "Profile is incomplete. Please answer all required questions."
NO_PROFILE_FOR_BACKUP_MESSAGE = "Answer the quiz before requesting a backup story."


class AppState:
    def __init__(
        self,
        stores: AppStores,
        generator: StoryGenerator,
        persistence: SessionPersistence,
        sync: StoreSync | None = None,
    ) -> None:
        self.stores = stores
        self.generator = generator
        self.persistence = persistence
        self.sync = sync or StoreSync(stores)

    @classmethod
    def create(
        cls,
        service: StoryService,
        *,
        backend: SessionBackend | None = None,
        clock: Clock | None = None,
        scheduler: Scheduler | None = None,
        auto_retry: bool = False,
    ) -> AppState:
        """Build a fresh session around a StoryService."""
        stores = AppStores.create(clock)
        sync = StoreSync(stores)
        ui = stores.ui

        # Scheduled retries finish outside generate_story.
        def on_success(story: Narrative) -> None:
            ui.set_loading("story_generation", False)
            ui.set_operation_error("story_generation", None)

        def on_error(message: str) -> None:
            ui.set_loading("story_generation", False)
            ui.set_operation_error("story_generation", message)

        generator = StoryGenerator(
            stores.story,
            service,
            auto_retry=auto_retry,
            scheduler=scheduler,
            on_success=on_success,
            on_error=on_error,
        )
        persistence = SessionPersistence(
            stores, backend or MemorySessionBackend(), sync=sync, clock=clock
        )
        return cls(stores, generator, persistence, sync)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        llm: LLM | None = None,
        *,
        clock: Clock | None = None,
        scheduler: Scheduler | None = None,
        auto_retry: bool = True,
    ) -> AppState:
        """Production wiring: StoryService from settings, sessions saved under session_dir."""
        return cls.create(
            build_story_service(settings, llm),
            backend=FileSessionBackend(settings.session_dir),
            clock=clock,
            scheduler=scheduler,
            auto_retry=auto_retry,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> bool:
        """Restore the saved session (if any) and start syncing. Returns True if restored."""
        restored = self.persistence.load()
        if restored:
            logger.info("Restored saved session")
        self.sync.attach()
        self.sync.sync_all()
        return restored

    def close(self) -> None:
        self.generator.close()
        self.sync.detach()

    # ------------------------------------------------------------------
    # Quiz
    # ------------------------------------------------------------------

    def start_quiz(self) -> None:
        self.stores.ui.navigate_to_page("quiz")
        self.stores.ui.clear_all_errors()

    def set_answer(self, question_id: str, answer: str) -> bool:
        """Record an answer if it is valid; otherwise report it in the UI store."""
        error = validate_answer(question_id, answer)
        self.stores.ui.set_operation_error("profile_validation", error)
        if error:
            return False
        self.stores.quiz.set_answer(question_id, answer)
        return True

    async def complete_quiz(self) -> Narrative | None:
        """Finish the quiz and, when the profile is complete, generate the story."""
        self.stores.quiz.complete_quiz()
        self.sync.sync_quiz_to_player()
        if self.stores.player.profile_for_story_generation() is None:
            return None
        return await self.generate_story()

    # ------------------------------------------------------------------
    # Story
    # ------------------------------------------------------------------

    async def generate_story(self) -> Narrative | None:
        """Generate from the current profile.

        Returns the story, or None when the profile is incomplete, the
        request failed, an auto-retry was scheduled, or it was superseded.
        Failures are reported in the UI store rather than raised.
        """
        ui = self.stores.ui
        profile = self.stores.player.profile_for_story_generation()
        if profile is None:
            ui.set_error(INCOMPLETE_PROFILE_MESSAGE)
            return None

        ui.set_loading("story_generation", True)
        ui.set_operation_error("story_generation", None)
        try:
            return await self.generator.generate_story(profile)
        except ClassifiedError as e:
            ui.set_operation_error("story_generation", e.message)
            return None
        finally:
            if not self.generator.is_generating:
                ui.set_loading("story_generation", False)

    async def retry_story(self) -> Narrative | None:
        ui = self.stores.ui
        ui.set_operation_error("story_generation", None)
        try:
            return await self.generator.retry_generation()
        except LookupError as e:
            ui.set_operation_error("story_generation", str(e))
        except ClassifiedError as e:
            ui.set_operation_error("story_generation", e.message)
        return None

    def use_backup_story(self) -> Narrative | None:
        """Replace whatever is in progress with the locally built story."""
        profile = self.stores.player.profile_for_story_generation()
        if profile is None and self.stores.story.last_request is not None:
            profile = self.stores.story.last_request.profile
        if profile is None:
            self.stores.ui.set_error(NO_PROFILE_FOR_BACKUP_MESSAGE)
            return None

        self.generator.cancel_retry()
        story = fallback_story(profile)
        self.stores.story.apply_fallback(story)
        self.stores.ui.set_loading("story_generation", False)
        self.stores.ui.set_operation_error("story_generation", None)
        return story

    def start_new_adventure(self) -> None:
        self.generator.reset_story()
        self.stores.reset_all()
        self.persistence.clear()

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def status(self) -> dict[str, Any]:
        quiz, player, ui, story = (
            self.stores.quiz, self.stores.player, self.stores.ui, self.stores.story,
        )
        has_session = self.persistence.has_session()
        return {
            "current_page": ui.current_page,
            "is_loading": ui.has_any_loading(),
            "has_errors": ui.has_any_error(),
            "errors": ui.active_errors(),
            "quiz_progress": quiz.progress,
            "is_quiz_complete": quiz.is_complete,
            "can_proceed_to_next": quiz.can_proceed_to_next(),
            "can_go_to_previous": quiz.can_go_to_previous(),
            "profile_completion": player.completion_percentage(),
            "is_profile_complete": player.is_profile_complete,
            "missing_fields": player.missing_required_fields(),
            "has_story": story.has_story(),
            "is_generating_story": self.generator.is_generating,
            "story_error": story.generation_error,
            "story_metadata": story.metadata(),
            "has_session": has_session,
            "can_resume_session": has_session and not quiz.is_complete,
        }
