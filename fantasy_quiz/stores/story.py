"""Generation state: phase, narrative, last request, timestamps.

State machine:

    idle ──start──▶ generating ──complete──▶ succeeded
                        │                        │
                        └──fail──▶ failed        │
    failed ──start──▶ generating                 │
    succeeded ──start──▶ generating ◀────────────┘
    any ──reset──▶ idle

Only one request is active. start_generation() overwrites the previous
one; complete/fail calls carrying any other request are stale and dropped.
"""

from __future__ import annotations

import logging
from typing import Any

from fantasy_quiz.clock import Clock, SystemClock
from fantasy_quiz.models import GenerationPhase, GenerationRequest, Narrative, Profile

from .core import Observable

logger = logging.getLogger(__name__)

DEFAULT_FRESHNESS_MINUTES = 30


class StoryStore(Observable):
    def __init__(self, clock: Clock | None = None) -> None:
        super().__init__()
        self._clock = clock or SystemClock()
        self.phase: GenerationPhase = "idle"
        self.generated_story: Narrative | None = None
        self.generation_error: str | None = None
        self.last_request: GenerationRequest | None = None
        self.generation_timestamp: float | None = None
        self._active_request_id: str | None = None

    @property
    def is_generating(self) -> bool:
        return self.phase == "generating"

    def is_active(self, request: GenerationRequest) -> bool:
        """True while `request` is the one the store is waiting on."""
        return request.id == self._active_request_id

    # ------------------------------------------------------------------
    # Generation workflow
    # ------------------------------------------------------------------

    def start_generation(self, profile: Profile) -> GenerationRequest:
        now = self._clock.now()
        request = GenerationRequest(profile=profile, submitted_at=now)
        self.phase = "generating"
        self.generation_error = None
        self.last_request = request
        self.generation_timestamp = now
        self._active_request_id = request.id
        self._notify()
        return request

    def complete_generation(self, request: GenerationRequest, story: Narrative) -> bool:
        """Record a result. Returns False (and changes nothing) for a stale request."""
        if not self.is_active(request):
            logger.debug("Discarding result of superseded request %s", request.id)
            return False
        self.phase = "succeeded"
        self.generated_story = story
        self.generation_error = None
        self.generation_timestamp = self._clock.now()
        self._active_request_id = None
        self._notify()
        return True

    def fail_generation(self, request: GenerationRequest, error: str) -> bool:
        """Record a failure. Returns False (and changes nothing) for a stale request."""
        if not self.is_active(request):
            logger.debug("Discarding failure of superseded request %s", request.id)
            return False
        self.phase = "failed"
        self.generated_story = None
        self.generation_error = error
        self._active_request_id = None
        self._notify()
        return True

    def apply_fallback(self, story: Narrative) -> None:
        """Install a locally built story. Any in-flight request becomes stale."""
        self.phase = "succeeded"
        self.generated_story = story
        self.generation_error = None
        self.generation_timestamp = self._clock.now()
        self._active_request_id = None
        self._notify()

    def clear_error(self) -> None:
        self.generation_error = None
        self._notify()

    def reset(self) -> None:
        self.phase = "idle"
        self.generated_story = None
        self.generation_error = None
        self.last_request = None
        self.generation_timestamp = None
        self._active_request_id = None
        self._notify()

    # ------------------------------------------------------------------
    # Restore setters (session load)
    # ------------------------------------------------------------------

    def set_generated_story(self, story: Narrative | None) -> None:
        if self.is_generating:
            raise RuntimeError("Cannot replace the story while a generation is in flight")
        self.generated_story = story
        self.phase = "succeeded" if story is not None else "idle"
        self._notify()

    def set_last_request(self, profile: Profile | None, submitted_at: float | None = None) -> None:
        if profile is None:
            self.last_request = None
        else:
            self.last_request = GenerationRequest(
                profile=profile,
                submitted_at=self._clock.now() if submitted_at is None else submitted_at,
            )
        self._notify()

    def set_generation_timestamp(self, timestamp: float | None) -> None:
        self.generation_timestamp = timestamp
        self._notify()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def has_story(self) -> bool:
        return self.generated_story is not None

    def is_story_fresh(self, max_age_minutes: float = DEFAULT_FRESHNESS_MINUTES) -> bool:
        if self.generation_timestamp is None:
            return False
        age_minutes = (self._clock.now() - self.generation_timestamp) / 60
        return age_minutes <= max_age_minutes

    def can_regenerate(self) -> bool:
        return not self.is_generating and self.last_request is not None

    def formatted_story(self) -> str | None:
        if self.generated_story is None:
            return None
        return "\n\n".join(self.generated_story.sections())

    def metadata(self) -> dict[str, Any]:
        text = self.formatted_story()
        return {
            "has_story": text is not None,
            "generated_at": self.generation_timestamp,
            "character_name": self.last_request.profile.name if self.last_request else None,
            "word_count": len(text.split()) if text else 0,
        }

    def state(self) -> dict[str, Any]:
        return {
            "generated_story": self.generated_story.to_wire() if self.generated_story else None,
            "last_generation_request": (
                self.last_request.profile.to_wire() if self.last_request else None
            ),
            "generation_timestamp": self.generation_timestamp,
        }
