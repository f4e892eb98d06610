"""Story generation as seen by the presentation layer.

StoryGenerator binds StoryService calls to a StoryStore and owns the retry
policy:

  generate_story(profile)
    store → generating (new request)
    service.generate_story(profile)
      ok   → store → succeeded, on_success(story)
      fail → store → failed
             retryable and auto-retry budget left → schedule the same request
             otherwise → on_error(message), budget reset, error re-raised

Results for a request the store no longer waits on (a newer call replaced
it, or a backup story was applied) are dropped without callbacks. Scheduled
retries do nothing after close() or once their request is superseded.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from fantasy_quiz.clock import AsyncioScheduler, Cancellable, Scheduler
from fantasy_quiz.errors import ClassifiedError, ErrorCode, StoryServiceError
from fantasy_quiz.models import GenerationRequest, Narrative, Profile
from fantasy_quiz.stores import StoryStore
from fantasy_quiz.story_service import StoryService

logger = logging.getLogger(__name__)

UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred while generating your story"


class StoryGenerator:
    """Caller-side generation with optional automatic retry.

    Args:
        store:            The StoryStore to drive.
        service:          The StoryService to call.
        auto_retry:       Reschedule retryable failures automatically.
        max_auto_retries: Rescheduled attempts before the failure is surfaced.
        retry_delay:      Seconds between a failure and its rescheduled attempt.
        scheduler:        Delayed-call scheduler (AsyncioScheduler by default).
        on_success:       Called with the story after a successful generation.
        on_error:         Called with the message of a surfaced failure.
    """

    def __init__(
        self,
        store: StoryStore,
        service: StoryService,
        *,
        auto_retry: bool = False,
        max_auto_retries: int = 2,
        retry_delay: float = 2.0,
        scheduler: Scheduler | None = None,
        on_success: Callable[[Narrative], None] | None = None,
        on_error: Callable[[str], None] | None = None,
    ) -> None:
        self._store = store
        self._service = service
        self._auto_retry = auto_retry
        self._max_auto_retries = max_auto_retries
        self._retry_delay = retry_delay
        self._scheduler = scheduler or AsyncioScheduler()
        self._on_success = on_success
        self._on_error = on_error

        self.auto_retry_count = 0
        self.is_auto_retrying = False
        self._pending: Cancellable | None = None
        self._alive = True

    # ------------------------------------------------------------------
    # Observed state
    # ------------------------------------------------------------------

    @property
    def is_generating(self) -> bool:
        return self._store.is_generating or self.is_auto_retrying

    @property
    def can_retry(self) -> bool:
        return (
            not self._store.is_generating
            and not self.is_auto_retrying
            and self._store.last_request is not None
        )

    @property
    def generation_error(self) -> str | None:
        return self._store.generation_error

    @property
    def generated_story(self) -> Narrative | None:
        return self._store.generated_story

    @property
    def has_story(self) -> bool:
        return self._store.has_story()

    @property
    def is_story_fresh(self) -> bool:
        return self._store.is_story_fresh()

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def generate_story(self, profile: Profile) -> Narrative | None:
        """Run one generation.

        Returns the story, or None when the attempt was superseded or a
        retry was scheduled. Raises the ClassifiedError once it is surfaced.
        Each call starts with the full auto-retry budget.
        """
        self.auto_retry_count = 0
        return await self._start(profile)

    async def retry_generation(self) -> Narrative | None:
        """Re-submit the last request with a fresh auto-retry budget."""
        last = self._store.last_request
        if last is None:
            raise LookupError("No previous generation request to retry")
        return await self.generate_story(last.profile)

    def clear_error(self) -> None:
        self._store.clear_error()
        self._cancel_pending()
        self.auto_retry_count = 0

    def reset_story(self) -> None:
        self._store.reset()
        self._cancel_pending()
        self.auto_retry_count = 0

    def cancel_retry(self) -> None:
        """Drop a scheduled auto-retry, if any."""
        self._cancel_pending()

    def close(self) -> None:
        """Tear down: pending retries become no-ops."""
        self._alive = False
        self._cancel_pending()
        self.auto_retry_count = 0

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _start(self, profile: Profile) -> Narrative | None:
        self._cancel_pending()
        request = self._store.start_generation(profile)
        return await self._run(request)

    async def _run(self, request: GenerationRequest) -> Narrative | None:
        try:
            story = await self._service.generate_story(request.profile)
        except Exception as e:
            error = e if isinstance(e, ClassifiedError) else StoryServiceError(
                UNEXPECTED_ERROR_MESSAGE, ErrorCode.CLIENT, False
            )
            if not self._store.fail_generation(request, error.message):
                return None
            if self._should_auto_retry(error):
                self._schedule_retry(request)
                return None
            self.is_auto_retrying = False
            self.auto_retry_count = 0
            if self._on_error:
                self._on_error(error.message)
            if error is e:
                raise
            raise error from e

        if not self._store.complete_generation(request, story):
            return None
        self.is_auto_retrying = False
        self.auto_retry_count = 0
        if self._on_success:
            self._on_success(story)
        return story

    def _should_auto_retry(self, error: ClassifiedError) -> bool:
        return (
            self._auto_retry
            and self._alive
            and error.retryable
            and self.auto_retry_count < self._max_auto_retries
        )

    def _schedule_retry(self, request: GenerationRequest) -> None:
        self.is_auto_retrying = True
        self.auto_retry_count += 1
        logger.info(
            "Retryable generation failure, attempt %d/%d in %.1fs",
            self.auto_retry_count, self._max_auto_retries, self._retry_delay,
        )

        async def fire() -> None:
            self._pending = None
            # The store has moved on if another request started or a story was applied.
            if (
                not self._alive
                or self._store.last_request is not request
                or self._store.phase != "failed"
            ):
                self.is_auto_retrying = False
                return
            try:
                await self._start(request.profile)
            except ClassifiedError as e:
                # Already surfaced through the store and on_error.
                logger.debug("Auto-retry ended with %s", e.code.name)

        self._pending = self._scheduler.call_later(self._retry_delay, fire)

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
            self.is_auto_retrying = False
