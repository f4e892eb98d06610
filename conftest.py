"""Shared fixtures: profiles, stub LLM, fake clock, manual scheduler."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable

import pytest

from fantasy_quiz.models import Narrative, Profile
from fantasy_quiz.stores import AppStores

ARIA_ANSWERS = {
    "name": "Aria",
    "gender": "Female",
    "race": "Elf",
    "specialty": "Scholar",
    "lifestyle": "Mystical",
    "personalityTrait": "Wise",
    "favoriteEnvironment": "Forest",
    "magicalAffinity": "Nature",
    "socialPreference": "Small Groups",
    "moralAlignment": "Neutral",
    "primaryMotivation": "Knowledge",
    "romanceInterest": "No",
}

STORY_SECTIONS = {
    "characterIntroduction": "Aria, a wise elf scholar, studies the old ways.",
    "worldDescription": "The Silverwood is ancient and full of whispering trees.",
    "plotSetup": "A rift opens near the moonwell.",
    "narrative": "Aria follows the glow of the rift deeper into the forest.",
    "suspensefulEnding": "Something steps out of the light and speaks her name.",
}


def story_json(**overrides: str) -> str:
    return json.dumps({**STORY_SECTIONS, **overrides})


class StubLLM:
    """Replays scripted replies. An Exception entry is raised instead of returned.

    The last entry repeats once the script runs out.
    """

    def __init__(self, *replies: str | BaseException) -> None:
        self._replies = list(replies) or [story_json()]
        self.calls: list[tuple[str, str]] = []

    async def __call__(self, stage: str, prompt: str) -> str:
        self.calls.append((stage, prompt))
        index = min(len(self.calls), len(self._replies)) - 1
        reply = self._replies[index]
        if isinstance(reply, BaseException):
            raise reply
        return reply


class FakeClock:
    """Manually advanced clock. sleep() advances time and yields once."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.time = start
        self.sleeps: list[float] = []

    def now(self) -> float:
        return self.time

    def advance(self, seconds: float) -> None:
        self.time += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.time += seconds
        await asyncio.sleep(0)


class _Scheduled:
    def __init__(self, delay: float, callback: Callable[[], Awaitable[None]]) -> None:
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Records delayed calls; tests fire them explicitly with run_next()."""

    def __init__(self) -> None:
        self.scheduled: list[_Scheduled] = []

    def call_later(self, delay: float, callback: Callable[[], Awaitable[None]]) -> _Scheduled:
        handle = _Scheduled(delay, callback)
        self.scheduled.append(handle)
        return handle

    @property
    def pending(self) -> list[_Scheduled]:
        return [h for h in self.scheduled if not h.cancelled]

    async def run_next(self) -> None:
        handle = self.pending[0]
        self.scheduled.remove(handle)
        await handle.callback()

    async def run_all(self) -> int:
        """Fire pending calls (including ones they schedule) until none remain."""
        fired = 0
        while self.pending:
            await self.run_next()
            fired += 1
        return fired


@pytest.fixture
def aria() -> Profile:
    return Profile(
        name="Aria",
        gender="Female",
        race="Elf",
        specialty="Scholar",
        lifestyle="Mystical",
        personality_trait="Wise",
        favorite_environment="Forest",
        magical_affinity="Nature",
        social_preference="Small Groups",
        moral_alignment="Neutral",
        primary_motivation="Knowledge",
        romance_interest=False,
    )


@pytest.fixture
def story() -> Narrative:
    return Narrative.model_validate(STORY_SECTIONS)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def stores(clock: FakeClock) -> AppStores:
    return AppStores.create(clock)
