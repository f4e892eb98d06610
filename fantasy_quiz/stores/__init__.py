"""Application state stores.

Four single-owner stores, each mutated only through its own methods:

  QuizStore    answers, current question, completion, progress
  PlayerStore  partial profile + cached completeness
  UIStore      current page, per-operation loading/error slots
  StoryStore   generation phase, narrative, last request, timestamps

AppStores bundles one of each for a session. Stores are constructed per
session and injected; there are no module-level singletons.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from fantasy_quiz.clock import Clock

from .core import Observable  # noqa: F401
from .player import PlayerStore, profile_updates_from_answers  # noqa: F401
from .quiz import QuizStore
from .story import DEFAULT_FRESHNESS_MINUTES, StoryStore  # noqa: F401
from .ui import UIStore


@dataclass
class AppStores:
    quiz: QuizStore = field(default_factory=QuizStore)
    player: PlayerStore = field(default_factory=PlayerStore)
    ui: UIStore = field(default_factory=UIStore)
    story: StoryStore = field(default_factory=StoryStore)

    @classmethod
    def create(cls, clock: Clock | None = None) -> AppStores:
        return cls(story=StoryStore(clock))

    def reset_all(self) -> None:
        self.quiz.reset_quiz()
        self.player.reset_profile()
        self.ui.reset_ui_state()
        self.story.reset()
