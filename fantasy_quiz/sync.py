"""Cross-store synchronisation.

Couplings (one-way):
  quiz answers  → player profile   (whenever answers are non-empty)
  quiz complete → UI page "story"  (only while the page is "quiz")
  quiz reset    → story reset      (explicit call only)

attach() subscribes to the quiz and UI stores so the first two run on every
change; the individual sync_* methods can also be called directly.
"""

from __future__ import annotations

from collections.abc import Callable

from fantasy_quiz.stores import AppStores


class StoreSync:
    def __init__(self, stores: AppStores) -> None:
        self._stores = stores
        self._unsubscribers: list[Callable[[], None]] = []

    def sync_quiz_to_player(self) -> None:
        answers = self._stores.quiz.answers
        if answers:
            self._stores.player.build_profile_from_answers(answers)

    def sync_quiz_to_ui(self) -> None:
        if self._stores.quiz.is_complete and self._stores.ui.current_page == "quiz":
            self._stores.ui.navigate_to_page("story")

    def sync_quiz_reset_to_story(self) -> None:
        self._stores.story.reset()

    def sync_all(self) -> None:
        self.sync_quiz_to_player()
        self.sync_quiz_to_ui()

    # ------------------------------------------------------------------
    # Reactive wiring
    # ------------------------------------------------------------------

    def attach(self) -> None:
        if self._unsubscribers:
            return
        self._unsubscribers = [
            self._stores.quiz.subscribe(self.sync_all),
            self._stores.ui.subscribe(self.sync_quiz_to_ui),
        ]

    def detach(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
