"""Page and operation status for the presentation layer."""

from __future__ import annotations

from fantasy_quiz.models import PageType

from .core import Observable

LOADING_SLOTS = ("story_generation", "profile_validation", "data_sync")
ERROR_SLOTS = ("story_generation", "profile_validation", "data_sync", "network")


class UIStore(Observable):
    def __init__(self) -> None:
        super().__init__()
        self.current_page: PageType = "landing"
        self.error: str | None = None
        self.loading_states: dict[str, bool] = dict.fromkeys(LOADING_SLOTS, False)
        self.error_states: dict[str, str | None] = dict.fromkeys(ERROR_SLOTS, None)

    def set_current_page(self, page: PageType) -> None:
        self.current_page = page
        self._notify()

    def navigate_to_page(self, page: PageType) -> None:
        """Switch pages; no-op (and no notification) for the current page."""
        if self.current_page == page:
            return
        self.set_current_page(page)

    def set_error(self, error: str | None) -> None:
        self.error = error
        self._notify()

    def set_loading(self, slot: str, loading: bool) -> None:
        if slot not in self.loading_states:
            raise KeyError(f"Unknown loading slot: {slot}")
        self.loading_states = {**self.loading_states, slot: loading}
        self._notify()

    def set_operation_error(self, slot: str, error: str | None) -> None:
        if slot not in self.error_states:
            raise KeyError(f"Unknown error slot: {slot}")
        self.error_states = {**self.error_states, slot: error}
        self._notify()

    def clear_all_errors(self) -> None:
        self.error = None
        self.error_states = dict.fromkeys(ERROR_SLOTS, None)
        self._notify()

    def reset_ui_state(self) -> None:
        self.current_page = "landing"
        self.error = None
        self.loading_states = dict.fromkeys(LOADING_SLOTS, False)
        self.error_states = dict.fromkeys(ERROR_SLOTS, None)
        self._notify()

    def has_any_error(self) -> bool:
        return bool(self.error) or any(e is not None for e in self.error_states.values())

    def has_any_loading(self) -> bool:
        return any(self.loading_states.values())

    def active_errors(self) -> list[str]:
        errors = [self.error] if self.error else []
        errors.extend(e for e in self.error_states.values() if e)
        return errors

    def state(self) -> dict[str, str]:
        return {"current_page": self.current_page}
