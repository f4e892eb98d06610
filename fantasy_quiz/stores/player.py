"""Player profile built up from quiz answers.

The profile is held as a partial mapping of snake_case fields.
is_profile_complete is a cache of validate_profile(); every mutation
recomputes it so it can never drift from the fields.
"""

from __future__ import annotations

from typing import Any

from fantasy_quiz.models import (
    GENDERS,
    MORAL_ALIGNMENTS,
    REQUIRED_PROFILE_FIELDS,
    SOCIAL_PREFERENCES,
    Profile,
    validate_profile,
)

from .core import Observable

# question id → profile field, for answers copied verbatim
_TEXT_FIELDS: dict[str, str] = {
    "name": "name",
    "race": "race",
    "specialty": "specialty",
    "lifestyle": "lifestyle",
    "personalityTrait": "personality_trait",
    "favoriteEnvironment": "favorite_environment",
    "magicalAffinity": "magical_affinity",
    "primaryMotivation": "primary_motivation",
}

_ENUM_FIELDS: dict[str, tuple[str, tuple[str, ...]]] = {
    "gender": ("gender", GENDERS),
    "socialPreference": ("social_preference", SOCIAL_PREFERENCES),
    "moralAlignment": ("moral_alignment", MORAL_ALIGNMENTS),
}


def _coerce(answer: str, allowed: tuple[str, ...]) -> str:
    """Canonical spelling of a closed-enum answer; unknown values pass through for validation to flag."""
    needle = answer.strip().lower()
    for option in allowed:
        if option.lower() == needle:
            return option
    return answer


def profile_updates_from_answers(answers: dict[str, str]) -> dict[str, Any]:
    """Map quiz answers onto profile fields.

    Unknown question ids land in additional_choices. A romance answer other
    than "Yes" removes any partner (a None value means "remove").
    """
    updates: dict[str, Any] = {"additional_choices": {}}
    for question_id, answer in answers.items():
        if question_id in _TEXT_FIELDS:
            updates[_TEXT_FIELDS[question_id]] = answer
        elif question_id in _ENUM_FIELDS:
            field, allowed = _ENUM_FIELDS[question_id]
            updates[field] = _coerce(answer, allowed)
        elif question_id == "romanceInterest":
            updates["romance_interest"] = answer == "Yes"
        elif question_id == "romanticPartner":
            if answer:
                updates["romantic_partner"] = answer
        else:
            updates["additional_choices"][question_id] = answer
    if updates.get("romance_interest") is False:
        updates["romantic_partner"] = None
    return updates


class PlayerStore(Observable):
    def __init__(self) -> None:
        super().__init__()
        self.profile: dict[str, Any] = {"additional_choices": {}, "custom_answers": {}}
        self.is_profile_complete = False

    def _commit(self, profile: dict[str, Any]) -> None:
        self.profile = profile
        self.is_profile_complete = validate_profile(profile).is_valid
        self._notify()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def update_profile(self, updates: dict[str, Any]) -> None:
        """Merge updates into the profile. A None value removes the field."""
        profile = dict(self.profile)
        for key, value in updates.items():
            if value is None:
                profile.pop(key, None)
            else:
                profile[key] = value
        self._commit(profile)

    def set_profile_field(self, field: str, value: Any) -> None:
        self.update_profile({field: value})

    def reset_profile(self) -> None:
        self._commit({"additional_choices": {}, "custom_answers": {}})

    def build_profile_from_answers(self, answers: dict[str, str]) -> None:
        self.update_profile(profile_updates_from_answers(answers))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def validate_profile(self) -> tuple[bool, list[str]]:
        result = validate_profile(self.profile)
        return result.is_valid, result.errors

    def required_fields(self) -> tuple[str, ...]:
        return REQUIRED_PROFILE_FIELDS

    def missing_required_fields(self) -> list[str]:
        return [
            f for f in REQUIRED_PROFILE_FIELDS
            if self.profile.get(f) is None or self.profile.get(f) == ""
        ]

    def completion_percentage(self) -> int:
        total = len(REQUIRED_PROFILE_FIELDS)
        return round((total - len(self.missing_required_fields())) / total * 100)

    def profile_for_story_generation(self) -> Profile | None:
        """The typed profile, or None while it is incomplete or invalid."""
        return validate_profile(self.profile).profile

    def state(self) -> dict[str, Any]:
        return {"profile": dict(self.profile), "is_profile_complete": self.is_profile_complete}
