"""Core domain models.

Every component of the story pipeline operates on these types. Pydantic is
used for validation and serialisation at every data boundary. Python field
names are snake_case; the wire form (relay body, provider reply, session
record) uses camelCase aliases.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

Gender = Literal["Male", "Female"]
SocialPreference = Literal["Solitary", "Small Groups", "Large Communities", "Leadership Role"]
MoralAlignment = Literal["Lawful", "Neutral", "Chaotic"]
GenerationPhase = Literal["idle", "generating", "succeeded", "failed"]
PageType = Literal["landing", "quiz", "story"]

GENDERS: tuple[str, ...] = ("Male", "Female")
SOCIAL_PREFERENCES: tuple[str, ...] = ("Solitary", "Small Groups", "Large Communities", "Leadership Role")
MORAL_ALIGNMENTS: tuple[str, ...] = ("Lawful", "Neutral", "Chaotic")

NARRATIVE_KEYS: tuple[str, ...] = (
    "characterIntroduction",
    "worldDescription",
    "plotSetup",
    "narrative",
    "suspensefulEnding",
)


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------

class Profile(_WireModel):
    """A complete, typed character profile: the sole input to generation."""

    name: str = Field(min_length=1, max_length=50)
    gender: Gender
    race: str = Field(min_length=1, max_length=30)
    specialty: str = Field(min_length=1, max_length=30)
    lifestyle: str = Field(min_length=1, max_length=30)
    personality_trait: str = Field(min_length=1, max_length=30)
    favorite_environment: str = Field(min_length=1, max_length=30)
    magical_affinity: str = Field(min_length=1, max_length=30)
    social_preference: SocialPreference
    moral_alignment: MoralAlignment
    primary_motivation: str = Field(min_length=1, max_length=30)
    romance_interest: bool
    romantic_partner: str | None = Field(default=None, max_length=30)
    additional_choices: dict[str, str] = Field(default_factory=dict)
    custom_answers: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _partner_requires_romance(self) -> Profile:
        # A partner only exists alongside a romance interest.
        if not self.romance_interest:
            self.romantic_partner = None
        return self

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


REQUIRED_PROFILE_FIELDS: tuple[str, ...] = (
    "name",
    "gender",
    "race",
    "specialty",
    "lifestyle",
    "personality_trait",
    "favorite_environment",
    "magical_affinity",
    "social_preference",
    "moral_alignment",
    "primary_motivation",
    "romance_interest",
)


@dataclass
class ProfileValidation:
    """Outcome of validate_profile(): a typed profile or a list of field errors."""

    profile: Profile | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.profile is not None


def validate_profile(data: dict[str, Any]) -> ProfileValidation:
    """Validate a (possibly partial) profile mapping.

    Accepts snake_case or camelCase keys. Errors are formatted as
    "field: message", one per failing field.
    """
    try:
        return ProfileValidation(profile=Profile.model_validate(data))
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(p) for p in err['loc']) or 'profile'}: {err['msg']}"
            for err in e.errors()
        ]
        return ProfileValidation(errors=errors)


# ---------------------------------------------------------------------------
# Narrative
# ---------------------------------------------------------------------------

class Narrative(_WireModel):
    """The five-section generated story. No other sections are permitted."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="forbid"
    )

    character_introduction: str
    world_description: str
    plot_setup: str
    narrative: str
    suspenseful_ending: str

    @field_validator("*")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("section must not be empty")
        return value

    def sections(self) -> list[str]:
        """Sections in reading order."""
        return [
            self.character_introduction,
            self.world_description,
            self.plot_setup,
            self.narrative,
            self.suspenseful_ending,
        ]

    def to_wire(self) -> dict[str, str]:
        return self.model_dump(by_alias=True)


# ---------------------------------------------------------------------------
# GenerationRequest
# ---------------------------------------------------------------------------

class GenerationRequest(BaseModel):
    """A profile submitted for generation at a point in time.

    Immutable: submitting again creates a new request with a new id.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    profile: Profile
    submitted_at: float


# ---------------------------------------------------------------------------
# Questions
# ---------------------------------------------------------------------------

QuestionType = Literal["multiple-choice", "text-input", "hybrid", "gender-only"]


class QuestionCondition(BaseModel):
    depends_on: str
    value: str


class Question(BaseModel):
    id: str
    text: str
    type: QuestionType
    options: list[str] = Field(default_factory=list)
    allow_custom: bool = False
    required: bool = True
    conditional: QuestionCondition | None = None


MALE_PARTNER_OPTIONS: tuple[str, ...] = (
    "Elven Maiden", "Human Woman", "Dwarven Lady", "Halfling Lass",
    "Mystical Sorceress", "Noble Lady", "Warrior Woman",
)
FEMALE_PARTNER_OPTIONS: tuple[str, ...] = (
    "Elven Lord", "Human Man", "Dwarven Warrior", "Halfling Gentleman",
    "Mystical Wizard", "Noble Knight", "Warrior Hero",
)


def romantic_partner_options(gender: str | None) -> list[str]:
    """Partner options for the given gender. Anything but "Male" gets the female set."""
    if gender == "Male":
        return list(MALE_PARTNER_OPTIONS)
    return list(FEMALE_PARTNER_OPTIONS)


QUESTIONS: tuple[Question, ...] = (
    Question(id="name", text="What is your name, outlander?", type="text-input"),
    Question(id="gender", text="Choose your gender:", type="gender-only", options=list(GENDERS)),
    Question(
        id="race", text="What is your heritage?", type="hybrid",
        options=["Human", "Elf", "Dwarf", "Halfling"], allow_custom=True,
    ),
    Question(
        id="specialty", text="What is your area of expertise?", type="hybrid",
        options=["Warrior", "Scholar", "Craftsman", "Healer", "Merchant", "Artist"],
        allow_custom=True,
    ),
    Question(
        id="lifestyle", text="How do you prefer to live your life?", type="hybrid",
        options=["Peaceful", "Adventurous", "Scholarly", "Mercantile", "Noble",
                 "Nomadic", "Mystical", "Artisan"],
        allow_custom=True,
    ),
    Question(
        id="personalityTrait", text="What trait best describes your character?", type="hybrid",
        options=["Brave", "Wise", "Cunning", "Compassionate", "Ambitious", "Loyal", "Independent"],
        allow_custom=True,
    ),
    Question(
        id="favoriteEnvironment", text="Where do you feel most at home?", type="hybrid",
        options=["Forest", "Mountains", "Coastal", "Desert", "Urban", "Underground"],
        allow_custom=True,
    ),
    Question(
        id="magicalAffinity", text="Do you have any connection to magical forces?", type="hybrid",
        options=["None", "Elemental", "Divine", "Arcane", "Nature", "Shadow"],
        allow_custom=True,
    ),
    Question(
        id="socialPreference", text="How do you prefer to interact with others?",
        type="multiple-choice", options=list(SOCIAL_PREFERENCES),
    ),
    Question(
        id="moralAlignment", text="How do you approach rules and order?",
        type="multiple-choice", options=list(MORAL_ALIGNMENTS),
    ),
    Question(
        id="primaryMotivation", text="What drives you most in life?", type="hybrid",
        options=["Knowledge", "Power", "Love", "Justice", "Freedom", "Wealth", "Family"],
        allow_custom=True,
    ),
    Question(
        id="romanceInterest", text="Are you interested in finding romance in your story?",
        type="multiple-choice", options=["Yes", "No"],
    ),
    Question(
        id="romanticPartner", text="What type of partner appeals to you?",
        type="multiple-choice", required=False,
        conditional=QuestionCondition(depends_on="romanceInterest", value="Yes"),
    ),
)


def validate_answer(question_id: str, answer: str) -> str | None:
    """Check one answer for its question. Returns an error message or None."""
    if question_id == "romanticPartner":
        return None if len(answer) <= 30 else "Partner type must be less than 30 characters"
    closed: dict[str, tuple[str, ...]] = {
        "gender": GENDERS,
        "socialPreference": SOCIAL_PREFERENCES,
        "moralAlignment": MORAL_ALIGNMENTS,
        "romanceInterest": ("Yes", "No"),
    }
    if question_id in closed:
        if answer not in closed[question_id]:
            return f"Must be one of: {', '.join(closed[question_id])}"
        return None
    if not answer.strip():
        return "This field is required"
    limit = 50 if question_id == "name" else 30
    if len(answer) > limit:
        return f"Response must be less than {limit} characters"
    return None
