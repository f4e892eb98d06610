"""Handlebars prompt rendering for story generation."""

from collections.abc import Callable
from typing import Any

import pybars

from fantasy_quiz.models import Profile

_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class PromptError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return str(compiled(context))
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


def build_profile_context(profile: Profile) -> dict[str, Any]:
    """Template variables for a profile.

    Each trait is available as-is and lower-cased (`<field>_lower`) so that
    templates can use it mid-sentence. Templates use triple-stash to keep
    names like "O'Brien" unescaped.
    """
    ctx: dict[str, Any] = profile.model_dump(exclude={"additional_choices", "custom_answers"})
    for key in (
        "race", "specialty", "lifestyle", "personality_trait",
        "favorite_environment", "magical_affinity", "primary_motivation",
    ):
        ctx[f"{key}_lower"] = ctx[key].lower()
    ctx["has_partner"] = bool(profile.romance_interest and profile.romantic_partner)
    ctx["has_magic"] = profile.magical_affinity != "None"
    ctx["additional"] = [
        {"key": k, "value": v} for k, v in sorted(profile.additional_choices.items())
    ]
    return ctx


STORY_PROMPT = """\
You are a master fantasy storyteller. Create an immersive, personalized fantasy \
story based on the following character profile. The story should be engaging, \
detailed, and end with compelling suspense.

CHARACTER PROFILE:
- Name: {{{name}}}
- Gender: {{{gender}}}
- Race: {{{race}}}
- Specialty/Profession: {{{specialty}}}
- Lifestyle: {{{lifestyle}}}
- Personality Trait: {{{personality_trait}}}
- Favorite Environment: {{{favorite_environment}}}
- Magical Affinity: {{{magical_affinity}}}
- Social Preference: {{{social_preference}}}
- Moral Alignment: {{{moral_alignment}}}
- Primary Motivation: {{{primary_motivation}}}
{{#each additional}}
- {{{key}}}: {{{value}}}
{{/each}}
{{#if has_partner}}
The story should include a romantic interest: a {{{romantic_partner}}} who \
complements {{{name}}}'s journey.
{{else}}
This story focuses on adventure and personal growth without romantic elements.
{{/if}}

STORY REQUIREMENTS:
1. The story must center around {{{name}}} as the protagonist
2. Incorporate ALL character traits naturally into the narrative
3. Set the story in {{{favorite_environment}}} or a related fantasy setting
4. Include elements related to their {{{specialty}}} profession
5. Reflect their {{{personality_trait}}} personality and {{{moral_alignment}}} moral alignment
6. The story should align with their {{{primary_motivation}}} motivation
7. Include magical elements appropriate to their {{{magical_affinity}}} affinity
8. End with a compelling cliffhanger or suspenseful moment

RESPONSE FORMAT:
Return your response as a JSON object with exactly these fields:
{
  "characterIntroduction": "A compelling introduction to the character and their current situation (2-3 sentences)",
  "worldDescription": "Rich description of the fantasy world and immediate environment (3-4 sentences)",
  "plotSetup": "The inciting incident or main conflict that drives the story forward (3-4 sentences)",
  "narrative": "The main story content with detailed descriptions, dialogue, and action (8-12 sentences)",
  "suspensefulEnding": "A cliffhanger or suspenseful conclusion that leaves the reader wanting more (2-3 sentences)"
}

Return only the JSON object, no other text. Make the story immersive, detailed, \
and true to the character's profile.\
"""

CONNECTION_TEST_PROMPT = 'Test connection. Respond with: {"test": "success"}'


def build_story_prompt(profile: Profile) -> str:
    return render_prompt(STORY_PROMPT, build_profile_context(profile))
