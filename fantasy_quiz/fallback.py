"""Backup story synthesis.

fallback_story() builds a Narrative straight from the profile by filling
five fixed templates. No network, no randomness, no clock: the same
profile always yields the same text. It is never applied automatically;
callers choose it (AppState.use_backup_story) when generation keeps failing.
"""

from fantasy_quiz.models import Narrative, Profile
from fantasy_quiz.prompts import build_profile_context, render_prompt

_MAGIC_SENTENCE = (
    "{{#if has_magic}}"
    "The {{{magical_affinity_lower}}} energies that flow through {{{name}}} seem to "
    "resonate with this place."
    "{{else}}"
    "Though {{{name}}} has no magical abilities, there's something about this place "
    "that feels significant."
    "{{/if}}"
)

FALLBACK_TEMPLATES: dict[str, str] = {
    "character_introduction": (
        "{{{name}}} stands at the threshold of adventure, a {{{personality_trait_lower}}} "
        "{{{race}}} {{{specialty_lower}}} whose journey is about to begin in ways they "
        "never imagined."
    ),
    "world_description": (
        "The {{{favorite_environment_lower}}} stretches out before {{{name}}}, alive with "
        "ancient mysteries and hidden wonders. Every shadow holds a secret, every breeze "
        "carries whispers of forgotten tales. " + _MAGIC_SENTENCE
    ),
    "plot_setup": (
        "As {{{name}}} ventures deeper into this mystical realm, strange occurrences begin "
        "to unfold around them. The very fabric of reality seems to shift and bend, "
        "responding to their presence in ways that both intrigue and unsettle the "
        "experienced {{{specialty_lower}}}."
    ),
    "narrative": (
        "{{{name}}} moves with the confidence of someone who has mastered their craft as a "
        "{{{specialty_lower}}}, yet the {{{favorite_environment_lower}}} presents challenges "
        "unlike any they've faced before. Their {{{personality_trait_lower}}} nature serves "
        "them well as they navigate through increasingly strange phenomena. The air itself "
        "seems to thicken with possibility, and {{{name}}} can't shake the feeling that "
        "they're being watched by unseen eyes. Every step forward reveals new wonders and "
        "new dangers, testing not just their skills but their very understanding of the "
        "world around them."
    ),
    "suspenseful_ending": (
        "Just as {{{name}}} begins to feel they understand the patterns of this strange "
        "place, a sound echoes through the {{{favorite_environment_lower}}} that shouldn't "
        "exist - a sound that makes their blood run cold and their heart race with "
        "anticipation. Something ancient has awakened, and it knows {{{name}}} is here."
    ),
}


def fallback_story(profile: Profile) -> Narrative:
    ctx = build_profile_context(profile)
    return Narrative(**{
        section: render_prompt(template, ctx)
        for section, template in FALLBACK_TEMPLATES.items()
    })
