"""Pydantic request models for API endpoints."""

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class GenerateStoryBody(BaseModel):
    """The profile is validated separately so a bad profile maps to a 400 body."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    player_profile: dict[str, Any]
