"""Story relay endpoint: generate a narrative with the server-held API key.

Status mapping for provider failures:
  CONFIGURATION -> 500, VALIDATION -> 400, other retryable -> 503, else 500
Each error body is {success: false, error, retryable}.
"""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError

from fantasy_quiz.config import build_narrative_client
from fantasy_quiz.errors import ClassifiedError, ErrorCode
from fantasy_quiz.models import Profile

from backend.rate_limit import client_id

from .models import GenerateStoryBody

logger = logging.getLogger(__name__)

router = APIRouter()

UNEXPECTED_ERROR = "An unexpected error occurred while generating your story"


def _error(status: int, message: str, retryable: bool | None = None) -> JSONResponse:
    body: dict = {"success": False, "error": message}
    if retryable is not None:
        body["retryable"] = retryable
    return JSONResponse(body, status_code=status)


def _status_for(error: ClassifiedError) -> int:
    if error.code == ErrorCode.CONFIGURATION:
        return 500
    if error.code == ErrorCode.VALIDATION:
        return 400
    return 503 if error.retryable else 500


@router.post("/generate-story")
async def generate_story(request: Request):
    """Validate the profile, call the provider (with retries) and relay the narrative."""
    state = request.app.state
    if not state.rate_limiter.check(client_id(request)):
        return _error(429, "Rate limit exceeded. Please try again later.", retryable=True)

    try:
        body = GenerateStoryBody.model_validate(await request.json())
        profile = Profile.model_validate(body.player_profile)
    except (ValueError, ValidationError):
        return _error(400, "Invalid player profile data")

    if state.llm is None and not state.settings.has_api_key:
        logger.error("GEMINI_API_KEY is not configured")
        return _error(500, "Story generation service is not configured")

    client = build_narrative_client(
        state.settings, state.llm, for_relay=True, clock=state.clock
    )
    try:
        story = await client.generate(profile)
    except ClassifiedError as e:
        logger.warning("Story generation failed: %s (%s)", e.message, e.code.name)
        return _error(_status_for(e), e.message, retryable=e.retryable)
    except Exception:
        logger.exception("Unexpected story generation error")
        return _error(500, UNEXPECTED_ERROR)

    return {"success": True, "data": story.to_wire()}


@router.head("/generate-story")
async def probe_generate_story():
    """Reachability probe."""
    return Response(status_code=200)


@router.get("/generate-story")
async def generate_story_get():
    return _error(405, "Method not allowed")
