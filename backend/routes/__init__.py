"""FastAPI API endpoints under /api.

Endpoint groups: health, generate-story (relay to the narrative provider).
"""

from fastapi import APIRouter

from .health import router as health_router
from .story import router as story_router

router = APIRouter()
router.include_router(health_router)
router.include_router(story_router)
