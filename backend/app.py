from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI

from backend.rate_limit import RateLimiter
from backend.routes import router
from fantasy_quiz.clock import Clock
from fantasy_quiz.config import Settings, load_settings
from fantasy_quiz.llm import LLM

load_dotenv(Path(__file__).parent.parent / ".env")


def create_app(
    settings: Settings | None = None,
    llm: LLM | None = None,
    rate_limiter: RateLimiter | None = None,
    clock: Clock | None = None,
) -> FastAPI:
    """Build the relay app. Tests inject settings, the LLM, the limiter and a clock."""
    app = FastAPI(title="Fantasy Quiz Story Relay")
    app.state.settings = settings or load_settings()
    app.state.llm = llm
    app.state.clock = clock
    app.state.rate_limiter = rate_limiter or RateLimiter(clock=clock)
    app.include_router(router, prefix="/api")
    return app


# Default app instance for uvicorn (settings from env / .env)
app = create_app()
