"""Fantasy Quiz story relay: dev launcher."""

import argparse
from pathlib import Path

import uvicorn

from fantasy_quiz.config import load_settings

ROOT = Path(__file__).parent


def main():
    settings = load_settings()
    parser = argparse.ArgumentParser(description="Fantasy Quiz story relay dev launcher")
    parser.add_argument("--host", default=settings.host,
                        help=f"Bind address (default: {settings.host})")
    parser.add_argument("--port", type=int, default=settings.backend_port,
                        help=f"Port (default: {settings.backend_port})")
    parser.add_argument("--no-reload", action="store_true",
                        help="Disable auto-reload on code changes")
    args = parser.parse_args()

    if not settings.has_api_key:
        print("Warning: GEMINI_API_KEY is not set; /api/generate-story will return 500.")

    print(f"Starting story relay on http://localhost:{args.port} ...")
    uvicorn.run("backend.app:app", host=args.host, port=args.port,
                reload=not args.no_reload, app_dir=str(ROOT))


if __name__ == "__main__":
    main()
