from __future__ import annotations

import logging

from fastapi import APIRouter, FastAPI
from fastapi.responses import PlainTextResponse

from framekit.core.logging import RequestIdMiddleware, setup_logging
from framekit.dispatcher import FramesEndpoint

logger = logging.getLogger(__name__)


def add_frames_route(
    router: APIRouter | FastAPI,
    path: str,
    endpoint: FramesEndpoint,
    *,
    name: str | None = None,
) -> None:
    """Mount a frames endpoint for GET (initial render) and POST (button clicks)."""
    router.add_api_route(
        path,
        endpoint,
        methods=["GET", "POST"],
        name=name or endpoint.__name__,
        include_in_schema=False,
    )
    logger.debug("Frames route mounted at %s", path)


def create_app(routes: dict[str, FramesEndpoint], *, title: str = "Frames") -> FastAPI:
    """Build a FastAPI app serving ``routes`` with request id logging."""
    setup_logging()

    app = FastAPI(title=title)
    app.add_middleware(RequestIdMiddleware)

    @app.get("/health", response_class=PlainTextResponse)
    async def health() -> str:
        return "ok"

    frames_router = APIRouter()
    for path, endpoint in routes.items():
        add_frames_route(frames_router, path, endpoint, name=f"frames:{path}")
    app.include_router(frames_router)
    return app


__all__ = ["add_frames_route", "create_app"]
