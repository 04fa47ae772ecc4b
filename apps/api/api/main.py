"""FastAPI application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from api.deps import close_deps, init_deps
from api.routers import admin, content, events, health, posts
from postdrop import __version__
from postdrop.config.settings import Settings, get_settings
from postdrop.errors import PostdropError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_deps(app)
    yield
    await close_deps(app)


async def postdrop_error_handler(request: Request, exc: PostdropError) -> JSONResponse:
    logger.info("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.code, "message": exc.message},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "internal_error", "message": "Failed to process request"},
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the API application around the given (or environment) settings."""
    app = FastAPI(
        title="postdrop API",
        description="Content ingestion, bounded storage and live fan-out",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings or get_settings()

    app.add_exception_handler(PostdropError, postdrop_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(health.router)
    app.include_router(health.router, prefix="/api")
    app.include_router(posts.router, prefix="/api")
    app.include_router(content.router, prefix="/api")
    app.include_router(events.router, prefix="/api")
    app.include_router(admin.router, prefix="/api")
    return app


app = create_app()
