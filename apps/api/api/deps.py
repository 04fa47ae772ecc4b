"""Shared dependencies for API endpoints.

The post store is created per application in the lifespan hook and kept on
``app.state``; endpoints receive it through ``Depends(get_store)``.
"""

import logging

from fastapi import FastAPI, Request

from postdrop.config.settings import Settings
from postdrop.storage.kv import create_kv_store
from postdrop.storage.post_store import PostStore

logger = logging.getLogger(__name__)


async def init_deps(app: FastAPI) -> None:
    """Initialize shared dependencies (called on app startup)."""
    settings: Settings = app.state.settings
    kv = create_kv_store(settings.storage_backend, settings.redis_url)
    app.state.store = PostStore(kv, max_posts=settings.max_posts, max_page_size=settings.max_page_size)
    logger.info(
        "Post store ready (backend=%s, max_posts=%d)",
        settings.storage_backend,
        settings.max_posts,
    )


async def close_deps(app: FastAPI) -> None:
    """Close shared dependencies (called on app shutdown)."""
    store: PostStore | None = getattr(app.state, "store", None)
    if store:
        await store.close()
        app.state.store = None


def get_store(request: Request) -> PostStore:
    """Get the application's PostStore."""
    store = getattr(request.app.state, "store", None)
    assert store is not None, "PostStore not initialized, call init_deps() first"
    return store


def get_app_settings(request: Request) -> Settings:
    """Get the settings the application was created with."""
    return request.app.state.settings
