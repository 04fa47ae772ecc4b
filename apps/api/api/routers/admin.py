"""Admin and storage statistics endpoints."""

import logging

from fastapi import APIRouter, Depends

from api.deps import get_store
from postdrop.services.stats_service import StatsService
from postdrop.storage.post_store import PostStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["admin"])


@router.post("/admin/clear")
async def clear_posts(store: PostStore = Depends(get_store)) -> dict:
    """Delete every stored post."""
    cleared = await store.clear()
    logger.warning("Admin clear removed %d posts", cleared)
    return {"success": True, "message": "All posts cleared", "cleared": cleared}


@router.get("/db-stats")
async def db_stats(store: PostStore = Depends(get_store)) -> dict:
    """Estimated storage use of the post store."""
    return await StatsService(store).get_storage_stats()
