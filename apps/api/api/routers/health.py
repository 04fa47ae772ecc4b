"""Health check endpoints."""

from fastapi import APIRouter, Depends

from api.deps import get_store
from postdrop.storage.post_store import PostStore

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(store: PostStore = Depends(get_store)) -> dict:
    """Health check, including a round trip to the post store."""
    return {"status": "ok", "posts": await store.count()}
