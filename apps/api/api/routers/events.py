"""Server-Sent Events stream of newly stored posts."""

import logging
from typing import AsyncIterator

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from api.deps import get_app_settings, get_store
from postdrop.config.settings import Settings
from postdrop.services.live_feed import live_feed
from postdrop.storage.post_store import PostStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["events"])


@router.get("/events")
async def stream_events(
    request: Request,
    store: PostStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
) -> StreamingResponse:
    """Recent posts on connect, then every new post as it is stored."""
    return StreamingResponse(
        _event_stream(request, store, settings),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


async def _event_stream(request: Request, store: PostStore, settings: Settings) -> AsyncIterator[str]:
    feed = live_feed(
        store,
        request.is_disconnected,
        recent=settings.live_recent_count,
        keepalive=settings.live_keepalive_seconds,
        queue_size=settings.live_queue_size,
    )
    try:
        async for post in feed:
            if post is None:
                yield ": keepalive\n\n"
            else:
                yield f"data: {post.model_dump_json(by_alias=True)}\n\n"
    except Exception:
        logger.exception("Error in SSE stream")
    finally:
        await feed.aclose()
