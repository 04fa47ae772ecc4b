"""Live feed of newly stored posts.

A consumer first receives the most recent posts, then every post added to
the store until it disconnects. Posts are handed over through a bounded
queue; a consumer that falls behind loses posts rather than slowing ``add``.
"""

import asyncio
import logging
from typing import AsyncIterator, Awaitable, Callable

from postdrop.models.post import Post
from postdrop.storage.post_store import PostStore

logger = logging.getLogger(__name__)


async def live_feed(
    store: PostStore,
    is_disconnected: Callable[[], Awaitable[bool]],
    recent: int = 20,
    keepalive: float = 15.0,
    queue_size: int = 100,
) -> AsyncIterator[Post | None]:
    """Yield recent posts, then live ones. ``None`` is a keepalive tick.

    The subscription is registered before the recent posts are read, so a
    post added in between is delivered once, not lost.
    """
    queue: asyncio.Queue[Post] = asyncio.Queue(maxsize=queue_size)

    def on_post(post: Post) -> None:
        try:
            queue.put_nowait(post)
        except asyncio.QueueFull:
            logger.warning("Live feed queue full, dropping post %s", post.id)

    with store.subscribe(on_post):
        sent: set[str] = set()
        for post in await store.get_recent(recent):
            sent.add(post.id)
            yield post

        while not await is_disconnected():
            try:
                post = await asyncio.wait_for(queue.get(), timeout=keepalive)
            except asyncio.TimeoutError:
                yield None
                continue
            if post.id in sent:
                continue
            yield post

    logger.debug("Live feed consumer disconnected")
