"""Capacity-bounded post store with subscriber fan-out.

Layout in the key-value store:
  post_ids   → JSON array of post ids, newest first, at most ``max_posts`` long
  post:{id}  → full post JSON

Concurrency contract: ``add``, ``delete_by_id`` and ``clear`` are
read-modify-write sequences on the index. Each ``PostStore`` instance runs
them one at a time behind an ``asyncio.Lock``. Writers in other processes
sharing the same Redis are not serialized, so across processes the index is
last-write-wins: a concurrent ``add`` can drop another's id from the index
while its item still exists under ``post:{id}``.
"""

import asyncio
import json
import logging
import math
from threading import Lock
from typing import Callable
from uuid import uuid4

from postdrop.errors import NotFound
from postdrop.models.content import content_kind
from postdrop.models.post import Pagination, Post, PostPage
from postdrop.storage.kv import KeyValueStore

logger = logging.getLogger(__name__)

Subscriber = Callable[[Post], None]


class Subscription:
    """Handle returned by ``PostStore.subscribe``.

    Closing it deregisters the callback. Closing twice is harmless, and the
    handle can be used as a context manager.
    """

    def __init__(self, store: "PostStore", token: str) -> None:
        self._store = store
        self._token = token
        self.closed = False

    def close(self) -> None:
        if not self.closed:
            self._store._unsubscribe(self._token)
            self.closed = True

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class PostStore:
    """Post storage over a key-value backend.

    Newest posts are at the front of the index. When the index grows past
    ``max_posts`` the overflow (the oldest ids) is dropped together with
    the stored items during the same ``add``.
    """

    INDEX_KEY = "post_ids"
    KEY_PREFIX = "post:"
    MAX_PAGE_SIZE = 50

    def __init__(self, kv: KeyValueStore, max_posts: int = 500, max_page_size: int = MAX_PAGE_SIZE) -> None:
        self._kv = kv
        self.max_posts = max_posts
        self.max_page_size = max_page_size
        self._write_lock = asyncio.Lock()
        self._subscribers: dict[str, Subscriber] = {}
        self._subscribers_lock = Lock()

    async def close(self) -> None:
        """Close the underlying key-value connection."""
        await self._kv.close()

    # ──────────────────────────────────────────────
    # Writes
    # ──────────────────────────────────────────────

    async def add(self, post: Post) -> Post:
        """Store a post, trim the index to capacity and notify subscribers."""
        if not post.id:
            post.id = str(uuid4())

        async with self._write_lock:
            await self._store_post(post)

            post_ids = [post.id, *await self._load_index()]
            if len(post_ids) > self.max_posts:
                evicted = post_ids[self.max_posts:]
                await self._kv.delete(*(self._key(pid) for pid in evicted))
                post_ids = post_ids[: self.max_posts]
                logger.info("Evicted %d old posts (cap=%d)", len(evicted), self.max_posts)

            await self._save_index(post_ids)

        logger.info("Stored post %s (%s)", post.id, content_kind(post.content))
        self._publish(post)
        return post

    async def delete_by_id(self, post_id: str) -> None:
        """Delete a post and remove its id from the index.

        An id still listed in the index after its item went missing is
        dropped from the index before ``NotFound`` is raised.
        """
        async with self._write_lock:
            post_ids = await self._load_index()
            if post_id in post_ids:
                await self._save_index([pid for pid in post_ids if pid != post_id])
            if not await self._kv.delete(self._key(post_id)):
                if post_id in post_ids:
                    logger.info("Dropped orphaned index entry %s", post_id)
                raise NotFound(post_id)
        logger.info("Deleted post %s", post_id)

    async def clear(self) -> int:
        """Delete every indexed post and the index itself. Returns the post count."""
        async with self._write_lock:
            post_ids = await self._load_index()
            if post_ids:
                await self._kv.delete(*(self._key(pid) for pid in post_ids))
            await self._kv.delete(self.INDEX_KEY)
        logger.info("Cleared %d posts", len(post_ids))
        return len(post_ids)

    # ──────────────────────────────────────────────
    # Reads
    # ──────────────────────────────────────────────

    async def get_by_id(self, post_id: str) -> Post:
        """Get a post by ID. Raises ``NotFound`` for unknown ids."""
        post = await self._load_post(post_id)
        if post is None:
            raise NotFound(post_id)
        return post

    async def get_all(self) -> list[Post]:
        """All posts in index order (newest first)."""
        return await self._load_posts(await self._load_index())

    async def get_recent(self, limit: int) -> list[Post]:
        """The ``limit`` newest posts."""
        post_ids = await self._load_index()
        return await self._load_posts(post_ids[: max(0, limit)])

    async def get_page(self, page: int = 1, page_size: int = 20) -> PostPage:
        """One page of posts. ``page`` is 1-based; ``page_size`` is clamped to 1..max_page_size."""
        page_size = min(max(1, page_size), self.max_page_size)
        page = max(1, page)

        post_ids = await self._load_index()
        total = len(post_ids)
        start = (page - 1) * page_size
        end = min(start + page_size, total)

        posts = await self._load_posts(post_ids[start:end])
        return PostPage(
            posts=posts,
            pagination=Pagination(
                page=page,
                page_size=page_size,
                total_posts=total,
                total_pages=math.ceil(total / page_size),
                has_more=end < total,
            ),
        )

    async def count(self) -> int:
        """Number of posts in the index."""
        return len(await self._load_index())

    async def get_index(self) -> list[str]:
        """The raw id index, newest first."""
        return await self._load_index()

    async def get_raw(self, post_id: str) -> str | None:
        """Stored JSON for a post, or None."""
        return await self._kv.get(self._key(post_id))

    # ──────────────────────────────────────────────
    # Fan-out
    # ──────────────────────────────────────────────

    def subscribe(self, callback: Subscriber) -> Subscription:
        """Register a callback invoked with every post added from now on."""
        token = str(uuid4())
        with self._subscribers_lock:
            self._subscribers[token] = callback
        logger.debug("Subscriber %s registered (%d total)", token, len(self._subscribers))
        return Subscription(self, token)

    @property
    def subscriber_count(self) -> int:
        with self._subscribers_lock:
            return len(self._subscribers)

    def _unsubscribe(self, token: str) -> None:
        with self._subscribers_lock:
            self._subscribers.pop(token, None)
        logger.debug("Subscriber %s removed", token)

    def _publish(self, post: Post) -> None:
        with self._subscribers_lock:
            callbacks = list(self._subscribers.items())
        for token, callback in callbacks:
            try:
                callback(post)
            except Exception:
                logger.warning("Subscriber %s failed for post %s", token, post.id, exc_info=True)

    # ──────────────────────────────────────────────
    # Storage
    # ──────────────────────────────────────────────

    def _key(self, post_id: str) -> str:
        return f"{self.KEY_PREFIX}{post_id}"

    async def _store_post(self, post: Post) -> None:
        await self._kv.set(self._key(post.id), post.model_dump_json(by_alias=True))

    async def _load_post(self, post_id: str) -> Post | None:
        data = await self._kv.get(self._key(post_id))
        if data is None:
            return None
        return Post.model_validate_json(data)

    async def _load_posts(self, post_ids: list[str]) -> list[Post]:
        """Fetch posts one key at a time, skipping ids with no stored item."""
        posts = []
        for post_id in post_ids:
            post = await self._load_post(post_id)
            if post is None:
                logger.debug("Post %s listed in index but missing, skipping", post_id)
                continue
            posts.append(post)
        return posts

    async def _load_index(self) -> list[str]:
        data = await self._kv.get(self.INDEX_KEY)
        if not data:
            return []
        return json.loads(data)

    async def _save_index(self, post_ids: list[str]) -> None:
        await self._kv.set(self.INDEX_KEY, json.dumps(post_ids))
