"""Tests for the capacity-bounded post store and its subscribers."""
import asyncio
import logging

import pytest

from postdrop.errors import NotFound
from postdrop.ingest.zip_archive import extract_archive
from postdrop.ingest.html_parser import parse_html
from postdrop.models.content import (
    HtmlErrorContent,
    JsonContent,
    TextContent,
    ZipArchiveContent,
)
from postdrop.models.post import Post
from postdrop.storage.kv import MemoryKeyValueStore, create_kv_store
from postdrop.storage.post_store import PostStore


def text_post(content="hello", **kwargs) -> Post:
    return Post(content=TextContent(type="text", content=content), **kwargs)


async def add_many(store: PostStore, n: int) -> list[Post]:
    return [await store.add(text_post(f"post {i}")) for i in range(n)]


class TestRoundTrip:

    @pytest.mark.parametrize("content", [
        TextContent(type="text", content="plain"),
        JsonContent({"a": [1, 2, {"b": None}]}),
        JsonContent([1, "two"]),
        JsonContent({"type": "text", "content": "x", "extra": True}),
        JsonContent({"content": "x"}),
        JsonContent({"error": "e", "html": "x"}),
        JsonContent({"html": "x", "metadata": {"title": "t", "description": ""}, "textContent": ""}),
        HtmlErrorContent(type="html", error="Failed to parse HTML content", html="<p"),
    ])
    def test_content_kinds(self, store, content):
        async def scenario():
            post = await store.add(Post(content=content))
            return post, await store.get_by_id(post.id)

        post, loaded = asyncio.run(scenario())
        assert type(loaded.content) is type(content)
        assert loaded.model_dump() == post.model_dump()

    def test_html(self, store):
        post = Post(content=parse_html("<title>T</title><a href='/x'>x</a>"))
        loaded = asyncio.run(self._roundtrip(store, post))
        assert loaded.content.metadata.title == "T"
        assert loaded.content.metadata.links[0].href == "/x"

    def test_archive(self, store, site_zip):
        post = Post(content=extract_archive(site_zip, filename="site.zip"))
        loaded = asyncio.run(self._roundtrip(store, post))
        assert isinstance(loaded.content, ZipArchiveContent)
        assert loaded.content.file_contents == post.content.file_contents
        assert loaded.content.metadata.filename == "site.zip"

    def test_stored_json_uses_camel_case(self, store, site_zip):
        async def scenario():
            post = await store.add(Post(content=extract_archive(site_zip)))
            return await store.get_raw(post.id)

        raw = asyncio.run(scenario())
        assert '"mainFile":"index.html"' in raw
        assert '"fileContents"' in raw
        assert "main_file" not in raw

    @staticmethod
    async def _roundtrip(store, post):
        await store.add(post)
        return await store.get_by_id(post.id)


class TestAdd:

    def test_assigns_id_when_empty(self, store):
        post = asyncio.run(store.add(text_post(id="")))
        assert post.id

    def test_keeps_given_id(self, store):
        post = asyncio.run(store.add(text_post(id="fixed")))
        assert post.id == "fixed"

    def test_newest_first(self, store):
        async def scenario():
            posts = await add_many(store, 3)
            return posts, await store.get_all(), await store.get_index()

        posts, listed, index = asyncio.run(scenario())
        assert [p.id for p in listed] == [p.id for p in reversed(posts)]
        assert index == [p.id for p in reversed(posts)]

    def test_evicts_oldest_past_default_capacity(self, store, kv):
        async def scenario():
            posts = await add_many(store, 501)
            return posts, await store.count(), await store.get_raw(posts[0].id)

        posts, count, evicted = asyncio.run(scenario())
        assert count == 500
        assert evicted is None
        assert len(kv) == 501  # 500 posts + index

    def test_small_capacity(self, kv, caplog):
        store = PostStore(kv, max_posts=2)

        async def scenario():
            posts = await add_many(store, 4)
            return posts, await store.get_index()

        with caplog.at_level(logging.INFO, logger="postdrop.storage.post_store"):
            posts, index = asyncio.run(scenario())
        assert index == [posts[3].id, posts[2].id]
        assert "Evicted 1 old posts" in caplog.text

    def test_concurrent_adds_are_all_indexed(self, store):
        async def scenario():
            await asyncio.gather(*(store.add(text_post(str(i))) for i in range(20)))
            return await store.count()

        assert asyncio.run(scenario()) == 20


class TestReadsAndDeletes:

    def test_unknown_id(self, store):
        with pytest.raises(NotFound) as exc_info:
            asyncio.run(store.get_by_id("nope"))
        assert exc_info.value.status_code == 404
        assert exc_info.value.message == "Content not found: nope"

    def test_delete(self, store):
        async def scenario():
            keep, gone = await add_many(store, 2)
            await store.delete_by_id(gone.id)
            return keep, gone, await store.get_index()

        keep, gone, index = asyncio.run(scenario())
        assert index == [keep.id]
        with pytest.raises(NotFound):
            asyncio.run(store.get_by_id(gone.id))

    def test_delete_unknown(self, store):
        with pytest.raises(NotFound):
            asyncio.run(store.delete_by_id("nope"))

    def test_delete_drops_orphaned_index_entry(self, store, kv):
        async def scenario():
            keep, orphan = await add_many(store, 2)
            await kv.delete(f"post:{orphan.id}")
            with pytest.raises(NotFound):
                await store.delete_by_id(orphan.id)
            return keep, await store.get_index()

        keep, index = asyncio.run(scenario())
        assert index == [keep.id]

    def test_missing_item_is_skipped(self, store, kv):
        async def scenario():
            posts = await add_many(store, 3)
            await kv.delete(f"post:{posts[1].id}")
            return posts, await store.get_all(), await store.count()

        posts, listed, count = asyncio.run(scenario())
        assert [p.id for p in listed] == [posts[2].id, posts[0].id]
        assert count == 3

    def test_get_recent(self, store):
        async def scenario():
            posts = await add_many(store, 5)
            return posts, await store.get_recent(2), await store.get_recent(0)

        posts, recent, none = asyncio.run(scenario())
        assert [p.id for p in recent] == [posts[4].id, posts[3].id]
        assert none == []

    def test_clear(self, store, kv):
        async def scenario():
            await add_many(store, 3)
            cleared = await store.clear()
            return cleared, await store.count()

        assert asyncio.run(scenario()) == (3, 0)
        assert len(kv) == 0

    def test_clear_empty(self, store):
        assert asyncio.run(store.clear()) == 0


class TestPagination:

    def test_pages(self, store):
        async def scenario():
            posts = await add_many(store, 45)
            return posts, await store.get_page(1, 20), await store.get_page(3, 20)

        posts, first, last = asyncio.run(scenario())
        assert len(first.posts) == 20
        assert first.posts[0].id == posts[-1].id
        assert first.pagination.total_posts == 45
        assert first.pagination.total_pages == 3
        assert first.pagination.has_more

        assert len(last.posts) == 5
        assert last.posts[-1].id == posts[0].id
        assert not last.pagination.has_more

    def test_page_past_the_end(self, store):
        async def scenario():
            await add_many(store, 3)
            return await store.get_page(5, 20)

        result = asyncio.run(scenario())
        assert result.posts == []
        assert not result.pagination.has_more

    @pytest.mark.parametrize("page, page_size, expected", [
        (1, 100, (1, 50)),
        (1, 0, (1, 1)),
        (0, 10, (1, 10)),
        (-3, -1, (1, 1)),
    ])
    def test_clamping(self, store, page, page_size, expected):
        result = asyncio.run(store.get_page(page, page_size))
        assert (result.pagination.page, result.pagination.page_size) == expected

    def test_empty_store(self, store):
        result = asyncio.run(store.get_page())
        assert result.posts == []
        assert result.pagination.total_pages == 0
        assert result.pagination.total_posts == 0

    def test_pagination_serializes_camel_case(self, store):
        result = asyncio.run(store.get_page())
        assert result.model_dump(by_alias=True)["pagination"] == {
            "page": 1,
            "pageSize": 20,
            "totalPosts": 0,
            "totalPages": 0,
            "hasMore": False,
        }


class TestSubscribers:

    def test_receives_new_posts(self, store):
        received = []
        store.subscribe(received.append)
        post = asyncio.run(store.add(text_post()))
        assert [p.id for p in received] == [post.id]

    def test_unsubscribe(self, store):
        received = []
        subscription = store.subscribe(received.append)
        subscription.close()
        subscription.close()
        asyncio.run(store.add(text_post()))
        assert received == []
        assert subscription.closed
        assert store.subscriber_count == 0

    def test_context_manager(self, store):
        with store.subscribe(lambda post: None):
            assert store.subscriber_count == 1
        assert store.subscriber_count == 0

    def test_failing_subscriber_is_isolated(self, store, caplog):
        received = []

        def broken(post):
            raise RuntimeError("subscriber bug")

        store.subscribe(broken)
        store.subscribe(received.append)
        with caplog.at_level(logging.WARNING, logger="postdrop.storage.post_store"):
            post = asyncio.run(store.add(text_post()))

        assert [p.id for p in received] == [post.id]
        assert asyncio.run(store.count()) == 1
        assert "failed for post" in caplog.text

    def test_no_notification_for_deletes(self, store):
        received = []
        post = asyncio.run(store.add(text_post()))
        store.subscribe(received.append)
        asyncio.run(store.delete_by_id(post.id))
        assert received == []


class TestKeyValueBackends:

    def test_memory_store(self):
        kv = MemoryKeyValueStore()

        async def scenario():
            await kv.set("a", "1")
            await kv.set("b", "2")
            values = await kv.mget(["a", "missing", "b"])
            removed = await kv.delete("a", "missing")
            return values, removed, await kv.get("a")

        assert asyncio.run(scenario()) == (["1", None, "2"], 1, None)

    def test_factory(self):
        assert isinstance(create_kv_store("memory", "redis://unused"), MemoryKeyValueStore)

    def test_factory_rejects_unknown_backend(self):
        with pytest.raises(ValueError):
            create_kv_store("sqlite", "redis://unused")
