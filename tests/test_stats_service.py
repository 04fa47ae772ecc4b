"""Tests for the sampled storage estimate."""
import asyncio
import json
import random

from postdrop.models.content import TextContent
from postdrop.models.post import Post
from postdrop.services.stats_service import MAX_STORAGE_BYTES, StatsService


class TestStorageStats:

    def test_empty_store(self, store):
        stats = asyncio.run(StatsService(store).get_storage_stats())
        assert stats == {
            "totalKeys": 0,
            "maxStorage": MAX_STORAGE_BYTES,
            "usedStorage": 0,
            "usedPercentage": 0,
            "isSample": False,
            "sampleSize": 0,
        }

    def test_small_store_is_measured_fully(self, store):
        async def scenario():
            for i in range(3):
                await store.add(Post(content=TextContent(type="text", content=f"post {i}")))
            index = await store.get_index()
            raw = [await store.get_raw(pid) for pid in index]
            return index, raw, await StatsService(store).get_storage_stats()

        index, raw, stats = asyncio.run(scenario())
        expected = sum(len(r) for r in raw) + len(json.dumps(index)) + 3 * 50
        assert stats["totalKeys"] == 3
        assert not stats["isSample"]
        assert stats["sampleSize"] == 3
        assert stats["usedStorage"] == expected
        assert stats["usedPercentage"] == 0

    def test_large_store_is_sampled(self, store):
        async def scenario():
            for i in range(12):
                await store.add(Post(content=TextContent(type="text", content="x" * 100)))
            return await StatsService(store, rng=random.Random(7)).get_storage_stats()

        stats = asyncio.run(scenario())
        assert stats["totalKeys"] == 12
        assert stats["isSample"]
        assert stats["sampleSize"] == 10
        assert stats["usedStorage"] > 12 * 100
