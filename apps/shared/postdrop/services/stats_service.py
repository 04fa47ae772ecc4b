"""Storage usage estimate for the post store."""

import json
import random

from postdrop.storage.post_store import PostStore

MAX_STORAGE_BYTES = 256 * 1024 * 1024
MAX_SAMPLE_SIZE = 10
KEY_OVERHEAD_BYTES = 50
FALLBACK_POST_BYTES = 5000


class StatsService:
    """Estimates storage use by sampling a few stored posts.

    Reading every post just to measure it would cost as much as a full
    export, so the average size of a small random sample is extrapolated to
    the whole index.
    """

    def __init__(self, store: PostStore, rng: random.Random | None = None) -> None:
        self.store = store
        self._rng = rng or random.Random()

    async def get_storage_stats(self) -> dict:
        post_ids = await self.store.get_index()
        if not post_ids:
            return {
                "totalKeys": 0,
                "maxStorage": MAX_STORAGE_BYTES,
                "usedStorage": 0,
                "usedPercentage": 0,
                "isSample": False,
                "sampleSize": 0,
            }

        if len(post_ids) <= MAX_SAMPLE_SIZE:
            sample_ids = post_ids
        else:
            sample_ids = self._rng.sample(post_ids, MAX_SAMPLE_SIZE)

        sample_bytes = 0
        sample_count = 0
        for post_id in sample_ids:
            raw = await self.store.get_raw(post_id)
            if raw is not None:
                sample_bytes += len(raw)
                sample_count += 1

        if sample_count:
            used = round(sample_bytes / sample_count * len(post_ids))
        else:
            used = len(post_ids) * FALLBACK_POST_BYTES

        used += len(json.dumps(post_ids))
        used += len(post_ids) * KEY_OVERHEAD_BYTES

        return {
            "totalKeys": len(post_ids),
            "maxStorage": MAX_STORAGE_BYTES,
            "usedStorage": used,
            "usedPercentage": min(100, round(used / MAX_STORAGE_BYTES * 100)),
            "isSample": len(post_ids) > MAX_SAMPLE_SIZE,
            "sampleSize": sample_count,
        }
