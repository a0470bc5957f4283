"""
Image Cache Manager

Coordinates the two cache tiers:
- Metadata index: normalized query -> {created_at, content_type}
- Blob store: content digest -> image bytes

A hit needs both tiers. A metadata record whose blob is gone counts as a
miss; the next successful resolution rewrites both tiers.
"""

import logging
import time
from typing import Callable, Optional

from cache.base import BlobStore, KeyValueStore

from .models import CacheHit, CacheRecord
from .normalizer import content_digest

logger = logging.getLogger(__name__)


class ImageCacheManager:
    """Two-tier image cache with a shared TTL."""

    def __init__(
        self,
        metadata_index: KeyValueStore,
        blob_store: BlobStore,
        cache_ttl_seconds: int = 30 * 24 * 60 * 60,  # 30 days
        clock: Callable[[], float] = time.time,
    ):
        self.metadata_index = metadata_index
        self.blob_store = blob_store
        self.cache_ttl_seconds = cache_ttl_seconds
        self._clock = clock

    async def lookup(self, query: str) -> Optional[CacheHit]:
        """
        Look up a normalized query in both tiers.

        Returns:
            CacheHit with the remaining freshness window, or None on miss.
        """
        try:
            raw_record = await self.metadata_index.get(query)
        except Exception as e:
            logger.error(f"[ImageCache] Metadata read failed for '{query[:50]}': {e}")
            return None

        if raw_record is None:
            return None

        record = CacheRecord.from_dict(raw_record)
        if record is None:
            logger.warning(f"[ImageCache] Malformed metadata record for '{query[:50]}'")
            return None

        digest = content_digest(query)
        try:
            blob = await self.blob_store.get(digest)
        except Exception as e:
            logger.error(f"[ImageCache] Blob read failed for {digest[:12]}: {e}")
            return None

        if blob is None:
            logger.info(f"[ImageCache] Blob missing for '{query[:50]}' ({digest[:12]}), re-resolving")
            return None

        now = int(self._clock())
        remaining = max(0, record.created_at + self.cache_ttl_seconds - now)
        return CacheHit(
            data=blob.data,
            content_type=record.content_type,
            max_age_seconds=remaining,
        )

    async def store(self, query: str, digest: str, data: bytes, content_type: str) -> int:
        """
        Write the blob, then the metadata record, with identical TTLs.

        Returns:
            The created_at timestamp written to the metadata record.
        """
        await self.blob_store.put(digest, data, content_type, self.cache_ttl_seconds)

        created_at = int(self._clock())
        record = CacheRecord(created_at=created_at, content_type=content_type)
        await self.metadata_index.put(query, record.to_dict(), self.cache_ttl_seconds)

        logger.debug(f"[ImageCache] Cached: '{query[:50]}' ({len(data)} bytes, {content_type})")
        return created_at

    async def cleanup_expired(self) -> tuple[int, int]:
        """Purge expired entries from both tiers."""
        removed_records = await self.metadata_index.cleanup_expired()
        removed_blobs = await self.blob_store.cleanup_expired()
        return removed_records, removed_blobs

    def get_stats(self) -> dict:
        return {
            "metadata_index": self.metadata_index.stats(),
            "blob_store": self.blob_store.stats(),
            "cache_ttl_days": self.cache_ttl_seconds // (24 * 60 * 60),
        }
