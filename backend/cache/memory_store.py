"""
Memory Store Implementation

Thread-safe in-memory key-value and blob stores with per-key expiration.
Used for development and tests; a single process owns the data, so the
file-backed stores are the default for multi-worker deployments.

Features:
- Thread-safe operations with Lock
- TTL-based expiration on read and on cleanup
- Oldest-first eviction when max entries / max size exceeded
"""

import copy
import time
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Dict, Optional

from .base import BlobStore, KeyValueStore, StoredBlob


@dataclass
class StoreEntry:
    """A single key-value record."""
    key: str
    value: Dict[str, Any]
    created_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class MemoryStore(KeyValueStore):
    """
    In-memory key-value store.

    Values are deep-copied on the way in and out so callers never share
    mutable state with the store.
    """

    def __init__(
        self,
        namespace: str = "default",
        max_entries: int = 10000,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            namespace: Logical name used in stats output
            max_entries: Maximum number of records to keep
            clock: Time source (epoch seconds)
        """
        self.namespace = namespace
        self._store: Dict[str, StoreEntry] = {}
        self._lock = Lock()
        self._max_entries = max_entries
        self._clock = clock

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                del self._store[key]
                return None
            return copy.deepcopy(entry.value)

    async def put(self, key: str, value: Dict[str, Any], ttl_seconds: float) -> None:
        with self._lock:
            now = self._clock()
            self._cleanup_expired(now)

            # Evict oldest if at capacity
            while key not in self._store and len(self._store) >= self._max_entries:
                oldest_key = min(self._store, key=lambda k: self._store[k].created_at)
                del self._store[oldest_key]

            self._store[key] = StoreEntry(
                key=key,
                value=copy.deepcopy(value),
                created_at=now,
                expires_at=now + ttl_seconds,
            )

    async def delete(self, key: str) -> bool:
        with self._lock:
            return self._store.pop(key, None) is not None

    async def cleanup_expired(self) -> int:
        with self._lock:
            return self._cleanup_expired(self._clock())

    def clear(self) -> int:
        with self._lock:
            count = len(self._store)
            self._store.clear()
            return count

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "backend": "memory",
                "namespace": self.namespace,
                "total_entries": len(self._store),
                "max_entries": self._max_entries,
            }

    def _cleanup_expired(self, now: float) -> int:
        """Remove expired entries (assumes lock held)."""
        expired = [k for k, v in self._store.items() if v.is_expired(now)]
        for k in expired:
            del self._store[k]
        return len(expired)


class MemoryBlobStore(BlobStore):
    """In-memory blob store bounded by total payload size."""

    def __init__(
        self,
        max_size_mb: int = 500,
        clock: Callable[[], float] = time.time,
    ):
        self._blobs: Dict[str, StoredBlob] = {}
        self._lock = Lock()
        self._max_size_bytes = max_size_mb * 1024 * 1024
        self._clock = clock

    async def get(self, digest: str) -> Optional[StoredBlob]:
        with self._lock:
            blob = self._blobs.get(digest)
            if blob is None:
                return None
            if self._clock() >= blob.expires_at:
                del self._blobs[digest]
                return None
            return blob

    async def put(self, digest: str, data: bytes, content_type: str, ttl_seconds: float) -> None:
        with self._lock:
            now = self._clock()
            self._blobs.pop(digest, None)
            self._ensure_space(len(data))
            self._blobs[digest] = StoredBlob(
                data=bytes(data),
                content_type=content_type,
                created_at=now,
                expires_at=now + ttl_seconds,
            )

    async def delete(self, digest: str) -> bool:
        with self._lock:
            return self._blobs.pop(digest, None) is not None

    async def cleanup_expired(self) -> int:
        with self._lock:
            now = self._clock()
            expired = [d for d, b in self._blobs.items() if now >= b.expires_at]
            for d in expired:
                del self._blobs[d]
            return len(expired)

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            total_size = self._total_size()
            return {
                "backend": "memory",
                "total_entries": len(self._blobs),
                "total_size_bytes": total_size,
                "total_size_mb": round(total_size / (1024 * 1024), 2),
                "max_size_mb": self._max_size_bytes // (1024 * 1024),
            }

    def _total_size(self) -> int:
        return sum(b.size_bytes for b in self._blobs.values())

    def _ensure_space(self, needed_bytes: int) -> None:
        """Evict oldest blobs until the new payload fits (assumes lock held)."""
        current_size = self._total_size()
        target_size = self._max_size_bytes - needed_bytes
        for digest, blob in sorted(self._blobs.items(), key=lambda x: x[1].created_at):
            if current_size <= target_size:
                break
            current_size -= blob.size_bytes
            del self._blobs[digest]
