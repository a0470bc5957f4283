"""
Storage Interfaces

Two collaborator shapes back the image cache:

- KeyValueStore: small JSON records with a per-key expiration
  (metadata index, quota counters)
- BlobStore: binary payloads keyed by content digest, with the
  content type attached as metadata

Implementations live in memory_store.py and file_store.py.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class StoredBlob:
    """Binary payload read back from a blob store."""
    data: bytes
    content_type: str
    created_at: float
    expires_at: float

    @property
    def size_bytes(self) -> int:
        return len(self.data)


class KeyValueStore:
    """Key -> JSON record store with per-key TTL."""

    namespace: str = "default"

    async def get(self, key: str) -> Optional[Dict[str, Any]]:  # pragma: no cover - interface
        """Return the stored record, or None when absent or expired."""
        raise NotImplementedError

    async def put(self, key: str, value: Dict[str, Any], ttl_seconds: float) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    async def delete(self, key: str) -> bool:  # pragma: no cover - interface
        raise NotImplementedError

    async def cleanup_expired(self) -> int:  # pragma: no cover - interface
        raise NotImplementedError

    def stats(self) -> Dict[str, Any]:  # pragma: no cover - interface
        raise NotImplementedError


class BlobStore:
    """Digest -> binary payload store with per-write TTL."""

    async def get(self, digest: str) -> Optional[StoredBlob]:  # pragma: no cover - interface
        """Return the stored blob, or None when absent or expired."""
        raise NotImplementedError

    async def put(self, digest: str, data: bytes, content_type: str, ttl_seconds: float) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    async def delete(self, digest: str) -> bool:  # pragma: no cover - interface
        raise NotImplementedError

    async def cleanup_expired(self) -> int:  # pragma: no cover - interface
        raise NotImplementedError

    def stats(self) -> Dict[str, Any]:  # pragma: no cover - interface
        raise NotImplementedError
