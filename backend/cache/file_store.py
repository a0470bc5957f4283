"""
File Store Implementation

File-based key-value and blob stores with per-key expiration.
Data lives outside the process, so every worker sharing the cache
directory sees the same records.

Cache structure:
cache_dir/
├── kv/
│   ├── images/ab/ab12...json
│   └── quota/cd/cd34...json
└── blobs/
    ├── ef/ef56....bin
    └── ef/ef56....json   (content type + expiry)

Writes go to a temporary file first and are moved into place, so a
reader never sees a half-written record.
"""

import hashlib
import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional

from .base import BlobStore, KeyValueStore, StoredBlob

logger = logging.getLogger(__name__)


def _atomic_write(path: Path, payload: bytes) -> None:
    """Write payload to path via a temp file + rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f"{path.name}.{os.getpid()}.tmp")
    with open(tmp_path, "wb") as f:
        f.write(payload)
    os.replace(tmp_path, path)


def _unlink(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass


def _read_json(path: Path) -> Optional[Dict[str, Any]]:
    """Read a JSON document, treating missing or corrupt files as absent."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as e:
        logger.warning(f"[FileStore] Unreadable record {path}: {e}")
        _unlink(path)
        return None
    return data if isinstance(data, dict) else None


def _expires_at(record: Dict[str, Any]) -> Optional[float]:
    """Expiry timestamp of a record, or None when missing or malformed."""
    try:
        return float(record["expires_at"])
    except (KeyError, TypeError, ValueError):
        return None


class FileKeyValueStore(KeyValueStore):
    """One JSON file per key, sharded by the key's hash."""

    def __init__(
        self,
        cache_dir: str,
        namespace: str,
        clock: Callable[[], float] = time.time,
    ):
        self.namespace = namespace
        self.root = Path(cache_dir) / "kv" / namespace
        self.root.mkdir(parents=True, exist_ok=True)
        self._clock = clock

    def _path_for(self, key: str) -> Path:
        key_hash = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.root / key_hash[:2] / f"{key_hash}.json"

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        path = self._path_for(key)
        record = _read_json(path)
        if record is None:
            return None

        expires_at = _expires_at(record)
        if expires_at is None or self._clock() >= expires_at:
            _unlink(path)
            return None

        value = record.get("value")
        return value if isinstance(value, dict) else None

    async def put(self, key: str, value: Dict[str, Any], ttl_seconds: float) -> None:
        record = {
            "key": key,
            "value": value,
            "expires_at": self._clock() + ttl_seconds,
        }
        _atomic_write(self._path_for(key), json.dumps(record).encode("utf-8"))

    async def delete(self, key: str) -> bool:
        path = self._path_for(key)
        if not path.exists():
            return False
        _unlink(path)
        return True

    def _iter_records(self) -> Iterator[Path]:
        return self.root.glob("*/*.json")

    async def cleanup_expired(self) -> int:
        now = self._clock()
        removed = 0
        for path in self._iter_records():
            record = _read_json(path)
            if record is None:
                removed += 1
                continue
            expires_at = _expires_at(record)
            if expires_at is None or now >= expires_at:
                _unlink(path)
                removed += 1
        if removed:
            logger.info(f"[FileStore] Cleaned up {removed} expired '{self.namespace}' records")
        return removed

    def stats(self) -> Dict[str, Any]:
        return {
            "backend": "file",
            "namespace": self.namespace,
            "total_entries": sum(1 for _ in self._iter_records()),
        }


class FileBlobStore(BlobStore):
    """Binary payloads on disk with a JSON sidecar per blob."""

    def __init__(
        self,
        cache_dir: str,
        clock: Callable[[], float] = time.time,
    ):
        self.root = Path(cache_dir) / "blobs"
        self.root.mkdir(parents=True, exist_ok=True)
        self._clock = clock

    def _paths_for(self, digest: str) -> tuple[Path, Path]:
        shard = self.root / digest[:2]
        return shard / f"{digest}.bin", shard / f"{digest}.json"

    def _remove(self, digest: str) -> None:
        data_path, meta_path = self._paths_for(digest)
        _unlink(meta_path)
        _unlink(data_path)

    async def get(self, digest: str) -> Optional[StoredBlob]:
        data_path, meta_path = self._paths_for(digest)
        meta = _read_json(meta_path)
        if meta is None:
            return None

        expires_at = _expires_at(meta)
        if expires_at is None or self._clock() >= expires_at:
            self._remove(digest)
            return None

        try:
            with open(data_path, "rb") as f:
                data = f.read()
        except FileNotFoundError:
            logger.warning(f"[FileStore] Blob file missing: {data_path}")
            _unlink(meta_path)
            return None

        created_at = meta.get("created_at")
        return StoredBlob(
            data=data,
            content_type=meta.get("content_type") or "application/octet-stream",
            created_at=float(created_at) if isinstance(created_at, (int, float)) else 0.0,
            expires_at=expires_at,
        )

    async def put(self, digest: str, data: bytes, content_type: str, ttl_seconds: float) -> None:
        data_path, meta_path = self._paths_for(digest)
        now = self._clock()
        meta = {
            "content_type": content_type,
            "size_bytes": len(data),
            "created_at": now,
            "expires_at": now + ttl_seconds,
        }
        _atomic_write(data_path, data)
        _atomic_write(meta_path, json.dumps(meta).encode("utf-8"))

    async def delete(self, digest: str) -> bool:
        data_path, meta_path = self._paths_for(digest)
        existed = meta_path.exists() or data_path.exists()
        self._remove(digest)
        return existed

    async def cleanup_expired(self) -> int:
        now = self._clock()
        removed = 0
        for meta_path in self.root.glob("*/*.json"):
            meta = _read_json(meta_path)
            expires_at = None if meta is None else _expires_at(meta)
            if expires_at is None or now >= expires_at:
                self._remove(meta_path.stem)
                removed += 1
        if removed:
            logger.info(f"[FileStore] Cleaned up {removed} expired blobs")
        return removed

    def stats(self) -> Dict[str, Any]:
        total_size = 0
        count = 0
        for data_path in self.root.glob("*/*.bin"):
            count += 1
            try:
                total_size += data_path.stat().st_size
            except FileNotFoundError:
                continue
        return {
            "backend": "file",
            "total_entries": count,
            "total_size_bytes": total_size,
            "total_size_mb": round(total_size / (1024 * 1024), 2),
        }
