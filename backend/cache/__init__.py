"""
Cache Storage Module

Key-value and blob stores with per-key expiration, in memory or on disk.
"""

from .base import BlobStore, KeyValueStore, StoredBlob
from .file_store import FileBlobStore, FileKeyValueStore
from .memory_store import MemoryBlobStore, MemoryStore

__all__ = [
    "KeyValueStore",
    "BlobStore",
    "StoredBlob",
    "MemoryStore",
    "MemoryBlobStore",
    "FileKeyValueStore",
    "FileBlobStore",
]
