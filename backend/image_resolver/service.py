"""
Resolver Service

Builds every collaborator from ResolverSettings and owns the shared
HTTP clients, so the application can close them on shutdown.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from cache.base import BlobStore, KeyValueStore
from cache.file_store import FileBlobStore, FileKeyValueStore
from cache.memory_store import MemoryBlobStore, MemoryStore

from .cache_manager import ImageCacheManager
from .config import ResolverSettings
from .fetcher import BROWSER_HEADERS, ResilientFetcher
from .notifier import Notifier
from .quota import QuotaTracker
from .resolver import ImageResolver
from .search import BraveImageSearch
from .static_assets import StaticAssets

logger = logging.getLogger(__name__)

METADATA_NAMESPACE = "images"
QUOTA_NAMESPACE = "quota"


@dataclass
class StoreSet:
    metadata_index: KeyValueStore
    blob_store: BlobStore
    quota_store: KeyValueStore


def build_stores(settings: ResolverSettings) -> StoreSet:
    """Create the metadata, blob and quota stores for the configured backend."""
    if settings.cache_backend == "memory":
        return StoreSet(
            metadata_index=MemoryStore(namespace=METADATA_NAMESPACE),
            blob_store=MemoryBlobStore(),
            quota_store=MemoryStore(namespace=QUOTA_NAMESPACE),
        )
    if settings.cache_backend == "file":
        return StoreSet(
            metadata_index=FileKeyValueStore(settings.cache_dir, METADATA_NAMESPACE),
            blob_store=FileBlobStore(settings.cache_dir),
            quota_store=FileKeyValueStore(settings.cache_dir, QUOTA_NAMESPACE),
        )
    raise ValueError(f"Unknown CACHE_BACKEND: {settings.cache_backend!r} (use 'file' or 'memory')")


class ResolverService:
    """Application-wide resolver, static assets and HTTP clients."""

    def __init__(
        self,
        settings: ResolverSettings,
        stores: Optional[StoreSet] = None,
        api_client: Optional[httpx.AsyncClient] = None,
        image_client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings
        self.stores = stores or build_stores(settings)

        # Search + notifications
        self.api_client = api_client or httpx.AsyncClient(timeout=settings.search_timeout)
        # Candidate image downloads
        self.image_client = image_client or httpx.AsyncClient(
            timeout=settings.attempt_timeout_seconds,
            follow_redirects=True,
            headers=BROWSER_HEADERS,
        )

        self.cache = ImageCacheManager(
            metadata_index=self.stores.metadata_index,
            blob_store=self.stores.blob_store,
            cache_ttl_seconds=settings.cache_ttl_seconds,
        )
        self.quota = QuotaTracker(
            store=self.stores.quota_store,
            daily_limit=settings.daily_quota,
            ttl_seconds=settings.quota_ttl_seconds,
        )
        self.search = BraveImageSearch(
            api_key=settings.brave_api_key,
            http_client=self.api_client,
            search_url=settings.search_url,
            result_count=settings.search_result_count,
            safesearch=settings.search_safesearch,
            timeout=settings.search_timeout,
        )
        self.fetcher = ResilientFetcher(
            http_client=self.image_client,
            max_image_size_bytes=settings.max_image_size_bytes,
            attempt_timeout=settings.attempt_timeout_seconds,
            guard_seconds=settings.deadline_guard_seconds,
        )
        self.notifier = Notifier(settings.ntfy_url, self.api_client)
        self.resolver = ImageResolver(
            cache=self.cache,
            quota=self.quota,
            search=self.search,
            fetcher=self.fetcher,
            notifier=self.notifier,
            max_query_length=settings.max_query_length,
            fetch_deadline_seconds=settings.fetch_deadline_seconds,
        )
        self.static_assets = StaticAssets(settings.static_dir)

        if not self.search.is_configured:
            logger.warning("[ResolverService] BRAVE_API_KEY not set; every cache miss will return 404")

    async def aclose(self) -> None:
        await self.api_client.aclose()
        await self.image_client.aclose()
