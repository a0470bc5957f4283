"""
Image Resolver

End-to-end resolution of one request:

1. Normalize the query (400 on empty / too long)
2. Probe both cache tiers (hit -> serve, regardless of quota)
3. Check the client's daily quota (429 when exhausted)
4. Search upstream (404 when there are no candidates)
5. Fetch candidates under one global deadline (502 when all fail)
6. Persist blob + metadata, then count the search against the quota
7. Return the image with the full cache lifetime

Notifications are dispatched along the way but never awaited.
"""

import logging
from typing import Optional

from fastapi import BackgroundTasks

from .cache_manager import ImageCacheManager
from .errors import (
    InvalidQueryError,
    NoResultsError,
    QuotaExceededError,
    UpstreamFetchError,
)
from .fetcher import ResilientFetcher
from .models import FetchedImage, ImageResult, Notification, QuotaStatus
from .normalizer import content_digest, normalize_query
from .notifier import Notifier
from .quota import QuotaTracker
from .search import BraveImageSearch

logger = logging.getLogger(__name__)


class ImageResolver:
    """Composes cache, quota, search and fetch into one request flow."""

    def __init__(
        self,
        cache: ImageCacheManager,
        quota: QuotaTracker,
        search: BraveImageSearch,
        fetcher: ResilientFetcher,
        notifier: Notifier,
        max_query_length: int = 200,
        fetch_deadline_seconds: float = 20.0,
    ):
        self.cache = cache
        self.quota = quota
        self.search = search
        self.fetcher = fetcher
        self.notifier = notifier
        self.max_query_length = max_query_length
        self.fetch_deadline_seconds = fetch_deadline_seconds

    async def resolve(
        self,
        raw_path: str,
        client_id: str,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> ImageResult:
        """
        Resolve a raw request path to image bytes.

        Raises:
            InvalidQueryError, QuotaExceededError, NoResultsError,
            UpstreamFetchError
        """
        query = normalize_query(raw_path)
        if not query:
            raise InvalidQueryError("Empty query")
        if len(query) > self.max_query_length:
            raise InvalidQueryError(f"Query too long (max {self.max_query_length} characters)")

        digest = content_digest(query)

        hit = await self.cache.lookup(query)
        if hit is not None:
            logger.debug(f"[ImageResolver] Cache hit: '{query[:60]}'")
            return ImageResult(
                data=hit.data,
                content_type=hit.content_type,
                max_age_seconds=hit.max_age_seconds,
                cache_status="HIT",
            )

        quota = await self.quota.check(client_id)
        if not quota.allowed:
            logger.info(f"[ImageResolver] Quota exhausted for {client_id} ({quota.count}/{quota.limit})")
            self.notifier.dispatch(Notification(
                title="Rate Limit Hit",
                message=f"IP {client_id} reached limit for: {query}",
                tags="warning,no_entry",
                priority=2,
            ), background_tasks)
            raise QuotaExceededError(
                f"Daily search limit reached ({quota.limit}/day). Cached images remain available."
            )

        self.notifier.dispatch(Notification(
            title="New Search",
            message=f"Query: {query} (Search #{quota.count + 1} for {client_id})",
            tags="mag",
            priority=3,
        ), background_tasks)

        candidates = await self.search.search(query)
        if not candidates:
            self.notifier.dispatch(Notification(
                title="Search Failed",
                message=f"No results found for: {query}",
                tags="question",
                priority=3,
            ), background_tasks)
            raise NoResultsError("No image found for query")

        deadline = self.fetcher.deadline_in(self.fetch_deadline_seconds)
        image = await self.fetcher.resolve_one(candidates, deadline)
        if image is None:
            logger.warning(f"[ImageResolver] All {len(candidates)} candidates failed for '{query[:60]}'")
            self.notifier.dispatch(Notification(
                title="Fetch Error (502)",
                message=f"All sources failed for: {query}",
                tags="boom,x",
                priority=4,
            ), background_tasks)
            raise UpstreamFetchError("Failed to fetch image from all available sources")

        await self._persist(query, digest, image, quota)

        logger.info(f"[ImageResolver] Resolved '{query[:60]}' ({len(image.data)} bytes)")
        return ImageResult(
            data=image.data,
            content_type=image.content_type,
            max_age_seconds=self.cache.cache_ttl_seconds,
            cache_status="MISS",
        )

    async def _persist(self, query: str, digest: str, image: FetchedImage, quota: QuotaStatus) -> None:
        """Write both cache tiers, then count the search. Failures are logged only."""
        try:
            await self.cache.store(query, digest, image.data, image.content_type)
        except Exception as e:
            logger.error(f"[ImageResolver] Failed to cache '{query[:60]}': {e}")

        try:
            await self.quota.increment(quota)
        except Exception as e:
            logger.error(f"[ImageResolver] Failed to record quota for {quota.key}: {e}")
