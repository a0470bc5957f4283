"""
Resilient Image Fetcher

Tries candidate URLs one at a time under a shared deadline:
- Stops when less than the guard interval is left
- Each attempt gets min(remaining, attempt_timeout) of wall-clock time
- Accepts only 2xx responses with an image/* content type
- Rejects payloads over the size ceiling, by Content-Length first and
  then by the bytes actually streamed

Every failure is treated the same way: move on to the next candidate.
"""

import asyncio
import logging
import time
from typing import Callable, Optional, Sequence

import httpx

from .models import FetchedImage

logger = logging.getLogger(__name__)

# Browser-like headers; many image hosts refuse bare HTTP clients
BROWSER_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Accept": "image/avif,image/webp,image/apng,image/svg+xml,image/*,*/*;q=0.8",
}


class ResilientFetcher:
    """Sequential multi-candidate image fetch with a global deadline."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        max_image_size_bytes: int = 10 * 1024 * 1024,
        attempt_timeout: float = 5.0,
        guard_seconds: float = 0.5,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.http_client = http_client
        self.max_image_size_bytes = max_image_size_bytes
        self.attempt_timeout = attempt_timeout
        self.guard_seconds = guard_seconds
        self._clock = clock

    def deadline_in(self, seconds: float) -> float:
        """Absolute deadline on this fetcher's clock."""
        return self._clock() + seconds

    async def resolve_one(
        self,
        candidates: Sequence[str],
        deadline: float,
    ) -> Optional[FetchedImage]:
        """
        Return the first candidate that downloads and validates in time.

        Args:
            candidates: URLs in attempt order
            deadline: Absolute cutoff from deadline_in()

        Returns:
            FetchedImage, or None when every candidate failed or time ran out.
        """
        for index, url in enumerate(candidates):
            remaining = deadline - self._clock()
            if remaining <= self.guard_seconds:
                logger.warning(
                    f"[Fetcher] Deadline reached after {index}/{len(candidates)} candidates"
                )
                return None

            timeout = min(remaining, self.attempt_timeout)
            image = await self._attempt(url, timeout)
            if image is not None:
                logger.info(f"[Fetcher] Candidate {index + 1}/{len(candidates)} succeeded: {url[:80]}")
                return image

        return None

    async def _attempt(self, url: str, timeout: float) -> Optional[FetchedImage]:
        try:
            return await asyncio.wait_for(self._fetch(url, timeout), timeout=timeout)
        except asyncio.TimeoutError:
            logger.info(f"[Fetcher] Timeout after {timeout:.1f}s: {url[:80]}")
        except Exception as e:
            logger.info(f"[Fetcher] Fetch error: {url[:80]}: {e}")
        return None

    async def _fetch(self, url: str, timeout: float) -> Optional[FetchedImage]:
        async with self.http_client.stream("GET", url, timeout=timeout) as response:
            if not response.is_success:
                logger.info(f"[Fetcher] HTTP {response.status_code}: {url[:80]}")
                return None

            content_type = response.headers.get("content-type", "").strip()
            if not content_type.lower().startswith("image/"):
                logger.info(f"[Fetcher] Non-image content-type '{content_type}': {url[:80]}")
                return None

            declared_size = response.headers.get("content-length")
            if declared_size and declared_size.isdigit() and int(declared_size) > self.max_image_size_bytes:
                logger.info(f"[Fetcher] Declared size {declared_size} too large: {url[:80]}")
                return None

            buffer = bytearray()
            async for chunk in response.aiter_bytes():
                buffer.extend(chunk)
                if len(buffer) > self.max_image_size_bytes:
                    logger.info(f"[Fetcher] Body exceeded {self.max_image_size_bytes} bytes: {url[:80]}")
                    return None

        return FetchedImage(
            data=bytes(buffer),
            content_type=content_type,
            source_url=url,
        )
