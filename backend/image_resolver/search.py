"""
Brave Image Search

Turns a normalized query into an ordered list of candidate image URLs.
Any failure (missing key, HTTP error, bad JSON, network error) yields an
empty list, which the caller reports as "no results".
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

BRAVE_IMAGE_SEARCH_URL = "https://api.search.brave.com/res/v1/images/search"


def extract_candidate_urls(payload: Any) -> List[str]:
    """
    Pull candidate URLs out of a search response, keeping provider order.

    Each result contributes properties.url, falling back to thumbnail.src.
    """
    if not isinstance(payload, dict):
        return []
    results = payload.get("results")
    if not isinstance(results, list):
        return []

    urls = []
    for result in results:
        if not isinstance(result, dict):
            continue
        properties = result.get("properties") or {}
        thumbnail = result.get("thumbnail") or {}
        url = (properties.get("url") if isinstance(properties, dict) else None) or \
              (thumbnail.get("src") if isinstance(thumbnail, dict) else None)
        if url and isinstance(url, str):
            urls.append(url)
    return urls


class BraveImageSearch:
    """Client for the Brave image search API."""

    def __init__(
        self,
        api_key: Optional[str],
        http_client: httpx.AsyncClient,
        search_url: str = BRAVE_IMAGE_SEARCH_URL,
        result_count: int = 10,
        safesearch: str = "off",
        timeout: float = 10.0,
    ):
        self.api_key = api_key
        self.http_client = http_client
        self.search_url = search_url
        self.result_count = result_count
        self.safesearch = safesearch
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _build_params(self, query: str) -> Dict[str, Any]:
        return {
            "q": query,
            "count": self.result_count,
            "safesearch": self.safesearch,
        }

    async def search(self, query: str) -> List[str]:
        """
        Search for images matching the query.

        Returns:
            Candidate URLs in provider order; empty on any failure.
        """
        if not self.api_key:
            logger.error("[Search] BRAVE_API_KEY is not configured")
            return []

        try:
            response = await self.http_client.get(
                self.search_url,
                params=self._build_params(query),
                headers={
                    "Accept": "application/json",
                    "X-Subscription-Token": self.api_key,
                },
                timeout=self.timeout,
            )
        except Exception as e:
            logger.warning(f"[Search] Request failed for '{query[:50]}': {e}")
            return []

        if not response.is_success:
            logger.warning(f"[Search] HTTP {response.status_code} for '{query[:50]}'")
            return []

        try:
            payload = response.json()
        except ValueError as e:
            logger.warning(f"[Search] Invalid JSON for '{query[:50]}': {e}")
            return []

        urls = extract_candidate_urls(payload)
        logger.info(f"[Search] '{query[:50]}' -> {len(urls)} candidates")
        return urls
