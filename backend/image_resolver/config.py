"""
Image Resolver Configuration

All settings come from environment variables; defaults match the
public deployment (25 searches per client per day, 30 day cache).
"""

import os
from dataclasses import dataclass
from typing import Optional


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


@dataclass
class ResolverSettings:
    """Configuration for query resolution, caching and quota."""
    # Upstream search
    brave_api_key: Optional[str] = None
    search_url: str = "https://api.search.brave.com/res/v1/images/search"
    search_result_count: int = 10
    search_safesearch: str = "off"      # off, moderate, strict
    search_timeout: float = 10.0        # seconds

    # Candidate fetching
    fetch_deadline_seconds: float = 20.0
    attempt_timeout_seconds: float = 5.0
    deadline_guard_seconds: float = 0.5
    max_image_size_mb: int = 10

    # Cache
    cache_backend: str = "file"         # file, memory
    cache_dir: str = "./image_cache"
    cache_ttl_days: int = 30

    # Quota
    daily_quota: int = 25
    quota_ttl_hours: int = 48

    # Request handling
    max_query_length: int = 200
    client_ip_header: str = "cf-connecting-ip"
    trust_forwarded_for: bool = False   # only behind a proxy that rewrites X-Forwarded-For
    static_dir: str = "./static"

    # Notifications (ntfy topic URL)
    ntfy_url: Optional[str] = None

    @property
    def cache_ttl_seconds(self) -> int:
        return self.cache_ttl_days * 24 * 60 * 60

    @property
    def quota_ttl_seconds(self) -> int:
        return self.quota_ttl_hours * 60 * 60

    @property
    def max_image_size_bytes(self) -> int:
        return self.max_image_size_mb * 1024 * 1024

    @classmethod
    def from_env(cls) -> "ResolverSettings":
        return cls(
            brave_api_key=os.getenv("BRAVE_API_KEY") or None,
            search_result_count=max(1, min(100, _env_int("SEARCH_RESULT_COUNT", 10))),
            search_safesearch=os.getenv("SEARCH_SAFESEARCH", "off"),
            fetch_deadline_seconds=_env_float("FETCH_DEADLINE_SECONDS", 20.0),
            attempt_timeout_seconds=_env_float("ATTEMPT_TIMEOUT_SECONDS", 5.0),
            deadline_guard_seconds=_env_int("DEADLINE_GUARD_MS", 500) / 1000,
            max_image_size_mb=_env_int("IMAGE_MAX_SIZE_MB", 10),
            cache_backend=os.getenv("CACHE_BACKEND", "file").lower(),
            cache_dir=os.getenv("IMAGE_CACHE_DIR", "./image_cache"),
            cache_ttl_days=_env_int("CACHE_TTL_DAYS", 30),
            daily_quota=_env_int("DAILY_QUOTA", 25),
            quota_ttl_hours=_env_int("QUOTA_TTL_HOURS", 48),
            max_query_length=_env_int("MAX_QUERY_LENGTH", 200),
            client_ip_header=os.getenv("CLIENT_IP_HEADER", "cf-connecting-ip").lower(),
            trust_forwarded_for=os.getenv("TRUST_FORWARDED_FOR", "false").lower() in ("1", "true", "yes"),
            static_dir=os.getenv("STATIC_DIR", "./static"),
            ntfy_url=os.getenv("NTFY_URL") or None,
        )
