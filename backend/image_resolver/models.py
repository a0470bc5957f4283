"""
Image Resolver Data Models

Dataclasses for internal records, pydantic models for JSON responses.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from pydantic import BaseModel


# ============================================
# Stored Records
# ============================================

@dataclass
class CacheRecord:
    """Metadata index entry, one per normalized query."""
    created_at: int         # Unix seconds
    content_type: str

    def to_dict(self) -> Dict[str, Any]:
        return {"t": self.created_at, "ct": self.content_type}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional["CacheRecord"]:
        """Parse a stored record; returns None if the shape is wrong."""
        try:
            return cls(created_at=int(data["t"]), content_type=str(data["ct"]))
        except (KeyError, TypeError, ValueError):
            return None


# ============================================
# Pipeline Results
# ============================================

@dataclass
class CacheHit:
    """Image served from both cache tiers."""
    data: bytes
    content_type: str
    max_age_seconds: int


@dataclass
class QuotaStatus:
    """Outcome of a quota check for one client on one UTC day."""
    key: str
    count: int
    limit: int

    @property
    def allowed(self) -> bool:
        return self.count < self.limit


@dataclass
class FetchedImage:
    """First candidate that passed validation."""
    data: bytes
    content_type: str
    source_url: str


@dataclass
class ImageResult:
    """Final payload returned to the HTTP layer."""
    data: bytes
    content_type: str
    max_age_seconds: int
    cache_status: str = "MISS"  # HIT, MISS


@dataclass
class Notification:
    """Operational event sent to the notification endpoint."""
    title: str
    message: str
    tags: str
    priority: int = 3


# ============================================
# Response Models
# ============================================

class ErrorResponse(BaseModel):
    error: str


class CacheStatsResponse(BaseModel):
    success: bool
    metadata_index: Dict[str, Any]
    blob_store: Dict[str, Any]
    quota: Dict[str, Any]


class CleanupResponse(BaseModel):
    success: bool
    removed_records: int
    removed_blobs: int
    removed_quota_counters: int


class HealthResponse(BaseModel):
    status: str
    service: str
    search_configured: bool
    notifications_enabled: bool
