"""
Image Resolver API Routes

Provides endpoints for:
- Resolving a query path to an image (GET /<query>)
- Health and cache statistics
- Cache maintenance (cleanup of expired entries)
"""

import logging
from urllib.parse import quote_from_bytes

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import JSONResponse, Response

from .errors import ResolutionError
from .models import CacheStatsResponse, CleanupResponse, ErrorResponse, HealthResponse
from .service import ResolverService
from .static_assets import is_reserved_path

logger = logging.getLogger(__name__)

# Bytes left as-is when re-escaping the raw path; existing %XX escapes survive
PATH_SAFE_CHARS = "/%+:@!$&'()*,;=~"


def get_service(request: Request) -> ResolverService:
    return request.app.state.resolver_service


# ============================================
# Helpers
# ============================================

def get_client_id(request: Request, header_name: str, trust_forwarded_for: bool = False) -> str:
    """
    Client identity for quota purposes.

    X-Forwarded-For is only consulted when a proxy in front of the
    service is known to overwrite it; otherwise clients could pick
    their own identity.
    """
    value = request.headers.get(header_name)
    if value and value.strip():
        return value.strip()

    forwarded = request.headers.get("x-forwarded-for") if trust_forwarded_for else None
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop

    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def get_raw_path(request: Request, fallback: str) -> str:
    """
    Request path as sent by the client, without the leading slash.

    Percent escapes are kept for the normalizer to decode once. Bytes the
    client sent unescaped (e.g. raw UTF-8) are escaped here so they decode
    to the same text as their escaped form.
    """
    raw = request.scope.get("raw_path")
    if not raw:
        return fallback
    text = quote_from_bytes(raw, safe=PATH_SAFE_CHARS)
    return text[1:] if text.startswith("/") else text


def image_response(data: bytes, content_type: str, max_age_seconds: int, cache_status: str) -> Response:
    return Response(
        content=data,
        media_type=content_type,
        headers={
            "Cache-Control": f"public, max-age={max(0, int(max_age_seconds))}",
            "Access-Control-Allow-Origin": "*",
            "X-Content-Type-Options": "nosniff",
            "X-Cache": cache_status,
        },
    )


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
        headers={"Access-Control-Allow-Origin": "*"},
    )


# ============================================
# Operational Endpoints
# ============================================

router = APIRouter(prefix="/api", tags=["Image Resolver"])


@router.get("/health", response_model=HealthResponse)
async def health_check(service: ResolverService = Depends(get_service)):
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        service="image-resolver",
        search_configured=service.search.is_configured,
        notifications_enabled=service.notifier.enabled,
    )


@router.get("/cache/stats", response_model=CacheStatsResponse)
async def get_cache_stats(service: ResolverService = Depends(get_service)):
    """
    Get cache statistics.

    Returns entry counts and sizes for the metadata index, the blob
    store and the quota counters.
    """
    stats = service.cache.get_stats()
    return CacheStatsResponse(
        success=True,
        metadata_index=stats["metadata_index"],
        blob_store=stats["blob_store"],
        quota=service.quota.get_stats(),
    )


@router.post("/cache/cleanup", response_model=CleanupResponse)
async def cleanup_cache(service: ResolverService = Depends(get_service)):
    """
    Remove expired entries from every store.

    Expired entries are already ignored on read; this only reclaims space.
    """
    removed_records, removed_blobs = await service.cache.cleanup_expired()
    removed_counters = await service.quota.store.cleanup_expired()
    return CleanupResponse(
        success=True,
        removed_records=removed_records,
        removed_blobs=removed_blobs,
        removed_quota_counters=removed_counters,
    )


# ============================================
# Image Endpoint
# ============================================

image_router = APIRouter(tags=["Image Resolver"])


@image_router.get("/{path:path}")
async def resolve_image(
    path: str,
    request: Request,
    background_tasks: BackgroundTasks,
    service: ResolverService = Depends(get_service),
):
    """
    Resolve a query to an image.

    Example:
        GET /grumpy%20cat  ->  image bytes (cached for 30 days)
    """
    raw_path = get_raw_path(request, path)
    if is_reserved_path(raw_path):
        return service.static_assets.fetch(raw_path)

    client_id = get_client_id(
        request,
        service.settings.client_ip_header,
        service.settings.trust_forwarded_for,
    )

    try:
        result = await service.resolver.resolve(raw_path, client_id, background_tasks)
    except ResolutionError as e:
        logger.info(f"[ImageResolver] {e.status_code} for /{raw_path[:80]}: {e.message}")
        return error_response(e.status_code, e.message)

    return image_response(result.data, result.content_type, result.max_age_seconds, result.cache_status)
