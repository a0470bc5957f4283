"""
Image Resolver Module

Resolves a text query (the request path) to an image:
- Two-tier cache (metadata index + content-addressed blob store)
- Per-client daily search quota
- Brave image search with sequential candidate fetching under a deadline
- Best-effort ntfy notifications
"""

from .config import ResolverSettings
from .resolver import ImageResolver
from .routes_fastapi import image_router, router
from .service import ResolverService

__all__ = ["router", "image_router", "ImageResolver", "ResolverService", "ResolverSettings"]
