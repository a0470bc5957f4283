"""
Static Assets

Serves the landing page and well-known files for the reserved paths.
"""

import logging
from pathlib import Path

from fastapi.responses import FileResponse, JSONResponse, Response

from .models import ErrorResponse

logger = logging.getLogger(__name__)

# Paths that never count as image queries
RESERVED_PATHS = frozenset({"", "index.html", "favicon.ico", "robots.txt"})


def is_reserved_path(path: str) -> bool:
    return path in RESERVED_PATHS


class StaticAssets:
    """Files from a single directory, with "" mapped to index.html."""

    def __init__(self, static_dir: str):
        self.static_dir = Path(static_dir)

    def fetch(self, path: str) -> Response:
        filename = path or "index.html"
        file_path = self.static_dir / filename

        if not file_path.is_file():
            logger.debug(f"[Static] Not found: {file_path}")
            return JSONResponse(
                status_code=404,
                content=ErrorResponse(error="Not found").model_dump(),
                headers={"Access-Control-Allow-Origin": "*"},
            )

        return FileResponse(file_path)
