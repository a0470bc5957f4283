"""
Shared test fixtures.

Key pieces:
- FakeClock: controllable time source for TTL / deadline logic
- memory stores wired with the fake clock
- image_client_for / api_client_for: httpx clients backed by MockTransport,
  so no test touches the network
"""

import os
import sys
from pathlib import Path
from typing import Callable, Dict, List

import httpx
import pytest

# Add the backend directory to the Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Importing main builds the default app; keep it off the filesystem
os.environ.setdefault("CACHE_BACKEND", "memory")

from cache.memory_store import MemoryBlobStore, MemoryStore
from image_resolver.errors import ResolutionError

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x01" * 64

# 2023-11-14T22:13:20Z
FIXED_NOW = 1_700_000_000.0


class FakeClock:
    """Callable clock whose time only moves when told to."""

    def __init__(self, now: float = FIXED_NOW):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ============================================
# Clock & Store Fixtures
# ============================================

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def metadata_index(clock):
    return MemoryStore(namespace="images", clock=clock)


@pytest.fixture
def blob_store(clock):
    return MemoryBlobStore(clock=clock)


@pytest.fixture
def quota_store(clock):
    return MemoryStore(namespace="quota", clock=clock)


# ============================================
# HTTP Doubles
# ============================================

def mock_client(handler: Callable, **kwargs) -> httpx.AsyncClient:
    """AsyncClient whose requests are answered by handler."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), **kwargs)


def image_handler(routes: Dict[str, Callable[[httpx.Request], httpx.Response]], calls: List[str]):
    """
    Build a MockTransport handler that dispatches on the full URL and
    records every URL requested.
    """
    async def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        calls.append(url)
        if url not in routes:
            return httpx.Response(404)
        result = routes[url](request)
        if hasattr(result, "__await__"):
            result = await result
        return result

    return handler


def png_response(request: httpx.Request, data: bytes = PNG_BYTES) -> httpx.Response:
    return httpx.Response(200, headers={"content-type": "image/png"}, content=data)


def search_payload(urls: List[str]) -> dict:
    return {"results": [{"properties": {"url": u}, "thumbnail": {"src": u + "?thumb"}} for u in urls]}


class FakeSearch:
    """Stand-in for BraveImageSearch that records queries."""

    def __init__(self, urls: List[str], configured: bool = True):
        self.urls = urls
        self.queries: List[str] = []
        self.is_configured = configured

    async def search(self, query: str) -> List[str]:
        self.queries.append(query)
        return list(self.urls)


# ============================================
# Helper Functions
# ============================================

def assert_error_response(response, status_code: int, error_contains: str = None):
    """
    Assert an HTTP error response has the JSON error shape.

    Usage:
        assert_error_response(client.get("/%20"), 400, "empty")
    """
    assert response.status_code == status_code, response.text
    assert response.headers["access-control-allow-origin"] == "*"
    body = response.json()
    assert set(body) == {"error"}, f"Unexpected error body: {body}"
    if error_contains:
        assert error_contains.lower() in body["error"].lower(), \
            f"Error message should contain '{error_contains}', got: {body['error']}"


def assert_resolution_error(exc_info, error_type: type, status_code: int):
    assert isinstance(exc_info.value, ResolutionError)
    assert isinstance(exc_info.value, error_type)
    assert exc_info.value.status_code == status_code
