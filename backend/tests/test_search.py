"""
Brave image search client tests.

Run:
    cd backend
    pytest tests/test_search.py -v
"""

import httpx
import pytest

from image_resolver.search import BraveImageSearch, extract_candidate_urls
from conftest import mock_client, search_payload


def make_search(handler, api_key="test-key", **kwargs) -> BraveImageSearch:
    return BraveImageSearch(api_key=api_key, http_client=mock_client(handler), **kwargs)


class TestExtractCandidateUrls:

    def test_prefers_properties_url(self):
        payload = {"results": [{"properties": {"url": "https://a/1.png"}, "thumbnail": {"src": "https://t/1"}}]}
        assert extract_candidate_urls(payload) == ["https://a/1.png"]

    def test_falls_back_to_thumbnail(self):
        payload = {"results": [{"properties": {}, "thumbnail": {"src": "https://t/1"}}]}
        assert extract_candidate_urls(payload) == ["https://t/1"]

    def test_drops_results_without_urls(self):
        payload = {"results": [{"title": "no url"}, {"properties": {"url": ""}}, {"properties": {"url": "https://a/2"}}]}
        assert extract_candidate_urls(payload) == ["https://a/2"]

    def test_preserves_order(self):
        urls = ["https://a/3", "https://a/1", "https://a/2"]
        assert extract_candidate_urls(search_payload(urls)) == urls

    @pytest.mark.parametrize("payload", [None, [], {}, {"results": None}, {"results": "x"}])
    def test_unexpected_shapes(self, payload):
        assert extract_candidate_urls(payload) == []


class TestSearch:

    @pytest.mark.asyncio
    async def test_request_shape(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=search_payload(["https://a/1.png"]))

        search = make_search(handler, result_count=10, safesearch="off")
        assert await search.search("grumpy cat") == ["https://a/1.png"]

        request = seen[0]
        assert request.url.host == "api.search.brave.com"
        assert request.url.path == "/res/v1/images/search"
        assert request.url.params["q"] == "grumpy cat"
        assert request.url.params["count"] == "10"
        assert request.url.params["safesearch"] == "off"
        assert request.headers["X-Subscription-Token"] == "test-key"
        assert request.headers["Accept"] == "application/json"

    @pytest.mark.asyncio
    async def test_non_success_status(self):
        search = make_search(lambda request: httpx.Response(429, json={"error": "rate limited"}))
        assert await search.search("cat") == []

    @pytest.mark.asyncio
    async def test_empty_results(self):
        search = make_search(lambda request: httpx.Response(200, json={"results": []}))
        assert await search.search("cat") == []

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        search = make_search(lambda request: httpx.Response(200, content=b"<html>"))
        assert await search.search("cat") == []

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        search = make_search(handler)
        assert await search.search("cat") == []

    @pytest.mark.asyncio
    async def test_missing_api_key_skips_request(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json=search_payload(["https://a/1"]))

        search = make_search(handler, api_key=None)
        assert search.is_configured is False
        assert await search.search("cat") == []
        assert calls == []
