"""
Resilient fetcher tests.

Most tests use a fake clock so deadline arithmetic is exact; the
deadline-respect test uses real time against a slow upstream.

Run:
    cd backend
    pytest tests/test_fetcher.py -v
"""

import asyncio
import time

import httpx
import pytest

from image_resolver.fetcher import ResilientFetcher
from conftest import PNG_BYTES, FakeClock, image_handler, mock_client, png_response

MIB = 1024 * 1024


def make_fetcher(routes, calls, clock=None, **kwargs) -> ResilientFetcher:
    return ResilientFetcher(
        http_client=mock_client(image_handler(routes, calls)),
        clock=clock or FakeClock(),
        **kwargs,
    )


def timeout_after(clock: FakeClock, seconds: float):
    """Handler that burns `seconds` of fake time and then times out."""
    def handler(request):
        clock.advance(seconds)
        raise httpx.ReadTimeout("timed out", request=request)
    return handler


class TestCandidateOrder:

    @pytest.mark.asyncio
    async def test_first_success_wins(self):
        calls = []
        fetcher = make_fetcher({"https://a/1": png_response, "https://a/2": png_response}, calls)

        image = await fetcher.resolve_one(["https://a/1", "https://a/2"], fetcher.deadline_in(20))

        assert image.data == PNG_BYTES
        assert image.content_type == "image/png"
        assert image.source_url == "https://a/1"
        assert calls == ["https://a/1"]

    @pytest.mark.asyncio
    async def test_two_timeouts_then_success(self):
        """3 candidates, first two time out, third succeeds within the deadline"""
        clock = FakeClock()
        calls = []
        routes = {
            "https://a/1": timeout_after(clock, 5),
            "https://a/2": timeout_after(clock, 5),
            "https://a/3": png_response,
        }
        fetcher = make_fetcher(routes, calls, clock=clock)

        image = await fetcher.resolve_one(list(routes), fetcher.deadline_in(20))

        assert image.source_url == "https://a/3"
        assert calls == list(routes)

    @pytest.mark.asyncio
    async def test_each_url_tried_once(self):
        calls = []
        routes = {"https://a/1": lambda r: httpx.Response(500)}
        fetcher = make_fetcher(routes, calls)

        assert await fetcher.resolve_one(["https://a/1"], fetcher.deadline_in(20)) is None
        assert calls == ["https://a/1"]

    @pytest.mark.asyncio
    async def test_empty_candidates(self):
        fetcher = make_fetcher({}, [])
        assert await fetcher.resolve_one([], fetcher.deadline_in(20)) is None


class TestValidation:

    @pytest.mark.asyncio
    async def test_non_success_status_skipped(self):
        calls = []
        routes = {"https://a/1": lambda r: httpx.Response(403), "https://a/2": png_response}
        fetcher = make_fetcher(routes, calls)

        image = await fetcher.resolve_one(list(routes), fetcher.deadline_in(20))
        assert image.source_url == "https://a/2"

    @pytest.mark.asyncio
    async def test_non_image_content_type_skipped(self):
        calls = []
        routes = {
            "https://a/1": lambda r: httpx.Response(200, headers={"content-type": "text/html"}, content=b"<html>"),
            "https://a/2": png_response,
        }
        fetcher = make_fetcher(routes, calls)

        image = await fetcher.resolve_one(list(routes), fetcher.deadline_in(20))
        assert image.source_url == "https://a/2"

    @pytest.mark.asyncio
    async def test_missing_content_type_skipped(self):
        calls = []
        routes = {"https://a/1": lambda r: httpx.Response(200, content=PNG_BYTES)}
        fetcher = make_fetcher(routes, calls)

        assert await fetcher.resolve_one(list(routes), fetcher.deadline_in(20)) is None

    @pytest.mark.asyncio
    async def test_content_type_passed_through(self):
        routes = {"https://a/1": lambda r: httpx.Response(
            200, headers={"content-type": "image/svg+xml; charset=utf-8"}, content=b"<svg/>")}
        fetcher = make_fetcher(routes, [])

        image = await fetcher.resolve_one(list(routes), fetcher.deadline_in(20))
        assert image.content_type == "image/svg+xml; charset=utf-8"

    @pytest.mark.asyncio
    async def test_declared_size_over_ceiling_skipped(self):
        calls = []
        routes = {
            "https://a/1": lambda r: httpx.Response(
                200,
                headers={"content-type": "image/png", "content-length": str(10 * MIB + 1)},
                content=PNG_BYTES,
            ),
            "https://a/2": png_response,
        }
        fetcher = make_fetcher(routes, calls)

        image = await fetcher.resolve_one(list(routes), fetcher.deadline_in(20))
        assert image.source_url == "https://a/2"
        assert calls == list(routes)

    @pytest.mark.asyncio
    async def test_streamed_size_over_ceiling_skipped(self):
        """A chunked body with no Content-Length is still capped"""
        async def eleven_mib():
            for _ in range(11):
                yield b"\x00" * MIB

        routes = {
            "https://a/1": lambda r: httpx.Response(200, headers={"content-type": "image/png"}, content=eleven_mib()),
            "https://a/2": png_response,
        }
        fetcher = make_fetcher(routes, [])

        image = await fetcher.resolve_one(list(routes), fetcher.deadline_in(20))
        assert image.source_url == "https://a/2"

    @pytest.mark.asyncio
    async def test_exactly_at_ceiling_accepted(self):
        data = b"\x00" * 1024
        routes = {"https://a/1": lambda r: png_response(r, data)}
        fetcher = make_fetcher(routes, [], max_image_size_bytes=1024)

        image = await fetcher.resolve_one(list(routes), fetcher.deadline_in(20))
        assert image.data == data

    @pytest.mark.asyncio
    async def test_network_error_skipped(self):
        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        routes = {"https://a/1": refuse, "https://a/2": png_response}
        fetcher = make_fetcher(routes, [])

        image = await fetcher.resolve_one(list(routes), fetcher.deadline_in(20))
        assert image.source_url == "https://a/2"


class TestDeadline:

    @pytest.mark.asyncio
    async def test_no_attempt_inside_guard_window(self):
        clock = FakeClock()
        calls = []
        fetcher = make_fetcher({"https://a/1": png_response}, calls, clock=clock, guard_seconds=0.5)

        assert await fetcher.resolve_one(["https://a/1"], clock() + 0.5) is None
        assert calls == []

    @pytest.mark.asyncio
    async def test_stops_when_budget_spent(self):
        clock = FakeClock()
        calls = []
        routes = {
            "https://a/1": timeout_after(clock, 5),
            "https://a/2": timeout_after(clock, 5),
            "https://a/3": timeout_after(clock, 5),
            "https://a/4": timeout_after(clock, 5),
            "https://a/5": png_response,
        }
        fetcher = make_fetcher(routes, calls, clock=clock)

        assert await fetcher.resolve_one(list(routes), fetcher.deadline_in(20)) is None
        assert calls == ["https://a/1", "https://a/2", "https://a/3", "https://a/4"]

    @pytest.mark.asyncio
    async def test_wall_clock_deadline_respected(self):
        """Slow upstream: total time stays within deadline + one attempt timeout"""
        async def hang(request):
            await asyncio.sleep(10)
            return httpx.Response(200, headers={"content-type": "image/png"}, content=PNG_BYTES)

        routes = {f"https://slow/{i}": hang for i in range(10)}
        fetcher = ResilientFetcher(
            http_client=mock_client(image_handler(routes, [])),
            attempt_timeout=0.2,
            guard_seconds=0.05,
        )

        started = time.monotonic()
        image = await fetcher.resolve_one(list(routes), fetcher.deadline_in(0.5))
        elapsed = time.monotonic() - started

        assert image is None
        assert elapsed < 0.5 + 0.2 + 0.5
