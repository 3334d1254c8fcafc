from __future__ import annotations

import asyncio

import httpx
import pytest
from locate_engine.models import BoundingBox

from locator_api.proxy import (
    UpstreamHttpError,
    UpstreamMapProxy,
    UpstreamNetworkError,
    UpstreamStream,
    UpstreamTimeout,
)

BBOX = BoundingBox(min_lon=3.37, min_lat=6.52, max_lon=3.38, max_lat=6.53)


class RecordingMetrics:
    def __init__(self) -> None:
        self.map_outcomes: list[str] = []

    def observe_provider(self, provider_id: str, outcome: str, latency_ms: float) -> None:
        raise AssertionError("not used")

    def observe_map_outcome(self, outcome: str) -> None:
        self.map_outcomes.append(outcome)


def build_proxy(handler, timeout_seconds: float = 1.0, metrics=None):
    transport = httpx.MockTransport(handler)
    clients: list[httpx.AsyncClient] = []

    def factory() -> httpx.AsyncClient:
        client = httpx.AsyncClient(transport=transport)
        clients.append(client)
        return client

    proxy = UpstreamMapProxy(
        endpoint="https://osm.test/api/0.6/map",
        user_agent="locator-test/1.0",
        timeout_seconds=timeout_seconds,
        client_factory=factory,
        metrics=metrics,
    )
    return proxy, clients


def test_build_url_keeps_bbox_literal() -> None:
    proxy, _ = build_proxy(lambda request: httpx.Response(200))

    assert proxy.build_url(BBOX) == "https://osm.test/api/0.6/map?bbox=3.37,6.52,3.38,6.53"


@pytest.mark.asyncio
async def test_success_streams_body_and_releases_connection() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(
            200,
            headers={"Content-Type": "text/xml; charset=utf-8"},
            content=b"<osm version='0.6'></osm>",
        )

    metrics = RecordingMetrics()
    proxy, clients = build_proxy(handler, metrics=metrics)
    outcome = await proxy.fetch_map(BBOX)

    assert isinstance(outcome, UpstreamStream)
    assert outcome.content_type == "text/xml; charset=utf-8"
    body = b"".join([chunk async for chunk in outcome.body])
    assert body == b"<osm version='0.6'></osm>"
    assert clients[0].is_closed
    assert captured[0].headers["User-Agent"] == "locator-test/1.0"
    assert captured[0].url.params["bbox"] == "3.37,6.52,3.38,6.53"
    assert metrics.map_outcomes == ["UpstreamStream"]


@pytest.mark.asyncio
async def test_missing_content_type_defaults_to_xml() -> None:
    proxy, _ = build_proxy(lambda request: httpx.Response(200, content=b"<osm/>"))

    outcome = await proxy.fetch_map(BBOX)

    assert isinstance(outcome, UpstreamStream)
    assert outcome.content_type == "application/xml; charset=utf-8"
    assert b"".join([chunk async for chunk in outcome.body]) == b"<osm/>"


@pytest.mark.asyncio
async def test_error_status_truncates_detail() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(509, text="x" * 800)

    proxy, clients = build_proxy(handler)
    outcome = await proxy.fetch_map(BBOX)

    assert isinstance(outcome, UpstreamHttpError)
    assert outcome.status == 509
    assert outcome.detail == "x" * 500
    assert clients[0].is_closed


@pytest.mark.asyncio
async def test_timeout_releases_pending_request() -> None:
    async def handler(_request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(1)
        return httpx.Response(200, content=b"late")

    metrics = RecordingMetrics()
    proxy, clients = build_proxy(handler, timeout_seconds=0.05, metrics=metrics)
    outcome = await proxy.fetch_map(BBOX)

    assert outcome == UpstreamTimeout(timeout_seconds=0.05)
    assert clients[0].is_closed
    assert metrics.map_outcomes == ["UpstreamTimeout"]


@pytest.mark.asyncio
async def test_network_failure_is_reported() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    proxy, clients = build_proxy(handler)
    outcome = await proxy.fetch_map(BBOX)

    assert outcome == UpstreamNetworkError(message="connection refused")
    assert clients[0].is_closed


@pytest.mark.asyncio
async def test_unread_stream_can_be_released() -> None:
    proxy, clients = build_proxy(lambda request: httpx.Response(200, content=b"<osm/>"))

    outcome = await proxy.fetch_map(BBOX)
    assert isinstance(outcome, UpstreamStream)
    assert not clients[0].is_closed

    await outcome.aclose()

    assert clients[0].is_closed
