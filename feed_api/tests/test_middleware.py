"""Tests for the robots.txt and request-logging middleware."""

from __future__ import annotations

import logging

import pytest
from httpx import ASGITransport, AsyncClient

from feed_api.main import create_app
from feed_api.middleware.robots import ROBOTS_BODY


class TestRobots:
    @pytest.mark.asyncio
    async def test_disallow_all(self, client: AsyncClient):
        resp = await client.get("/robots.txt")

        assert resp.status_code == 200
        assert resp.text == "User-agent: *\r\nDisallow: /\r\n"
        assert resp.headers["content-type"].startswith("text/plain")

    @pytest.mark.asyncio
    async def test_disabled(self, composition, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("API_ROBOTS_DISALLOW_ALL", "false")
        app = create_app()
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            resp = await ac.get("/robots.txt")
        assert resp.text != ROBOTS_BODY
        assert resp.status_code == 404


class TestRequestLogging:
    @pytest.mark.asyncio
    async def test_correlation_id_echoed(self, client: AsyncClient):
        resp = await client.get("/health", headers={"X-Correlation-ID": "req-42"})
        assert resp.headers["X-Correlation-ID"] == "req-42"

    @pytest.mark.asyncio
    async def test_correlation_id_generated(self, client: AsyncClient):
        resp = await client.get("/health")
        assert len(resp.headers["X-Correlation-ID"]) == 36

    @pytest.mark.asyncio
    async def test_api_key_masked(self, client: AsyncClient, caplog: pytest.LogCaptureFixture):
        with caplog.at_level(logging.INFO, logger="feed_api.access"):
            await client.get("/health", headers={"X-NuGet-ApiKey": "top-secret"})

        records = [r for r in caplog.records if r.name == "feed_api.access"]
        assert records
        headers = records[-1].request["headers"]
        assert headers["x-nuget-apikey"] == "***"
        assert "top-secret" not in caplog.text

    @pytest.mark.asyncio
    async def test_not_found_logged_as_warning(self, client: AsyncClient, caplog: pytest.LogCaptureFixture):
        with caplog.at_level(logging.INFO, logger="feed_api.access"):
            await client.get("/v3/package/missing/index.json")

        record = [r for r in caplog.records if r.name == "feed_api.access"][-1]
        assert record.levelno == logging.WARNING
        assert record.request["status_code"] == 404
