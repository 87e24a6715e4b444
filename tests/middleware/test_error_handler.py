"""Tests for the JSON error envelope."""

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from lsprobe.errors import LanguageServerRequestError, PortNotFound, ProcessAccessDenied
from lsprobe.middleware.error_handler import register_error_handlers


@pytest.fixture
def app():
    app = FastAPI()
    register_error_handlers(app)

    @app.get("/port")
    async def port():
        raise PortNotFound()

    @app.get("/denied")
    async def denied():
        raise ProcessAccessDenied(4242, "ptrace scope")

    @app.get("/upstream")
    async def upstream():
        raise LanguageServerRequestError("connection refused")

    @app.get("/boom")
    async def boom():
        raise RuntimeError("secret internals")

    return app


@pytest_asyncio.fixture
async def http(app):
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.mark.asyncio
async def test_discovery_error_envelope(http):
    """Discovery errors carry their status and kind in the envelope."""
    resp = await http.get("/port")
    assert resp.status_code == 404
    body = resp.json()
    assert body["error"] is True
    assert body["kind"] == "port_not_found"
    assert body["status_code"] == 404
    assert "timestamp" in body


@pytest.mark.asyncio
async def test_access_denied_is_403(http):
    resp = await http.get("/denied")
    assert resp.status_code == 403
    assert "4242" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_upstream_failure_is_502(http):
    resp = await http.get("/upstream")
    assert resp.status_code == 502
    body = resp.json()
    assert body["kind"] == "language_server_request_failed"
    assert body["upstream_status"] is None


@pytest.mark.asyncio
async def test_unhandled_exception_hides_detail(http):
    """Unexpected errors answer 500 without leaking the exception text."""
    resp = await http.get("/boom")
    assert resp.status_code == 500
    assert "secret internals" not in resp.text


@pytest.mark.asyncio
async def test_unknown_route(http):
    resp = await http.get("/nope")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Not Found"
