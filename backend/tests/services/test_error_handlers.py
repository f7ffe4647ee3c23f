"""Error handlers — domain errors become structured JSON, logged at their severity.

Tests cover:
    - DuplicateToolError → 409 with the existing tool, logged at INFO
    - ResourceNotFoundError → 404, logged at WARNING
    - Unhandled exceptions → 500 INTERNAL_ERROR without internal details
"""

import logging

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from toolfinder.api.error_handlers import register_error_handlers
from toolfinder.core.errors import DuplicateToolError, ResourceNotFoundError

EXISTING = {"id": "t-1", "title": "Locofy", "url": "https://www.locofy.ai/"}


def _app() -> FastAPI:
    app = FastAPI()
    register_error_handlers(app)

    @app.get("/duplicate")
    async def duplicate():
        raise DuplicateToolError("https://www.locofy.ai/", EXISTING)

    @app.get("/missing")
    async def missing():
        raise ResourceNotFoundError("Tool", "t-9")

    @app.get("/boom")
    async def boom():
        raise RuntimeError("secret connection string")

    return app


@pytest.fixture
async def handler_client():
    transport = ASGITransport(app=_app(), raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


def _handler_records(caplog) -> list[logging.LogRecord]:
    return [r for r in caplog.records if r.name == "toolfinder.api.error_handlers"]


async def test_duplicate_is_409_and_logged_as_info(handler_client, caplog):
    caplog.set_level(logging.INFO, logger="toolfinder.api.error_handlers")

    res = await handler_client.get("/duplicate")

    assert res.status_code == 409
    error = res.json()["error"]
    assert error["code"] == "DUPLICATE_TOOL"
    assert error["tool"] == EXISTING
    assert [r.levelno for r in _handler_records(caplog)] == [logging.INFO]


async def test_not_found_is_404_and_logged_as_warning(handler_client, caplog):
    caplog.set_level(logging.INFO, logger="toolfinder.api.error_handlers")

    res = await handler_client.get("/missing")

    assert res.status_code == 404
    assert [r.levelno for r in _handler_records(caplog)] == [logging.WARNING]


async def test_unhandled_exception_hides_details(handler_client):
    res = await handler_client.get("/boom")

    assert res.status_code == 500
    assert res.json()["error"]["code"] == "INTERNAL_ERROR"
    assert "secret" not in res.text
