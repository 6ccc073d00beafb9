"""
Tests for the HTTP fetch provider with a mocked aiohttp session
"""

from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from prefetch_pool.core.errors import ErrorCode, FetchError
from prefetch_pool.providers.http_provider import HttpFetchProvider


def mock_response(status=200, json_body=None, text=""):
    response = MagicMock()
    response.status = status
    response.json = AsyncMock(return_value=json_body)
    response.text = AsyncMock(return_value=text)
    response.__aenter__ = AsyncMock(return_value=response)
    response.__aexit__ = AsyncMock(return_value=None)
    return response


@pytest.fixture
def provider():
    provider = HttpFetchProvider("https://items.example.com/next/{key}", headers={"X-App": "demo"})
    provider.session = MagicMock()
    return provider


def test_url_template_requires_key():
    with pytest.raises(ValueError):
        HttpFetchProvider("https://items.example.com/next")


def test_url_for(provider):
    assert provider.url_for("home_feed") == "https://items.example.com/next/home_feed"


@pytest.mark.asyncio
async def test_fetch_returns_json(provider):
    provider.session.get = MagicMock(return_value=mock_response(json_body={"id": "ad-1"}))

    item = await provider.fetch("home_feed")

    assert item == {"id": "ad-1"}
    provider.session.get.assert_called_once_with("https://items.example.com/next/home_feed")
    assert provider.request_count == 1
    assert provider.error_count == 0


@pytest.mark.asyncio
async def test_empty_body_is_none(provider):
    provider.session.get = MagicMock(return_value=mock_response(json_body=None))

    assert await provider.fetch("home_feed") is None


@pytest.mark.asyncio
async def test_http_error_status(provider):
    provider.session.get = MagicMock(return_value=mock_response(status=503, text="upstream busy"))

    with pytest.raises(FetchError) as exc_info:
        await provider.fetch("home_feed")

    error = exc_info.value
    assert error.code == ErrorCode.FETCH_HTTP_ERROR
    assert error.data == {"status": 503, "body": "upstream busy", "key": "home_feed"}
    assert provider.error_count == 1


@pytest.mark.asyncio
async def test_client_error_is_wrapped(provider):
    provider.session.get = MagicMock(side_effect=aiohttp.ClientConnectionError("refused"))

    with pytest.raises(FetchError) as exc_info:
        await provider.fetch("home_feed")

    assert exc_info.value.code == ErrorCode.FETCH_FAILED
    assert isinstance(exc_info.value.cause, aiohttp.ClientError)


@pytest.mark.asyncio
async def test_session_lifecycle():
    provider = HttpFetchProvider("http://localhost:9/{key}", timeout=2)

    await provider.initialize()
    session = provider.session
    assert isinstance(session, aiohttp.ClientSession)

    # Second initialize keeps the same session
    await provider.initialize()
    assert provider.session is session

    await provider.shutdown()
    assert provider.session is None
    assert session.closed
