"""Tests for the HTTP prober using httpx.MockTransport."""
import asyncio

import httpx
import pytest

from uptime_engine.services.prober import CONNECTION_FAILED_MESSAGE, TIMEOUT_MESSAGE, ProberService


def prober_for(handler) -> ProberService:
    return ProberService(transport=httpx.MockTransport(handler), user_agent="test-agent/1.0")


@pytest.mark.asyncio
async def test_returns_status_code_and_elapsed():
    prober = prober_for(lambda request: httpx.Response(200))
    outcome = await prober.probe("https://example.com/", 5)
    assert outcome.status_code == 200
    assert outcome.error is None
    assert outcome.elapsed_ms >= 0


@pytest.mark.asyncio
async def test_non_2xx_is_not_an_error_at_this_layer():
    prober = prober_for(lambda request: httpx.Response(503))
    outcome = await prober.probe("https://example.com/", 5)
    assert outcome.status_code == 503
    assert outcome.error is None


@pytest.mark.asyncio
async def test_sends_get_with_user_agent():
    seen = []
    
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200)
    
    await prober_for(handler).probe("https://example.com/status", 5)
    assert len(seen) == 1
    assert seen[0].method == "GET"
    assert seen[0].headers["User-Agent"] == "test-agent/1.0"


@pytest.mark.asyncio
async def test_httpx_timeout_maps_to_timeout_message():
    def handler(request):
        raise httpx.ReadTimeout("read timed out", request=request)
    
    outcome = await prober_for(handler).probe("https://example.com/", 5)
    assert outcome.error == TIMEOUT_MESSAGE
    assert outcome.status_code is None


@pytest.mark.asyncio
async def test_hard_deadline_aborts_slow_response():
    async def handler(request):
        await asyncio.sleep(5)
        return httpx.Response(200)
    
    outcome = await prober_for(handler).probe("https://example.com/", 0.05)
    assert outcome.error == TIMEOUT_MESSAGE
    assert outcome.elapsed_ms < 5000


@pytest.mark.asyncio
async def test_connection_error_uses_underlying_message():
    def handler(request):
        raise httpx.ConnectError("Name or service not known", request=request)
    
    outcome = await prober_for(handler).probe("https://nowhere.invalid/", 5)
    assert outcome.error == "Name or service not known"
    assert outcome.status_code is None


@pytest.mark.asyncio
async def test_connection_error_without_message_falls_back():
    def handler(request):
        raise httpx.ConnectError("", request=request)
    
    outcome = await prober_for(handler).probe("https://nowhere.invalid/", 5)
    assert outcome.error == CONNECTION_FAILED_MESSAGE


@pytest.mark.asyncio
async def test_non_httpx_transport_failure_becomes_error():
    def handler(request):
        raise OverflowError("connect(): port must be 0-65535")
    
    outcome = await prober_for(handler).probe("http://localhost:99999/", 5)
    
    assert outcome.status_code is None
    assert outcome.error == "connect(): port must be 0-65535"
    assert outcome.elapsed_ms >= 0
