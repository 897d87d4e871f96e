from __future__ import annotations

import httpx
import pytest

from koreaderctl.core.commands import NEXT_PAGE, PREVIOUS_PAGE
from koreaderctl.core.errors import (
    HTTPStatusError,
    InvalidEndpointError,
    NetworkConnectError,
    NetworkTimeoutError,
    UnexpectedNetworkError,
)
from koreaderctl.core.model import Endpoint
from tests.helpers import RecordingReader

ENDPOINT = Endpoint(host="10.0.0.5", port=8080)


@pytest.mark.asyncio
async def test_send_command_uses_exact_wire_paths() -> None:
    reader = RecordingReader()
    async with reader.client() as client:
        await client.send_command(ENDPOINT, PREVIOUS_PAGE)
        await client.send_command(ENDPOINT, NEXT_PAGE)

    assert reader.urls() == [
        "http://10.0.0.5:8080/koreader/event/GotoViewRel/-1",
        "http://10.0.0.5:8080/koreader/event/GotoViewRel/1",
    ]
    assert all(r.method == "GET" and r.content == b"" for r in reader.requests)


@pytest.mark.asyncio
async def test_send_command_accepts_any_2xx() -> None:
    reader = RecordingReader(lambda request: httpx.Response(204))
    async with reader.client() as client:
        await client.send_command(ENDPOINT, NEXT_PAGE)


@pytest.mark.asyncio
async def test_send_command_404_is_an_error() -> None:
    reader = RecordingReader(lambda request: httpx.Response(404))
    async with reader.client() as client:
        with pytest.raises(HTTPStatusError) as exc:
            await client.send_command(ENDPOINT, NEXT_PAGE)

    assert exc.value.status_code == 404
    assert str(exc.value) == "HTTP 404: Not Found"


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [200, 404])
async def test_probe_treats_2xx_and_404_as_reachable(status: int) -> None:
    reader = RecordingReader(lambda request: httpx.Response(status))
    async with reader.client() as client:
        await client.probe(ENDPOINT)

    assert reader.urls() == ["http://10.0.0.5:8080/"]


@pytest.mark.asyncio
async def test_probe_500_is_an_error() -> None:
    reader = RecordingReader(lambda request: httpx.Response(500))
    async with reader.client() as client:
        with pytest.raises(HTTPStatusError) as exc:
            await client.probe(ENDPOINT)

    assert exc.value.status_code == 500
    assert str(exc.value) == "HTTP 500"


@pytest.mark.asyncio
async def test_probe_timeout_maps_to_network_timeout() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("read timed out", request=request)

    async with RecordingReader(handler).client() as client:
        with pytest.raises(NetworkTimeoutError):
            await client.probe(ENDPOINT)


@pytest.mark.asyncio
async def test_probe_connection_refused_maps_to_connect_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("[Errno 111] Connection refused", request=request)

    async with RecordingReader(handler).client() as client:
        with pytest.raises(NetworkConnectError):
            await client.probe(ENDPOINT)


@pytest.mark.asyncio
async def test_other_transport_errors_are_unexpected() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.RemoteProtocolError("server hung up", request=request)

    async with RecordingReader(handler).client() as client:
        with pytest.raises(UnexpectedNetworkError):
            await client.send_command(ENDPOINT, NEXT_PAGE)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "endpoint",
    [
        Endpoint(host="999.0.0.1", port=8080),
        Endpoint(host="10.0.0", port=8080),
        Endpoint(host="10.0.0.5", port=0),
        Endpoint(host="10.0.0.5", port=65536),
    ],
)
async def test_invalid_endpoint_fails_without_network(endpoint: Endpoint) -> None:
    reader = RecordingReader()
    async with reader.client() as client:
        with pytest.raises(InvalidEndpointError):
            await client.send_command(endpoint, NEXT_PAGE)
        with pytest.raises(InvalidEndpointError):
            await client.probe(endpoint)

    assert reader.requests == []


def test_client_uses_five_second_timeouts() -> None:
    client = RecordingReader().client()
    timeout = client._http.timeout
    assert (timeout.connect, timeout.read, timeout.write) == (5.0, 5.0, 5.0)
