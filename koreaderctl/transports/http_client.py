"""KOReader HTTP control transport implementation using httpx."""

from __future__ import annotations

import logging

import httpx

from koreaderctl.core.endpoint import validate_endpoint
from koreaderctl.core.errors import (
    HTTPStatusError,
    NetworkConnectError,
    NetworkTimeoutError,
    UnexpectedNetworkError,
)
from koreaderctl.core.model import Endpoint, LogicalCommand

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 5.0


class KOReaderHTTPClient:
    """Issues KOReader control requests over plain HTTP GET.

    A single `httpx.AsyncClient` is shared between calls; it is safe to run
    a probe and a command concurrently on the same event loop.
    """

    def __init__(
        self,
        *,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout_s = timeout_s
        self._http = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_s),
            transport=transport,
            follow_redirects=False,
        )

    async def __aenter__(self) -> KOReaderHTTPClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def send_command(self, endpoint: Endpoint, command: LogicalCommand) -> None:
        validate_endpoint(endpoint)
        url = f"{endpoint.base_url}{command.path}"
        LOGGER.debug("Sending %s request: %s", command.id, url)

        response = await self._get(url)
        if not response.is_success:
            LOGGER.warning(
                "%s failed: HTTP %s: %s", command.display_name, response.status_code, response.reason_phrase
            )
            raise HTTPStatusError(
                response.status_code,
                f"HTTP {response.status_code}: {response.reason_phrase}",
            )
        LOGGER.debug("%s succeeded: HTTP %s", command.display_name, response.status_code)

    async def probe(self, endpoint: Endpoint) -> None:
        validate_endpoint(endpoint)
        url = f"{endpoint.base_url}/"
        LOGGER.debug("Probing %s", url)

        response = await self._get(url)
        # KOReader has no handler at "/", so 404 still proves the server is up.
        if response.is_success or response.status_code == 404:
            LOGGER.debug("Probe succeeded: HTTP %s", response.status_code)
            return
        LOGGER.warning("Probe of %s failed: HTTP %s", endpoint, response.status_code)
        raise HTTPStatusError(response.status_code, f"HTTP {response.status_code}")

    async def _get(self, url: str) -> httpx.Response:
        try:
            return await self._http.get(url)
        except httpx.TimeoutException as exc:
            LOGGER.warning("Request to %s timed out after %ss", url, self.timeout_s)
            raise NetworkTimeoutError(f"Timed out after {self.timeout_s:g}s") from exc
        except httpx.ConnectError as exc:
            LOGGER.warning("Cannot connect to %s: %s", url, exc)
            raise NetworkConnectError("Cannot connect to server") from exc
        except httpx.HTTPError as exc:
            LOGGER.warning("Network error requesting %s: %s", url, exc)
            raise UnexpectedNetworkError(f"Network error: {exc}") from exc
