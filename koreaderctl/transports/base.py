"""Remote client interface."""

from __future__ import annotations

from typing import Protocol

from koreaderctl.core.model import Endpoint, LogicalCommand


class RemoteClient(Protocol):
    async def send_command(self, endpoint: Endpoint, command: LogicalCommand) -> None:
        """Trigger a command on the reader; raise a NetworkError on failure."""

    async def probe(self, endpoint: Endpoint) -> None:
        """Check that the reader answers at all; raise a NetworkError if not."""

    async def aclose(self) -> None:
        """Release any pooled connections."""
