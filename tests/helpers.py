from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path

import httpx

from koreaderctl.core.engine import DispatchEngine
from koreaderctl.transports.http_client import KOReaderHTTPClient

Handler = Callable[[httpx.Request], object]


class FakeClock:
    def __init__(self, now: float = 100.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingReader:
    """Stands in for KOReader: records every request and answers via a handler."""

    def __init__(self, handler: Handler | None = None) -> None:
        self.requests: list[httpx.Request] = []
        self.handler = handler or (lambda request: httpx.Response(200))

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.handler(request)
        if asyncio.iscoroutine(response):
            response = await response
        return response

    def urls(self, path_prefix: str = "") -> list[str]:
        return [str(r.url) for r in self.requests if r.url.path.startswith(path_prefix)]

    def command_urls(self) -> list[str]:
        return self.urls("/koreader/")

    def client(self) -> KOReaderHTTPClient:
        return KOReaderHTTPClient(transport=httpx.MockTransport(self))


def write_settings(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


async def drain(engine: DispatchEngine) -> None:
    """Wait until in-flight dispatches and the current probe have settled."""
    for _ in range(10):
        pending = list(engine._dispatch_tasks)
        if engine._probe_task is not None and not engine._probe_task.done():
            pending.append(engine._probe_task)
        if not pending:
            return
        await asyncio.gather(*pending, return_exceptions=True)


