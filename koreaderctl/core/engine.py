"""Dispatch engine: turns button presses into KOReader requests.

The engine owns a single `DispatchState` and is its only writer. Input
handlers call `press`/`release` synchronously from the event loop; network
work runs in background tasks whose results fold back into the state.

Two independent guards sit in front of every dispatch:

* busy: while a request is in flight, any further dispatch is rejected.
* debounce: a dispatch within `debounce_s` of the previous dispatch start is
  swallowed, which absorbs key-repeat bursts.

Both cases still report the press as consumed.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import time
from collections.abc import Callable
from typing import assert_never

from koreaderctl.core.errors import (
    InvalidEndpointError,
    KOReaderCtlError,
    NetworkError,
    SettingsUnavailableError,
)
from koreaderctl.core.mapping import InputMapper, button_label
from koreaderctl.core.model import (
    Connected,
    ConnectionFailed,
    ConnectionStatus,
    ConnectionUnknown,
    DispatchFailed,
    DispatchOutcome,
    DispatchState,
    DispatchSucceeded,
    Endpoint,
    EnginePhase,
    LogicalCommand,
)
from koreaderctl.core.observable import StateListener, StateStore
from koreaderctl.core.settings import SettingsStore
from koreaderctl.transports.base import RemoteClient

LOGGER = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_S = 0.3
DEFAULT_FEEDBACK_TTL_S = 2.0


class DispatchDecision(enum.Enum):
    ISSUED = "issued"
    DEBOUNCED = "debounced"
    REJECTED_BUSY = "rejected_busy"


class DispatchEngine:
    def __init__(
        self,
        settings: SettingsStore,
        client: RemoteClient | None = None,
        *,
        mapper: InputMapper | None = None,
        debounce_s: float = DEFAULT_DEBOUNCE_S,
        feedback_ttl_s: float = DEFAULT_FEEDBACK_TTL_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if client is None:
            from koreaderctl.transports.http_client import KOReaderHTTPClient

            client = KOReaderHTTPClient()
            self._owns_client = True
        else:
            self._owns_client = False
        self.settings = settings
        self.client = client
        self.mapper = mapper or InputMapper()
        self.debounce_s = debounce_s
        self.feedback_ttl_s = feedback_ttl_s
        self._clock = clock

        self._store = StateStore(DispatchState(button_mappings=self.mapper.mappings()))
        self._last_dispatch_start: float | None = None
        self._probe_task: asyncio.Task[None] | None = None
        self._feedback_task: asyncio.Task[None] | None = None
        self._dispatch_tasks: set[asyncio.Task[None]] = set()
        self._unsubscribe_settings: Callable[[], None] | None = None

    async def __aenter__(self) -> DispatchEngine:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def state(self) -> DispatchState:
        return self._store.snapshot

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        return self._store.subscribe(listener)

    async def start(self) -> None:
        try:
            endpoint = self.settings.load()
        except SettingsUnavailableError as exc:
            LOGGER.warning("Settings unavailable: %s", exc)
            self._store.update(phase=EnginePhase.ERROR, error=f"Failed to load settings: {exc}")
            return

        self._store.update(phase=EnginePhase.READY, endpoint=endpoint, error=None)
        if self._unsubscribe_settings is None:
            self._unsubscribe_settings = self.settings.subscribe(self._on_endpoint_changed)
        self.check_connection()

    async def close(self) -> None:
        if self._unsubscribe_settings is not None:
            self._unsubscribe_settings()
            self._unsubscribe_settings = None

        # In-flight dispatches are never cancelled; they must settle to clear is_busy.
        if self._dispatch_tasks:
            await asyncio.gather(*self._dispatch_tasks, return_exceptions=True)

        cancelled = [t for t in (self._probe_task, self._feedback_task) if t is not None]
        for task in cancelled:
            task.cancel()
        if cancelled:
            await asyncio.gather(*cancelled, return_exceptions=True)
        self._probe_task = None
        self._feedback_task = None

        if self._owns_client:
            await self.client.aclose()

    def press(self, code: int) -> bool:
        """Handle a button press; return True if the press was consumed."""
        state = self._store.snapshot
        if state.phase is not EnginePhase.READY:
            return False

        command = self.mapper.resolve(code)
        if command is None:
            self._store.update(pressed_button=code)
            return False

        decision = self._gate()
        if decision is not DispatchDecision.ISSUED:
            LOGGER.debug("%s on %s %s", command.display_name, button_label(code), decision.value)
            self._store.update(pressed_button=code)
            return True

        endpoint = self.settings.current()
        self._store.update(pressed_button=code, is_busy=True)
        LOGGER.debug("Dispatching %s to %s", command.id, endpoint)
        task = asyncio.get_running_loop().create_task(self._dispatch(command, endpoint))
        self._dispatch_tasks.add(task)
        task.add_done_callback(self._dispatch_tasks.discard)
        return True

    def release(self, code: int) -> None:
        self._store.update_if(lambda s: s.pressed_button == code, pressed_button=None)

    def set_button_mapping(self, code: int, command: LogicalCommand | None) -> None:
        self.mapper.set_mapping(code, command)
        self._store.update(button_mappings=self.mapper.mappings())

    def check_connection(self) -> None:
        """Start a fresh probe, cancelling any probe still in flight."""
        if self._probe_task is not None and not self._probe_task.done():
            self._probe_task.cancel()
        if self._store.snapshot.phase is not EnginePhase.READY:
            self._probe_task = None
            return
        self._probe_task = asyncio.get_running_loop().create_task(self._probe())

    def _gate(self) -> DispatchDecision:
        if self._store.snapshot.is_busy:
            return DispatchDecision.REJECTED_BUSY
        now = self._clock()
        if self._last_dispatch_start is not None and now - self._last_dispatch_start < self.debounce_s:
            return DispatchDecision.DEBOUNCED
        self._last_dispatch_start = now
        return DispatchDecision.ISSUED

    async def _dispatch(self, command: LogicalCommand, endpoint: Endpoint) -> None:
        outcome: DispatchOutcome
        try:
            await self.client.send_command(endpoint, command)
            outcome = DispatchSucceeded(command)
        except KOReaderCtlError as exc:
            outcome = DispatchFailed(command, str(exc))
        except Exception as exc:
            LOGGER.exception("Unexpected error sending %s to %s", command.id, endpoint)
            outcome = DispatchFailed(command, f"Unexpected error: {exc}")
        message = _feedback_for(outcome)
        self._store.update(is_busy=False, last_feedback=message)
        self._schedule_feedback_expiry(message)

    def _schedule_feedback_expiry(self, message: str) -> None:
        if self._feedback_task is not None and not self._feedback_task.done():
            self._feedback_task.cancel()
        self._feedback_task = asyncio.get_running_loop().create_task(self._expire_feedback(message))

    async def _expire_feedback(self, message: str) -> None:
        await asyncio.sleep(self.feedback_ttl_s)
        self._store.update_if(lambda s: s.last_feedback == message, last_feedback=None)

    async def _probe(self) -> None:
        endpoint = self.settings.current()
        status: ConnectionStatus
        try:
            await self.client.probe(endpoint)
            status = Connected()
        except (InvalidEndpointError, NetworkError) as exc:
            status = ConnectionFailed(str(exc))
        except Exception as exc:
            LOGGER.exception("Unexpected error probing %s", endpoint)
            status = ConnectionFailed(f"Unexpected error: {exc}")
        self._store.update(connection_status=status)
        LOGGER.debug("Connection status for %s: %s", endpoint, describe_connection(status))

    def _on_endpoint_changed(self, endpoint: Endpoint) -> None:
        if self._store.snapshot.phase is EnginePhase.LOADING:
            return
        self._store.update(phase=EnginePhase.READY, endpoint=endpoint, error=None)
        self.check_connection()


def _feedback_for(outcome: DispatchOutcome) -> str:
    if isinstance(outcome, DispatchSucceeded):
        return outcome.feedback
    if isinstance(outcome, DispatchFailed):
        LOGGER.warning("%s failed: %s", outcome.command.display_name, outcome.reason)
        return outcome.feedback
    assert_never(outcome)


def describe_connection(status: ConnectionStatus) -> str:
    if isinstance(status, Connected):
        return "Connected"
    if isinstance(status, ConnectionFailed):
        return f"Error: {status.reason}"
    if isinstance(status, ConnectionUnknown):
        return "Unknown"
    assert_never(status)
