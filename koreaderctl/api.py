"""Stable public API for building tooling on top of koreaderctl.

This module is the supported integration surface for third-party callers.
Avoid importing from private/internal modules unless intentionally depending on
non-stable internals.
"""

from __future__ import annotations

from pathlib import Path

from koreaderctl.core.commands import NEXT_PAGE, PREVIOUS_PAGE
from koreaderctl.core.engine import DispatchEngine
from koreaderctl.core.errors import (
    HTTPStatusError,
    InputSourceError,
    InvalidEndpointError,
    KOReaderCtlError,
    MappingError,
    NetworkConnectError,
    NetworkError,
    NetworkTimeoutError,
    SettingsUnavailableError,
    UnexpectedNetworkError,
)
from koreaderctl.core.mapping import InputMapper
from koreaderctl.core.model import (
    ButtonEvent,
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
    GamepadButton,
    LogicalCommand,
)
from koreaderctl.core.service import ClientFactory, ControllerService
from koreaderctl.core.settings import SettingsStore
from koreaderctl.transports.http_client import KOReaderHTTPClient

__all__ = [
    "KOReaderCtlError",
    "InvalidEndpointError",
    "SettingsUnavailableError",
    "MappingError",
    "InputSourceError",
    "NetworkError",
    "NetworkTimeoutError",
    "NetworkConnectError",
    "HTTPStatusError",
    "UnexpectedNetworkError",
    "ButtonEvent",
    "Connected",
    "ConnectionFailed",
    "ConnectionStatus",
    "ConnectionUnknown",
    "DispatchFailed",
    "DispatchOutcome",
    "DispatchState",
    "DispatchSucceeded",
    "Endpoint",
    "EnginePhase",
    "GamepadButton",
    "LogicalCommand",
    "NEXT_PAGE",
    "PREVIOUS_PAGE",
    "DispatchEngine",
    "InputMapper",
    "KOReaderHTTPClient",
    "SettingsStore",
    "Client",
]


class Client:
    """Public client for one-shot control of a KOReader instance.

    A `Client` wraps the settings store, button mapping, and HTTP transport
    behind blocking calls for scripts and simple frontends. Long-running
    input handling should use `DispatchEngine` directly.
    """

    def __init__(
        self,
        *,
        settings_path: Path | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._service = ControllerService(
            settings=SettingsStore(settings_path),
            client_factory=client_factory,
        )

    @property
    def settings(self) -> SettingsStore:
        return self._service.settings

    def list_commands(self) -> list[LogicalCommand]:
        return self._service.list_commands()

    def get_endpoint(self) -> Endpoint:
        return self._service.endpoint()

    def save_endpoint(self, host: str, port: int | str) -> Endpoint:
        return self._service.save_endpoint(host, port)

    def probe(self) -> Endpoint:
        return self._service.probe()

    def send_command(self, command_id: str) -> DispatchOutcome:
        return self._service.send_command(command_id)

    def button_mappings(self) -> dict[str, str | None]:
        return {
            button.name: command.id if command else None
            for button, command in self._service.list_buttons()
        }

    def set_button_mapping(self, button_name: str, command_id: str | None) -> GamepadButton:
        return self._service.set_button_mapping(button_name, command_id)

