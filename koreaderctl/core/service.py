"""Synchronous service layer used by the CLI and the public API."""

from __future__ import annotations

import asyncio
import importlib.util
import sys
from collections.abc import Awaitable, Callable

from koreaderctl.core.commands import all_commands, get_command
from koreaderctl.core.errors import KOReaderCtlError
from koreaderctl.core.mapping import AVAILABLE_BUTTONS, InputMapper, button_for_name
from koreaderctl.core.model import (
    DispatchFailed,
    DispatchOutcome,
    DispatchSucceeded,
    Endpoint,
    GamepadButton,
    LogicalCommand,
)
from koreaderctl.core.settings import SettingsStore
from koreaderctl.transports.base import RemoteClient
from koreaderctl.transports.http_client import KOReaderHTTPClient

ClientFactory = Callable[[], RemoteClient]


class ControllerService:
    def __init__(
        self,
        *,
        settings: SettingsStore | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self.settings = settings or SettingsStore()
        self.client_factory: ClientFactory = client_factory or KOReaderHTTPClient
        self.runtime_warnings = _runtime_warnings()

    def list_commands(self) -> list[LogicalCommand]:
        return all_commands()

    def endpoint(self) -> Endpoint:
        return self.settings.load()

    def save_endpoint(self, host: str, port: int | str) -> Endpoint:
        return self.settings.save(host, port)

    def load_mapper(self) -> InputMapper:
        return InputMapper.from_names(self.settings.load_buttons())

    def list_buttons(self) -> list[tuple[GamepadButton, LogicalCommand | None]]:
        mapper = self.load_mapper()
        return [(button, mapper.resolve(button.code)) for button in AVAILABLE_BUTTONS]

    def set_button_mapping(self, button_name: str, command_id: str | None) -> GamepadButton:
        button = button_for_name(button_name)
        command = get_command(command_id) if command_id is not None else None
        mapper = self.load_mapper()
        mapper.set_mapping(button.code, command)
        self.settings.save_buttons(mapper.to_names())
        return button

    def probe(self) -> Endpoint:
        """Probe the configured reader; raises a NetworkError if unreachable."""
        endpoint = self.settings.load()
        asyncio.run(self._with_client(lambda client: client.probe(endpoint)))
        return endpoint

    def send_command(self, command_id: str) -> DispatchOutcome:
        command = get_command(command_id)
        endpoint = self.settings.load()
        try:
            asyncio.run(self._with_client(lambda client: client.send_command(endpoint, command)))
        except KOReaderCtlError as exc:
            return DispatchFailed(command, str(exc))
        return DispatchSucceeded(command)

    async def _with_client(self, call: Callable[[RemoteClient], Awaitable[None]]) -> None:
        client = self.client_factory()
        try:
            await call(client)
        finally:
            await client.aclose()


def _runtime_warnings() -> tuple[str, ...]:
    warnings: list[str] = []
    if sys.platform.startswith("linux") and importlib.util.find_spec("evdev") is None:
        warnings.append(
            "python-evdev is not installed; 'koreaderctl run' needs the gamepad extra."
        )
    return tuple(warnings)
