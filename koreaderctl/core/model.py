"""Core data models shared by the engine, transports, settings, and CLI."""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType


@dataclass(frozen=True)
class Endpoint:
    host: str
    port: int

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class LogicalCommand:
    id: str
    display_name: str
    description: str
    path: str


@dataclass(frozen=True)
class GamepadButton:
    code: int
    name: str
    label: str


@dataclass(frozen=True)
class ButtonEvent:
    code: int
    pressed: bool


@dataclass(frozen=True)
class ConnectionUnknown:
    pass


@dataclass(frozen=True)
class Connected:
    pass


@dataclass(frozen=True)
class ConnectionFailed:
    reason: str


ConnectionStatus = ConnectionUnknown | Connected | ConnectionFailed


@dataclass(frozen=True)
class DispatchSucceeded:
    command: LogicalCommand

    @property
    def feedback(self) -> str:
        return f"{self.command.display_name} - OK"


@dataclass(frozen=True)
class DispatchFailed:
    command: LogicalCommand
    reason: str

    @property
    def feedback(self) -> str:
        return f"{self.command.display_name} - Failed: {self.reason}"


DispatchOutcome = DispatchSucceeded | DispatchFailed


class EnginePhase(enum.Enum):
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


def _empty_mappings() -> Mapping[int, LogicalCommand]:
    return MappingProxyType({})


@dataclass(frozen=True)
class DispatchState:
    """Immutable snapshot of everything a presentation layer may render."""

    phase: EnginePhase = EnginePhase.LOADING
    endpoint: Endpoint | None = None
    connection_status: ConnectionStatus = field(default_factory=ConnectionUnknown)
    button_mappings: Mapping[int, LogicalCommand] = field(default_factory=_empty_mappings)
    pressed_button: int | None = None
    last_feedback: str | None = None
    is_busy: bool = False
    error: str | None = None

    @property
    def is_ready(self) -> bool:
        return self.phase is EnginePhase.READY
