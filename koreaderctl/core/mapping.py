"""Gamepad button catalogue and button-to-command mapping."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from types import MappingProxyType

from koreaderctl.core.commands import NEXT_PAGE, PREVIOUS_PAGE, get_command
from koreaderctl.core.errors import MappingError
from koreaderctl.core.model import GamepadButton, LogicalCommand

LOGGER = logging.getLogger(__name__)

# Linux input event codes (linux/input-event-codes.h).
BTN_SOUTH = 0x130
BTN_EAST = 0x131
BTN_NORTH = 0x133
BTN_WEST = 0x134
BTN_TL = 0x136
BTN_TR = 0x137
BTN_TL2 = 0x138
BTN_TR2 = 0x139
BTN_SELECT = 0x13A
BTN_START = 0x13B
BTN_DPAD_UP = 0x220
BTN_DPAD_DOWN = 0x221
BTN_DPAD_LEFT = 0x222
BTN_DPAD_RIGHT = 0x223

AVAILABLE_BUTTONS: tuple[GamepadButton, ...] = (
    GamepadButton(BTN_DPAD_UP, "DPAD_UP", "D-Up"),
    GamepadButton(BTN_DPAD_DOWN, "DPAD_DOWN", "D-Down"),
    GamepadButton(BTN_DPAD_LEFT, "DPAD_LEFT", "D-Left"),
    GamepadButton(BTN_DPAD_RIGHT, "DPAD_RIGHT", "D-Right"),
    GamepadButton(BTN_SOUTH, "BUTTON_A", "A"),
    GamepadButton(BTN_EAST, "BUTTON_B", "B"),
    GamepadButton(BTN_NORTH, "BUTTON_X", "X"),
    GamepadButton(BTN_WEST, "BUTTON_Y", "Y"),
    GamepadButton(BTN_TL, "L1", "L1"),
    GamepadButton(BTN_TL2, "L2", "L2"),
    GamepadButton(BTN_TR, "R1", "R1"),
    GamepadButton(BTN_TR2, "R2", "R2"),
    GamepadButton(BTN_SELECT, "SELECT", "-"),
    GamepadButton(BTN_START, "START", "+"),
)

ALLOWED_CODES: frozenset[int] = frozenset(b.code for b in AVAILABLE_BUTTONS)

_BY_NAME = {b.name: b for b in AVAILABLE_BUTTONS}
_BY_CODE = {b.code: b for b in AVAILABLE_BUTTONS}


def default_mappings() -> dict[int, LogicalCommand]:
    return {
        BTN_DPAD_LEFT: PREVIOUS_PAGE,
        BTN_DPAD_RIGHT: NEXT_PAGE,
    }


def button_for_name(name: str) -> GamepadButton:
    button = _BY_NAME.get(name.strip().upper())
    if button is None:
        available = ", ".join(b.name for b in AVAILABLE_BUTTONS)
        raise MappingError(f"Unknown button '{name}'. Available: {available}")
    return button


def button_for_code(code: int) -> GamepadButton | None:
    return _BY_CODE.get(code)


def button_label(code: int) -> str:
    button = _BY_CODE.get(code)
    return button.label if button else f"code {code}"


class InputMapper:
    """Resolves raw input codes to logical commands.

    Codes are not validated here; anything without an entry resolves to
    ``None``. Filtering to real controller buttons is the input source's job.
    """

    def __init__(self, mappings: Mapping[int, LogicalCommand] | None = None) -> None:
        self._mappings: dict[int, LogicalCommand] = (
            dict(mappings) if mappings is not None else default_mappings()
        )

    def resolve(self, code: int) -> LogicalCommand | None:
        return self._mappings.get(code)

    def set_mapping(self, code: int, command: LogicalCommand | None) -> None:
        if command is None:
            self._mappings.pop(code, None)
        else:
            self._mappings[code] = command

    def mappings(self) -> Mapping[int, LogicalCommand]:
        return MappingProxyType(dict(self._mappings))

    @classmethod
    def from_names(cls, names: Mapping[str, str | None]) -> InputMapper:
        """Build a mapper from ``{"DPAD_LEFT": "previous_page"}`` style entries.

        Entries listed with a null command remove the corresponding default.
        """
        mapper = cls()
        for button_name, command_id in names.items():
            button = button_for_name(button_name)
            if command_id is None:
                mapper.set_mapping(button.code, None)
                continue
            command = get_command(command_id)
            existing = mapper.resolve(button.code)
            if existing is not None and existing != command:
                LOGGER.warning(
                    "Configured mapping %s -> %s overrides default %s",
                    button.name,
                    command.id,
                    existing.id,
                )
            mapper.set_mapping(button.code, command)
        return mapper

    def to_names(self) -> dict[str, str | None]:
        """Inverse of `from_names`; removed defaults are kept as null entries."""
        names: dict[str, str | None] = {}
        for code in default_mappings():
            if code not in self._mappings:
                names[_BY_CODE[code].name] = None
        for code, command in sorted(self._mappings.items()):
            button = _BY_CODE.get(code)
            if button is None:
                continue
            names[button.name] = command.id
        return names
