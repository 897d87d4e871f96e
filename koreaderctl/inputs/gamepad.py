"""Gamepad input source backed by Linux evdev."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any

from koreaderctl.core.engine import DispatchEngine
from koreaderctl.core.errors import InputSourceError
from koreaderctl.core.mapping import (
    ALLOWED_CODES,
    BTN_DPAD_DOWN,
    BTN_DPAD_LEFT,
    BTN_DPAD_RIGHT,
    BTN_DPAD_UP,
    BTN_SOUTH,
    button_label,
)
from koreaderctl.core.model import ButtonEvent

LOGGER = logging.getLogger(__name__)

EV_KEY = 0x01
EV_ABS = 0x03
ABS_HAT0X = 0x10
ABS_HAT0Y = 0x11

KEY_RELEASE = 0
KEY_PRESS = 1
KEY_REPEAT = 2

# hat axis -> (code for negative direction, code for positive direction)
_HAT_AXES = {
    ABS_HAT0X: (BTN_DPAD_LEFT, BTN_DPAD_RIGHT),
    ABS_HAT0Y: (BTN_DPAD_UP, BTN_DPAD_DOWN),
}

_GAMEPAD_MARKERS = frozenset({BTN_SOUTH, BTN_DPAD_LEFT, BTN_DPAD_RIGHT})


class EventTranslator:
    """Turns raw evdev (type, code, value) triples into button events.

    Many pads report the D-pad as a hat axis rather than as keys; those are
    mapped onto the ``BTN_DPAD_*`` codes. Anything outside the controller
    allow-list is dropped here and never reaches the engine.
    """

    def __init__(self) -> None:
        self._hat_codes: dict[int, int | None] = {axis: None for axis in _HAT_AXES}

    def translate(self, event_type: int, code: int, value: int) -> list[ButtonEvent]:
        if event_type == EV_KEY:
            if code not in ALLOWED_CODES:
                return []
            if value in (KEY_PRESS, KEY_REPEAT):
                return [ButtonEvent(code=code, pressed=True)]
            if value == KEY_RELEASE:
                return [ButtonEvent(code=code, pressed=False)]
            return []

        if event_type == EV_ABS and code in _HAT_AXES:
            negative, positive = _HAT_AXES[code]
            if value < 0:
                current = negative
            elif value > 0:
                current = positive
            else:
                current = None
            previous = self._hat_codes[code]
            if current == previous:
                return []
            self._hat_codes[code] = current
            events: list[ButtonEvent] = []
            if previous is not None:
                events.append(ButtonEvent(code=previous, pressed=False))
            if current is not None:
                events.append(ButtonEvent(code=current, pressed=True))
            return events

        return []


def _import_evdev() -> Any:
    try:
        import evdev  # type: ignore
    except Exception as exc:  # pragma: no cover - import failure path
        raise InputSourceError(
            "Gamepad input requires 'evdev'. Install with 'pip install koreaderctl[gamepad]' and retry."
        ) from exc
    return evdev


def find_gamepad_path() -> str:
    evdev = _import_evdev()
    for path in evdev.list_devices():
        try:
            device = evdev.InputDevice(path)
        except OSError as exc:
            LOGGER.debug("Skipping %s: %s", path, exc)
            continue
        try:
            key_codes = set(device.capabilities().get(EV_KEY, []))
            if key_codes & _GAMEPAD_MARKERS:
                LOGGER.info("Using gamepad %s (%s)", device.name, path)
                return path
        finally:
            device.close()
    raise InputSourceError("No gamepad found. Connect a controller or pass --device.")


class GamepadReader:
    def __init__(self, path: str | None = None, *, grab: bool = False) -> None:
        self.path = path
        self.grab = grab
        self._translator = EventTranslator()

    async def events(self) -> AsyncIterator[ButtonEvent]:
        evdev = _import_evdev()
        path = self.path or find_gamepad_path()
        try:
            device = evdev.InputDevice(path)
        except OSError as exc:
            raise InputSourceError(f"Could not open input device {path}: {exc}") from exc

        try:
            if self.grab:
                try:
                    device.grab()
                except OSError as exc:
                    raise InputSourceError(f"Could not grab {path}: {exc}") from exc
            try:
                async for raw in device.async_read_loop():
                    for event in self._translator.translate(raw.type, raw.code, raw.value):
                        yield event
            except OSError as exc:
                raise InputSourceError(f"Input device {path} disconnected: {exc}") from exc
        finally:
            device.close()


async def pump(events: AsyncIterator[ButtonEvent], engine: DispatchEngine) -> None:
    """Feed button events into the engine until the source is exhausted."""
    async for event in events:
        if event.pressed:
            consumed = engine.press(event.code)
            LOGGER.debug("Press %s consumed=%s", button_label(event.code), consumed)
        else:
            engine.release(event.code)
