"""Fixed registry of logical commands understood by KOReader."""

from __future__ import annotations

from koreaderctl.core.errors import MappingError
from koreaderctl.core.model import LogicalCommand

PREVIOUS_PAGE = LogicalCommand(
    id="previous_page",
    display_name="Previous Page",
    description="Go to previous page in KOReader",
    path="/koreader/event/GotoViewRel/-1",
)

NEXT_PAGE = LogicalCommand(
    id="next_page",
    display_name="Next Page",
    description="Go to next page in KOReader",
    path="/koreader/event/GotoViewRel/1",
)

ALL_COMMANDS: tuple[LogicalCommand, ...] = (PREVIOUS_PAGE, NEXT_PAGE)

_BY_ID = {command.id: command for command in ALL_COMMANDS}
_ALIASES = {"prev": PREVIOUS_PAGE, "previous": PREVIOUS_PAGE, "next": NEXT_PAGE}


def all_commands() -> list[LogicalCommand]:
    return list(ALL_COMMANDS)


def get_command(command_id: str) -> LogicalCommand:
    """Look a command up by id (``next_page``) or short alias (``next``)."""
    key = command_id.strip().lower().replace("-", "_")
    command = _BY_ID.get(key) or _ALIASES.get(key)
    if command is None:
        available = ", ".join(sorted(_BY_ID))
        raise MappingError(f"Unknown command '{command_id}'. Available: {available}")
    return command


def from_display_name(name: str) -> LogicalCommand | None:
    return next((c for c in ALL_COMMANDS if c.display_name == name), None)
