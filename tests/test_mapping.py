from __future__ import annotations

import logging

import pytest

from koreaderctl.core.commands import NEXT_PAGE, PREVIOUS_PAGE, all_commands, from_display_name, get_command
from koreaderctl.core.errors import MappingError
from koreaderctl.core.mapping import (
    ALLOWED_CODES,
    AVAILABLE_BUTTONS,
    BTN_DPAD_LEFT,
    BTN_DPAD_RIGHT,
    BTN_SOUTH,
    InputMapper,
    button_for_name,
)


def test_registry_is_fixed_and_ordered() -> None:
    assert [c.id for c in all_commands()] == ["previous_page", "next_page"]
    assert PREVIOUS_PAGE.path == "/koreader/event/GotoViewRel/-1"
    assert NEXT_PAGE.path == "/koreader/event/GotoViewRel/1"
    assert from_display_name("Next Page") is NEXT_PAGE
    assert from_display_name("next page") is None


@pytest.mark.parametrize("name", ["next", "next_page", "Next-Page", " NEXT "])
def test_get_command_accepts_aliases(name: str) -> None:
    assert get_command(name) is NEXT_PAGE


def test_unknown_command_lists_available() -> None:
    with pytest.raises(MappingError) as exc:
        get_command("first_page")
    assert "next_page" in str(exc.value)


def test_default_mapping_covers_dpad_navigation() -> None:
    mapper = InputMapper()
    assert mapper.resolve(BTN_DPAD_LEFT) is PREVIOUS_PAGE
    assert mapper.resolve(BTN_DPAD_RIGHT) is NEXT_PAGE
    assert mapper.resolve(BTN_SOUTH) is None
    assert mapper.resolve(-1) is None


def test_set_mapping_adds_and_removes() -> None:
    mapper = InputMapper()
    mapper.set_mapping(BTN_SOUTH, NEXT_PAGE)
    assert mapper.resolve(BTN_SOUTH) is NEXT_PAGE
    assert mapper.resolve(BTN_DPAD_RIGHT) is NEXT_PAGE

    mapper.set_mapping(BTN_SOUTH, None)
    mapper.set_mapping(12345, None)
    assert mapper.resolve(BTN_SOUTH) is None


def test_mappings_snapshot_is_read_only() -> None:
    mapper = InputMapper()
    snapshot = mapper.mappings()
    mapper.set_mapping(BTN_SOUTH, NEXT_PAGE)

    assert BTN_SOUTH not in snapshot
    with pytest.raises(TypeError):
        snapshot[BTN_SOUTH] = NEXT_PAGE  # type: ignore[index]


def test_from_names_overrides_and_removes_defaults(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        mapper = InputMapper.from_names({"dpad_left": None, "DPAD_RIGHT": "prev", "BUTTON_A": "next"})

    assert mapper.resolve(BTN_DPAD_LEFT) is None
    assert mapper.resolve(BTN_DPAD_RIGHT) is PREVIOUS_PAGE
    assert mapper.resolve(BTN_SOUTH) is NEXT_PAGE
    assert any("overrides default" in r.message for r in caplog.records)


def test_to_names_round_trips_removed_defaults() -> None:
    mapper = InputMapper()
    mapper.set_mapping(BTN_DPAD_LEFT, None)
    mapper.set_mapping(BTN_SOUTH, PREVIOUS_PAGE)

    names = mapper.to_names()
    assert names == {"DPAD_LEFT": None, "DPAD_RIGHT": "next_page", "BUTTON_A": "previous_page"}
    assert dict(InputMapper.from_names(names).mappings()) == dict(mapper.mappings())


def test_unknown_button_name_rejected() -> None:
    with pytest.raises(MappingError):
        button_for_name("TURBO")
    with pytest.raises(MappingError):
        InputMapper.from_names({"TURBO": "next_page"})


def test_allow_list_matches_catalogue() -> None:
    assert len(AVAILABLE_BUTTONS) == 14
    assert ALLOWED_CODES == {b.code for b in AVAILABLE_BUTTONS}
    assert [b.label for b in AVAILABLE_BUTTONS if b.name in {"SELECT", "START"}] == ["-", "+"]
