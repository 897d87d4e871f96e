from __future__ import annotations

from pathlib import Path

import pytest

from koreaderctl.core.settings import SettingsStore
from tests.helpers import FakeClock, write_settings


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings_file(tmp_path: Path) -> Path:
    return write_settings(tmp_path / "settings.yaml", "host: 10.0.0.5\nport: 8080\n")


@pytest.fixture
def settings(settings_file: Path) -> SettingsStore:
    return SettingsStore(settings_file)
