"""
Shared test fixtures and configuration.
"""

from pathlib import Path

import pytest

from check_reboot.adapters.memory import MemoryRegistry


@pytest.fixture
def registry() -> MemoryRegistry:
    """An empty in-memory registry."""
    return MemoryRegistry()


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep host config files and logging env vars out of every test."""
    monkeypatch.chdir(tmp_path)
    for name in ("CHECK_REBOOT_LOG_LEVEL", "CHECK_REBOOT_LOG_FILE", "CHECK_REBOOT_LOG_FILE_LEVEL"):
        monkeypatch.delenv(name, raising=False)
