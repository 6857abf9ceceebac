"""Shared fixtures for the StretchBreak test suite."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from stretchbreak.holidays import PublicHoliday, us_holidays
from stretchbreak.ledger import MemoryStore, PTOLedger
from stretchbreak.plans import PlanStore


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """Keep tests away from the real config directory and STRETCHBREAK_* variables."""
    for var in (
        "STRETCHBREAK_DATA_DIR",
        "STRETCHBREAK_COUNTRY",
        "STRETCHBREAK_STRATEGY",
        "STRETCHBREAK_LOG_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)
    config_dir = tmp_path / "config"
    monkeypatch.setattr("stretchbreak.config._config_dir", lambda: config_dir)

    # The CLI reconfigures the root logger on every invocation.
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield config_dir
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture()
def holidays_2024() -> list[PublicHoliday]:
    return us_holidays(2024)


@pytest.fixture()
def plan_store(tmp_path: Path) -> PlanStore:
    """Return a PlanStore backed by a temporary JSON file."""
    return PlanStore(tmp_path / "data" / "plans.json")


@pytest.fixture()
def ledger(plan_store: PlanStore) -> PTOLedger:
    return PTOLedger(MemoryStore(), plan_store)
