from __future__ import annotations

import json
from pathlib import Path

import pytest

from stretchbreak.config import Settings


class TestSettings:
    def test_defaults(self, isolated_settings: Path) -> None:
        cfg = Settings.load()
        assert cfg.country == "us"
        assert cfg.strategy == "balanced"
        assert cfg.log_level == "WARNING"
        assert cfg.plans_path.name == "plans.json"
        assert cfg.ledger_path.name == "pto.json"

    def test_file_values(self, isolated_settings: Path, tmp_path: Path) -> None:
        isolated_settings.mkdir()
        (isolated_settings / "config.json").write_text(
            json.dumps({"data_dir": str(tmp_path / "data"), "strategy": "extended", "bogus": 1})
        )
        cfg = Settings.load()
        assert cfg.data_dir == tmp_path / "data"
        assert cfg.strategy == "extended"
        assert not hasattr(cfg, "bogus")

    def test_invalid_file_ignored(self, isolated_settings: Path) -> None:
        isolated_settings.mkdir()
        (isolated_settings / "config.json").write_text("{oops")
        assert Settings.load().strategy == "balanced"

    def test_env_overrides(
        self, isolated_settings: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("STRETCHBREAK_DATA_DIR", str(tmp_path / "elsewhere"))
        monkeypatch.setenv("STRETCHBREAK_STRATEGY", "mini-breaks")
        monkeypatch.setenv("STRETCHBREAK_LOG_LEVEL", "debug")
        cfg = Settings.load()
        assert cfg.data_dir == tmp_path / "elsewhere"
        assert cfg.plans_path == tmp_path / "elsewhere" / "plans.json"
        assert cfg.strategy == "mini-breaks"
        assert cfg.log_level == "DEBUG"

    def test_explicit_path(self, tmp_path: Path) -> None:
        path = tmp_path / "custom.json"
        path.write_text(json.dumps({"country": "de"}))
        assert Settings.load(path).country == "de"
