"""Settings for the StretchBreak command line.

Loaded from ``config.json`` in the user config directory, then overridden by
``STRETCHBREAK_*`` environment variables.
"""

from __future__ import annotations

import json
import logging
import os
import pathlib
from dataclasses import dataclass, field

log = logging.getLogger(__name__)

PLANS_FILENAME = "plans.json"
LEDGER_FILENAME = "pto.json"


def _config_dir() -> pathlib.Path:
    """Directory holding ``config.json``."""
    base = os.environ.get("XDG_CONFIG_HOME")
    return (pathlib.Path(base) if base else pathlib.Path.home() / ".config") / "stretchbreak"


def _default_data_dir() -> pathlib.Path:
    base = os.environ.get("XDG_DATA_HOME")
    return (pathlib.Path(base) if base else pathlib.Path.home() / ".local" / "share") / "stretchbreak"


@dataclass
class Settings:
    """Runtime configuration."""

    data_dir: pathlib.Path = field(default_factory=_default_data_dir)
    country: str = "us"
    strategy: str = "balanced"
    log_level: str = "WARNING"

    @property
    def plans_path(self) -> pathlib.Path:
        return self.data_dir / PLANS_FILENAME

    @property
    def ledger_path(self) -> pathlib.Path:
        return self.data_dir / LEDGER_FILENAME

    @classmethod
    def load(cls, path: pathlib.Path | None = None) -> Settings:
        """Load settings from disk, falling back to defaults + env vars."""
        cfg = cls()
        path = path or _config_dir() / "config.json"

        if path.exists():
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
            except json.JSONDecodeError as exc:
                log.warning("Ignoring invalid config file %s: %s", path, exc)
                data = {}
            for key, val in data.items():
                if key == "data_dir":
                    cfg.data_dir = pathlib.Path(val).expanduser()
                elif hasattr(cfg, key):
                    setattr(cfg, key, val)

        # Environment overrides
        if env := os.environ.get("STRETCHBREAK_DATA_DIR"):
            cfg.data_dir = pathlib.Path(env).expanduser()
        if env := os.environ.get("STRETCHBREAK_COUNTRY"):
            cfg.country = env
        if env := os.environ.get("STRETCHBREAK_STRATEGY"):
            cfg.strategy = env
        if env := os.environ.get("STRETCHBREAK_LOG_LEVEL"):
            cfg.log_level = env.upper()

        return cfg
