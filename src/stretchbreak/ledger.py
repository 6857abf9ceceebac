"""PTO ledger: total, used and remaining vacation days.

The ledger keeps three integer keys in a key-value store and derives usage
from the saved plans.  A date booked in several plans is only spent once.
"""

from __future__ import annotations

import json
import logging
import pathlib
import threading
from collections.abc import Callable
from typing import NamedTuple, Protocol

from stretchbreak.plans import HolidayPlan, plan_dates

log = logging.getLogger(__name__)

TOTAL_PTO_KEY = "total-pto-days"
INITIAL_PTO_KEY = "initial-pto-days"
AVAILABLE_INPUT_KEY = "available-pto-days-input"

_LEDGER_KEYS = (TOTAL_PTO_KEY, INITIAL_PTO_KEY, AVAILABLE_INPUT_KEY)

# ---------------------------------------------------------------------------
# Key-value stores
# ---------------------------------------------------------------------------


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """In-process store, mostly for tests."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore:
    """String values kept in a JSON object on disk.

    Each write is a read-modify-write of the whole file under a lock.
    """

    def __init__(self, path: str | pathlib.Path) -> None:
        self.path = pathlib.Path(path)
        self._lock = threading.Lock()

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            log.error("Error reading %s: %s", self.path, exc)
            return {}
        return {str(k): str(v) for k, v in data.items()} if isinstance(data, dict) else {}

    def _update(self, change: Callable[[dict[str, str]], None]) -> None:
        with self._lock:
            data = self._read()
            change(data)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")

    def get(self, key: str) -> str | None:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        self._update(lambda data: data.__setitem__(key, value))

    def delete(self, key: str) -> None:
        self._update(lambda data: data.pop(key, None))


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------


class PlanSource(Protocol):
    def get_all(self) -> list[HolidayPlan]: ...


class LedgerSnapshot(NamedTuple):
    total: int
    used: int
    remaining: int
    initial: int


class PTOLedger:
    """Tracks a PTO budget against the days booked in saved plans.

    Parameters
    ----------
    store : KeyValueStore
        Holds the ledger's integer keys.
    plans : PlanSource
        Anything with ``get_all()`` returning the saved plans.
    """

    def __init__(self, store: KeyValueStore, plans: PlanSource) -> None:
        self.store = store
        self.plans = plans

    def _get_int(self, key: str) -> int:
        raw = self.store.get(key)
        if raw is None or raw == "":
            return 0
        try:
            return int(raw)
        except ValueError:
            log.warning("Ignoring non-integer ledger value %s=%r", key, raw)
            return 0

    @staticmethod
    def _check(days: int) -> None:
        if days < 0:
            msg = f"PTO days cannot be negative (got {days})."
            raise ValueError(msg)

    # -- budget ---------------------------------------------------------------

    def set_total_pto_days(self, days: int) -> None:
        """Replace the total PTO budget; the first value ever set is kept as initial."""
        self._check(days)
        self.store.set(TOTAL_PTO_KEY, str(days))
        if self.store.get(INITIAL_PTO_KEY) is None:
            self.store.set(INITIAL_PTO_KEY, str(days))

    def get_total_pto_days(self) -> int:
        return self._get_int(TOTAL_PTO_KEY)

    def get_initial_pto_days(self) -> int:
        return self._get_int(INITIAL_PTO_KEY)

    def set_available_pto_input(self, days: int) -> None:
        """Remember the user's raw "available days" input, apart from the derived remainder."""
        self._check(days)
        self.store.set(AVAILABLE_INPUT_KEY, str(days))

    def get_available_pto_input(self) -> int:
        return self._get_int(AVAILABLE_INPUT_KEY)

    # -- usage ----------------------------------------------------------------

    def get_used_pto_days(self) -> int:
        """Unique vacation days across every saved plan."""
        booked: set[str] = set()
        for plan in self.plans.get_all():
            booked |= plan_dates(plan)
        return len(booked)

    def get_remaining_pto_days(self) -> int:
        return max(0, self.get_total_pto_days() - self.get_used_pto_days())

    def has_saved_plans_with_pto(self) -> bool:
        return bool(self.plans.get_all()) and self.get_total_pto_days() > 0

    def snapshot(self) -> LedgerSnapshot:
        total = self.get_total_pto_days()
        used = self.get_used_pto_days()
        return LedgerSnapshot(
            total=total,
            used=used,
            remaining=max(0, total - used),
            initial=self.get_initial_pto_days(),
        )

    # -- reset ----------------------------------------------------------------

    def reset_pto_tracking(self) -> None:
        """Forget the budget (e.g. for a new year) but keep the raw input."""
        self.store.delete(TOTAL_PTO_KEY)
        self.store.delete(INITIAL_PTO_KEY)

    def reset_all_pto_data(self) -> None:
        for key in _LEDGER_KEYS:
            self.store.delete(key)
        log.info("PTO ledger reset")
