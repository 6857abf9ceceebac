"""Holiday records, built-in presets and provider-file loading.

Public holidays normally come from an external calendar-holiday provider; the
planner only consumes the resulting records.  For offline use a few presets
compute *observed* holidays directly.  Observed rules: if a holiday falls on
Saturday the observed date is the preceding Friday; if it falls on Sunday the
observed date is the following Monday.
"""

from __future__ import annotations

import datetime
import json
import logging
import pathlib
import uuid
from collections.abc import Callable, Iterable, Mapping
from typing import NamedTuple

from stretchbreak.dates import parse_date

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


class PublicHoliday(NamedTuple):
    """A public holiday as published by the holiday provider.

    A ``global_`` holiday applies to every region; otherwise it applies only
    to the regions listed in ``counties``.
    """

    date: datetime.date
    local_name: str
    name: str
    global_: bool = True
    counties: tuple[str, ...] | None = None
    country_code: str = ""
    types: tuple[str, ...] = ("Public",)

    def to_dict(self) -> dict[str, object]:
        return {
            "date": self.date.isoformat(),
            "localName": self.local_name,
            "name": self.name,
            "global": self.global_,
            "counties": list(self.counties) if self.counties is not None else None,
            "countryCode": self.country_code,
            "types": list(self.types),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> PublicHoliday:
        name = str(data.get("name") or data.get("localName") or "Holiday")
        counties = data.get("counties")
        return cls(
            date=parse_date(str(data["date"])),
            local_name=str(data.get("localName") or name),
            name=name,
            global_=bool(data.get("global", True)),
            counties=tuple(counties) if counties else None,  # type: ignore[arg-type]
            country_code=str(data.get("countryCode") or ""),
            types=tuple(data.get("types") or ("Public",)),  # type: ignore[arg-type]
        )


class CompanyHoliday(NamedTuple):
    """A user-entered day off that applies only to the user's employer."""

    id: str
    date: datetime.date
    name: str

    def to_dict(self) -> dict[str, object]:
        return {"id": self.id, "date": self.date.isoformat(), "name": self.name}

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> CompanyHoliday:
        return cls(
            id=str(data.get("id") or _company_holiday_id()),
            date=parse_date(str(data["date"])),
            name=str(data.get("name") or "Company holiday"),
        )


def _company_holiday_id() -> str:
    return f"company-{uuid.uuid4().hex[:9]}"


def parse_company_holiday(value: str) -> CompanyHoliday:
    """Parse ``YYYY-MM-DD`` or ``YYYY-MM-DD:Name`` into a company holiday."""
    day, _, name = value.partition(":")
    return CompanyHoliday(
        id=_company_holiday_id(),
        date=parse_date(day),
        name=name.strip() or "Company holiday",
    )


# ---------------------------------------------------------------------------
# Date helpers for presets
# ---------------------------------------------------------------------------


def _nth_weekday(year: int, month: int, weekday: int, n: int) -> datetime.date:
    """Return the *n*-th *weekday* (0 = Monday) of *month*, 1-based."""
    first = datetime.date(year, month, 1)
    offset = (weekday - first.weekday()) % 7
    return first + datetime.timedelta(days=offset, weeks=n - 1)


def _last_weekday(year: int, month: int, weekday: int) -> datetime.date:
    """Return the last *weekday* of *month*."""
    if month == 12:
        last = datetime.date(year, 12, 31)
    else:
        last = datetime.date(year, month + 1, 1) - datetime.timedelta(days=1)
    return last - datetime.timedelta(days=(last.weekday() - weekday) % 7)


def _observed(d: datetime.date) -> datetime.date:
    """Shift a holiday to its *observed* date (Sat->Fri, Sun->Mon)."""
    if d.weekday() == 5:
        return d - datetime.timedelta(days=1)
    if d.weekday() == 6:
        return d + datetime.timedelta(days=1)
    return d


# ---------------------------------------------------------------------------
# Country presets
# ---------------------------------------------------------------------------

PRESETS: dict[str, str] = {
    "us": "United States federal holidays",
}


def us_holidays(year: int) -> list[PublicHoliday]:
    """US federal holidays (observed) for *year*."""
    days = [
        (_observed(datetime.date(year, 1, 1)), "New Year's Day"),
        (_nth_weekday(year, 1, 0, 3), "Martin Luther King Jr. Day"),
        (_nth_weekday(year, 2, 0, 3), "Presidents' Day"),
        (_last_weekday(year, 5, 0), "Memorial Day"),
        (_observed(datetime.date(year, 6, 19)), "Juneteenth"),
        (_observed(datetime.date(year, 7, 4)), "Independence Day"),
        (_nth_weekday(year, 9, 0, 1), "Labor Day"),
        (_nth_weekday(year, 11, 3, 4), "Thanksgiving"),
        (_observed(datetime.date(year, 12, 25)), "Christmas Day"),
    ]
    return sorted(
        (PublicHoliday(date=d, local_name=name, name=name, country_code="US") for d, name in days),
        key=lambda h: h.date,
    )


_PRESET_FNS: dict[str, Callable[[int], list[PublicHoliday]]] = {
    "us": us_holidays,
}


def get_holidays(country: str, year: int) -> list[PublicHoliday]:
    """Return the preset holidays for *country* and *year*.

    Raises ``KeyError`` if the country is not supported.
    """
    fn = _PRESET_FNS.get(country.lower())
    if fn is None:
        supported = ", ".join(sorted(PRESETS))
        msg = f"Unknown country preset {country!r}. Supported: {supported}"
        raise KeyError(msg)
    return fn(year)


# ---------------------------------------------------------------------------
# Provider files
# ---------------------------------------------------------------------------


def parse_holidays(records: Iterable[Mapping[str, object]]) -> list[PublicHoliday]:
    """Build holidays from provider records, skipping ones without a usable date."""
    holidays: list[PublicHoliday] = []
    for raw in records:
        try:
            holidays.append(PublicHoliday.from_dict(raw))
        except (KeyError, ValueError) as exc:
            log.warning("Skipping holiday record %r: %s", raw, exc)
    return sorted(holidays, key=lambda h: h.date)


def load_holidays(path: str | pathlib.Path) -> list[PublicHoliday]:
    """Load a JSON list of provider holiday records from *path*.

    Raises ``ValueError`` when the file is not a JSON list.
    """
    data = json.loads(pathlib.Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, list):
        msg = f"Holiday file {str(path)!r} must contain a JSON list."
        raise ValueError(msg)
    return parse_holidays(data)


# ---------------------------------------------------------------------------
# Regions
# ---------------------------------------------------------------------------


def filter_by_regions(
    holidays: Iterable[PublicHoliday], regions: Iterable[str] | None
) -> list[PublicHoliday]:
    """Keep the holidays that apply in any of *regions*.

    With no regions selected every holiday is kept.
    """
    selected = set(regions or ())
    if not selected:
        return list(holidays)
    return [
        h
        for h in holidays
        if h.global_ or not h.counties or any(c in selected for c in h.counties)
    ]


def list_regions(holidays: Iterable[PublicHoliday]) -> list[str]:
    return sorted({c for h in holidays if h.counties for c in h.counties})
