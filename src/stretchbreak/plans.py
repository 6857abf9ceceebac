"""Saved holiday plans: records, a JSON-file store, overlaps and export.

A plan owns a snapshot of the holidays that were in effect when it was
created.  The snapshot is copied into the plan and never re-derived, so a
later correction to upstream holiday data cannot change a saved plan.
"""

from __future__ import annotations

import datetime
import json
import logging
import pathlib
import threading
import time
import uuid
from collections.abc import Iterable, Mapping
from typing import NamedTuple

from icalendar import Calendar, Event

from stretchbreak.dates import ONE_DAY, DateLike, normalize_date
from stretchbreak.holidays import CompanyHoliday, PublicHoliday

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


def _now() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


def create_plan_id() -> str:
    return f"plan-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


class HolidayPlan(NamedTuple):
    """A named selection of vacation days plus its holiday snapshot.

    ``vacation_days`` holds the dates exactly as stored; readers normalize
    them with :func:`stretchbreak.dates.normalize_date`.
    """

    id: str
    name: str
    country_code: str
    year: int
    vacation_days: tuple[str, ...]
    public_holidays: tuple[PublicHoliday, ...]
    created_at: str
    updated_at: str
    description: str | None = None
    company_holidays: tuple[CompanyHoliday, ...] = ()
    strategy: str | None = None
    available_pto_days: int | None = None

    @classmethod
    def create(
        cls,
        name: str,
        country_code: str,
        year: int,
        vacation_days: Iterable[DateLike],
        public_holidays: Iterable[PublicHoliday],
        *,
        description: str | None = None,
        company_holidays: Iterable[CompanyHoliday] = (),
        strategy: str | None = None,
        available_pto_days: int | None = None,
        plan_id: str | None = None,
    ) -> HolidayPlan:
        """Build a new plan, copying the holidays into its snapshot."""
        days = sorted({d for d in map(normalize_date, vacation_days) if d is not None})
        now = _now()
        return cls(
            id=plan_id or create_plan_id(),
            name=name,
            country_code=country_code,
            year=year,
            vacation_days=tuple(days),
            public_holidays=tuple(public_holidays),
            created_at=now,
            updated_at=now,
            description=description,
            company_holidays=tuple(company_holidays),
            strategy=strategy,
            available_pto_days=available_pto_days,
        )


def plan_to_dict(plan: HolidayPlan) -> dict[str, object]:
    return {
        "id": plan.id,
        "name": plan.name,
        "description": plan.description,
        "country_code": plan.country_code,
        "year": plan.year,
        "vacation_days": list(plan.vacation_days),
        "public_holidays": [h.to_dict() for h in plan.public_holidays],
        "company_holidays": [h.to_dict() for h in plan.company_holidays],
        "strategy": plan.strategy,
        "available_pto_days": plan.available_pto_days,
        "created_at": plan.created_at,
        "updated_at": plan.updated_at,
    }


def plan_from_dict(data: Mapping[str, object]) -> HolidayPlan:
    """Rebuild a plan from its stored form.

    Raises ``KeyError``, ``TypeError`` or ``ValueError`` on a broken record.
    """
    pto = data.get("available_pto_days")
    return HolidayPlan(
        id=str(data["id"]),
        name=str(data["name"]),
        description=data.get("description"),  # type: ignore[arg-type]
        country_code=str(data.get("country_code") or ""),
        year=int(data["year"]),  # type: ignore[call-overload]
        vacation_days=tuple(data.get("vacation_days") or ()),  # type: ignore[arg-type]
        public_holidays=tuple(
            PublicHoliday.from_dict(h)
            for h in data.get("public_holidays") or ()  # type: ignore[attr-defined]
        ),
        company_holidays=tuple(
            CompanyHoliday.from_dict(h)
            for h in data.get("company_holidays") or ()  # type: ignore[attr-defined]
        ),
        strategy=data.get("strategy"),  # type: ignore[arg-type]
        available_pto_days=int(pto) if pto is not None else None,  # type: ignore[call-overload]
        created_at=str(data.get("created_at") or ""),
        updated_at=str(data.get("updated_at") or ""),
    )


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class PlanStore:
    """Plans persisted as a JSON list in a single file."""

    def __init__(self, path: str | pathlib.Path) -> None:
        self.path = pathlib.Path(path)
        self._lock = threading.Lock()

    def get_all(self) -> list[HolidayPlan]:
        """Return every readable plan; a missing or corrupt file yields ``[]``."""
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            log.error("Error reading plans from %s: %s", self.path, exc)
            return []
        if not isinstance(data, list):
            log.error("Plan file %s does not contain a list", self.path)
            return []

        plans: list[HolidayPlan] = []
        for raw in data:
            try:
                plans.append(plan_from_dict(raw))
            except (KeyError, TypeError, ValueError) as exc:
                log.warning("Skipping unreadable plan record: %s", exc)
        return plans

    def get(self, plan_id: str) -> HolidayPlan | None:
        return next((p for p in self.get_all() if p.id == plan_id), None)

    def save(self, plan: HolidayPlan) -> HolidayPlan:
        """Insert *plan*, or replace the stored plan with the same id."""
        with self._lock:
            plans = self.get_all()
            for i, existing in enumerate(plans):
                if existing.id == plan.id:
                    plan = plan._replace(updated_at=_now())
                    plans[i] = plan
                    break
            else:
                plans.append(plan)
            self._write(plans)
        log.info("Saved plan %s (%s)", plan.id, plan.name)
        return plan

    def delete(self, plan_id: str) -> bool:
        """Remove a plan; returns ``False`` when no plan had that id."""
        with self._lock:
            plans = self.get_all()
            kept = [p for p in plans if p.id != plan_id]
            if len(kept) == len(plans):
                return False
            self._write(kept)
        log.info("Deleted plan %s", plan_id)
        return True

    def clear(self) -> None:
        with self._lock:
            self.path.unlink(missing_ok=True)

    def _write(self, plans: list[HolidayPlan]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps([plan_to_dict(p) for p in plans], indent=2)
        self.path.write_text(payload, encoding="utf-8")


# ---------------------------------------------------------------------------
# Overlaps
# ---------------------------------------------------------------------------


class PlanRef(NamedTuple):
    plan_id: str
    plan_name: str


class OverlapInfo(NamedTuple):
    """Dates of one plan that also appear in other plans."""

    overlapping_dates: list[str]
    overlapping_plans: list[PlanRef]
    overlap_count: int


class PlanSummary(NamedTuple):
    """Day counts across plans.

    ``nominal_days`` adds up each plan's own days; ``unique_days`` counts a
    date once no matter how many plans hold it, which is what PTO is spent on.
    """

    nominal_days: int
    unique_days: int
    shared_days: int


def plan_dates(plan: HolidayPlan) -> set[str]:
    """Normalized vacation days of *plan*; unusable entries are dropped."""
    return {d for d in map(normalize_date, plan.vacation_days) if d is not None}


def detect_plan_overlaps(plan: HolidayPlan, all_plans: Iterable[HolidayPlan]) -> OverlapInfo:
    """Find which of *plan*'s dates recur in other plans, and where."""
    all_plans = list(all_plans)
    own = plan_dates(plan)
    shared: set[str] = set()
    other_ids: set[str] = set()

    for other in all_plans:
        if other.id == plan.id:
            continue
        common = own & plan_dates(other)
        if common:
            shared |= common
            other_ids.add(other.id)

    return OverlapInfo(
        overlapping_dates=sorted(shared),
        overlapping_plans=[PlanRef(p.id, p.name) for p in all_plans if p.id in other_ids],
        overlap_count=len(shared),
    )


def get_all_overlapping_dates(plans: Iterable[HolidayPlan]) -> dict[str, list[str]]:
    """Map each date held by two or more plans to those plans' ids."""
    by_date: dict[str, list[str]] = {}
    for plan in plans:
        for day in plan_dates(plan):
            by_date.setdefault(day, []).append(plan.id)
    return {day: ids for day, ids in sorted(by_date.items()) if len(ids) > 1}


def summarize_plans(plans: Iterable[HolidayPlan]) -> PlanSummary:
    per_plan = [plan_dates(p) for p in plans]
    unique: set[str] = set().union(*per_plan)
    shared = sum(1 for day in unique if sum(day in dates for dates in per_plan) > 1)
    return PlanSummary(
        nominal_days=sum(len(dates) for dates in per_plan),
        unique_days=len(unique),
        shared_days=shared,
    )


# ---------------------------------------------------------------------------
# iCalendar export
# ---------------------------------------------------------------------------


def _ical_event(
    uid: str,
    day: datetime.date,
    summary: str,
    description: str,
    transp: str,
    stamp: datetime.datetime,
) -> Event:
    event = Event()
    event.add("uid", f"{uid}@stretchbreak")
    event.add("dtstamp", stamp)
    event.add("dtstart", day)
    event.add("dtend", day + ONE_DAY)
    event.add("summary", summary)
    event.add("description", description)
    event.add("transp", transp)
    return event


def generate_ical(plan: HolidayPlan, *, stamp: datetime.datetime | None = None) -> str:
    """Render *plan* as an iCalendar document of all-day events.

    Holidays are marked transparent (free) and vacation days opaque (busy).
    """
    stamp = (stamp or datetime.datetime.now(datetime.timezone.utc)).astimezone(
        datetime.timezone.utc
    )

    cal = Calendar()
    cal.add("version", "2.0")
    cal.add("prodid", "-//StretchBreak//Holiday Plan//EN")
    cal.add("calscale", "GREGORIAN")
    cal.add("method", "PUBLISH")

    for h in plan.public_holidays:
        cal.add_component(
            _ical_event(
                f"holiday-{h.date.isoformat()}",
                h.date,
                h.local_name,
                f"Public Holiday - {h.name}",
                "TRANSPARENT",
                stamp,
            )
        )
    for ch in plan.company_holidays:
        cal.add_component(
            _ical_event(
                f"company-{ch.id}", ch.date, ch.name, "Company Holiday", "TRANSPARENT", stamp
            )
        )

    detail = plan.name + (f" - {plan.description}" if plan.description else "")
    for i, day in enumerate(sorted(plan_dates(plan)), 1):
        cal.add_component(
            _ical_event(
                f"vacation-{plan.id}-{day}",
                datetime.date.fromisoformat(day),
                f"Vacation Day {i}",
                detail,
                "OPAQUE",
                stamp,
            )
        )

    return cal.to_ical().decode("utf-8")
