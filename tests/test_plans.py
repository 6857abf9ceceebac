from __future__ import annotations

import datetime
import json
from pathlib import Path

import pytest
from icalendar import Calendar

from stretchbreak.holidays import CompanyHoliday, PublicHoliday
from stretchbreak.plans import (
    HolidayPlan,
    PlanStore,
    detect_plan_overlaps,
    generate_ical,
    get_all_overlapping_dates,
    plan_dates,
    plan_from_dict,
    plan_to_dict,
    summarize_plans,
)


def _plan(plan_id: str, days: list[str], name: str | None = None, **kwargs: object) -> HolidayPlan:
    return HolidayPlan.create(
        name or plan_id.title(),
        "US",
        2024,
        days,
        [],
        plan_id=plan_id,
        **kwargs,  # type: ignore[arg-type]
    )


class TestHolidayPlan:
    def test_create_normalizes_days(self) -> None:
        plan = _plan("a", ["2024-07-05", "2024-07-01", "2024-07-01", "bogus", datetime.date(2024, 7, 2)])
        assert plan.vacation_days == ("2024-07-01", "2024-07-02", "2024-07-05")
        assert plan.created_at == plan.updated_at

    def test_generated_id(self) -> None:
        plan = HolidayPlan.create("Summer", "US", 2024, ["2024-07-01"], [])
        assert plan.id.startswith("plan-")

    def test_holiday_snapshot_is_a_copy(self, holidays_2024: list[PublicHoliday]) -> None:
        source = list(holidays_2024)
        plan = HolidayPlan.create("Summer", "US", 2024, ["2024-07-01"], source)
        source.clear()
        assert len(plan.public_holidays) == 9

    def test_dict_roundtrip(self, holidays_2024: list[PublicHoliday]) -> None:
        plan = HolidayPlan.create(
            "Summer",
            "US",
            2024,
            ["2024-07-01"],
            holidays_2024,
            description="Beach",
            company_holidays=[CompanyHoliday("c1", datetime.date(2024, 8, 16), "Shutdown")],
            strategy="balanced",
            available_pto_days=12,
        )
        assert plan_from_dict(json.loads(json.dumps(plan_to_dict(plan)))) == plan

    def test_plan_dates_drops_bad_stored_values(self) -> None:
        plan = _plan("a", ["2024-07-01"])._replace(
            vacation_days=("2024-07-01", "", "garbage", "2024-07-02T00:00:00")
        )
        assert plan_dates(plan) == {"2024-07-01", "2024-07-02"}


class TestPlanStore:
    def test_empty_when_missing(self, plan_store: PlanStore) -> None:
        assert plan_store.get_all() == []

    def test_save_and_get(self, plan_store: PlanStore) -> None:
        plan = _plan("a", ["2024-07-01"])
        plan_store.save(plan)
        assert plan_store.get("a") == plan
        assert plan_store.get("missing") is None

    def test_save_replaces_same_id(
        self, plan_store: PlanStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        plan_store.save(_plan("a", ["2024-07-01"]))
        monkeypatch.setattr("stretchbreak.plans._now", lambda: "2030-01-01T00:00:00+00:00")
        saved = plan_store.save(_plan("a", ["2024-07-02"], name="Renamed"))

        plans = plan_store.get_all()
        assert len(plans) == 1
        assert plans[0].name == "Renamed"
        assert plans[0].vacation_days == ("2024-07-02",)
        assert saved.updated_at == "2030-01-01T00:00:00+00:00"

    def test_keeps_insertion_order(self, plan_store: PlanStore) -> None:
        for plan_id in ("b", "a", "c"):
            plan_store.save(_plan(plan_id, ["2024-07-01"]))
        assert [p.id for p in plan_store.get_all()] == ["b", "a", "c"]

    def test_delete(self, plan_store: PlanStore) -> None:
        plan_store.save(_plan("a", ["2024-07-01"]))
        assert plan_store.delete("a") is True
        assert plan_store.delete("a") is False
        assert plan_store.get_all() == []

    def test_clear(self, plan_store: PlanStore) -> None:
        plan_store.save(_plan("a", ["2024-07-01"]))
        plan_store.clear()
        assert plan_store.get_all() == []

    def test_corrupt_file_reads_as_empty(self, plan_store: PlanStore) -> None:
        plan_store.path.parent.mkdir(parents=True)
        plan_store.path.write_text("{not json")
        assert plan_store.get_all() == []

    def test_unreadable_records_skipped(self, plan_store: PlanStore) -> None:
        good = plan_to_dict(_plan("a", ["2024-07-01"]))
        plan_store.path.parent.mkdir(parents=True)
        plan_store.path.write_text(json.dumps([{"name": "no id"}, good]))
        assert [p.id for p in plan_store.get_all()] == ["a"]

    def test_persists_across_instances(self, tmp_path: Path) -> None:
        path = tmp_path / "plans.json"
        PlanStore(path).save(_plan("a", ["2024-07-01"]))
        assert PlanStore(path).get("a") is not None


class TestOverlaps:
    def test_detects_shared_dates(self) -> None:
        a = _plan("a", ["2024-07-01", "2024-07-02", "2024-07-03"])
        b = _plan("b", ["2024-07-03", "2024-07-04"])
        c = _plan("c", ["2024-12-24"])
        info = detect_plan_overlaps(a, [a, b, c])
        assert info.overlapping_dates == ["2024-07-03"]
        assert [ref.plan_id for ref in info.overlapping_plans] == ["b"]
        assert info.overlapping_plans[0].plan_name == "B"
        assert info.overlap_count == 1

    def test_symmetric(self) -> None:
        a = _plan("a", ["2024-07-01", "2024-07-02", "2024-07-03"])
        b = _plan("b", ["2024-07-02", "2024-07-03", "2024-07-04"])
        ab = detect_plan_overlaps(a, [a, b])
        ba = detect_plan_overlaps(b, [a, b])
        assert ab.overlapping_dates == ba.overlapping_dates == ["2024-07-02", "2024-07-03"]

    def test_plan_does_not_overlap_itself(self) -> None:
        a = _plan("a", ["2024-07-01"])
        assert detect_plan_overlaps(a, [a]).overlap_count == 0

    def test_normalizes_before_comparing(self) -> None:
        a = _plan("a", ["2024-07-01"])
        b = _plan("b", ["2024-07-01"])._replace(vacation_days=("2024-07-01T00:00:00",))
        assert detect_plan_overlaps(a, [a, b]).overlapping_dates == ["2024-07-01"]

    def test_all_overlapping_dates(self) -> None:
        plans = [
            _plan("a", ["2024-07-01", "2024-07-02"]),
            _plan("b", ["2024-07-02", "2024-07-03"]),
            _plan("c", ["2024-07-02", "2024-07-03", "2024-07-04"]),
        ]
        assert get_all_overlapping_dates(plans) == {
            "2024-07-02": ["a", "b", "c"],
            "2024-07-03": ["b", "c"],
        }

    def test_summary(self) -> None:
        plans = [
            _plan("a", ["2024-07-01", "2024-07-02"]),
            _plan("b", ["2024-07-02", "2024-07-03"]),
        ]
        summary = summarize_plans(plans)
        assert summary.nominal_days == 4
        assert summary.unique_days == 3
        assert summary.shared_days == 1


class TestICalExport:
    STAMP = datetime.datetime(2024, 5, 1, 12, 0, tzinfo=datetime.timezone.utc)

    def _ical(self) -> str:
        plan = HolidayPlan.create(
            "Summer, Beach",
            "US",
            2024,
            ["2024-07-05", "2024-07-01"],
            [PublicHoliday(datetime.date(2024, 7, 4), "Independence Day", "Independence Day")],
            company_holidays=[CompanyHoliday("c1", datetime.date(2024, 7, 3), "Shutdown")],
            plan_id="plan-1",
        )
        return generate_ical(plan, stamp=self.STAMP)

    def test_calendar_envelope(self) -> None:
        ics = self._ical()
        assert ics.startswith("BEGIN:VCALENDAR\r\nVERSION:2.0\r\n")
        assert "PRODID:-//StretchBreak//Holiday Plan//EN" in ics
        assert ics.endswith("END:VCALENDAR\r\n")
        assert ics.count("BEGIN:VEVENT") == 4

    def test_all_day_events(self) -> None:
        lines = self._ical().split("\r\n")
        assert "DTSTART;VALUE=DATE:20240704" in lines
        assert "DTEND;VALUE=DATE:20240705" in lines
        assert "DTSTAMP:20240501T120000Z" in lines

    def test_vacation_days_numbered_and_busy(self) -> None:
        ics = self._ical()
        assert "SUMMARY:Vacation Day 1" in ics
        assert "SUMMARY:Vacation Day 2" in ics
        assert ics.count("TRANSP:OPAQUE") == 2
        assert ics.count("TRANSP:TRANSPARENT") == 2

    def test_text_escaped(self) -> None:
        assert "DESCRIPTION:Summer\\, Beach" in self._ical()

    def test_long_lines_folded(self) -> None:
        plan = HolidayPlan.create(
            "Christmas trip",
            "US",
            2025,
            ["2025-12-22", "2025-12-23", "2025-12-24"],
            [],
            description="Long weekend: Mon-Wed before Christmas Day and Boxing Day",
        )
        ics = generate_ical(plan, stamp=self.STAMP)
        too_long = [line for line in ics.split("\r\n") if len(line.encode("utf-8")) > 75]
        assert too_long == []
        unfolded = ics.replace("\r\n ", "")
        assert (
            "DESCRIPTION:Christmas trip - Long weekend: Mon-Wed before Christmas Day "
            "and Boxing Day" in unfolded
        )

    def test_parses_back(self) -> None:
        cal = Calendar.from_ical(self._ical())
        events = cal.walk("VEVENT")
        assert len(events) == 4
        starts = sorted(e.decoded("dtstart") for e in events)
        assert starts[0] == datetime.date(2024, 7, 1)
