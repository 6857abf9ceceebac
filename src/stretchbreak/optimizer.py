"""StretchBreak vacation optimizer

Turn a calendar of public and company holidays into *bridge* suggestions:
short PTO spans that join holidays and weekends into longer breaks.

Both engines below evaluate the same declarative rule tables:

  1. Period Finder      - fixed day-of-week bridges ranked by days off
  2. Strategy Optimizer - strategy-shaped spans (long weekends, mini breaks,
                          week-long and extended vacations)

Every function here is a pure function of its arguments.
"""

from __future__ import annotations

import calendar
import datetime
import logging
from collections.abc import Callable, Iterable, Iterator, Sequence
from typing import NamedTuple

from stretchbreak.dates import ONE_DAY, DateLike, date_range, parse_date, weekdays_between
from stretchbreak.holidays import CompanyHoliday, PublicHoliday

log = logging.getLogger(__name__)

MAX_PERIOD_SUGGESTIONS = 10
MAX_STRATEGY_SUGGESTIONS = 20

DEFAULT_STRATEGY = "balanced"

STRATEGIES: dict[str, str] = {
    "balanced": "Smart blend of long weekends and mini breaks",
    "long-weekends": "More 3-4 day weekends",
    "mini-breaks": "Several shorter 5-6 day breaks",
    "week-long": "Focused 7-9 day breaks",
    "extended": "Longer 10-15 day vacations",
}

# ---------------------------------------------------------------------------
# Data types
# ---------------------------------------------------------------------------


class PlanSuggestion(NamedTuple):
    """A proposed vacation span and what it buys."""

    start_date: datetime.date
    end_date: datetime.date
    vacation_days_used: int
    total_days_off: int
    efficiency: float
    reason: str
    public_holidays_included: tuple[PublicHoliday, ...] = ()

    @property
    def key(self) -> tuple[datetime.date, datetime.date]:
        return (self.start_date, self.end_date)

    def to_dict(self) -> dict[str, object]:
        return {
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "vacation_days_used": self.vacation_days_used,
            "total_days_off": self.total_days_off,
            "efficiency": self.efficiency,
            "reason": self.reason,
            "public_holidays_included": [h.to_dict() for h in self.public_holidays_included],
        }


class EfficiencyStats(NamedTuple):
    vacation_days_used: int
    total_days_off: int


class NoApplicableDatesError(ValueError):
    """A suggestion span contains no workday that could be taken off."""


# ---------------------------------------------------------------------------
# Rule tables
# ---------------------------------------------------------------------------


class _Anchor(NamedTuple):
    """A holiday a bridge can be built around."""

    day: datetime.date
    name: str
    holiday: PublicHoliday | None = None


class _Context(NamedTuple):
    anchor: _Anchor
    next_anchor: _Anchor | None
    by_day: dict[datetime.date, list[_Anchor]]

    @property
    def consecutive(self) -> _Anchor | None:
        """The next anchor, if it falls on the following calendar day."""
        nxt = self.next_anchor
        if nxt is not None and nxt.day - self.anchor.day == ONE_DAY:
            return nxt
        return None

    def is_off(self, day: datetime.date) -> bool:
        return day.weekday() >= 5 or day in self.by_day


Predicate = Callable[[_Context], bool]


def _always(_ctx: _Context) -> bool:
    return True


def _day_after_off(ctx: _Context) -> bool:
    return ctx.is_off(ctx.anchor.day + ONE_DAY)


def _day_after_working(ctx: _Context) -> bool:
    return not _day_after_off(ctx)


def _monday_not_holiday(ctx: _Context) -> bool:
    return ctx.anchor.day - datetime.timedelta(days=4) not in ctx.by_day


def _next_is_consecutive(ctx: _Context) -> bool:
    return ctx.consecutive is not None


class BridgeRule(NamedTuple):
    """One row of a bridge rule table.

    Offsets are calendar days relative to the anchoring holiday.  Leave days
    are the weekdays from ``start`` to ``leave_end`` (the span end when
    ``None``) that fall outside the anchoring holiday run.  Total days off is
    leave days + length of the holiday run + ``bonus_days``.

    With ``joins_next`` a holiday on the following day extends the run and
    becomes the span end.
    """

    weekdays: frozenset[int] | None
    start: int
    end: int
    reason: str
    leave_end: int | None = None
    bonus_days: int = 0
    when: Predicate = _always
    joins_next: bool = False
    joined_reason: str | None = None
    includes_day_after: bool = False
    leave_range: tuple[int, int] | None = None


MON, TUE, WED, THU, FRI = range(5)

PERIOD_RULES: tuple[BridgeRule, ...] = (
    # Thursday holiday with Friday already off: Mon-Sun for three days of leave.
    BridgeRule(
        frozenset({THU}), -3, 1, "Bridge Mon-Wed before {name} (Thu-Fri)",
        leave_end=-1, bonus_days=3, when=_day_after_off, includes_day_after=True,
    ),
    BridgeRule(
        frozenset({THU}), -3, 0, "Bridge Mon-Wed before {name} (Thursday) - {total}-day break",
        when=_day_after_working,
    ),
    BridgeRule(
        frozenset({THU}), -3, 1,
        "Bridge Mon-Wed + Fri before {name} (Thursday) - {total}-day break",
        bonus_days=2, when=_day_after_working,
    ),
    BridgeRule(
        frozenset({FRI}), -4, 0, "Bridge Mon-Thu before {name} (Friday)",
        when=_monday_not_holiday,
    ),
    BridgeRule(frozenset({TUE}), -1, 0, "Take Monday before {name} (Tuesday)"),
    BridgeRule(
        frozenset({THU}), -3, 1,
        "Bridge Mon-Wed before consecutive holidays {name} and {next_name} (Thu-Fri)",
        leave_end=-1, when=_next_is_consecutive, joins_next=True,
    ),
)

_LONG_WEEKEND_RULES: tuple[BridgeRule, ...] = (
    BridgeRule(
        frozenset({THU}), -3, 1, "Long weekend: Mon-Wed before {name}",
        leave_end=-1, joins_next=True,
        joined_reason="Long weekend: Mon-Wed before {name} and {next_name}",
    ),
    BridgeRule(frozenset({FRI}), -4, 0, "Long weekend: Mon-Thu before {name}", leave_end=-1),
)

_MINI_BREAK_RULES: tuple[BridgeRule, ...] = tuple(
    BridgeRule(
        frozenset({weekday}), -weekday, FRI - weekday, "Mini break around {name}",
        joins_next=True, joined_reason="Mini break around {name} and {next_name}",
    )
    for weekday in (MON, TUE, WED)
)

STRATEGY_RULES: dict[str, tuple[BridgeRule, ...]] = {
    "long-weekends": _LONG_WEEKEND_RULES,
    "mini-breaks": _MINI_BREAK_RULES,
    "week-long": (
        BridgeRule(None, -5, 3, "Week-long break around {name}", leave_range=(7, 9)),
    ),
    "extended": (
        BridgeRule(None, -7, 7, "Extended vacation around {name}", leave_range=(10, 15)),
    ),
    "balanced": _LONG_WEEKEND_RULES + _MINI_BREAK_RULES,
}


def _evaluate(rule: BridgeRule, ctx: _Context) -> PlanSuggestion | None:
    anchor = ctx.anchor
    if rule.weekdays is not None and anchor.day.weekday() not in rule.weekdays:
        return None
    if not rule.when(ctx):
        return None

    joined = ctx.consecutive if rule.joins_next else None
    run_end = joined.day if joined is not None else anchor.day
    start = anchor.day + datetime.timedelta(days=rule.start)
    end = run_end if joined is not None else anchor.day + datetime.timedelta(days=rule.end)
    leave_end = end if rule.leave_end is None else anchor.day + datetime.timedelta(days=rule.leave_end)

    used = sum(1 for d in weekdays_between(start, leave_end) if not anchor.day <= d <= run_end)
    if rule.leave_range is not None and not rule.leave_range[0] <= used <= rule.leave_range[1]:
        return None
    if used == 0:
        log.debug("Skipping %s..%s around %s: no leave days needed", start, end, anchor.name)
        return None

    total = used + (run_end - anchor.day).days + 1 + rule.bonus_days
    template = rule.joined_reason if joined is not None and rule.joined_reason else rule.reason
    reason = template.format(
        name=anchor.name,
        next_name=joined.name if joined is not None else "",
        total=total,
    )

    included = [anchor.holiday]
    if rule.includes_day_after:
        included.extend(a.holiday for a in ctx.by_day.get(anchor.day + ONE_DAY, ()))
    if joined is not None:
        included.append(joined.holiday)
    holidays: list[PublicHoliday] = []
    for h in included:
        if h is not None and h not in holidays:
            holidays.append(h)

    return PlanSuggestion(
        start_date=start,
        end_date=end,
        vacation_days_used=used,
        total_days_off=total,
        efficiency=total / used,
        reason=reason,
        public_holidays_included=tuple(holidays),
    )


def _scan(anchors: Sequence[_Anchor], rules: Sequence[BridgeRule]) -> Iterator[PlanSuggestion]:
    """Evaluate every rule against every anchor, in chronological order."""
    by_day: dict[datetime.date, list[_Anchor]] = {}
    for a in anchors:
        by_day.setdefault(a.day, []).append(a)

    for i, anchor in enumerate(anchors):
        nxt = anchors[i + 1] if i + 1 < len(anchors) else None
        ctx = _Context(anchor, nxt, by_day)
        for rule in rules:
            suggestion = _evaluate(rule, ctx)
            if suggestion is not None:
                yield suggestion


# ---------------------------------------------------------------------------
# Efficiency
# ---------------------------------------------------------------------------


def calculate_efficiency(
    vacation_days: Iterable[DateLike],
    holidays: Iterable[PublicHoliday | CompanyHoliday],
) -> EfficiencyStats:
    """Count leave days and the contiguous break they produce.

    The break runs from the earliest to the latest vacation day, extended
    outward over any adjacent weekends and holidays.  *vacation_days* is
    expected to be deduplicated workdays already.
    """
    days = sorted(parse_date(d) for d in vacation_days)
    if not days:
        return EfficiencyStats(0, 0)

    off = {h.date for h in holidays}

    def is_off(d: datetime.date) -> bool:
        return d.weekday() >= 5 or d in off

    start, end = days[0], days[-1]
    while is_off(start - ONE_DAY):
        start -= ONE_DAY
    while is_off(end + ONE_DAY):
        end += ONE_DAY

    return EfficiencyStats(len(days), (end - start).days + 1)


# ---------------------------------------------------------------------------
# Period finder
# ---------------------------------------------------------------------------


def find_optimal_vacation_periods(
    holidays: Iterable[PublicHoliday],
    year: int,
    *,
    limit: int = MAX_PERIOD_SUGGESTIONS,
) -> list[PlanSuggestion]:
    """Suggest the best bridges around *holidays*.

    Holidays are scanned as given; *year* only labels the run, so bridges
    that reach into a neighbouring year are still reported.  Results are the
    *limit* suggestions with the most days off (cheapest first on ties), in
    chronological order.
    """
    anchors = [
        _Anchor(h.date, h.local_name, h) for h in sorted(holidays, key=lambda h: h.date)
    ]

    seen: set[tuple[datetime.date, datetime.date]] = set()
    found: list[PlanSuggestion] = []
    for suggestion in _scan(anchors, PERIOD_RULES):
        if suggestion.key in seen:
            continue
        seen.add(suggestion.key)
        found.append(suggestion)

    log.debug("Found %d bridge opportunities for %d", len(found), year)
    ranked = sorted(found, key=lambda s: (-s.total_days_off, s.vacation_days_used))
    return sorted(ranked[:limit], key=lambda s: s.start_date)


# ---------------------------------------------------------------------------
# Strategy optimizer
# ---------------------------------------------------------------------------


def resolve_strategy(strategy: str | None) -> str:
    """Return *strategy*, or the default when it is unknown."""
    if strategy in STRATEGY_RULES:
        return strategy  # type: ignore[return-value]
    if strategy:
        log.warning("Unknown strategy %r, using %r", strategy, DEFAULT_STRATEGY)
    return DEFAULT_STRATEGY


def _keep_best(suggestions: Iterable[PlanSuggestion]) -> list[PlanSuggestion]:
    """One suggestion per span: higher efficiency wins, then the longer reason."""
    best: dict[tuple[datetime.date, datetime.date], PlanSuggestion] = {}
    for s in suggestions:
        current = best.get(s.key)
        if (
            current is None
            or s.efficiency > current.efficiency
            or (s.efficiency == current.efficiency and len(s.reason) > len(current.reason))
        ):
            best[s.key] = s
    return sorted(best.values(), key=lambda s: s.start_date)


def optimize_by_strategy(
    holidays: Iterable[PublicHoliday],
    company_holidays: Iterable[CompanyHoliday],
    available_pto_days: int,
    strategy: str | None,
    start_date: DateLike,
    end_date: DateLike,
    *,
    limit: int = MAX_STRATEGY_SUGGESTIONS,
) -> list[PlanSuggestion]:
    """Suggest breaks shaped by *strategy* within ``[start_date, end_date]``.

    Public and company holidays both anchor suggestions.  The PTO budget is
    validated but does not filter the result: every opportunity is returned
    in chronological order and the user picks what fits.
    """
    if available_pto_days < 0:
        msg = f"Available PTO days cannot be negative (got {available_pto_days})."
        raise ValueError(msg)
    start, end = parse_date(start_date), parse_date(end_date)
    if start > end:
        msg = f"Timeframe start {start} is after its end {end}."
        raise ValueError(msg)

    anchors = [_Anchor(h.date, h.local_name, h) for h in holidays]
    anchors.extend(_Anchor(h.date, h.name) for h in company_holidays)
    anchors = sorted((a for a in anchors if start <= a.day <= end), key=lambda a: a.day)

    rules = STRATEGY_RULES[resolve_strategy(strategy)]
    return _keep_best(_scan(anchors, rules))[:limit]


# ---------------------------------------------------------------------------
# Applying suggestions
# ---------------------------------------------------------------------------


def apply_suggestion(
    suggestion: PlanSuggestion,
    holidays: Iterable[PublicHoliday],
    company_holidays: Iterable[CompanyHoliday] = (),
) -> list[str]:
    """Return the workdays in *suggestion* that need to be requested off.

    Raises ``NoApplicableDatesError`` if the span is all weekends and holidays.
    """
    off = {h.date for h in holidays} | {h.date for h in company_holidays}
    dates = [
        d.isoformat()
        for d in date_range(suggestion.start_date, suggestion.end_date)
        if d.weekday() < 5 and d not in off
    ]
    if not dates:
        msg = (
            f"No workdays to take off between {suggestion.start_date} "
            f"and {suggestion.end_date}."
        )
        raise NoApplicableDatesError(msg)
    return dates


# ---------------------------------------------------------------------------
# Output formatting
# ---------------------------------------------------------------------------


def format_suggestions(suggestions: Sequence[PlanSuggestion], title: str) -> str:
    """Return a human-readable list of suggestions."""
    w = 64
    lines: list[str] = ["", "=" * w, f"  {title}", "=" * w]

    if not suggestions:
        lines.append("  No vacation opportunities found.")
        return "\n".join(lines)

    for i, s in enumerate(suggestions, 1):
        dr = f"{s.start_date.strftime('%a, %b %d')} -> {s.end_date.strftime('%a, %b %d')}"
        lines.append(f"  {i:>2}. {dr}")
        lines.append(f"      {s.reason}")
        lines.append(
            f"      {s.vacation_days_used} PTO -> {s.total_days_off} days off "
            f"({s.efficiency:.1f}x)"
        )
        lines.append("")

    return "\n".join(lines)


def format_calendar_view(
    vacation_days: Iterable[DateLike],
    holidays: Iterable[PublicHoliday],
    year: int,
    company_holidays: Iterable[CompanyHoliday] = (),
) -> str:
    """Return a month-by-month calendar marking vacation days and holidays."""
    vacation = {parse_date(d) for d in vacation_days}
    public = {h.date for h in holidays}
    company = {h.date for h in company_holidays}

    active_months = {d.month for d in vacation | public | company if d.year == year}
    if not active_months:
        return ""

    lines: list[str] = [
        "",
        f"  Calendar View {year}",
        "  Legend: V=Vacation  H=Holiday  C=Company holiday",
        "",
    ]

    cal = calendar.Calendar(firstweekday=0)

    for month in sorted(active_months):
        lines.append(f"  {calendar.month_name[month]} {year}")
        lines.append("  Mo  Tu  We  Th  Fr  Sa  Su")

        row = ""
        for day_num, weekday in cal.itermonthdays2(year, month):
            if day_num == 0:
                row += "    "
            else:
                d = datetime.date(year, month, day_num)
                if d in vacation:
                    cell = f" {day_num:>2}V"
                elif d in public:
                    cell = f" {day_num:>2}H"
                elif d in company:
                    cell = f" {day_num:>2}C"
                else:
                    cell = f"  {day_num:>2}"
                row += cell

            if weekday == 6:
                lines.append(row)
                row = ""

        if row.strip():
            lines.append(row)
        lines.append("")

    return "\n".join(lines)
