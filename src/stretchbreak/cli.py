"""Typer CLI for StretchBreak."""

from __future__ import annotations

import datetime
import json
import logging
import pathlib
import sys

import typer

from stretchbreak.config import Settings
from stretchbreak.dates import parse_date
from stretchbreak.holidays import (
    PRESETS,
    CompanyHoliday,
    PublicHoliday,
    filter_by_regions,
    get_holidays,
    load_holidays,
    parse_company_holiday,
)
from stretchbreak.ledger import JsonFileStore, PTOLedger
from stretchbreak.optimizer import (
    STRATEGIES,
    NoApplicableDatesError,
    PlanSuggestion,
    apply_suggestion,
    calculate_efficiency,
    find_optimal_vacation_periods,
    format_calendar_view,
    format_suggestions,
    optimize_by_strategy,
    resolve_strategy,
)
from stretchbreak.plans import (
    HolidayPlan,
    PlanStore,
    detect_plan_overlaps,
    generate_ical,
    get_all_overlapping_dates,
    plan_dates,
    plan_to_dict,
    summarize_plans,
)

app = typer.Typer(
    name="stretchbreak",
    help="StretchBreak: turn a few PTO days into long breaks by bridging "
    "weekends and holidays.",
    add_completion=False,
)
plans_app = typer.Typer(help="Save, inspect and export vacation plans.", add_completion=False)
pto_app = typer.Typer(help="Track your PTO budget across saved plans.", add_completion=False)
app.add_typer(plans_app, name="plans")
app.add_typer(pto_app, name="pto")

W = 64


def _parse_date(value: str) -> datetime.date:
    """Parse a YYYY-MM-DD date string."""
    try:
        return parse_date(value)
    except ValueError:
        raise typer.BadParameter(f"Invalid date format {value!r}. Use YYYY-MM-DD.") from None


def _current_year() -> int:
    return datetime.date.today().year


def _fail(message: str) -> typer.Exit:
    typer.echo(f"Error: {message}", err=True)
    return typer.Exit(code=1)


def _settings(ctx: typer.Context) -> Settings:
    return ctx.obj if isinstance(ctx.obj, Settings) else Settings.load()


def _plan_store(ctx: typer.Context) -> PlanStore:
    return PlanStore(_settings(ctx).plans_path)


def _ledger(ctx: typer.Context) -> PTOLedger:
    settings = _settings(ctx)
    return PTOLedger(JsonFileStore(settings.ledger_path), PlanStore(settings.plans_path))


def _collect_holidays(
    country: str | None,
    year: int,
    holiday_file: str | None,
    regions: list[str] | None,
    extra: list[str] | None,
) -> list[PublicHoliday]:
    """Public holidays from a provider file or preset, plus custom dates."""
    holidays: list[PublicHoliday] = []

    if holiday_file is not None:
        try:
            holidays.extend(load_holidays(holiday_file))
        except OSError as exc:
            raise _fail(f"Cannot read holiday file: {exc}") from None
        except ValueError as exc:
            raise _fail(f"Invalid holiday file: {exc}") from None
    elif country and country != "none":
        try:
            holidays.extend(get_holidays(country, year))
        except KeyError as exc:
            raise _fail(str(exc.args[0])) from None

    for value in extra or []:
        d = _parse_date(value)
        holidays.append(PublicHoliday(date=d, local_name="Holiday", name="Holiday"))

    # Deduplicate by date and sort
    unique = {h.date: h for h in reversed(filter_by_regions(holidays, regions))}
    return sorted(unique.values(), key=lambda h: h.date)


def _country_code(country: str) -> str:
    return "" if country == "none" else country.upper()


def _collect_company_holidays(values: list[str] | None) -> list[CompanyHoliday]:
    result: list[CompanyHoliday] = []
    for value in values or []:
        try:
            result.append(parse_company_holiday(value))
        except ValueError:
            raise typer.BadParameter(
                f"Invalid company holiday {value!r}. Use YYYY-MM-DD[:Name]."
            ) from None
    return result


def _print_json(output: object) -> None:
    json.dump(output, sys.stdout, indent=2)
    typer.echo()


# ---------------------------------------------------------------------------
# Global options
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    data_dir: str | None = typer.Option(
        None,
        "--data-dir",
        help="Directory for saved plans and the PTO ledger.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging."),
) -> None:
    """StretchBreak vacation planner."""
    settings = Settings.load()
    if data_dir is not None:
        settings.data_dir = pathlib.Path(data_dir).expanduser()

    level = logging.DEBUG if verbose else getattr(logging, settings.log_level.upper(), None)
    if not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s", force=True)
    ctx.obj = settings


# ---------------------------------------------------------------------------
# Suggestions
# ---------------------------------------------------------------------------


@app.command()
def suggest(
    ctx: typer.Context,
    year: int = typer.Option(None, "--year", "-y", help="Target year. Defaults to the current year."),
    country: str | None = typer.Option(
        None,
        "--country",
        "-c",
        help=f"Holiday preset ({', '.join(sorted(PRESETS))}). Use 'none' to skip.",
    ),
    holiday_file: str | None = typer.Option(
        None, "--holiday-file", help="JSON list of provider holiday records."
    ),
    region: list[str] | None = typer.Option(  # noqa: B008
        None, "--region", "-r", help="Region code to include regional holidays for. Repeatable."
    ),
    holiday: list[str] | None = typer.Option(  # noqa: B008
        None, "--holiday", "-H", help="Additional holiday date (YYYY-MM-DD). Repeatable."
    ),
    output_json: bool = typer.Option(False, "--json", help="Output results as JSON."),
) -> None:
    """Find the best bridge days around this year's holidays."""
    resolved_year = year if year is not None else _current_year()
    holidays = _collect_holidays(
        country or _settings(ctx).country, resolved_year, holiday_file, region, holiday
    )
    suggestions = find_optimal_vacation_periods(holidays, resolved_year)

    if output_json:
        _print_json(
            {
                "year": resolved_year,
                "holiday_count": len(holidays),
                "suggestions": [s.to_dict() for s in suggestions],
            }
        )
        return

    typer.echo(f"  Holidays considered: {len(holidays)}")
    typer.echo(format_suggestions(suggestions, f"BRIDGE OPPORTUNITIES {resolved_year}"))


def _resolve_budget(ctx: typer.Context, budget: int | None) -> int:
    """Use an explicit budget, else the ledger's remaining days or last input."""
    ledger = _ledger(ctx)
    if budget is not None:
        ledger.set_available_pto_input(budget)
        return budget
    if ledger.get_total_pto_days() > 0:
        return ledger.get_remaining_pto_days()
    return ledger.get_available_pto_input()


def _strategy_suggestions(
    ctx: typer.Context,
    year: int | None,
    budget: int | None,
    strategy: str | None,
    country: str | None,
    holiday_file: str | None,
    region: list[str] | None,
    company_holiday: list[str] | None,
    start: str | None,
    end: str | None,
) -> tuple[int, int, str, list[PublicHoliday], list[CompanyHoliday], list[PlanSuggestion]]:
    settings = _settings(ctx)
    resolved_year = year if year is not None else _current_year()
    start_date = _parse_date(start) if start else datetime.date(resolved_year, 1, 1)
    end_date = _parse_date(end) if end else datetime.date(resolved_year, 12, 31)
    if start_date > end_date:
        raise _fail(f"--start {start_date} is after --end {end_date}.")

    holidays: list[PublicHoliday] = []
    for y in range(start_date.year, end_date.year + 1):
        holidays.extend(_collect_holidays(country or settings.country, y, holiday_file, region, None))
        if holiday_file is not None:
            break
    company = _collect_company_holidays(company_holiday)
    resolved_budget = _resolve_budget(ctx, budget)
    resolved_strategy = resolve_strategy(strategy or settings.strategy)

    suggestions = optimize_by_strategy(
        holidays,
        company,
        resolved_budget,
        resolved_strategy,
        start_date,
        end_date,
    )
    return resolved_year, resolved_budget, resolved_strategy, holidays, company, suggestions


@app.command()
def optimize(
    ctx: typer.Context,
    year: int = typer.Option(None, "--year", "-y", help="Target year. Defaults to the current year."),
    budget: int = typer.Option(
        None,
        "--budget",
        "-b",
        help="PTO days available. Defaults to the ledger's remaining days.",
        min=0,
    ),
    strategy: str | None = typer.Option(
        None,
        "--strategy",
        "-s",
        help=f"Strategy: {', '.join(STRATEGIES)}.",
    ),
    country: str | None = typer.Option(
        None,
        "--country",
        "-c",
        help=f"Holiday preset ({', '.join(sorted(PRESETS))}). Use 'none' to skip.",
    ),
    holiday_file: str | None = typer.Option(
        None, "--holiday-file", help="JSON list of provider holiday records."
    ),
    region: list[str] | None = typer.Option(  # noqa: B008
        None, "--region", "-r", help="Region code to include regional holidays for. Repeatable."
    ),
    company_holiday: list[str] | None = typer.Option(  # noqa: B008
        None,
        "--company-holiday",
        "-C",
        help="Company holiday as YYYY-MM-DD or YYYY-MM-DD:Name. Repeatable.",
    ),
    start: str | None = typer.Option(None, "--start", help="Timeframe start (YYYY-MM-DD)."),
    end: str | None = typer.Option(None, "--end", help="Timeframe end (YYYY-MM-DD)."),
    output_json: bool = typer.Option(False, "--json", help="Output results as JSON."),
) -> None:
    """Suggest breaks shaped by a planning strategy.

    All opportunities are listed; the PTO budget is shown for reference and
    does not filter the list.
    """
    resolved_year, resolved_budget, resolved_strategy, holidays, company, suggestions = (
        _strategy_suggestions(
            ctx, year, budget, strategy, country, holiday_file, region, company_holiday, start, end
        )
    )

    if output_json:
        _print_json(
            {
                "year": resolved_year,
                "strategy": resolved_strategy,
                "available_pto_days": resolved_budget,
                "suggestions": [s.to_dict() for s in suggestions],
            }
        )
        return

    typer.echo("=" * W)
    typer.echo("  STRETCHBREAK OPTIMIZER")
    typer.echo("=" * W)
    typer.echo(f"  Year:              {resolved_year}")
    typer.echo(f"  Strategy:          {resolved_strategy} ({STRATEGIES[resolved_strategy]})")
    typer.echo(f"  PTO budget:        {resolved_budget} days")
    typer.echo(f"  Public holidays:   {len(holidays)}")
    typer.echo(f"  Company holidays:  {len(company)}")
    typer.echo(format_suggestions(suggestions, "SUGGESTED BREAKS"))
    typer.echo()
    typer.echo(
        f"  Generated {len(suggestions)} suggestion{'s' if len(suggestions) != 1 else ''}."
    )


@app.command()
def efficiency(
    ctx: typer.Context,
    days: list[str] = typer.Argument(..., help="Vacation days (YYYY-MM-DD)."),  # noqa: B008
    country: str | None = typer.Option(
        None,
        "--country",
        "-c",
        help=f"Holiday preset ({', '.join(sorted(PRESETS))}). Use 'none' to skip.",
    ),
    holiday_file: str | None = typer.Option(
        None, "--holiday-file", help="JSON list of provider holiday records."
    ),
) -> None:
    """Show how many days off a set of vacation days adds up to."""
    dates = sorted({_parse_date(d) for d in days})
    holidays = _collect_holidays(
        country or _settings(ctx).country, dates[0].year, holiday_file, None, None
    )
    stats = calculate_efficiency(dates, holidays)
    typer.echo(f"  PTO days used:    {stats.vacation_days_used}")
    typer.echo(f"  Total days off:   {stats.total_days_off}")
    if stats.vacation_days_used:
        typer.echo(f"  Efficiency:       {stats.total_days_off / stats.vacation_days_used:.1f}x")


@app.command()
def holidays(
    ctx: typer.Context,
    country: str | None = typer.Option(
        None,
        "--country",
        "-c",
        help=f"Country preset ({', '.join(sorted(PRESETS))}). Defaults to the configured one.",
    ),
    year: int = typer.Option(
        None,
        "--year",
        "-y",
        help="Year to list holidays for. Defaults to the current year.",
    ),
    holiday_file: str | None = typer.Option(
        None, "--holiday-file", help="JSON list of provider holiday records."
    ),
    region: list[str] | None = typer.Option(  # noqa: B008
        None, "--region", "-r", help="Region code to include regional holidays for. Repeatable."
    ),
) -> None:
    """List holidays for a country preset or provider file."""
    resolved_year = year if year is not None else _current_year()
    country = country or _settings(ctx).country
    listed = _collect_holidays(country, resolved_year, holiday_file, region, None)

    title = PRESETS.get(country, country) if holiday_file is None else holiday_file
    typer.echo(f"  {title} — {resolved_year}")
    typer.echo()
    for h in listed:
        scope = "" if h.global_ or not h.counties else f"  [{', '.join(h.counties)}]"
        typer.echo(f"    {h.date.strftime('%a, %b %d'):>12}  {h.local_name}{scope}")


# ---------------------------------------------------------------------------
# Plans
# ---------------------------------------------------------------------------


def _require_plan(ctx: typer.Context, plan_id: str) -> HolidayPlan:
    plan = _plan_store(ctx).get(plan_id)
    if plan is None:
        raise _fail(f"No plan with id {plan_id!r}.")
    return plan


@plans_app.command("save")
def plans_save(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Plan name."),
    date: list[str] = typer.Option(  # noqa: B008
        ..., "--date", "-d", help="Vacation day (YYYY-MM-DD). Repeatable."
    ),
    year: int = typer.Option(None, "--year", "-y", help="Plan year. Defaults to the first date's year."),
    country: str | None = typer.Option(None, "--country", "-c", help="Holiday preset."),
    holiday_file: str | None = typer.Option(
        None, "--holiday-file", help="JSON list of provider holiday records."
    ),
    region: list[str] | None = typer.Option(None, "--region", "-r", help="Region code."),  # noqa: B008
    company_holiday: list[str] | None = typer.Option(  # noqa: B008
        None, "--company-holiday", "-C", help="Company holiday as YYYY-MM-DD[:Name]."
    ),
    description: str | None = typer.Option(None, "--description", help="Plan description."),
) -> None:
    """Save a plan from manually chosen vacation days."""
    days = sorted({_parse_date(d) for d in date})
    resolved_year = year if year is not None else days[0].year
    resolved_country = country or _settings(ctx).country
    holidays = _collect_holidays(resolved_country, resolved_year, holiday_file, region, None)

    plan = HolidayPlan.create(
        name,
        _country_code(resolved_country),
        resolved_year,
        days,
        holidays,
        description=description,
        company_holidays=_collect_company_holidays(company_holiday),
    )
    _plan_store(ctx).save(plan)
    typer.echo(f"Saved plan {plan.id} ({len(plan.vacation_days)} vacation days).")


@plans_app.command("apply")
def plans_apply(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Plan name."),
    pick: int = typer.Argument(..., help="Suggestion number as listed by 'optimize'.", min=1),
    year: int = typer.Option(None, "--year", "-y", help="Target year. Defaults to the current year."),
    budget: int = typer.Option(None, "--budget", "-b", help="PTO days available.", min=0),
    strategy: str | None = typer.Option(None, "--strategy", "-s", help="Strategy."),
    country: str | None = typer.Option(None, "--country", "-c", help="Holiday preset."),
    holiday_file: str | None = typer.Option(
        None, "--holiday-file", help="JSON list of provider holiday records."
    ),
    region: list[str] | None = typer.Option(None, "--region", "-r", help="Region code."),  # noqa: B008
    company_holiday: list[str] | None = typer.Option(  # noqa: B008
        None, "--company-holiday", "-C", help="Company holiday as YYYY-MM-DD[:Name]."
    ),
    start: str | None = typer.Option(None, "--start", help="Timeframe start (YYYY-MM-DD)."),
    end: str | None = typer.Option(None, "--end", help="Timeframe end (YYYY-MM-DD)."),
) -> None:
    """Save one of the 'optimize' suggestions as a plan."""
    resolved_year, resolved_budget, resolved_strategy, holidays, company, suggestions = (
        _strategy_suggestions(
            ctx, year, budget, strategy, country, holiday_file, region, company_holiday, start, end
        )
    )
    if pick > len(suggestions):
        raise _fail(f"Only {len(suggestions)} suggestions available.")

    suggestion = suggestions[pick - 1]
    try:
        days = apply_suggestion(suggestion, holidays, company)
    except NoApplicableDatesError as exc:
        raise _fail(str(exc)) from None

    plan = HolidayPlan.create(
        name,
        _country_code(country or _settings(ctx).country),
        resolved_year,
        days,
        holidays,
        description=suggestion.reason,
        company_holidays=company,
        strategy=resolved_strategy,
        available_pto_days=resolved_budget,
    )
    _plan_store(ctx).save(plan)
    typer.echo(f"Saved plan {plan.id}: {suggestion.reason} ({len(days)} vacation days).")


@plans_app.command("list")
def plans_list(
    ctx: typer.Context,
    output_json: bool = typer.Option(False, "--json", help="Output results as JSON."),
) -> None:
    """List saved plans."""
    plans = _plan_store(ctx).get_all()
    summary = summarize_plans(plans)

    if output_json:
        _print_json(
            {
                "plans": [
                    {
                        "id": p.id,
                        "name": p.name,
                        "year": p.year,
                        "vacation_days": sorted(plan_dates(p)),
                        "overlap_count": detect_plan_overlaps(p, plans).overlap_count,
                    }
                    for p in plans
                ],
                "summary": summary._asdict(),
            }
        )
        return

    if not plans:
        typer.echo("No saved plans.")
        return

    for p in plans:
        overlaps = detect_plan_overlaps(p, plans)
        note = f"  ({overlaps.overlap_count} shared)" if overlaps.overlap_count else ""
        typer.echo(f"  {p.id}  {p.name}  {len(plan_dates(p))} days{note}")
    typer.echo()
    typer.echo(
        f"  {summary.nominal_days} vacation days across {len(plans)} "
        f"plan{'s' if len(plans) != 1 else ''} ({summary.unique_days} unique days)"
    )


@plans_app.command("show")
def plans_show(
    ctx: typer.Context,
    plan_id: str = typer.Argument(..., help="Plan id."),
    calendar: bool = typer.Option(
        True, "--calendar/--no-calendar", help="Show month-by-month calendar view."
    ),
    output_json: bool = typer.Option(False, "--json", help="Output the stored plan as JSON."),
) -> None:
    """Show one plan with its efficiency and overlaps."""
    plan = _require_plan(ctx, plan_id)
    if output_json:
        _print_json(plan_to_dict(plan))
        return

    days = sorted(plan_dates(plan))
    stats = calculate_efficiency(days, [*plan.public_holidays, *plan.company_holidays])
    overlaps = detect_plan_overlaps(plan, _plan_store(ctx).get_all())

    typer.echo("=" * W)
    typer.echo(f"  PLAN: {plan.name}")
    if plan.description:
        typer.echo(f"  {plan.description}")
    typer.echo("=" * W)
    typer.echo(f"  Country / year:   {plan.country_code or '-'} {plan.year}")
    typer.echo(f"  PTO days used:    {stats.vacation_days_used}")
    typer.echo(f"  Total days off:   {stats.total_days_off}")
    if overlaps.overlap_count:
        others = ", ".join(ref.plan_name for ref in overlaps.overlapping_plans)
        typer.echo(f"  Shared with:      {others} ({overlaps.overlap_count} days)")
    typer.echo()
    typer.echo("  Days to request off:")
    for d in days:
        typer.echo(f"    -> {datetime.date.fromisoformat(d).strftime('%A, %B %d, %Y')}")

    if calendar:
        typer.echo(
            format_calendar_view(days, plan.public_holidays, plan.year, plan.company_holidays)
        )


@plans_app.command("delete")
def plans_delete(ctx: typer.Context, plan_id: str = typer.Argument(..., help="Plan id.")) -> None:
    """Delete a saved plan."""
    if not _plan_store(ctx).delete(plan_id):
        raise _fail(f"No plan with id {plan_id!r}.")
    typer.echo(f"Deleted plan {plan_id}.")


@plans_app.command("export")
def plans_export(
    ctx: typer.Context,
    plan_id: str = typer.Argument(..., help="Plan id."),
    output: str | None = typer.Option(
        None, "--output", "-o", help="Write the .ics file here instead of stdout."
    ),
) -> None:
    """Export a plan as an iCalendar (.ics) file."""
    content = generate_ical(_require_plan(ctx, plan_id))
    if output is None:
        typer.echo(content, nl=False)
        return
    pathlib.Path(output).write_text(content, encoding="utf-8", newline="")
    typer.echo(f"Wrote {output}")


@plans_app.command("overlaps")
def plans_overlaps(
    ctx: typer.Context,
    output_json: bool = typer.Option(False, "--json", help="Output results as JSON."),
) -> None:
    """Show dates booked in more than one plan."""
    plans = _plan_store(ctx).get_all()
    shared = get_all_overlapping_dates(plans)

    if output_json:
        _print_json(shared)
        return

    if not shared:
        typer.echo("No overlapping dates.")
        return
    names = {p.id: p.name for p in plans}
    for day, ids in shared.items():
        typer.echo(f"  {day}  {', '.join(names.get(i, i) for i in ids)}")


# ---------------------------------------------------------------------------
# PTO ledger
# ---------------------------------------------------------------------------


@pto_app.command("set")
def pto_set(
    ctx: typer.Context,
    days: int = typer.Argument(..., help="Total PTO days for the year.", min=0),
) -> None:
    """Set (replace) your total PTO days."""
    ledger = _ledger(ctx)
    ledger.set_total_pto_days(days)
    typer.echo(f"Total PTO set to {days} days ({ledger.get_remaining_pto_days()} remaining).")


@pto_app.command("status")
def pto_status(
    ctx: typer.Context,
    output_json: bool = typer.Option(False, "--json", help="Output results as JSON."),
) -> None:
    """Show total, used and remaining PTO."""
    snap = _ledger(ctx).snapshot()
    if output_json:
        _print_json(snap._asdict())
        return
    typer.echo(f"  Total PTO:      {snap.total}")
    typer.echo(f"  Used PTO:       {snap.used}")
    typer.echo(f"  Remaining PTO:  {snap.remaining}")


@pto_app.command("reset")
def pto_reset(
    ctx: typer.Context,
    everything: bool = typer.Option(
        False, "--all", help="Also forget the last entered available-days value."
    ),
) -> None:
    """Reset PTO tracking, e.g. for a new year."""
    ledger = _ledger(ctx)
    if everything:
        ledger.reset_all_pto_data()
    else:
        ledger.reset_pto_tracking()
    typer.echo("PTO tracking reset.")


def main() -> None:
    """Entry point for the CLI."""
    app()
