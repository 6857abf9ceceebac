"""StretchBreak vacation planner.

Stretch a few PTO days into long breaks by bridging weekends, public
holidays and company holidays, and keep track of the plans you save.
"""

from stretchbreak.holidays import CompanyHoliday, PublicHoliday, get_holidays, us_holidays
from stretchbreak.ledger import JsonFileStore, MemoryStore, PTOLedger
from stretchbreak.optimizer import (
    EfficiencyStats,
    NoApplicableDatesError,
    PlanSuggestion,
    apply_suggestion,
    calculate_efficiency,
    find_optimal_vacation_periods,
    optimize_by_strategy,
)
from stretchbreak.plans import (
    HolidayPlan,
    PlanStore,
    detect_plan_overlaps,
    generate_ical,
    get_all_overlapping_dates,
)

__all__ = [
    "CompanyHoliday",
    "EfficiencyStats",
    "HolidayPlan",
    "JsonFileStore",
    "MemoryStore",
    "NoApplicableDatesError",
    "PTOLedger",
    "PlanStore",
    "PlanSuggestion",
    "PublicHoliday",
    "apply_suggestion",
    "calculate_efficiency",
    "detect_plan_overlaps",
    "find_optimal_vacation_periods",
    "generate_ical",
    "get_all_overlapping_dates",
    "get_holidays",
    "optimize_by_strategy",
    "us_holidays",
]
