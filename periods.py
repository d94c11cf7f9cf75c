from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from config import get_settings
from models import BUDGET_PERIOD_MONTHS, BudgetPeriod

SINGLE_MONTH_SLUGS = frozenset({"this_month", "last_month"})

_SELECTOR_ALIASES = {
    "thisMonth": "this_month",
    "lastMonth": "last_month",
    "threeMonths": "three_months",
}


@dataclass(frozen=True)
class Period:
    slug: str
    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end

    @property
    def single_month(self) -> bool:
        return self.slug in SINGLE_MONTH_SLUGS


def local_now() -> datetime:
    settings = get_settings()
    return datetime.now(ZoneInfo(settings.timezone)).replace(tzinfo=None)


def as_local(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment
    settings = get_settings()
    return moment.astimezone(ZoneInfo(settings.timezone)).replace(tzinfo=None)


def days_in_month(year: int, month: int) -> int:
    if month == 12:
        next_month = date(year + 1, 1, 1)
    else:
        next_month = date(year, month + 1, 1)
    return (next_month - date(year, month, 1)).days


def add_months(base: date, months: int) -> date:
    """Shift ``base`` by whole months, snapping to the last day of short months."""
    total_months = base.month - 1 + months
    year = base.year + total_months // 12
    month = total_months % 12 + 1
    return date(year, month, min(base.day, days_in_month(year, month)))


def month_start(d: date) -> date:
    return d.replace(day=1)


def month_end(d: date) -> date:
    return d.replace(day=days_in_month(d.year, d.month))


def day_span(slug: str, start: date, end: date) -> Period:
    return Period(
        slug, datetime.combine(start, time.min), datetime.combine(end, time.max)
    )


def budget_end_date(start: date, period: BudgetPeriod) -> date:
    return add_months(start, BUDGET_PERIOD_MONTHS[period]) - timedelta(days=1)


def budget_window(budget) -> Period:
    return day_span("budget", budget.start_date, budget.end_date)


def resolve_period(
    period: Optional[str],
    start: Optional[str] = None,
    end: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
    semester: Optional[tuple[date, date]] = None,
) -> Period:
    today = (now or local_now()).date()
    slug = _SELECTOR_ALIASES.get(period, period) if period else "this_month"

    if slug == "this_month":
        return day_span(slug, month_start(today), month_end(today))
    if slug == "last_month":
        previous = add_months(today, -1)
        return day_span(slug, month_start(previous), month_end(previous))
    if slug == "three_months":
        first = month_start(add_months(today, -2))
        return day_span(slug, first, month_end(today))
    if slug == "year":
        return day_span(slug, date(today.year, 1, 1), date(today.year, 12, 31))
    if slug == "semester":
        if semester is None:
            settings = get_settings()
            semester = (settings.semester_start, settings.semester_end)
        return day_span(slug, semester[0], semester[1])
    if slug == "custom":
        if not start or not end:
            raise ValueError("Custom period requires start and end dates")
        start_date = date.fromisoformat(start)
        end_date = date.fromisoformat(end)
        if start_date > end_date:
            raise ValueError("Start date must be before end date")
        return day_span(slug, start_date, end_date)
    raise ValueError(f"Unknown period: {period}")
