"""Derived views over one user's already-fetched records.

Everything here is a pure function of its arguments: no session access, no
clock reads. Records are duck-typed; anything carrying ``amount_cents`` and a
``date`` datetime works (ORM rows, dataclasses, test doubles). Callers pass
``now`` and any fallback figures explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, Optional, Sequence, TypeVar

from models import TransactionKind
from periods import Period, budget_window, day_span, month_end, month_start

SERIES_MIN_POINTS = 5
SERIES_PAD_DAYS = (5, 10, 15, 20, 25)
DAY_LABEL_FORMAT = "%b %d"
MONTH_LABEL_FORMAT = "%b"

T = TypeVar("T")


def percent_of(part: int, whole: int) -> float:
    return (part / whole * 100) if whole else 0.0


def filter_window(records: Iterable[T], period: Period) -> list[T]:
    return [record for record in records if period.contains(record.date)]


def category_totals(records: Iterable, field_name: str = "category") -> dict[str, int]:
    """Sum ``amount_cents`` per value of ``field_name`` (``category`` or ``source``).

    Keys appear in first-seen order and only for categories present in the
    input.
    """
    totals: dict[str, int] = {}
    for record in records:
        key = getattr(record, field_name)
        totals[key] = totals.get(key, 0) + record.amount_cents
    return totals


@dataclass(frozen=True)
class RankedCategory:
    category: str
    amount_cents: int
    percent_of_total: float


def top_categories(totals: dict[str, int], n: int = 5) -> list[RankedCategory]:
    if n <= 0:
        return []
    grand_total = sum(totals.values())
    # sorted() is stable, so equal amounts keep their first-seen order
    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [
        RankedCategory(
            category=key,
            amount_cents=amount,
            percent_of_total=percent_of(amount, grand_total),
        )
        for key, amount in ranked[:n]
    ]


def breakdown(totals: dict[str, int]) -> list[RankedCategory]:
    return top_categories(totals, n=len(totals))


@dataclass(frozen=True)
class BudgetProgress:
    amount_cents: int
    spent_cents: int
    remaining_cents: int
    progress_percent: float
    over_budget: bool


def _progress(amount_cents: int, spent_cents: int) -> BudgetProgress:
    remaining = amount_cents - spent_cents
    return BudgetProgress(
        amount_cents=amount_cents,
        spent_cents=spent_cents,
        remaining_cents=remaining,
        progress_percent=min(100.0, percent_of(spent_cents, amount_cents)),
        over_budget=remaining < 0,
    )


def budget_spent(budget, expenses: Iterable) -> int:
    window = budget_window(budget)
    return sum(
        expense.amount_cents
        for expense in expenses
        if expense.category == budget.category and window.contains(expense.date)
    )


def budget_progress(budget, expenses: Iterable) -> BudgetProgress:
    return _progress(budget.amount_cents, budget_spent(budget, expenses))


def monthly_budget_summary(
    expenses: Iterable, now: datetime, total_budget_cents: int
) -> BudgetProgress:
    """Spending in the calendar month of ``now`` against an overall figure."""
    today = now.date()
    month = day_span("this_month", month_start(today), month_end(today))
    spent = sum(expense.amount_cents for expense in filter_window(expenses, month))
    return _progress(total_budget_cents, spent)


@dataclass
class BudgetPartition:
    current: list = field(default_factory=list)
    past: list = field(default_factory=list)
    upcoming: list = field(default_factory=list)


def partition_budgets(budgets: Iterable, now: datetime) -> BudgetPartition:
    partition = BudgetPartition()
    for budget in budgets:
        window = budget_window(budget)
        if window.end < now:
            partition.past.append(budget)
        elif window.start <= now:
            partition.current.append(budget)
        else:
            partition.upcoming.append(budget)
    partition.past.sort(key=lambda b: b.end_date, reverse=True)
    partition.upcoming.sort(key=lambda b: b.start_date)
    return partition


@dataclass(frozen=True)
class FeedEntry:
    id: int
    kind: TransactionKind
    amount_cents: int
    category: str
    description: Optional[str]
    date: datetime


def merge_transactions(
    expenses: Iterable, incomes: Iterable, limit: Optional[int] = None
) -> list[FeedEntry]:
    feed = [
        FeedEntry(
            id=expense.id,
            kind=TransactionKind.expense,
            amount_cents=expense.amount_cents,
            category=expense.category,
            description=expense.description,
            date=expense.date,
        )
        for expense in expenses
    ]
    feed.extend(
        FeedEntry(
            id=income.id,
            kind=TransactionKind.income,
            amount_cents=income.amount_cents,
            category=income.source,
            description=income.description,
            date=income.date,
        )
        for income in incomes
    )
    # stable sort: equal dates keep expenses-then-incomes fetch order
    feed.sort(key=lambda entry: entry.date, reverse=True)
    if limit is not None:
        return feed[: max(limit, 0)]
    return feed


@dataclass(frozen=True)
class SeriesPoint:
    label: str
    day: date
    total_cents: int


def _totals_by_day(records: Iterable) -> dict[date, int]:
    by_day: dict[date, int] = {}
    for record in records:
        day = record.date.date()
        by_day[day] = by_day.get(day, 0) + record.amount_cents
    return by_day


def daily_series(
    records: Iterable, period: Optional[Period] = None
) -> list[SeriesPoint]:
    """Per-day totals in calendar order.

    Single-month windows with fewer than ``SERIES_MIN_POINTS`` real buckets are
    padded with zero buckets on days 5, 10, 15, 20 and 25 of that month.
    """
    by_day = _totals_by_day(records)
    padded = period is not None and period.single_month
    if padded and len(by_day) < SERIES_MIN_POINTS:
        first = period.start.date()
        for day_number in SERIES_PAD_DAYS:
            by_day.setdefault(first.replace(day=day_number), 0)
    return [
        SeriesPoint(label=day.strftime(DAY_LABEL_FORMAT), day=day, total_cents=total)
        for day, total in sorted(by_day.items())
    ]


@dataclass(frozen=True)
class CashflowPoint:
    label: str
    day: date
    expenses_cents: int
    income_cents: int


def income_expense_series(
    expenses: Iterable, incomes: Iterable
) -> list[CashflowPoint]:
    spent = _totals_by_day(expenses)
    earned = _totals_by_day(incomes)
    return [
        CashflowPoint(
            label=day.strftime(DAY_LABEL_FORMAT),
            day=day,
            expenses_cents=spent.get(day, 0),
            income_cents=earned.get(day, 0),
        )
        for day in sorted(set(spent) | set(earned))
    ]


@dataclass(frozen=True)
class MonthPoint:
    label: str
    month: int
    total_cents: int


def monthly_totals(records: Iterable, year: int) -> list[MonthPoint]:
    by_month = [0] * 12
    for record in records:
        if record.date.year == year:
            by_month[record.date.month - 1] += record.amount_cents
    return [
        MonthPoint(
            label=date(year, index + 1, 1).strftime(MONTH_LABEL_FORMAT),
            month=index + 1,
            total_cents=total,
        )
        for index, total in enumerate(by_month)
    ]


@dataclass(frozen=True)
class PeriodSummary:
    total_expenses_cents: int
    total_income_cents: int
    net_savings_cents: int
    savings_rate: float


def period_summary(expenses: Iterable, incomes: Iterable) -> PeriodSummary:
    total_expenses = sum(expense.amount_cents for expense in expenses)
    total_income = sum(income.amount_cents for income in incomes)
    net = total_income - total_expenses
    return PeriodSummary(
        total_expenses_cents=total_expenses,
        total_income_cents=total_income,
        net_savings_cents=net,
        savings_rate=percent_of(net, total_income),
    )


@dataclass(frozen=True)
class SavingsProgress:
    target_amount_cents: int
    current_amount_cents: int
    remaining_cents: int
    percent_complete: float


def savings_progress(goal) -> SavingsProgress:
    target = goal.target_amount_cents
    current = goal.current_amount_cents
    return SavingsProgress(
        target_amount_cents=target,
        current_amount_cents=current,
        remaining_cents=target - current,
        percent_complete=min(100.0, percent_of(current, target)),
    )


def primary_goal(goals: Sequence[T], default: Optional[T] = None) -> Optional[T]:
    return goals[0] if goals else default


def relative_label(when: datetime, now: datetime) -> str:
    days_ago = (now.date() - when.date()).days
    clock = when.strftime("%I:%M %p").lstrip("0")
    if days_ago == 0:
        return f"Today, {clock}"
    if days_ago == 1:
        return f"Yesterday, {clock}"
    if 1 < days_ago < 7:
        return f"{days_ago} days ago"
    return f"{when.strftime('%b')} {when.day}, {clock}"
