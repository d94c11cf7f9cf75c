from datetime import date, datetime, time
from types import SimpleNamespace

from aggregation import (
    budget_progress,
    category_totals,
    daily_series,
    filter_window,
    income_expense_series,
    merge_transactions,
    monthly_budget_summary,
    monthly_totals,
    partition_budgets,
    period_summary,
    primary_goal,
    relative_label,
    savings_progress,
    top_categories,
)
from models import BudgetPeriod, TransactionKind
from periods import day_span, resolve_period

NOW = datetime(2025, 9, 20, 12, 0)


def expense(amount_cents, when, category="food", id=1, description=None):
    return SimpleNamespace(
        id=id,
        amount_cents=amount_cents,
        category=category,
        description=description,
        date=when,
    )


def income(amount_cents, when, source="job", id=1, description=None):
    return SimpleNamespace(
        id=id,
        amount_cents=amount_cents,
        source=source,
        description=description,
        date=when,
    )


def budget(amount_cents, start, end, category="food", id=1):
    return SimpleNamespace(
        id=id,
        category=category,
        amount_cents=amount_cents,
        period=BudgetPeriod.monthly,
        start_date=start,
        end_date=end,
    )


def september_expenses():
    return [
        expense(2_000, datetime(2025, 9, 1, 9, 30), id=1),
        expense(3_000, datetime(2025, 9, 15, 18, 0), id=2),
    ]


def test_category_totals_sum_single_category() -> None:
    assert category_totals(september_expenses()) == {"food": 5_000}


def test_category_totals_conserve_the_grand_total() -> None:
    records = [
        expense(1_250, datetime(2025, 9, 2), category="food"),
        expense(80_000, datetime(2025, 9, 1), category="rent"),
        expense(399, datetime(2025, 9, 3), category="books"),
        expense(1, datetime(2025, 9, 4), category="food"),
    ]

    totals = category_totals(records)

    assert sum(totals.values()) == sum(r.amount_cents for r in records)
    assert list(totals) == ["food", "rent", "books"]
    assert category_totals([]) == {}


def test_category_totals_by_income_source() -> None:
    records = [
        income(50_000, datetime(2025, 9, 1), source="job"),
        income(30_000, datetime(2025, 9, 2), source="scholarship"),
        income(10_000, datetime(2025, 9, 3), source="job"),
    ]

    assert category_totals(records, "source") == {"job": 60_000, "scholarship": 30_000}


def test_window_includes_records_on_both_boundaries() -> None:
    period = resolve_period("this_month", now=NOW)
    records = [
        expense(100, datetime.combine(date(2025, 9, 1), time.min), id=1),
        expense(200, datetime(2025, 9, 30, 23, 59, 59, 999999), id=2),
        expense(300, datetime(2025, 8, 31, 23, 59, 59), id=3),
        expense(400, datetime(2025, 10, 1, 0, 0), id=4),
    ]

    in_window = filter_window(records, period)

    assert [r.id for r in in_window] == [1, 2]


def test_budget_progress_half_spent() -> None:
    b = budget(10_000, date(2025, 9, 1), date(2025, 9, 30))

    progress = budget_progress(b, september_expenses())

    assert progress.spent_cents == 5_000
    assert progress.remaining_cents == 5_000
    assert progress.progress_percent == 50.0
    assert progress.over_budget is False


def test_budget_progress_clamps_when_over_budget() -> None:
    b = budget(4_000, date(2025, 9, 1), date(2025, 9, 30))

    progress = budget_progress(b, september_expenses())

    assert progress.spent_cents == 5_000
    assert progress.progress_percent == 100.0
    assert progress.remaining_cents == -1_000
    assert progress.over_budget is True


def test_budget_progress_without_expenses() -> None:
    b = budget(10_000, date(2025, 9, 1), date(2025, 9, 30))

    progress = budget_progress(b, [])

    assert progress.spent_cents == 0
    assert progress.progress_percent == 0.0
    assert progress.remaining_cents == 10_000


def test_budget_progress_with_zero_amount_reports_zero_percent() -> None:
    b = budget(0, date(2025, 9, 1), date(2025, 9, 30))

    progress = budget_progress(b, september_expenses())

    assert progress.progress_percent == 0.0
    assert progress.remaining_cents == -5_000


def test_budget_progress_ignores_other_categories_and_dates() -> None:
    b = budget(10_000, date(2025, 9, 1), date(2025, 9, 30))
    records = september_expenses() + [
        expense(7_000, datetime(2025, 9, 10), category="rent"),
        expense(7_000, datetime(2025, 10, 1), category="food"),
        expense(700, datetime(2025, 9, 30, 22, 0), category="food"),
    ]

    assert budget_progress(b, records).spent_cents == 5_700


def test_budget_progress_stays_within_bounds() -> None:
    records = september_expenses()
    for amount in (1, 2_500, 5_000, 5_001, 1_000_000):
        progress = budget_progress(
            budget(amount, date(2025, 9, 1), date(2025, 9, 30)), records
        )
        assert 0.0 <= progress.progress_percent <= 100.0
        assert progress.remaining_cents == amount - progress.spent_cents
        if progress.remaining_cents < 0:
            assert progress.progress_percent == 100.0


def test_partition_budgets_splits_current_past_and_upcoming() -> None:
    older = budget(100, date(2025, 6, 1), date(2025, 6, 30), id=1)
    recent = budget(100, date(2025, 8, 1), date(2025, 8, 31), id=2)
    running = budget(100, date(2025, 9, 1), date(2025, 9, 30), id=3)
    ending_today = budget(100, date(2025, 8, 21), date(2025, 9, 20), id=4)
    later = budget(100, date(2025, 11, 1), date(2025, 11, 30), id=5)
    sooner = budget(100, date(2025, 10, 1), date(2025, 10, 31), id=6)

    partition = partition_budgets(
        [older, later, running, recent, ending_today, sooner], NOW
    )

    assert [b.id for b in partition.current] == [3, 4]
    assert [b.id for b in partition.past] == [2, 1]
    assert [b.id for b in partition.upcoming] == [6, 5]


def test_merge_orders_newest_first_across_kinds() -> None:
    feed = merge_transactions(
        [
            expense(100, datetime(2025, 9, 10), id=1),
            expense(200, datetime(2025, 9, 5), id=2),
        ],
        [income(300, datetime(2025, 9, 12), id=1)],
    )

    assert [(e.kind, e.date.day) for e in feed] == [
        (TransactionKind.income, 12),
        (TransactionKind.expense, 10),
        (TransactionKind.expense, 5),
    ]
    assert feed[0].category == "job"


def test_merge_keeps_fetch_order_for_equal_dates() -> None:
    moment = datetime(2025, 9, 10, 12, 0)

    feed = merge_transactions(
        [expense(100, moment, id=1), expense(200, moment, id=2)],
        [income(300, moment, id=3)],
    )

    assert [(e.kind.value, e.id) for e in feed] == [
        ("expense", 1),
        ("expense", 2),
        ("income", 3),
    ]


def test_merge_truncates_after_sorting() -> None:
    expenses = [expense(100, datetime(2025, 9, day), id=day) for day in (1, 3, 5, 7, 9)]
    incomes = [income(100, datetime(2025, 9, day), id=day) for day in (2, 4, 6, 8, 10)]

    feed = merge_transactions(expenses, incomes, limit=4)

    assert [e.date.day for e in feed] == [10, 9, 8, 7]
    assert merge_transactions(expenses, incomes, limit=0) == []
    assert len(merge_transactions(expenses, incomes)) == 10


def test_top_categories_ranks_by_amount_with_share_of_total() -> None:
    totals = {"food": 5_000, "rent": 80_000, "books": 5_000, "health": 10_000}

    ranked = top_categories(totals, 3)

    assert [r.category for r in ranked] == ["rent", "health", "food"]
    assert ranked[0].percent_of_total == 80.0
    assert ranked[2].percent_of_total == 5.0
    assert top_categories(totals, 3) == ranked


def test_top_categories_edge_cases() -> None:
    assert top_categories({}, 5) == []
    assert top_categories({"food": 100}, 0) == []
    assert len(top_categories({"food": 1, "rent": 2}, 10)) == 2


def test_daily_series_pads_sparse_single_month() -> None:
    period = resolve_period("this_month", now=NOW)
    records = [
        expense(500, datetime(2025, 9, 12, 8, 0)),
        expense(250, datetime(2025, 9, 12, 19, 0)),
        expense(900, datetime(2025, 9, 3)),
    ]

    series = daily_series(records, period)

    assert [p.label for p in series] == [
        "Sep 03",
        "Sep 05",
        "Sep 10",
        "Sep 12",
        "Sep 15",
        "Sep 20",
        "Sep 25",
    ]
    assert [p.total_cents for p in series] == [900, 0, 0, 750, 0, 0, 0]


def test_daily_series_keeps_real_total_on_padding_day() -> None:
    period = resolve_period("last_month", now=NOW)
    series = daily_series([expense(400, datetime(2025, 8, 10))], period)

    assert len(series) == 5
    assert series[1].label == "Aug 10"
    assert series[1].total_cents == 400


def test_daily_series_without_padding_for_wider_windows() -> None:
    period = resolve_period("three_months", now=NOW)
    records = [
        expense(100, datetime(2025, 9, 1)),
        expense(200, datetime(2025, 7, 30)),
    ]

    series = daily_series(records, period)

    assert [p.label for p in series] == ["Jul 30", "Sep 01"]
    assert daily_series([], period) == []


def test_daily_series_sorts_by_date_not_label() -> None:
    period = resolve_period("year", now=NOW)
    records = [
        expense(100, datetime(2025, 9, 2)),
        expense(100, datetime(2025, 10, 1)),
        expense(100, datetime(2025, 1, 15)),
    ]

    labels = [p.label for p in daily_series(records, period)]

    assert labels == ["Jan 15", "Sep 02", "Oct 01"]


def test_income_expense_series_aligns_days() -> None:
    series = income_expense_series(
        [expense(100, datetime(2025, 9, 3)), expense(50, datetime(2025, 9, 1))],
        [income(1_000, datetime(2025, 9, 1))],
    )

    assert [(p.label, p.expenses_cents, p.income_cents) for p in series] == [
        ("Sep 01", 50, 1_000),
        ("Sep 03", 100, 0),
    ]


def test_monthly_totals_cover_the_whole_year() -> None:
    records = [
        expense(100, datetime(2025, 1, 31)),
        expense(200, datetime(2025, 12, 1)),
        expense(300, datetime(2024, 12, 31)),
    ]

    months = monthly_totals(records, 2025)

    assert len(months) == 12
    assert months[0].label == "Jan"
    assert months[0].total_cents == 100
    assert months[11].total_cents == 200
    assert sum(m.total_cents for m in months) == 300


def test_period_summary_savings_rate() -> None:
    summary = period_summary(
        september_expenses(), [income(20_000, datetime(2025, 9, 1))]
    )

    assert summary.total_expenses_cents == 5_000
    assert summary.total_income_cents == 20_000
    assert summary.net_savings_cents == 15_000
    assert summary.savings_rate == 75.0
    assert period_summary([], []).savings_rate == 0.0


def test_monthly_budget_summary_uses_calendar_month_of_now() -> None:
    records = september_expenses() + [expense(9_999, datetime(2025, 8, 31, 23, 0))]

    summary = monthly_budget_summary(records, NOW, 20_000)

    assert summary.spent_cents == 5_000
    assert summary.remaining_cents == 15_000
    assert summary.progress_percent == 25.0


def test_savings_progress_and_primary_goal() -> None:
    goal = SimpleNamespace(target_amount_cents=100_000, current_amount_cents=25_000)
    fallback = SimpleNamespace(target_amount_cents=1, current_amount_cents=2)

    progress = savings_progress(goal)

    assert progress.remaining_cents == 75_000
    assert progress.percent_complete == 25.0
    assert savings_progress(fallback).percent_complete == 100.0
    assert primary_goal([goal], fallback) is goal
    assert primary_goal([], fallback) is fallback
    assert primary_goal([]) is None


def test_relative_label() -> None:
    now = datetime(2025, 9, 20, 18, 0)

    assert relative_label(datetime(2025, 9, 20, 15, 4), now) == "Today, 3:04 PM"
    assert relative_label(datetime(2025, 9, 19, 9, 30), now) == "Yesterday, 9:30 AM"
    assert relative_label(datetime(2025, 9, 16, 9, 30), now) == "4 days ago"
    assert relative_label(datetime(2025, 9, 5, 15, 4), now) == "Sep 5, 3:04 PM"


def test_custom_window_filters_records() -> None:
    period = day_span("custom", date(2025, 9, 2), date(2025, 9, 14))

    assert filter_window(september_expenses(), period) == []
