from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from aggregation import (
    FeedEntry,
    RankedCategory,
    breakdown,
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
from categories import (
    EXPENSE_CATEGORIES,
    INCOME_SOURCES,
    CategoryInfo,
    expense_category,
    income_source,
    resolve_key,
)
from models import Budget, Expense, Income, SavingsGoal, TransactionKind
from periods import Period, as_local, budget_end_date
from schemas import (
    BudgetIn,
    BudgetUpdate,
    ContributionIn,
    ExpenseIn,
    ExpenseUpdate,
    IncomeIn,
    IncomeUpdate,
    SavingsGoalIn,
    SavingsGoalUpdate,
)

logger = logging.getLogger(__name__)


class RecordNotFound(ValueError):
    pass


def get_current_user_id() -> int:
    return 1


class _RecordService:
    model: type
    label: str
    event: str
    required_fields: frozenset[str] = frozenset()

    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def _ordering(self) -> tuple:
        return (self.model.id,)

    def list_all(self) -> list:
        stmt = (
            select(self.model)
            .where(self.model.user_id == self.user_id)
            .order_by(*self._ordering())
        )
        return self.session.scalars(stmt).all()

    def get(self, record_id: int):
        record = self.session.get(self.model, record_id)
        if not record or record.user_id != self.user_id:
            raise RecordNotFound(f"{self.label} not found")
        return record

    def _insert(self, values: dict[str, object]):
        record = self.model(user_id=self.user_id, **values)
        self.session.add(record)
        self.session.commit()
        self.session.refresh(record)
        logger.info(
            f"{self.event}_created: user_id={self.user_id} {self.event}_id={record.id}"
        )
        return record

    def _merge(self, record_id: int, changes: dict[str, object]):
        record = self.get(record_id)
        for name, value in changes.items():
            if value is None and name in self.required_fields:
                raise ValueError(f"{name} cannot be empty")
        for name, value in changes.items():
            setattr(record, name, value)
        self.session.commit()
        self.session.refresh(record)
        logger.info(
            f"{self.event}_updated: user_id={self.user_id} {self.event}_id={record.id} "
            f"fields={','.join(sorted(changes))}"
        )
        return record

    def delete(self, record_id: int) -> None:
        record = self.get(record_id)
        self.session.delete(record)
        self.session.commit()
        logger.info(
            f"{self.event}_deleted: user_id={self.user_id} {self.event}_id={record_id}"
        )


class _TransactionService(_RecordService):
    key_field: str
    catalog: tuple[CategoryInfo, ...]
    required_fields = frozenset({"amount_cents", "date"})

    def _ordering(self) -> tuple:
        return (self.model.date.desc(), self.model.id.desc())

    def _normalize(self, values: dict[str, object]) -> dict[str, object]:
        if values.get(self.key_field) is not None:
            values[self.key_field] = resolve_key(values[self.key_field], self.catalog)
        if values.get("date") is not None:
            values["date"] = as_local(values["date"])
        return values

    def list_between(self, start: datetime, end: datetime) -> list:
        stmt = (
            select(self.model)
            .where(
                self.model.user_id == self.user_id,
                self.model.date.between(start, end),
            )
            .order_by(*self._ordering())
        )
        return self.session.scalars(stmt).all()


class ExpenseService(_TransactionService):
    model = Expense
    label = "Expense"
    event = "expense"
    key_field = "category"
    catalog = EXPENSE_CATEGORIES
    required_fields = frozenset({"amount_cents", "category", "date"})

    def create(self, data: ExpenseIn) -> Expense:
        return self._insert(self._normalize(data.model_dump()))

    def update(self, expense_id: int, data: ExpenseUpdate) -> Expense:
        changes = self._normalize(data.model_dump(exclude_unset=True))
        return self._merge(expense_id, changes)


class IncomeService(_TransactionService):
    model = Income
    label = "Income"
    event = "income"
    key_field = "source"
    catalog = INCOME_SOURCES
    required_fields = frozenset({"amount_cents", "source", "date"})

    def create(self, data: IncomeIn) -> Income:
        return self._insert(self._normalize(data.model_dump()))

    def update(self, income_id: int, data: IncomeUpdate) -> Income:
        changes = self._normalize(data.model_dump(exclude_unset=True))
        return self._merge(income_id, changes)


class BudgetService(_RecordService):
    model = Budget
    label = "Budget"
    event = "budget"
    required_fields = frozenset(
        {"category", "amount_cents", "period", "start_date", "end_date"}
    )

    def _ordering(self) -> tuple:
        return (Budget.start_date.desc(), Budget.id)

    def list_by_period(self, period: str) -> list[Budget]:
        stmt = (
            select(Budget)
            .where(Budget.user_id == self.user_id, Budget.period == period)
            .order_by(*self._ordering())
        )
        return self.session.scalars(stmt).all()

    def create(self, data: BudgetIn) -> Budget:
        values = data.model_dump()
        values["category"] = resolve_key(data.category, EXPENSE_CATEGORIES)
        if data.end_date is None:
            values["end_date"] = budget_end_date(data.start_date, data.period)
        return self._insert(values)

    def update(self, budget_id: int, data: BudgetUpdate) -> Budget:
        budget = self.get(budget_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("category") is not None:
            changes["category"] = resolve_key(changes["category"], EXPENSE_CATEGORIES)

        reshaped = "start_date" in changes or "period" in changes
        if reshaped and "end_date" not in changes:
            start = changes.get("start_date") or budget.start_date
            period = changes.get("period") or budget.period
            changes["end_date"] = budget_end_date(start, period)

        start_date: date = changes.get("start_date") or budget.start_date
        end_date: date = changes.get("end_date") or budget.end_date
        if start_date > end_date:
            raise ValueError("Start date must be before end date")
        return self._merge(budget_id, changes)


class SavingsGoalService(_RecordService):
    model = SavingsGoal
    label = "Savings goal"
    event = "savings_goal"
    required_fields = frozenset(
        {"name", "target_amount_cents", "current_amount_cents"}
    )

    def create(self, data: SavingsGoalIn) -> SavingsGoal:
        values = data.model_dump()
        if data.deadline is not None:
            values["deadline"] = as_local(data.deadline)
        return self._insert(values)

    def update(self, goal_id: int, data: SavingsGoalUpdate) -> SavingsGoal:
        changes = data.model_dump(exclude_unset=True)
        if changes.get("deadline") is not None:
            changes["deadline"] = as_local(changes["deadline"])
        return self._merge(goal_id, changes)

    def contribute(self, goal_id: int, data: ContributionIn) -> SavingsGoal:
        goal = self.get(goal_id)
        return self._merge(
            goal_id,
            {"current_amount_cents": goal.current_amount_cents + data.amount_cents},
        )


def _labelled(ranked: list[RankedCategory], lookup) -> list[dict[str, object]]:
    rows = []
    for item in ranked:
        info = lookup(item.category)
        rows.append(
            {
                "category": item.category,
                "name": info.name,
                "icon": info.icon,
                "amount_cents": item.amount_cents,
                "percent": item.percent_of_total,
            }
        )
    return rows


def _period_payload(period: Period) -> dict[str, object]:
    return {
        "slug": period.slug,
        "start": period.start.isoformat(),
        "end": period.end.isoformat(),
    }


def feed_row(entry: FeedEntry, now: datetime) -> dict[str, object]:
    if entry.kind == TransactionKind.expense:
        info = expense_category(entry.category)
    else:
        info = income_source(entry.category)
    return {
        "id": entry.id,
        "kind": entry.kind.value,
        "amount_cents": entry.amount_cents,
        "category": entry.category,
        "description": entry.description or info.name,
        "icon": "work" if entry.kind == TransactionKind.income else info.icon,
        "date": entry.date.isoformat(),
        "when": relative_label(entry.date, now),
    }


class ReportService:
    """Fetches one snapshot of a user's records per call and runs the views."""

    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()
        self.expenses = ExpenseService(session, self.user_id)
        self.incomes = IncomeService(session, self.user_id)
        self.budgets = BudgetService(session, self.user_id)
        self.goals = SavingsGoalService(session, self.user_id)

    def period_report(self, period: Period) -> dict[str, object]:
        expenses = filter_window(self.expenses.list_all(), period)
        incomes = filter_window(self.incomes.list_all(), period)
        expense_totals = category_totals(expenses, "category")
        income_totals = category_totals(incomes, "source")

        data: dict[str, object] = {
            "period": _period_payload(period),
            "summary": period_summary(expenses, incomes),
            "expenses_by_category": _labelled(
                breakdown(expense_totals), expense_category
            ),
            "income_by_source": _labelled(breakdown(income_totals), income_source),
            "top_categories": _labelled(
                top_categories(expense_totals, 5), expense_category
            ),
            "cashflow": income_expense_series(expenses, incomes),
            "monthly": [],
        }
        if period.slug == "year":
            data["monthly"] = monthly_totals(expenses, period.start.year)
        return data

    @staticmethod
    def _spending(expenses: list[Expense], period: Period) -> dict[str, object]:
        in_window = filter_window(expenses, period)
        totals = category_totals(in_window, "category")
        return {
            "period": _period_payload(period),
            "total_cents": sum(totals.values()),
            "series": daily_series(in_window, period),
            "categories": _labelled(breakdown(totals), expense_category),
        }

    def spending_analytics(self, period: Period) -> dict[str, object]:
        return self._spending(self.expenses.list_all(), period)

    def budget_overview(self, now: datetime) -> dict[str, list[dict[str, object]]]:
        expenses = self.expenses.list_all()
        partition = partition_budgets(self.budgets.list_all(), now)

        def rows(budgets: list[Budget]) -> list[dict[str, object]]:
            return [
                {
                    "id": budget.id,
                    "category": budget.category,
                    "name": expense_category(budget.category).name,
                    "period": budget.period.value,
                    "start_date": budget.start_date.isoformat(),
                    "end_date": budget.end_date.isoformat(),
                    "progress": budget_progress(budget, expenses),
                }
                for budget in budgets
            ]

        return {
            "current": rows(partition.current),
            "past": rows(partition.past),
            "upcoming": rows(partition.upcoming),
        }

    def recent_transactions(
        self, now: datetime, limit: Optional[int] = None
    ) -> list[dict[str, object]]:
        feed = merge_transactions(
            self.expenses.list_all(), self.incomes.list_all(), limit=limit
        )
        return [feed_row(entry, now) for entry in feed]

    def feed_between(self, period: Period) -> list[FeedEntry]:
        return merge_transactions(
            self.expenses.list_between(period.start, period.end),
            self.incomes.list_between(period.start, period.end),
        )

    def savings_card(
        self, default: Optional[SavingsGoal] = None
    ) -> Optional[dict[str, object]]:
        goal = primary_goal(self.goals.list_all(), default)
        if goal is None:
            return None
        return {
            "id": goal.id,
            "name": goal.name,
            "deadline": goal.deadline.isoformat() if goal.deadline else None,
            "progress": savings_progress(goal),
        }

    def dashboard(
        self,
        now: datetime,
        period: Period,
        *,
        monthly_budget_cents: int,
        recent_limit: int,
    ) -> dict[str, object]:
        expenses = self.expenses.list_all()
        incomes = self.incomes.list_all()
        feed = merge_transactions(expenses, incomes, limit=recent_limit)
        return {
            "monthly_budget": monthly_budget_summary(
                expenses, now, monthly_budget_cents
            ),
            "savings_goal": self.savings_card(),
            "recent_transactions": [feed_row(entry, now) for entry in feed],
            "spending": self._spending(expenses, period),
        }
