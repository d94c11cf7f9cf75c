import logging
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, Response
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from categories import EXPENSE_CATEGORIES, INCOME_SOURCES
from config import get_settings
from csrf import CSRF_HEADER, generate_csrf_token, validate_csrf_token
from csv_utils import export_feed
from database import SessionLocal
from periods import Period, local_now, resolve_period
from schemas import (
    BudgetIn,
    BudgetOut,
    BudgetUpdate,
    ContributionIn,
    ExpenseIn,
    ExpenseOut,
    ExpenseUpdate,
    IncomeIn,
    IncomeOut,
    IncomeUpdate,
    SavingsGoalIn,
    SavingsGoalOut,
    SavingsGoalUpdate,
)
from services import (
    BudgetService,
    ExpenseService,
    IncomeService,
    RecordNotFound,
    ReportService,
    SavingsGoalService,
    get_current_user_id,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="Budget Tracker")


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def require_csrf(request: Request) -> None:
    token = request.headers.get(CSRF_HEADER, "")
    if not validate_csrf_token(token, get_current_user_id()):
        raise HTTPException(status_code=400, detail="Invalid CSRF token")


def period_from_request(request: Request) -> Period:
    period_slug = request.query_params.get("period")
    start = request.query_params.get("start")
    end = request.query_params.get("end")
    try:
        return resolve_period(period_slug, start, end)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _write_failed(exc: ValueError) -> HTTPException:
    if isinstance(exc, RecordNotFound):
        return HTTPException(status_code=404, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


@app.exception_handler(OperationalError)
def store_unavailable(request: Request, exc: OperationalError) -> JSONResponse:
    logger.error(f"store_unavailable: path={request.url.path} error={exc.orig}")
    return JSONResponse(status_code=503, content={"detail": "Record store unavailable"})


@app.get("/api/csrf-token")
def api_csrf_token():
    return {"header": CSRF_HEADER, "token": generate_csrf_token(get_current_user_id())}


@app.get("/api/categories")
def api_categories():
    return {"expense": EXPENSE_CATEGORIES, "income": INCOME_SOURCES}


@app.get("/api/expenses", response_model=list[ExpenseOut])
def list_expenses(db: Session = Depends(get_db)):
    return ExpenseService(db).list_all()


@app.post(
    "/api/expenses",
    response_model=ExpenseOut,
    status_code=201,
    dependencies=[Depends(require_csrf)],
)
def create_expense(payload: ExpenseIn, db: Session = Depends(get_db)):
    try:
        return ExpenseService(db).create(payload)
    except ValueError as exc:
        raise _write_failed(exc) from exc


@app.put(
    "/api/expenses/{expense_id}",
    response_model=ExpenseOut,
    dependencies=[Depends(require_csrf)],
)
def update_expense(
    expense_id: int, payload: ExpenseUpdate, db: Session = Depends(get_db)
):
    try:
        return ExpenseService(db).update(expense_id, payload)
    except ValueError as exc:
        raise _write_failed(exc) from exc


@app.delete(
    "/api/expenses/{expense_id}",
    status_code=204,
    dependencies=[Depends(require_csrf)],
)
def delete_expense(expense_id: int, db: Session = Depends(get_db)):
    try:
        ExpenseService(db).delete(expense_id)
    except ValueError as exc:
        raise _write_failed(exc) from exc
    return Response(status_code=204)


@app.get("/api/incomes", response_model=list[IncomeOut])
def list_incomes(db: Session = Depends(get_db)):
    return IncomeService(db).list_all()


@app.post(
    "/api/incomes",
    response_model=IncomeOut,
    status_code=201,
    dependencies=[Depends(require_csrf)],
)
def create_income(payload: IncomeIn, db: Session = Depends(get_db)):
    try:
        return IncomeService(db).create(payload)
    except ValueError as exc:
        raise _write_failed(exc) from exc


@app.put(
    "/api/incomes/{income_id}",
    response_model=IncomeOut,
    dependencies=[Depends(require_csrf)],
)
def update_income(income_id: int, payload: IncomeUpdate, db: Session = Depends(get_db)):
    try:
        return IncomeService(db).update(income_id, payload)
    except ValueError as exc:
        raise _write_failed(exc) from exc


@app.delete(
    "/api/incomes/{income_id}",
    status_code=204,
    dependencies=[Depends(require_csrf)],
)
def delete_income(income_id: int, db: Session = Depends(get_db)):
    try:
        IncomeService(db).delete(income_id)
    except ValueError as exc:
        raise _write_failed(exc) from exc
    return Response(status_code=204)


@app.get("/api/budgets", response_model=list[BudgetOut])
def list_budgets(period: Optional[str] = None, db: Session = Depends(get_db)):
    service = BudgetService(db)
    if period:
        return service.list_by_period(period)
    return service.list_all()


@app.get("/api/budgets/overview")
def budgets_overview(db: Session = Depends(get_db)):
    return ReportService(db).budget_overview(local_now())


@app.post(
    "/api/budgets",
    response_model=BudgetOut,
    status_code=201,
    dependencies=[Depends(require_csrf)],
)
def create_budget(payload: BudgetIn, db: Session = Depends(get_db)):
    try:
        return BudgetService(db).create(payload)
    except ValueError as exc:
        raise _write_failed(exc) from exc


@app.put(
    "/api/budgets/{budget_id}",
    response_model=BudgetOut,
    dependencies=[Depends(require_csrf)],
)
def update_budget(budget_id: int, payload: BudgetUpdate, db: Session = Depends(get_db)):
    try:
        return BudgetService(db).update(budget_id, payload)
    except ValueError as exc:
        raise _write_failed(exc) from exc


@app.delete(
    "/api/budgets/{budget_id}",
    status_code=204,
    dependencies=[Depends(require_csrf)],
)
def delete_budget(budget_id: int, db: Session = Depends(get_db)):
    try:
        BudgetService(db).delete(budget_id)
    except ValueError as exc:
        raise _write_failed(exc) from exc
    return Response(status_code=204)


@app.get("/api/savings-goals", response_model=list[SavingsGoalOut])
def list_savings_goals(db: Session = Depends(get_db)):
    return SavingsGoalService(db).list_all()


@app.post(
    "/api/savings-goals",
    response_model=SavingsGoalOut,
    status_code=201,
    dependencies=[Depends(require_csrf)],
)
def create_savings_goal(payload: SavingsGoalIn, db: Session = Depends(get_db)):
    try:
        return SavingsGoalService(db).create(payload)
    except ValueError as exc:
        raise _write_failed(exc) from exc


@app.put(
    "/api/savings-goals/{goal_id}",
    response_model=SavingsGoalOut,
    dependencies=[Depends(require_csrf)],
)
def update_savings_goal(
    goal_id: int, payload: SavingsGoalUpdate, db: Session = Depends(get_db)
):
    try:
        return SavingsGoalService(db).update(goal_id, payload)
    except ValueError as exc:
        raise _write_failed(exc) from exc


@app.post(
    "/api/savings-goals/{goal_id}/contribute",
    response_model=SavingsGoalOut,
    dependencies=[Depends(require_csrf)],
)
def contribute_savings_goal(
    goal_id: int, payload: ContributionIn, db: Session = Depends(get_db)
):
    try:
        return SavingsGoalService(db).contribute(goal_id, payload)
    except ValueError as exc:
        raise _write_failed(exc) from exc


@app.delete(
    "/api/savings-goals/{goal_id}",
    status_code=204,
    dependencies=[Depends(require_csrf)],
)
def delete_savings_goal(goal_id: int, db: Session = Depends(get_db)):
    try:
        SavingsGoalService(db).delete(goal_id)
    except ValueError as exc:
        raise _write_failed(exc) from exc
    return Response(status_code=204)


@app.get("/api/reports")
def api_report(request: Request, db: Session = Depends(get_db)):
    period = period_from_request(request)
    return ReportService(db).period_report(period)


@app.get("/api/reports/spending")
def api_spending(request: Request, db: Session = Depends(get_db)):
    period = period_from_request(request)
    return ReportService(db).spending_analytics(period)


@app.get("/api/dashboard")
def api_dashboard(request: Request, db: Session = Depends(get_db)):
    settings = get_settings()
    period = period_from_request(request)
    return ReportService(db).dashboard(
        local_now(),
        period,
        monthly_budget_cents=settings.monthly_budget_cents,
        recent_limit=settings.recent_limit,
    )


@app.get("/api/transactions/recent")
def api_recent_transactions(
    limit: Optional[int] = None, db: Session = Depends(get_db)
):
    if limit is None:
        limit = get_settings().recent_limit
    limit = min(max(limit, 0), 100)
    return ReportService(db).recent_transactions(local_now(), limit)


@app.get("/api/transactions/export.csv")
def api_export_transactions(request: Request, db: Session = Depends(get_db)):
    period = period_from_request(request)
    content = export_feed(ReportService(db).feed_between(period))
    filename = f"transactions_{period.start:%Y%m%d}_{period.end:%Y%m%d}.csv"
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def main():
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    main()
