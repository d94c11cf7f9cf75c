import os
from datetime import date
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        database_url: str,
        timezone: str,
        csrf_secret: str,
        monthly_budget_cents: int,
        semester_start: date,
        semester_end: date,
        recent_limit: int,
    ) -> None:
        self.database_url = database_url
        self.timezone = timezone
        self.csrf_secret = csrf_secret
        self.monthly_budget_cents = monthly_budget_cents
        self.semester_start = semester_start
        self.semester_end = semester_end
        self.recent_limit = recent_limit


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("BUDGET_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "budget.db"
    database_url = os.getenv("BUDGET_DATABASE_URL", f"sqlite:///{default_db}")
    timezone = os.getenv("BUDGET_TIMEZONE", "Europe/Berlin")
    csrf_secret = os.getenv(
        "BUDGET_CSRF_SECRET",
        "5d0c1f9e02b7a4c6e8d3b1a97f60c2e4d8b5a3f1c7e9d2b4a6f8c0e1d3b5a7c9",
    )
    monthly_budget_cents = int(os.getenv("BUDGET_MONTHLY_BUDGET_CENTS", "200000"))
    semester_start = date.fromisoformat(
        os.getenv("BUDGET_SEMESTER_START", "2025-08-21")
    )
    semester_end = date.fromisoformat(os.getenv("BUDGET_SEMESTER_END", "2025-12-18"))
    if semester_start > semester_end:
        raise ValueError("BUDGET_SEMESTER_START must not be after BUDGET_SEMESTER_END")
    recent_limit = int(os.getenv("BUDGET_RECENT_LIMIT", "4"))
    return Settings(
        database_url=database_url,
        timezone=timezone,
        csrf_secret=csrf_secret,
        monthly_budget_cents=monthly_budget_cents,
        semester_start=semester_start,
        semester_end=semester_end,
        recent_limit=recent_limit,
    )
