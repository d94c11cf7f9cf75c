from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from models import BudgetPeriod


class ExpenseIn(BaseModel):
    amount_cents: int = Field(..., gt=0)
    category: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=200)
    date: datetime


class ExpenseUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    amount_cents: Optional[int] = Field(default=None, gt=0)
    category: Optional[str] = Field(default=None, min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=200)
    date: Optional[datetime] = None


class IncomeIn(BaseModel):
    amount_cents: int = Field(..., gt=0)
    source: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=200)
    date: datetime


class IncomeUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    amount_cents: Optional[int] = Field(default=None, gt=0)
    source: Optional[str] = Field(default=None, min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=200)
    date: Optional[datetime] = None


class BudgetIn(BaseModel):
    category: str = Field(..., min_length=1, max_length=50)
    amount_cents: int = Field(..., gt=0)
    period: BudgetPeriod = BudgetPeriod.monthly
    start_date: date
    end_date: Optional[date] = None

    @model_validator(mode="after")
    def _check_window(self) -> "BudgetIn":
        if self.end_date is not None and self.start_date > self.end_date:
            raise ValueError("Start date must be before end date")
        return self


class BudgetUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    category: Optional[str] = Field(default=None, min_length=1, max_length=50)
    amount_cents: Optional[int] = Field(default=None, gt=0)
    period: Optional[BudgetPeriod] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class SavingsGoalIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    target_amount_cents: int = Field(..., gt=0)
    current_amount_cents: int = Field(default=0, ge=0)
    deadline: Optional[datetime] = None


class SavingsGoalUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    target_amount_cents: Optional[int] = Field(default=None, gt=0)
    current_amount_cents: Optional[int] = Field(default=None, ge=0)
    deadline: Optional[datetime] = None


class ContributionIn(BaseModel):
    amount_cents: int = Field(..., gt=0)


class ExpenseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    amount_cents: int
    category: str
    description: Optional[str]
    date: datetime
    created_at: datetime


class IncomeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    amount_cents: int
    source: str
    description: Optional[str]
    date: datetime
    created_at: datetime


class BudgetOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    category: str
    amount_cents: int
    period: BudgetPeriod
    start_date: date
    end_date: date
    created_at: datetime


class SavingsGoalOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    target_amount_cents: int
    current_amount_cents: int
    deadline: Optional[datetime]
    created_at: datetime
