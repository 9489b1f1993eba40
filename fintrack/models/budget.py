from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing_extensions import Self

from fintrack.services.ledger import round_money


# ===== BUDGET PYDANTIC MODELS =====

class BudgetPeriodEnum(str, Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"
    CUSTOM = "custom"


class BudgetStatusEnum(str, Enum):
    GOOD = "good"
    WARNING = "warning"
    OVER = "over"


class BudgetCreate(BaseModel):
    category_id: int = Field(..., ge=1)
    amount: Decimal = Field(..., ge=0, description="Budgeted amount for one period")
    period: BudgetPeriodEnum
    start_date: Optional[date] = Field(None, description="Defaults to today; required for custom budgets")
    end_date: Optional[date] = None
    is_active: bool = True

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        return round_money(v)

    @model_validator(mode="after")
    def check_dates(self) -> Self:
        if self.period == BudgetPeriodEnum.CUSTOM and self.start_date is None:
            raise ValueError("Custom budgets require a start_date")
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class BudgetUpdate(BaseModel):
    """Update budget - all fields optional"""
    category_id: Optional[int] = Field(None, ge=1)
    amount: Optional[Decimal] = Field(None, ge=0)
    period: Optional[BudgetPeriodEnum] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: Optional[bool] = None

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        return round_money(v) if v is not None else v

    @model_validator(mode="after")
    def check_dates(self) -> Self:
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class PeriodWindow(BaseModel):
    start_date: date
    end_date: date


class BudgetResponse(BaseModel):
    """Budget row plus its evaluation for the current period"""
    budget_id: int
    user_id: int
    category_id: int
    category_name: str
    amount: Decimal
    period: BudgetPeriodEnum
    start_date: date
    end_date: Optional[date]
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None
    spent: Decimal
    remaining: Decimal
    percentage_used: Decimal
    is_over_budget: bool
    status: BudgetStatusEnum
    current_period: PeriodWindow


class OverallBudgetStats(BaseModel):
    total_budget: Decimal
    total_spent: Decimal
    total_remaining: Decimal
    overall_percentage_used: Decimal
    budgets_over_limit: int
    total_budgets: int


class BudgetPerformance(BaseModel):
    overall_stats: OverallBudgetStats
    budgets: List[BudgetResponse]
