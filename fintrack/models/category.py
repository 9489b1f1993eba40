from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
from decimal import Decimal
from enum import Enum


# ===== CATEGORY PYDANTIC MODELS =====

class CategoryTypeEnum(str, Enum):
    INCOME = "Income"
    EXPENSE = "Expense"


class CategoryCreate(BaseModel):
    category_name: str = Field(..., min_length=1, max_length=100, description="Category name")
    category_type: CategoryTypeEnum = Field(..., description="Income or Expense")

    @field_validator('category_name')
    @classmethod
    def validate_category_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('Category name is required')
        return v


class CategoryUpdate(BaseModel):
    category_name: Optional[str] = Field(None, min_length=1, max_length=100)
    category_type: Optional[CategoryTypeEnum] = None

    @field_validator('category_name')
    @classmethod
    def validate_category_name(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v


class CategoryResponse(BaseModel):
    category_id: int
    user_id: Optional[int]
    category_name: str
    category_type: CategoryTypeEnum
    created_at: datetime
    deleted_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CategoryStats(BaseModel):
    """Aggregates over the non-deleted transactions filed under a category"""
    category_id: int
    category_name: str
    category_type: CategoryTypeEnum
    transaction_count: int
    total_amount: Decimal
    average_amount: Decimal
    min_amount: Decimal
    max_amount: Decimal


class CategorySpending(BaseModel):
    category_id: int
    category_name: str
    category_type: CategoryTypeEnum
    transaction_count: int
    total_amount: Decimal
