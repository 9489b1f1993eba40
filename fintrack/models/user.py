from pydantic import BaseModel, Field, model_validator, field_validator
from typing import Optional
from datetime import datetime
from decimal import Decimal
from typing_extensions import Self
import re


EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
USERNAME_PATTERN = r'^[a-zA-Z0-9_]+$'


def _check_email(v: str) -> str:
    v = v.strip().lower()
    if not re.match(EMAIL_PATTERN, v):
        raise ValueError('Please provide a valid email')
    return v


def _check_username(v: str) -> str:
    v = v.strip()
    if not re.match(USERNAME_PATTERN, v):
        raise ValueError('Username can only contain letters, numbers, and underscores')
    return v


# ===== USER PYDANTIC MODELS =====

class UserRegister(BaseModel):
    username: str = Field(..., min_length=3, max_length=50, description="Username (3-50 characters)")
    email: str = Field(..., description="User's email address")
    password: str = Field(..., min_length=6, description="Password (minimum 6 characters)")

    @field_validator('username')
    @classmethod
    def validate_username(cls, v: str) -> str:
        return _check_username(v)

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _check_email(v)


class UserLogin(BaseModel):
    email: str
    password: str = Field(..., min_length=1, description="Password is required")

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _check_email(v)


class UserUpdate(BaseModel):
    """Update user profile - at least one field required"""
    username: Optional[str] = Field(None, min_length=3, max_length=50)
    email: Optional[str] = None

    @field_validator('username')
    @classmethod
    def validate_username(cls, v: Optional[str]) -> Optional[str]:
        return _check_username(v) if v is not None else v

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        return _check_email(v) if v is not None else v

    @model_validator(mode="after")
    def check_something_to_update(self) -> Self:
        if self.username is None and self.email is None:
            raise ValueError("No valid fields to update")
        return self


class UserResponse(BaseModel):
    """User data returned to client (never includes the password hash)"""
    user_id: int
    username: str
    email: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    message: str
    token: str
    user: UserResponse


class UserStats(BaseModel):
    """Counts and current-month totals for the profile page"""
    total_accounts: int
    monthly_transactions: int
    monthly_income: Decimal
    monthly_expenses: Decimal
    total_categories: int
    total_trades: int
