from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
from decimal import Decimal

from fintrack.services.ledger import round_money


# ===== ACCOUNT PYDANTIC MODELS =====

class AccountCreate(BaseModel):
    account_name: str = Field(..., min_length=1, max_length=100, description="Account name")
    account_type: str = Field(..., min_length=1, max_length=50, description="Free-form account type, e.g. Checking, Loan")
    initial_balance: Decimal = Field(default=Decimal('0.00'), description="Opening balance")

    @field_validator('account_name', 'account_type')
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('Field must not be blank')
        return v

    @field_validator('initial_balance')
    @classmethod
    def validate_initial_balance(cls, v: Decimal) -> Decimal:
        # Round to 2 decimal places
        return round_money(v)


class AccountUpdate(BaseModel):
    """Update account - name and type only, the opening balance is fixed"""
    account_name: Optional[str] = Field(None, min_length=1, max_length=100)
    account_type: Optional[str] = Field(None, min_length=1, max_length=50)

    @field_validator('account_name', 'account_type')
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v


class AccountResponse(BaseModel):
    """Account data with balances derived from the transaction log"""
    account_id: int
    user_id: int
    account_name: str
    account_type: str
    initial_balance: Decimal
    current_balance: Decimal
    net_transfers: Decimal
    balance_with_transfers: Decimal
    created_at: datetime
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    class Config:
        from_attributes = True
