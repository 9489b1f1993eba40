from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing_extensions import Self

from fintrack.services.ledger import round_money


# ===== TRANSACTION PYDANTIC MODELS =====

class TransactionTypeEnum(str, Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"
    TRANSFER = "TRANSFER"


class TransferDirectionEnum(str, Enum):
    OUT = "OUT"
    IN = "IN"


class TransactionCreate(BaseModel):
    account_id: int = Field(..., ge=1, description="Valid account ID is required")
    category_id: Optional[int] = Field(None, ge=1)
    transaction_type: TransactionTypeEnum
    amount: Decimal = Field(..., description="Magnitude; the sign is taken from transaction_type")
    description: Optional[str] = Field(None, max_length=1000)
    transaction_date: date = Field(default_factory=date.today)

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        return round_money(abs(v))

    @field_validator('description')
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v

    @model_validator(mode="after")
    def check_not_transfer(self) -> Self:
        if self.transaction_type == TransactionTypeEnum.TRANSFER:
            raise ValueError("Transfers must be created through /transactions/transfer")
        return self


class TransactionUpdate(BaseModel):
    """Update transaction - all fields optional, transfers are not editable"""
    account_id: Optional[int] = Field(None, ge=1)
    category_id: Optional[int] = Field(None, ge=1)
    transaction_type: Optional[TransactionTypeEnum] = None
    amount: Optional[Decimal] = None
    description: Optional[str] = Field(None, max_length=1000)
    transaction_date: Optional[date] = None

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        return round_money(abs(v)) if v is not None else v

    @field_validator('transaction_type')
    @classmethod
    def validate_transaction_type(cls, v: Optional[TransactionTypeEnum]) -> Optional[TransactionTypeEnum]:
        if v == TransactionTypeEnum.TRANSFER:
            raise ValueError("Cannot change a transaction into a transfer")
        return v


class TransferCreate(BaseModel):
    from_account_id: int = Field(..., ge=1)
    to_account_id: int = Field(..., ge=1)
    amount: Decimal = Field(..., gt=0, description="Amount must be greater than 0")
    description: Optional[str] = Field(None, max_length=1000)
    transaction_date: date = Field(default_factory=date.today)

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        v = round_money(v)
        if v <= 0:
            raise ValueError('Amount must be at least 0.01')
        return v

    @field_validator('description')
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v


class TransactionResponse(BaseModel):
    transaction_id: int
    user_id: int
    account_id: int
    category_id: Optional[int]
    transaction_type: TransactionTypeEnum
    amount: Decimal
    description: Optional[str]
    transaction_date: date
    transfer_group_id: Optional[str] = None
    transfer_direction: Optional[TransferDirectionEnum] = None
    account_name: Optional[str] = None
    category_name: Optional[str] = None
    created_at: datetime
    deleted_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TransferResponse(BaseModel):
    message: str
    transfer_group_id: str
    from_transaction: TransactionResponse
    to_transaction: TransactionResponse


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class TransactionPage(BaseModel):
    transactions: List[TransactionResponse]
    pagination: Pagination


class TransactionSummary(BaseModel):
    """Totals over a date range, transfers counted but not summed"""
    total_income: Decimal
    total_expenses: Decimal
    net_income: Decimal
    income_transactions: int
    expense_transactions: int
    transfer_transactions: int
