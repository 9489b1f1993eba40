from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from fintrack.models.transaction import Pagination
from fintrack.services.ledger import round_money
from fintrack.services.portfolio import round_shares


# ===== PORTFOLIO PYDANTIC MODELS =====

class TradeTypeEnum(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


def _positive_quantity(v: Decimal) -> Decimal:
    v = round_shares(v)
    if v <= 0:
        raise ValueError('Quantity must be at least 0.00001')
    return v


def _positive_price(v: Decimal) -> Decimal:
    v = round_money(v)
    if v <= 0:
        raise ValueError('Price per share must be at least 0.01')
    return v


class StockTradeCreate(BaseModel):
    account_id: int = Field(..., ge=1)
    ticker_symbol: str = Field(..., min_length=1, max_length=20)
    trade_type: TradeTypeEnum
    quantity: Decimal = Field(..., gt=0, description="Quantity must be greater than 0")
    price_per_share: Decimal = Field(..., gt=0, description="Price per share must be greater than 0")
    trade_date: date = Field(default_factory=date.today)

    @field_validator('ticker_symbol')
    @classmethod
    def validate_ticker_symbol(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError('Ticker symbol is required')
        return v

    @field_validator('quantity')
    @classmethod
    def validate_quantity(cls, v: Decimal) -> Decimal:
        return _positive_quantity(v)

    @field_validator('price_per_share')
    @classmethod
    def validate_price(cls, v: Decimal) -> Decimal:
        return _positive_price(v)


class StockTradeUpdate(BaseModel):
    """Update trade - all fields optional; the cash transaction is left alone"""
    account_id: Optional[int] = Field(None, ge=1)
    ticker_symbol: Optional[str] = Field(None, min_length=1, max_length=20)
    trade_type: Optional[TradeTypeEnum] = None
    quantity: Optional[Decimal] = Field(None, gt=0)
    price_per_share: Optional[Decimal] = Field(None, gt=0)
    trade_date: Optional[date] = None

    @field_validator('ticker_symbol')
    @classmethod
    def validate_ticker_symbol(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().upper() if v else v

    @field_validator('quantity')
    @classmethod
    def validate_quantity(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        return _positive_quantity(v) if v is not None else v

    @field_validator('price_per_share')
    @classmethod
    def validate_price(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        return _positive_price(v) if v is not None else v


class StockTradeResponse(BaseModel):
    trade_id: int
    user_id: int
    account_id: int
    security_id: int
    ticker_symbol: str
    security_name: str
    account_name: str
    trade_type: TradeTypeEnum
    quantity: Decimal
    price_per_share: Decimal
    total_amount: Decimal
    trade_date: date
    created_at: datetime
    deleted_at: Optional[datetime] = None


class StockTradePage(BaseModel):
    trades: List[StockTradeResponse]
    pagination: Pagination


class HoldingResponse(BaseModel):
    """A position with positive net quantity; market fields are not tracked"""
    security_id: int
    ticker_symbol: str
    security_name: str
    account_id: int
    account_name: str
    total_quantity: Decimal
    total_invested: Decimal
    average_cost_basis: Decimal
    trades_count: int
    current_price: Optional[Decimal] = None
    current_value: Optional[Decimal] = None
    unrealized_pl: Optional[Decimal] = None


class PortfolioSummary(BaseModel):
    total_invested: Decimal
    total_value: Decimal
    total_unrealized_pl: Decimal
    holdings_count: int


class SecurityCreate(BaseModel):
    ticker_symbol: str = Field(..., min_length=1, max_length=20)
    security_name: Optional[str] = Field(None, max_length=255, description="Defaults to the ticker")
    asset_type: str = Field(default="Stock", min_length=1, max_length=50)

    @field_validator('ticker_symbol')
    @classmethod
    def validate_ticker_symbol(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator('security_name')
    @classmethod
    def validate_security_name(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else None


class SecurityResponse(BaseModel):
    security_id: int
    ticker_symbol: str
    security_name: str
    asset_type: str

    class Config:
        from_attributes = True


class TradedSecurity(SecurityResponse):
    """A security together with the caller's trading activity in it"""
    trade_count: int
    first_trade_date: Optional[date] = None
    last_trade_date: Optional[date] = None
