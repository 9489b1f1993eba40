from pydantic import BaseModel
from typing import List, Optional
from datetime import date
from decimal import Decimal


# ===== DASHBOARD PYDANTIC MODELS =====

class AccountBalance(BaseModel):
    account_id: int
    account_name: str
    account_type: str
    current_balance: Decimal


class InvestmentSummary(BaseModel):
    total_invested: Decimal
    total_value: Decimal
    total_unrealized_pl: Decimal
    holdings_count: int


class RecentTransaction(BaseModel):
    """Display row: EXPENSE amounts are negated"""
    transaction_id: int
    account_name: str
    category_name: Optional[str]
    transaction_type: str
    amount: Decimal
    description: str
    transaction_date: date


class MonthlyTrend(BaseModel):
    month: str  # YYYY-MM
    income: Decimal
    expense: Decimal
    net: Decimal


class TopCategory(BaseModel):
    category_id: int
    category_name: str
    total_amount: Decimal
    transaction_count: int


class DashboardSummary(BaseModel):
    net_worth: Decimal
    total_cash: Decimal
    total_investments: Decimal
    total_liabilities: Decimal
    account_balances: List[AccountBalance]
    investment_summary: InvestmentSummary
    recent_transactions: List[RecentTransaction]
    monthly_trends: List[MonthlyTrend]
    top_categories: List[TopCategory]
