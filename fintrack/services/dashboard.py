"""
Read-only composition of balances, portfolio and spending figures.

The portfolio and trend parts are best-effort: if either fails the summary is
still returned, with zeroed or empty values for that part. A failed part rolls
the session back so the remaining queries run on a clean transaction.
"""
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from fintrack.db.core import AccountDB, StockTradeDB, TransactionDB, TransactionType, query_active
from fintrack.logging_config import get_logger
from fintrack.services.budget_period import month_window
from fintrack.services.ledger import ZERO, Expense, Income, compute_balance, entry_of, round_money
from fintrack.services.portfolio import Trade, fold_trades

logger = get_logger(__name__)


CASH_TYPES = frozenset({"Bank", "Cash", "Checking", "Savings"})
INVESTMENT_TYPES = frozenset({"Investment", "Brokerage"})
LIABILITY_TYPES = frozenset({"Loan", "Credit", "Debt"})

TREND_MONTHS = 6
RECENT_LIMIT = 10
TOP_CATEGORY_LIMIT = 5


def classify_account(account_type: str) -> Optional[str]:
    """'cash', 'investment', 'liability' or None; exact, case-sensitive match"""
    if account_type in CASH_TYPES:
        return "cash"
    if account_type in INVESTMENT_TYPES:
        return "investment"
    if account_type in LIABILITY_TYPES:
        return "liability"
    return None


def bucket_totals(account_balances: List[dict]) -> Dict[str, Decimal]:
    totals = {"cash": ZERO, "investment": ZERO, "liability": ZERO}
    for account in account_balances:
        bucket = classify_account(account["account_type"])
        if bucket == "liability":
            totals[bucket] += abs(account["current_balance"])
        elif bucket is not None:
            totals[bucket] += account["current_balance"]
    return {k: round_money(v) for k, v in totals.items()}


def net_worth(totals: Dict[str, Decimal], portfolio_value: Decimal) -> Decimal:
    return round_money(totals["cash"] + totals["investment"] + portfolio_value - totals["liability"])


def trailing_months(reference_date: date, count: int = TREND_MONTHS) -> List[Tuple[str, date, date]]:
    """(YYYY-MM, first day, last day) for the last ``count`` months, oldest first"""
    months = []
    year, month = reference_date.year, reference_date.month
    for _ in range(count):
        start, end = month_window(date(year, month, 1))
        months.append((f"{year:04d}-{month:02d}", start, end))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(months))


# ===== QUERIES =====

def _account_balances(db: Session, user_id: int) -> List[dict]:
    accounts = query_active(db, AccountDB).filter(
        AccountDB.user_id == user_id
    ).order_by(AccountDB.created_at.desc(), AccountDB.account_id.desc()).all()

    entries = defaultdict(list)
    if accounts:
        rows = query_active(db, TransactionDB).filter(
            TransactionDB.account_id.in_([a.account_id for a in accounts])
        ).all()
        for row in rows:
            entries[row.account_id].append(entry_of(row))

    return [
        {
            "account_id": a.account_id,
            "account_name": a.account_name,
            "account_type": a.account_type,
            "current_balance": compute_balance(a.initial_balance, entries[a.account_id]),
        }
        for a in accounts
    ]


def _empty_portfolio() -> dict:
    return {
        "total_invested": round_money(0),
        "total_value": round_money(0),
        "total_unrealized_pl": round_money(0),
        "holdings_count": 0,
    }


def portfolio_summary(db: Session, user_id: int) -> dict:
    """
    Net cash put into securities: buy value added, sell value subtracted.

    Holdings are counted per ticker across accounts.
    """
    trades = query_active(db, StockTradeDB).filter(StockTradeDB.user_id == user_id).all()

    total_invested = ZERO
    folded = []
    for t in trades:
        value = Decimal(t.quantity) * Decimal(t.price_per_share)
        total_invested += value if t.trade_type.value == "BUY" else -value
        folded.append(Trade(
            trade_type=t.trade_type.value,
            quantity=Decimal(t.quantity),
            price_per_share=Decimal(t.price_per_share),
            security_id=t.security_id,
            trade_date=t.trade_date,
            trade_id=t.trade_id,
        ))

    holdings_count = sum(1 for pos in fold_trades(folded).values() if pos.is_open)
    total_invested = round_money(total_invested)
    return {
        "total_invested": total_invested,
        "total_value": total_invested,
        "total_unrealized_pl": round_money(0),
        "holdings_count": holdings_count,
    }


def monthly_trends(db: Session, user_id: int, reference_date: date) -> List[dict]:
    months = trailing_months(reference_date)
    rows = query_active(db, TransactionDB).filter(
        TransactionDB.user_id == user_id,
        TransactionDB.transaction_date >= months[0][1],
        TransactionDB.transaction_date <= months[-1][2]
    ).all()

    income = defaultdict(lambda: ZERO)
    expense = defaultdict(lambda: ZERO)
    for row in rows:
        key = row.transaction_date.strftime("%Y-%m")
        entry = entry_of(row)
        if isinstance(entry, Income):
            income[key] += entry.amount
        elif isinstance(entry, Expense):
            expense[key] += entry.amount

    return [
        {
            "month": key,
            "income": round_money(income[key]),
            "expense": round_money(expense[key]),
            "net": round_money(income[key] - expense[key]),
        }
        for key, _, _ in months
    ]


def recent_transactions(db: Session, user_id: int, limit: int = RECENT_LIMIT) -> List[dict]:
    rows = query_active(db, TransactionDB).join(
        AccountDB, AccountDB.account_id == TransactionDB.account_id
    ).filter(
        TransactionDB.user_id == user_id,
        AccountDB.active()
    ).order_by(
        TransactionDB.transaction_date.desc(), TransactionDB.created_at.desc(), TransactionDB.transaction_id.desc()
    ).limit(limit).all()

    recent = []
    for row in rows:
        entry = entry_of(row)
        amount = -entry.amount if isinstance(entry, Expense) else entry.amount
        recent.append({
            "transaction_id": row.transaction_id,
            "account_name": row.account.account_name,
            "category_name": row.category.category_name if row.category else None,
            "transaction_type": row.transaction_type.value,
            "amount": amount,
            "description": row.description or f"{row.transaction_type.value} - {row.account.account_name}",
            "transaction_date": row.transaction_date,
        })
    return recent


def top_categories(db: Session, user_id: int, reference_date: date, limit: int = TOP_CATEGORY_LIMIT) -> List[dict]:
    start, end = month_window(reference_date)
    rows = query_active(db, TransactionDB).filter(
        TransactionDB.user_id == user_id,
        TransactionDB.transaction_type == TransactionType.EXPENSE,
        TransactionDB.category_id.is_not(None),
        TransactionDB.transaction_date >= start,
        TransactionDB.transaction_date <= end
    ).all()

    grouped = {}
    for row in rows:
        if row.category.is_deleted:
            continue
        item = grouped.setdefault(row.category_id, {
            "category_id": row.category_id,
            "category_name": row.category.category_name,
            "total_amount": ZERO,
            "transaction_count": 0,
        })
        item["total_amount"] += row.amount
        item["transaction_count"] += 1

    ranked = sorted(grouped.values(), key=lambda c: c["total_amount"], reverse=True)[:limit]
    for item in ranked:
        item["total_amount"] = round_money(item["total_amount"])
    return ranked


# ===== COMPOSITION =====

def build_summary(db: Session, user_id: int, reference_date: Optional[date] = None) -> dict:
    reference_date = reference_date or date.today()

    balances = _account_balances(db, user_id)
    totals = bucket_totals(balances)

    try:
        portfolio = portfolio_summary(db, user_id)
    except Exception as e:
        db.rollback()
        logger.warning(f"Portfolio summary unavailable for user {user_id}: {e}")
        portfolio = _empty_portfolio()

    try:
        trends = monthly_trends(db, user_id, reference_date)
    except Exception as e:
        db.rollback()
        logger.warning(f"Monthly trends unavailable for user {user_id}: {e}")
        trends = []

    return {
        "net_worth": net_worth(totals, portfolio["total_value"]),
        "total_cash": totals["cash"],
        "total_investments": totals["investment"],
        "total_liabilities": totals["liability"],
        "account_balances": balances,
        "investment_summary": portfolio,
        "recent_transactions": recent_transactions(db, user_id),
        "monthly_trends": trends,
        "top_categories": top_categories(db, user_id, reference_date),
    }
