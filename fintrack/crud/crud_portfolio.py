from sqlalchemy.orm import Session
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple
import math

from fintrack.db.core import (
    AccountDB, SecurityDB, StockTradeDB, TradeType, TransactionDB,
    query_active, query_deleted, transaction_scope,
)
from fintrack.errors import ConflictError, NotDeletedError, NotFoundError
from fintrack.crud.crud_account import require_active_account
from fintrack.logging_config import get_logger
from fintrack.models.portfolio import (
    PortfolioSummary, SecurityCreate, StockTradeCreate, StockTradeUpdate, TradeTypeEnum,
)
from fintrack.services.ledger import Expense, Income, entry_to_columns, round_money
from fintrack.services.portfolio import open_positions, trade_from_row

logger = get_logger(__name__)


# ===== SECURITIES =====

def find_or_create_security(db: Session, ticker_symbol: str) -> SecurityDB:
    """Look a ticker up case-insensitively, creating a bare Stock entry if unknown"""
    ticker_symbol = ticker_symbol.strip().upper()
    security = query_active(db, SecurityDB).filter(SecurityDB.ticker_symbol == ticker_symbol).first()
    if security is not None:
        return security

    retired = query_deleted(db, SecurityDB).filter(SecurityDB.ticker_symbol == ticker_symbol).first()
    if retired is not None:
        retired.restore()
        return retired

    security = SecurityDB(
        ticker_symbol=ticker_symbol,
        security_name=ticker_symbol,
        asset_type="Stock",
        created_at=datetime.utcnow()
    )
    db.add(security)
    db.flush()
    logger.info(f"Created security {ticker_symbol}")
    return security


def create_db_security(db: Session, security_data: SecurityCreate) -> SecurityDB:
    existing = query_active(db, SecurityDB).filter(
        SecurityDB.ticker_symbol == security_data.ticker_symbol
    ).first()
    if existing:
        raise ConflictError("Security with this ticker symbol already exists")

    retired = query_deleted(db, SecurityDB).filter(
        SecurityDB.ticker_symbol == security_data.ticker_symbol
    ).first()
    if retired is not None:
        retired.restore()
        retired.security_name = security_data.security_name or retired.security_name
        retired.asset_type = security_data.asset_type
        db.commit()
        db.refresh(retired)
        logger.info(f"Restored security {retired.ticker_symbol}")
        return retired

    db_security = SecurityDB(
        ticker_symbol=security_data.ticker_symbol,
        security_name=security_data.security_name or security_data.ticker_symbol,
        asset_type=security_data.asset_type,
        created_at=datetime.utcnow()
    )
    db.add(db_security)
    db.commit()
    db.refresh(db_security)
    logger.info(f"Created security {db_security.ticker_symbol}")
    return db_security


def read_traded_securities(db: Session, user_id: int) -> List[dict]:
    """Securities the user holds trades in, with trade count and first/last dates"""
    trades = query_active(db, StockTradeDB).filter(StockTradeDB.user_id == user_id).all()

    by_security = {}
    for trade in trades:
        security = trade.security
        if security.is_deleted:
            continue
        entry = by_security.setdefault(security.security_id, {
            "security_id": security.security_id,
            "ticker_symbol": security.ticker_symbol,
            "security_name": security.security_name,
            "asset_type": security.asset_type,
            "trade_count": 0,
            "first_trade_date": trade.trade_date,
            "last_trade_date": trade.trade_date,
        })
        entry["trade_count"] += 1
        entry["first_trade_date"] = min(entry["first_trade_date"], trade.trade_date)
        entry["last_trade_date"] = max(entry["last_trade_date"], trade.trade_date)

    return sorted(by_security.values(), key=lambda s: s["ticker_symbol"])


# ===== TRADES =====

def trade_to_dict(trade: StockTradeDB) -> dict:
    return {
        "trade_id": trade.trade_id,
        "user_id": trade.user_id,
        "account_id": trade.account_id,
        "security_id": trade.security_id,
        "ticker_symbol": trade.security.ticker_symbol,
        "security_name": trade.security.security_name,
        "account_name": trade.account.account_name,
        "trade_type": trade.trade_type.value,
        "quantity": trade.quantity,
        "price_per_share": trade.price_per_share,
        "total_amount": round_money(Decimal(trade.quantity) * Decimal(trade.price_per_share)),
        "trade_date": trade.trade_date,
        "created_at": trade.created_at,
        "deleted_at": trade.deleted_at,
    }


def _cash_description(trade_type: TradeTypeEnum, quantity: Decimal, ticker: str, price: Decimal) -> str:
    return f"{trade_type.value} {quantity.normalize():f} shares of {ticker} @ {price}"


def create_db_trade(db: Session, user_id: int, trade_data: StockTradeCreate) -> StockTradeDB:
    """
    Record a trade and its cash movement.

    A BUY books an EXPENSE and a SELL an INCOME of quantity x price in the
    same account. Both rows are written together.
    """
    require_active_account(db, trade_data.account_id, user_id)

    with transaction_scope(db):
        security = find_or_create_security(db, trade_data.ticker_symbol)

        db_trade = StockTradeDB(
            user_id=user_id,
            account_id=trade_data.account_id,
            security_id=security.security_id,
            trade_type=TradeType(trade_data.trade_type.value),
            quantity=trade_data.quantity,
            price_per_share=trade_data.price_per_share,
            trade_date=trade_data.trade_date,
            created_at=datetime.utcnow(),
            updated_at=datetime.utcnow()
        )
        db.add(db_trade)

        notional = round_money(trade_data.quantity * trade_data.price_per_share)
        entry = Expense(notional) if trade_data.trade_type == TradeTypeEnum.BUY else Income(notional)
        transaction_type, amount, _ = entry_to_columns(entry)
        db.add(TransactionDB(
            user_id=user_id,
            account_id=trade_data.account_id,
            category_id=None,
            transaction_type=transaction_type,
            amount=amount,
            description=_cash_description(
                trade_data.trade_type, trade_data.quantity, security.ticker_symbol, trade_data.price_per_share
            ),
            transaction_date=trade_data.trade_date,
            created_at=datetime.utcnow(),
            updated_at=datetime.utcnow()
        ))

    db.refresh(db_trade)
    logger.info(f"Created {trade_data.trade_type.value} trade {db_trade.trade_id} for {security.ticker_symbol}")
    return db_trade


def read_db_trade(db: Session, trade_id: int, user_id: int) -> Optional[StockTradeDB]:
    return query_active(db, StockTradeDB).filter(
        StockTradeDB.trade_id == trade_id,
        StockTradeDB.user_id == user_id
    ).first()


def read_db_trades(db: Session, user_id: int, page: int = 1, limit: int = 50,
                   account_id: Optional[int] = None, ticker_symbol: Optional[str] = None,
                   trade_type: Optional[TradeTypeEnum] = None) -> Tuple[List[StockTradeDB], dict]:
    """Trades newest first, hiding those on soft-deleted accounts"""
    query = query_active(db, StockTradeDB).join(
        AccountDB, AccountDB.account_id == StockTradeDB.account_id
    ).join(
        SecurityDB, SecurityDB.security_id == StockTradeDB.security_id
    ).filter(
        StockTradeDB.user_id == user_id,
        AccountDB.active()
    )
    if account_id:
        query = query.filter(StockTradeDB.account_id == account_id)
    if ticker_symbol:
        query = query.filter(SecurityDB.ticker_symbol == ticker_symbol.strip().upper())
    if trade_type:
        query = query.filter(StockTradeDB.trade_type == TradeType(trade_type.value))

    total = query.count()
    trades = query.order_by(
        StockTradeDB.trade_date.desc(), StockTradeDB.created_at.desc(), StockTradeDB.trade_id.desc()
    ).offset((page - 1) * limit).limit(limit).all()

    pagination = {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0,
    }
    return trades, pagination


def read_deleted_trades(db: Session, user_id: int) -> List[StockTradeDB]:
    return query_deleted(db, StockTradeDB).filter(
        StockTradeDB.user_id == user_id
    ).order_by(StockTradeDB.deleted_at.desc()).all()


def update_db_trade(db: Session, trade_id: int, user_id: int, trade_updates: StockTradeUpdate) -> StockTradeDB:
    """Edit a trade; the cash transaction booked at creation is not touched"""
    db_trade = read_db_trade(db, trade_id, user_id)
    if db_trade is None:
        raise NotFoundError("Stock trade not found")

    update_data = trade_updates.model_dump(exclude_unset=True, exclude_none=True)
    if "account_id" in update_data:
        require_active_account(db, update_data["account_id"], user_id)

    with transaction_scope(db):
        for field, value in update_data.items():
            if field == "ticker_symbol":
                if value != db_trade.security.ticker_symbol:
                    db_trade.security_id = find_or_create_security(db, value).security_id
            elif field == "trade_type":
                db_trade.trade_type = TradeType(value.value)
            else:
                setattr(db_trade, field, value)
        db_trade.updated_at = datetime.utcnow()

    db.refresh(db_trade)
    logger.info(f"Updated trade {trade_id}")
    return db_trade


def delete_db_trade(db: Session, trade_id: int, user_id: int) -> StockTradeDB:
    """Soft-delete the trade row only; its cash transaction stays"""
    db_trade = read_db_trade(db, trade_id, user_id)
    if db_trade is None:
        raise NotFoundError("Stock trade not found")

    db_trade.soft_delete()
    db.commit()
    db.refresh(db_trade)
    logger.info(f"Soft-deleted trade {trade_id}")
    return db_trade


def restore_db_trade(db: Session, trade_id: int, user_id: int) -> StockTradeDB:
    db_trade = query_deleted(db, StockTradeDB).filter(
        StockTradeDB.trade_id == trade_id,
        StockTradeDB.user_id == user_id
    ).first()
    if db_trade is None:
        if read_db_trade(db, trade_id, user_id) is not None:
            raise NotDeletedError("Stock trade is not deleted")
        raise NotFoundError("Stock trade not found")

    db_trade.restore()
    db.commit()
    db.refresh(db_trade)
    logger.info(f"Restored trade {trade_id}")
    return db_trade


# ===== HOLDINGS =====

def get_holdings(db: Session, user_id: int) -> List[dict]:
    """Open positions per (security, account) from the non-deleted trades"""
    trades = query_active(db, StockTradeDB).join(
        AccountDB, AccountDB.account_id == StockTradeDB.account_id
    ).filter(
        StockTradeDB.user_id == user_id,
        AccountDB.active()
    ).all()

    securities = {t.security_id: t.security for t in trades}
    accounts = {t.account_id: t.account for t in trades}

    holdings = []
    for (security_id, account_id), position in open_positions(trade_from_row(t) for t in trades).items():
        holdings.append({
            "security_id": security_id,
            "ticker_symbol": securities[security_id].ticker_symbol,
            "security_name": securities[security_id].security_name,
            "account_id": account_id,
            "account_name": accounts[account_id].account_name,
            "total_quantity": position.rounded_quantity,
            "total_invested": position.rounded_invested,
            "average_cost_basis": position.average_cost_basis,
            "trades_count": position.trades_count,
            "current_price": None,
            "current_value": None,
            "unrealized_pl": None,
        })

    holdings.sort(key=lambda h: (h["ticker_symbol"], h["account_name"]))
    return holdings


def get_portfolio_summary(db: Session, user_id: int) -> PortfolioSummary:
    """
    Cost-basis totals over the open holdings.

    Prices are not tracked, so value is reported at cost and unrealized P/L
    is zero.
    """
    holdings = get_holdings(db, user_id)
    total_invested = round_money(sum((h["total_invested"] for h in holdings), Decimal(0)))
    return PortfolioSummary(
        total_invested=total_invested,
        total_value=total_invested,
        total_unrealized_pl=round_money(0),
        holdings_count=len(holdings),
    )
