from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from fintrack.crud import crud_portfolio
from fintrack.db.core import UserDB, get_db
from fintrack.models import portfolio as portfolio_models
from fintrack.services.auth import get_current_user

router = APIRouter(
    prefix="/portfolio",
    tags=["portfolio"],
)


# ===== TRADES =====

@router.post("/trades", response_model=portfolio_models.StockTradeResponse, status_code=status.HTTP_201_CREATED)
def create_trade(
    trade: portfolio_models.StockTradeCreate,
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    """
    Record a buy or sell. The matching cash transaction is booked in the
    same account.
    """
    db_trade = crud_portfolio.create_db_trade(db=db, user_id=current_user.user_id, trade_data=trade)
    return crud_portfolio.trade_to_dict(db_trade)


@router.get("/trades", response_model=portfolio_models.StockTradePage)
def read_trades(
    account_id: Optional[int] = None,
    ticker_symbol: Optional[str] = None,
    trade_type: Optional[portfolio_models.TradeTypeEnum] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    trades, pagination = crud_portfolio.read_db_trades(
        db=db, user_id=current_user.user_id, page=page, limit=limit,
        account_id=account_id, ticker_symbol=ticker_symbol, trade_type=trade_type
    )
    return {
        "trades": [crud_portfolio.trade_to_dict(t) for t in trades],
        "pagination": pagination,
    }


@router.get("/trades/trash", response_model=List[portfolio_models.StockTradeResponse])
def read_deleted_trades(
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    trades = crud_portfolio.read_deleted_trades(db=db, user_id=current_user.user_id)
    return [crud_portfolio.trade_to_dict(t) for t in trades]


@router.get("/trades/{trade_id}", response_model=portfolio_models.StockTradeResponse)
def read_trade(
    trade_id: int,
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    db_trade = crud_portfolio.read_db_trade(db=db, trade_id=trade_id, user_id=current_user.user_id)
    if db_trade is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Stock trade not found")
    return crud_portfolio.trade_to_dict(db_trade)


@router.put("/trades/{trade_id}", response_model=portfolio_models.StockTradeResponse)
def update_trade(
    trade_id: int,
    trade: portfolio_models.StockTradeUpdate,
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    db_trade = crud_portfolio.update_db_trade(
        db=db, trade_id=trade_id, user_id=current_user.user_id, trade_updates=trade
    )
    return crud_portfolio.trade_to_dict(db_trade)


@router.delete("/trades/{trade_id}", response_model=portfolio_models.StockTradeResponse)
def delete_trade(
    trade_id: int,
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    """
    Move a trade to the trash. The cash transaction it booked is kept.
    """
    db_trade = crud_portfolio.delete_db_trade(db=db, trade_id=trade_id, user_id=current_user.user_id)
    return crud_portfolio.trade_to_dict(db_trade)


@router.api_route("/trades/{trade_id}/restore", methods=["PUT", "POST"],
                  response_model=portfolio_models.StockTradeResponse)
def restore_trade(
    trade_id: int,
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    db_trade = crud_portfolio.restore_db_trade(db=db, trade_id=trade_id, user_id=current_user.user_id)
    return crud_portfolio.trade_to_dict(db_trade)


# ===== HOLDINGS =====

@router.get("/holdings", response_model=List[portfolio_models.HoldingResponse])
def read_holdings(
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    """
    Open positions per security and account, with cost basis.
    """
    return crud_portfolio.get_holdings(db=db, user_id=current_user.user_id)


@router.get("/summary", response_model=portfolio_models.PortfolioSummary)
def read_portfolio_summary(
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    return crud_portfolio.get_portfolio_summary(db=db, user_id=current_user.user_id)


# ===== SECURITIES =====

@router.get("/securities", response_model=List[portfolio_models.TradedSecurity])
def read_securities(
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    """
    Securities the current user has traded.
    """
    return crud_portfolio.read_traded_securities(db=db, user_id=current_user.user_id)


@router.post("/securities", response_model=portfolio_models.SecurityResponse, status_code=status.HTTP_201_CREATED)
def create_security(
    security: portfolio_models.SecurityCreate,
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    return crud_portfolio.create_db_security(db=db, security_data=security)
