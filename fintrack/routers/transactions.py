from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date

from fintrack.crud import crud_transaction
from fintrack.db.core import UserDB, get_db
from fintrack.models import transaction as transaction_models
from fintrack.services.auth import get_current_user

router = APIRouter(
    prefix="/transactions",
    tags=["transactions"],
)


def _bulk_response(message: str, rows) -> dict:
    return {
        "message": message,
        "transactions": [crud_transaction.transaction_to_dict(row) for row in rows],
    }


@router.post("/", response_model=transaction_models.TransactionResponse, status_code=status.HTTP_201_CREATED)
def create_transaction(
    transaction: transaction_models.TransactionCreate,
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    """
    Record an income or expense. Transfers go through /transactions/transfer.
    """
    db_transaction = crud_transaction.create_db_transaction(
        db=db, user_id=current_user.user_id, transaction_data=transaction
    )
    return crud_transaction.transaction_to_dict(db_transaction)


@router.post("/transfer", response_model=transaction_models.TransferResponse, status_code=status.HTTP_201_CREATED)
def create_transfer(
    transfer: transaction_models.TransferCreate,
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    """
    Move money between two of the current user's accounts.
    """
    result = crud_transaction.create_transfer(db=db, user_id=current_user.user_id, transfer_data=transfer)
    return {
        "message": "Transfer completed successfully",
        "transfer_group_id": result.group_id,
        "from_transaction": crud_transaction.transaction_to_dict(result.outgoing),
        "to_transaction": crud_transaction.transaction_to_dict(result.incoming),
    }


@router.get("/", response_model=transaction_models.TransactionPage)
def read_transactions(
    account_id: Optional[int] = None,
    category_id: Optional[int] = None,
    transaction_type: Optional[transaction_models.TransactionTypeEnum] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    """
    Retrieve one page of transactions, with optional filters.
    """
    rows, pagination = crud_transaction.read_db_transactions(
        db=db, user_id=current_user.user_id, page=page, limit=limit,
        account_id=account_id, category_id=category_id, transaction_type=transaction_type,
        start_date=start_date, end_date=end_date
    )
    return {
        "transactions": [crud_transaction.transaction_to_dict(row) for row in rows],
        "pagination": pagination,
    }


@router.get("/trash", response_model=List[transaction_models.TransactionResponse])
def read_deleted_transactions(
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    rows = crud_transaction.read_deleted_transactions(db=db, user_id=current_user.user_id)
    return [crud_transaction.transaction_to_dict(row) for row in rows]


@router.get("/stats/summary", response_model=transaction_models.TransactionSummary)
def read_transaction_summary(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    account_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    """
    Income and expense totals over a date range.
    """
    return crud_transaction.get_transaction_summary(
        db=db, user_id=current_user.user_id, start_date=start_date, end_date=end_date, account_id=account_id
    )


@router.get("/{transaction_id}", response_model=transaction_models.TransactionResponse)
def read_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    db_transaction = crud_transaction.read_db_transaction(
        db=db, transaction_id=transaction_id, user_id=current_user.user_id
    )
    if db_transaction is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Transaction not found")
    return crud_transaction.transaction_to_dict(db_transaction)


@router.put("/{transaction_id}", response_model=transaction_models.TransactionResponse)
def update_transaction(
    transaction_id: int,
    transaction: transaction_models.TransactionUpdate,
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    """
    Edit an income or expense. Transfer legs cannot be edited one at a time.
    """
    db_transaction = crud_transaction.update_db_transaction(
        db=db, transaction_id=transaction_id, user_id=current_user.user_id, transaction_updates=transaction
    )
    return crud_transaction.transaction_to_dict(db_transaction)


@router.delete("/{transaction_id}")
def delete_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    """
    Move a transaction to the trash. Deleting either leg of a transfer
    removes both.
    """
    rows = crud_transaction.delete_db_transaction(db=db, transaction_id=transaction_id, user_id=current_user.user_id)
    return _bulk_response("Transaction deleted successfully", rows)


@router.api_route("/{transaction_id}/restore", methods=["PUT", "POST"])
def restore_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    rows = crud_transaction.restore_db_transaction(db=db, transaction_id=transaction_id, user_id=current_user.user_id)
    return _bulk_response("Transaction restored successfully", rows)
