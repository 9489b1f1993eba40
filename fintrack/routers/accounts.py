from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List

from fintrack.crud import crud_account
from fintrack.db.core import UserDB, get_db
from fintrack.models import account as account_models
from fintrack.services.auth import get_current_user

router = APIRouter(
    prefix="/accounts",
    tags=["accounts"],
)


@router.post("/", response_model=account_models.AccountResponse, status_code=status.HTTP_201_CREATED)
def create_account(
    account: account_models.AccountCreate,
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    """
    Create a new account for the current user.
    """
    db_account = crud_account.create_db_account(db=db, user_id=current_user.user_id, account_data=account)
    return crud_account.account_balance(db, db_account)


@router.get("/", response_model=List[account_models.AccountResponse])
def read_accounts(
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    """
    Retrieve all active accounts with their current balances, newest first.
    """
    accounts = crud_account.read_db_accounts(db=db, user_id=current_user.user_id)
    return crud_account.accounts_with_balances(db, accounts)


@router.get("/trash", response_model=List[account_models.AccountResponse])
def read_deleted_accounts(
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    accounts = crud_account.read_deleted_accounts(db=db, user_id=current_user.user_id)
    return crud_account.accounts_with_balances(db, accounts)


@router.get("/{account_id}", response_model=account_models.AccountResponse)
def read_account(
    account_id: int,
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    """
    Retrieve a specific account by its ID.
    """
    db_account = crud_account.read_db_account(db=db, account_id=account_id, user_id=current_user.user_id)
    if db_account is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Account not found")
    return crud_account.account_balance(db, db_account)


@router.put("/{account_id}", response_model=account_models.AccountResponse)
def update_account(
    account_id: int,
    account: account_models.AccountUpdate,
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    db_account = crud_account.update_db_account(
        db=db, account_id=account_id, user_id=current_user.user_id, account_updates=account
    )
    return crud_account.account_balance(db, db_account)


@router.delete("/{account_id}", response_model=account_models.AccountResponse)
def delete_account(
    account_id: int,
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    """
    Move an account to the trash. Its transactions are kept.
    """
    db_account = crud_account.delete_db_account(db=db, account_id=account_id, user_id=current_user.user_id)
    return crud_account.account_balance(db, db_account)


@router.api_route("/{account_id}/restore", methods=["PUT", "POST"], response_model=account_models.AccountResponse)
def restore_account(
    account_id: int,
    db: Session = Depends(get_db),
    current_user: UserDB = Depends(get_current_user)
):
    db_account = crud_account.restore_db_account(db=db, account_id=account_id, user_id=current_user.user_id)
    return crud_account.account_balance(db, db_account)
