from sqlalchemy.orm import Session
from collections import defaultdict
from typing import Dict, Iterable, List, Optional
from datetime import datetime

from fintrack.db.core import AccountDB, TransactionDB, query_active, query_deleted
from fintrack.errors import InvalidAccountError, NotFoundError, NotDeletedError
from fintrack.logging_config import get_logger
from fintrack.models.account import AccountCreate, AccountUpdate
from fintrack.services.ledger import Entry, compute_balance, entry_of, net_transfers

logger = get_logger(__name__)


# ===== BALANCES =====

def _entries_by_account(db: Session, account_ids: Iterable[int]) -> Dict[int, List[Entry]]:
    account_ids = list(account_ids)
    entries: Dict[int, List[Entry]] = defaultdict(list)
    if not account_ids:
        return entries
    rows = query_active(db, TransactionDB).filter(TransactionDB.account_id.in_(account_ids)).all()
    for row in rows:
        entries[row.account_id].append(entry_of(row))
    return entries


def _with_balances(account: AccountDB, entries: List[Entry]) -> dict:
    current = compute_balance(account.initial_balance, entries)
    transfers = net_transfers(entries)
    return {
        "account_id": account.account_id,
        "user_id": account.user_id,
        "account_name": account.account_name,
        "account_type": account.account_type,
        "initial_balance": account.initial_balance,
        "current_balance": current,
        "net_transfers": transfers,
        "balance_with_transfers": current + transfers,
        "created_at": account.created_at,
        "updated_at": account.updated_at,
        "deleted_at": account.deleted_at,
    }


def account_balance(db: Session, account: AccountDB) -> dict:
    """Account fields plus current_balance and the transfer view"""
    entries = _entries_by_account(db, [account.account_id])
    return _with_balances(account, entries[account.account_id])


def accounts_with_balances(db: Session, accounts: List[AccountDB]) -> List[dict]:
    entries = _entries_by_account(db, [a.account_id for a in accounts])
    return [_with_balances(a, entries[a.account_id]) for a in accounts]


# ===== DATABASE OPERATIONS =====

def require_active_account(db: Session, account_id: int, user_id: int) -> AccountDB:
    """The caller's non-deleted account, or InvalidAccountError"""
    db_account = query_active(db, AccountDB).filter(
        AccountDB.account_id == account_id,
        AccountDB.user_id == user_id
    ).first()
    if db_account is None:
        raise InvalidAccountError("Account not found")
    return db_account


def create_db_account(db: Session, user_id: int, account_data: AccountCreate) -> AccountDB:
    """Create a new account for a user"""
    db_account = AccountDB(
        user_id=user_id,
        account_name=account_data.account_name,
        account_type=account_data.account_type,
        initial_balance=account_data.initial_balance,
        created_at=datetime.utcnow(),
        updated_at=datetime.utcnow()
    )
    db.add(db_account)
    db.commit()
    db.refresh(db_account)
    logger.info(f"Created account {db_account.account_id} for user {user_id}")
    return db_account


def read_db_account(db: Session, account_id: int, user_id: int) -> Optional[AccountDB]:
    return query_active(db, AccountDB).filter(
        AccountDB.account_id == account_id,
        AccountDB.user_id == user_id
    ).first()


def read_db_accounts(db: Session, user_id: int) -> List[AccountDB]:
    """Active accounts, newest first"""
    return query_active(db, AccountDB).filter(
        AccountDB.user_id == user_id
    ).order_by(AccountDB.created_at.desc(), AccountDB.account_id.desc()).all()


def read_deleted_accounts(db: Session, user_id: int) -> List[AccountDB]:
    return query_deleted(db, AccountDB).filter(
        AccountDB.user_id == user_id
    ).order_by(AccountDB.deleted_at.desc()).all()


def update_db_account(db: Session, account_id: int, user_id: int, account_updates: AccountUpdate) -> AccountDB:
    """Rename or retype an account"""
    db_account = read_db_account(db, account_id, user_id)
    if db_account is None:
        raise NotFoundError("Account not found")

    update_data = account_updates.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in update_data.items():
        setattr(db_account, field, value)
    db_account.updated_at = datetime.utcnow()

    db.commit()
    db.refresh(db_account)
    logger.info(f"Updated account {account_id}")
    return db_account


def delete_db_account(db: Session, account_id: int, user_id: int) -> AccountDB:
    """Soft-delete an account; its transactions stay untouched"""
    db_account = read_db_account(db, account_id, user_id)
    if db_account is None:
        raise NotFoundError("Account not found")

    db_account.soft_delete()
    db.commit()
    db.refresh(db_account)
    logger.info(f"Soft-deleted account {account_id}")
    return db_account


def restore_db_account(db: Session, account_id: int, user_id: int) -> AccountDB:
    db_account = query_deleted(db, AccountDB).filter(
        AccountDB.account_id == account_id,
        AccountDB.user_id == user_id
    ).first()
    if db_account is None:
        if read_db_account(db, account_id, user_id) is not None:
            raise NotDeletedError("Account is not deleted")
        raise NotFoundError("Account not found")

    db_account.restore()
    db.commit()
    db.refresh(db_account)
    logger.info(f"Restored account {account_id}")
    return db_account
