from sqlalchemy.orm import Session, Query
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional, Tuple
from uuid import uuid4
import math

from fintrack.db.core import (
    AccountDB, CategoryDB, CategoryType, TransactionDB, TransactionType, TransferDirection,
    query_active, query_deleted, transaction_scope,
)
from fintrack.errors import (
    CategoryTypeMismatchError, InvalidCategoryError, NotDeletedError, NotFoundError,
    SameAccountError, TransferEditError,
)
from fintrack.crud.crud_account import require_active_account
from fintrack.logging_config import get_logger
from fintrack.models.transaction import (
    TransactionCreate, TransactionUpdate, TransferCreate, TransactionSummary, TransactionTypeEnum,
)
from fintrack.services.ledger import (
    Expense, Income, Transfer, TransferLeg, entry_of, entry_to_columns, round_money, transfer_descriptions,
)

logger = get_logger(__name__)


# ===== VALIDATION HELPERS =====

def require_active_category(db: Session, category_id: int, user_id: int) -> CategoryDB:
    db_category = query_active(db, CategoryDB).filter(
        CategoryDB.category_id == category_id,
        CategoryDB.user_id == user_id
    ).first()
    if db_category is None:
        raise InvalidCategoryError("Invalid category")
    return db_category


def check_category_type(category: Optional[CategoryDB], transaction_type: TransactionType) -> None:
    """Income categories take INCOME rows, expense categories EXPENSE rows"""
    if category is None:
        return
    expected = TransactionType.INCOME if category.category_type == CategoryType.INCOME else TransactionType.EXPENSE
    if transaction_type != expected:
        raise CategoryTypeMismatchError(
            f"Category '{category.category_name}' is of type {category.category_type.value} "
            f"and cannot be used for a {transaction_type.value} transaction"
        )


def transaction_to_dict(row: TransactionDB) -> dict:
    """Row fields plus the names the client displays"""
    return {
        "transaction_id": row.transaction_id,
        "user_id": row.user_id,
        "account_id": row.account_id,
        "category_id": row.category_id,
        "transaction_type": row.transaction_type.value,
        "amount": row.amount,
        "description": row.description,
        "transaction_date": row.transaction_date,
        "transfer_group_id": row.transfer_group_id,
        "transfer_direction": row.transfer_direction.value if row.transfer_direction else None,
        "account_name": row.account.account_name if row.account else None,
        "category_name": row.category.category_name if row.category else None,
        "created_at": row.created_at,
        "deleted_at": row.deleted_at,
    }


# ===== DATABASE OPERATIONS =====

def create_db_transaction(db: Session, user_id: int, transaction_data: TransactionCreate) -> TransactionDB:
    """Create an INCOME or EXPENSE transaction"""
    require_active_account(db, transaction_data.account_id, user_id)

    entry = (Income if transaction_data.transaction_type == TransactionTypeEnum.INCOME else Expense)(
        transaction_data.amount
    )
    transaction_type, amount, _ = entry_to_columns(entry)

    category = None
    if transaction_data.category_id:
        category = require_active_category(db, transaction_data.category_id, user_id)
    check_category_type(category, transaction_type)

    db_transaction = TransactionDB(
        user_id=user_id,
        account_id=transaction_data.account_id,
        category_id=transaction_data.category_id,
        transaction_type=transaction_type,
        amount=amount,
        description=transaction_data.description,
        transaction_date=transaction_data.transaction_date,
        created_at=datetime.utcnow(),
        updated_at=datetime.utcnow()
    )
    db.add(db_transaction)
    db.commit()
    db.refresh(db_transaction)
    logger.info(f"Created {transaction_type.value} transaction {db_transaction.transaction_id} on account {db_transaction.account_id}")
    return db_transaction


def _insert_leg(db: Session, user_id: int, account_id: int, leg: TransferLeg, group_id: str,
                description: str, transaction_date: date) -> TransactionDB:
    transaction_type, amount, direction = entry_to_columns(leg)
    row = TransactionDB(
        user_id=user_id,
        account_id=account_id,
        category_id=None,
        transaction_type=transaction_type,
        amount=amount,
        description=description,
        transaction_date=transaction_date,
        transfer_group_id=group_id,
        transfer_direction=direction,
        created_at=datetime.utcnow(),
        updated_at=datetime.utcnow()
    )
    db.add(row)
    db.flush()
    return row


def create_transfer(db: Session, user_id: int, transfer_data: TransferCreate) -> Transfer:
    """
    Move money between two of the caller's accounts.

    Both legs are written in one database transaction; if either insert
    fails neither row is kept.
    """
    if transfer_data.from_account_id == transfer_data.to_account_id:
        raise SameAccountError("Cannot transfer to the same account")

    from_account = require_active_account(db, transfer_data.from_account_id, user_id)
    to_account = require_active_account(db, transfer_data.to_account_id, user_id)

    group_id = str(uuid4())
    amount = abs(transfer_data.amount)
    out_description, in_description = transfer_descriptions(
        from_account.account_name, to_account.account_name, transfer_data.description
    )

    with transaction_scope(db):
        outgoing = _insert_leg(
            db, user_id, from_account.account_id, TransferLeg(amount, TransferDirection.OUT),
            group_id, out_description, transfer_data.transaction_date
        )
        incoming = _insert_leg(
            db, user_id, to_account.account_id, TransferLeg(amount, TransferDirection.IN),
            group_id, in_description, transfer_data.transaction_date
        )

    db.refresh(outgoing)
    db.refresh(incoming)
    logger.info(f"Created transfer {group_id} from account {from_account.account_id} to {to_account.account_id}")
    return Transfer(group_id=group_id, outgoing=outgoing, incoming=incoming)


def read_db_transaction(db: Session, transaction_id: int, user_id: int) -> Optional[TransactionDB]:
    return query_active(db, TransactionDB).filter(
        TransactionDB.transaction_id == transaction_id,
        TransactionDB.user_id == user_id
    ).first()


def _filtered(query: Query, account_id: Optional[int] = None, category_id: Optional[int] = None,
              transaction_type: Optional[TransactionTypeEnum] = None,
              start_date: Optional[date] = None, end_date: Optional[date] = None) -> Query:
    if account_id:
        query = query.filter(TransactionDB.account_id == account_id)
    if category_id:
        query = query.filter(TransactionDB.category_id == category_id)
    if transaction_type:
        query = query.filter(TransactionDB.transaction_type == TransactionType(transaction_type.value))
    if start_date:
        query = query.filter(TransactionDB.transaction_date >= start_date)
    if end_date:
        query = query.filter(TransactionDB.transaction_date <= end_date)
    return query


def read_db_transactions(db: Session, user_id: int, page: int = 1, limit: int = 50,
                         **filters) -> Tuple[List[TransactionDB], dict]:
    """
    One page of the caller's transactions, newest first.

    Rows that sit on a soft-deleted account are hidden.
    """
    query = query_active(db, TransactionDB).join(
        AccountDB, AccountDB.account_id == TransactionDB.account_id
    ).filter(
        TransactionDB.user_id == user_id,
        AccountDB.active()
    )
    query = _filtered(query, **filters)

    total = query.count()
    rows = query.order_by(
        TransactionDB.transaction_date.desc(), TransactionDB.transaction_id.desc()
    ).offset((page - 1) * limit).limit(limit).all()

    pagination = {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0,
    }
    return rows, pagination


def read_deleted_transactions(db: Session, user_id: int) -> List[TransactionDB]:
    return query_deleted(db, TransactionDB).filter(
        TransactionDB.user_id == user_id
    ).order_by(TransactionDB.deleted_at.desc()).all()


def update_db_transaction(db: Session, transaction_id: int, user_id: int,
                          transaction_updates: TransactionUpdate) -> TransactionDB:
    """Edit an INCOME/EXPENSE row; transfer legs are rejected"""
    db_transaction = read_db_transaction(db, transaction_id, user_id)
    if db_transaction is None:
        raise NotFoundError("Transaction not found")

    if db_transaction.transaction_type == TransactionType.TRANSFER:
        raise TransferEditError(
            "Transfer transactions cannot be updated individually. Please delete and recreate the transfer."
        )

    update_data = transaction_updates.model_dump(exclude_unset=True)

    if update_data.get("account_id"):
        require_active_account(db, update_data["account_id"], user_id)

    category_id = update_data.get("category_id", db_transaction.category_id)
    category = require_active_category(db, category_id, user_id) if category_id else None

    transaction_type = db_transaction.transaction_type
    if update_data.get("transaction_type"):
        transaction_type = TransactionType(update_data["transaction_type"].value)
    check_category_type(category, transaction_type)

    for field, value in update_data.items():
        if field == 'transaction_type':
            if value is not None:
                db_transaction.transaction_type = transaction_type
        elif field in ('account_id', 'amount', 'transaction_date'):
            if value is not None:
                setattr(db_transaction, field, value)
        else:
            setattr(db_transaction, field, value)
    db_transaction.updated_at = datetime.utcnow()

    db.commit()
    db.refresh(db_transaction)
    logger.info(f"Updated transaction {transaction_id}")
    return db_transaction


# ===== SOFT DELETE / RESTORE =====

def load_transfer(db: Session, group_id: str, user_id: int) -> Transfer:
    """Both legs of a transfer, whatever their deletion state"""
    rows = []
    for query in (query_active(db, TransactionDB), query_deleted(db, TransactionDB)):
        rows.extend(query.filter(
            TransactionDB.transfer_group_id == group_id,
            TransactionDB.user_id == user_id
        ).all())
    return Transfer.from_rows(group_id, rows)


def delete_db_transaction(db: Session, transaction_id: int, user_id: int) -> List[TransactionDB]:
    """Soft-delete a row, or both legs when it belongs to a transfer"""
    db_transaction = read_db_transaction(db, transaction_id, user_id)
    if db_transaction is None:
        raise NotFoundError("Transaction not found")

    with transaction_scope(db):
        if db_transaction.transfer_group_id:
            transfer = load_transfer(db, db_transaction.transfer_group_id, user_id)
            transfer.soft_delete()
            affected = list(transfer.legs)
        else:
            db_transaction.soft_delete()
            affected = [db_transaction]

    logger.info(f"Soft-deleted transaction(s) {[t.transaction_id for t in affected]}")
    return affected


def restore_db_transaction(db: Session, transaction_id: int, user_id: int) -> List[TransactionDB]:
    """Inverse of delete_db_transaction"""
    db_transaction = query_deleted(db, TransactionDB).filter(
        TransactionDB.transaction_id == transaction_id,
        TransactionDB.user_id == user_id
    ).first()
    if db_transaction is None:
        if read_db_transaction(db, transaction_id, user_id) is not None:
            raise NotDeletedError("Transaction is not deleted")
        raise NotFoundError("Transaction not found")

    with transaction_scope(db):
        if db_transaction.transfer_group_id:
            transfer = load_transfer(db, db_transaction.transfer_group_id, user_id)
            transfer.restore()
            affected = list(transfer.legs)
        else:
            db_transaction.restore()
            affected = [db_transaction]

    logger.info(f"Restored transaction(s) {[t.transaction_id for t in affected]}")
    return affected


# ===== STATISTICS =====

def get_transaction_summary(db: Session, user_id: int, start_date: Optional[date] = None,
                            end_date: Optional[date] = None, account_id: Optional[int] = None) -> TransactionSummary:
    query = query_active(db, TransactionDB).filter(TransactionDB.user_id == user_id)
    rows = _filtered(query, account_id=account_id, start_date=start_date, end_date=end_date).all()

    total_income = Decimal(0)
    total_expenses = Decimal(0)
    counts = {Income: 0, Expense: 0, TransferLeg: 0}
    for row in rows:
        entry = entry_of(row)
        counts[type(entry)] += 1
        if isinstance(entry, Income):
            total_income += entry.amount
        elif isinstance(entry, Expense):
            total_expenses += entry.amount

    return TransactionSummary(
        total_income=round_money(total_income),
        total_expenses=round_money(total_expenses),
        net_income=round_money(total_income - total_expenses),
        income_transactions=counts[Income],
        expense_transactions=counts[Expense],
        transfer_transactions=counts[TransferLeg],
    )
