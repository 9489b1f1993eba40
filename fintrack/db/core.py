from contextlib import contextmanager
from typing import Optional, Iterator, Type, TypeVar
from sqlalchemy import create_engine, ForeignKey, Index, UniqueConstraint, Boolean, String, Text, DECIMAL, DateTime, Date
from sqlalchemy.types import Enum
from sqlalchemy.orm import sessionmaker, DeclarativeBase, Mapped, Session, Query, relationship, mapped_column
from datetime import datetime, date
from decimal import Decimal
import enum

from fintrack.config import get_settings


def _enum_values(enum_cls):
    # Persist enum values ("Income", "monthly") rather than member names
    return [member.value for member in enum_cls]


class Base(DeclarativeBase):
    pass


class SoftDeleteMixin:
    """
    Retired rows keep a ``deleted_at`` timestamp instead of being removed.

    ``active()`` is the one predicate every read path filters on, so the
    definition of "visible" lives in a single place.
    """
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, default=None)

    @classmethod
    def active(cls):
        return cls.deleted_at.is_(None)

    @classmethod
    def deleted(cls):
        return cls.deleted_at.is_not(None)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self, when: Optional[datetime] = None) -> None:
        self.deleted_at = when or datetime.utcnow()

    def restore(self) -> None:
        self.deleted_at = None


ModelT = TypeVar("ModelT", bound=SoftDeleteMixin)


def query_active(db: Session, model: Type[ModelT]) -> Query:
    """Query over the non-deleted rows of a soft-deletable model."""
    return db.query(model).filter(model.active())


def query_deleted(db: Session, model: Type[ModelT]) -> Query:
    """Query over the soft-deleted rows of a model (trash views)."""
    return db.query(model).filter(model.deleted())


class TransactionType(enum.Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"
    TRANSFER = "TRANSFER"


class TransferDirection(enum.Enum):
    OUT = "OUT"
    IN = "IN"


class CategoryType(enum.Enum):
    INCOME = "Income"
    EXPENSE = "Expense"


class TradeType(enum.Enum):
    BUY = "BUY"
    SELL = "SELL"


class BudgetPeriod(enum.Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"
    CUSTOM = "custom"


class UserDB(SoftDeleteMixin, Base):
    __tablename__ = "users"

    __table_args__ = (
        UniqueConstraint("email", name="uq_user_email"),
        UniqueConstraint("username", name="uq_user_username"),
        Index("idx_users_email", "email"),
    )

    user_id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Authentication
    username: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    # Audit Trail
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    accounts = relationship("AccountDB", back_populates="user")
    categories = relationship("CategoryDB", back_populates="user")
    transactions = relationship("TransactionDB", back_populates="user")
    budgets = relationship("BudgetDB", back_populates="user")
    stock_trades = relationship("StockTradeDB", back_populates="user")


class AccountDB(SoftDeleteMixin, Base):
    __tablename__ = "accounts"

    __table_args__ = (
        Index("idx_accounts_user", "user_id"),
    )

    account_id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.user_id"), nullable=False)

    # Account Details
    account_name: Mapped[str] = mapped_column(String(100), nullable=False)
    account_type: Mapped[str] = mapped_column(String(50), nullable=False)  # free-form: "Checking", "Loan", ...
    initial_balance: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False, default=Decimal("0.00"))

    # Audit Trail
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("UserDB", back_populates="accounts")
    transactions = relationship("TransactionDB", back_populates="account")
    stock_trades = relationship("StockTradeDB", back_populates="account")


class CategoryDB(SoftDeleteMixin, Base):
    __tablename__ = "categories"

    __table_args__ = (
        Index("idx_categories_user", "user_id"),
    )

    category_id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.user_id"))  # NULL for templates

    category_name: Mapped[str] = mapped_column(String(100), nullable=False)
    category_type: Mapped[CategoryType] = mapped_column(Enum(CategoryType, values_callable=_enum_values), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    user = relationship("UserDB", back_populates="categories")
    transactions = relationship("TransactionDB", back_populates="category")
    budgets = relationship("BudgetDB", back_populates="category")


class TransactionDB(SoftDeleteMixin, Base):
    __tablename__ = "transactions"

    __table_args__ = (
        Index("idx_transactions_user_date", "user_id", "transaction_date"),
        Index("idx_transactions_account", "account_id"),
        Index("idx_transactions_transfer_group", "transfer_group_id"),
    )

    transaction_id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.user_id"), nullable=False)
    account_id: Mapped[int] = mapped_column(ForeignKey("accounts.account_id"), nullable=False)
    category_id: Mapped[Optional[int]] = mapped_column(ForeignKey("categories.category_id"))

    # Stored as a non-negative magnitude; the sign comes from transaction_type
    transaction_type: Mapped[TransactionType] = mapped_column(Enum(TransactionType), nullable=False)
    amount: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Transfer legs share a group id; direction tells the outgoing leg from the incoming one
    transfer_group_id: Mapped[Optional[str]] = mapped_column(String(36))
    transfer_direction: Mapped[Optional[TransferDirection]] = mapped_column(Enum(TransferDirection))

    # Audit Trail
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("UserDB", back_populates="transactions")
    account = relationship("AccountDB", back_populates="transactions")
    category = relationship("CategoryDB", back_populates="transactions")


class SecurityDB(SoftDeleteMixin, Base):
    __tablename__ = "securities"

    __table_args__ = (
        UniqueConstraint("ticker_symbol", name="uq_security_ticker"),
    )

    security_id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    ticker_symbol: Mapped[str] = mapped_column(String(20), nullable=False)  # always upper-cased
    security_name: Mapped[str] = mapped_column(String(255), nullable=False)
    asset_type: Mapped[str] = mapped_column(String(50), nullable=False, default="Stock")

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    stock_trades = relationship("StockTradeDB", back_populates="security")


class StockTradeDB(SoftDeleteMixin, Base):
    __tablename__ = "stock_trades"

    __table_args__ = (
        Index("idx_stock_trades_user_date", "user_id", "trade_date"),
        Index("idx_stock_trades_security", "security_id"),
    )

    trade_id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.user_id"), nullable=False)
    account_id: Mapped[int] = mapped_column(ForeignKey("accounts.account_id"), nullable=False)
    security_id: Mapped[int] = mapped_column(ForeignKey("securities.security_id"), nullable=False)

    trade_type: Mapped[TradeType] = mapped_column(Enum(TradeType), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(DECIMAL(15, 5), nullable=False)
    price_per_share: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)
    trade_date: Mapped[date] = mapped_column(Date, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("UserDB", back_populates="stock_trades")
    account = relationship("AccountDB", back_populates="stock_trades")
    security = relationship("SecurityDB", back_populates="stock_trades")


class BudgetDB(Base):
    __tablename__ = "budgets"

    __table_args__ = (
        Index("idx_budgets_user_category_period", "user_id", "category_id", "period"),
    )

    budget_id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.user_id"), nullable=False)
    category_id: Mapped[int] = mapped_column(ForeignKey("categories.category_id"), nullable=False)

    amount: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)
    period: Mapped[BudgetPeriod] = mapped_column(Enum(BudgetPeriod, values_callable=_enum_values), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[Optional[date]] = mapped_column(Date)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, onupdate=datetime.utcnow)

    user = relationship("UserDB", back_populates="budgets")
    category = relationship("CategoryDB", back_populates="budgets")


settings = get_settings()
engine = create_engine(settings.database_url, echo=settings.sql_echo)
session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind=None) -> None:
    """Create every table that does not exist yet."""
    Base.metadata.create_all(bind=bind or engine)


# Dependency to get the database session
def get_db() -> Iterator[Session]:
    database = session_local()
    try:
        yield database
    finally:
        database.close()


@contextmanager
def transaction_scope(db: Session) -> Iterator[Session]:
    """
    Commit everything written inside the block as one unit, or nothing.

    Multi-row writes (transfer legs, cascaded deletes) go through here so a
    failure between statements never leaves half of the change behind.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
