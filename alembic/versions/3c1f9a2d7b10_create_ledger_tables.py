"""create users, accounts, categories, transactions, securities, stock_trades and budgets tables

Revision ID: 3c1f9a2d7b10
Revises: 
Create Date: 2026-10-18 10:12:41.503217

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c1f9a2d7b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('user_id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('username', sa.String(50), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=True),
        sa.Column('updated_at', sa.DateTime, nullable=True),
        sa.Column('deleted_at', sa.DateTime, nullable=True),
        sa.UniqueConstraint('email', name='uq_user_email'),
        sa.UniqueConstraint('username', name='uq_user_username'),
    )
    op.create_index('idx_users_email', 'users', ['email'])

    op.create_table(
        'accounts',
        sa.Column('account_id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.user_id'), nullable=False),
        sa.Column('account_name', sa.String(100), nullable=False),
        sa.Column('account_type', sa.String(50), nullable=False),  # e.g., "Checking", "Loan"
        sa.Column('initial_balance', sa.DECIMAL(15, 2), nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=True),
        sa.Column('updated_at', sa.DateTime, nullable=True),
        sa.Column('deleted_at', sa.DateTime, nullable=True),
    )
    op.create_index('idx_accounts_user', 'accounts', ['user_id'])

    op.create_table(
        'categories',
        sa.Column('category_id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.user_id'), nullable=True),  # NULL for templates
        sa.Column('category_name', sa.String(100), nullable=False),
        sa.Column('category_type', sa.Enum('Income', 'Expense', name='categorytype'), nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=True),
        sa.Column('deleted_at', sa.DateTime, nullable=True),
    )
    op.create_index('idx_categories_user', 'categories', ['user_id'])

    op.create_table(
        'transactions',
        sa.Column('transaction_id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.user_id'), nullable=False),
        sa.Column('account_id', sa.Integer, sa.ForeignKey('accounts.account_id'), nullable=False),
        sa.Column('category_id', sa.Integer, sa.ForeignKey('categories.category_id'), nullable=True),
        sa.Column('transaction_type', sa.Enum('INCOME', 'EXPENSE', 'TRANSFER', name='transactiontype'), nullable=False),
        sa.Column('amount', sa.DECIMAL(15, 2), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('transaction_date', sa.Date, nullable=False),
        sa.Column('transfer_group_id', sa.String(36), nullable=True),
        sa.Column('transfer_direction', sa.Enum('OUT', 'IN', name='transferdirection'), nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=True),
        sa.Column('updated_at', sa.DateTime, nullable=True),
        sa.Column('deleted_at', sa.DateTime, nullable=True),
    )
    op.create_index('idx_transactions_user_date', 'transactions', ['user_id', 'transaction_date'])
    op.create_index('idx_transactions_account', 'transactions', ['account_id'])
    op.create_index('idx_transactions_transfer_group', 'transactions', ['transfer_group_id'])

    op.create_table(
        'securities',
        sa.Column('security_id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('ticker_symbol', sa.String(20), nullable=False),
        sa.Column('security_name', sa.String(255), nullable=False),
        sa.Column('asset_type', sa.String(50), nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=True),
        sa.Column('deleted_at', sa.DateTime, nullable=True),
        sa.UniqueConstraint('ticker_symbol', name='uq_security_ticker'),
    )

    op.create_table(
        'stock_trades',
        sa.Column('trade_id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.user_id'), nullable=False),
        sa.Column('account_id', sa.Integer, sa.ForeignKey('accounts.account_id'), nullable=False),
        sa.Column('security_id', sa.Integer, sa.ForeignKey('securities.security_id'), nullable=False),
        sa.Column('trade_type', sa.Enum('BUY', 'SELL', name='tradetype'), nullable=False),
        sa.Column('quantity', sa.DECIMAL(15, 5), nullable=False),
        sa.Column('price_per_share', sa.DECIMAL(15, 2), nullable=False),
        sa.Column('trade_date', sa.Date, nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=True),
        sa.Column('updated_at', sa.DateTime, nullable=True),
        sa.Column('deleted_at', sa.DateTime, nullable=True),
    )
    op.create_index('idx_stock_trades_user_date', 'stock_trades', ['user_id', 'trade_date'])
    op.create_index('idx_stock_trades_security', 'stock_trades', ['security_id'])

    op.create_table(
        'budgets',
        sa.Column('budget_id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.user_id'), nullable=False),
        sa.Column('category_id', sa.Integer, sa.ForeignKey('categories.category_id'), nullable=False),
        sa.Column('amount', sa.DECIMAL(15, 2), nullable=False),
        sa.Column('period', sa.Enum('monthly', 'yearly', 'custom', name='budgetperiod'), nullable=False),
        sa.Column('start_date', sa.Date, nullable=False),
        sa.Column('end_date', sa.Date, nullable=True),
        sa.Column('is_active', sa.Boolean, nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=True),
        sa.Column('updated_at', sa.DateTime, nullable=True),
    )
    op.create_index('idx_budgets_user_category_period', 'budgets', ['user_id', 'category_id', 'period'])


def downgrade() -> None:
    op.drop_table('budgets')
    op.drop_table('stock_trades')
    op.drop_table('securities')
    op.drop_table('transactions')
    op.drop_table('categories')
    op.drop_table('accounts')
    op.drop_table('users')
