"""
Folds buy/sell trades into per-(security, account) positions.

Cost basis is reduced proportionally on partial sells: selling ``q`` shares
out of a position of ``n`` removes ``q / n`` of the invested amount.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, Tuple

from fintrack.services.ledger import round_money


SHARE_QUANTUM = Decimal("0.00001")

HoldingKey = Tuple[int, int]  # (security_id, account_id)


def round_shares(value) -> Decimal:
    """Round a share count to 5 decimal places, half-up."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(SHARE_QUANTUM, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Trade:
    trade_type: str
    quantity: Decimal
    price_per_share: Decimal
    security_id: int = 0
    account_id: int = 0
    trade_date: date = date.min
    trade_id: int = 0


@dataclass
class Position:
    quantity: Decimal = field(default_factory=lambda: Decimal(0))
    invested: Decimal = field(default_factory=lambda: Decimal(0))
    trades_count: int = 0

    def apply(self, trade: Trade) -> None:
        quantity = Decimal(trade.quantity)
        price = Decimal(trade.price_per_share)
        self.trades_count += 1

        if trade.trade_type == "BUY":
            self.quantity += quantity
            self.invested += quantity * price
        elif trade.trade_type == "SELL":
            self.quantity -= quantity
            held_before = self.quantity + quantity
            if held_before > 0:
                self.invested -= self.invested * (quantity / held_before)
            else:
                # Nothing was held, so there is no basis left to carry
                self.invested = Decimal(0)
        else:
            raise ValueError(f"Unknown trade type: {trade.trade_type}")

    @property
    def is_open(self) -> bool:
        return self.quantity > 0

    @property
    def average_cost_basis(self) -> Decimal:
        if self.quantity <= 0:
            return Decimal("0.00")
        return round_money(self.invested / self.quantity)

    @property
    def rounded_quantity(self) -> Decimal:
        return round_shares(self.quantity)

    @property
    def rounded_invested(self) -> Decimal:
        return round_money(self.invested)


def _trade_value(value) -> str:
    return getattr(value, "value", value)


def fold_trades(trades: Iterable[Trade]) -> Dict[HoldingKey, Position]:
    """
    Fold trades into positions keyed by (security_id, account_id).

    Trades are applied oldest first (trade date, then id) so the result does
    not depend on the order the caller supplies them in.
    """
    positions: Dict[HoldingKey, Position] = {}
    ordered = sorted(trades, key=lambda t: (t.trade_date, t.trade_id))
    for trade in ordered:
        key = (trade.security_id, trade.account_id)
        positions.setdefault(key, Position()).apply(trade)
    return positions


def open_positions(trades: Iterable[Trade]) -> Dict[HoldingKey, Position]:
    """Only the positions with a positive share count."""
    return {key: pos for key, pos in fold_trades(trades).items() if pos.is_open}


def trade_from_row(row) -> Trade:
    return Trade(
        trade_type=_trade_value(row.trade_type),
        quantity=Decimal(row.quantity),
        price_per_share=Decimal(row.price_per_share),
        security_id=row.security_id,
        account_id=row.account_id,
        trade_date=row.trade_date,
        trade_id=row.trade_id or 0,
    )
