"""
Ledger arithmetic over the transaction log.

Rows store a non-negative ``amount`` next to a ``transaction_type`` tag. Inside
this module a row is an entry variant (``Income``, ``Expense`` or
``TransferLeg``) so the sign lives in the type; the conversion happens only in
``entry_from_row`` / ``entry_to_columns``.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Sequence, Tuple, Union

from fintrack.db.core import TransactionType, TransferDirection


CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def round_money(value) -> Decimal:
    """Round to whole cents, half-up."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


# ===== ENTRY VARIANTS =====

@dataclass(frozen=True)
class Income:
    amount: Decimal


@dataclass(frozen=True)
class Expense:
    amount: Decimal


@dataclass(frozen=True)
class TransferLeg:
    amount: Decimal
    direction: TransferDirection


Entry = Union[Income, Expense, TransferLeg]


def entry_from_row(transaction_type: TransactionType, amount: Decimal,
                   transfer_direction: Optional[TransferDirection] = None) -> Entry:
    magnitude = abs(Decimal(amount))
    if transaction_type == TransactionType.INCOME:
        return Income(magnitude)
    if transaction_type == TransactionType.EXPENSE:
        return Expense(magnitude)
    if transaction_type == TransactionType.TRANSFER:
        if transfer_direction is None:
            raise ValueError("Transfer row is missing its direction")
        return TransferLeg(magnitude, transfer_direction)
    raise ValueError(f"Unknown transaction type: {transaction_type}")


def entry_to_columns(entry: Entry) -> Tuple[TransactionType, Decimal, Optional[TransferDirection]]:
    if isinstance(entry, Income):
        return TransactionType.INCOME, abs(entry.amount), None
    if isinstance(entry, Expense):
        return TransactionType.EXPENSE, abs(entry.amount), None
    return TransactionType.TRANSFER, abs(entry.amount), entry.direction


def entry_of(transaction) -> Entry:
    """Entry variant for a stored transaction row."""
    return entry_from_row(transaction.transaction_type, transaction.amount, transaction.transfer_direction)


# ===== BALANCES =====

def compute_balance(initial_balance: Decimal, entries: Iterable[Entry]) -> Decimal:
    """
    ``initial_balance + sum(income) - sum(expense)``, rounded half-up to cents.

    Transfer legs do not move this figure; see ``net_transfers`` for them.
    Callers pass entries of non-deleted rows only.
    """
    balance = Decimal(initial_balance or 0)
    for entry in entries:
        if isinstance(entry, Income):
            balance += entry.amount
        elif isinstance(entry, Expense):
            balance -= entry.amount
    return round_money(balance)


def net_transfers(entries: Iterable[Entry]) -> Decimal:
    """Incoming transfer legs minus outgoing transfer legs."""
    total = ZERO
    for entry in entries:
        if isinstance(entry, TransferLeg):
            if entry.direction == TransferDirection.IN:
                total += entry.amount
            else:
                total -= entry.amount
    return round_money(total)


# ===== TRANSFER AGGREGATE =====

@dataclass
class Transfer:
    """
    The two rows of one transfer, handled as a unit.

    ``outgoing`` debits the source account and ``incoming`` credits the
    destination; both share ``group_id`` and have the same magnitude.
    """
    group_id: str
    outgoing: object
    incoming: object

    @classmethod
    def from_rows(cls, group_id: str, rows: Sequence) -> "Transfer":
        if len(rows) != 2:
            raise ValueError(f"Transfer {group_id} has {len(rows)} legs, expected 2")
        by_direction = {row.transfer_direction: row for row in rows}
        outgoing = by_direction.get(TransferDirection.OUT)
        incoming = by_direction.get(TransferDirection.IN)
        if outgoing is None or incoming is None:
            raise ValueError(f"Transfer {group_id} does not have one leg per direction")
        return cls(group_id=group_id, outgoing=outgoing, incoming=incoming)

    @property
    def legs(self) -> Tuple[object, object]:
        return self.outgoing, self.incoming

    @property
    def is_deleted(self) -> bool:
        return all(leg.is_deleted for leg in self.legs)

    def soft_delete(self, when=None) -> None:
        for leg in self.legs:
            leg.soft_delete(when)

    def restore(self) -> None:
        for leg in self.legs:
            leg.restore()


def transfer_descriptions(from_name: str, to_name: str,
                          description: Optional[str] = None) -> Tuple[str, str]:
    """Descriptions for the (outgoing, incoming) legs."""
    if description:
        return description, description
    return f"Transfer to {to_name}", f"Transfer from {from_name}"
