"""Immutable ledger value types shared by the share, balance and settlement calculations."""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

from utils.participants import (
    Participant,
    SelfParticipant,
    participant_from_column,
)

logger = logging.getLogger(__name__)

# Currency-unit tolerance: anything closer to zero is rounding noise.
EPSILON = 0.01


class MalformedSplitRowError(ValueError):
    pass


@dataclass(frozen=True)
class SplitRow:
    """The debtor owes the creditor share_amount on one expense."""
    debtor: Participant
    creditor: Participant
    share_amount: float

    def __post_init__(self):
        if isinstance(self.debtor, SelfParticipant) and isinstance(self.creditor, SelfParticipant):
            raise MalformedSplitRowError("Split row cannot have the owner on both sides")
        if self.debtor == self.creditor:
            raise MalformedSplitRowError(f"Split row debtor and creditor are both {self.debtor!r}")
        if not math.isfinite(self.share_amount):
            raise MalformedSplitRowError(f"Split row share must be finite: {self.share_amount}")
        if self.share_amount < 0:
            raise MalformedSplitRowError(f"Split row share cannot be negative: {self.share_amount}")


@dataclass(frozen=True)
class ExpenseRecord:
    id: Optional[int]
    owner_id: Optional[int]
    amount: float
    payer: Participant
    splits: Tuple[SplitRow, ...] = ()
    trip_id: Optional[int] = None
    is_settlement: bool = False
    category_id: Optional[int] = None
    date: Optional[str] = None
    title: Optional[str] = None

    @property
    def owner_paid(self) -> bool:
        return isinstance(self.payer, SelfParticipant)


@dataclass(frozen=True)
class Balance:
    paid: float = 0.0
    share: float = 0.0

    @property
    def balance(self) -> float:
        """Positive: owed money overall. Negative: owes money overall."""
        return self.paid - self.share


@dataclass(frozen=True)
class SettlementTransfer:
    debtor: Participant
    creditor: Participant
    amount: float


def split_row_from_model(split) -> SplitRow:
    return SplitRow(
        debtor=participant_from_column(split.friend_id),
        creditor=participant_from_column(split.owed_to_friend_id),
        share_amount=float(split.share_amount or 0)
    )


def expense_record_from_model(expense) -> ExpenseRecord:
    """
    Build an ExpenseRecord from an Expense row and its splits.

    Stored rows that break the split row invariants are logged and dropped,
    so they contribute nothing to any calculation.
    """
    rows = []
    for split in expense.splits:
        try:
            rows.append(split_row_from_model(split))
        except MalformedSplitRowError as e:
            logger.warning(f"Ignoring malformed split row {split.id} on expense {expense.id}: {e}")

    return ExpenseRecord(
        id=expense.id,
        owner_id=expense.user_id,
        amount=float(expense.amount or 0),
        payer=participant_from_column(expense.payer_id),
        splits=tuple(rows),
        trip_id=expense.trip_id,
        is_settlement=bool(expense.is_settlement),
        category_id=expense.category_id,
        date=expense.date,
        title=expense.title
    )
