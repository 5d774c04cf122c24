"""Split construction: turn an expense form's split configuration into ledger rows."""

from dataclasses import dataclass, field
from typing import List

from utils.ledger import ExpenseRecord, SplitRow
from utils.participants import (
    SELF,
    FriendParticipant,
    Participant,
    SelfParticipant,
)

# Owner-paid rows covering the total this closely mean the owner was not a participant
INCLUDE_OWNER_TOLERANCE = 0.05


@dataclass(frozen=True)
class SplitForm:
    is_split: bool
    include_owner: bool
    friend_ids: List[int] = field(default_factory=list)
    payer: Participant = SELF
    total: float = 0.0


def build_split_rows(form: SplitForm) -> List[SplitRow]:
    """
    Calculate the split rows for an evenly split expense.

    Algorithm:
    1. No rows when splitting is off, nobody participates, or the total is not positive
    2. Each participant's share is total / participant count
    3. Owner paid: every friend participant owes the owner
    4. Friend paid: every other friend participant owes the payer, and so does
       the owner when included. The payer's own share is the unsplit remainder.
    """
    friend_ids = list(dict.fromkeys(form.friend_ids))
    participant_count = len(friend_ids) + (1 if form.include_owner else 0)

    if not form.is_split or participant_count == 0 or form.total <= 0:
        return []

    per_share = form.total / participant_count

    if isinstance(form.payer, SelfParticipant):
        return [
            SplitRow(debtor=FriendParticipant(friend_id), creditor=SELF, share_amount=per_share)
            for friend_id in friend_ids
        ]

    rows = [
        SplitRow(debtor=FriendParticipant(friend_id), creditor=form.payer, share_amount=per_share)
        for friend_id in friend_ids
        if FriendParticipant(friend_id) != form.payer
    ]
    if form.include_owner:
        rows.append(SplitRow(debtor=SELF, creditor=form.payer, share_amount=per_share))
    return rows


def infer_split_form(expense: ExpenseRecord) -> SplitForm:
    """Recover the split configuration of a stored expense, for editing it."""
    if not expense.splits:
        return SplitForm(
            is_split=False,
            include_owner=True,
            friend_ids=[],
            payer=expense.payer,
            total=expense.amount
        )

    friend_ids = list(dict.fromkeys(
        s.debtor.friend_id for s in expense.splits if isinstance(s.debtor, FriendParticipant)
    ))

    if expense.owner_paid:
        split_total = sum(s.share_amount for s in expense.splits)
        include_owner = abs(expense.amount - split_total) >= INCLUDE_OWNER_TOLERANCE
    else:
        include_owner = any(isinstance(s.debtor, SelfParticipant) for s in expense.splits)
        # The payer is a participant whenever the rows leave part of the total uncovered
        split_total = sum(s.share_amount for s in expense.splits)
        if (
            isinstance(expense.payer, FriendParticipant)
            and expense.amount - split_total >= INCLUDE_OWNER_TOLERANCE
            and expense.payer.friend_id not in friend_ids
        ):
            friend_ids.append(expense.payer.friend_id)

    return SplitForm(
        is_split=True,
        include_owner=include_owner,
        friend_ids=friend_ids,
        payer=expense.payer,
        total=expense.amount
    )
