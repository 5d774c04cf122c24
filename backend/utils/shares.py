"""Personal share of an expense, as seen by its owner or by a linked friend."""

from typing import Optional

from utils.ledger import ExpenseRecord
from utils.participants import (
    FriendParticipant,
    IdentityResolver,
    SelfParticipant,
)


def personal_share(
    expense: ExpenseRecord,
    viewer_id: Optional[int] = None,
    resolver: Optional[IdentityResolver] = None
) -> float:
    """
    Amount of the expense the viewer is financially responsible for.

    Args:
        expense: The expense with its split rows
        viewer_id: Account viewing the expense. None, or the owner's id, is the owner view.
        resolver: Resolves friend references to linked accounts, needed for non-owner views

    Returns:
        Share amount, never negative. No matching row yields 0.
    """
    total = expense.amount
    splits = expense.splits
    owner_view = viewer_id is None or viewer_id == expense.owner_id

    if not owner_view:
        return _linked_viewer_share(expense, viewer_id, resolver)

    # No split rows: fully the payer's burden
    if not splits:
        return total if expense.owner_paid and total > 0 else 0.0

    # Owner paid: everything friends owe the owner comes off the total
    if expense.owner_paid:
        owed_to_owner = sum(
            s.share_amount for s in splits
            if isinstance(s.debtor, FriendParticipant) and isinstance(s.creditor, SelfParticipant)
        )
        return max(total - owed_to_owner, 0.0)

    # A friend paid: the owner's share is the row owing that payer
    for s in splits:
        if isinstance(s.debtor, SelfParticipant) and s.creditor == expense.payer:
            return max(s.share_amount, 0.0)
    return 0.0


def _linked_viewer_share(expense: ExpenseRecord, viewer_id: int, resolver: Optional[IdentityResolver]) -> float:
    if resolver is None:
        return 0.0

    # Prefer the row where the viewer owes; a payer only shows up as creditor
    for side in ("debtor", "creditor"):
        for s in expense.splits:
            party = getattr(s, side)
            if isinstance(party, FriendParticipant) and resolver.resolves_to(party.friend_id, viewer_id):
                return max(s.share_amount, 0.0)
    return 0.0
