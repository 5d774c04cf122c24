"""Balance calculation utilities with linked-identity folding."""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session, selectinload

import models
from utils.ledger import EPSILON, Balance, ExpenseRecord, expense_record_from_model
from utils.participants import (
    SELF,
    FriendIdentity,
    FriendParticipant,
    IdentityKey,
    IdentityResolver,
    Participant,
    SelfParticipant,
)

logger = logging.getLogger(__name__)


def _unsplit_remainder(expense: ExpenseRecord) -> float:
    """Part of the total no split row covers; the payer absorbs it as their own share."""
    remainder = expense.amount - sum(s.share_amount for s in expense.splits)
    if remainder < -EPSILON:
        logger.warning(
            f"Split rows on expense {expense.id} exceed its total by {-remainder:.2f}"
        )
    return remainder


@dataclass
class _Tally:
    paid: float = 0.0
    share: float = 0.0


def _accumulate(expenses: Iterable[ExpenseRecord], key_of, totals: dict) -> dict:
    for expense in expenses:
        payer_key = key_of(expense.payer, expense)
        totals.setdefault(payer_key, _Tally()).paid += expense.amount

        for split in expense.splits:
            debtor_key = key_of(split.debtor, expense)
            totals.setdefault(debtor_key, _Tally()).share += split.share_amount

        totals[payer_key].share += _unsplit_remainder(expense)
    return totals


def aggregate_balances(
    expenses: Iterable[ExpenseRecord],
    roster: Sequence[Participant],
    resolver: Optional[IdentityResolver] = None
) -> Dict[Participant, Balance]:
    """
    Calculate paid, share and net balance for every participant in one scope.

    Args:
        expenses: All expenses of one scope (the personal ledger or one trip), never mixed
        roster: Known participants, in display order. SELF is the viewer.
        resolver: When given, contributions are folded by linked identity so that
                  several contact records of one account count as one person, and
                  expenses owned by other accounts are read from their owner's side.

    Returns:
        Ordered mapping of participant to Balance: roster order first, then anyone
        who appears in the ledger but not in the roster. Balances sum to zero.
    """
    if resolver is None:
        tallies = _accumulate(expenses, lambda p, _expense: p, {p: _Tally() for p in roster})
        return {p: Balance(paid=t.paid, share=t.share) for p, t in tallies.items()}

    viewer_id = resolver.viewer_id
    totals: Dict[IdentityKey, _Tally] = _accumulate(
        expenses,
        lambda p, expense: resolver.identity_key(p, expense.owner_id),
        {}
    )

    # Roster participants sharing an identity split its totals evenly.
    # The viewer's own contact records are folded into SELF.
    members: Dict[IdentityKey, List[Participant]] = {}
    for participant in roster:
        key = resolver.identity_key(participant, viewer_id)
        refs = members.setdefault(key, [])
        if isinstance(participant, SelfParticipant):
            refs[:] = [SELF]
        elif SELF not in refs and participant not in refs:
            refs.append(participant)

    result: Dict[Participant, Balance] = {}
    for participant in roster:
        key = resolver.identity_key(participant, viewer_id)
        refs = members[key]
        if participant not in refs or participant in result:
            continue
        total = totals.get(key, _Tally())
        result[participant] = Balance(paid=total.paid / len(refs), share=total.share / len(refs))

    for key, total in totals.items():
        if key in members:
            continue
        participant = resolver.participant_for_key(key)
        previous = result.get(participant, Balance())
        result[participant] = Balance(paid=previous.paid + total.paid, share=previous.share + total.share)

    return result


@dataclass
class FriendBalance:
    paid: float = 0.0
    they_owe: float = 0.0
    user_owes: float = 0.0

    @property
    def net(self) -> float:
        """Positive: the friend owes the viewer. Negative: the viewer owes the friend."""
        return self.they_owe - self.user_owes


def friend_balances(
    expenses: Iterable[ExpenseRecord],
    friends: Sequence[FriendIdentity],
    resolver: IdentityResolver
) -> Dict[int, FriendBalance]:
    """
    Pairwise balance between the viewer and each of their contacts on the personal ledger.

    Contacts linked to the same account share that account's totals evenly.
    Rows between two other people do not affect the viewer and are skipped.
    """
    viewer_key = ("user", resolver.viewer_id)

    refs_by_key: Dict[IdentityKey, List[int]] = {}
    for friend in friends:
        key = resolver.identity_key(FriendParticipant(friend.friend_id), resolver.viewer_id)
        refs_by_key.setdefault(key, []).append(friend.friend_id)

    result = {f.friend_id: FriendBalance() for f in friends}

    def credit(key: IdentityKey, attr: str, amount: float):
        refs = refs_by_key.get(key)
        if not refs:
            return
        for friend_id in refs:
            entry = result[friend_id]
            setattr(entry, attr, getattr(entry, attr) + amount / len(refs))

    for expense in expenses:
        payer_key = resolver.identity_key(expense.payer, expense.owner_id)
        if payer_key != viewer_key:
            credit(payer_key, "paid", expense.amount)

        for split in expense.splits:
            if split.share_amount == 0:
                continue
            debtor_key = resolver.identity_key(split.debtor, expense.owner_id)
            creditor_key = resolver.identity_key(split.creditor, expense.owner_id)
            if creditor_key == viewer_key and debtor_key != viewer_key:
                credit(debtor_key, "they_owe", split.share_amount)
            elif debtor_key == viewer_key and creditor_key != viewer_key:
                credit(creditor_key, "user_owes", split.share_amount)

    return result


def _referenced_friend_ids(expenses: Iterable[ExpenseRecord]) -> set:
    ids = set()
    for expense in expenses:
        participants = [expense.payer]
        for split in expense.splits:
            participants.extend((split.debtor, split.creditor))
        ids.update(p.friend_id for p in participants if isinstance(p, FriendParticipant))
    return ids


def build_resolver(
    db: Session,
    viewer_id: int,
    expenses: Sequence[ExpenseRecord] = (),
    extra_friend_ids: Iterable[int] = ()
) -> IdentityResolver:
    """Load every contact the expenses reference, plus the viewer's own contacts."""
    friend_ids = _referenced_friend_ids(expenses) | set(extra_friend_ids)

    query = db.query(models.Friend)
    if friend_ids:
        query = query.filter(
            (models.Friend.user_id == viewer_id) | (models.Friend.id.in_(friend_ids))
        )
    else:
        query = query.filter(models.Friend.user_id == viewer_id)
    friends = query.all()

    user_ids = {f.linked_user_id for f in friends if f.linked_user_id}
    user_ids.update(e.owner_id for e in expenses if e.owner_id is not None)
    users = db.query(models.User).filter(models.User.id.in_(user_ids)).all() if user_ids else []

    return IdentityResolver(
        friends=[
            FriendIdentity(
                friend_id=f.id,
                owner_id=f.user_id,
                name=f.name,
                linked_user_id=f.linked_user_id
            )
            for f in friends
        ],
        viewer_id=viewer_id,
        account_names={u.id: u.full_name or u.email for u in users}
    )


def load_trip_expenses(db: Session, trip_id: int) -> List[ExpenseRecord]:
    expenses = db.query(models.Expense).options(selectinload(models.Expense.splits)).filter(
        models.Expense.trip_id == trip_id
    ).order_by(models.Expense.date.desc(), models.Expense.id.desc()).all()
    return [expense_record_from_model(e) for e in expenses]


def query_visible_expenses(db: Session, viewer_id: int, personal_only: bool = True) -> List[models.Expense]:
    """
    Expenses the viewer owns or appears in through a contact linked to their account.

    Args:
        personal_only: Restrict to the personal ledger (no trip)
    """
    linked_friend_ids = [
        f.id for f in db.query(models.Friend.id).filter(models.Friend.linked_user_id == viewer_id).all()
    ]

    involvement = models.Expense.user_id == viewer_id
    if linked_friend_ids:
        split_expense_ids = db.query(models.ExpenseSplit.expense_id).filter(
            models.ExpenseSplit.friend_id.in_(linked_friend_ids) |
            models.ExpenseSplit.owed_to_friend_id.in_(linked_friend_ids)
        )
        involvement = (
            involvement |
            models.Expense.payer_id.in_(linked_friend_ids) |
            models.Expense.id.in_(split_expense_ids)
        )

    query = db.query(models.Expense).options(selectinload(models.Expense.splits)).filter(involvement)
    if personal_only:
        query = query.filter(models.Expense.trip_id == None)
    return query.order_by(models.Expense.date.desc(), models.Expense.id.desc()).all()


def load_personal_expenses(db: Session, viewer_id: int) -> List[ExpenseRecord]:
    return [expense_record_from_model(e) for e in query_visible_expenses(db, viewer_id)]


def calculate_trip_balances(
    db: Session,
    trip: models.Trip,
    viewer_id: int
) -> Tuple[Dict[Participant, Balance], IdentityResolver]:
    """Member balances for one trip, presented to viewer_id."""
    expenses = load_trip_expenses(db, trip.id)
    members = db.query(models.TripMember).filter(
        models.TripMember.trip_id == trip.id
    ).order_by(models.TripMember.id).all()

    resolver = build_resolver(
        db,
        viewer_id,
        expenses,
        extra_friend_ids=[m.friend_id for m in members if m.friend_id]
    )
    if trip.user_id not in resolver.account_names:
        owner = db.query(models.User).filter(models.User.id == trip.user_id).first()
        if owner:
            resolver.account_names[owner.id] = owner.full_name or owner.email

    roster: List[Participant] = [SELF]
    if trip.user_id != viewer_id:
        roster.append(resolver.participant_for_key(("user", trip.user_id)))
    roster.extend(FriendParticipant(m.friend_id) for m in members if m.friend_id)

    return aggregate_balances(expenses, roster, resolver), resolver


def calculate_personal_balances(
    db: Session,
    viewer_id: int
) -> Tuple[Dict[int, FriendBalance], IdentityResolver]:
    """Pairwise personal-ledger balances between viewer_id and each of their contacts."""
    expenses = load_personal_expenses(db, viewer_id)
    resolver = build_resolver(db, viewer_id, expenses)
    own_friends = [f for f in resolver.friends.values() if f.owner_id == viewer_id]
    return friend_balances(expenses, own_friends, resolver), resolver
