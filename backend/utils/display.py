"""
Display utilities for participants and users
"""
import schemas
import models
from utils.participants import (
    AccountParticipant,
    FriendParticipant,
    IdentityResolver,
    Participant,
    SelfParticipant,
)


def get_user_display_name(user: models.User) -> str:
    """Uses full_name if available, otherwise the email."""
    if not user:
        return "Unknown User"
    return user.full_name or user.email


def participant_ref(participant: Participant, resolver: IdentityResolver) -> schemas.ParticipantRef:
    """
    Wire representation of a participant.

    Args:
        participant: SELF, a friend reference, or an account
        resolver: Resolver holding contact and account names

    Returns:
        ParticipantRef with kind, id (None for yourself) and display name
    """
    name = resolver.display_name(participant)
    if isinstance(participant, SelfParticipant):
        return schemas.ParticipantRef(kind="self", id=None, name=name)
    if isinstance(participant, FriendParticipant):
        return schemas.ParticipantRef(kind="friend", id=participant.friend_id, name=name)
    if isinstance(participant, AccountParticipant):
        return schemas.ParticipantRef(kind="account", id=participant.user_id, name=name)
    raise ValueError(f"Unknown participant {participant!r}")


def expense_response(expense: models.Expense, personal_share: float) -> schemas.Expense:
    """Expense with its split rows and the viewer's personal share."""
    return schemas.Expense(
        id=expense.id,
        user_id=expense.user_id,
        title=expense.title,
        amount=expense.amount,
        currency=expense.currency,
        date=expense.date,
        category_id=expense.category_id,
        note=expense.note,
        is_recurring=bool(expense.is_recurring),
        recurring_frequency=expense.recurring_frequency,
        payment_mode=expense.payment_mode,
        payer_id=expense.payer_id,
        trip_id=expense.trip_id,
        is_settlement=bool(expense.is_settlement),
        splits=[schemas.ExpenseSplit.model_validate(s) for s in expense.splits],
        personal_share=personal_share
    )
