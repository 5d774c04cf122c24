"""Validation utilities for ownership, trip access control, and expense participants."""

from typing import Iterable, Optional

from sqlalchemy.orm import Session
from fastapi import HTTPException

import models

# Roles allowed to add expenses regardless of the per-member flag
EXPENSE_EDITOR_ROLES = ("owner", "admin", "editor")
# Roles allowed to change other members' permissions
TRIP_MANAGER_ROLES = ("owner", "admin")


def get_user_by_email(db: Session, email: str):
    """Get a user by their email address."""
    return db.query(models.User).filter(models.User.email == email).first()


def get_trip_or_404(db: Session, trip_id: int):
    """Get a trip by ID or raise 404 if not found."""
    trip = db.query(models.Trip).filter(models.Trip.id == trip_id).first()
    if not trip:
        raise HTTPException(status_code=404, detail="Trip not found")
    return trip


def get_trip_membership(db: Session, trip: models.Trip, user_id: int) -> Optional[models.TripMember]:
    """The member row linked to this account, if any."""
    return db.query(models.TripMember).filter(
        models.TripMember.trip_id == trip.id,
        models.TripMember.user_id == user_id
    ).first()


def get_trip_role(db: Session, trip: models.Trip, user_id: int) -> Optional[str]:
    if trip.user_id == user_id:
        return "owner"
    member = get_trip_membership(db, trip, user_id)
    return (member.role or "viewer") if member else None


def verify_trip_access(db: Session, trip_id: int, user_id: int):
    """Verify that a user owns or is a linked member of a trip, raise 403 if not."""
    trip = get_trip_or_404(db, trip_id)
    role = get_trip_role(db, trip, user_id)
    if role is None:
        raise HTTPException(status_code=403, detail="You are not a member of this trip")
    return trip, role


def verify_can_add_expenses(db: Session, trip: models.Trip, user_id: int) -> None:
    """Verify that a user may add or edit expenses on a trip, raise 403 if not."""
    role = get_trip_role(db, trip, user_id)
    if role in EXPENSE_EDITOR_ROLES:
        return
    member = get_trip_membership(db, trip, user_id) if role else None
    if member and member.can_add_expenses:
        return
    raise HTTPException(status_code=403, detail="You don't have permission to add expenses to this trip")


def verify_trip_manager(db: Session, trip: models.Trip, user_id: int) -> None:
    if get_trip_role(db, trip, user_id) not in TRIP_MANAGER_ROLES:
        raise HTTPException(status_code=403, detail="Only the trip owner or an admin can manage members")


def get_friend_or_404(db: Session, friend_id: int, user_id: int):
    """Get one of the user's own contacts or raise 404."""
    friend = db.query(models.Friend).filter(
        models.Friend.id == friend_id,
        models.Friend.user_id == user_id
    ).first()
    if not friend:
        raise HTTPException(status_code=404, detail="Friend not found")
    return friend


def get_expense_or_404(db: Session, expense_id: int):
    expense = db.query(models.Expense).filter(models.Expense.id == expense_id).first()
    if not expense:
        raise HTTPException(status_code=404, detail="Expense not found")
    return expense


def verify_expense_owner(expense: models.Expense, user_id: int) -> None:
    """Expenses are mutated and deleted only by the account that created them."""
    if expense.user_id != user_id:
        raise HTTPException(status_code=403, detail="Only the expense owner can modify this expense")


def verify_expense_access(db: Session, expense: models.Expense, user_id: int) -> None:
    """Verify that a user owns, shares (via a linked contact), or can see the trip of an expense."""
    if expense.user_id == user_id:
        return

    referenced = {expense.payer_id}
    for split in expense.splits:
        referenced.update((split.friend_id, split.owed_to_friend_id))
    referenced.discard(None)
    if referenced and db.query(models.Friend).filter(
        models.Friend.id.in_(referenced),
        models.Friend.linked_user_id == user_id
    ).first():
        return

    if expense.trip_id:
        trip = db.query(models.Trip).filter(models.Trip.id == expense.trip_id).first()
        if trip and get_trip_role(db, trip, user_id):
            return

    raise HTTPException(status_code=403, detail="You don't have access to this expense")


def validate_expense_participants(
    db: Session,
    user_id: int,
    payer_id: Optional[int],
    friend_ids: Iterable[int],
    trip_id: Optional[int] = None
) -> None:
    """
    Validate that the payer and every split participant is a usable contact.

    A contact is usable when the user owns it, or when it is a member of the
    trip the expense belongs to.
    """
    trip_friend_ids = set()
    if trip_id is not None:
        trip_friend_ids = {
            m.friend_id for m in db.query(models.TripMember.friend_id).filter(
                models.TripMember.trip_id == trip_id
            ).all()
        }

    def is_usable(friend_id: int) -> bool:
        if friend_id in trip_friend_ids:
            return True
        return db.query(models.Friend).filter(
            models.Friend.id == friend_id,
            models.Friend.user_id == user_id
        ).first() is not None

    if payer_id is not None and not is_usable(payer_id):
        raise HTTPException(status_code=400, detail=f"Payer friend with ID {payer_id} not found")

    for friend_id in friend_ids:
        if not is_usable(friend_id):
            raise HTTPException(status_code=400, detail=f"Friend with ID {friend_id} not found in splits")
