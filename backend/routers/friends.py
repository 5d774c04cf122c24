"""Friends router: contacts, their linked accounts, and personal-ledger balances."""

from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

import models
import schemas
from database import get_db
from dependencies import get_current_user
from utils.balances import build_resolver, calculate_personal_balances, query_visible_expenses
from utils.display import expense_response
from utils.ledger import EPSILON, expense_record_from_model
from utils.shares import personal_share
from utils.validation import get_friend_or_404, get_user_by_email


router = APIRouter(prefix="/friends", tags=["friends"])


@router.post("", response_model=schemas.Friend)
def add_friend(
    friend: schemas.FriendCreate,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    linked_user_id = None
    if friend.email:
        if friend.email == current_user.email:
            raise HTTPException(status_code=400, detail="Cannot add yourself as friend")

        existing = db.query(models.Friend).filter(
            models.Friend.user_id == current_user.id,
            models.Friend.email == friend.email
        ).first()
        if existing:
            raise HTTPException(status_code=400, detail="A friend with this email already exists")

        registered = get_user_by_email(db, friend.email)
        if registered:
            linked_user_id = registered.id

    db_friend = models.Friend(
        user_id=current_user.id,
        name=friend.name,
        email=friend.email,
        linked_user_id=linked_user_id
    )
    db.add(db_friend)
    db.commit()
    db.refresh(db_friend)
    return db_friend


@router.get("", response_model=list[schemas.Friend])
def read_friends(
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    return db.query(models.Friend).filter(
        models.Friend.user_id == current_user.id
    ).order_by(models.Friend.created_at.desc(), models.Friend.id.desc()).all()


@router.get("/balances", response_model=schemas.FriendBalanceSummary)
def get_friend_balances(
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    """Personal-ledger balance with every contact. Trips are never included."""
    balances, resolver = calculate_personal_balances(db, current_user.id)

    friends = []
    for friend_id, entry in balances.items():
        identity = resolver.friends[friend_id]
        friends.append(schemas.FriendBalance(
            friend_id=friend_id,
            name=identity.name,
            linked_user_id=identity.linked_user_id,
            paid=entry.paid,
            they_owe=entry.they_owe,
            user_owes=entry.user_owes,
            net=entry.net
        ))

    return schemas.FriendBalanceSummary(
        to_get=sum(f.net for f in friends if f.net > EPSILON / 2),
        to_pay=sum(-f.net for f in friends if f.net < -EPSILON / 2),
        friends=friends
    )


@router.get("/{friend_id}/expenses", response_model=list[schemas.Expense])
def get_friend_expenses(
    friend_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    """Personal expenses shared with this person, across every contact record linked to them."""
    friend = get_friend_or_404(db, friend_id, current_user.id)

    person_ids = {friend.id}
    if friend.linked_user_id:
        person_ids.update(
            f.id for f in db.query(models.Friend.id).filter(
                models.Friend.linked_user_id == friend.linked_user_id
            ).all()
        )

    expenses = query_visible_expenses(db, current_user.id)
    records = [expense_record_from_model(e) for e in expenses]
    resolver = build_resolver(db, current_user.id, records)

    result = []
    for expense, record in zip(expenses, records):
        referenced = {expense.payer_id}
        for split in expense.splits:
            referenced.update((split.friend_id, split.owed_to_friend_id))

        # The other side of an expense owned by this person is its owner sentinel
        shared_by_owner = friend.linked_user_id is not None and expense.user_id == friend.linked_user_id
        if not (referenced & person_ids) and not shared_by_owner:
            continue
        result.append(expense_response(expense, personal_share(record, current_user.id, resolver)))
    return result
