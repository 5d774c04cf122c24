"""Trips router: trip ledgers and their members."""

from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

import models
import schemas
from database import get_db
from dependencies import get_current_user
from utils.balances import build_resolver
from utils.ledger import expense_record_from_model
from utils.display import expense_response
from utils.shares import personal_share
from utils.validation import (
    get_user_by_email,
    verify_trip_access,
    verify_trip_manager,
)


router = APIRouter(prefix="/trips", tags=["trips"])


def _member_response(member: models.TripMember) -> schemas.TripMember:
    friend = member.friend
    return schemas.TripMember(
        id=member.id,
        trip_id=member.trip_id,
        friend_id=member.friend_id,
        user_id=member.user_id,
        email=member.email,
        role=member.role or "viewer",
        can_add_expenses=bool(member.can_add_expenses),
        name=(friend.name if friend else None) or member.email or "Unknown"
    )


@router.post("", response_model=schemas.Trip)
def create_trip(
    trip: schemas.TripCreate,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    db_trip = models.Trip(
        user_id=current_user.id,
        name=trip.name,
        budget=trip.budget,
        start_date=trip.start_date,
        end_date=trip.end_date,
        currency=trip.currency
    )
    db.add(db_trip)
    db.commit()
    db.refresh(db_trip)
    return db_trip


@router.get("", response_model=list[schemas.Trip])
def read_trips(
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    member_trip_ids = db.query(models.TripMember.trip_id).filter(
        models.TripMember.user_id == current_user.id
    )
    return db.query(models.Trip).filter(
        (models.Trip.user_id == current_user.id) | (models.Trip.id.in_(member_trip_ids))
    ).order_by(models.Trip.created_at.desc(), models.Trip.id.desc()).all()


@router.get("/{trip_id}", response_model=schemas.TripWithMembers)
def read_trip(
    trip_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    trip, role = verify_trip_access(db, trip_id, current_user.id)
    members = db.query(models.TripMember).filter(
        models.TripMember.trip_id == trip.id
    ).order_by(models.TripMember.id).all()

    return schemas.TripWithMembers(
        id=trip.id,
        user_id=trip.user_id,
        name=trip.name,
        budget=trip.budget,
        start_date=trip.start_date,
        end_date=trip.end_date,
        currency=trip.currency,
        members=[_member_response(m) for m in members],
        role=role
    )


@router.post("/{trip_id}/members", response_model=schemas.TripMember)
def add_trip_member(
    trip_id: int,
    member: schemas.TripMemberCreate,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    """Invite someone by email, reusing or creating the trip owner's contact for them."""
    trip, _ = verify_trip_access(db, trip_id, current_user.id)
    verify_trip_manager(db, trip, current_user.id)

    registered = get_user_by_email(db, member.email)
    if registered and registered.id == trip.user_id:
        raise HTTPException(status_code=400, detail="The trip owner is already part of the trip")

    friend = db.query(models.Friend).filter(
        models.Friend.user_id == trip.user_id,
        models.Friend.email == member.email
    ).first()
    if not friend:
        friend = models.Friend(
            user_id=trip.user_id,
            name=member.name or member.email.split("@")[0],
            email=member.email,
            linked_user_id=registered.id if registered else None
        )
        db.add(friend)
        db.commit()
        db.refresh(friend)

    existing = db.query(models.TripMember).filter(
        models.TripMember.trip_id == trip.id,
        models.TripMember.friend_id == friend.id
    ).first()
    if existing:
        raise HTTPException(status_code=400, detail="This member is already in the trip")

    db_member = models.TripMember(
        trip_id=trip.id,
        friend_id=friend.id,
        user_id=friend.linked_user_id,
        email=member.email,
        role=member.role,
        can_add_expenses=member.can_add_expenses
    )
    db.add(db_member)
    db.commit()
    db.refresh(db_member)
    return _member_response(db_member)


@router.put("/{trip_id}/members/{member_id}", response_model=schemas.TripMember)
def update_trip_member(
    trip_id: int,
    member_id: int,
    update: schemas.TripMemberUpdate,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    trip, _ = verify_trip_access(db, trip_id, current_user.id)
    verify_trip_manager(db, trip, current_user.id)

    member = db.query(models.TripMember).filter(
        models.TripMember.id == member_id,
        models.TripMember.trip_id == trip.id
    ).first()
    if not member:
        raise HTTPException(status_code=404, detail="Member not found")

    member.role = update.role
    member.can_add_expenses = update.can_add_expenses
    db.commit()
    db.refresh(member)
    return _member_response(member)


@router.get("/{trip_id}/expenses", response_model=list[schemas.Expense])
def get_trip_expenses(
    trip_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    trip, _ = verify_trip_access(db, trip_id, current_user.id)

    expenses = db.query(models.Expense).filter(
        models.Expense.trip_id == trip.id
    ).order_by(models.Expense.date.desc(), models.Expense.id.desc()).all()
    records = [expense_record_from_model(e) for e in expenses]
    resolver = build_resolver(db, current_user.id, records)

    return [
        expense_response(expense, personal_share(record, current_user.id, resolver))
        for expense, record in zip(expenses, records)
    ]
