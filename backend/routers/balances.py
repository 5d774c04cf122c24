"""Balances router: trip balances, debt simplification, settling up and reminders."""

import logging
from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

import models
import schemas
from database import get_db
from dependencies import get_current_user
from utils.balances import build_resolver, calculate_trip_balances
from utils.display import expense_response, get_user_display_name, participant_ref
from utils.expense_service import record_expense
from utils.ledger import SettlementTransfer, expense_record_from_model
from utils.notifications import enqueue_notifications, reminder_notification, settlement_notification
from utils.participants import FriendParticipant, participant_from_column
from utils.rate_limiter import reminder_rate_limiter
from utils.settlements import minimize_settlements, settlement_expense_fields, settlement_form
from utils.shares import personal_share
from utils.validation import (
    validate_expense_participants,
    verify_can_add_expenses,
    verify_trip_access,
)

logger = logging.getLogger(__name__)


router = APIRouter(tags=["balances"])


@router.get("/trips/{trip_id}/balances", response_model=list[schemas.MemberBalance])
def get_trip_balances(
    trip_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    """Paid, share and net balance of every trip member, yourself first."""
    trip, _ = verify_trip_access(db, trip_id, current_user.id)
    balances, resolver = calculate_trip_balances(db, trip, current_user.id)

    return [
        schemas.MemberBalance(
            participant=participant_ref(participant, resolver),
            paid=entry.paid,
            share=entry.share,
            balance=entry.balance
        )
        for participant, entry in balances.items()
    ]


@router.get("/trips/{trip_id}/settlements", response_model=list[schemas.Settlement])
def get_trip_settlements(
    trip_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    """Suggested transfers that settle the whole trip, in the trip's currency."""
    trip, _ = verify_trip_access(db, trip_id, current_user.id)
    balances, resolver = calculate_trip_balances(db, trip, current_user.id)

    return [
        schemas.Settlement(
            debtor=participant_ref(transfer.debtor, resolver),
            creditor=participant_ref(transfer.creditor, resolver),
            amount=transfer.amount,
            currency=trip.currency
        )
        for transfer in minimize_settlements(balances)
    ]


@router.post("/trips/{trip_id}/settle", response_model=schemas.Expense)
def settle_up(
    trip_id: int,
    request: schemas.SettleUpRequest,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    """
    Record a confirmed transfer as a settlement expense.

    The debtor is recorded as the payer and the creditor as the only split
    participant. Missing friend ids stand for yourself.
    """
    trip, _ = verify_trip_access(db, trip_id, current_user.id)
    verify_can_add_expenses(db, trip, current_user.id)

    if request.from_friend_id == request.to_friend_id:
        raise HTTPException(status_code=400, detail="Payer and receiver must be different")

    validate_expense_participants(
        db=db,
        user_id=current_user.id,
        payer_id=request.from_friend_id,
        friend_ids=[request.to_friend_id] if request.to_friend_id is not None else [],
        trip_id=trip.id
    )

    transfer = SettlementTransfer(
        debtor=participant_from_column(request.from_friend_id),
        creditor=participant_from_column(request.to_friend_id),
        amount=request.amount
    )
    expense = record_expense(
        db,
        current_user.id,
        settlement_expense_fields(transfer, trip.id, trip.currency),
        settlement_form(transfer),
        notify=False
    )
    logger.info(f"Recorded settlement of {request.amount:.2f} on trip {trip.id} (expense {expense.id})")

    if isinstance(transfer.creditor, FriendParticipant):
        resolver = build_resolver(db, current_user.id, extra_friend_ids=[transfer.creditor.friend_id])
        recipient_id = resolver.linked_user_id(transfer.creditor.friend_id)
        if recipient_id is not None and recipient_id != current_user.id:
            enqueue_notifications(db, [settlement_notification(
                recipient_id,
                get_user_display_name(current_user),
                request.amount,
                currency=trip.currency,
                trip_id=trip.id,
                sender_id=current_user.id
            )])

    record = expense_record_from_model(expense)
    resolver = build_resolver(db, current_user.id, [record])
    return expense_response(expense, personal_share(record, current_user.id, resolver))


@router.post("/trips/{trip_id}/remind", dependencies=[Depends(reminder_rate_limiter)])
def send_reminder(
    trip_id: int,
    request: schemas.ReminderRequest,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    """Ask a trip member with a linked account to pay what they owe."""
    trip, _ = verify_trip_access(db, trip_id, current_user.id)

    member = db.query(models.TripMember).filter(
        models.TripMember.trip_id == trip.id,
        models.TripMember.friend_id == request.friend_id
    ).first()
    if not member:
        raise HTTPException(status_code=404, detail="Member not found")

    recipient_id = member.user_id
    if recipient_id is None and member.friend:
        recipient_id = member.friend.linked_user_id
    if recipient_id is None:
        raise HTTPException(status_code=400, detail="This member has not joined the app yet")

    delivered = enqueue_notifications(db, [reminder_notification(
        recipient_id,
        get_user_display_name(current_user),
        trip.name,
        request.amount,
        currency=trip.currency,
        trip_id=trip.id,
        sender_id=current_user.id
    )])
    if not delivered:
        raise HTTPException(status_code=500, detail="Failed to send reminder")

    return {"message": "Reminder sent"}
