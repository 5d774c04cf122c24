"""In-app notification payloads and best-effort delivery."""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import models
from utils.currency import DEFAULT_CURRENCY, format_currency
from utils.ledger import SplitRow
from utils.participants import FriendParticipant, IdentityResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationPayload:
    recipient_id: int
    title: str
    message: str
    type: str
    trip_id: Optional[int] = None
    sender_id: Optional[int] = None
    metadata: dict = field(default_factory=dict)


def split_notifications(
    rows: Iterable[SplitRow],
    resolver: IdentityResolver,
    title: str,
    expense_id: int,
    trip_id: Optional[int] = None,
    sender_id: Optional[int] = None
) -> List[NotificationPayload]:
    """One notification per row whose debtor is a friend with a linked account."""
    payloads = []
    for row in rows:
        if not isinstance(row.debtor, FriendParticipant):
            continue
        recipient_id = resolver.linked_user_id(row.debtor.friend_id)
        if recipient_id is None:
            continue

        if isinstance(row.creditor, FriendParticipant):
            creditor_name = resolver.display_name(row.creditor)
            if creditor_name == "Unknown":
                creditor_name = "someone"
            message = f"You owe {creditor_name} {row.share_amount:.2f} for {title}"
        else:
            message = f"You owe {row.share_amount:.2f} for {title}"

        payloads.append(NotificationPayload(
            recipient_id=recipient_id,
            title="New Expense Split",
            message=message,
            type="expense",
            trip_id=trip_id,
            sender_id=sender_id,
            metadata={"expense_id": expense_id, "amount": row.share_amount}
        ))
    return payloads


def settlement_notification(
    recipient_id: int,
    sender_name: Optional[str],
    amount: float,
    currency: str = DEFAULT_CURRENCY,
    trip_id: Optional[int] = None,
    sender_id: Optional[int] = None
) -> NotificationPayload:
    return NotificationPayload(
        recipient_id=recipient_id,
        title="Settlement Received",
        message=f"{sender_name or 'Friend'} recorded a payment of {format_currency(amount, currency)} to you.",
        type="settlement",
        trip_id=trip_id,
        sender_id=sender_id,
        metadata={"amount": amount, "currency": currency}
    )


def reminder_notification(
    recipient_id: int,
    sender_name: Optional[str],
    trip_name: str,
    amount: float,
    currency: str = DEFAULT_CURRENCY,
    trip_id: Optional[int] = None,
    sender_id: Optional[int] = None
) -> NotificationPayload:
    return NotificationPayload(
        recipient_id=recipient_id,
        title=f"Payment Reminder: {trip_name}",
        message=f"{sender_name or 'Your friend'} requested payment of {format_currency(amount, currency)}.",
        type="reminder",
        trip_id=trip_id,
        sender_id=sender_id,
        metadata={"amount": amount, "currency": currency}
    )


def enqueue_notifications(db: Session, payloads: Iterable[NotificationPayload]) -> bool:
    """
    Persist notifications in their own commit.

    Runs after the ledger write has been committed. A failure here is logged and
    rolled back without touching the ledger: losing a notification is acceptable.

    Returns:
        bool: True if every notification was stored
    """
    payloads = list(payloads)
    if not payloads:
        return True

    try:
        for payload in payloads:
            db.add(models.Notification(
                user_id=payload.recipient_id,
                sender_id=payload.sender_id,
                trip_id=payload.trip_id,
                title=payload.title,
                message=payload.message,
                type=payload.type,
                details=payload.metadata
            ))
        db.commit()
        return True
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to enqueue {len(payloads)} notification(s): {e}")
        return False
