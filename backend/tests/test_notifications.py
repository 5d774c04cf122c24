from unittest.mock import Mock

from sqlalchemy.exc import OperationalError

from models import Notification
from utils.ledger import SplitRow
from utils.notifications import (
    enqueue_notifications,
    reminder_notification,
    settlement_notification,
    split_notifications,
)
from utils.participants import SELF, FriendIdentity, FriendParticipant, IdentityResolver

A = FriendParticipant(10)
B = FriendParticipant(11)


def resolver():
    return IdentityResolver(
        friends=[
            FriendIdentity(friend_id=10, owner_id=1, name="Alice", linked_user_id=2),
            FriendIdentity(friend_id=11, owner_id=1, name="Bob", linked_user_id=3),
            FriendIdentity(friend_id=12, owner_id=1, name="Carol"),
        ],
        viewer_id=1
    )


def test_one_notification_per_linked_debtor():
    rows = [SplitRow(A, SELF, 25), SplitRow(FriendParticipant(12), SELF, 25)]
    payloads = split_notifications(rows, resolver(), title="Dinner", expense_id=7, sender_id=1)

    assert len(payloads) == 1
    assert payloads[0].recipient_id == 2
    assert payloads[0].title == "New Expense Split"
    assert payloads[0].message == "You owe 25.00 for Dinner"
    assert payloads[0].metadata == {"expense_id": 7, "amount": 25}

def test_message_names_a_friend_creditor():
    rows = [SplitRow(B, A, 30), SplitRow(SELF, A, 30)]
    payloads = split_notifications(rows, resolver(), title="Taxi", expense_id=8, trip_id=4)

    assert [p.recipient_id for p in payloads] == [3]
    assert payloads[0].message == "You owe Alice 30.00 for Taxi"
    assert payloads[0].trip_id == 4

def test_settlement_and_reminder_messages():
    settled = settlement_notification(2, "Test User", 50, currency="USD")
    assert settled.title == "Settlement Received"
    assert settled.message == "Test User recorded a payment of $50.00 to you."

    reminder = reminder_notification(2, None, "Goa", 120, currency="INR", trip_id=3)
    assert reminder.title == "Payment Reminder: Goa"
    assert reminder.message == "Your friend requested payment of ₹120.00."
    assert reminder.type == "reminder"


def test_enqueue_persists_notifications(db_session, test_user, other_user):
    payload = settlement_notification(other_user.id, "Test User", 10, sender_id=test_user.id)
    assert enqueue_notifications(db_session, [payload]) is True

    stored = db_session.query(Notification).filter(Notification.user_id == other_user.id).all()
    assert len(stored) == 1
    assert stored[0].details["amount"] == 10
    assert stored[0].is_read is False

def test_enqueue_nothing_is_a_no_op():
    db = Mock()
    assert enqueue_notifications(db, []) is True
    db.commit.assert_not_called()

def test_enqueue_failure_is_rolled_back_and_reported(caplog):
    db = Mock()
    db.commit.side_effect = OperationalError("INSERT", {}, Exception("database is locked"))

    assert enqueue_notifications(db, [settlement_notification(2, "Test User", 10)]) is False
    db.rollback.assert_called_once()
    assert "Failed to enqueue 1 notification(s)" in caplog.text
