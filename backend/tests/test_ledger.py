import logging
from types import SimpleNamespace

import pytest

from utils.ledger import MalformedSplitRowError, SplitRow, expense_record_from_model
from utils.participants import (
    SELF,
    AccountParticipant,
    FriendIdentity,
    FriendParticipant,
    IdentityResolver,
    participant_from_column,
    participant_to_column,
)
from utils.shares import personal_share


def split(id, friend_id, owed_to_friend_id, share_amount):
    return SimpleNamespace(id=id, friend_id=friend_id, owed_to_friend_id=owed_to_friend_id, share_amount=share_amount)


def stored_expense(splits, payer_id=None, amount=100):
    return SimpleNamespace(
        id=5,
        user_id=1,
        amount=amount,
        payer_id=payer_id,
        splits=splits,
        trip_id=None,
        is_settlement=False,
        category_id=None,
        date="2024-01-15",
        title="Dinner"
    )


@pytest.mark.parametrize("debtor, creditor, share", [
    (SELF, SELF, 10),
    (FriendParticipant(3), FriendParticipant(3), 10),
    (FriendParticipant(3), SELF, -1),
    (FriendParticipant(3), SELF, float("inf")),
    (FriendParticipant(3), SELF, float("nan")),
])
def test_split_row_rejects_malformed(debtor, creditor, share):
    with pytest.raises(MalformedSplitRowError):
        SplitRow(debtor, creditor, share)

def test_split_row_between_friends_is_allowed():
    row = SplitRow(FriendParticipant(3), FriendParticipant(4), 10)
    assert row.share_amount == 10

def test_stored_rows_map_null_to_owner():
    record = expense_record_from_model(stored_expense([split(1, 3, None, 50)]))
    assert record.payer == SELF
    assert record.splits == (SplitRow(FriendParticipant(3), SELF, 50),)
    assert record.owner_id == 1

def test_malformed_stored_rows_are_dropped(caplog):
    expense = stored_expense([split(1, 3, None, 50), split(2, None, None, 50)])
    with caplog.at_level(logging.WARNING):
        record = expense_record_from_model(expense)

    assert len(record.splits) == 1
    assert "malformed split row 2" in caplog.text
    # The dropped row contributes nothing
    assert personal_share(record) == 50


def test_participant_columns():
    assert participant_from_column(None) == SELF
    assert participant_from_column(4) == FriendParticipant(4)
    assert participant_to_column(SELF) is None
    assert participant_to_column(FriendParticipant(4)) == 4
    with pytest.raises(ValueError):
        participant_to_column(AccountParticipant(9))


def resolver():
    return IdentityResolver(
        friends=[
            FriendIdentity(friend_id=10, owner_id=1, name="Alice", linked_user_id=2),
            FriendIdentity(friend_id=11, owner_id=1, name="Bob"),
        ],
        viewer_id=1,
        account_names={2: "Alice A."}
    )

def test_identity_keys():
    r = resolver()
    assert r.identity_key(SELF, 1) == ("user", 1)
    assert r.identity_key(SELF, 2) == ("user", 2)
    assert r.identity_key(SELF, None) == ("user", 1)
    assert r.identity_key(FriendParticipant(10), 1) == ("user", 2)
    assert r.identity_key(FriendParticipant(11), 1) == ("friend", 11)
    assert r.identity_key(AccountParticipant(7), 1) == ("user", 7)

def test_participant_for_key_prefers_my_contact():
    r = resolver()
    assert r.participant_for_key(("user", 1)) == SELF
    assert r.participant_for_key(("user", 2)) == FriendParticipant(10)
    assert r.participant_for_key(("user", 3)) == AccountParticipant(3)
    assert r.participant_for_key(("friend", 11)) == FriendParticipant(11)

def test_display_names():
    r = resolver()
    assert r.display_name(SELF) == "You"
    assert r.display_name(FriendParticipant(11)) == "Bob"
    assert r.display_name(FriendParticipant(99)) == "Unknown"
    assert r.display_name(AccountParticipant(2)) == "Alice A."
    assert r.display_name(AccountParticipant(8)) == "User 8"

def test_resolves_to():
    r = resolver()
    assert r.resolves_to(10, 2)
    assert not r.resolves_to(11, 2)
    assert not r.resolves_to(None, 2)
