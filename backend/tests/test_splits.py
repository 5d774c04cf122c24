import pytest

from utils.balances import aggregate_balances
from utils.ledger import ExpenseRecord, SplitRow
from utils.participants import SELF, FriendParticipant
from utils.shares import personal_share
from utils.splits import SplitForm, build_split_rows, infer_split_form

A = FriendParticipant(10)
B = FriendParticipant(11)
C = FriendParticipant(12)


def record_for(form):
    return ExpenseRecord(
        id=1,
        owner_id=1,
        amount=form.total,
        payer=form.payer,
        splits=tuple(build_split_rows(form))
    )


@pytest.mark.parametrize("form", [
    SplitForm(is_split=False, include_owner=True, friend_ids=[10], total=100),
    SplitForm(is_split=True, include_owner=False, friend_ids=[], total=100),
    SplitForm(is_split=True, include_owner=True, friend_ids=[10], total=0),
    SplitForm(is_split=True, include_owner=True, friend_ids=[10], total=-20),
])
def test_no_rows(form):
    assert build_split_rows(form) == []

def test_owner_paid_with_one_friend():
    rows = build_split_rows(SplitForm(is_split=True, include_owner=True, friend_ids=[10], total=100))
    assert rows == [SplitRow(A, SELF, 50)]

def test_owner_paid_for_three_friends():
    rows = build_split_rows(SplitForm(is_split=True, include_owner=False, friend_ids=[10, 11, 12], total=300))
    assert rows == [SplitRow(A, SELF, 100), SplitRow(B, SELF, 100), SplitRow(C, SELF, 100)]

def test_friend_paid_owner_included():
    rows = build_split_rows(SplitForm(is_split=True, include_owner=True, friend_ids=[10, 11], payer=A, total=90))
    assert rows == [SplitRow(B, A, 30), SplitRow(SELF, A, 30)]

def test_duplicate_friends_are_counted_once():
    rows = build_split_rows(SplitForm(is_split=True, include_owner=True, friend_ids=[10, 10], total=100))
    assert rows == [SplitRow(A, SELF, 50)]

def test_identical_forms_give_identical_rows():
    form = SplitForm(is_split=True, include_owner=True, friend_ids=[11, 10, 12], payer=B, total=77.7)
    assert set(build_split_rows(form)) == set(build_split_rows(form))

@pytest.mark.parametrize("form, expected", [
    (SplitForm(is_split=True, include_owner=True, friend_ids=[10], total=100), {SELF: 50, A: 50}),
    (SplitForm(is_split=True, include_owner=False, friend_ids=[10, 11], total=60), {SELF: 0, A: 30, B: 30}),
    (SplitForm(is_split=True, include_owner=True, friend_ids=[10, 11], payer=A, total=90), {SELF: 30, A: 30, B: 30}),
    (SplitForm(is_split=True, include_owner=False, friend_ids=[10, 11], payer=B, total=50), {SELF: 0, A: 25, B: 25}),
])
def test_aggregated_shares_match_form(form, expected):
    balances = aggregate_balances([record_for(form)], list(expected))
    for participant, share in expected.items():
        assert balances[participant].share == pytest.approx(share)

def test_owner_share_matches_form():
    form = SplitForm(is_split=True, include_owner=True, friend_ids=[10, 11], payer=A, total=90)
    assert personal_share(record_for(form)) == pytest.approx(30)


def test_infer_unsplit_expense():
    form = infer_split_form(ExpenseRecord(id=1, owner_id=1, amount=40, payer=SELF))
    assert form.is_split is False
    assert form.friend_ids == []

@pytest.mark.parametrize("form", [
    SplitForm(is_split=True, include_owner=True, friend_ids=[10, 11], total=90),
    SplitForm(is_split=True, include_owner=False, friend_ids=[10, 11], total=90),
    SplitForm(is_split=True, include_owner=True, friend_ids=[10, 11], payer=A, total=90),
    SplitForm(is_split=True, include_owner=False, friend_ids=[10, 11], payer=A, total=90),
    SplitForm(is_split=True, include_owner=True, friend_ids=[11], payer=A, total=90),
])
def test_infer_recovers_the_form(form):
    inferred = infer_split_form(record_for(form))
    assert inferred.is_split is True
    assert inferred.include_owner == form.include_owner
    assert inferred.payer == form.payer
    assert build_split_rows(inferred) and set(build_split_rows(inferred)) == set(build_split_rows(form))
