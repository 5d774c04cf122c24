"""Debt simplification: turn net balances into a short list of transfers."""

from datetime import date
from typing import Dict, List, Optional

from utils.ledger import EPSILON, Balance, SettlementTransfer
from utils.participants import FriendParticipant, Participant, SelfParticipant
from utils.splits import SplitForm


def minimize_settlements(balances: Dict[Participant, Balance]) -> List[SettlementTransfer]:
    """
    Greedily match the largest debtor against the largest creditor.

    Produces at most n-1 transfers for n unsettled participants. Ties keep the
    insertion order of the balance map. An already settled group yields [].
    """
    debtors = []
    creditors = []

    for participant, entry in balances.items():
        amount = entry.balance
        if amount < -EPSILON:
            debtors.append({'participant': participant, 'amount': amount})
        elif amount > EPSILON:
            creditors.append({'participant': participant, 'amount': amount})

    debtors.sort(key=lambda x: x['amount'])
    creditors.sort(key=lambda x: x['amount'], reverse=True)

    transfers = []
    i = 0
    j = 0

    while i < len(debtors) and j < len(creditors):
        debtor = debtors[i]
        creditor = creditors[j]

        amount = min(abs(debtor['amount']), creditor['amount'])

        if amount > EPSILON:
            transfers.append(SettlementTransfer(
                debtor=debtor['participant'],
                creditor=creditor['participant'],
                amount=amount
            ))

        debtor['amount'] += amount
        creditor['amount'] -= amount

        if abs(debtor['amount']) < EPSILON:
            i += 1
        if abs(creditor['amount']) < EPSILON:
            j += 1

    return transfers


def settlement_form(transfer: SettlementTransfer) -> SplitForm:
    """
    Split configuration that records a confirmed transfer in the ledger.

    The paying debtor is the payer and the creditor is the only participant,
    so the creditor ends up owing back exactly what they were owed.
    """
    creditor = transfer.creditor
    return SplitForm(
        is_split=True,
        include_owner=isinstance(creditor, SelfParticipant),
        friend_ids=[creditor.friend_id] if isinstance(creditor, FriendParticipant) else [],
        payer=transfer.debtor,
        total=transfer.amount
    )


def settlement_expense_fields(
    transfer: SettlementTransfer,
    trip_id: Optional[int],
    currency: str,
    on_date: Optional[date] = None
) -> dict:
    """Expense columns for a settlement-flagged payment of debt."""
    return {
        "title": "Settlement",
        "amount": transfer.amount,
        "currency": currency,
        "date": (on_date or date.today()).isoformat(),
        "category_id": None,
        "note": None,
        "is_recurring": False,
        "recurring_frequency": None,
        "trip_id": trip_id,
        "payment_mode": "online",
        "is_settlement": True
    }
