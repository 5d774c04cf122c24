"""Expense write path: upsert the expense and replace its split rows in one transaction."""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import models
import schemas
from utils.balances import build_resolver
from utils.notifications import enqueue_notifications, split_notifications
from utils.participants import participant_from_column, participant_to_column
from utils.splits import SplitForm, build_split_rows

logger = logging.getLogger(__name__)


def normalize_date(date_str: str) -> str:
    """Normalize date string to YYYY-MM-DD format for consistent sorting."""
    if not date_str:
        return date_str
    # If it's already YYYY-MM-DD format, return as-is
    if len(date_str) == 10 and date_str[4] == '-' and date_str[7] == '-':
        return date_str
    # Handle ISO format with time component (e.g., 2025-12-27T00:00:00.000Z)
    if 'T' in date_str:
        return date_str.split('T')[0]
    return date_str


def split_form_from_schema(data: schemas.ExpenseCreate) -> SplitForm:
    return SplitForm(
        is_split=data.is_split,
        include_owner=data.include_owner,
        friend_ids=list(data.friend_ids),
        payer=participant_from_column(data.payer_id),
        total=data.amount
    )


def expense_fields_from_schema(data: schemas.ExpenseCreate) -> dict:
    return {
        "title": data.title,
        "amount": data.amount,
        "currency": data.currency,
        "date": data.date,
        "category_id": data.category_id,
        "note": data.note or None,
        "is_recurring": data.is_recurring,
        "recurring_frequency": data.recurring_frequency if data.is_recurring else None,
        "trip_id": data.trip_id,
        "payment_mode": data.payment_mode or "cash",
        "is_settlement": data.is_settlement
    }


def record_expense(
    db: Session,
    owner_id: int,
    fields: dict,
    form: SplitForm,
    expense: Optional[models.Expense] = None,
    notify: bool = True
) -> models.Expense:
    """
    Create or update an expense and replace all of its split rows.

    The expense and its rows are committed together; on failure the session is
    rolled back so old and new rows are never mixed. Split notifications are
    enqueued only after the commit and cannot undo it.
    """
    rows = build_split_rows(form)
    fields = dict(fields, date=normalize_date(fields["date"]))

    try:
        if expense is None:
            expense = models.Expense(user_id=owner_id, **fields)
            db.add(expense)
        else:
            for name, value in fields.items():
                setattr(expense, name, value)

        expense.payer_id = participant_to_column(form.payer)
        # Assigning the collection deletes the previous rows (delete-orphan cascade)
        expense.splits = [
            models.ExpenseSplit(
                friend_id=participant_to_column(row.debtor),
                owed_to_friend_id=participant_to_column(row.creditor),
                share_amount=row.share_amount
            )
            for row in rows
        ]
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"Failed to save expense for user {owner_id}")
        raise

    db.refresh(expense)

    if notify and rows:
        friend_ids = set(form.friend_ids)
        if expense.payer_id is not None:
            friend_ids.add(expense.payer_id)
        resolver = build_resolver(db, owner_id, extra_friend_ids=friend_ids)
        enqueue_notifications(db, split_notifications(
            rows,
            resolver,
            title=expense.title,
            expense_id=expense.id,
            trip_id=expense.trip_id,
            sender_id=owner_id
        ))

    return expense


def save_expense(
    db: Session,
    owner: models.User,
    data: schemas.ExpenseCreate,
    expense: Optional[models.Expense] = None
) -> models.Expense:
    """Persist an expense form: one expense upsert plus a full replace of its split rows."""
    return record_expense(
        db,
        owner.id,
        expense_fields_from_schema(data),
        split_form_from_schema(data),
        expense=expense,
        notify=not data.is_settlement
    )
