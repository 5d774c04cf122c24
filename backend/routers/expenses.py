"""Expenses router: create, read, update, delete expenses."""

from typing import Annotated, Literal, Optional
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

import models
import schemas
from database import get_db
from dependencies import get_current_user
from utils.balances import build_resolver, query_visible_expenses
from utils.display import expense_response
from utils.expense_service import save_expense
from utils.ledger import expense_record_from_model
from utils.participants import participant_to_column
from utils.shares import personal_share
from utils.splits import infer_split_form
from utils.validation import (
    get_expense_or_404,
    get_trip_or_404,
    validate_expense_participants,
    verify_can_add_expenses,
    verify_expense_access,
    verify_expense_owner,
)


router = APIRouter(tags=["expenses"])


def _validate_expense_form(db: Session, data: schemas.ExpenseCreate, user_id: int) -> None:
    if data.trip_id is not None:
        trip = get_trip_or_404(db, data.trip_id)
        verify_can_add_expenses(db, trip, user_id)

    if data.category_id is not None:
        category = db.query(models.Category).filter(
            models.Category.id == data.category_id,
            models.Category.user_id == user_id
        ).first()
        if not category:
            raise HTTPException(status_code=400, detail=f"Category with ID {data.category_id} not found")

    validate_expense_participants(
        db=db,
        user_id=user_id,
        payer_id=data.payer_id,
        friend_ids=data.friend_ids if data.is_split else [],
        trip_id=data.trip_id
    )


def _respond(db: Session, expense: models.Expense, viewer_id: int) -> schemas.Expense:
    record = expense_record_from_model(expense)
    resolver = build_resolver(db, viewer_id, [record])
    return expense_response(expense, personal_share(record, viewer_id, resolver))


@router.post("/expenses", response_model=schemas.Expense)
def create_expense(
    expense: schemas.ExpenseCreate,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    _validate_expense_form(db, expense, current_user.id)
    db_expense = save_expense(db, current_user, expense)
    return _respond(db, db_expense, current_user.id)


@router.get("/expenses", response_model=list[schemas.Expense])
def read_expenses(
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db),
    from_date: Optional[str] = None,
    to_date: Optional[str] = None,
    category_id: Optional[int] = None,
    exclude_trips: bool = False,
    trip_id: Optional[int] = None,
    payment_mode: Optional[Literal["cash", "online", "card"]] = None,
    search: Optional[str] = None,
    sort_by: Literal["date", "amount", "created_at"] = "date",
    sort_order: Literal["asc", "desc"] = "desc"
):
    """Expenses you own or share through a linked contact, filtered and sorted."""
    expenses = query_visible_expenses(db, current_user.id, personal_only=exclude_trips)

    def keep(e: models.Expense) -> bool:
        if from_date and (e.date or "") < from_date:
            return False
        if to_date and (e.date or "") > to_date:
            return False
        if category_id is not None and e.category_id != category_id:
            return False
        if trip_id is not None and e.trip_id != trip_id:
            return False
        if payment_mode and e.payment_mode != payment_mode:
            return False
        if search and search.lower() not in (e.title or "").lower():
            return False
        return True

    expenses = [e for e in expenses if keep(e)]

    # Secondary sort on creation time keeps ties stable
    expenses.sort(key=lambda e: (e.created_at, e.id), reverse=True)
    if sort_by == "date":
        expenses.sort(key=lambda e: e.date or "", reverse=(sort_order == "desc"))
    elif sort_by == "amount":
        expenses.sort(key=lambda e: e.amount or 0, reverse=(sort_order == "desc"))
    elif sort_order == "asc":
        expenses.reverse()

    records = [expense_record_from_model(e) for e in expenses]
    resolver = build_resolver(db, current_user.id, records)
    return [
        expense_response(expense, personal_share(record, current_user.id, resolver))
        for expense, record in zip(expenses, records)
    ]


@router.get("/expenses/{expense_id}", response_model=schemas.Expense)
def get_expense(
    expense_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    expense = get_expense_or_404(db, expense_id)
    verify_expense_access(db, expense, current_user.id)
    return _respond(db, expense, current_user.id)


@router.get("/expenses/{expense_id}/split_form", response_model=schemas.SplitFormState)
def get_expense_split_form(
    expense_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    """Split configuration of a stored expense, to prefill the edit form."""
    expense = get_expense_or_404(db, expense_id)
    verify_expense_owner(expense, current_user.id)

    form = infer_split_form(expense_record_from_model(expense))
    return schemas.SplitFormState(
        is_split=form.is_split,
        include_owner=form.include_owner,
        friend_ids=form.friend_ids,
        payer_id=participant_to_column(form.payer)
    )


@router.put("/expenses/{expense_id}", response_model=schemas.Expense)
def update_expense(
    expense_id: int,
    expense_update: schemas.ExpenseUpdate,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    expense = get_expense_or_404(db, expense_id)
    verify_expense_owner(expense, current_user.id)
    _validate_expense_form(db, expense_update, current_user.id)

    db_expense = save_expense(db, current_user, expense_update, expense=expense)
    return _respond(db, db_expense, current_user.id)


@router.delete("/expenses/{expense_id}")
def delete_expense(
    expense_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    expense = get_expense_or_404(db, expense_id)
    verify_expense_owner(expense, current_user.id)

    # Split rows go with the expense (delete-orphan cascade)
    db.delete(expense)
    db.commit()

    return {"message": "Expense deleted successfully"}
