"""Analytics router: dashboard summary and budget usage from personal shares."""

from datetime import date
from typing import Annotated, Optional
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

import models
import schemas
from database import get_db
from dependencies import get_current_user
from utils.analytics import (
    BudgetInfo,
    CategoryInfo,
    budget_usage,
    categories_used,
    category_breakdown,
    in_month,
    monthly_total,
    monthly_trend,
)
from utils.balances import build_resolver, query_visible_expenses
from utils.ledger import expense_record_from_model
from utils.shares import personal_share


router = APIRouter(tags=["analytics"])


def _load_context(db: Session, user_id: int):
    expenses = query_visible_expenses(db, user_id, personal_only=False)
    records = [expense_record_from_model(e) for e in expenses]
    resolver = build_resolver(db, user_id, records)

    categories = {
        c.id: CategoryInfo(id=c.id, name=c.name, parent_id=c.parent_id)
        for c in db.query(models.Category).filter(models.Category.user_id == user_id).all()
    }

    def share_of(record):
        return personal_share(record, user_id, resolver)

    return records, categories, share_of


def _budget_usage(db: Session, user_id: int, records, categories, share_of, month: str):
    budgets = [
        BudgetInfo(id=b.id, amount=b.amount, category_id=b.category_id)
        for b in db.query(models.Budget).filter(
            models.Budget.user_id == user_id
        ).order_by(models.Budget.id).all()
    ]
    usage = budget_usage(budgets, in_month(records, month), categories, share_of)
    return [
        schemas.BudgetUsage(
            budget_id=budget.id,
            category_id=budget.category_id,
            name=categories[budget.category_id].name if budget.category_id in categories else "Overall",
            amount=budget.amount,
            spent=spent
        )
        for budget, spent in usage
    ]


def _category_name(category_id: Optional[int], categories) -> str:
    category = categories.get(category_id)
    return category.name if category else "Uncategorized"


@router.get("/dashboard", response_model=schemas.DashboardSummary)
def get_dashboard(
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db),
    category_id: Optional[int] = None
):
    """
    Spending summary for the current month.

    Every figure uses your personal share, so a split dinner counts only your
    part of it. Settlements are payments of debt and never count as spending.
    With category_id, the breakdown lists that category's sub-categories.
    """
    records, categories, share_of = _load_context(db, current_user.id)
    if category_id is not None and category_id not in categories:
        raise HTTPException(status_code=404, detail="Category not found")

    today = date.today()
    month = today.strftime("%Y-%m")
    this_month = in_month(records, month)

    budgets = _budget_usage(db, current_user.id, records, categories, share_of, month)

    return schemas.DashboardSummary(
        total_this_month=monthly_total(records, month, share_of),
        categories_used_count=categories_used(this_month, categories, share_of),
        total_monthly_budget=sum(b.amount for b in budgets),
        category_breakdown=[
            schemas.CategorySpend(category_id=cid, name=_category_name(cid, categories), value=value)
            for cid, value in category_breakdown(this_month, categories, share_of, parent_id=category_id)
        ],
        budget_usage=budgets,
        trend=[
            schemas.MonthlySpend(month=m, amount=amount)
            for m, amount in monthly_trend(records, share_of, today)
        ]
    )


@router.get("/budgets/usage", response_model=list[schemas.BudgetUsage])
def get_budget_usage(
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db),
    month: Optional[str] = None
):
    """Spent amount against each budget for one month (YYYY-MM, default current)."""
    month = month or date.today().strftime("%Y-%m")
    records, categories, share_of = _load_context(db, current_user.id)
    return _budget_usage(db, current_user.id, records, categories, share_of, month)
