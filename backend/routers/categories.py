"""Categories router: spending categories and budgets."""

from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

import models
import schemas
from database import get_db
from dependencies import get_current_user


router = APIRouter(tags=["categories"])


def _get_own_category(db: Session, category_id: int, user_id: int):
    return db.query(models.Category).filter(
        models.Category.id == category_id,
        models.Category.user_id == user_id
    ).first()


@router.post("/categories", response_model=schemas.Category)
def create_category(
    category: schemas.CategoryCreate,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    if category.parent_id is not None:
        parent = _get_own_category(db, category.parent_id, current_user.id)
        if not parent:
            raise HTTPException(status_code=400, detail="Parent category not found")
        # Only one level of nesting
        if parent.parent_id is not None:
            raise HTTPException(status_code=400, detail="Sub-categories cannot have children")

    db_category = models.Category(
        user_id=current_user.id,
        name=category.name,
        parent_id=category.parent_id
    )
    db.add(db_category)
    db.commit()
    db.refresh(db_category)
    return db_category


@router.get("/categories", response_model=list[schemas.Category])
def read_categories(
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    return db.query(models.Category).filter(
        models.Category.user_id == current_user.id
    ).order_by(models.Category.name, models.Category.id).all()


@router.post("/budgets", response_model=schemas.Budget)
def create_budget(
    budget: schemas.BudgetCreate,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    if budget.category_id is not None and not _get_own_category(db, budget.category_id, current_user.id):
        raise HTTPException(status_code=400, detail=f"Category with ID {budget.category_id} not found")

    db_budget = models.Budget(
        user_id=current_user.id,
        category_id=budget.category_id,
        amount=budget.amount,
        period=budget.period
    )
    db.add(db_budget)
    db.commit()
    db.refresh(db_budget)
    return db_budget


@router.get("/budgets", response_model=list[schemas.Budget])
def read_budgets(
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    return db.query(models.Budget).filter(
        models.Budget.user_id == current_user.id
    ).order_by(models.Budget.id).all()


@router.delete("/budgets/{budget_id}")
def delete_budget(
    budget_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    budget = db.query(models.Budget).filter(
        models.Budget.id == budget_id,
        models.Budget.user_id == current_user.id
    ).first()
    if not budget:
        raise HTTPException(status_code=404, detail="Budget not found")

    db.delete(budget)
    db.commit()
    return {"message": "Budget deleted successfully"}
