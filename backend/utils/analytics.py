"""Spending analytics built on each expense's personal share."""

from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from utils.ledger import ExpenseRecord

ShareOf = Callable[[ExpenseRecord], float]


@dataclass(frozen=True)
class CategoryInfo:
    id: int
    name: str
    parent_id: Optional[int] = None


@dataclass(frozen=True)
class BudgetInfo:
    id: int
    amount: float
    category_id: Optional[int] = None


def month_key(value: Optional[str]) -> Optional[str]:
    """YYYY-MM prefix of an ISO date string."""
    if not value or len(value) < 7:
        return None
    return value[:7]


def shift_month(day: date, months: int) -> str:
    index = day.year * 12 + (day.month - 1) + months
    return f"{index // 12:04d}-{index % 12 + 1:02d}"


def spending(expenses: Iterable[ExpenseRecord]) -> List[ExpenseRecord]:
    """Settlement-flagged expenses are payments of debt, not spending."""
    return [e for e in expenses if not e.is_settlement]


def in_month(expenses: Iterable[ExpenseRecord], month: str) -> List[ExpenseRecord]:
    return [e for e in expenses if month_key(e.date) == month]


def monthly_total(expenses: Iterable[ExpenseRecord], month: str, share_of: ShareOf) -> float:
    return sum(share_of(e) for e in in_month(spending(expenses), month))


def _known_category(category_id: Optional[int], categories: Dict[int, CategoryInfo]) -> Optional[int]:
    return category_id if category_id in categories else None


def category_breakdown(
    expenses: Iterable[ExpenseRecord],
    categories: Dict[int, CategoryInfo],
    share_of: ShareOf,
    parent_id: Optional[int] = None
) -> List[Tuple[Optional[int], float]]:
    """
    Personal spending per category, in first-seen order.

    Without parent_id, sub-categories roll up into their parent. With parent_id,
    only that category and its sub-categories are counted, grouped by themselves.
    None stands for uncategorized spending.
    """
    totals: Dict[Optional[int], float] = {}
    for expense in spending(expenses):
        amount = share_of(expense)
        if amount <= 0:
            continue
        category_id = _known_category(expense.category_id, categories)
        category = categories.get(category_id)

        if parent_id is None:
            key = category.parent_id if category and category.parent_id else category_id
        else:
            if category_id != parent_id and (not category or category.parent_id != parent_id):
                continue
            key = category_id

        totals[key] = totals.get(key, 0.0) + amount
    return list(totals.items())


def categories_used(expenses: Iterable[ExpenseRecord], categories: Dict[int, CategoryInfo], share_of: ShareOf) -> int:
    used = {
        _known_category(e.category_id, categories)
        for e in spending(expenses)
        if share_of(e) > 0
    }
    return len(used)


def budget_usage(
    budgets: Iterable[BudgetInfo],
    expenses: Iterable[ExpenseRecord],
    categories: Dict[int, CategoryInfo],
    share_of: ShareOf
) -> List[Tuple[BudgetInfo, float]]:
    """
    Spent amount against each budget.

    An overall budget (no category) counts all spending. A category budget counts
    the category and its direct sub-categories.
    """
    expenses = spending(expenses)
    by_category: Dict[Optional[int], float] = {}
    overall = 0.0
    for expense in expenses:
        amount = share_of(expense)
        overall += amount
        category_id = _known_category(expense.category_id, categories)
        by_category[category_id] = by_category.get(category_id, 0.0) + amount

    usage = []
    for budget in budgets:
        if budget.category_id is None:
            spent = overall
        else:
            spent = by_category.get(budget.category_id, 0.0)
            for category in categories.values():
                if category.parent_id == budget.category_id:
                    spent += by_category.get(category.id, 0.0)
        usage.append((budget, spent))
    return usage


def monthly_trend(
    expenses: Iterable[ExpenseRecord],
    share_of: ShareOf,
    today: date,
    months: int = 6
) -> List[Tuple[str, float]]:
    """Personal spending per month, oldest first, ending with the current month."""
    expenses = spending(expenses)
    trend = []
    for offset in range(months - 1, -1, -1):
        month = shift_month(today, -offset)
        trend.append((month, sum(share_of(e) for e in in_month(expenses, month))))
    return trend
