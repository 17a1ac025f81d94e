import json
from datetime import date
from typing import Iterable, Tuple

from budgetdash.domain import Budget, Category, Notification
from budgetdash.schemas import AlertPayload, BudgetPayload, CategoryPayload


def load_seed(
    path: str,
) -> Tuple[
    Tuple[Category, ...],
    Tuple[Budget, ...],
    Tuple[Notification, ...],
]:
    """Read categories, budgets and alerts in the API's JSON shape."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    categories = tuple(CategoryPayload.model_validate(c).to_domain() for c in data.get("categories", []))
    budgets = tuple(BudgetPayload.model_validate(b).to_domain() for b in data.get("budgets", []))
    alerts = tuple(AlertPayload.model_validate(a).to_domain() for a in data.get("alerts", []))

    return categories, budgets, alerts


def shift_period(year: int, month: int, delta: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def current_period(today: date) -> Tuple[int, int]:
    return today.year, today.month


def budgets_for_period(budgets: Iterable[Budget], year: int, month: int) -> Tuple[Budget, ...]:
    return tuple(filter(lambda b: (b.year, b.month) == (year, month), budgets))
