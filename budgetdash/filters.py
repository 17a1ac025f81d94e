"""Budget filtering with a stabilization step for the paginated view."""
import logging
from dataclasses import replace
from decimal import Decimal
from typing import Callable, Iterable, Optional, Tuple

from budgetdash.domain import (
    Budget, FilterCriteria, CATEGORY, GENERAL, NEAR, OVER, UNDER, NEAR_LIMIT_PERCENT,
)
from budgetdash.functional import pipe

logger = logging.getLogger(__name__)

Stage = Callable[[Tuple[Budget, ...]], Tuple[Budget, ...]]

ONE_MISSING_COPY = "Add another budget"
EMPTY_COPY = (
    "No budgets match your filters",
    "Try adjusting your filters",
    "Create a budget to get started",
)


def by_kind(kind: Optional[str]) -> Stage:
    def _filter(budgets: Tuple[Budget, ...]) -> Tuple[Budget, ...]:
        if kind not in (GENERAL, CATEGORY):
            return budgets
        return tuple(b for b in budgets if b.kind == kind)

    return _filter


def matches_status(b: Budget, status: str) -> bool:
    percentage = b.spent_percentage
    if status == UNDER:
        return percentage < NEAR_LIMIT_PERCENT and not b.is_over_budget
    if status == NEAR:
        return percentage >= NEAR_LIMIT_PERCENT and not b.is_over_budget
    if status == OVER:
        return b.is_over_budget
    return True


def by_status(status: Optional[str]) -> Stage:
    def _filter(budgets: Tuple[Budget, ...]) -> Tuple[Budget, ...]:
        if not status:
            return budgets
        return tuple(b for b in budgets if matches_status(b, status))

    return _filter


def by_category(cat_id: Optional[str]) -> Stage:
    def _filter(budgets: Tuple[Budget, ...]) -> Tuple[Budget, ...]:
        if not cat_id:
            return budgets
        return tuple(b for b in budgets if b.category_id == cat_id)

    return _filter


def by_amount_range(min_amount: Optional[Decimal], max_amount: Optional[Decimal]) -> Stage:
    # non-positive bounds mean "no bound"
    low = min_amount if min_amount and min_amount > 0 else None
    high = max_amount if max_amount and max_amount > 0 else None

    def _filter(budgets: Tuple[Budget, ...]) -> Tuple[Budget, ...]:
        return tuple(
            b for b in budgets
            if (low is None or b.planned_amount >= low) and (high is None or b.planned_amount <= high)
        )

    return _filter


def make_placeholder(index: int, message: str) -> Budget:
    return Budget(
        id=f"placeholder-{index}",
        kind=CATEGORY,
        category_id=None,
        planned_amount=Decimal("0"),
        spent_amount=Decimal("0"),
        year=0,
        month=0,
        category_name=message,
        is_placeholder=True,
    )


def stabilize(budgets: Tuple[Budget, ...], min_count: int) -> Tuple[Budget, ...]:
    """Pad a result so the paginated view always has `min_count` items to show."""
    missing = min_count - len(budgets)
    if missing <= 0:
        return budgets
    if not budgets:
        copy = [EMPTY_COPY[i % len(EMPTY_COPY)] for i in range(min_count)]
    else:
        copy = [ONE_MISSING_COPY] * missing
    return budgets + tuple(make_placeholder(i, msg) for i, msg in enumerate(copy))


def real_items(items: Iterable[Budget]) -> Tuple[Budget, ...]:
    return tuple(b for b in items if not b.is_placeholder)


def apply_filters(
    budgets: Iterable[Budget], criteria: FilterCriteria, min_count: int = 2
) -> Tuple[Budget, ...]:
    filtered = pipe(
        real_items(budgets),
        by_kind(criteria.kind),
        by_status(criteria.status),
        by_category(criteria.category_id),
        by_amount_range(criteria.min_amount, criteria.max_amount),
    )
    return stabilize(filtered, min_count)


class FilterEngine:
    """Holds the active criteria and the minimum display count."""

    def __init__(self, min_count: int = 2, criteria: Optional[FilterCriteria] = None):
        self.min_count = max(1, min_count)
        self.criteria = criteria or FilterCriteria()

    def apply(self, budgets: Iterable[Budget]) -> Tuple[Budget, ...]:
        result = apply_filters(budgets, self.criteria, self.min_count)
        logger.debug(
            "Filters applied: %s real, %s displayed", len(real_items(result)), len(result)
        )
        return result

    def update(self, **changes) -> FilterCriteria:
        self.criteria = replace(self.criteria, **changes)
        return self.criteria

    def clear(self) -> None:
        self.criteria = FilterCriteria()

    def set_min_count(self, min_count: int) -> None:
        self.min_count = max(1, min_count)

    @staticmethod
    def real_count(items: Iterable[Budget]) -> int:
        return len(real_items(items))
