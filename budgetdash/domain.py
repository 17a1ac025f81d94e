from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

GENERAL = "General"
CATEGORY = "Category"

UNDER = "Under"
NEAR = "Near"
OVER = "Over"

INCOME = "Income"
EXPENSE = "Expense"

REMOTE = "Remote"
LOCAL = "Local"

DEFAULT_COLOR = "#6366f1"
NEAR_LIMIT_PERCENT = 90


@dataclass(frozen=True)
class Category:
    id: str
    display_name: str  # source string, translated for display
    color: str
    direction: str


@dataclass(frozen=True)
class Budget:
    id: str
    kind: str
    category_id: Optional[str]
    planned_amount: Decimal
    spent_amount: Decimal
    year: int
    month: int
    category_name: str = ""
    category_color: str = DEFAULT_COLOR
    is_placeholder: bool = False

    @property
    def is_general(self) -> bool:
        return self.kind == GENERAL

    @property
    def spent_percentage(self) -> Decimal:
        if self.planned_amount <= 0:
            return Decimal("0")
        return self.spent_amount / self.planned_amount * 100

    @property
    def is_over_budget(self) -> bool:
        return self.spent_amount > self.planned_amount

    @property
    def is_near_limit(self) -> bool:
        return self.spent_amount >= self.planned_amount * NEAR_LIMIT_PERCENT / 100

    @property
    def remaining_amount(self) -> Decimal:
        return self.planned_amount - self.spent_amount

    @property
    def period_label(self) -> str:
        return f"{self.month:02d}/{self.year}"


@dataclass(frozen=True)
class FilterCriteria:
    kind: Optional[str] = None
    status: Optional[str] = None
    category_id: Optional[str] = None
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None

    def is_empty(self) -> bool:
        return not any((self.kind, self.status, self.category_id, self.min_amount, self.max_amount))


@dataclass(frozen=True)
class Notification:
    id: str
    title: str
    message: str
    category_name: str
    created_at: datetime  # timezone-aware
    is_read: bool = False
    source: str = LOCAL
    severity: str = "info"
    budget_period: str = ""


@dataclass(frozen=True)
class BudgetInput:
    kind: str
    planned_amount: Decimal
    year: int
    month: int
    category_id: Optional[str] = None
