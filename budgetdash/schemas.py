from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from budgetdash.domain import (
    Budget, BudgetInput, Category, Notification, CATEGORY, DEFAULT_COLOR, EXPENSE, GENERAL,
    INCOME, REMOTE,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class BudgetPayload(CamelModel):
    id: int | str
    category_id: Optional[int | str] = None
    category_name: Optional[str] = None
    category_color: Optional[str] = None
    planned_amount: Decimal = Decimal("0")
    spent_amount: Decimal = Decimal("0")
    budget_year: int
    budget_month: int

    def to_domain(self) -> Budget:
        is_category = self.category_id is not None
        return Budget(
            id=str(self.id),
            kind=CATEGORY if is_category else GENERAL,
            category_id=str(self.category_id) if is_category else None,
            planned_amount=self.planned_amount,
            spent_amount=self.spent_amount,
            year=self.budget_year,
            month=self.budget_month,
            category_name=self.category_name or "",
            category_color=self.category_color or DEFAULT_COLOR,
        )


class CategoryPayload(CamelModel):
    id: int | str
    name: str
    color: Optional[str] = None
    type: str = "EXPENSE"

    def to_domain(self) -> Category:
        return Category(
            id=str(self.id),
            display_name=self.name,
            color=self.color or DEFAULT_COLOR,
            direction=INCOME if self.type.upper() == "INCOME" else EXPENSE,
        )


class AlertPayload(CamelModel):
    id: int | str
    message: str
    category_name: Optional[str] = None
    created_at: datetime
    is_read: bool = False
    alert_type: str = "WARNING"
    budget_period: str = ""

    def to_domain(self) -> Notification:
        created = self.created_at
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        severity = "danger" if self.alert_type.upper() in ("EXCEEDED", "DANGER") else "warning"
        return Notification(
            id=str(self.id),
            title="Budget Alert",
            message=self.message,
            category_name=self.category_name or "",
            created_at=created,
            is_read=self.is_read,
            source=REMOTE,
            severity=severity,
            budget_period=self.budget_period,
        )


class BudgetCreateRequest(CamelModel):
    planned_amount: Decimal
    year: int
    month: int
    type: str
    category_id: Optional[int | str] = Field(default=None)

    @classmethod
    def from_input(cls, data: BudgetInput) -> "BudgetCreateRequest":
        return cls(
            planned_amount=data.planned_amount,
            year=data.year,
            month=data.month,
            type=data.kind.lower(),
            category_id=data.category_id,
        )


class BudgetUpdateRequest(CamelModel):
    planned_amount: Decimal
