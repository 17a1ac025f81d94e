"""Summary metrics for a budget period.

A General budget caps the period: when one exists it alone defines the planned
total, while the spent total is always taken from Category budgets.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Iterator, List, Optional, Tuple

from budgetdash.domain import Budget

ZERO = Decimal("0")
HEALTH_DIGIT_CAP = 99999999
CONDENSED_ABOVE_DIGITS = 4


@dataclass(frozen=True)
class Summary:
    total_planned: Decimal
    total_spent: Decimal
    active_count: int
    health_percent: int


@dataclass(frozen=True)
class HealthDisplay:
    value: int
    text: str
    condensed: bool


@dataclass(frozen=True)
class EfficiencyRow:
    budget_id: str
    name: str
    color: str
    planned: Decimal
    spent: Decimal
    efficiency: Decimal
    level: str
    insight: str


@dataclass(frozen=True)
class SpendingShare:
    budget_id: str
    name: str
    spent: Decimal
    percentage: Decimal


@dataclass(frozen=True)
class Overview:
    total_planned: Decimal
    total_spent: Decimal
    total_remaining: Decimal
    health_score: Decimal
    health_insight: str
    distribution: Tuple[Tuple[str, Decimal], ...]


def _real(budgets: Iterable[Budget]) -> Tuple[Budget, ...]:
    return tuple(b for b in budgets if not b.is_placeholder)


def _percent(part: Decimal, whole: Decimal) -> Decimal:
    if whole <= 0:
        return ZERO
    return part / whole * 100


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def summarize(period_budgets: Iterable[Budget]) -> Summary:
    budgets = _real(period_budgets)
    general = next((b for b in budgets if b.is_general), None)
    categories = [b for b in budgets if not b.is_general]

    total_spent = sum((b.spent_amount for b in categories), ZERO)
    if general is not None:
        total_planned = general.planned_amount
        active_count = len(budgets)
    else:
        total_planned = sum((b.planned_amount for b in categories), ZERO)
        active_count = len(categories)

    health = round_half_up(_percent(total_spent, total_planned))
    return Summary(total_planned, total_spent, active_count, health)


def health_status(percent: int) -> str:
    if percent >= 100:
        return "Over budget"
    if percent >= 90:
        return "Near budget limit"
    if percent >= 75:
        return "On track"
    return "Under budget"


def spent_trend(summary: Summary, currency: str = "€") -> str:
    remaining = summary.total_planned - summary.total_spent
    if remaining >= 0:
        return f"{currency}{round_half_up(remaining)} remaining this month"
    return f"{currency}{round_half_up(-remaining)} over budget"


def format_health(percent: int) -> HealthDisplay:
    """Clamp the rendered figure so it fits fixed-width cards."""
    value = max(0, min(int(percent), HEALTH_DIGIT_CAP))
    return HealthDisplay(
        value=value,
        text=f"{value}%",
        condensed=len(str(value)) > CONDENSED_ABOVE_DIGITS,
    )


def budget_insight(efficiency: Decimal) -> str:
    if efficiency > 100:
        return "Over budget - reduce spending this month"
    if efficiency > 90:
        return "Close to limit - monitor spending carefully"
    if efficiency > 70:
        return "Good usage - spending is on track"
    if efficiency > 30:
        return "Light usage - you can spend more if needed"
    return "Very low usage - consider increasing this budget"


def efficiency_level(efficiency: Decimal) -> str:
    if efficiency > 100:
        return "over-budget"
    if efficiency > 90:
        return "near-limit"
    if efficiency > 50:
        return "moderate"
    return "under-used"


def category_efficiency(budgets: Iterable[Budget]) -> List[EfficiencyRow]:
    rows = []
    for b in _real(budgets):
        if b.is_general:
            continue
        eff = _percent(b.spent_amount, b.planned_amount)
        rows.append(EfficiencyRow(
            budget_id=b.id,
            name=b.category_name,
            color=b.category_color,
            planned=b.planned_amount,
            spent=b.spent_amount,
            efficiency=eff,
            level=efficiency_level(eff),
            insight=budget_insight(eff),
        ))
    rows.sort(key=lambda r: r.efficiency, reverse=True)
    return rows


def average_efficiency(rows: List[EfficiencyRow]) -> Decimal:
    if not rows:
        return ZERO
    return sum((r.efficiency for r in rows), ZERO) / len(rows)


def top_spending(budgets: Iterable[Budget], n: int = 3) -> Iterator[SpendingShare]:
    """Yield the `n` biggest category spenders with their share of category spend."""
    categories = [b for b in _real(budgets) if not b.is_general]
    category_total = sum((b.spent_amount for b in categories), ZERO)
    ordered = sorted(categories, key=lambda b: b.spent_amount, reverse=True)
    for b in ordered[: max(0, n)]:
        yield SpendingShare(b.id, b.category_name, b.spent_amount, _percent(b.spent_amount, category_total))


def health_insight(score: Decimal) -> str:
    if score > 75:
        return "Excellent! You're managing money very well"
    if score > 50:
        return "Good control - keep monitoring spending"
    if score > 25:
        return "Need attention - watch your expenses closely"
    if score >= 0:
        return "Budget is stressed - reduce spending now"
    return "Over budget - take immediate action to cut costs"


def budget_overview(budgets: Iterable[Budget]) -> Overview:
    real = _real(budgets)
    planned = sum((b.planned_amount for b in real), ZERO)
    spent = sum((b.spent_amount for b in real), ZERO)
    score = (planned - spent) / planned * 100 if planned > 0 else Decimal("100")
    distribution = tuple(
        ("General" if b.is_general else b.category_name, _percent(b.planned_amount, planned))
        for b in real
    )
    return Overview(planned, spent, planned - spent, score, health_insight(score), distribution)


class Summarizer:
    """Caches the latest summary together with the period it describes."""

    def __init__(self):
        self.summary = Summary(ZERO, ZERO, 0, 0)
        self.period: Optional[Tuple[int, int]] = None

    def update(self, period: Tuple[int, int], budgets: Iterable[Budget]) -> Summary:
        self.summary = summarize(budgets)
        self.period = period
        return self.summary

    @property
    def status(self) -> str:
        return health_status(self.summary.health_percent)

    @property
    def trend(self) -> str:
        return spent_trend(self.summary)

    @property
    def display(self) -> HealthDisplay:
        return format_health(self.summary.health_percent)
