"""Client-side checks run before a budget is submitted.

Failures come back as Left(ValidationError) with one message per form field;
no request is made for invalid input.
"""
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

from budgetdash.domain import Budget, BudgetInput, Category, CATEGORY, EXPENSE, GENERAL
from budgetdash.errors import ValidationError
from budgetdash.functional import Either, Left, Right, find_category

AMOUNT_CEILING = Decimal("9999999999.99")
MIN_YEAR = 2020
MAX_YEAR = 2050


def parse_amount(raw: Any) -> Optional[Decimal]:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    try:
        value = Decimal(str(raw).strip())
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


def amount_error(amount: Optional[Decimal], ceiling: Decimal = AMOUNT_CEILING) -> Optional[str]:
    if amount is None:
        return "Amount is required"
    if amount <= 0:
        return "Amount must be greater than 0"
    if amount > ceiling:
        return f"Amount cannot exceed {ceiling:,}"
    if amount.as_tuple().exponent < -2 and amount != amount.quantize(Decimal("0.01")):
        return "Amount can have at most 2 decimal places"
    return None


def category_cap_error(
    budgets: Iterable[Budget], year: int, month: int, amount: Decimal,
    editing_id: Optional[str] = None,
) -> Optional[str]:
    """Category plans for a period may not add up to more than its General budget."""
    period = [b for b in budgets if not b.is_placeholder and (b.year, b.month) == (year, month)]
    general = next((b for b in period if b.is_general), None)
    if general is None:
        return None
    allocated = sum(
        (b.planned_amount for b in period if not b.is_general and b.id != editing_id),
        Decimal("0"),
    )
    if allocated + amount > general.planned_amount:
        available = max(Decimal("0"), general.planned_amount - allocated)
        return f"Category budgets would exceed the General budget. Available: {available:.2f}"
    return None


def _int_or_none(raw: Any) -> Optional[int]:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def validate_budget_form(
    form: Mapping[str, Any],
    categories: Iterable[Category] = (),
    ceiling: Decimal = AMOUNT_CEILING,
) -> Either[ValidationError, BudgetInput]:
    """Validate a create-budget form: kind, plannedAmount, year, month, categoryId."""
    errors: Dict[str, str] = {}

    kind = form.get("kind") or GENERAL
    if kind not in (GENERAL, CATEGORY):
        errors["kind"] = "Unknown budget type"

    amount = parse_amount(form.get("planned_amount"))
    msg = amount_error(amount, ceiling)
    if msg:
        errors["planned_amount"] = msg

    year = _int_or_none(form.get("year"))
    month = _int_or_none(form.get("month"))
    if year is None or month is None:
        errors["period"] = "Period is required"
    elif not MIN_YEAR <= year <= MAX_YEAR:
        errors["period"] = f"Year must be between {MIN_YEAR} and {MAX_YEAR}"
    elif not 1 <= month <= 12:
        errors["period"] = "Month must be between 1 and 12"

    category_id = form.get("category_id") or None
    if kind == CATEGORY:
        if not category_id:
            errors["category_id"] = "Please select a category"
        else:
            direction = find_category(categories, str(category_id)).map(lambda c: c.direction)
            if direction.get_or_else(EXPENSE) != EXPENSE:
                errors["category_id"] = "Budgets can only be created for expense categories"

    if errors:
        return Left(ValidationError(errors))
    return Right(BudgetInput(
        kind=kind,
        planned_amount=amount,
        year=year,
        month=month,
        category_id=str(category_id) if kind == CATEGORY else None,
    ))


def within_general_cap(budgets: Iterable[Budget]) -> Callable[[BudgetInput], Either[ValidationError, BudgetInput]]:
    """Check step for `Either.bind`; `budgets` must include the input's period."""
    budgets = tuple(budgets)

    def _check(data: BudgetInput) -> Either[ValidationError, BudgetInput]:
        if data.kind != CATEGORY:
            return Right(data)
        msg = category_cap_error(budgets, data.year, data.month, data.planned_amount)
        if msg:
            return Left(ValidationError({"planned_amount": msg}))
        return Right(data)
    return _check


def validate_budget_input(
    form: Mapping[str, Any],
    budgets: Iterable[Budget] = (),
    categories: Iterable[Category] = (),
    ceiling: Decimal = AMOUNT_CEILING,
) -> Either[ValidationError, BudgetInput]:
    return validate_budget_form(form, categories, ceiling).bind(within_general_cap(budgets))


def validate_amount_update(
    budget: Budget, raw_amount: Any, budgets: Iterable[Budget] = (),
    ceiling: Decimal = AMOUNT_CEILING,
) -> Either[ValidationError, Decimal]:
    amount = parse_amount(raw_amount)
    msg = amount_error(amount, ceiling)
    if msg is None and not budget.is_general:
        msg = category_cap_error(budgets, budget.year, budget.month, amount, editing_id=budget.id)
    if msg:
        return Left(ValidationError({"planned_amount": msg}))
    return Right(amount)
