from decimal import Decimal

from budgetdash.aggregation import (
    Summarizer, average_efficiency, budget_insight, budget_overview, category_efficiency,
    efficiency_level, format_health, health_insight, health_status, round_half_up,
    spent_trend, summarize, top_spending,
)
from budgetdash.domain import Budget, CATEGORY, GENERAL
from budgetdash.filters import make_placeholder


def make_budget(id, planned, spent, kind=CATEGORY, name="Food"):
    return Budget(
        id=id,
        kind=kind,
        category_id=None if kind == GENERAL else f"cat-{id}",
        planned_amount=Decimal(str(planned)),
        spent_amount=Decimal(str(spent)),
        year=2026,
        month=10,
        category_name=name,
    )


def test_general_budget_defines_planned_total():
    budgets = [
        make_budget("g", 1000, 0, kind=GENERAL),
        make_budget("food", 300, 250, name="Food"),
        make_budget("transport", 200, 100, name="Transport"),
    ]
    summary = summarize(budgets)
    assert summary.total_planned == Decimal("1000")
    assert summary.total_spent == Decimal("350")
    assert summary.health_percent == 35
    assert summary.active_count == 3


def test_category_budgets_only():
    summary = summarize([make_budget("fun", 100, 150)])
    assert summary.total_planned == Decimal("100")
    assert summary.total_spent == Decimal("150")
    assert summary.health_percent == 150
    assert health_status(summary.health_percent) == "Over budget"
    assert summary.active_count == 1


def test_general_planned_ignores_category_amounts():
    for extra in ([], [make_budget("a", 5000, 1)], [make_budget("a", 1, 1), make_budget("b", 99999, 0)]):
        summary = summarize([make_budget("g", 750, 0, kind=GENERAL), *extra])
        assert summary.total_planned == Decimal("750")


def test_general_spent_never_counted():
    budgets = [make_budget("g", 1000, 999, kind=GENERAL), make_budget("food", 300, 10)]
    assert summarize(budgets).total_spent == Decimal("10")
    assert summarize([make_budget("g", 1000, 999, kind=GENERAL)]).total_spent == Decimal("0")


def test_empty_period_has_zero_health():
    summary = summarize([])
    assert summary.total_planned == Decimal("0")
    assert summary.health_percent == 0
    assert summary.active_count == 0


def test_placeholders_are_ignored():
    budgets = [make_budget("food", 100, 50), make_placeholder(0, "Add another budget")]
    assert summarize(budgets).active_count == 1


def test_health_rounds_half_up():
    assert round_half_up(Decimal("34.5")) == 35
    assert round_half_up(Decimal("34.49")) == 34
    summary = summarize([make_budget("a", 200, 69)])
    assert summary.health_percent == 35


def test_health_status_thresholds():
    assert health_status(100) == "Over budget"
    assert health_status(90) == "Near budget limit"
    assert health_status(75) == "On track"
    assert health_status(74) == "Under budget"


def test_spent_trend_wording():
    summary = summarize([make_budget("a", 500, 120)])
    assert spent_trend(summary) == "€380 remaining this month"
    summary = summarize([make_budget("a", 100, 150)])
    assert spent_trend(summary) == "€50 over budget"


def test_format_health_clamps_and_condenses():
    assert format_health(35).text == "35%"
    assert not format_health(9999).condensed
    assert format_health(12345).condensed
    huge = format_health(10 ** 12)
    assert huge.value == 99999999
    assert format_health(-5).value == 0


def test_efficiency_rows_sorted_descending_without_general():
    budgets = [
        make_budget("g", 2000, 0, kind=GENERAL),
        make_budget("food", 100, 95, name="Food"),
        make_budget("fun", 100, 20, name="Fun"),
        make_budget("car", 100, 130, name="Car"),
    ]
    rows = category_efficiency(budgets)
    assert [r.name for r in rows] == ["Car", "Food", "Fun"]
    assert rows[0].level == "over-budget"
    assert rows[1].level == "near-limit"
    assert rows[2].level == "under-used"
    assert average_efficiency(rows) == Decimal("245") / 3
    assert average_efficiency([]) == Decimal("0")


def test_insight_wording():
    assert budget_insight(Decimal("101")).startswith("Over budget")
    assert budget_insight(Decimal("80")).startswith("Good usage")
    assert budget_insight(Decimal("10")).startswith("Very low usage")
    assert efficiency_level(Decimal("60")) == "moderate"


def test_top_spending_shares():
    budgets = [
        make_budget("g", 2000, 500, kind=GENERAL),
        make_budget("a", 500, 300, name="A"),
        make_budget("b", 500, 100, name="B"),
        make_budget("c", 500, 50, name="C"),
        make_budget("d", 500, 50, name="D"),
    ]
    top = list(top_spending(budgets, n=2))
    assert [s.name for s in top] == ["A", "B"]
    assert top[0].percentage == Decimal("60")
    assert top[1].percentage == Decimal("20")


def test_top_spending_with_no_spend():
    top = list(top_spending([make_budget("a", 100, 0)]))
    assert top[0].percentage == Decimal("0")


def test_overview_score_and_distribution():
    budgets = [make_budget("g", 600, 0, kind=GENERAL), make_budget("a", 400, 300, name="A")]
    overview = budget_overview(budgets)
    assert overview.total_planned == Decimal("1000")
    assert overview.total_remaining == Decimal("700")
    assert overview.health_score == Decimal("70")
    assert overview.health_insight == health_insight(Decimal("70"))
    assert dict(overview.distribution) == {"General": Decimal("60"), "A": Decimal("40")}


def test_overview_without_budgets_is_healthy():
    overview = budget_overview([])
    assert overview.health_score == Decimal("100")
    assert overview.health_insight.startswith("Excellent")


def test_summarizer_tracks_period():
    summarizer = Summarizer()
    assert summarizer.summary.health_percent == 0
    summarizer.update((2026, 10), [make_budget("a", 100, 95)])
    assert summarizer.period == (2026, 10)
    assert summarizer.status == "Near budget limit"
    assert summarizer.trend == "€5 remaining this month"
    assert summarizer.display.text == "95%"
