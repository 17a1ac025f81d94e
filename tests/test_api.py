import json
from decimal import Decimal

import httpx
import pytest

from budgetdash.api import BudgetApiClient, SeedApi, classify_failure
from budgetdash.domain import BudgetInput, Category, CATEGORY, EXPENSE, GENERAL, INCOME, REMOTE
from budgetdash.errors import ConflictError, NetworkError, ServerError

BUDGETS = [
    {"id": 101, "categoryName": "Общ бюджет", "plannedAmount": 1000, "spentAmount": 0,
     "budgetYear": 2026, "budgetMonth": 10},
    {"id": 102, "categoryId": 1, "categoryName": "Храна", "categoryColor": "#22c55e",
     "plannedAmount": "300.00", "spentAmount": 250, "budgetYear": 2026, "budgetMonth": 10},
]


def make_client(handler):
    return BudgetApiClient("http://test/api", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_list_budgets_parses_camel_case():
    seen = []

    def handler(request):
        seen.append(request.url.path)
        return httpx.Response(200, json=BUDGETS)

    async with make_client(handler) as client:
        budgets = await client.list_budgets(2026, 10)

    assert seen == ["/api/budgets/period/2026/10"]
    general, food = budgets
    assert general.kind == GENERAL and general.category_id is None
    assert food.kind == CATEGORY and food.category_id == "1"
    assert food.planned_amount == Decimal("300.00")
    assert food.category_color == "#22c55e"
    assert general.category_color == "#6366f1"


@pytest.mark.asyncio
async def test_create_category_budget_posts_to_category_endpoint():
    captured = {}

    def handler(request):
        captured["path"] = request.url.path
        captured["body"] = json.loads(request.content)
        return httpx.Response(201, json={"success": True, "budget": BUDGETS[1]})

    async with make_client(handler) as client:
        created = await client.create_budget(BudgetInput(CATEGORY, Decimal("300"), 2026, 10, "1"))

    assert captured["path"] == "/api/budgets/category"
    assert captured["body"] == {
        "plannedAmount": "300", "year": 2026, "month": 10, "type": "category", "categoryId": "1",
    }
    assert created.id == "102"


@pytest.mark.asyncio
async def test_create_general_budget_omits_category():
    captured = {}

    def handler(request):
        captured["path"] = request.url.path
        captured["body"] = json.loads(request.content)
        return httpx.Response(201, json=BUDGETS[0])

    async with make_client(handler) as client:
        created = await client.create_budget(BudgetInput(GENERAL, Decimal("1000"), 2026, 10))

    assert captured["path"] == "/api/budgets/general"
    assert "categoryId" not in captured["body"]
    assert created.is_general


@pytest.mark.asyncio
async def test_empty_success_body_is_success():
    async with make_client(lambda request: httpx.Response(200)) as client:
        assert await client.update_budget("102", Decimal("350")) is None
        assert await client.delete_budget("102") is None


@pytest.mark.asyncio
async def test_conflict_maps_to_conflict_error():
    def handler(request):
        return httpx.Response(409, json={"error": "General budget already exists for period 2026-10"})

    async with make_client(handler) as client:
        with pytest.raises(ConflictError) as exc_info:
            await client.create_budget(BudgetInput(GENERAL, Decimal("1000"), 2026, 10))
    assert exc_info.value.status_code == 409


def test_already_exists_text_is_a_conflict_even_without_409():
    response = httpx.Response(400, json={"message": "Budget already exists for this category"})
    assert isinstance(classify_failure(response), ConflictError)


def test_plain_text_failure_is_server_error():
    error = classify_failure(httpx.Response(500, text="Internal Server Error"))
    assert isinstance(error, ServerError)
    assert error.message == "Internal Server Error"
    assert classify_failure(httpx.Response(502)).message == "Request failed with status 502"


@pytest.mark.asyncio
async def test_transport_failure_is_network_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with make_client(handler) as client:
        with pytest.raises(NetworkError):
            await client.list_categories()


@pytest.mark.asyncio
async def test_malformed_payload_is_server_error():
    async with make_client(lambda request: httpx.Response(200, json=[{"id": 1}])) as client:
        with pytest.raises(ServerError):
            await client.list_budgets(2026, 10)


@pytest.mark.asyncio
async def test_categories_and_alerts():
    def handler(request):
        if request.url.path.endswith("/categories"):
            return httpx.Response(200, json=[
                {"id": 1, "name": "Храна", "color": "#22c55e", "type": "EXPENSE"},
                {"id": 6, "name": "Заплата", "type": "INCOME"},
            ])
        return httpx.Response(200, json=[{
            "id": 7, "message": "Food budget exceeded", "categoryName": "Храна",
            "createdAt": "2026-10-18T08:05:00", "alertType": "EXCEEDED",
        }])

    async with make_client(handler) as client:
        food, salary = await client.list_categories()
        (alert,) = await client.list_alerts()

    assert food.direction == EXPENSE and salary.direction == INCOME
    assert salary.color == "#6366f1"
    assert alert.source == REMOTE
    assert alert.severity == "danger"
    assert alert.created_at.tzinfo is not None


@pytest.mark.asyncio
async def test_alert_endpoints():
    paths = []

    def handler(request):
        paths.append((request.method, request.url.path))
        return httpx.Response(200)

    async with make_client(handler) as client:
        await client.mark_alert_read("7")
        await client.mark_all_alerts_read()

    assert paths == [("PUT", "/api/alerts/7/read"), ("PUT", "/api/alerts/read-all")]


@pytest.mark.asyncio
async def test_seed_api_enforces_uniqueness():
    api = SeedApi(categories=(Category("1", "Храна", "#22c55e", EXPENSE),))
    general = await api.create_budget(BudgetInput(GENERAL, Decimal("1000"), 2026, 10))
    assert general.category_name == "Общ бюджет"
    with pytest.raises(ConflictError):
        await api.create_budget(BudgetInput(GENERAL, Decimal("500"), 2026, 10))

    food = await api.create_budget(BudgetInput(CATEGORY, Decimal("300"), 2026, 10, "1"))
    assert food.category_name == "Храна"
    with pytest.raises(ConflictError):
        await api.create_budget(BudgetInput(CATEGORY, Decimal("100"), 2026, 10, "1"))

    # another month is a different period
    await api.create_budget(BudgetInput(GENERAL, Decimal("900"), 2026, 11))
    assert len(await api.list_budgets(2026, 10)) == 2


@pytest.mark.asyncio
async def test_seed_api_update_and_delete():
    api = SeedApi()
    budget = await api.create_budget(BudgetInput(GENERAL, Decimal("1000"), 2026, 10))
    updated = await api.update_budget(budget.id, Decimal("1200"))
    assert updated.planned_amount == Decimal("1200")
    await api.delete_budget(budget.id)
    with pytest.raises(ServerError):
        await api.delete_budget(budget.id)
    assert api.calls == ["create_budget", "update_budget", "delete_budget", "delete_budget"]
