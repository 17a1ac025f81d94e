"""Clients for the budgeting REST API.

`BudgetApiClient` talks HTTP through httpx; `SeedApi` serves the same calls from
an in-memory data set (offline mode and tests).
"""
import itertools
import logging
from dataclasses import replace
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

import httpx
from pydantic import TypeAdapter, ValidationError as PayloadError

from budgetdash.domain import (
    Budget, BudgetInput, Category, Notification, CATEGORY, DEFAULT_COLOR, GENERAL,
)
from budgetdash.errors import ConflictError, NetworkError, ServerError
from budgetdash.schemas import (
    AlertPayload, BudgetCreateRequest, BudgetPayload, BudgetUpdateRequest, CategoryPayload,
)
from budgetdash.transforms import budgets_for_period

logger = logging.getLogger(__name__)

_budgets_adapter = TypeAdapter(List[BudgetPayload])
_categories_adapter = TypeAdapter(List[CategoryPayload])
_alerts_adapter = TypeAdapter(List[AlertPayload])

CONFLICT_HINTS = ("already exists", "duplicate")


def classify_failure(response: httpx.Response) -> Exception:
    message = ""
    try:
        data = response.json()
        if isinstance(data, dict):
            message = str(data.get("error") or data.get("message") or "")
    except ValueError:
        message = response.text.strip()
    if not message:
        message = f"Request failed with status {response.status_code}"

    lowered = message.lower()
    if response.status_code == 409 or any(h in lowered for h in CONFLICT_HINTS):
        return ConflictError(message, status_code=response.status_code)
    return ServerError(message, status_code=response.status_code)


class BudgetApiClient:
    """Async client for budgets, categories and alerts."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "BudgetApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _request(self, method: str, path: str, json: Optional[dict] = None) -> Any:
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.TimeoutException as e:
            logger.warning("%s %s timed out: %s", method, path, e)
            raise NetworkError() from e
        except httpx.TransportError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise NetworkError() from e

        if response.is_error:
            error = classify_failure(response)
            logger.error("%s %s -> %s: %s", method, path, response.status_code, error)
            raise error

        # success with an empty body is still success
        if not response.content.strip():
            return None
        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            return response.text
        try:
            return response.json()
        except ValueError as e:
            raise ServerError("Unexpected response from the server.") from e

    @staticmethod
    def _parse(adapter: TypeAdapter, data: Any) -> list:
        try:
            return adapter.validate_python(data or [])
        except PayloadError as e:
            logger.error("Malformed payload: %s", e)
            raise ServerError("Unexpected response from the server.") from e

    async def list_budgets(self, year: int, month: int) -> Tuple[Budget, ...]:
        data = await self._request("GET", f"/budgets/period/{year}/{month}")
        return tuple(p.to_domain() for p in self._parse(_budgets_adapter, data))

    async def create_budget(self, data: BudgetInput) -> Optional[Budget]:
        path = "/budgets/category" if data.kind == CATEGORY else "/budgets/general"
        body = BudgetCreateRequest.from_input(data).model_dump(by_alias=True, mode="json", exclude_none=True)
        result = await self._request("POST", path, json=body)
        return self._single_budget(result)

    async def update_budget(self, budget_id: str, planned_amount: Decimal) -> Optional[Budget]:
        body = BudgetUpdateRequest(planned_amount=planned_amount).model_dump(by_alias=True, mode="json")
        result = await self._request("PUT", f"/budgets/{budget_id}", json=body)
        return self._single_budget(result)

    async def delete_budget(self, budget_id: str) -> None:
        await self._request("DELETE", f"/budgets/{budget_id}")

    async def list_categories(self) -> Tuple[Category, ...]:
        data = await self._request("GET", "/categories")
        return tuple(p.to_domain() for p in self._parse(_categories_adapter, data))

    async def list_alerts(self) -> Tuple[Notification, ...]:
        data = await self._request("GET", "/alerts")
        return tuple(p.to_domain() for p in self._parse(_alerts_adapter, data))

    async def mark_alert_read(self, alert_id: str) -> None:
        await self._request("PUT", f"/alerts/{alert_id}/read")

    async def mark_all_alerts_read(self) -> None:
        await self._request("PUT", "/alerts/read-all")

    @staticmethod
    def _single_budget(result: Any) -> Optional[Budget]:
        # the backend wraps created budgets as {"success": ..., "budget": {...}}
        if isinstance(result, dict):
            payload = result.get("budget", result)
            try:
                return BudgetPayload.model_validate(payload).to_domain()
            except PayloadError:
                return None
        return None


class SeedApi:
    """In-memory API over seed data, with the backend's uniqueness rules."""

    def __init__(
        self,
        budgets: Tuple[Budget, ...] = (),
        categories: Tuple[Category, ...] = (),
        alerts: Tuple[Notification, ...] = (),
    ):
        self.budgets: Dict[str, Budget] = {b.id: b for b in budgets}
        self.categories = tuple(categories)
        self.alerts: Dict[str, Notification] = {a.id: a for a in alerts}
        self.calls: List[str] = []
        start = max((int(i) for i in self.budgets if i.isdigit()), default=0) + 1
        self._ids = itertools.count(start)

    async def list_budgets(self, year: int, month: int) -> Tuple[Budget, ...]:
        self.calls.append("list_budgets")
        return budgets_for_period(self.budgets.values(), year, month)

    async def create_budget(self, data: BudgetInput) -> Budget:
        self.calls.append("create_budget")
        period = [b for b in self.budgets.values() if (b.year, b.month) == (data.year, data.month)]
        if data.kind == GENERAL and any(b.is_general for b in period):
            raise ConflictError(
                f"General budget already exists for period {data.year}-{data.month}", status_code=409
            )
        if data.kind == CATEGORY and any(b.category_id == data.category_id for b in period):
            raise ConflictError("Budget already exists for this category and period", status_code=409)

        category = next((c for c in self.categories if c.id == data.category_id), None)
        budget = Budget(
            id=str(next(self._ids)),
            kind=data.kind,
            category_id=data.category_id,
            planned_amount=data.planned_amount,
            spent_amount=Decimal("0"),
            year=data.year,
            month=data.month,
            category_name=category.display_name if category else "Общ бюджет",
            category_color=category.color if category else DEFAULT_COLOR,
        )
        self.budgets[budget.id] = budget
        return budget

    async def update_budget(self, budget_id: str, planned_amount: Decimal) -> Budget:
        self.calls.append("update_budget")
        if budget_id not in self.budgets:
            raise ServerError("Budget not found", status_code=404)
        self.budgets[budget_id] = replace(self.budgets[budget_id], planned_amount=planned_amount)
        return self.budgets[budget_id]

    async def delete_budget(self, budget_id: str) -> None:
        self.calls.append("delete_budget")
        if self.budgets.pop(budget_id, None) is None:
            raise ServerError("Budget not found", status_code=404)

    async def list_categories(self) -> Tuple[Category, ...]:
        self.calls.append("list_categories")
        return self.categories

    async def list_alerts(self) -> Tuple[Notification, ...]:
        self.calls.append("list_alerts")
        return tuple(self.alerts.values())

    async def mark_alert_read(self, alert_id: str) -> None:
        self.calls.append("mark_alert_read")
        if alert_id in self.alerts:
            self.alerts[alert_id] = replace(self.alerts[alert_id], is_read=True)

    async def mark_all_alerts_read(self) -> None:
        self.calls.append("mark_all_alerts_read")
        self.alerts = {k: replace(a, is_read=True) for k, a in self.alerts.items()}
