"""Application state for one dashboard screen.

`DashboardController` is built once and handed to the view. It owns the event
bus, runs the load pipeline and routes user actions through validation, the
API and the notification feed.
"""
import asyncio
import logging
from dataclasses import replace
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Callable, List, Mapping, Optional, Tuple

from budgetdash import aggregation
from budgetdash.api import BudgetApiClient, SeedApi
from budgetdash.carousel import ResponsiveCarousel
from budgetdash.config import Settings, get_settings
from budgetdash.domain import Budget, Category, Notification, GENERAL
from budgetdash.errors import DashboardError, ValidationError, user_message
from budgetdash.events import (
    EventBus, BUDGETS_CHANGED, BUDGET_MUTATED, CAROUSEL_CHANGED,
)
from budgetdash.filters import FilterEngine
from budgetdash.functional import Either, Left, Right, find_budget
from budgetdash.notifications import NotificationLifecycleManager, utc_now
from budgetdash.scheduler import Debouncer, build_scheduler, start_scheduler
from budgetdash.storage import JsonFileStore
from budgetdash.sync import CrossTabSync, LoadSequencer
from budgetdash.transforms import current_period, load_seed, shift_period
from budgetdash.translations import GENERAL_BUDGET_LABEL, translate_category
from budgetdash.validation import validate_amount_update, validate_budget_form, within_general_cap

logger = logging.getLogger(__name__)


def localize(budget: Budget) -> Budget:
    name = GENERAL_BUDGET_LABEL if budget.kind == GENERAL else translate_category(budget.category_name)
    return replace(budget, category_name=name)


def format_amount(amount: Decimal) -> str:
    return f"€{amount.normalize():f}" if amount == amount.to_integral_value() else f"€{amount:.2f}"


class DashboardController:
    def __init__(
        self,
        api,
        store,
        settings: Optional[Settings] = None,
        width: int = 1280,
        today: Optional[date] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.settings = settings or get_settings()
        self.api = api
        self.store = store
        self.bus = EventBus()

        self.year, self.month = current_period(today or date.today())
        self.budgets: Tuple[Budget, ...] = ()
        self.categories: Tuple[Category, ...] = ()
        self.display: Tuple[Budget, ...] = ()
        self.last_error: Optional[str] = None

        self.carousel = ResponsiveCarousel(width)
        self.filters = FilterEngine(min_count=self._min_display_count())
        self.summarizer = aggregation.Summarizer()
        self.sequencer = LoadSequencer()
        self.sync = CrossTabSync(store, self.settings.REFRESH_THROTTLE_SECONDS)
        self.notifications = NotificationLifecycleManager(
            store,
            alerts_api=api,
            bus=self.bus,
            clock=clock,
            ttl=timedelta(hours=self.settings.NOTIFICATION_TTL_HOURS),
            dedup_window=timedelta(seconds=self.settings.LOCAL_DEDUP_SECONDS),
            cap=self.settings.LOCAL_NOTIFICATION_CAP,
        )
        self._resize = Debouncer(self.settings.RESIZE_DEBOUNCE_MS / 1000, self.apply_viewport)
        self.scheduler = None

    def _min_display_count(self) -> int:
        return max(self.settings.MIN_DISPLAY_COUNT, self.carousel.page_size)

    # ---- load pipeline

    async def _load_categories(self) -> Tuple[Category, ...]:
        if not self.categories:
            self.categories = tuple(
                replace(c, display_name=translate_category(c.display_name))
                for c in await self.api.list_categories()
            )
        return self.categories

    async def load_period(self, year: Optional[int] = None, month: Optional[int] = None) -> bool:
        if year is not None and month is not None:
            self.year, self.month = year, month
        token = self.sequencer.begin()
        period = (self.year, self.month)
        logger.info("Loading budgets for %02d/%d (load #%d)", period[1], period[0], token)

        try:
            budgets, _, _ = await asyncio.gather(
                self.api.list_budgets(*period),
                self._load_categories(),
                self.notifications.refresh_remote(),
            )
        except DashboardError as e:
            if not self.sequencer.is_current(token):
                return False
            logger.error("Failed to load budgets for %s: %s", period, e)
            self.last_error = user_message(e)
            self.budgets = ()
            self._recompute()
            return False

        if not self.sequencer.is_current(token):
            logger.info("Discarding stale load #%d", token)
            return False

        self.budgets = tuple(localize(b) for b in budgets)
        self.last_error = None
        self.sync.mark_refreshed()
        self._recompute()
        return True

    def _recompute(self) -> None:
        self.display = self.filters.apply(self.budgets)
        self.summarizer.update((self.year, self.month), self.budgets)
        self.carousel.set_items(len(self.display), FilterEngine.real_count(self.display))
        self.bus.publish(BUDGETS_CHANGED, {"period": (self.year, self.month), "count": len(self.budgets)})
        self.bus.publish(CAROUSEL_CHANGED, {"index": self.carousel.state.current_index})

    async def navigate_period(self, direction: int) -> bool:
        return await self.load_period(*shift_period(self.year, self.month, direction))

    async def go_to_current_month(self, today: Optional[date] = None) -> bool:
        return await self.load_period(*current_period(today or date.today()))

    # ---- filters and carousel

    def set_filter(self, **criteria) -> None:
        self.filters.update(**criteria)
        self._recompute()

    def clear_filter(self) -> None:
        self.filters.clear()
        self._recompute()

    def on_viewport_resize(self, width: int) -> None:
        self._resize(width)

    def apply_viewport(self, width: int) -> bool:
        if not self.carousel.resize(width):
            return False
        self.filters.set_min_count(self._min_display_count())
        self._recompute()
        return True

    def next_page(self) -> bool:
        moved = self.carousel.next()
        if moved:
            self.bus.publish(CAROUSEL_CHANGED, {"index": self.carousel.state.current_index})
        return moved

    def prev_page(self) -> bool:
        moved = self.carousel.prev()
        if moved:
            self.bus.publish(CAROUSEL_CHANGED, {"index": self.carousel.state.current_index})
        return moved

    @property
    def visible_items(self) -> List[Budget]:
        return list(self.carousel.window(self.display))

    # ---- summary views

    @property
    def summary(self) -> aggregation.Summary:
        return self.summarizer.summary

    def efficiency(self) -> List[aggregation.EfficiencyRow]:
        return aggregation.category_efficiency(self.budgets)

    def top_spending(self, n: int = 3) -> List[aggregation.SpendingShare]:
        return list(aggregation.top_spending(self.budgets, n))

    def overview(self) -> aggregation.Overview:
        return aggregation.budget_overview(self.budgets)

    # ---- mutations

    def _fail(self, e: DashboardError, action: str) -> Either[DashboardError, Any]:
        logger.error("Failed to %s budget: %s", action, e)
        self.last_error = user_message(e)
        return Left(e)

    async def _after_mutation(self, action: str, budget_id: Optional[str]) -> None:
        self.sync.signal_mutation()
        self.bus.publish(BUDGET_MUTATED, {"action": action, "budget_id": budget_id})
        await self.load_period()

    async def _budgets_for(self, year: int, month: int) -> Tuple[Budget, ...]:
        if (year, month) == (self.year, self.month):
            return self.budgets
        return tuple(await self.api.list_budgets(year, month))

    async def submit_budget(self, form: Mapping[str, Any]) -> Either[DashboardError, Optional[Budget]]:
        validated = validate_budget_form(form, self.categories, self.settings.AMOUNT_CEILING)
        if validated.is_left():
            return validated
        data = validated.get_or_else(None)

        try:
            period_budgets = await self._budgets_for(data.year, data.month)
        except DashboardError as e:
            return self._fail(e, "create")
        validated = validated.bind(within_general_cap(period_budgets))
        if validated.is_left():
            return validated

        try:
            created = await self.api.create_budget(data)
        except DashboardError as e:
            return self._fail(e, "create")

        label = "General" if data.kind == GENERAL else "Category"
        self.notifications.add_local(
            "New Budget Created",
            f"{label} budget of {format_amount(data.planned_amount)} created",
            category_name=translate_category(created.category_name) if created else "",
            severity="success",
            budget_period=f"{data.month:02d}/{data.year}",
        )
        await self._after_mutation("create", created.id if created else None)
        return Right(created)

    async def update_budget(self, budget_id: str, planned_amount: Any) -> Either[DashboardError, Optional[Budget]]:
        budget = find_budget(self.budgets, budget_id).get_or_else(None)
        if budget is None:
            return Left(ValidationError({"budget": "Budget not found."}))
        validated = validate_amount_update(budget, planned_amount, self.budgets, self.settings.AMOUNT_CEILING)
        if validated.is_left():
            return validated
        amount = validated.get_or_else(None)

        try:
            updated = await self.api.update_budget(budget_id, amount)
        except DashboardError as e:
            return self._fail(e, "update")

        label = "General" if budget.is_general else "Category"
        self.notifications.add_local(
            "Budget Updated",
            f"{label} budget of {format_amount(amount)} updated",
            category_name=budget.category_name,
            budget_period=budget.period_label,
        )
        await self._after_mutation("update", budget_id)
        return Right(updated)

    async def delete_budget(self, budget_id: str) -> Either[DashboardError, None]:
        budget = find_budget(self.budgets, budget_id).get_or_else(None)
        if budget is None:
            return Left(ValidationError({"budget": "Budget not found."}))

        try:
            await self.api.delete_budget(budget_id)
        except DashboardError as e:
            return self._fail(e, "delete")

        self.notifications.add_local(
            "Budget Deleted",
            f"{budget.category_name} budget deleted",
            category_name=budget.category_name,
            severity="warning",
            budget_period=budget.period_label,
        )
        await self._after_mutation("delete", budget_id)
        return Right(None)

    # ---- cross-tab refresh

    async def on_focus(self) -> bool:
        if not self.sync.should_refresh_on_focus():
            return False
        logger.info("Refreshing after focus")
        return await self.load_period()

    async def poll_external_changes(self) -> bool:
        changed = self.sync.poll()
        if not changed:
            return False
        logger.info("Reloading after external change: %s", ", ".join(changed))
        return await self.load_period()

    async def purge_expired_notifications(self) -> int:
        return self.notifications.purge_expired()

    def start_background_jobs(self, scheduler=None):
        """Start notification decay and cross-tab polling; needs a running loop."""
        self.scheduler = build_scheduler(
            self.purge_expired_notifications,
            self.poll_external_changes,
            settings=self.settings,
            scheduler=scheduler,
        )
        start_scheduler(self.scheduler)
        return self.scheduler

    # ---- notifications

    @property
    def feed(self) -> Tuple[Notification, ...]:
        return self.notifications.feed()

    @property
    def badge_count(self) -> int:
        return self.notifications.badge_count()

    def add_notification(self, title: str, message: str, **kwargs) -> Optional[Notification]:
        return self.notifications.add_local(title, message, **kwargs)

    async def mark_notification_read(self, notification_id: str) -> Either[DashboardError, bool]:
        try:
            return Right(await self.notifications.mark_read(notification_id))
        except DashboardError as e:
            logger.error("Failed to mark notification %s as read: %s", notification_id, e)
            self.last_error = user_message(e)
            return Left(e)

    async def mark_all_notifications_read(self) -> Either[DashboardError, None]:
        try:
            await self.notifications.mark_all_read()
        except DashboardError as e:
            logger.error("Failed to mark all notifications as read: %s", e)
            self.last_error = user_message(e)
            return Left(e)
        return Right(None)


def build_controller(settings: Optional[Settings] = None, width: int = 1280) -> DashboardController:
    settings = settings or get_settings()
    store = JsonFileStore(settings.STORE_PATH)
    if settings.SEED_PATH:
        categories, budgets, alerts = load_seed(settings.SEED_PATH)
        api = SeedApi(budgets, categories, alerts)
        logger.info("Using seed data from %s", settings.SEED_PATH)
    else:
        api = BudgetApiClient(settings.API_BASE_URL, timeout=settings.REQUEST_TIMEOUT)
    return DashboardController(api, store, settings=settings, width=width)
