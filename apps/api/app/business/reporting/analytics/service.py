from __future__ import annotations

import contextvars
import logging
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any

from pydantic import BaseModel

from app.business.reporting.analytics import charts, metrics
from app.business.reporting.analytics.errors import InvalidActionError
from app.business.reporting.analytics.insights import generate_insights
from app.business.reporting.analytics.repository import AnalyticsDataSource, AnalyticsScope, FetchResult
from app.business.reporting.analytics.schemas import (
    AnalyticsAction,
    AnalyticsCategories,
    AnalyticsCharts,
    AnalyticsParams,
    AnalyticsPeriod,
    AnalyticsUserInfo,
    ComprehensiveAnalyticsRead,
    NotificationAnalyticsRead,
    PerformanceChartsRead,
    RevenueAnalyticsRead,
    RevenueChartsRead,
    TaskAnalyticsRead,
    TaskChartsRead,
    UserPerformanceRead,
)
from app.business.reporting.analytics.window import AnalyticsWindow, resolve_window
from app.context import get_correlation_id
from app.core.config import AnalyticsConfig
from app.metrics import observe_analytics_fetch_failure, observe_analytics_request
from app.otel import get_tracer
from app.platform.security import (
    AuthContext,
    AuthorizationError,
    build_auth_context,
    resolve_target_user_id,
    validate_target_scope,
)


logger = logging.getLogger("app.analytics")
tracer = get_tracer("app.analytics")

RESOURCE = "reports.analytics"
UNKNOWN_USER_NAME = "Unknown User"

FETCH_SOURCES: tuple[str, ...] = (
    "tasks",
    "user_stats",
    "revenue",
    "notifications",
    "activities",
    "achievements",
    "clients",
    "deals",
    "invoices",
    "payments",
    "expenses",
)


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


@dataclass(slots=True)
class AnalyticsService:
    config: AnalyticsConfig
    data_source: AnalyticsDataSource
    clock: Callable[[], date] = utc_today

    def dispatch(self, action: str, caller_id: str, params: AnalyticsParams) -> BaseModel:
        try:
            resolved = AnalyticsAction(action)
        except ValueError as exc:
            observe_analytics_request(action="unknown", status="invalid")
            raise InvalidActionError(action) from exc

        handlers: dict[AnalyticsAction, Callable[[str, AnalyticsParams], BaseModel]] = {
            AnalyticsAction.COMPREHENSIVE: self.comprehensive,
            AnalyticsAction.TASKS: self.task_analytics,
            AnalyticsAction.REVENUE: self.revenue_analytics,
            AnalyticsAction.PERFORMANCE: self.user_performance,
            AnalyticsAction.NOTIFICATIONS: self.notification_analytics,
            AnalyticsAction.REAL_TIME: self.real_time_dashboard,
        }
        return handlers[resolved](caller_id, params)

    def comprehensive(self, caller_id: str, params: AnalyticsParams) -> ComprehensiveAnalyticsRead:
        return self._run(AnalyticsAction.COMPREHENSIVE, caller_id, params)

    def task_analytics(self, caller_id: str, params: AnalyticsParams) -> TaskAnalyticsRead:
        report = self._run(AnalyticsAction.TASKS, caller_id, params)
        return TaskAnalyticsRead(
            task_analytics=report.analytics.tasks,
            charts=TaskChartsRead(
                task_completion_trend=report.charts.task_completion_trend if report.charts else None,
            ),
            insights=generate_insights(report.analytics, categories={"tasks"}),
        )

    def revenue_analytics(self, caller_id: str, params: AnalyticsParams) -> RevenueAnalyticsRead:
        report = self._run(AnalyticsAction.REVENUE, caller_id, params)
        chart_set = report.charts
        return RevenueAnalyticsRead(
            revenue_analytics=report.analytics.revenue,
            crm_analytics=report.analytics.crm,
            finance_analytics=report.analytics.finance,
            charts=RevenueChartsRead(
                revenue_trend=chart_set.revenue_trend if chart_set else None,
                crm_pipeline_chart=chart_set.crm_pipeline_chart if chart_set else None,
                finance_overview_chart=chart_set.finance_overview_chart if chart_set else None,
            ),
            insights=generate_insights(report.analytics, categories={"revenue", "crm", "finance"}),
        )

    def user_performance(self, caller_id: str, params: AnalyticsParams) -> UserPerformanceRead:
        report = self._run(AnalyticsAction.PERFORMANCE, caller_id, params)
        return UserPerformanceRead(
            performance=report.analytics.performance,
            charts=PerformanceChartsRead(
                performance_metrics=report.charts.performance_metrics if report.charts else None,
            ),
            insights=generate_insights(report.analytics, categories={"performance"}),
        )

    def notification_analytics(self, caller_id: str, params: AnalyticsParams) -> NotificationAnalyticsRead:
        report = self._run(AnalyticsAction.NOTIFICATIONS, caller_id, params)
        return NotificationAnalyticsRead(
            notification_analytics=report.analytics.notifications,
            insights=generate_insights(report.analytics, categories={"notifications"}),
        )

    def real_time_dashboard(self, caller_id: str, params: AnalyticsParams) -> ComprehensiveAnalyticsRead:
        window = resolve_window(
            None,
            params.end_date,
            default_days=self.config.realtime_window_days,
            today=self.clock(),
            max_days=self.config.max_window_days,
        )
        return self._run(
            AnalyticsAction.REAL_TIME,
            caller_id,
            params.model_copy(update={"include_charts": True}),
            window=window,
        )

    def authorize(self, caller_id: str) -> AuthContext:
        """Re-read the caller's profile; the role is never cached across requests."""

        profile = self.data_source.get_profile(caller_id)
        return build_auth_context(
            caller_id,
            role=profile.role if profile is not None else None,
            full_name=(profile.full_name if profile is not None else None) or UNKNOWN_USER_NAME,
            admin_role=self.config.admin_role,
            correlation_id=get_correlation_id(),
        )

    def _run(
        self,
        action: AnalyticsAction,
        caller_id: str,
        params: AnalyticsParams,
        *,
        window: AnalyticsWindow | None = None,
    ) -> ComprehensiveAnalyticsRead:
        started = time.perf_counter()
        status = "error"
        try:
            result = self._build(action, caller_id, params, window)
            status = "ok"
            return result
        except AuthorizationError:
            status = "denied"
            raise
        finally:
            observe_analytics_request(action=action.value, status=status, duration=time.perf_counter() - started)

    def _build(
        self,
        action: AnalyticsAction,
        caller_id: str,
        params: AnalyticsParams,
        window: AnalyticsWindow | None,
    ) -> ComprehensiveAnalyticsRead:
        with tracer.start_as_current_span("analytics.build") as span:
            ctx = self.authorize(caller_id)
            target_user_id = resolve_target_user_id(ctx, params.user_id)
            validate_target_scope(RESOURCE, ctx, target_user_id)

            if window is None:
                window = resolve_window(
                    params.start_date,
                    params.end_date,
                    default_days=self.config.default_window_days,
                    today=self.clock(),
                    max_days=self.config.max_window_days,
                )

            span.set_attribute("analytics.action", action.value)
            span.set_attribute("analytics.window_days", window.days)
            if ctx.correlation_id:
                span.set_attribute("correlation_id", ctx.correlation_id)

            results = self.gather(AnalyticsScope(user_id=target_user_id, window=window))
            failed = sorted(source for source, result in results.items() if not result.ok)
            rows = {source: result.rows for source, result in results.items()}

            analytics = compute_categories(rows, window)
            chart_set = build_charts(rows, window, analytics) if params.include_charts else None

            logger.info(
                "analytics.build",
                extra={
                    "action": action.value,
                    "user_id": ctx.user_id,
                    "target_user_id": target_user_id,
                    "window_days": window.days,
                    "failed_sources": failed,
                },
            )

            return ComprehensiveAnalyticsRead(
                analytics=analytics,
                charts=chart_set,
                insights=generate_insights(analytics),
                period=AnalyticsPeriod(start_date=window.start_date, end_date=window.end_date, days=window.days),
                user_info=AnalyticsUserInfo(
                    id=ctx.user_id,
                    name=ctx.full_name or UNKNOWN_USER_NAME,
                    role=ctx.role,
                    is_admin=ctx.is_admin,
                ),
            )

    def gather(self, scope: AnalyticsScope) -> dict[str, FetchResult]:
        """Run every fetch concurrently and wait for all of them.

        A failing branch yields an empty result for its source only.
        """

        fetchers: dict[str, Callable[[AnalyticsScope], Sequence[Any]]] = {
            source: getattr(self.data_source, f"fetch_{source}") for source in FETCH_SOURCES
        }
        workers = max(1, min(self.config.fetch_workers, len(fetchers)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="analytics-fetch") as executor:
            futures = {
                source: executor.submit(contextvars.copy_context().run, self._fetch_one, source, fetch, scope)
                for source, fetch in fetchers.items()
            }
            return {source: future.result() for source, future in futures.items()}

    def _fetch_one(
        self,
        source: str,
        fetch: Callable[[AnalyticsScope], Sequence[Any]],
        scope: AnalyticsScope,
    ) -> FetchResult:
        with tracer.start_as_current_span(f"analytics.fetch.{source}") as span:
            correlation_id = get_correlation_id()
            if correlation_id:
                span.set_attribute("correlation_id", correlation_id)
            try:
                rows = fetch(scope)
            except Exception as exc:
                span.record_exception(exc)
                observe_analytics_fetch_failure(source)
                logger.warning("analytics.fetch_failed", extra={"source": source, "error": str(exc)})
                return FetchResult.failed(source, exc)
            span.set_attribute("analytics.row_count", len(rows))
            return FetchResult.succeeded(source, rows)


def compute_categories(rows: dict[str, tuple[Any, ...]], window: AnalyticsWindow) -> AnalyticsCategories:
    tasks = rows.get("tasks", ())
    deals = rows.get("deals", ())
    payments = rows.get("payments", ())
    invoices = rows.get("invoices", ())
    activities = rows.get("activities", ())

    return AnalyticsCategories(
        tasks=metrics.task_metrics(tasks, reference_date=window.end_date),
        revenue=metrics.revenue_metrics(rows.get("revenue", ()), deals, payments, invoices),
        crm=metrics.crm_metrics(deals, rows.get("clients", ())),
        finance=metrics.finance_metrics(invoices, payments, rows.get("expenses", ()), reference_date=window.end_date),
        performance=metrics.performance_metrics(
            tasks,
            rows.get("user_stats", ()),
            rows.get("achievements", ()),
            activities,
            window,
        ),
        notifications=metrics.notification_metrics(rows.get("notifications", ())),
        time=metrics.time_metrics(tasks, activities, window),
    )


def build_charts(
    rows: dict[str, tuple[Any, ...]],
    window: AnalyticsWindow,
    analytics: AnalyticsCategories,
) -> AnalyticsCharts:
    tasks = rows.get("tasks", ())
    deals = rows.get("deals", ())
    payments = rows.get("payments", ())

    return AnalyticsCharts(
        task_completion_trend=charts.task_completion_trend(window, tasks),
        revenue_trend=charts.revenue_trend(window, rows.get("revenue", ()), deals, payments),
        crm_pipeline_chart=charts.crm_pipeline_chart(deals),
        finance_overview_chart=charts.finance_overview_chart(
            window,
            rows.get("invoices", ()),
            payments,
            rows.get("expenses", ()),
        ),
        productivity_overview=charts.productivity_overview(window, tasks, rows.get("activities", ())),
        performance_metrics=charts.performance_snapshot(analytics),
    )
