from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable, Iterable, Sequence
from datetime import date, datetime
from decimal import Decimal
from typing import TypeVar

from app.business.reporting.analytics.metrics import percent, q
from app.business.reporting.analytics.schemas import (
    ZERO,
    AnalyticsCategories,
    ActivityRecord,
    ClientPaymentRecord,
    DealRecord,
    ExpenseRecord,
    FinanceTrendPoint,
    InvoiceRecord,
    PerformanceSnapshot,
    PipelineStagePoint,
    ProductivityPoint,
    RevenueEntryRecord,
    RevenueTrendPoint,
    TaskRecord,
    TaskTrendPoint,
)
from app.business.reporting.analytics.window import AnalyticsWindow, to_utc_date


T = TypeVar("T")


def _bucket(
    window: AnalyticsWindow,
    rows: Iterable[T],
    key: Callable[[T], date | datetime | None],
) -> dict[date, list[T]]:
    buckets: dict[date, list[T]] = defaultdict(list)
    for row in rows:
        value = key(row)
        if value is None or not window.contains(value):
            continue
        buckets[to_utc_date(value)].append(row)
    return buckets


def task_completion_trend(window: AnalyticsWindow, tasks: Sequence[TaskRecord]) -> list[TaskTrendPoint]:
    created = _bucket(window, tasks, lambda task: task.created_at)
    completed = _bucket(
        window,
        (task for task in tasks if task.status == "completed"),
        lambda task: task.completed_at,
    )

    points: list[TaskTrendPoint] = []
    for day in window.dates():
        created_count = len(created.get(day, ()))
        completed_count = len(completed.get(day, ()))
        points.append(
            TaskTrendPoint(
                date=day,
                created=created_count,
                completed=completed_count,
                completion_rate=percent(completed_count, created_count),
            )
        )
    return points


def revenue_trend(
    window: AnalyticsWindow,
    entries: Sequence[RevenueEntryRecord],
    deals: Sequence[DealRecord],
    payments: Sequence[ClientPaymentRecord],
) -> list[RevenueTrendPoint]:
    by_entry = _bucket(window, entries, lambda entry: entry.transaction_date)
    by_deal = _bucket(window, (deal for deal in deals if deal.is_won), lambda deal: deal.created_at)
    by_payment = _bucket(
        window,
        (payment for payment in payments if payment.payment_status == "completed"),
        lambda payment: payment.booked_at,
    )

    points: list[RevenueTrendPoint] = []
    for day in window.dates():
        day_entries = by_entry.get(day, [])
        day_deals = by_deal.get(day, [])
        day_payments = by_payment.get(day, [])
        revenue = sum((entry.revenue_amount for entry in day_entries), start=ZERO)
        revenue += sum((deal.value for deal in day_deals), start=ZERO)
        points.append(
            RevenueTrendPoint(
                date=day,
                revenue=q(revenue),
                payments=q(sum((payment.amount for payment in day_payments), start=ZERO)),
                transactions=len(day_entries) + len(day_payments),
            )
        )
    return points


def finance_overview_chart(
    window: AnalyticsWindow,
    invoices: Sequence[InvoiceRecord],
    payments: Sequence[ClientPaymentRecord],
    expenses: Sequence[ExpenseRecord],
) -> list[FinanceTrendPoint]:
    by_invoice = _bucket(window, invoices, lambda invoice: invoice.created_at)
    by_payment = _bucket(
        window,
        (payment for payment in payments if payment.payment_status == "completed"),
        lambda payment: payment.booked_at,
    )
    by_expense = _bucket(window, expenses, lambda expense: expense.expense_date)

    points: list[FinanceTrendPoint] = []
    for day in window.dates():
        day_invoices = by_invoice.get(day, [])
        day_payments = by_payment.get(day, [])
        points.append(
            FinanceTrendPoint(
                date=day,
                invoiced=q(sum((invoice.total_amount for invoice in day_invoices), start=ZERO)),
                paid=q(sum((payment.amount for payment in day_payments), start=ZERO)),
                expenses=q(sum((expense.amount for expense in by_expense.get(day, [])), start=ZERO)),
                invoice_count=len(day_invoices),
                payment_count=len(day_payments),
            )
        )
    return points


def productivity_overview(
    window: AnalyticsWindow,
    tasks: Sequence[TaskRecord],
    activities: Sequence[ActivityRecord],
) -> list[ProductivityPoint]:
    by_task = _bucket(window, tasks, lambda task: task.created_at)
    by_activity = _bucket(window, activities, lambda activity: activity.created_at)

    points: list[ProductivityPoint] = []
    for day in window.dates():
        task_count = len(by_task.get(day, ()))
        activity_count = len(by_activity.get(day, ()))
        points.append(
            ProductivityPoint(
                date=day,
                tasks=task_count,
                activities=activity_count,
                productivity_score=min(task_count * 10 + activity_count * 5, 100),
            )
        )
    return points


def crm_pipeline_chart(deals: Sequence[DealRecord]) -> list[PipelineStagePoint]:
    values: dict[str, Decimal] = defaultdict(lambda: ZERO)
    counts: dict[str, int] = defaultdict(int)
    for deal in deals:
        values[deal.stage] += deal.value
        counts[deal.stage] += 1

    return [
        PipelineStagePoint(stage=stage, value=q(values[stage]), count=counts[stage])
        for stage in sorted(counts)
    ]


def performance_snapshot(analytics: AnalyticsCategories) -> PerformanceSnapshot:
    return PerformanceSnapshot(
        completion_rate=analytics.tasks.completion_rate,
        total_points=analytics.performance.total_points,
        achievements=analytics.performance.achievements_count,
        productivity_score=analytics.performance.productivity_score,
    )
