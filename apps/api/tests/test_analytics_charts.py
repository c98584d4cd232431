from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from app.business.reporting.analytics.charts import (
    crm_pipeline_chart,
    finance_overview_chart,
    performance_snapshot,
    productivity_overview,
    revenue_trend,
    task_completion_trend,
)
from app.business.reporting.analytics.schemas import (
    ActivityRecord,
    AnalyticsCategories,
    ClientPaymentRecord,
    DealRecord,
    ExpenseRecord,
    InvoiceRecord,
    PerformanceAnalytics,
    RevenueEntryRecord,
    TaskAnalytics,
    TaskRecord,
)
from app.business.reporting.analytics.window import AnalyticsWindow


WINDOW = AnalyticsWindow(start_date=date(2024, 1, 1), end_date=date(2024, 1, 7))


def _at(day: int, hour: int = 12) -> datetime:
    return datetime(2024, 1, day, hour, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    ("start", "end", "expected"),
    [
        (date(2024, 1, 1), date(2024, 1, 1), 1),
        (date(2024, 1, 1), date(2024, 1, 31), 31),
        (date(2024, 2, 1), date(2024, 3, 1), 30),
    ],
)
def test_daily_series_cover_every_day_in_order(start: date, end: date, expected: int) -> None:
    window = AnalyticsWindow(start_date=start, end_date=end)

    for series in (
        task_completion_trend(window, []),
        revenue_trend(window, [], [], []),
        finance_overview_chart(window, [], [], []),
        productivity_overview(window, [], []),
    ):
        assert len(series) == expected
        days = [point.date for point in series]
        assert days == sorted(days)
        assert days[0] == start
        assert days[-1] == end


def test_task_completion_trend_buckets_by_created_and_completed_day() -> None:
    tasks = [
        TaskRecord(id=uuid.uuid4(), user_id="u1", status="completed", created_at=_at(2), completed_at=_at(3)),
        TaskRecord(id=uuid.uuid4(), user_id="u1", status="todo", created_at=_at(2)),
        # outside the window
        TaskRecord(id=uuid.uuid4(), user_id="u1", status="todo", created_at=datetime(2023, 12, 31, tzinfo=timezone.utc)),
    ]

    series = task_completion_trend(WINDOW, tasks)

    by_day = {point.date: point for point in series}
    assert by_day[date(2024, 1, 2)].created == 2
    assert by_day[date(2024, 1, 2)].completed == 0
    assert by_day[date(2024, 1, 3)].completed == 1
    assert by_day[date(2024, 1, 3)].completion_rate == 0
    assert sum(point.created for point in series) == 2


def test_revenue_trend_adds_won_deals_and_keeps_payments_separate() -> None:
    entries = [RevenueEntryRecord(id=uuid.uuid4(), user_id="u1", revenue_amount=Decimal("100"), transaction_date=_at(1))]
    deals = [
        DealRecord(id=uuid.uuid4(), user_id="u1", stage="Closed Won", value=Decimal("250"), created_at=_at(1)),
        DealRecord(id=uuid.uuid4(), user_id="u1", stage="Lead", value=Decimal("999"), created_at=_at(1)),
    ]
    payments = [
        ClientPaymentRecord(
            id=uuid.uuid4(),
            user_id="u1",
            amount=Decimal("80"),
            payment_status="completed",
            created_at=_at(1),
            payment_date=_at(4),
        ),
        ClientPaymentRecord(id=uuid.uuid4(), user_id="u1", amount=Decimal("20"), payment_status="pending", created_at=_at(4)),
    ]

    series = revenue_trend(WINDOW, entries, deals, payments)

    assert series[0].revenue == Decimal("350.00")
    assert series[0].transactions == 1
    assert series[3].payments == Decimal("80.00")
    assert series[3].transactions == 1
    assert series[3].revenue == Decimal("0.00")


def test_finance_overview_chart_sums_by_day() -> None:
    invoices = [
        InvoiceRecord(id=uuid.uuid4(), user_id="u1", total_amount=Decimal("500"), status="sent", created_at=_at(5)),
        InvoiceRecord(id=uuid.uuid4(), user_id="u1", total_amount=Decimal("100"), status="draft", created_at=_at(5)),
    ]
    payments = [
        ClientPaymentRecord(id=uuid.uuid4(), user_id="u1", amount=Decimal("300"), payment_status="completed", created_at=_at(6)),
    ]
    expenses = [
        ExpenseRecord(id=uuid.uuid4(), user_id="u1", amount=Decimal("40"), expense_date=date(2024, 1, 5)),
    ]

    series = finance_overview_chart(WINDOW, invoices, payments, expenses)

    assert series[4].invoiced == Decimal("600.00")
    assert series[4].invoice_count == 2
    assert series[4].expenses == Decimal("40.00")
    assert series[5].paid == Decimal("300.00")
    assert series[5].payment_count == 1


def test_productivity_overview_caps_daily_score() -> None:
    tasks = [TaskRecord(id=uuid.uuid4(), user_id="u1", created_at=_at(1)) for _ in range(9)]
    activities = [ActivityRecord(id=uuid.uuid4(), user_id="u1", created_at=_at(1)) for _ in range(3)]
    activities.append(ActivityRecord(id=uuid.uuid4(), user_id="u1", created_at=_at(2)))

    series = productivity_overview(WINDOW, tasks, activities)

    assert series[0].tasks == 9
    assert series[0].activities == 3
    assert series[0].productivity_score == 100
    assert series[1].productivity_score == 5
    assert series[2].productivity_score == 0


def test_crm_pipeline_chart_groups_by_stage_name() -> None:
    deals = [
        DealRecord(id=uuid.uuid4(), user_id="u1", stage="Proposal", value=Decimal("100"), created_at=_at(1)),
        DealRecord(id=uuid.uuid4(), user_id="u1", stage="Lead", value=Decimal("50"), created_at=_at(1)),
        DealRecord(id=uuid.uuid4(), user_id="u1", stage="Proposal", value=Decimal("25"), created_at=_at(1)),
    ]

    chart = crm_pipeline_chart(deals)

    assert [point.stage for point in chart] == ["Lead", "Proposal"]
    assert chart[1].value == Decimal("125.00")
    assert chart[1].count == 2
    assert crm_pipeline_chart([]) == []


def test_performance_snapshot_reads_categories() -> None:
    analytics = AnalyticsCategories(
        tasks=TaskAnalytics(completion_rate=75),
        performance=PerformanceAnalytics(total_points=300, achievements_count=4, productivity_score=62),
    )

    snapshot = performance_snapshot(analytics)

    assert snapshot.completion_rate == 75
    assert snapshot.total_points == 300
    assert snapshot.achievements == 4
    assert snapshot.productivity_score == 62
