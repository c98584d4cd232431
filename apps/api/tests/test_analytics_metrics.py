from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from app.business.reporting.analytics.metrics import (
    crm_metrics,
    finance_metrics,
    notification_metrics,
    percent,
    performance_metrics,
    productivity_score,
    revenue_metrics,
    task_metrics,
    time_metrics,
)
from app.business.reporting.analytics.schemas import (
    ActivityRecord,
    ClientPaymentRecord,
    ClientRecord,
    DealRecord,
    ExpenseRecord,
    InvoiceRecord,
    NotificationRecord,
    RevenueEntryRecord,
    TaskRecord,
    UserStatsRecord,
)
from app.business.reporting.analytics.window import AnalyticsWindow


WINDOW = AnalyticsWindow(start_date=date(2024, 1, 1), end_date=date(2024, 1, 31))


def _at(day: int, hour: int = 9) -> datetime:
    return datetime(2024, 1, day, hour, 0, tzinfo=timezone.utc)


def _task(status: str = "todo", priority: str = "medium", **overrides: object) -> TaskRecord:
    data: dict[str, object] = {
        "id": uuid.uuid4(),
        "user_id": "user-1",
        "status": status,
        "priority": priority,
        "created_at": _at(10),
    }
    data.update(overrides)
    return TaskRecord.model_validate(data)


def _deal(stage: str, value: str) -> DealRecord:
    return DealRecord(id=uuid.uuid4(), user_id="user-1", stage=stage, value=Decimal(value), created_at=_at(5))


def _invoice(status: str, amount: str, **overrides: object) -> InvoiceRecord:
    data: dict[str, object] = {
        "id": uuid.uuid4(),
        "user_id": "user-1",
        "status": status,
        "total_amount": Decimal(amount),
        "created_at": _at(3),
    }
    data.update(overrides)
    return InvoiceRecord.model_validate(data)


def _payment(status: str, amount: str) -> ClientPaymentRecord:
    return ClientPaymentRecord(
        id=uuid.uuid4(),
        user_id="user-1",
        payment_status=status,
        amount=Decimal(amount),
        created_at=_at(4),
    )


def _expense(category: str, amount: str, billable: bool = False) -> ExpenseRecord:
    return ExpenseRecord(
        id=uuid.uuid4(),
        user_id="user-1",
        category=category,
        amount=Decimal(amount),
        billable=billable,
        expense_date=date(2024, 1, 6),
    )


def test_percent_rounds_half_up_and_guards_zero() -> None:
    assert percent(1, 3) == 33
    assert percent(2, 3) == 67
    assert percent(1, 8) == 13
    assert percent(5, 0) == 0


def test_task_metrics_counts_statuses_and_completion_time() -> None:
    tasks = [
        _task("completed", "high", points=5, created_at=_at(1), completed_at=_at(3)),
        _task("completed", "low", points=3, created_at=_at(2), completed_at=_at(3)),
        _task("in_progress", "urgent", points=None),
        _task("review", "medium"),
        _task("todo", "medium", due_date=date(2024, 1, 20)),
    ]

    result = task_metrics(tasks, reference_date=date(2024, 1, 31))

    assert result.total == 5
    assert result.completed == 2
    assert result.in_progress == 1
    assert result.review == 1
    assert result.todo == 1
    assert result.completion_rate == 40
    assert result.total_points == 8
    assert result.average_completion_time_days == 1.5
    assert result.overdue == 1
    assert result.by_priority == {"low": 1, "medium": 2, "high": 1, "urgent": 1}


def test_task_metrics_empty_input_is_all_zero() -> None:
    result = task_metrics([])
    assert result.total == 0
    assert result.completion_rate == 0
    assert result.average_completion_time_days == 0
    assert result.by_priority == {"low": 0, "medium": 0, "high": 0, "urgent": 0}


def test_revenue_metrics_combines_entries_and_won_deals() -> None:
    entries = [
        RevenueEntryRecord(id=uuid.uuid4(), user_id="user-1", revenue_amount=Decimal("100"), revenue_type="sales", transaction_date=_at(2)),
        RevenueEntryRecord(id=uuid.uuid4(), user_id="user-1", revenue_amount=Decimal("50.50"), revenue_type="commission", transaction_date=_at(3)),
        RevenueEntryRecord(id=uuid.uuid4(), user_id="user-1", revenue_amount=Decimal("25"), revenue_type="retainer", transaction_date=_at(4)),
    ]
    deals = [_deal("Closed Won", "1000"), _deal("Proposal", "500"), _deal("Closed Lost", "300")]
    payments = [_payment("completed", "400"), _payment("pending", "100")]

    result = revenue_metrics(entries, deals, payments, [_invoice("sent", "900")])

    assert result.total == Decimal("1175.50")
    assert result.sales == Decimal("100.00")
    assert result.commission == Decimal("50.50")
    assert result.retainer == Decimal("25.00")
    assert result.bonus == Decimal("0.00")
    assert result.crm_revenue == Decimal("1000.00")
    assert result.transaction_count == 4
    assert result.average_deal_size == Decimal("600.00")
    assert result.total_invoiced == Decimal("900.00")
    assert result.total_paid == Decimal("400.00")


def test_crm_metrics_conversion_and_pipeline() -> None:
    deals = [
        _deal("Closed Won", "1000"),
        _deal("Closed Lost", "200"),
        _deal("Lead", "300"),
        _deal("Negotiation", "500"),
    ]
    clients = [ClientRecord(id=uuid.uuid4(), user_id="user-1", name="Acme", created_at=_at(1))]

    result = crm_metrics(deals, clients)

    assert result.total_clients == 1
    assert result.total_deals == 4
    assert result.won_deals == 1
    assert result.lost_deals == 1
    assert result.active_deals == 2
    assert result.conversion_rate == 25
    assert result.average_deal_value == Decimal("500.00")
    assert result.pipeline_value == Decimal("800.00")


def test_crm_metrics_without_deals() -> None:
    result = crm_metrics([])
    assert result.conversion_rate == 0
    assert result.average_deal_value == Decimal("0.00")


def test_finance_outstanding_counts_only_completed_payments() -> None:
    invoices = [
        _invoice("paid", "500"),
        _invoice("sent", "300", due_date=date(2024, 1, 10)),
        _invoice("draft", "1000"),
        _invoice("overdue", "200"),
    ]
    payments = [
        _payment("completed", "500"),
        _payment("pending", "300"),
        _payment("refunded", "50"),
        _payment("failed", "200"),
    ]
    expenses = [_expense("travel", "120", billable=True), _expense("software", "80"), _expense("travel", "30")]

    result = finance_metrics(invoices, payments, expenses, reference_date=date(2024, 1, 31))

    assert result.total_invoices == 4
    assert result.paid_invoices == 1
    assert result.pending_invoices == 1
    assert result.draft_invoices == 1
    assert result.overdue_invoices == 2
    assert result.total_invoice_amount == Decimal("2000.00")
    assert result.paid_amount == Decimal("500.00")
    assert result.refunded_amount == Decimal("50.00")
    # non-draft invoices (1000) minus completed payments (500)
    assert result.outstanding_amount == Decimal("500.00")
    assert result.payment_completion_rate == 25
    assert result.total_expenses == Decimal("230.00")
    assert result.billable_expenses == Decimal("120.00")
    assert result.expenses_by_category == {"software": Decimal("80.00"), "travel": Decimal("150.00")}
    assert result.net_income == Decimal("1770.00")
    assert result.profit_margin == Decimal("88.50")


def test_finance_outstanding_never_negative() -> None:
    result = finance_metrics([_invoice("paid", "100")], [_payment("completed", "250")])
    assert result.outstanding_amount == Decimal("0.00")


def test_finance_metrics_without_invoices() -> None:
    result = finance_metrics([], [], [_expense("rent", "100")])
    assert result.payment_completion_rate == 0
    assert result.profit_margin == Decimal("0.00")
    assert result.net_income == Decimal("-100.00")


def test_productivity_score_weights_and_clamp() -> None:
    assert productivity_score(100, 1000, 10) == 100
    assert productivity_score(0, 0, 0) == 0
    # 0.5*50 + 0.3*50 + 0.2*50
    assert productivity_score(50, 500, 5) == 50
    assert productivity_score(100, 5000, 50) == 100


def test_performance_metrics_uses_stats_and_recent_activity() -> None:
    tasks = [
        _task("completed", created_at=_at(30)),
        _task("todo", created_at=_at(2)),
    ]
    stats = [UserStatsRecord(user_id="user-1", total_points=400)]
    activities = [
        ActivityRecord(id=uuid.uuid4(), user_id="user-1", created_at=_at(28)),
        ActivityRecord(id=uuid.uuid4(), user_id="user-1", created_at=_at(10)),
    ]

    result = performance_metrics(tasks, stats, [], activities, WINDOW)

    assert result.total_points == 400
    assert result.achievements_count == 0
    # 0.5*50 + 0.3*40 + 0.2*20 = 41
    assert result.productivity_score == 41
    # one activity and one task inside Jan 25..31
    assert result.activity_score == 2


def test_notification_metrics_engagement() -> None:
    notifications = [
        NotificationRecord(id=uuid.uuid4(), user_id="user-1", created_at=_at(1), read_at=_at(2)),
        NotificationRecord(id=uuid.uuid4(), user_id="user-1", created_at=_at(1)),
        NotificationRecord(id=uuid.uuid4(), user_id="user-1", created_at=_at(1)),
    ]
    result = notification_metrics(notifications)
    assert (result.total, result.read, result.unread, result.engagement_rate) == (3, 1, 2, 33)
    assert notification_metrics([]).engagement_rate == 0


def test_time_metrics_picks_busiest_day_and_hour() -> None:
    # 2024-01-02 is a Tuesday, 2024-01-03 a Wednesday.
    tasks = [
        _task(created_at=_at(2, 14)),
        _task(created_at=_at(2, 14)),
        _task(created_at=_at(3, 9)),
    ]
    activities = [ActivityRecord(id=uuid.uuid4(), user_id="user-1", created_at=_at(5, 8))]

    result = time_metrics(tasks, activities, WINDOW)

    assert result.active_days == 3
    assert result.most_productive_day == "Tuesday"
    assert result.most_productive_hour == 14


def test_time_metrics_ties_and_defaults() -> None:
    tied = [_task(created_at=_at(3, 16)), _task(created_at=_at(2, 11))]
    result = time_metrics(tied, [], WINDOW)
    assert result.most_productive_day == "Tuesday"
    assert result.most_productive_hour == 11

    empty = time_metrics([], [], WINDOW)
    assert empty.active_days == 0
    assert empty.most_productive_day == "Monday"
    assert empty.most_productive_hour == 10


def test_average_completion_time_rounds_to_two_places() -> None:
    start = _at(1)
    tasks = [_task("completed", created_at=start, completed_at=start + timedelta(hours=8))]
    assert task_metrics(tasks).average_completion_time_days == 0.33
