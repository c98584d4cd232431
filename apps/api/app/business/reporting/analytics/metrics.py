"""Pure reductions from typed entity rows to metric categories.

Every rate that would divide by zero is reported as ``0``. Money is summed as-is
(single currency) and quantized to cents.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal

from app.business.reporting.analytics.schemas import (
    REVENUE_TYPES,
    TASK_PRIORITIES,
    ZERO,
    AchievementRecord,
    ActivityRecord,
    ClientPaymentRecord,
    ClientRecord,
    CrmAnalytics,
    DealRecord,
    ExpenseRecord,
    FinanceAnalytics,
    InvoiceRecord,
    NotificationAnalytics,
    NotificationRecord,
    PerformanceAnalytics,
    RevenueAnalytics,
    RevenueEntryRecord,
    TaskAnalytics,
    TaskRecord,
    TimeAnalytics,
    UserStatsRecord,
)
from app.business.reporting.analytics.window import AnalyticsWindow, to_utc_date


WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
RECENT_ACTIVITY_DAYS = 7
POINTS_FOR_FULL_SCORE = 1000
TASKS_FOR_FULL_SCORE = 10


def q(value: Decimal | int) -> Decimal:
    return Decimal(value).quantize(Decimal("0.01"))


def percent(part: int | Decimal, whole: int | Decimal) -> int:
    if not whole:
        return 0
    ratio = Decimal(part) * 100 / Decimal(whole)
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def money_sum(values: Iterable[Decimal]) -> Decimal:
    return q(sum(values, start=ZERO))


def _mean(total: Decimal, count: int) -> Decimal:
    if count == 0:
        return q(ZERO)
    return q(total / count)


def completed_payments(payments: Iterable[ClientPaymentRecord]) -> list[ClientPaymentRecord]:
    return [payment for payment in payments if payment.payment_status == "completed"]


def won_deal_value(deals: Iterable[DealRecord]) -> Decimal:
    return money_sum(deal.value for deal in deals if deal.is_won)


def task_metrics(tasks: Sequence[TaskRecord], reference_date: date | None = None) -> TaskAnalytics:
    by_status = Counter(task.status for task in tasks)
    by_priority = Counter(task.priority for task in tasks)
    total = len(tasks)
    completed = by_status["completed"]

    durations = [
        task.completed_at - task.created_at
        for task in tasks
        if task.status == "completed" and task.completed_at is not None
    ]
    average_days = 0.0
    if durations:
        average = sum(durations, start=timedelta()) / len(durations)
        average_days = round(average.total_seconds() / 86400, 2)

    overdue = 0
    if reference_date is not None:
        overdue = sum(
            1
            for task in tasks
            if task.status != "completed" and task.due_date is not None and task.due_date < reference_date
        )

    return TaskAnalytics(
        total=total,
        completed=completed,
        in_progress=by_status["in_progress"],
        review=by_status["review"],
        todo=by_status["todo"],
        overdue=overdue,
        completion_rate=percent(completed, total),
        total_points=sum(task.points for task in tasks),
        average_completion_time_days=average_days,
        by_priority={priority: by_priority[priority] for priority in TASK_PRIORITIES},
    )


def revenue_metrics(
    entries: Sequence[RevenueEntryRecord],
    deals: Sequence[DealRecord],
    payments: Sequence[ClientPaymentRecord],
    invoices: Sequence[InvoiceRecord] = (),
) -> RevenueAnalytics:
    by_type = {revenue_type: ZERO for revenue_type in REVENUE_TYPES}
    for entry in entries:
        by_type[entry.revenue_type] += entry.revenue_amount

    crm_revenue = won_deal_value(deals)
    paid = completed_payments(payments)

    return RevenueAnalytics(
        total=q(sum(by_type.values(), start=ZERO) + crm_revenue),
        sales=q(by_type["sales"]),
        commission=q(by_type["commission"]),
        bonus=q(by_type["bonus"]),
        project=q(by_type["project"]),
        retainer=q(by_type["retainer"]),
        other=q(by_type["other"]),
        transaction_count=len(entries) + len(paid),
        average_deal_size=_mean(sum((deal.value for deal in deals), start=ZERO), len(deals)),
        crm_revenue=crm_revenue,
        total_invoiced=money_sum(invoice.total_amount for invoice in invoices),
        total_paid=money_sum(payment.amount for payment in paid),
    )


def crm_metrics(deals: Sequence[DealRecord], clients: Sequence[ClientRecord] = ()) -> CrmAnalytics:
    won = sum(1 for deal in deals if deal.is_won)
    open_deals = [deal for deal in deals if deal.is_open]

    return CrmAnalytics(
        total_clients=len(clients),
        total_deals=len(deals),
        won_deals=won,
        lost_deals=len(deals) - won - len(open_deals),
        active_deals=len(open_deals),
        conversion_rate=percent(won, len(deals)),
        average_deal_value=_mean(sum((deal.value for deal in deals), start=ZERO), len(deals)),
        pipeline_value=money_sum(deal.value for deal in open_deals),
    )


def finance_metrics(
    invoices: Sequence[InvoiceRecord],
    payments: Sequence[ClientPaymentRecord],
    expenses: Sequence[ExpenseRecord] = (),
    reference_date: date | None = None,
) -> FinanceAnalytics:
    by_status = Counter(invoice.status for invoice in invoices)

    overdue = 0
    for invoice in invoices:
        if invoice.status == "overdue":
            overdue += 1
        elif (
            reference_date is not None
            and invoice.status == "sent"
            and invoice.due_date is not None
            and invoice.due_date < reference_date
        ):
            overdue += 1

    invoiced = money_sum(invoice.total_amount for invoice in invoices)
    billed = money_sum(invoice.total_amount for invoice in invoices if invoice.status != "draft")
    paid_amount = money_sum(payment.amount for payment in completed_payments(payments))
    refunded = money_sum(payment.amount for payment in payments if payment.payment_status == "refunded")

    by_category: dict[str, Decimal] = {}
    for expense in expenses:
        by_category[expense.category] = by_category.get(expense.category, ZERO) + expense.amount
    total_expenses = money_sum(expense.amount for expense in expenses)
    net_income = q(invoiced - total_expenses)

    return FinanceAnalytics(
        total_invoices=len(invoices),
        paid_invoices=by_status["paid"],
        pending_invoices=by_status["sent"],
        draft_invoices=by_status["draft"],
        overdue_invoices=overdue,
        total_invoice_amount=invoiced,
        paid_amount=paid_amount,
        refunded_amount=refunded,
        outstanding_amount=max(q(ZERO), q(billed - paid_amount)),
        payment_completion_rate=percent(by_status["paid"], len(invoices)),
        total_expenses=total_expenses,
        billable_expenses=money_sum(expense.amount for expense in expenses if expense.billable),
        expenses_by_category={category: q(amount) for category, amount in sorted(by_category.items())},
        net_income=net_income,
        profit_margin=profit_margin(net_income, invoiced),
    )


def profit_margin(net_income: Decimal, revenue: Decimal) -> Decimal:
    if revenue <= 0:
        return q(ZERO)
    return q(net_income * 100 / revenue)


def productivity_score(completion_rate: int, total_points: int, task_count: int) -> int:
    points_factor = min(Decimal(total_points) / POINTS_FOR_FULL_SCORE, Decimal(1)) * 100
    activity_factor = min(Decimal(task_count) / TASKS_FOR_FULL_SCORE, Decimal(1)) * 100
    score = Decimal(completion_rate) * Decimal("0.5") + points_factor * Decimal("0.3") + activity_factor * Decimal("0.2")
    return max(0, min(100, int(score.quantize(Decimal("1"), rounding=ROUND_HALF_UP))))


def activity_score(
    activities: Sequence[ActivityRecord],
    tasks: Sequence[TaskRecord],
    window: AnalyticsWindow,
) -> int:
    since = max(window.start_date, window.end_date - timedelta(days=RECENT_ACTIVITY_DAYS - 1))
    recent_window = AnalyticsWindow(start_date=since, end_date=window.end_date)
    recent = sum(1 for activity in activities if recent_window.contains(activity.created_at))
    recent += sum(1 for task in tasks if recent_window.contains(task.created_at))
    return min(recent, 100)


def performance_metrics(
    tasks: Sequence[TaskRecord],
    stats: Sequence[UserStatsRecord],
    achievements: Sequence[AchievementRecord],
    activities: Sequence[ActivityRecord],
    window: AnalyticsWindow,
) -> PerformanceAnalytics:
    completed = sum(1 for task in tasks if task.status == "completed")
    total_points = sum(item.total_points for item in stats)

    return PerformanceAnalytics(
        total_points=total_points,
        productivity_score=productivity_score(percent(completed, len(tasks)), total_points, len(tasks)),
        achievements_count=len(achievements),
        activity_score=activity_score(activities, tasks, window),
    )


def notification_metrics(notifications: Sequence[NotificationRecord]) -> NotificationAnalytics:
    read = sum(1 for notification in notifications if notification.read_at is not None)
    return NotificationAnalytics(
        total=len(notifications),
        read=read,
        unread=len(notifications) - read,
        engagement_rate=percent(read, len(notifications)),
    )


def time_metrics(
    tasks: Sequence[TaskRecord],
    activities: Sequence[ActivityRecord],
    window: AnalyticsWindow,
) -> TimeAnalytics:
    active_dates = {to_utc_date(task.created_at) for task in tasks if window.contains(task.created_at)}
    active_dates.update(to_utc_date(item.created_at) for item in activities if window.contains(item.created_at))

    by_weekday = Counter(task.created_at.weekday() for task in tasks)
    by_hour = Counter(task.created_at.hour for task in tasks)

    most_productive_day = "Monday"
    if by_weekday:
        most_productive_day = WEEKDAYS[min(by_weekday, key=lambda day: (-by_weekday[day], day))]

    most_productive_hour = 10
    if by_hour:
        most_productive_hour = min(by_hour, key=lambda hour: (-by_hour[hour], hour))

    return TimeAnalytics(
        active_days=len(active_dates),
        most_productive_day=most_productive_day,
        most_productive_hour=most_productive_hour,
    )
