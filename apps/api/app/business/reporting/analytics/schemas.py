from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import StrEnum
from typing import Annotated, Literal
from uuid import UUID

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field


WON_STAGE = "Closed Won"
LOST_STAGE = "Closed Lost"
TERMINAL_STAGES = frozenset({WON_STAGE, LOST_STAGE})

ZERO = Decimal("0")


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _none_as_zero(value: object) -> object:
    return 0 if value is None else value


CalendarDay = date
UtcDatetime = Annotated[datetime, AfterValidator(_to_utc)]
Money = Annotated[Decimal, BeforeValidator(_none_as_zero), Field(ge=0)]
Count = Annotated[int, BeforeValidator(_none_as_zero), Field(ge=0)]

TaskStatus = Literal["todo", "in_progress", "review", "completed"]
TaskPriority = Literal["low", "medium", "high", "urgent"]
InvoiceStatus = Literal["draft", "sent", "paid", "overdue"]
PaymentStatus = Literal["pending", "processing", "completed", "failed", "refunded"]
RevenueType = Literal["sales", "commission", "bonus", "project", "retainer", "other"]

TASK_PRIORITIES: tuple[str, ...] = ("low", "medium", "high", "urgent")
REVENUE_TYPES: tuple[str, ...] = ("sales", "commission", "bonus", "project", "retainer", "other")


class AnalyticsAction(StrEnum):
    COMPREHENSIVE = "get_comprehensive_analytics"
    TASKS = "get_task_analytics"
    REVENUE = "get_revenue_analytics"
    PERFORMANCE = "get_user_performance"
    NOTIFICATIONS = "get_notification_analytics"
    REAL_TIME = "get_real_time_dashboard"


# Entity records validated at the fetch boundary.


class _Record(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore", frozen=True)


class ProfileRecord(_Record):
    user_id: str
    full_name: str | None = None
    role: str = "user"


class TaskRecord(_Record):
    id: UUID
    user_id: str
    title: str = ""
    status: TaskStatus = "todo"
    priority: TaskPriority = "medium"
    points: Count = 0
    due_date: date | None = None
    created_at: UtcDatetime
    completed_at: UtcDatetime | None = None


class DealRecord(_Record):
    id: UUID
    user_id: str
    title: str = ""
    value: Money = ZERO
    stage: str = "Lead"
    client_id: UUID | None = None
    created_at: UtcDatetime

    @property
    def is_won(self) -> bool:
        return self.stage == WON_STAGE

    @property
    def is_open(self) -> bool:
        return self.stage not in TERMINAL_STAGES


class ClientRecord(_Record):
    id: UUID
    user_id: str
    name: str = ""
    company: str | None = None
    created_at: UtcDatetime


class InvoiceRecord(_Record):
    id: UUID
    user_id: str
    client_name: str = ""
    total_amount: Money = ZERO
    status: InvoiceStatus = "draft"
    due_date: date | None = None
    created_at: UtcDatetime


class ExpenseRecord(_Record):
    id: UUID
    user_id: str
    description: str = ""
    amount: Money = ZERO
    category: str = "other"
    expense_date: date
    billable: bool = False
    vendor: str | None = None
    created_at: UtcDatetime | None = None


class ClientPaymentRecord(_Record):
    id: UUID
    user_id: str
    amount: Money = ZERO
    payment_status: PaymentStatus = "pending"
    invoice_id: UUID | None = None
    deal_id: UUID | None = None
    payment_date: UtcDatetime | None = None
    created_at: UtcDatetime

    @property
    def booked_at(self) -> datetime:
        return self.payment_date or self.created_at


class RevenueEntryRecord(_Record):
    id: UUID
    user_id: str
    revenue_amount: Money = ZERO
    revenue_type: RevenueType = "other"
    transaction_date: UtcDatetime
    client_id: UUID | None = None


class NotificationRecord(_Record):
    id: UUID
    user_id: str
    title: str = ""
    read_at: UtcDatetime | None = None
    created_at: UtcDatetime


class ActivityRecord(_Record):
    id: UUID
    user_id: str
    activity_type: str = ""
    created_at: UtcDatetime


class AchievementRecord(_Record):
    id: UUID
    user_id: str
    title: str = ""
    points: Count = 0
    earned_at: UtcDatetime | None = None


class UserStatsRecord(_Record):
    user_id: str
    total_points: Count = 0
    level: int = 1


# Metric categories. Every field has a zero default so a category can degrade
# to an all-zero payload when its data source is unavailable.


class TaskAnalytics(BaseModel):
    total: int = 0
    completed: int = 0
    in_progress: int = 0
    review: int = 0
    todo: int = 0
    overdue: int = 0
    completion_rate: int = 0
    total_points: int = 0
    average_completion_time_days: float = 0.0
    by_priority: dict[str, int] = Field(default_factory=lambda: {priority: 0 for priority in TASK_PRIORITIES})


class RevenueAnalytics(BaseModel):
    total: Decimal = ZERO
    sales: Decimal = ZERO
    commission: Decimal = ZERO
    bonus: Decimal = ZERO
    project: Decimal = ZERO
    retainer: Decimal = ZERO
    other: Decimal = ZERO
    transaction_count: int = 0
    average_deal_size: Decimal = ZERO
    crm_revenue: Decimal = ZERO
    total_invoiced: Decimal = ZERO
    total_paid: Decimal = ZERO


class CrmAnalytics(BaseModel):
    total_clients: int = 0
    total_deals: int = 0
    won_deals: int = 0
    lost_deals: int = 0
    active_deals: int = 0
    conversion_rate: int = 0
    average_deal_value: Decimal = ZERO
    pipeline_value: Decimal = ZERO


class FinanceAnalytics(BaseModel):
    total_invoices: int = 0
    paid_invoices: int = 0
    pending_invoices: int = 0
    draft_invoices: int = 0
    overdue_invoices: int = 0
    total_invoice_amount: Decimal = ZERO
    paid_amount: Decimal = ZERO
    refunded_amount: Decimal = ZERO
    outstanding_amount: Decimal = ZERO
    payment_completion_rate: int = 0
    total_expenses: Decimal = ZERO
    billable_expenses: Decimal = ZERO
    expenses_by_category: dict[str, Decimal] = Field(default_factory=dict)
    net_income: Decimal = ZERO
    profit_margin: Decimal = ZERO


class PerformanceAnalytics(BaseModel):
    total_points: int = 0
    productivity_score: int = 0
    achievements_count: int = 0
    activity_score: int = 0


class NotificationAnalytics(BaseModel):
    total: int = 0
    read: int = 0
    unread: int = 0
    engagement_rate: int = 0


class TimeAnalytics(BaseModel):
    active_days: int = 0
    most_productive_day: str = "Monday"
    most_productive_hour: int = 10


class AnalyticsCategories(BaseModel):
    tasks: TaskAnalytics = Field(default_factory=TaskAnalytics)
    revenue: RevenueAnalytics = Field(default_factory=RevenueAnalytics)
    crm: CrmAnalytics = Field(default_factory=CrmAnalytics)
    finance: FinanceAnalytics = Field(default_factory=FinanceAnalytics)
    performance: PerformanceAnalytics = Field(default_factory=PerformanceAnalytics)
    notifications: NotificationAnalytics = Field(default_factory=NotificationAnalytics)
    time: TimeAnalytics = Field(default_factory=TimeAnalytics)


# Chart series.


class TaskTrendPoint(BaseModel):
    date: CalendarDay
    created: int
    completed: int
    completion_rate: int


class RevenueTrendPoint(BaseModel):
    date: CalendarDay
    revenue: Decimal
    payments: Decimal
    transactions: int


class FinanceTrendPoint(BaseModel):
    date: CalendarDay
    invoiced: Decimal
    paid: Decimal
    expenses: Decimal
    invoice_count: int
    payment_count: int


class ProductivityPoint(BaseModel):
    date: CalendarDay
    tasks: int
    activities: int
    productivity_score: int


class PipelineStagePoint(BaseModel):
    stage: str
    value: Decimal
    count: int


class PerformanceSnapshot(BaseModel):
    completion_rate: int
    total_points: int
    achievements: int
    productivity_score: int


class AnalyticsCharts(BaseModel):
    task_completion_trend: list[TaskTrendPoint]
    revenue_trend: list[RevenueTrendPoint]
    crm_pipeline_chart: list[PipelineStagePoint]
    finance_overview_chart: list[FinanceTrendPoint]
    productivity_overview: list[ProductivityPoint]
    performance_metrics: PerformanceSnapshot


# Insights.

InsightCategory = Literal["tasks", "revenue", "crm", "finance", "performance", "notifications"]
InsightType = Literal["success", "warning", "info"]
InsightPriority = Literal["low", "medium", "high"]


class Insight(BaseModel):
    category: InsightCategory
    type: InsightType
    title: str
    description: str
    priority: InsightPriority


# Request / response payloads.


class AnalyticsParams(BaseModel):
    model_config = ConfigDict(extra="ignore")

    user_id: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    include_charts: bool = True


class AnalyticsRequest(BaseModel):
    action: str = ""
    params: AnalyticsParams = Field(default_factory=AnalyticsParams)


class AnalyticsPeriod(BaseModel):
    start_date: date
    end_date: date
    days: int


class AnalyticsUserInfo(BaseModel):
    id: str
    name: str
    role: str
    is_admin: bool


class ComprehensiveAnalyticsRead(BaseModel):
    analytics: AnalyticsCategories
    charts: AnalyticsCharts | None = None
    insights: list[Insight]
    period: AnalyticsPeriod
    user_info: AnalyticsUserInfo


class TaskChartsRead(BaseModel):
    task_completion_trend: list[TaskTrendPoint] | None = None


class TaskAnalyticsRead(BaseModel):
    task_analytics: TaskAnalytics
    charts: TaskChartsRead
    insights: list[Insight]


class RevenueChartsRead(BaseModel):
    revenue_trend: list[RevenueTrendPoint] | None = None
    crm_pipeline_chart: list[PipelineStagePoint] | None = None
    finance_overview_chart: list[FinanceTrendPoint] | None = None


class RevenueAnalyticsRead(BaseModel):
    revenue_analytics: RevenueAnalytics
    crm_analytics: CrmAnalytics
    finance_analytics: FinanceAnalytics
    charts: RevenueChartsRead
    insights: list[Insight]


class PerformanceChartsRead(BaseModel):
    performance_metrics: PerformanceSnapshot | None = None


class UserPerformanceRead(BaseModel):
    performance: PerformanceAnalytics
    charts: PerformanceChartsRead
    insights: list[Insight]


class NotificationAnalyticsRead(BaseModel):
    notification_analytics: NotificationAnalytics
    insights: list[Insight]
