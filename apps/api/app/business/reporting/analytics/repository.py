from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, TypeVar

from pydantic import BaseModel, ValidationError
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.business.reporting.analytics.schemas import (
    AchievementRecord,
    ActivityRecord,
    ClientPaymentRecord,
    ClientRecord,
    DealRecord,
    ExpenseRecord,
    InvoiceRecord,
    NotificationRecord,
    ProfileRecord,
    RevenueEntryRecord,
    TaskRecord,
    UserStatsRecord,
)
from app.business.reporting.analytics.window import AnalyticsWindow
from app.business.workspace.models import (
    ActivityFeedItem,
    Client,
    ClientPayment,
    Deal,
    Expense,
    Invoice,
    Notification,
    Profile,
    RevenueEntry,
    Task,
    UserAchievement,
    UserStats,
)
from app.platform.security.repository import BaseRepository


logger = logging.getLogger("app.analytics.repository")

RecordT = TypeVar("RecordT", bound=BaseModel)


@dataclass(frozen=True, slots=True)
class AnalyticsScope:
    """Whose rows to read (``None`` = every owner) and over which window."""

    user_id: str | None
    window: AnalyticsWindow


@dataclass(frozen=True, slots=True)
class FetchResult:
    source: str
    rows: tuple[Any, ...] = field(default_factory=tuple)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def succeeded(cls, source: str, rows: Iterable[Any]) -> FetchResult:
        return cls(source=source, rows=tuple(rows))

    @classmethod
    def failed(cls, source: str, error: BaseException | str) -> FetchResult:
        return cls(source=source, rows=(), error=str(error) or type(error).__name__)


class AnalyticsDataSource(Protocol):
    """Read-only accessors for every entity the analytics pipeline consumes."""

    def get_profile(self, user_id: str) -> ProfileRecord | None: ...

    def fetch_tasks(self, scope: AnalyticsScope) -> Sequence[TaskRecord]: ...

    def fetch_user_stats(self, scope: AnalyticsScope) -> Sequence[UserStatsRecord]: ...

    def fetch_revenue(self, scope: AnalyticsScope) -> Sequence[RevenueEntryRecord]: ...

    def fetch_notifications(self, scope: AnalyticsScope) -> Sequence[NotificationRecord]: ...

    def fetch_activities(self, scope: AnalyticsScope) -> Sequence[ActivityRecord]: ...

    def fetch_achievements(self, scope: AnalyticsScope) -> Sequence[AchievementRecord]: ...

    def fetch_clients(self, scope: AnalyticsScope) -> Sequence[ClientRecord]: ...

    def fetch_deals(self, scope: AnalyticsScope) -> Sequence[DealRecord]: ...

    def fetch_invoices(self, scope: AnalyticsScope) -> Sequence[InvoiceRecord]: ...

    def fetch_payments(self, scope: AnalyticsScope) -> Sequence[ClientPaymentRecord]: ...

    def fetch_expenses(self, scope: AnalyticsScope) -> Sequence[ExpenseRecord]: ...


def validate_rows(source: str, record_cls: type[RecordT], rows: Iterable[Any]) -> list[RecordT]:
    """Convert raw rows into typed records, dropping the ones that do not fit."""

    records: list[RecordT] = []
    for row in rows:
        try:
            records.append(record_cls.model_validate(row))
        except ValidationError as exc:
            logger.warning(
                "analytics.row_invalid",
                extra={"source": source, "error": f"{exc.error_count()} validation errors: {exc.errors()[0]['msg']}"},
            )
    return records


class SqlAnalyticsDataSource(BaseRepository):
    """Analytics data source over the workspace tables.

    Every fetch opens its own session so branches can run concurrently.
    """

    resource = "reports.analytics"

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self.session_factory = session_factory

    def get_profile(self, user_id: str) -> ProfileRecord | None:
        with self.session_factory() as session:
            profile = session.scalar(select(Profile).where(Profile.user_id == user_id))
            if profile is None:
                return None
            return ProfileRecord.model_validate(profile)

    def fetch_tasks(self, scope: AnalyticsScope) -> list[TaskRecord]:
        return self._fetch("tasks", Task, TaskRecord, scope, Task.created_at)

    def fetch_user_stats(self, scope: AnalyticsScope) -> list[UserStatsRecord]:
        return self._fetch("user_stats", UserStats, UserStatsRecord, scope, None, order_by=UserStats.user_id)

    def fetch_revenue(self, scope: AnalyticsScope) -> list[RevenueEntryRecord]:
        stmt = select(RevenueEntry).where(RevenueEntry.status == "active")
        return self._fetch("user_revenue", RevenueEntry, RevenueEntryRecord, scope, RevenueEntry.transaction_date, stmt=stmt)

    def fetch_notifications(self, scope: AnalyticsScope) -> list[NotificationRecord]:
        return self._fetch("notifications", Notification, NotificationRecord, scope, Notification.created_at)

    def fetch_activities(self, scope: AnalyticsScope) -> list[ActivityRecord]:
        return self._fetch("activity_feed", ActivityFeedItem, ActivityRecord, scope, ActivityFeedItem.created_at)

    def fetch_achievements(self, scope: AnalyticsScope) -> list[AchievementRecord]:
        return self._fetch(
            "user_achievements", UserAchievement, AchievementRecord, scope, None, order_by=UserAchievement.earned_at
        )

    def fetch_clients(self, scope: AnalyticsScope) -> list[ClientRecord]:
        return self._fetch("clients", Client, ClientRecord, scope, Client.created_at)

    def fetch_deals(self, scope: AnalyticsScope) -> list[DealRecord]:
        return self._fetch("deals", Deal, DealRecord, scope, Deal.created_at)

    def fetch_invoices(self, scope: AnalyticsScope) -> list[InvoiceRecord]:
        return self._fetch("invoices", Invoice, InvoiceRecord, scope, Invoice.created_at)

    def fetch_payments(self, scope: AnalyticsScope) -> list[ClientPaymentRecord]:
        booked_at = func.coalesce(ClientPayment.payment_date, ClientPayment.created_at)
        return self._fetch("client_payments", ClientPayment, ClientPaymentRecord, scope, booked_at)

    def fetch_expenses(self, scope: AnalyticsScope) -> list[ExpenseRecord]:
        stmt = self.apply_scope_query(select(Expense), scope.user_id).where(
            Expense.expense_date >= scope.window.start_date,
            Expense.expense_date <= scope.window.end_date,
        )
        with self.session_factory() as session:
            rows = session.scalars(stmt.order_by(Expense.expense_date.asc(), Expense.id.asc())).all()
            return validate_rows("expenses", ExpenseRecord, rows)

    def _fetch(
        self,
        source: str,
        model: type[Any],
        record_cls: type[RecordT],
        scope: AnalyticsScope,
        date_column: Any,
        *,
        stmt: Any = None,
        order_by: Any = None,
    ) -> list[RecordT]:
        query = self.apply_scope_query(stmt if stmt is not None else select(model), scope.user_id)
        if date_column is not None:
            query = query.where(date_column >= scope.window.start_at, date_column <= scope.window.end_at)
            query = query.order_by(date_column.asc(), model.id.asc())
        else:
            query = query.order_by((order_by if order_by is not None else model.id).asc())

        with self.session_factory() as session:
            rows = session.scalars(query).all()
            return validate_rows(source, record_cls, rows)
