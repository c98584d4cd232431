from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.business.reporting.analytics.metrics import percent, q
from app.business.reporting.analytics.repository import validate_rows
from app.business.reporting.analytics.schemas import REVENUE_TYPES, ZERO, RevenueEntryRecord
from app.business.reporting.analytics.service import utc_today
from app.business.reporting.analytics.window import AnalyticsWindow, resolve_window, to_utc_date
from app.business.reporting.revenue.repository import RevenueSummaryRepository, RevenueTargetRepository
from app.business.reporting.revenue.schemas import (
    RevenuePeriodRow,
    RevenueSummaryRead,
    RevenueTargetProgressRow,
    RevenueTotalsRead,
    RevenueUserPerformanceRow,
    SummaryPeriod,
)
from app.business.workspace.models import Profile, RevenueEntry, RevenueTarget
from app.business.workspace.profiles import load_caller_context
from app.core.config import AnalyticsConfig


logger = logging.getLogger("app.revenue.summary")


def period_key(value: datetime | date, period: SummaryPeriod) -> str:
    day = to_utc_date(value)
    if period == "daily":
        return day.isoformat()
    if period == "weekly":
        # Weeks start on Sunday.
        return (day - timedelta(days=(day.weekday() + 1) % 7)).isoformat()
    if period == "monthly":
        return f"{day.year}-{day.month:02d}"
    if period == "quarterly":
        return f"{day.year}-Q{(day.month - 1) // 3 + 1}"
    return str(day.year)


def _by_type(entries: list[RevenueEntryRecord]) -> dict[str, Decimal]:
    totals = {revenue_type: ZERO for revenue_type in REVENUE_TYPES}
    for entry in entries:
        totals[entry.revenue_type] += entry.revenue_amount
    return totals


@dataclass(slots=True)
class RevenueReportingService:
    summary_repository: RevenueSummaryRepository = RevenueSummaryRepository()
    target_repository: RevenueTargetRepository = RevenueTargetRepository()

    def summary(
        self,
        session: Session,
        caller_id: str,
        *,
        config: AnalyticsConfig,
        user_id: str | None = None,
        period: SummaryPeriod = "monthly",
        start_date: str | None = None,
        end_date: str | None = None,
        today: date | None = None,
    ) -> RevenueSummaryRead:
        ctx = load_caller_context(session, caller_id, admin_role=config.admin_role)
        target_user_id = (user_id or None) if ctx.is_admin else (user_id or ctx.user_id)
        self.summary_repository.validate_read_scope(ctx, target_user_id)

        window = resolve_window(
            start_date,
            end_date,
            default_days=config.default_window_days,
            today=today or utc_today(),
            max_days=config.max_window_days,
        )

        stmt = self.summary_repository.apply_scope_query(select(RevenueEntry), target_user_id)
        stmt = (
            stmt.where(
                RevenueEntry.status == "active",
                RevenueEntry.transaction_date >= window.start_at,
                RevenueEntry.transaction_date <= window.end_at,
            )
            .add_columns(Profile.full_name, Profile.company)
            .outerjoin(Profile, Profile.user_id == RevenueEntry.user_id)
            .order_by(RevenueEntry.transaction_date.asc(), RevenueEntry.id.asc())
        )
        rows = session.execute(stmt).all()
        profiles = {entry.user_id: (full_name, company) for entry, full_name, company in rows}
        entries = validate_rows("user_revenue", RevenueEntryRecord, [row[0] for row in rows])

        totals = _by_type(entries)
        grand_total = sum(totals.values(), start=ZERO)
        summary_totals = RevenueTotalsRead(
            total_revenue=q(grand_total),
            **{f"{revenue_type}_revenue": q(amount) for revenue_type, amount in totals.items()},
            transaction_count=len(entries),
            average_deal_size=q(grand_total / len(entries)) if entries else q(ZERO),
        )

        user_performance: list[RevenueUserPerformanceRow] = []
        if ctx.is_admin:
            user_performance = self._user_performance(entries, profiles)

        logger.info(
            "revenue.summary",
            extra={
                "user_id": ctx.user_id,
                "target_user_id": target_user_id,
                "window_days": window.days,
                "row_count": len(entries),
            },
        )

        return RevenueSummaryRead(
            period=period,
            start_date=window.start_date,
            end_date=window.end_date,
            user_id=target_user_id,
            totals=summary_totals,
            period_data=self._period_rows(entries, period),
            user_performance=user_performance,
            targets=self._target_progress(session, target_user_id, window, entries),
        )

    def _period_rows(self, entries: list[RevenueEntryRecord], period: SummaryPeriod) -> list[RevenuePeriodRow]:
        grouped: dict[str, list[RevenueEntryRecord]] = defaultdict(list)
        for entry in entries:
            grouped[period_key(entry.transaction_date, period)].append(entry)

        rows: list[RevenuePeriodRow] = []
        for key in sorted(grouped):
            by_type = _by_type(grouped[key])
            rows.append(
                RevenuePeriodRow(
                    period=key,
                    total_revenue=q(sum(by_type.values(), start=ZERO)),
                    **{f"{revenue_type}_revenue": q(amount) for revenue_type, amount in by_type.items()},
                    transaction_count=len(grouped[key]),
                )
            )
        return rows

    def _user_performance(
        self,
        entries: list[RevenueEntryRecord],
        profiles: dict[str, tuple[str | None, str | None]],
    ) -> list[RevenueUserPerformanceRow]:
        totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
        counts: dict[str, int] = defaultdict(int)
        for entry in entries:
            totals[entry.user_id] += entry.revenue_amount
            counts[entry.user_id] += 1

        rows = [
            RevenueUserPerformanceRow(
                user_id=user_id,
                user_name=profiles.get(user_id, (None, None))[0] or "Unknown",
                company=profiles.get(user_id, (None, None))[1],
                total_revenue=q(totals[user_id]),
                transaction_count=counts[user_id],
                average_deal_size=q(totals[user_id] / counts[user_id]),
            )
            for user_id in counts
        ]
        rows.sort(key=lambda row: (-row.total_revenue, row.user_id))
        return rows

    def _target_progress(
        self,
        session: Session,
        target_user_id: str | None,
        window: AnalyticsWindow,
        entries: list[RevenueEntryRecord],
    ) -> list[RevenueTargetProgressRow]:
        stmt = self.target_repository.apply_scope_query(select(RevenueTarget), target_user_id)
        stmt = stmt.where(
            RevenueTarget.period_start <= window.end_date,
            RevenueTarget.period_end >= window.start_date,
        ).order_by(RevenueTarget.period_start.desc(), RevenueTarget.id.asc())

        rows: list[RevenueTargetProgressRow] = []
        for target in session.scalars(stmt).all():
            achieved = sum(
                (
                    entry.revenue_amount
                    for entry in entries
                    if entry.user_id == target.user_id
                    and target.period_start <= to_utc_date(entry.transaction_date) <= target.period_end
                ),
                start=ZERO,
            )
            rows.append(
                RevenueTargetProgressRow(
                    target_id=target.id,
                    user_id=target.user_id,
                    target_period=target.target_period,
                    period_start=target.period_start,
                    period_end=target.period_end,
                    target_amount=q(target.target_amount),
                    achieved_amount=q(achieved),
                    attainment_rate=percent(achieved, target.target_amount),
                )
            )
        return rows


revenue_reporting_service = RevenueReportingService()
