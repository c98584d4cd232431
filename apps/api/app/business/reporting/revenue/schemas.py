from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel


SummaryPeriod = Literal["daily", "weekly", "monthly", "quarterly", "yearly"]


class RevenueTotalsRead(BaseModel):
    total_revenue: Decimal
    sales_revenue: Decimal
    commission_revenue: Decimal
    bonus_revenue: Decimal
    project_revenue: Decimal
    retainer_revenue: Decimal
    other_revenue: Decimal
    transaction_count: int
    average_deal_size: Decimal


class RevenuePeriodRow(BaseModel):
    period: str
    total_revenue: Decimal
    sales_revenue: Decimal
    commission_revenue: Decimal
    bonus_revenue: Decimal
    project_revenue: Decimal
    retainer_revenue: Decimal
    other_revenue: Decimal
    transaction_count: int


class RevenueUserPerformanceRow(BaseModel):
    user_id: str
    user_name: str
    company: str | None
    total_revenue: Decimal
    transaction_count: int
    average_deal_size: Decimal


class RevenueTargetProgressRow(BaseModel):
    target_id: UUID
    user_id: str
    target_period: str
    period_start: date
    period_end: date
    target_amount: Decimal
    achieved_amount: Decimal
    attainment_rate: int


class RevenueSummaryRead(BaseModel):
    period: SummaryPeriod
    start_date: date
    end_date: date
    user_id: str | None
    totals: RevenueTotalsRead
    period_data: list[RevenuePeriodRow]
    user_performance: list[RevenueUserPerformanceRow]
    targets: list[RevenueTargetProgressRow]
