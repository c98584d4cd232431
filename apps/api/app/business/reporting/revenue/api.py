from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.business.reporting.revenue.schemas import RevenueSummaryRead, SummaryPeriod
from app.business.reporting.revenue.service import revenue_reporting_service
from app.core.auth import AuthUser, get_current_user
from app.core.config import AnalyticsConfig, get_settings
from app.core.database import get_db


router = APIRouter(prefix="/api/revenue", tags=["reports", "revenue"])


@router.get("/summary", response_model=RevenueSummaryRead)
def revenue_summary(
    user_id: str | None = Query(default=None),
    period: SummaryPeriod = Query(default="monthly"),
    start_date: str | None = Query(default=None),
    end_date: str | None = Query(default=None),
    db: Session = Depends(get_db),
    user: AuthUser = Depends(get_current_user),
) -> RevenueSummaryRead:
    return revenue_reporting_service.summary(
        db,
        user.sub,
        config=AnalyticsConfig.from_settings(get_settings()),
        user_id=user_id,
        period=period,
        start_date=start_date,
        end_date=end_date,
    )
