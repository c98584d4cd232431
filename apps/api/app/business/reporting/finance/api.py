from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.business.reporting.finance.schemas import FinancePeriod, FinancialSummaryRead
from app.business.reporting.finance.service import finance_summary_service
from app.core.auth import AuthUser, get_current_user
from app.core.database import get_db


router = APIRouter(prefix="/api/finance", tags=["reports", "finance"])


@router.get("/summary", response_model=FinancialSummaryRead)
def financial_summary(
    period: FinancePeriod = Query(default="month"),
    start_date: str | None = Query(default=None),
    end_date: str | None = Query(default=None),
    db: Session = Depends(get_db),
    user: AuthUser = Depends(get_current_user),
) -> FinancialSummaryRead:
    return finance_summary_service.summary(
        db,
        user.sub,
        period=period,
        start_date=start_date,
        end_date=end_date,
    )
