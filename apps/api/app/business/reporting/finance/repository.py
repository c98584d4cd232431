from __future__ import annotations

from app.platform.security.repository import BaseRepository


class FinanceSummaryRepository(BaseRepository):
    resource = "reports.finance.summary"


class FinanceTransactionRepository(BaseRepository):
    resource = "reports.finance.transactions"
