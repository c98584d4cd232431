from __future__ import annotations

from app.platform.security.repository import BaseRepository


class RevenueSummaryRepository(BaseRepository):
    resource = "reports.revenue.summary"


class RevenueTargetRepository(BaseRepository):
    resource = "reports.revenue.targets"
