from app.business.reporting.analytics.errors import InvalidActionError
from app.business.reporting.analytics.insights import INSIGHT_RULES, InsightRule, generate_insights
from app.business.reporting.analytics.repository import (
    AnalyticsDataSource,
    AnalyticsScope,
    FetchResult,
    SqlAnalyticsDataSource,
)
from app.business.reporting.analytics.service import AnalyticsService
from app.business.reporting.analytics.window import AnalyticsWindow, resolve_window, trailing_window

__all__ = [
    "INSIGHT_RULES",
    "AnalyticsDataSource",
    "AnalyticsScope",
    "AnalyticsService",
    "AnalyticsWindow",
    "FetchResult",
    "InsightRule",
    "InvalidActionError",
    "SqlAnalyticsDataSource",
    "generate_insights",
    "resolve_window",
    "trailing_window",
]
