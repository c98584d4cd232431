"""Rule table turning computed metrics into human-readable insights.

Rules are evaluated in table order and every matching rule contributes one
insight; there is no short-circuiting between rules of the same category.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass

from app.business.reporting.analytics.schemas import (
    AnalyticsCategories,
    Insight,
    InsightCategory,
    InsightPriority,
    InsightType,
)


def _money(value: object) -> str:
    return f"${value:,.2f}"


@dataclass(frozen=True, slots=True)
class InsightRule:
    category: InsightCategory
    type: InsightType
    title: str
    priority: InsightPriority
    predicate: Callable[[AnalyticsCategories], bool]
    describe: Callable[[AnalyticsCategories], str]

    def evaluate(self, analytics: AnalyticsCategories) -> Insight | None:
        if not self.predicate(analytics):
            return None
        return Insight(
            category=self.category,
            type=self.type,
            title=self.title,
            description=self.describe(analytics),
            priority=self.priority,
        )


INSIGHT_RULES: tuple[InsightRule, ...] = (
    InsightRule(
        category="tasks",
        type="success",
        title="Excellent Task Completion",
        priority="low",
        predicate=lambda a: a.tasks.total > 0 and a.tasks.completion_rate >= 80,
        describe=lambda a: f"Outstanding {a.tasks.completion_rate}% completion rate. Keep up the great work!",
    ),
    InsightRule(
        category="tasks",
        type="warning",
        title="Low Task Completion Rate",
        priority="high",
        predicate=lambda a: a.tasks.total > 0 and a.tasks.completion_rate < 50,
        describe=lambda a: (
            f"Only {a.tasks.completion_rate}% of tasks are completed. "
            "Consider focusing on fewer, high-priority tasks."
        ),
    ),
    InsightRule(
        category="tasks",
        type="warning",
        title="Too Many Urgent Tasks",
        priority="high",
        predicate=lambda a: a.tasks.by_priority.get("urgent", 0)
        > a.tasks.by_priority.get("high", 0) + a.tasks.by_priority.get("medium", 0),
        describe=lambda a: (
            f"{a.tasks.by_priority.get('urgent', 0)} urgent tasks outnumber your high and medium priority work. "
            "Re-prioritize to avoid constant firefighting."
        ),
    ),
    InsightRule(
        category="crm",
        type="success",
        title="Strong Deal Conversion",
        priority="low",
        predicate=lambda a: a.crm.total_deals > 0 and a.crm.conversion_rate >= 20,
        describe=lambda a: (
            f"Excellent {a.crm.conversion_rate}% deal conversion rate. Your sales process is working well."
        ),
    ),
    InsightRule(
        category="crm",
        type="warning",
        title="Low Deal Conversion Rate",
        priority="high",
        predicate=lambda a: a.crm.total_deals > 0 and a.crm.conversion_rate < 10,
        describe=lambda a: (
            f"Only {a.crm.conversion_rate}% of deals are being won. Consider reviewing your sales process."
        ),
    ),
    InsightRule(
        category="finance",
        type="success",
        title="Excellent Payment Collection",
        priority="low",
        predicate=lambda a: a.finance.total_invoices > 0 and a.finance.payment_completion_rate >= 90,
        describe=lambda a: (
            f"{a.finance.payment_completion_rate}% of invoices are paid. Great cash flow management!"
        ),
    ),
    InsightRule(
        category="finance",
        type="warning",
        title="High Outstanding Amount",
        priority="high",
        predicate=lambda a: a.finance.payment_completion_rate < 90
        and a.finance.outstanding_amount > a.finance.paid_amount,
        describe=lambda a: (
            f"You have {_money(a.finance.outstanding_amount)} in outstanding payments. "
            "Consider following up on overdue invoices."
        ),
    ),
    InsightRule(
        category="finance",
        type="warning",
        title="Expenses Exceed Invoicing",
        priority="high",
        predicate=lambda a: a.finance.net_income < 0,
        describe=lambda a: (
            f"Expenses of {_money(a.finance.total_expenses)} exceed the "
            f"{_money(a.finance.total_invoice_amount)} invoiced in this period."
        ),
    ),
    InsightRule(
        category="revenue",
        type="info",
        title="Revenue Performance",
        priority="medium",
        predicate=lambda a: a.revenue.total > 0,
        describe=lambda a: (
            f"Generated {_money(a.revenue.total)} in total revenue "
            f"with {a.revenue.transaction_count} transactions."
        ),
    ),
    InsightRule(
        category="performance",
        type="success",
        title="High Productivity Score",
        priority="low",
        predicate=lambda a: a.performance.productivity_score >= 80,
        describe=lambda a: (
            f"Your productivity score of {a.performance.productivity_score} shows excellent performance."
        ),
    ),
    InsightRule(
        category="notifications",
        type="info",
        title="Unread Notifications Piling Up",
        priority="medium",
        predicate=lambda a: a.notifications.total > 0 and a.notifications.engagement_rate < 50,
        describe=lambda a: (
            f"{a.notifications.unread} of {a.notifications.total} notifications are still unread."
        ),
    ),
)


def generate_insights(
    analytics: AnalyticsCategories,
    categories: Iterable[str] | None = None,
    rules: Iterable[InsightRule] = INSIGHT_RULES,
) -> list[Insight]:
    wanted = set(categories) if categories is not None else None
    insights: list[Insight] = []
    for rule in rules:
        if wanted is not None and rule.category not in wanted:
            continue
        insight = rule.evaluate(analytics)
        if insight is not None:
            insights.append(insight)
    return insights
