from __future__ import annotations

import calendar
import logging
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.business.reporting.analytics.metrics import money_sum, profit_margin, q
from app.business.reporting.analytics.repository import validate_rows
from app.business.reporting.analytics.schemas import ZERO, ExpenseRecord, InvoiceRecord
from app.business.reporting.analytics.service import utc_today
from app.business.reporting.analytics.window import AnalyticsWindow, parse_iso_date
from app.business.reporting.finance.repository import FinanceSummaryRepository, FinanceTransactionRepository
from app.business.reporting.finance.schemas import (
    ExpenseCategoryRead,
    ExpenseSummaryRead,
    FinancePeriod,
    FinancePeriodRead,
    FinancialSummaryRead,
    InvoiceSummaryRead,
    ProfitabilityRead,
    RecentTransactionRead,
)
from app.business.workspace.models import Expense, Invoice


logger = logging.getLogger("app.finance.summary")

RECENT_PER_SOURCE = 5
RECENT_LIMIT = 10


def _shift_months(day: date, months: int) -> date:
    month_index = day.year * 12 + day.month - 1 + months
    year, month = divmod(month_index, 12)
    last_day = calendar.monthrange(year, month + 1)[1]
    return date(year, month + 1, min(day.day, last_day))


def preset_window(period: FinancePeriod, today: date) -> AnalyticsWindow:
    if period == "week":
        start = today - timedelta(days=7)
    elif period == "quarter":
        start = _shift_months(today, -3)
    elif period == "year":
        start = _shift_months(today, -12)
    else:
        start = _shift_months(today, -1)
    return AnalyticsWindow(start_date=start, end_date=today)


@dataclass(slots=True)
class FinanceSummaryService:
    summary_repository: FinanceSummaryRepository = FinanceSummaryRepository()
    transaction_repository: FinanceTransactionRepository = FinanceTransactionRepository()

    def summary(
        self,
        session: Session,
        caller_id: str,
        *,
        period: FinancePeriod = "month",
        start_date: str | None = None,
        end_date: str | None = None,
        today: date | None = None,
    ) -> FinancialSummaryRead:
        window, period_type = self._resolve_period(period, start_date, end_date, today or utc_today())

        invoice_stmt = self.summary_repository.apply_scope_query(select(Invoice), caller_id).where(
            Invoice.created_at >= window.start_at,
            Invoice.created_at <= window.end_at,
        )
        invoices = validate_rows(
            "invoices",
            InvoiceRecord,
            session.scalars(invoice_stmt.order_by(Invoice.created_at.asc(), Invoice.id.asc())).all(),
        )

        expense_stmt = self.summary_repository.apply_scope_query(select(Expense), caller_id).where(
            Expense.expense_date >= window.start_date,
            Expense.expense_date <= window.end_date,
        )
        expenses = validate_rows(
            "expenses",
            ExpenseRecord,
            session.scalars(expense_stmt.order_by(Expense.expense_date.asc(), Expense.id.asc())).all(),
        )

        statuses = Counter(invoice.status for invoice in invoices)
        invoiced = money_sum(invoice.total_amount for invoice in invoices)
        total_expenses = money_sum(expense.amount for expense in expenses)
        net_income = q(invoiced - total_expenses)

        categories: dict[str, list[Decimal]] = {}
        for expense in expenses:
            categories.setdefault(expense.category, []).append(expense.amount)

        logger.info(
            "finance.summary",
            extra={"user_id": caller_id, "window_days": window.days, "row_count": len(invoices) + len(expenses)},
        )

        return FinancialSummaryRead(
            period=FinancePeriodRead(type=period_type, start_date=window.start_date, end_date=window.end_date),
            revenue=InvoiceSummaryRead(
                total=invoiced,
                invoice_count=len(invoices),
                draft_invoices=statuses["draft"],
                pending_invoices=statuses["sent"],
                paid_invoices=statuses["paid"],
                overdue_invoices=statuses["overdue"],
            ),
            expenses=ExpenseSummaryRead(
                total=total_expenses,
                expense_count=len(expenses),
                by_category={
                    category: ExpenseCategoryRead(total=money_sum(amounts), count=len(amounts))
                    for category, amounts in sorted(categories.items())
                },
            ),
            profitability=ProfitabilityRead(
                net_income=net_income,
                profit_margin=profit_margin(net_income, invoiced),
                break_even=net_income >= ZERO,
            ),
            recent_transactions=self.recent_transactions(session, caller_id),
            generated_at=datetime.now(timezone.utc),
        )

    def recent_transactions(self, session: Session, owner_user_id: str) -> list[RecentTransactionRead]:
        """Latest invoices and expenses across all time, newest first."""

        invoice_stmt = self.transaction_repository.apply_scope_query(select(Invoice), owner_user_id)
        expense_stmt = self.transaction_repository.apply_scope_query(select(Expense), owner_user_id)
        invoices = validate_rows(
            "invoices",
            InvoiceRecord,
            session.scalars(invoice_stmt.order_by(Invoice.created_at.desc()).limit(RECENT_PER_SOURCE)).all(),
        )
        expenses = validate_rows(
            "expenses",
            ExpenseRecord,
            session.scalars(expense_stmt.order_by(Expense.created_at.desc()).limit(RECENT_PER_SOURCE)).all(),
        )

        transactions = [
            RecentTransactionRead(
                type="invoice",
                id=invoice.id,
                description=f"Invoice for {invoice.client_name}",
                amount=q(invoice.total_amount),
                date=invoice.created_at,
                status=invoice.status,
            )
            for invoice in invoices
        ]
        transactions.extend(
            RecentTransactionRead(
                type="expense",
                id=expense.id,
                description=expense.description,
                amount=q(-expense.amount),
                date=expense.created_at,
                category=expense.category,
            )
            for expense in expenses
            if expense.created_at is not None
        )
        transactions.sort(key=lambda item: (item.date, str(item.id)), reverse=True)
        return transactions[:RECENT_LIMIT]

    def _resolve_period(
        self,
        period: FinancePeriod,
        start_date: str | None,
        end_date: str | None,
        today: date,
    ) -> tuple[AnalyticsWindow, FinancePeriod | str]:
        start = parse_iso_date(start_date)
        end = parse_iso_date(end_date)
        if start is not None and end is not None and start <= end:
            return AnalyticsWindow(start_date=start, end_date=end), "custom"
        return preset_window(period, today), period


finance_summary_service = FinanceSummaryService()
