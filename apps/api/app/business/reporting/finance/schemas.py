from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel


FinancePeriod = Literal["week", "month", "quarter", "year"]


class FinancePeriodRead(BaseModel):
    type: FinancePeriod | Literal["custom"]
    start_date: date
    end_date: date


class InvoiceSummaryRead(BaseModel):
    total: Decimal
    invoice_count: int
    draft_invoices: int
    pending_invoices: int
    paid_invoices: int
    overdue_invoices: int


class ExpenseCategoryRead(BaseModel):
    total: Decimal
    count: int


class ExpenseSummaryRead(BaseModel):
    total: Decimal
    expense_count: int
    by_category: dict[str, ExpenseCategoryRead]


class ProfitabilityRead(BaseModel):
    net_income: Decimal
    profit_margin: Decimal
    break_even: bool


class RecentTransactionRead(BaseModel):
    type: Literal["invoice", "expense"]
    id: UUID
    description: str
    amount: Decimal
    date: datetime
    status: str | None = None
    category: str | None = None


class FinancialSummaryRead(BaseModel):
    period: FinancePeriodRead
    revenue: InvoiceSummaryRead
    expenses: ExpenseSummaryRead
    profitability: ProfitabilityRead
    recent_transactions: list[RecentTransactionRead]
    generated_at: datetime
