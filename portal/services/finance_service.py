from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select

from portal.core.logging import log_function_call, logger
from portal.models import Expense, Invoice, PayrollRun
from portal.schemas.enums import InvoiceStatus
from portal.services.base_service import BaseService
from portal.utils.dates import add_months, month_start, utcnow

CASH_FLOW_MONTHS = 6
TOP_CATEGORIES = 6
RECENT_EXPENSES = 6


def build_cash_flow(
    invoices: List[Invoice],
    expenses: List[Expense],
    now: datetime,
    months: int = CASH_FLOW_MONTHS
) -> List[Dict[str, Any]]:
    """
    Income and expense per calendar month, oldest month first.

    Income counts paid invoices by their paid date; expenses count by expense date.
    """
    current = month_start(now)
    buckets = [add_months(current, -offset) for offset in range(months - 1, -1, -1)]
    income: Dict[tuple, float] = defaultdict(float)
    spent: Dict[tuple, float] = defaultdict(float)

    for invoice in invoices:
        if invoice.status == InvoiceStatus.PAID.value and invoice.paid_date is not None:
            income[(invoice.paid_date.year, invoice.paid_date.month)] += invoice.total
    for expense in expenses:
        spent[(expense.date.year, expense.date.month)] += expense.amount

    return [
        {
            "month": bucket.strftime("%b %Y"),
            "income": round(income[(bucket.year, bucket.month)], 2),
            "expense": round(spent[(bucket.year, bucket.month)], 2),
        }
        for bucket in buckets
    ]


def top_categories(expenses: List[Expense], limit: int = TOP_CATEGORIES) -> List[Dict[str, Any]]:
    totals: Dict[str, float] = defaultdict(float)
    for expense in expenses:
        totals[expense.category] += expense.amount
    ranked = sorted(totals.items(), key=lambda pair: pair[1], reverse=True)[:limit]
    return [{"category": category, "amount": round(amount, 2)} for category, amount in ranked]


def compute_kpis(
    invoices: List[Invoice],
    expenses: List[Expense],
    total_payroll: float,
    now: datetime
) -> Dict[str, Any]:
    def same_month(value: Optional[datetime]) -> bool:
        return value is not None and value.year == now.year and value.month == now.month

    paid = [i for i in invoices if i.status == InvoiceStatus.PAID.value]
    total_revenue = sum(i.total for i in paid)
    total_expenses = sum(e.amount for e in expenses)
    total_costs = total_expenses + total_payroll
    outstanding = sum(
        i.total for i in invoices
        if i.status not in (InvoiceStatus.PAID.value, InvoiceStatus.CANCELLED.value)
    )
    return {
        "total_revenue": round(total_revenue, 2),
        "total_expenses": round(total_expenses, 2),
        "total_payroll": round(total_payroll, 2),
        "total_costs": round(total_costs, 2),
        "net_profit": round(total_revenue - total_costs, 2),
        "outstanding": round(outstanding, 2),
        "month_revenue": round(sum(i.total for i in paid if same_month(i.paid_date)), 2),
        "month_expenses": round(sum(e.amount for e in expenses if same_month(e.date)), 2),
        "invoice_count": len(invoices),
        "paid_invoice_count": len(paid),
        "unpaid_invoice_count": sum(1 for i in invoices if i.status == InvoiceStatus.UNPAID.value),
    }


class FinanceService(BaseService):
    """Read-only financial overview for the admin dashboard."""

    @log_function_call(logger)
    async def summary(self, organization_id: int, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utcnow()
        invoices = await self._scalars(
            select(Invoice).where(Invoice.organization_id == organization_id)
        )
        expenses = await self._scalars(
            select(Expense)
            .where(Expense.organization_id == organization_id)
            .order_by(Expense.date.desc(), Expense.id.desc())
        )
        total_payroll = (await self.db.execute(
            select(func.coalesce(func.sum(PayrollRun.total_amount), 0))
            .where(PayrollRun.organization_id == organization_id)
        )).scalar_one()

        return {
            "kpis": compute_kpis(invoices, expenses, float(total_payroll), now),
            "cash_flow": build_cash_flow(invoices, expenses, now),
            "expenses_by_category": top_categories(expenses),
            "recent_expenses": expenses[:RECENT_EXPENSES],
        }
