from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from portal.schemas.common import ORMModel, UserBrief
from portal.schemas.user.responses import ParentSummary


class InvoiceItemResponse(ORMModel):
    id: int
    description: str
    quantity: int
    unit_price: float
    total: float
    student_id: Optional[int] = None
    course_id: Optional[int] = None


class InvoiceResponse(ORMModel):
    id: int
    invoice_number: str
    parent_id: Optional[int] = None
    parent: Optional[ParentSummary] = None
    status: str
    issue_date: datetime
    due_date: datetime
    paid_date: Optional[datetime] = None
    subtotal: float
    tax: float
    total: float
    notes: Optional[str] = None
    items: List[InvoiceItemResponse] = []
    created_at: datetime
    updated_at: datetime


class InvoiceStats(BaseModel):
    total: int
    total_revenue: float
    unpaid_amount: float
    pending: int


class InvoiceListResponse(BaseModel):
    items: List[InvoiceResponse]
    stats: InvoiceStats


class SendInvoiceResponse(BaseModel):
    success: bool
    message: str
    recipient: str


class ExpenseResponse(ORMModel):
    id: int
    amount: float
    date: datetime
    vendor: str
    category: str
    description: Optional[str] = None
    receipt_url: Optional[str] = None
    status: str
    incurred_by_id: Optional[int] = None
    project_id: Optional[int] = None
    quarter: Optional[str] = None
    is_recurring: bool
    recurring_frequency: Optional[str] = None
    next_recurring_date: Optional[datetime] = None
    created_at: datetime


class RecurringProcessResponse(BaseModel):
    processed: int
    created_ids: List[int]


class PayrollItemResponse(ORMModel):
    id: int
    user_id: Optional[int] = None
    user: Optional[UserBrief] = None
    base_salary: float
    bonus: float
    deductions: float
    net_pay: float
    payment_method: str
    notes: Optional[str] = None


class PayrollRunSummary(ORMModel):
    id: int
    period_start: datetime
    period_end: datetime
    payment_date: datetime
    status: str
    total_amount: float
    item_count: int
    created_at: datetime


class PayrollRunResponse(ORMModel):
    id: int
    period_start: datetime
    period_end: datetime
    payment_date: datetime
    status: str
    total_amount: float
    notes: Optional[str] = None
    items: List[PayrollItemResponse] = []
    created_at: datetime


class FinanceKPIs(BaseModel):
    total_revenue: float
    total_expenses: float
    total_payroll: float
    total_costs: float
    net_profit: float
    outstanding: float
    month_revenue: float
    month_expenses: float
    invoice_count: int
    paid_invoice_count: int
    unpaid_invoice_count: int


class CashFlowPoint(BaseModel):
    month: str
    income: float
    expense: float


class CategoryTotal(BaseModel):
    category: str
    amount: float


class FinanceSummaryResponse(BaseModel):
    kpis: FinanceKPIs
    cash_flow: List[CashFlowPoint]
    expenses_by_category: List[CategoryTotal]
    recent_expenses: List[ExpenseResponse]


class InventoryItemResponse(ORMModel):
    id: int
    name: str
    sku: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    quantity: int
    location: Optional[str] = None
    unit_cost: Optional[float] = None
    reorder_level: int
    image_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class InventoryCatalogItem(ORMModel):
    id: int
    name: str
    category: Optional[str] = None
    description: Optional[str] = None
    quantity: int
    location: Optional[str] = None
    image_url: Optional[str] = None


class CheckoutItemBrief(ORMModel):
    id: int
    name: str
    sku: Optional[str] = None


class CheckoutResponse(ORMModel):
    id: int
    item_id: int
    team_id: int
    project_id: Optional[int] = None
    quantity: int
    checkout_date: datetime
    expected_return: Optional[datetime] = None
    return_date: Optional[datetime] = None
    status: str
    notes: Optional[str] = None
    item: CheckoutItemBrief
    user: UserBrief
