from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from portal.schemas.common import UTCDateTime
from portal.schemas.enums import CheckoutStatus, ExpenseStatus, InvoiceStatus, RecurringFrequency


class InvoiceItemRequest(BaseModel):
    description: str = Field(..., min_length=1, max_length=500)
    quantity: int = Field(default=1, ge=1)
    unit_price: float = Field(..., ge=0)
    student_id: Optional[int] = None
    course_id: Optional[int] = None


class InvoiceCreateRequest(BaseModel):
    parent_id: int
    due_date: UTCDateTime
    issue_date: Optional[UTCDateTime] = None
    status: InvoiceStatus = InvoiceStatus.UNPAID
    tax: float = Field(default=0, ge=0)
    notes: Optional[str] = None
    items: List[InvoiceItemRequest] = Field(..., min_length=1)


class InvoiceUpdateRequest(BaseModel):
    status: Optional[InvoiceStatus] = None
    due_date: Optional[UTCDateTime] = None
    paid_date: Optional[UTCDateTime] = None
    tax: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = None
    items: Optional[List[InvoiceItemRequest]] = Field(default=None, min_length=1)


class InvoiceFilterParams(BaseModel):
    status: Optional[InvoiceStatus] = None
    parent_id: Optional[int] = None


class ExpenseCreateRequest(BaseModel):
    amount: float = Field(..., gt=0)
    date: UTCDateTime
    vendor: str = Field(..., min_length=1, max_length=200)
    category: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    receipt_url: Optional[str] = None
    status: ExpenseStatus = ExpenseStatus.PENDING
    incurred_by_id: Optional[int] = None
    project_id: Optional[int] = None
    quarter: Optional[str] = None
    is_recurring: bool = False
    recurring_frequency: Optional[RecurringFrequency] = None
    next_recurring_date: Optional[UTCDateTime] = None


class ExpenseUpdateRequest(BaseModel):
    amount: Optional[float] = Field(default=None, gt=0)
    date: Optional[UTCDateTime] = None
    vendor: Optional[str] = Field(default=None, min_length=1, max_length=200)
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    receipt_url: Optional[str] = None
    status: Optional[ExpenseStatus] = None
    project_id: Optional[int] = None
    quarter: Optional[str] = None
    is_recurring: Optional[bool] = None
    recurring_frequency: Optional[RecurringFrequency] = None
    next_recurring_date: Optional[UTCDateTime] = None


class ExpenseFilterParams(BaseModel):
    category: Optional[str] = None
    status: Optional[ExpenseStatus] = None
    start_date: Optional[UTCDateTime] = None
    end_date: Optional[UTCDateTime] = None


class PayrollItemRequest(BaseModel):
    user_id: int
    base_salary: float = Field(default=0, ge=0)
    bonus: float = Field(default=0, ge=0)
    deductions: float = Field(default=0, ge=0)
    net_pay: Optional[float] = None
    payment_method: str = "Direct Deposit"
    notes: Optional[str] = None


class PayrollRunCreateRequest(BaseModel):
    period_start: UTCDateTime
    period_end: UTCDateTime
    payment_date: UTCDateTime
    notes: Optional[str] = None
    items: List[PayrollItemRequest] = Field(..., min_length=1)

    @model_validator(mode='after')
    def validate_period(self) -> 'PayrollRunCreateRequest':
        if self.period_end < self.period_start:
            raise ValueError("period_end cannot be before period_start")
        return self


class InventoryItemCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    sku: Optional[str] = Field(default=None, max_length=100)
    category: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = None
    quantity: int = Field(default=0, ge=0)
    location: Optional[str] = None
    unit_cost: Optional[float] = Field(default=None, ge=0)
    reorder_level: int = Field(default=5, ge=0)
    image_url: Optional[str] = None


class InventoryItemUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    sku: Optional[str] = Field(default=None, max_length=100)
    category: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = None
    quantity: Optional[int] = Field(default=None, ge=0)
    location: Optional[str] = None
    unit_cost: Optional[float] = Field(default=None, ge=0)
    reorder_level: Optional[int] = Field(default=None, ge=0)
    image_url: Optional[str] = None


class CheckoutCreateRequest(BaseModel):
    item_id: int
    team_id: int
    project_id: Optional[int] = None
    quantity: int = Field(default=1, ge=1)
    expected_return: Optional[UTCDateTime] = None
    notes: Optional[str] = None


class CheckoutUpdateRequest(BaseModel):
    status: Optional[CheckoutStatus] = None
    expected_return: Optional[UTCDateTime] = None
    notes: Optional[str] = None
