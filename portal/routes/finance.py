from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.dependencies import get_db
from portal.core.permissions import require_admin
from portal.models import User
from portal.schemas.finance import (
    ExpenseCreateRequest,
    ExpenseFilterParams,
    ExpenseResponse,
    ExpenseUpdateRequest,
    FinanceSummaryResponse,
    InvoiceCreateRequest,
    InvoiceFilterParams,
    InvoiceListResponse,
    InvoiceResponse,
    InvoiceUpdateRequest,
    PayrollRunCreateRequest,
    PayrollRunResponse,
    PayrollRunSummary,
    RecurringProcessResponse,
    SendInvoiceResponse
)
from portal.services import (
    EmailService,
    ExpenseService,
    FinanceService,
    InvoiceService,
    PayrollService
)

router = APIRouter(tags=["Finance"])


# Service dependencies
def get_email_service() -> EmailService:
    return EmailService()


def get_invoice_service(
    db: AsyncSession = Depends(get_db),
    email_service: EmailService = Depends(get_email_service)
) -> InvoiceService:
    return InvoiceService(db=db, email_service=email_service)


def get_expense_service(db: AsyncSession = Depends(get_db)) -> ExpenseService:
    return ExpenseService(db=db)


def get_payroll_service(db: AsyncSession = Depends(get_db)) -> PayrollService:
    return PayrollService(db=db)


def get_finance_service(db: AsyncSession = Depends(get_db)) -> FinanceService:
    return FinanceService(db=db)


# Invoices

@router.get("/invoices", response_model=InvoiceListResponse)
async def list_invoices(
    filters: InvoiceFilterParams = Depends(),
    current_user: User = Depends(require_admin),
    service: InvoiceService = Depends(get_invoice_service)
):
    """Invoices with revenue and outstanding totals"""
    return await service.list_invoices(current_user.organization_id, filters)


@router.post("/invoices", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    data: InvoiceCreateRequest,
    current_user: User = Depends(require_admin),
    service: InvoiceService = Depends(get_invoice_service)
):
    return await service.create_invoice(current_user.organization_id, data, current_user)


@router.get("/invoices/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(
    invoice_id: int,
    current_user: User = Depends(require_admin),
    service: InvoiceService = Depends(get_invoice_service)
):
    return await service.get_invoice(current_user.organization_id, invoice_id)


@router.patch("/invoices/{invoice_id}", response_model=InvoiceResponse)
async def update_invoice(
    invoice_id: int,
    data: InvoiceUpdateRequest,
    current_user: User = Depends(require_admin),
    service: InvoiceService = Depends(get_invoice_service)
):
    return await service.update_invoice(current_user.organization_id, invoice_id, data, current_user)


@router.delete("/invoices/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_invoice(
    invoice_id: int,
    current_user: User = Depends(require_admin),
    service: InvoiceService = Depends(get_invoice_service)
):
    await service.delete_invoice(current_user.organization_id, invoice_id)


@router.get("/invoices/{invoice_id}/pdf")
async def download_invoice_pdf(
    invoice_id: int,
    current_user: User = Depends(require_admin),
    service: InvoiceService = Depends(get_invoice_service)
):
    invoice = await service.get_invoice(current_user.organization_id, invoice_id)
    pdf = await service.render_pdf(current_user.organization_id, invoice_id)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{invoice.invoice_number}.pdf"'}
    )


@router.post("/invoices/{invoice_id}/send", response_model=SendInvoiceResponse)
async def send_invoice(
    invoice_id: int,
    current_user: User = Depends(require_admin),
    service: InvoiceService = Depends(get_invoice_service)
):
    """Email the invoice PDF to the parent on the invoice"""
    return await service.send_invoice(current_user.organization_id, invoice_id, current_user)


# Expenses

@router.get("/expenses", response_model=List[ExpenseResponse])
async def list_expenses(
    filters: ExpenseFilterParams = Depends(),
    current_user: User = Depends(require_admin),
    service: ExpenseService = Depends(get_expense_service)
):
    return await service.list_expenses(current_user.organization_id, filters)


@router.post("/expenses", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
async def create_expense(
    data: ExpenseCreateRequest,
    current_user: User = Depends(require_admin),
    service: ExpenseService = Depends(get_expense_service)
):
    return await service.create_expense(current_user.organization_id, data, current_user)


@router.post("/expenses/process-recurring", response_model=RecurringProcessResponse)
async def process_recurring_expenses(
    current_user: User = Depends(require_admin),
    service: ExpenseService = Depends(get_expense_service)
):
    """Clone every recurring expense that has come due"""
    return await service.process_recurring(current_user.organization_id)


@router.get("/expenses/{expense_id}", response_model=ExpenseResponse)
async def get_expense(
    expense_id: int,
    current_user: User = Depends(require_admin),
    service: ExpenseService = Depends(get_expense_service)
):
    return await service.get_expense(current_user.organization_id, expense_id)


@router.patch("/expenses/{expense_id}", response_model=ExpenseResponse)
async def update_expense(
    expense_id: int,
    data: ExpenseUpdateRequest,
    current_user: User = Depends(require_admin),
    service: ExpenseService = Depends(get_expense_service)
):
    return await service.update_expense(current_user.organization_id, expense_id, data)


@router.delete("/expenses/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_expense(
    expense_id: int,
    current_user: User = Depends(require_admin),
    service: ExpenseService = Depends(get_expense_service)
):
    await service.delete_expense(current_user.organization_id, expense_id)


# Payroll

@router.get("/payroll", response_model=List[PayrollRunSummary])
async def list_payroll_runs(
    current_user: User = Depends(require_admin),
    service: PayrollService = Depends(get_payroll_service)
):
    return await service.list_runs(current_user.organization_id)


@router.post("/payroll", response_model=PayrollRunResponse, status_code=status.HTTP_201_CREATED)
async def create_payroll_run(
    data: PayrollRunCreateRequest,
    current_user: User = Depends(require_admin),
    service: PayrollService = Depends(get_payroll_service)
):
    return await service.create_run(current_user.organization_id, data, current_user)


@router.get("/payroll/{run_id}", response_model=PayrollRunResponse)
async def get_payroll_run(
    run_id: int,
    current_user: User = Depends(require_admin),
    service: PayrollService = Depends(get_payroll_service)
):
    return await service.get_run(current_user.organization_id, run_id)


@router.delete("/payroll/{run_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_payroll_run(
    run_id: int,
    current_user: User = Depends(require_admin),
    service: PayrollService = Depends(get_payroll_service)
):
    await service.delete_run(current_user.organization_id, run_id)


# Summary

@router.get("/summary", response_model=FinanceSummaryResponse)
async def finance_summary(
    current_user: User = Depends(require_admin),
    service: FinanceService = Depends(get_finance_service)
):
    """KPIs, six-month cash flow and expense breakdown"""
    return await service.summary(current_user.organization_id)
