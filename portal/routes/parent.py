from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.dependencies import get_db
from portal.core.permissions import require_parent
from portal.models import User
from portal.routes.finance import get_invoice_service
from portal.schemas.finance import InvoiceResponse
from portal.schemas.user import ChildCreatedResponse, ChildCreateRequest, ChildResponse
from portal.services import InvoiceService, ParentService

router = APIRouter(tags=["Parent Portal"])


def get_parent_service(db: AsyncSession = Depends(get_db)) -> ParentService:
    return ParentService(db=db)


@router.get("/children", response_model=List[ChildResponse])
async def list_children(
    current_user: User = Depends(require_parent),
    service: ParentService = Depends(get_parent_service)
):
    return await service.list_children(current_user.organization_id, current_user)


@router.post("/children", response_model=ChildCreatedResponse, status_code=status.HTTP_201_CREATED)
async def add_child(
    data: ChildCreateRequest,
    current_user: User = Depends(require_parent),
    service: ParentService = Depends(get_parent_service)
):
    """Create a student account linked to the parent; the temporary password is shown once"""
    return await service.add_child(current_user.organization_id, data, current_user)


@router.get("/invoices", response_model=List[InvoiceResponse])
async def list_invoices(
    current_user: User = Depends(require_parent),
    service: ParentService = Depends(get_parent_service)
):
    return await service.list_invoices(current_user.organization_id, current_user)


@router.get("/invoices/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(
    invoice_id: int,
    current_user: User = Depends(require_parent),
    service: ParentService = Depends(get_parent_service)
):
    return await service.get_invoice(current_user.organization_id, invoice_id, current_user)


@router.get("/invoices/{invoice_id}/pdf")
async def download_invoice_pdf(
    invoice_id: int,
    current_user: User = Depends(require_parent),
    service: ParentService = Depends(get_parent_service),
    invoices: InvoiceService = Depends(get_invoice_service)
):
    invoice = await service.get_invoice(current_user.organization_id, invoice_id, current_user)
    pdf = await invoices.render_pdf(current_user.organization_id, invoice.id)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{invoice.invoice_number}.pdf"'}
    )
