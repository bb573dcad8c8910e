import re
from typing import Any, Dict, List, Optional

from sqlalchemy import select

from portal.core.errors import BadRequestError, ExternalServiceError
from portal.core.logging import log_function_call, logger
from portal.models import Invoice, InvoiceItem, Organization, ParentProfile, User
from portal.schemas.enums import InvoiceStatus
from portal.schemas.finance.requests import (
    InvoiceCreateRequest,
    InvoiceFilterParams,
    InvoiceItemRequest,
    InvoiceUpdateRequest
)
from portal.services.activity_service import ActivityService
from portal.services.base_service import BaseService
from portal.services.email_service import EmailService
from portal.services.invoice_pdf import render_invoice_pdf
from portal.services.settings_service import SettingsService
from portal.utils.dates import utcnow

_NUMBER_SUFFIX = re.compile(r"(\d+)$")


def next_invoice_number(last_number: Optional[str], prefix: str = "INV") -> str:
    """INV-0001 for the first invoice, then one more than the last issued number."""
    sequence = 1
    if last_number:
        match = _NUMBER_SUFFIX.search(last_number)
        if match:
            sequence = int(match.group(1)) + 1
    return f"{prefix}-{sequence:04d}"


def build_items(items: List[InvoiceItemRequest]) -> List[InvoiceItem]:
    return [
        InvoiceItem(
            description=item.description,
            quantity=item.quantity,
            unit_price=item.unit_price,
            total=round(item.quantity * item.unit_price, 2),
            student_id=item.student_id,
            course_id=item.course_id,
        )
        for item in items
    ]


def compute_invoice_stats(invoices: List[Invoice]) -> Dict[str, Any]:
    return {
        "total": len(invoices),
        "total_revenue": round(sum(i.total for i in invoices if i.status == InvoiceStatus.PAID.value), 2),
        "unpaid_amount": round(sum(i.total for i in invoices if i.status != InvoiceStatus.PAID.value), 2),
        "pending": sum(1 for i in invoices if i.status == InvoiceStatus.UNPAID.value),
    }


class InvoiceService(BaseService):
    def __init__(self, db, email_service: Optional[EmailService] = None):
        super().__init__(db)
        self.email_service = email_service

    async def _last_invoice_number(self, organization_id: int) -> Optional[str]:
        result = await self.db.execute(
            select(Invoice.invoice_number)
            .where(Invoice.organization_id == organization_id)
            .order_by(Invoice.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_invoices(self, organization_id: int, filters: InvoiceFilterParams) -> Dict[str, Any]:
        stmt = select(Invoice).where(Invoice.organization_id == organization_id)
        if filters.status:
            stmt = stmt.where(Invoice.status == filters.status.value)
        if filters.parent_id:
            stmt = stmt.where(Invoice.parent_id == filters.parent_id)
        invoices = await self._scalars(stmt.order_by(Invoice.created_at.desc(), Invoice.id.desc()))

        all_invoices = invoices
        if filters.status or filters.parent_id:
            all_invoices = await self._scalars(
                select(Invoice).where(Invoice.organization_id == organization_id)
            )
        return {"items": invoices, "stats": compute_invoice_stats(all_invoices)}

    async def get_invoice(self, organization_id: int, invoice_id: int) -> Invoice:
        return await self._fetch(Invoice, invoice_id, organization_id, label="Invoice")

    async def create_invoice(self, organization_id: int, data: InvoiceCreateRequest, actor: User) -> Invoice:
        """
        Issue a new invoice to a parent with the next sequential number.

        Raises:
            BadRequestError: If the parent profile does not belong to the organization
        """
        result = await self.db.execute(
            select(ParentProfile.id).where(
                ParentProfile.id == data.parent_id,
                ParentProfile.organization_id == organization_id
            )
        )
        if result.first() is None:
            raise BadRequestError("Parent not found")

        prefix = await SettingsService(self.db).get(organization_id, "invoice_prefix")
        number = next_invoice_number(await self._last_invoice_number(organization_id), str(prefix))
        items = build_items(data.items)
        subtotal = round(sum(item.total for item in items), 2)
        now = utcnow()

        async with self.transaction():
            invoice = Invoice(
                organization_id=organization_id,
                invoice_number=number,
                parent_id=data.parent_id,
                status=data.status.value,
                issue_date=data.issue_date or now,
                due_date=data.due_date,
                paid_date=now if data.status == InvoiceStatus.PAID else None,
                subtotal=subtotal,
                tax=data.tax,
                total=round(subtotal + data.tax, 2),
                notes=data.notes,
                items=items
            )
            self.db.add(invoice)
            await self.db.flush()
            await ActivityService(self.db).record(
                organization_id, "invoice_created", "invoice", invoice.id,
                user_id=actor.id, details={"invoice_number": number, "total": invoice.total}
            )

        logger.info(f"Invoice {number} created", extra={'organization_id': organization_id})
        return await self.get_invoice(organization_id, invoice.id)

    async def update_invoice(
        self,
        organization_id: int,
        invoice_id: int,
        data: InvoiceUpdateRequest,
        actor: User
    ) -> Invoice:
        invoice = await self.get_invoice(organization_id, invoice_id)
        fields = data.model_dump(exclude_unset=True, exclude={"items"})
        was_paid = invoice.status == InvoiceStatus.PAID.value

        async with self.transaction():
            if "status" in fields:
                fields["status"] = fields["status"].value
            self._apply(invoice, fields)

            if data.items is not None:
                invoice.items = build_items(data.items)
                invoice.subtotal = round(sum(item.total for item in invoice.items), 2)
            if data.items is not None or "tax" in fields:
                invoice.total = round(invoice.subtotal + (invoice.tax or 0), 2)

            if invoice.status == InvoiceStatus.PAID.value and invoice.paid_date is None:
                invoice.paid_date = utcnow()
            if invoice.status == InvoiceStatus.PAID.value and not was_paid:
                await ActivityService(self.db).record(
                    organization_id, "invoice_paid", "invoice", invoice.id, user_id=actor.id
                )

        return await self.get_invoice(organization_id, invoice_id)

    async def delete_invoice(self, organization_id: int, invoice_id: int) -> None:
        invoice = await self.get_invoice(organization_id, invoice_id)
        async with self.transaction():
            await self.db.delete(invoice)
        logger.info(f"Invoice {invoice.invoice_number} deleted")

    @log_function_call(logger)
    async def render_pdf(self, organization_id: int, invoice_id: int) -> bytes:
        invoice = await self.get_invoice(organization_id, invoice_id)
        organization = await self._fetch(Organization, organization_id, label="Organization")
        footer = await SettingsService(self.db).get(organization_id, "invoice_footer")
        return render_invoice_pdf(invoice, organization.name, str(footer))

    async def send_invoice(self, organization_id: int, invoice_id: int, actor: User) -> Dict[str, Any]:
        """
        Email the invoice PDF to the parent.

        Raises:
            BadRequestError: If the invoice has no parent email to send to
            ExternalServiceError: If the mail transport fails
        """
        invoice = await self.get_invoice(organization_id, invoice_id)
        if invoice.parent is None or invoice.parent.user is None:
            raise BadRequestError("Invoice has no recipient")
        if self.email_service is None:
            raise ExternalServiceError("Email service not configured")

        recipient = invoice.parent.user.email
        pdf = await self.render_pdf(organization_id, invoice_id)
        sent = await self.email_service.send_invoice_email(
            recipient=recipient,
            recipient_name=invoice.parent.user.full_name,
            invoice_number=invoice.invoice_number,
            total=invoice.total,
            due_date=invoice.due_date,
            pdf_bytes=pdf
        )
        if not sent:
            raise ExternalServiceError("Failed to send invoice email")

        async with self.transaction():
            await ActivityService(self.db).record(
                organization_id, "invoice_sent", "invoice", invoice.id,
                user_id=actor.id, details={"recipient": recipient}
            )
        return {
            "success": True,
            "message": f"Invoice {invoice.invoice_number} sent",
            "recipient": recipient
        }
