"""
Invoice PDF rendering with reportlab.
"""

from io import BytesIO
from typing import Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.colors import HexColor
from reportlab.lib.enums import TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from portal.models import Invoice


def _styles():
    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(
        name='InvoiceTitle',
        parent=styles['Title'],
        fontSize=22,
        textColor=HexColor('#1a1a1a'),
        fontName='Helvetica-Bold'
    ))
    styles.add(ParagraphStyle(
        name='RightAligned',
        parent=styles['Normal'],
        alignment=TA_RIGHT
    ))
    styles.add(ParagraphStyle(
        name='Footer',
        parent=styles['Normal'],
        fontSize=9,
        textColor=HexColor('#6c757d')
    ))
    return styles


def _money(value: Optional[float]) -> str:
    return f"{(value or 0):,.2f}"


def render_invoice_pdf(invoice: Invoice, organization_name: str, footer: str = "") -> bytes:
    """Render an invoice with its line items and totals as PDF bytes."""
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer, pagesize=A4,
        rightMargin=54, leftMargin=54, topMargin=54, bottomMargin=54,
        title=f"Invoice {invoice.invoice_number}"
    )
    styles = _styles()
    story = [
        Paragraph(escape(organization_name), styles['InvoiceTitle']),
        Paragraph(f"Invoice {invoice.invoice_number}", styles['Heading2']),
        Spacer(1, 12),
    ]

    bill_to = "-"
    if invoice.parent is not None and invoice.parent.user is not None:
        bill_to = f"{escape(invoice.parent.user.full_name)}<br/>{escape(invoice.parent.user.email)}"
    meta = Table(
        [
            [Paragraph(f"<b>Bill to</b><br/>{bill_to}", styles['Normal']),
             Paragraph(
                 f"Issued: {invoice.issue_date:%d %b %Y}<br/>"
                 f"Due: {invoice.due_date:%d %b %Y}<br/>"
                 f"Status: {invoice.status.upper()}",
                 styles['RightAligned']
             )]
        ],
        colWidths=[doc.width / 2, doc.width / 2]
    )
    story.extend([meta, Spacer(1, 18)])

    rows = [["Description", "Qty", "Unit price", "Amount"]]
    for item in invoice.items:
        rows.append([
            Paragraph(escape(item.description), styles['Normal']),
            str(item.quantity),
            _money(item.unit_price),
            _money(item.total),
        ])
    rows.append(["", "", "Subtotal", _money(invoice.subtotal)])
    rows.append(["", "", "Tax", _money(invoice.tax)])
    rows.append(["", "", "Total", _money(invoice.total)])

    item_rows = len(invoice.items)
    table = Table(rows, colWidths=[doc.width * 0.5, doc.width * 0.1, doc.width * 0.2, doc.width * 0.2])
    table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), HexColor('#2c3e50')),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('ALIGN', (1, 0), (-1, -1), 'RIGHT'),
        ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ('GRID', (0, 0), (-1, item_rows), 0.5, HexColor('#dee2e6')),
        ('LINEABOVE', (2, -1), (-1, -1), 1, colors.black),
        ('FONTNAME', (2, -1), (-1, -1), 'Helvetica-Bold'),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 6),
        ('TOPPADDING', (0, 0), (-1, -1), 6),
    ]))
    story.append(table)

    if invoice.notes:
        story.extend([Spacer(1, 18), Paragraph(f"<b>Notes</b><br/>{escape(invoice.notes)}", styles['Normal'])])
    if footer:
        story.extend([Spacer(1, 24), Paragraph(escape(footer), styles['Footer'])])

    doc.build(story)
    return buffer.getvalue()
