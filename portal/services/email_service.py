import html
from datetime import datetime
from io import BytesIO
from typing import List, Optional

from fastapi_mail import ConnectionConfig, FastMail, MessageSchema, MessageType
from fastapi_mail.errors import ConnectionErrors
from starlette.datastructures import Headers, UploadFile
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential
)

from portal.core.config import get_email_settings
from portal.core.logging import logger


def render_invoice_email(recipient_name: str, invoice_number: str, total: float, due_date: datetime) -> str:
    """HTML body for an invoice email; caller-supplied text is escaped."""
    return f"""
    <html>
        <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
            <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
                <p>Dear {html.escape(recipient_name)},</p>
                <p>Please find attached invoice <strong>{html.escape(invoice_number)}</strong>
                for <strong>{total:,.2f}</strong>, due on {due_date:%d %B %Y}.</p>
                <p>Thank you.</p>
            </div>
        </body>
    </html>
    """


class EmailService:
    def __init__(self, config: Optional[dict] = None):
        """Initialize email service; the SMTP client is only built when mail is enabled."""
        self.config = config or get_email_settings()
        self.enabled = bool(self.config.get("enabled"))
        self.fastmail: Optional[FastMail] = None

        if self.enabled:
            conf = ConnectionConfig(
                MAIL_USERNAME=self.config.get("username") or "",
                MAIL_PASSWORD=self.config.get("password") or "",
                MAIL_FROM=self.config["from_email"],
                MAIL_FROM_NAME=self.config.get("from_name"),
                MAIL_PORT=self.config["port"],
                MAIL_SERVER=self.config["server"],
                MAIL_STARTTLS=self.config["starttls"],
                MAIL_SSL_TLS=self.config["ssl_tls"],
                USE_CREDENTIALS=bool(self.config.get("username")),
                VALIDATE_CERTS=True,
                TIMEOUT=self.config.get("timeout", 10)
            )
            self.fastmail = FastMail(conf)
            logger.info("FastMail client initialized successfully")

    @retry(
        retry=retry_if_exception_type(ConnectionErrors),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        reraise=True
    )
    async def _deliver(self, message: MessageSchema) -> None:
        await self.fastmail.send_message(message)

    async def send_email_with_retry(
        self,
        recipients: List[str],
        subject: str,
        body: str,
        attachments: Optional[List[UploadFile]] = None
    ) -> bool:
        """Send an HTML email, retrying transient SMTP failures."""
        if not recipients or not subject or not body:
            logger.warning("Invalid email parameters")
            return False

        if not self.enabled:
            logger.info(f"Mail disabled; suppressed '{subject}' to {', '.join(recipients)}")
            return True

        message = MessageSchema(
            subject=subject,
            recipients=recipients,
            body=body,
            subtype=MessageType.html,
            attachments=attachments or []
        )
        try:
            await self._deliver(message)
        except ConnectionErrors as e:
            logger.error(f"Failed to send email to {', '.join(recipients)}: {str(e)}", exc_info=True)
            return False

        logger.info(f"Email sent successfully to {', '.join(recipients)}")
        return True

    async def send_invoice_email(
        self,
        recipient: str,
        recipient_name: str,
        invoice_number: str,
        total: float,
        due_date: datetime,
        pdf_bytes: bytes
    ) -> bool:
        subject = f"Invoice {invoice_number}"
        body = render_invoice_email(recipient_name, invoice_number, total, due_date)
        attachment = UploadFile(
            file=BytesIO(pdf_bytes),
            filename=f"{invoice_number}.pdf",
            headers=Headers({"content-type": "application/pdf"})
        )
        return await self.send_email_with_retry([recipient], subject, body, [attachment])
