"""
Voucher email over SMTP

Sends the BoxNow label PDF to the configured warehouse recipients. Falls
back gracefully (no connection attempt) when SMTP is not configured.
"""
import asyncio
import logging
import smtplib
import ssl
from dataclasses import dataclass, field
from email.message import EmailMessage
from typing import List, Optional

from app.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


@dataclass
class SendResult:
    success: bool
    recipients: List[str] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class SMTPConfig:
    host: str
    port: int = 587
    secure: bool = False
    user: str = ""
    password: str = ""
    sender: str = ""
    timeout: float = 30.0

    @classmethod
    def from_settings(cls, config: Settings) -> "SMTPConfig":
        return cls(
            host=config.SMTP_HOST,
            port=config.SMTP_PORT,
            secure=config.SMTP_SECURE,
            user=config.SMTP_USER,
            password=config.SMTP_PASS,
            sender=config.SMTP_FROM or config.SMTP_USER,
        )


class LabelMailer:
    """Builds and sends voucher emails."""

    def __init__(self, smtp: SMTPConfig, default_recipients: Optional[List[str]] = None):
        self.smtp = smtp
        self.default_recipients = list(default_recipients or [])

    @property
    def configured(self) -> bool:
        return bool(self.smtp.host)

    @property
    def enabled(self) -> bool:
        """SMTP host and at least one default recipient."""
        return self.configured and bool(self.default_recipients)

    def build_message(self, order_number: str, pdf: bytes, recipients: List[str]) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = f"BoxNow voucher - order {order_number}"
        msg["From"] = self.smtp.sender or "no-reply@localhost"
        msg["To"] = ", ".join(recipients)
        msg.set_content(
            f"The BoxNow voucher for order {order_number} is attached.\n"
            "Print it and stick it on the parcel before drop-off.\n"
        )
        msg.add_attachment(
            pdf,
            maintype="application",
            subtype="pdf",
            filename=f"voucher-{order_number}.pdf",
        )
        return msg

    def _send_sync(self, msg: EmailMessage) -> None:
        if self.smtp.secure:
            server = smtplib.SMTP_SSL(
                self.smtp.host, self.smtp.port, timeout=self.smtp.timeout,
                context=ssl.create_default_context(),
            )
        else:
            server = smtplib.SMTP(self.smtp.host, self.smtp.port, timeout=self.smtp.timeout)

        with server:
            if not self.smtp.secure:
                server.starttls(context=ssl.create_default_context())
            if self.smtp.user:
                server.login(self.smtp.user, self.smtp.password)
            server.send_message(msg)

    async def send_label(
        self,
        order_number: str,
        pdf: bytes,
        recipients: Optional[List[str]] = None,
    ) -> SendResult:
        """Email the voucher. Never raises; failures come back in SendResult."""
        recipients = list(recipients or self.default_recipients)

        if not self.configured or not recipients:
            logger.info(f"Voucher email for {order_number} skipped - SMTP or recipients not configured")
            return SendResult(success=False, recipients=recipients, error="Email not configured")

        msg = self.build_message(order_number, pdf, recipients)

        try:
            await asyncio.to_thread(self._send_sync, msg)
        except (smtplib.SMTPException, OSError) as e:
            error_str = f"{type(e).__name__}: {e}"
            logger.error(f"Voucher email for {order_number} failed: {error_str}")
            return SendResult(success=False, recipients=recipients, error=error_str)

        logger.info(f"Voucher email for {order_number} sent to {len(recipients)} recipient(s)")
        return SendResult(success=True, recipients=recipients)


def create_label_mailer(config: Optional[Settings] = None) -> LabelMailer:
    config = config or default_settings
    return LabelMailer(SMTPConfig.from_settings(config), config.LABEL_EMAIL_RECIPIENTS)
