# src/pricewatch/infrastructure/notify/email.py
"""Email alert channel via SMTP (STARTTLS)."""

import asyncio
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from pricewatch.config import settings
from pricewatch.domain.entities import Alert, TrackedItem, User
from pricewatch.domain.errors import DeliveryError
from .messages import alert_body, alert_subject

logger = logging.getLogger(__name__)


class EmailNotifier:
    """
    Sends alert emails.

    Uses SMTP_USER and SMTP_PASS (for Gmail, an App Password).
    SMTP_FROM defaults to SMTP_USER if not set.
    """

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        sender: Optional[str] = None,
    ):
        self.host = host or settings.SMTP_HOST
        self.port = port or settings.SMTP_PORT
        self.user = user or settings.SMTP_USER
        self.password = password or settings.SMTP_PASS
        self.sender = sender or settings.SMTP_FROM or self.user

    @property
    def configured(self) -> bool:
        return bool(self.user and self.password)

    def can_deliver(self, user: User) -> bool:
        return self.configured and bool(user.email)

    def _build_message(self, to_addr: str, alert: Alert, item: TrackedItem) -> MIMEMultipart:
        msg = MIMEMultipart()
        msg["From"] = self.sender
        msg["To"] = to_addr
        msg["Subject"] = alert_subject(alert, item)
        msg.attach(MIMEText(alert_body(alert, item), "plain"))
        return msg

    def _send_blocking(self, to_addr: str, alert: Alert, item: TrackedItem) -> None:
        msg = self._build_message(to_addr, alert, item)
        try:
            logger.debug("Email: sending alert %s to %s", alert.id, to_addr)
            with smtplib.SMTP(self.host, self.port, timeout=30) as server:
                server.starttls()
                server.login(self.user, self.password)
                server.sendmail(self.sender, to_addr, msg.as_string())
        except smtplib.SMTPAuthenticationError as e:
            raise DeliveryError(f"Email authentication failed: {e}") from e
        except (smtplib.SMTPException, OSError) as e:
            raise DeliveryError(f"Email SMTP error: {e}") from e

    async def send(self, user: User, alert: Alert, item: TrackedItem) -> bool:
        if not self.configured:
            raise DeliveryError("Email: SMTP_USER or SMTP_PASS not set")
        if not user.email:
            raise DeliveryError(f"User {user.id} has no email address")
        loop = asyncio.get_running_loop()
        # smtplib is blocking
        await loop.run_in_executor(None, self._send_blocking, user.email, alert, item)
        logger.info("Email: alert %s sent to user %s", alert.id, user.id)
        return True
