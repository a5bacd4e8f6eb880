# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Outbound e-mail alerts.

Alerts are fire-and-forget: the login flow schedules them as a background
task after its transaction is committed, and a transport failure is logged
here instead of propagating.
"""

import smtplib
import ssl
from datetime import datetime, timezone
from email.message import EmailMessage
from typing import Optional

from core.config import settings
from core.exceptions import NotificationFailed
from core.logger import logger


class Notifier:
    """SMTP sender for security alerts."""

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        sender: Optional[str] = None,
        recipient: Optional[str] = None,
        use_tls: Optional[bool] = None,
        timeout: Optional[float] = None,
    ):
        self.host = host if host is not None else settings.smtp_host
        self.port = port if port is not None else settings.smtp_port
        self.username = username if username is not None else settings.smtp_username
        self.password = password if password is not None else settings.smtp_password
        self.sender = sender if sender is not None else settings.smtp_from
        self.recipient = recipient if recipient is not None else settings.alert_email
        self.use_tls = use_tls if use_tls is not None else settings.smtp_use_tls
        self.timeout = timeout if timeout is not None else settings.smtp_timeout

    @property
    def configured(self) -> bool:
        return bool(self.host and self.sender and self.recipient)

    def notify_abnormal_login(self, username: str, ip: str, location: str, reason: str) -> None:
        """Send an abnormal-login alert.  Never raises."""
        when = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
        body = (
            f"An abnormal login was detected for account '{username}'.\n\n"
            f"Time:     {when}\n"
            f"IP:       {ip}\n"
            f"Location: {location}\n"
            f"Reason:   {reason}\n\n"
            "If this was not expected, reset the account's password from the "
            "admin console."
        )
        try:
            self.send(f"[termbase] Abnormal login: {username}", body)
        except NotificationFailed as exc:
            logger.error("Abnormal-login alert for %s not sent: %s", username, exc)
            return
        logger.info("Abnormal-login alert for %s sent to %s", username, self.recipient)

    def send(self, subject: str, body: str, to_email: Optional[str] = None) -> None:
        """
        Deliver a plain-text message.  Raises ``NotificationFailed`` when SMTP
        is not configured or the transport fails.
        """
        to_email = to_email or self.recipient
        if not self.configured or not to_email:
            raise NotificationFailed("SMTP not configured")

        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.set_content(body)

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls(context=ssl.create_default_context())
                if self.username:
                    server.login(self.username, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationFailed(str(exc)) from exc
