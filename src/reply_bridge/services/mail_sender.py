from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr, make_msgid

from reply_bridge.config import SmtpConfig
from reply_bridge.services.correlation import build_reply_to_address

logger = logging.getLogger(__name__)


class MailSendError(RuntimeError):
    pass


class SmtpSender:
    def __init__(self, config: SmtpConfig) -> None:
        self.config = config

    def build_message(self, to: str, subject: str, body: str, correlation_id: str) -> EmailMessage:
        reply_to = build_reply_to_address(self.config.username, correlation_id)

        msg = EmailMessage()
        msg["From"] = formataddr((self.config.personal_name, self.config.username))
        msg["Reply-To"] = formataddr((self.config.personal_name, reply_to))
        msg["To"] = to
        msg["Subject"] = subject
        msg["Message-ID"] = make_msgid(domain=self.config.username.rpartition("@")[2] or None)
        msg.set_content(body)
        return msg

    def send(self, to: str, subject: str, body: str, correlation_id: str) -> EmailMessage:
        if not self.config.host:
            raise MailSendError("SMTP host is not configured")

        msg = self.build_message(to, subject, body, correlation_id)
        try:
            with smtplib.SMTP(self.config.host, self.config.port, timeout=self.config.timeout_seconds) as server:
                server.starttls()
                server.login(self.config.username, self.config.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise MailSendError(f"SMTP delivery to '{to}' failed") from exc

        logger.info(
            "Sent outbound mail",
            extra={
                "event": "smtp_send_success",
                "recipient": to,
                "correlation_id": correlation_id,
            },
        )
        return msg
