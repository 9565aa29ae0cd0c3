from __future__ import annotations

import logging
import smtplib
import ssl
import uuid
from email.message import EmailMessage as MimeMessage
from email.utils import formataddr, make_msgid
from typing import List, Optional

from playcode.application.ports.email_port import EmailMessage, EmailSenderPort
from playcode.config.settings import EmailConfig
from playcode.core.errors import IntegrationError

logger = logging.getLogger(__name__)


def build_mime(message: EmailMessage, default_from: str) -> MimeMessage:
    mime = MimeMessage()
    mime["From"] = message.from_addr or default_from
    mime["To"] = message.to
    mime["Subject"] = message.subject
    mime["Message-ID"] = make_msgid(domain="playcode.agency")
    if message.reply_to:
        mime["Reply-To"] = message.reply_to
    mime.set_content(message.text or "Este email requer um cliente com suporte a HTML.")
    mime.add_alternative(message.html, subtype="html")
    return mime


class SmtpEmailSender(EmailSenderPort):
    """Send through an SMTP relay (implicit TLS when `smtp_secure`, STARTTLS otherwise)."""

    def __init__(self, config: EmailConfig, timeout: float = 30.0):
        self.config = config
        self.timeout = timeout
        self.default_from = formataddr((config.sender_name, config.smtp_from))

    def _connect(self) -> smtplib.SMTP:
        cfg = self.config
        if cfg.smtp_secure:
            return smtplib.SMTP_SSL(cfg.smtp_host, cfg.smtp_port, timeout=self.timeout,
                                    context=ssl.create_default_context())
        client = smtplib.SMTP(cfg.smtp_host, cfg.smtp_port, timeout=self.timeout)
        client.ehlo()
        if client.has_extn("starttls"):
            client.starttls(context=ssl.create_default_context())
            client.ehlo()
        return client

    def send(self, message: EmailMessage) -> str:
        mime = build_mime(message, self.default_from)
        try:
            with self._connect() as client:
                if self.config.smtp_user:
                    client.login(self.config.smtp_user, self.config.smtp_pass)
                client.send_message(mime)
        except (smtplib.SMTPException, OSError) as e:
            raise IntegrationError(f"SMTP send failed: {e}", code="EMAIL_SEND_FAILED") from e
        logger.info(f"Email sent to {message.to}: {message.subject}")
        return str(mime["Message-ID"])


class LoggingEmailSender(EmailSenderPort):
    """Development transport: logs instead of sending."""

    def __init__(self, default_from: str = "", logger_: Optional[logging.Logger] = None):
        self.default_from = default_from
        self._logger = logger_ or logging.getLogger("playcode.email")

    def send(self, message: EmailMessage) -> str:
        message_id = f"<dev-{uuid.uuid4().hex}@playcode.agency>"
        self._logger.info(f"[email:dev] to={message.to} subject={message.subject!r} id={message_id}")
        return message_id


class InMemoryEmailSender(EmailSenderPort):
    """Collects messages; `fail` makes every send raise."""

    def __init__(self, fail: bool = False) -> None:
        self.sent: List[EmailMessage] = []
        self.fail = fail

    def send(self, message: EmailMessage) -> str:
        if self.fail:
            raise IntegrationError("Email transport unavailable", code="EMAIL_SEND_FAILED")
        self.sent.append(message)
        return f"<mem-{len(self.sent)}@playcode.agency>"


def build_email_sender(config: EmailConfig) -> EmailSenderPort:
    if config.smtp_host:
        return SmtpEmailSender(config)
    logger.warning("SMTP_HOST not configured, emails will only be logged")
    return LoggingEmailSender(formataddr((config.sender_name, config.smtp_from)))
