from .email_senders import (
    InMemoryEmailSender,
    LoggingEmailSender,
    SmtpEmailSender,
    build_email_sender,
)
from .whatsapp_client import WhatsAppService

__all__ = [
    "InMemoryEmailSender",
    "LoggingEmailSender",
    "SmtpEmailSender",
    "WhatsAppService",
    "build_email_sender",
]
