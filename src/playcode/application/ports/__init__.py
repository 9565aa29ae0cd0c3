from .event_log_port import EventLogPort
from .email_port import EmailMessage, EmailSenderPort
from .payment_gateway_port import PaymentGatewayPort

__all__ = ["EventLogPort", "EmailMessage", "EmailSenderPort", "PaymentGatewayPort"]
