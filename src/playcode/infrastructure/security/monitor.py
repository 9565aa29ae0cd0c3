from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from playcode.application.events import SECURITY, make_event
from playcode.application.ports.event_log_port import EventLogPort

logger = logging.getLogger(__name__)

SECURITY_EVENT_TYPES = (
    "suspicious_input",
    "rate_limit",
    "blocked_ip",
    "xss_attempt",
    "bot_detected",
    "unauthorized_admin",
    "webhook_rate_limit",
    "webhook_validation_failed",
)


class SecurityMonitor:
    """Writes security events to the audit log and the warning log."""

    def __init__(self, event_log: EventLogPort):
        self.event_log = event_log

    def log_security_event(
        self,
        type: str,
        ip: str,
        *,
        user_agent: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        if type not in SECURITY_EVENT_TYPES:
            raise ValueError(f"Unknown security event type: {type}")
        payload = {"user_agent": user_agent or "", **(details or {})}
        logger.warning(f"Security event {type} from {ip}: {payload}")
        self.event_log.append(make_event(category=SECURITY, type=type, source=ip, payload=payload))
