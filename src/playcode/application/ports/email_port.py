from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Protocol, runtime_checkable


@dataclass
class EmailMessage:
    to: str
    subject: str
    html: str
    text: str = ""
    from_addr: str = ""
    reply_to: Optional[str] = None
    tags: List[str] = field(default_factory=list)


@runtime_checkable
class EmailSenderPort(Protocol):
    """Outbound email transport."""

    def send(self, message: EmailMessage) -> str:
        """Send a message and return a provider message id. Raises on failure."""
