"""
Input sanitisation, request schemas and IP helpers shared by the public endpoints.
"""

from __future__ import annotations

import ipaddress
import re
from typing import Any, Dict, List, Literal, Mapping, Optional, Union
from urllib.parse import urlparse

from bs4 import BeautifulSoup
from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError, field_validator

from playcode.core.errors import ValidationError

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
SCRIPT_TAG_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
SQL_CHARS_RE = re.compile(r"['\"\\;]")
PHONE_CHARS_RE = re.compile(r"[^\d+\-\s()]")
SAFE_ID = r"^[a-zA-Z0-9_-]+$"
NAME_PATTERN = r"^[a-zA-ZÀ-ÿ\s'-]+$"

SUSPICIOUS_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"script",
        r"javascript",
        r"vbscript",
        r"onload",
        r"onerror",
        r"onclick",
        r"<iframe",
        r"<object",
        r"<embed",
        r"eval\(",
        r"document\.",
        r"window\.",
    )
]


# ---- sanitizers ----

def sanitize_text(value: str) -> str:
    cleaned = SQL_CHARS_RE.sub("", value)
    cleaned = SCRIPT_TAG_RE.sub("", cleaned)
    return cleaned.strip()[:1000]


def sanitize_html(value: str) -> str:
    """Drop every tag and keep the text content."""
    soup = BeautifulSoup(value, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    return soup.get_text()


def sanitize_email(value: str) -> str:
    cleaned = value.strip().lower()
    if not EMAIL_RE.match(cleaned):
        raise ValidationError("Invalid email format", context={"field": "email"})
    return cleaned


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_RE.match((value or "").strip().lower()))


def sanitize_phone(value: str) -> str:
    return PHONE_CHARS_RE.sub("", value).strip()


def sanitize_url(value: str) -> str:
    parsed = urlparse((value or "").strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError("Invalid URL format", context={"field": "url"})
    return parsed.geturl()


def detect_suspicious_content(content: str) -> List[str]:
    return [p.pattern for p in SUSPICIOUS_PATTERNS if p.search(content or "")]


# ---- IP helpers ----

def client_ip(headers: Mapping[str, str]) -> str:
    """Cloudflare, then X-Real-IP, then the first X-Forwarded-For hop."""
    forwarded = headers.get("x-forwarded-for")
    ip = (
        headers.get("cf-connecting-ip")
        or headers.get("x-real-ip")
        or (forwarded.split(",")[0] if forwarded else None)
        or "unknown"
    )
    return ip.strip()


def is_valid_ip(ip: str) -> bool:
    try:
        ipaddress.ip_address((ip or "").strip())
    except ValueError:
        return False
    return True


class IPSecurity:
    """Block list consulted before public endpoints do any work."""

    def __init__(self, blocked_ips: Optional[List[str]] = None, *, enforce: bool = True):
        self._blocked = {ip.strip() for ip in (blocked_ips or []) if ip.strip()}
        self.enforce = enforce

    def is_blocked(self, ip: str) -> bool:
        if not self.enforce:
            return False
        return ip in self._blocked


# ---- schemas ----

def validation_details(exc: PydanticValidationError) -> List[Dict[str, Any]]:
    return [
        {"field": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg", ""), "type": err.get("type")}
        for err in exc.errors()
    ]


def parse_model(model_cls, payload: Any, message: str = "Dados inválidos"):
    """Validate a payload, raising the service ValidationError with field details."""
    try:
        return model_cls.model_validate(payload if payload is not None else {})
    except PydanticValidationError as e:
        raise ValidationError(message, context={"details": validation_details(e)}) from e


class ContactForm(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=2, max_length=100, pattern=NAME_PATTERN)
    email: str = Field(..., max_length=320)
    company: Optional[str] = Field(default=None, max_length=200)
    phone: Optional[str] = Field(default=None, max_length=20)
    message: str = Field(..., min_length=10, max_length=2000)
    powerUps: Optional[List[str]] = Field(default=None, max_length=10)
    gameMode: Optional[Literal["arcade", "campaign", "battle-royale", "esports-pro"]] = None

    project_type: Optional[str] = Field(default=None, max_length=50)
    budget_range: Optional[str] = Field(default=None, max_length=50)
    urgency: Literal["low", "normal", "high", "critical"] = "normal"
    source: Optional[str] = Field(default=None, max_length=100)

    website: Optional[str] = None
    confirm_email: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        return sanitize_text(v)

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        cleaned = v.strip().lower()
        if not EMAIL_RE.match(cleaned):
            raise ValueError("Email inválido")
        return cleaned

    @field_validator("company")
    @classmethod
    def _company(cls, v: Optional[str]) -> Optional[str]:
        return sanitize_text(v) if v else v

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: Optional[str]) -> Optional[str]:
        return sanitize_phone(v) if v else v

    @field_validator("message")
    @classmethod
    def _message(cls, v: str) -> str:
        return sanitize_html(v)

    @field_validator("powerUps")
    @classmethod
    def _power_ups(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is not None and any(len(item) > 50 for item in v):
            raise ValueError("Power-up inválido")
        return v


MetadataValue = Union[bool, int, float, str]


class AnalyticsEventIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    event: str = Field(..., min_length=1, max_length=100, pattern=SAFE_ID)
    category: Literal["gaming", "ui", "achievement", "power-up", "navigation", "interaction", "security"]
    action: str = Field(..., min_length=1, max_length=100, pattern=SAFE_ID)
    label: Optional[str] = Field(default=None, max_length=200)
    value: Optional[float] = Field(default=None, ge=0, le=999999)
    userId: Optional[str] = Field(default=None, max_length=100, pattern=SAFE_ID)
    sessionId: Optional[str] = Field(default=None, max_length=100, pattern=SAFE_ID)
    metadata: Optional[Dict[str, MetadataValue]] = None

    @field_validator("label")
    @classmethod
    def _label(cls, v: Optional[str]) -> Optional[str]:
        return sanitize_text(v) if v else v

    @field_validator("metadata")
    @classmethod
    def _metadata(cls, v: Optional[Dict[str, MetadataValue]]) -> Optional[Dict[str, MetadataValue]]:
        if v and any(isinstance(item, str) and len(item) > 500 for item in v.values()):
            raise ValueError("Metadata value too long")
        return v


class ChatMessageIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    message: str = Field(..., min_length=1, max_length=1000)
    conversationId: Optional[str] = Field(default=None, max_length=100, pattern=SAFE_ID)
    userId: Optional[str] = Field(default=None, max_length=100, pattern=SAFE_ID)


class ProposalIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    customerName: str = Field(..., min_length=2)
    customerEmail: str
    projectType: str = Field(..., min_length=1)
    projectDescription: str = Field(..., min_length=10)
    budgetRange: str = Field(..., min_length=1)
    estimatedValue: float = Field(..., ge=1)
    timeline: str = Field(..., min_length=1)
    services: List[str] = Field(..., min_length=1)
    powerUps: List[str] = Field(default_factory=list)

    @field_validator("customerEmail")
    @classmethod
    def _email(cls, v: str) -> str:
        if not is_valid_email(v):
            raise ValueError("Email inválido")
        return v.strip().lower()


class ApprovalDecisionIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    action: Literal["approve", "reject"]
    feedback: Optional[str] = Field(default=None, max_length=2000)
