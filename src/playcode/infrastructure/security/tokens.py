"""
HMAC-signed approval tokens.

Format: ``<base64url(json payload)>.<base64url(hmac_sha256(secret, data))>``.
Times inside the payload are epoch milliseconds.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_SECRET = "playcode-default-secret-change-in-production"
DEFAULT_TTL_MS = 7 * 24 * 60 * 60 * 1000

INVALID_FORMAT = "Invalid token format"
TAMPERED = "Token has been tampered with"
EXPIRED = "Token has expired"
PROCESSING_ERROR = "Token processing error"


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(data: str) -> bytes:
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _now_ms() -> int:
    return int(time.time() * 1000)


def generate_customer_id(email: str) -> str:
    return hashlib.sha256(email.strip().lower().encode("utf-8")).hexdigest()[:12]


@dataclass
class TokenValidation:
    valid: bool
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class TokenManager:
    """Issues and verifies signed, expiring tokens."""

    def __init__(self, secret: Optional[str] = None, ttl_ms: int = DEFAULT_TTL_MS):
        if not secret:
            logger.warning("TOKEN_SECRET_KEY not set, using the development default secret")
            secret = DEFAULT_SECRET
        self._secret = secret.encode("utf-8")
        self.ttl_ms = ttl_ms

    def _sign(self, data: str) -> str:
        return _b64encode(hmac.new(self._secret, data.encode("utf-8"), hashlib.sha256).digest())

    def sign_payload(self, payload: Dict[str, Any]) -> str:
        data = _b64encode(json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8"))
        return f"{data}.{self._sign(data)}"

    def generate_token(
        self, customer_id: str, email: str, project_type: str, now: Optional[int] = None
    ) -> str:
        created = _now_ms() if now is None else now
        return self.sign_payload(
            {
                "customerId": customer_id,
                "email": email,
                "projectType": project_type,
                "createdAt": created,
                "expiresAt": created + self.ttl_ms,
            }
        )

    def validate_token(self, token: str, now: Optional[int] = None) -> TokenValidation:
        parts = (token or "").split(".")
        if len(parts) != 2 or not all(parts):
            return TokenValidation(False, error=INVALID_FORMAT)
        data, signature = parts

        if not hmac.compare_digest(self._sign(data), signature):
            return TokenValidation(False, error=TAMPERED)

        try:
            payload = json.loads(_b64decode(data).decode("utf-8"))
            expires_at = int(payload["expiresAt"])
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Token payload could not be decoded: {e}")
            return TokenValidation(False, error=PROCESSING_ERROR)

        current = _now_ms() if now is None else now
        if current > expires_at:
            return TokenValidation(False, error=EXPIRED)
        return TokenValidation(True, data=payload)
