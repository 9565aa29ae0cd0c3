"""
Security response headers applied to every API response.
"""

from __future__ import annotations

import base64
import secrets
from typing import Dict

_COMMON_CSP = [
    "default-src 'self'",
    "style-src 'self' 'unsafe-inline' https://fonts.googleapis.com",
    "font-src 'self' https://fonts.gstatic.com data:",
    "img-src 'self' data: https: blob:",
    "media-src 'self' blob: data:",
    "object-src 'none'",
    "base-uri 'self'",
    "form-action 'self'",
    "frame-ancestors 'none'",
]

CSP_POLICIES = {
    "development": "; ".join(
        _COMMON_CSP[:1]
        + ["script-src 'self' 'unsafe-eval' 'unsafe-inline' https://api.openai.com"]
        + _COMMON_CSP[1:]
        + ["connect-src 'self' https://api.openai.com ws://localhost:* wss://localhost:*"]
    ),
    "production": "; ".join(
        _COMMON_CSP[:1]
        + ["script-src 'self' 'unsafe-eval' https://api.openai.com https://vercel.live"]
        + _COMMON_CSP[1:]
        + ["upgrade-insecure-requests", "connect-src 'self' https://api.openai.com"]
    ),
}

PERMISSIONS_POLICY = ", ".join(
    f"{feature}=()"
    for feature in (
        "camera",
        "microphone",
        "geolocation",
        "payment",
        "usb",
        "bluetooth",
        "magnetometer",
        "gyroscope",
        "accelerometer",
    )
)

STATIC_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "X-XSS-Protection": "1; mode=block",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Permitted-Cross-Domain-Policies": "none",
    "Permissions-Policy": PERMISSIONS_POLICY,
}

HSTS = "max-age=31536000; includeSubDomains; preload"


def new_nonce() -> str:
    return base64.b64encode(secrets.token_bytes(16)).decode("ascii")


def security_headers(*, development: bool, https: bool) -> Dict[str, str]:
    headers = dict(STATIC_HEADERS)
    headers["Content-Security-Policy"] = CSP_POLICIES["development" if development else "production"]
    headers["X-CSP-Nonce"] = new_nonce()
    if https:
        headers["Strict-Transport-Security"] = HSTS
    return headers
