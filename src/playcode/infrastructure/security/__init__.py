from .input_validation import (
    IPSecurity,
    client_ip,
    detect_suspicious_content,
    is_valid_ip,
    sanitize_email,
    sanitize_html,
    sanitize_phone,
    sanitize_text,
    sanitize_url,
)
from .monitor import SecurityMonitor
from .rate_limit import MemoryRateLimitStore, RateLimiter, RateLimitPolicy
from .tokens import TokenManager, TokenValidation, generate_customer_id

__all__ = [
    "IPSecurity",
    "MemoryRateLimitStore",
    "RateLimitPolicy",
    "RateLimiter",
    "SecurityMonitor",
    "TokenManager",
    "TokenValidation",
    "client_ip",
    "detect_suspicious_content",
    "generate_customer_id",
    "is_valid_ip",
    "sanitize_email",
    "sanitize_html",
    "sanitize_phone",
    "sanitize_text",
    "sanitize_url",
]
