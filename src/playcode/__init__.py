# playcode/__init__.py
"""
PlayCode Agency back-office service.

- Client onboarding with reminders and document export
- Approval-gated project proposals
- Contact intake with lead scoring and CRM sync
- Plans, checkout and payment webhooks
- Gaming analytics and the PlayBot chatbot
"""

from __future__ import annotations

__version__ = "0.1.0"
__author__ = "PlayCode Agency"


def __getattr__(name):
    # Lazy import so that `import playcode` does not pull in FastAPI.
    if name == "create_app":
        from .api.main import create_app

        return create_app
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["__version__", "create_app"]
