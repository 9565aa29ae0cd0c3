"""
PlayCode API Package
FastAPI backend for the site, the admin panel and webhooks
"""

from .main import app, create_app

__all__ = ["app", "create_app"]
