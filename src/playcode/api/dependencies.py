"""
FastAPI dependencies: service lookup on the app container, client identity,
and the admin session guard.
"""

from __future__ import annotations

from typing import Any, Callable, Type, TypeVar

from fastapi import Request

from playcode.application.services.admin_service import ADMIN_COOKIE, AdminAuth
from playcode.core.di.container import Container
from playcode.core.errors import AuthenticationError
from playcode.infrastructure.security.input_validation import client_ip

T = TypeVar("T")


def get_container(request: Request) -> Container:
    return request.app.state.container


def provide(interface: Type[T]) -> Callable[[Request], T]:
    """``Depends(provide(SomeService))`` resolves the service from the app container."""

    def _resolve(request: Request) -> T:
        return get_container(request).resolve(interface)

    _resolve.__name__ = f"provide_{interface.__name__}"
    return _resolve


def request_ip(request: Request) -> str:
    ip = client_ip(request.headers)
    if ip == "unknown" and request.client is not None:
        return request.client.host
    return ip


def user_agent(request: Request) -> str:
    return request.headers.get("user-agent", "unknown")


async def json_body(request: Request) -> Any:
    """Raw JSON body; malformed JSON becomes a 400 at the service boundary."""
    raw = await request.body()
    if not raw:
        return {}
    try:
        return await request.json()
    except ValueError:
        return None


def require_admin(request: Request) -> None:
    auth = get_container(request).resolve(AdminAuth)
    if not auth.required:
        return
    if not auth.verify_session(request.cookies.get(ADMIN_COOKIE)):
        raise AuthenticationError("Acesso restrito ao painel administrativo", code="ADMIN_REQUIRED")
