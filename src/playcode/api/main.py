"""
PlayCode Agency API - FastAPI backend for the site, the admin panel and
payment/CRM webhooks.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from playcode.application.bootstrap import build_container
from playcode.application.crm.manager import CRMManager
from playcode.application.ports.event_log_port import EventLogPort
from playcode.config.settings import Settings, create_settings
from playcode.core.di.container import Container
from playcode.core.errors import PlayCodeError
from playcode.infrastructure.security.input_validation import validation_details

from .routes import (
    admin,
    analytics,
    approval,
    chatbot,
    contact,
    crm,
    export,
    onboarding,
    payment,
    upload,
    webhooks,
)
from .security_headers import security_headers

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(level=settings.logging.level.upper(), format=settings.logging.format)


def create_app(settings: Optional[Settings] = None, container: Optional[Container] = None) -> FastAPI:
    settings = settings or create_settings()
    configure_logging(settings)

    app = FastAPI(
        title="PlayCode Agency API",
        description="Contact intake, checkout, onboarding, approvals, CRM and analytics",
        version=settings.app.version,
    )
    app.state.settings = settings
    app.state.container = container or build_container(settings)
    app.state.event_log = app.state.container.resolve(EventLogPort)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def _security_headers(request: Request, call_next):
        response = await call_next(request)
        headers = security_headers(development=settings.is_development, https=request.url.scheme == "https")
        for name, value in headers.items():
            response.headers[name] = value
        return response

    @app.exception_handler(PlayCodeError)
    async def _playcode_error(request: Request, exc: PlayCodeError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
        else:
            logger.info(f"{request.method} {request.url.path} rejected: {exc}")
        return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.to_dict()})

    @app.exception_handler(RequestValidationError)
    async def _request_validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "error": {"code": "VALIDATION_ERROR", "message": "Dados inválidos", "details": validation_details(exc)},
            },
        )

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy", "version": settings.app.version}

    app.include_router(contact.router, prefix="/api", tags=["Contact"])
    app.include_router(payment.router, prefix="/api", tags=["Payments"])
    app.include_router(webhooks.router, prefix="/api", tags=["Webhooks"])
    app.include_router(onboarding.router, prefix="/api", tags=["Onboarding"])
    app.include_router(admin.router, prefix="/api", tags=["Admin"])
    app.include_router(approval.router, prefix="/api", tags=["Approval"])
    app.include_router(crm.router, prefix="/api", tags=["CRM"])
    app.include_router(analytics.router, prefix="/api", tags=["Analytics"])
    app.include_router(upload.router, prefix="/api", tags=["Uploads"])
    app.include_router(chatbot.router, prefix="/api", tags=["PlayBot"])
    app.include_router(export.router, prefix="/api", tags=["Export"])

    @app.on_event("startup")
    async def _startup_crm():
        await app.state.container.resolve(CRMManager).initialize_from_settings(settings)

    @app.on_event("shutdown")
    async def _shutdown_eventlog():
        app.state.event_log.close()

    return app


app = create_app()


def run() -> None:
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    run()
