"""
Composition root: builds every service from Settings into a Container.

Both the API app and the arq worker start here; tests pass fakes for the
outbound edges (event log, email sender, LLM provider, payment gateway).
"""

from __future__ import annotations

import logging
from typing import Optional

from playcode.application.crm.manager import CRMManager
from playcode.application.ports.email_port import EmailSenderPort
from playcode.application.ports.event_log_port import EventLogPort
from playcode.application.ports.payment_gateway_port import PaymentGatewayPort
from playcode.application.services.admin_service import AdminAuth, AdminOnboardingService
from playcode.application.services.analytics_service import AnalyticsService
from playcode.application.services.approval_service import ApprovalService
from playcode.application.services.chatbot_service import ChatbotService
from playcode.application.services.checkout_service import CheckoutService
from playcode.application.services.contact_service import ContactService
from playcode.application.services.crm_webhook_service import CRMWebhookService
from playcode.application.services.email_service import EmailService
from playcode.application.services.export_service import ExportService
from playcode.application.services.onboarding_service import OnboardingService
from playcode.application.services.payment_webhook_service import PaymentWebhookService
from playcode.config.settings import Settings
from playcode.core.di.container import Container
from playcode.infrastructure.event_log.composite_event_log import CompositeEventLog
from playcode.infrastructure.event_log.logging_event_log import LoggingEventLog
from playcode.infrastructure.event_log.sqlalchemy_event_log import SqlAlchemyEventLog
from playcode.infrastructure.llm.providers.base import LLMProvider
from playcode.infrastructure.llm.providers.openai_provider import OpenAIProvider
from playcode.infrastructure.notifications.email_senders import build_email_sender
from playcode.infrastructure.notifications.whatsapp_client import WhatsAppService
from playcode.infrastructure.payments.pagseguro_client import MockPaymentGateway, PagSeguroClient
from playcode.infrastructure.security import rate_limit
from playcode.infrastructure.security.input_validation import IPSecurity
from playcode.infrastructure.security.monitor import SecurityMonitor
from playcode.infrastructure.security.rate_limit import RateLimiter
from playcode.infrastructure.security.tokens import TokenManager
from playcode.infrastructure.storage.file_storage import FileStorage
from playcode.infrastructure.stores.analytics_store import SqlAlchemyAnalyticsStore
from playcode.infrastructure.stores.approval_store import SqlAlchemyApprovalStore
from playcode.infrastructure.stores.onboarding_store import SqlAlchemyOnboardingStore
from playcode.infrastructure.stores.sqlalchemy_db import get_db_url
from playcode.infrastructure.stores.subscription_store import SqlAlchemySubscriptionStore

logger = logging.getLogger(__name__)


def build_event_log(db_url: str) -> EventLogPort:
    try:
        return CompositeEventLog([LoggingEventLog(), SqlAlchemyEventLog(db_url)])
    except Exception as e:
        logger.error(f"Persistent event log unavailable, logging only: {e}")
        return LoggingEventLog()


def build_llm_provider(settings: Settings) -> Optional[LLMProvider]:
    llm = settings.llm
    if not llm.openai_api_key:
        logger.warning("OPENAI_API_KEY not set, PlayBot is offline")
        return None
    return OpenAIProvider(api_key=llm.openai_api_key, model_name=llm.model, base_url=llm.base_url, timeout=llm.timeout)


def build_payment_gateway(settings: Settings) -> PaymentGatewayPort:
    payments = settings.payments
    if not payments.pagseguro_application_key:
        logger.warning("PAGSEGURO_APPLICATION_KEY not set, checkout uses the mock gateway")
        return MockPaymentGateway()
    app_url = settings.app.app_url.rstrip("/")
    return PagSeguroClient(
        payments.pagseguro_application_key,
        sandbox=payments.sandbox,
        webhook_url=f"{app_url}/api/webhooks/pagseguro",
        redirect_url=f"{app_url}/checkout/success",
        timeout=payments.timeout,
    )


def build_container(
    settings: Optional[Settings] = None,
    *,
    event_log: Optional[EventLogPort] = None,
    email_sender: Optional[EmailSenderPort] = None,
    llm_provider: Optional[LLMProvider] = None,
    payment_gateway: Optional[PaymentGatewayPort] = None,
    crm: Optional[CRMManager] = None,
) -> Container:
    settings = settings or Settings()
    db_url = settings.database.url or get_db_url()
    container = Container()

    event_log = event_log or build_event_log(db_url)
    monitor = SecurityMonitor(event_log)
    tokens = TokenManager(settings.security.token_secret_key, ttl_ms=settings.security.token_ttl_days * 86_400_000)
    crm = crm or CRMManager()

    email_service = EmailService(email_sender or build_email_sender(settings.email), settings)
    whatsapp = WhatsAppService(settings.whatsapp.api_url, settings.whatsapp.api_key)

    onboarding_store = SqlAlchemyOnboardingStore(db_url)
    approval_store = SqlAlchemyApprovalStore(db_url)
    analytics_store = SqlAlchemyAnalyticsStore(db_url)
    subscription_store = SqlAlchemySubscriptionStore(db_url)

    onboarding = OnboardingService(
        onboarding_store,
        email_service=email_service,
        whatsapp=whatsapp,
        event_log=event_log,
        app_url=settings.app.app_url,
    )
    contact_policy = rate_limit.CONTACT_PRODUCTION if settings.is_production else rate_limit.CONTACT_DEVELOPMENT

    container.register_instance(Settings, settings)
    container.register_instance(EventLogPort, event_log)
    container.register_instance(SecurityMonitor, monitor)
    container.register_instance(TokenManager, tokens)
    container.register_instance(CRMManager, crm)
    container.register_instance(EmailService, email_service)
    container.register_instance(WhatsAppService, whatsapp)
    container.register_instance(OnboardingService, onboarding)
    container.register_instance(
        ContactService,
        ContactService(
            rate_limiter=RateLimiter.from_policy(contact_policy),
            ip_security=IPSecurity(settings.security.blocked_ips, enforce=not settings.is_development),
            monitor=monitor,
            crm=crm,
            email_service=email_service,
            rate_limit_label=f"{contact_policy.max_requests}/{int(contact_policy.window_seconds // 60)}min",
        ),
    )
    container.register_instance(
        ApprovalService,
        ApprovalService(approval_store, tokens, email_service, settings=settings, event_log=event_log, monitor=monitor),
    )
    container.register_instance(
        AnalyticsService, AnalyticsService(analytics_store, RateLimiter.from_policy(rate_limit.ANALYTICS))
    )
    container.register_instance(
        CheckoutService,
        CheckoutService(
            subscription_store,
            payment_gateway or build_payment_gateway(settings),
            MockPaymentGateway(),
            settings=settings,
            event_log=event_log,
        ),
    )
    container.register_instance(
        PaymentWebhookService,
        PaymentWebhookService(subscription_store, onboarding, settings=settings, event_log=event_log),
    )
    container.register_instance(
        ChatbotService,
        ChatbotService(
            llm_provider if llm_provider is not None else build_llm_provider(settings),
            RateLimiter.from_policy(rate_limit.CHATBOT),
        ),
    )
    container.register_instance(ExportService, ExportService(onboarding))
    container.register_instance(
        FileStorage, FileStorage(settings.uploads.upload_dir, max_file_size=settings.uploads.max_file_size)
    )
    container.register_instance(
        CRMWebhookService, CRMWebhookService(crm, RateLimiter.from_policy(rate_limit.CRM_WEBHOOK), monitor)
    )
    container.register_instance(AdminAuth, AdminAuth(tokens, settings, monitor))
    container.register_instance(AdminOnboardingService, AdminOnboardingService(onboarding))
    return container
