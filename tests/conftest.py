# tests/conftest.py
"""
Pytest configuration and fixtures.
Adds src to sys.path so `import playcode` works without an install, and
points the module-level API app at throwaway storage.
"""

import os
import sys
import tempfile
from pathlib import Path

import pytest

project_root = Path(__file__).parent.parent
src_root = project_root / "src"
if str(src_root) not in sys.path:
    sys.path.insert(0, str(src_root))

# `playcode.api.main` builds an app at import time; keep it off the real data dir.
_session_dir = Path(tempfile.mkdtemp(prefix="playcode-tests-"))
os.environ.setdefault("PLAYCODE_DB_URL", f"sqlite:///{_session_dir / 'import.db'}")
os.environ.setdefault("PLAYCODE_UPLOAD_DIR", str(_session_dir / "uploads"))

from playcode.application.bootstrap import build_container  # noqa: E402
from playcode.application.crm.base_adapter import BaseCRMAdapter  # noqa: E402
from playcode.application.crm.manager import CRMManager  # noqa: E402
from playcode.application.crm.types import CRMAdapterConfig, CRMResponse  # noqa: E402
from playcode.config.settings import Settings  # noqa: E402
from playcode.infrastructure.event_log.memory_event_log import InMemoryEventLog  # noqa: E402
from playcode.infrastructure.llm.providers.base import LLMProvider, ProviderInfo  # noqa: E402
from playcode.infrastructure.notifications.email_senders import InMemoryEmailSender  # noqa: E402
from playcode.infrastructure.payments.pagseguro_client import MockPaymentGateway  # noqa: E402

ADMIN_TOKEN = "admin-approval-token"
ADMIN_PASSWORD = "s3cret-pass"


class FakeLLMProvider(LLMProvider):
    """Returns a canned reply and remembers what it was asked."""

    def __init__(self, reply: str = "🎮 Fala, player!", error: Exception = None):
        self.reply = reply
        self.error = error
        self.calls = []

    def invoke(self, messages, **kwargs) -> str:
        self.calls.append((messages, kwargs))
        if self.error is not None:
            raise self.error
        return self.reply

    @property
    def info(self) -> ProviderInfo:
        return ProviderInfo(provider_name="fake", model_name="fake-model")


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'playcode_test.db'}"


@pytest.fixture
def settings(tmp_path, db_url):
    s = Settings()
    s.database.url = db_url
    s.uploads.upload_dir = str(tmp_path / "uploads")
    s.security.token_secret_key = "test-secret"
    s.security.admin_approval_token = ADMIN_TOKEN
    s.security.admin_password = ADMIN_PASSWORD
    return s


@pytest.fixture
def event_log():
    return InMemoryEventLog()


@pytest.fixture
def email_sender():
    return InMemoryEmailSender()


@pytest.fixture
def llm_provider():
    return None


@pytest.fixture
def fake_llm():
    return FakeLLMProvider()


@pytest.fixture
def container(settings, event_log, email_sender, llm_provider):
    return build_container(
        settings,
        event_log=event_log,
        email_sender=email_sender,
        llm_provider=llm_provider,
        payment_gateway=MockPaymentGateway(),
    )


@pytest.fixture
def client(settings, container):
    from fastapi.testclient import TestClient

    from playcode.api.main import create_app

    with TestClient(create_app(settings, container)) as test_client:
        yield test_client


class FakeCRMAdapter(BaseCRMAdapter):
    """Keeps contacts in a dict; a webhook signature is valid when it equals the secret."""

    provider = "hubspot"
    batch_delay = 0

    def __init__(self, config: CRMAdapterConfig):
        super().__init__(config)
        self.contacts = {}
        self.deals = {}
        self.webhooks = []
        self.fail_emails = set()

    async def connect(self) -> bool:
        self.connected = self.config.api_key != "bad-key"
        return self.connected

    async def disconnect(self) -> None:
        self.connected = False

    async def test_connection(self) -> bool:
        return self.connected

    async def create_lead(self, lead):
        if lead.email in self.fail_emails:
            return CRMResponse.fail("rejected", code="FAKE_ERROR")
        crm_id = f"c{len(self.contacts) + 1}"
        self.contacts[crm_id] = lead
        lead.crm_id = crm_id
        return CRMResponse.ok({"crmId": crm_id})

    async def update_lead(self, crm_id, updates):
        if crm_id not in self.contacts:
            return CRMResponse.fail("Lead not found", code="NOT_FOUND")
        self.contacts[crm_id] = updates
        return CRMResponse.ok({"crmId": crm_id})

    async def get_lead(self, crm_id):
        lead = self.contacts.get(crm_id)
        return CRMResponse.ok(lead) if lead else CRMResponse.fail("Lead not found", code="NOT_FOUND")

    async def search_leads(self, query):
        found = [{"crm_id": cid, "email": lead.email} for cid, lead in self.contacts.items() if lead.email == query.email]
        return CRMResponse.ok(found)

    async def create_deal(self, lead):
        deal_id = f"d{len(self.deals) + 1}"
        self.deals[deal_id] = "qualifiedtobuy"
        return CRMResponse.ok({"dealId": deal_id})

    async def update_deal_stage(self, deal_id, stage):
        if deal_id not in self.deals:
            return CRMResponse.fail("Deal not found", code="NOT_FOUND")
        self.deals[deal_id] = stage
        return CRMResponse.ok({"dealId": deal_id, "stage": stage})

    def validate_webhook(self, payload, signature) -> bool:
        return signature == self.config.webhook_secret

    async def process_webhook(self, event) -> None:
        self.webhooks.append(event)

    async def create_custom_field(self, custom_field):
        return CRMResponse.ok({"field": custom_field.name})


@pytest.fixture
def crm_config():
    return CRMAdapterConfig(provider="hubspot", api_key="key", portal_id="123", webhook_secret="whsec")


@pytest.fixture
def crm_manager():
    return CRMManager({"hubspot": FakeCRMAdapter})
