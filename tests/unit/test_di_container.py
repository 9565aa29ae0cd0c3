from __future__ import annotations

import pytest

from playcode.application.crm.manager import CRMManager
from playcode.application.ports.event_log_port import EventLogPort
from playcode.application.services.approval_service import ApprovalService
from playcode.application.services.chatbot_service import ChatbotService
from playcode.application.services.contact_service import ContactService
from playcode.config.settings import Settings
from playcode.core.di.container import Container
from playcode.infrastructure.storage.file_storage import FileStorage


class Service:
    pass


def test_factory_creates_new_instance_each_time():
    container = Container()
    container.register(Service, Service)
    assert container.resolve(Service) is not container.resolve(Service)


def test_singleton_factory_is_cached():
    container = Container()
    container.register(Service, Service, singleton=True)
    assert container.resolve(Service) is container.resolve(Service)


def test_register_instance_and_reregister():
    container = Container()
    first = Service()
    container.register_instance(Service, first)
    assert container.resolve(Service) is first

    container.register(Service, Service, singleton=True)
    assert container.resolve(Service) is not first


def test_unregistered_interface():
    container = Container()
    assert container.is_registered(Service) is False
    with pytest.raises(ValueError):
        container.resolve(Service)


def test_global_instance_reset():
    Container.reset()
    assert Container.instance() is Container.instance()
    Container.reset()


def test_build_container_wires_services(container, settings, event_log):
    assert container.resolve(Settings) is settings
    assert container.resolve(EventLogPort) is event_log
    for service in (ContactService, ApprovalService, ChatbotService, FileStorage, CRMManager):
        assert container.is_registered(service)
    assert container.resolve(ChatbotService).online is False
    assert str(container.resolve(FileStorage).upload_dir) == settings.uploads.upload_dir


def test_contact_limit_depends_on_environment(settings, event_log):
    from playcode.application.bootstrap import build_container

    settings.app.environment = "production"
    production = build_container(settings, event_log=event_log).resolve(ContactService)
    assert production.rate_limiter.max_requests == 3
    assert production.rate_limit_label == "3/15min"
