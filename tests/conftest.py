"""Root fixtures for the marketplace test suite.

The domain is initialised once per session through Protean's DomainFixture.
Every test then runs inside a domain context with fresh in-memory adapters
(gateway, channels, queue, store, audit recorder) and default test settings,
and all providers are wiped afterwards.
"""

import os
from pathlib import Path

import pytest
from protean.integrations.pytest import DomainFixture


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    os.environ["PROTEAN_ENV"] = session.config.option.env
    os.environ["DISHDASH_ENVIRONMENT"] = session.config.option.env


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))

        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/bdd/" in test_path:
            item.add_marker(pytest.mark.bdd)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(scope="session")
def marketplace_bed():
    from marketplace.domain import marketplace

    bed = DomainFixture(marketplace)
    bed.setup()
    yield bed
    bed.teardown()


def _reset_registries():
    from marketplace.audit import reset_recorder
    from marketplace.channel import reset_channels
    from marketplace.config import reset_settings
    from marketplace.gateway import reset_gateway
    from marketplace.jobs import reset_queue
    from marketplace.notification.dispatcher import reset_dispatcher
    from marketplace.notification.orchestrator import reset_orchestrator
    from marketplace.throttling import reset_store

    reset_settings()
    reset_gateway()
    reset_channels()
    reset_queue()
    reset_store()
    reset_recorder()
    reset_dispatcher()
    reset_orchestrator()


@pytest.fixture(autouse=True)
def _ctx(marketplace_bed):
    from marketplace.audit import set_recorder
    from marketplace.audit.recorder import InMemoryAuditRecorder
    from marketplace.channel import set_channel
    from marketplace.channel.fake_chat import FakeChatAdapter
    from marketplace.channel.fake_sms import FakeSMSAdapter
    from marketplace.config import set_settings
    from marketplace.gateway import set_gateway
    from marketplace.gateway.fake_adapter import FakeGateway
    from marketplace.jobs import set_queue
    from marketplace.jobs.queue import InMemoryJobQueue
    from marketplace.throttling import set_store
    from marketplace.throttling.store import InMemoryExpiringStore
    from support import make_settings

    with marketplace_bed.domain_context():
        _reset_registries()
        set_settings(make_settings())
        set_gateway(FakeGateway())
        set_channel("Chat", FakeChatAdapter())
        set_channel("SMS", FakeSMSAdapter())
        set_queue(InMemoryJobQueue())
        set_store(InMemoryExpiringStore())
        set_recorder(InMemoryAuditRecorder())

        yield

        from protean import current_domain

        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()
        _reset_registries()


# ---------------------------------------------------------------------------
# Adapter fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def gateway():
    from marketplace.gateway import get_gateway

    return get_gateway()


@pytest.fixture()
def chat():
    from marketplace.channel import get_channel

    return get_channel("Chat")


@pytest.fixture()
def sms():
    from marketplace.channel import get_channel

    return get_channel("SMS")


@pytest.fixture()
def queue():
    from marketplace.jobs import get_queue

    return get_queue()


@pytest.fixture()
def audit_log():
    from marketplace.audit import get_recorder

    return get_recorder()


# ---------------------------------------------------------------------------
# World fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def vendor():
    from support import register_vendor

    return register_vendor()


@pytest.fixture()
def customer():
    from support import register_customer

    return register_customer()


@pytest.fixture()
def far_customer():
    from support import OUT_OF_ZONE_POINT, register_customer

    return register_customer(mobile="09120000002", point=OUT_OF_ZONE_POINT, telegram_chat_id="customer-chat-2")
