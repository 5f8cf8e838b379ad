"""Shared fixtures for broker tests."""

import pytest

from credhub_broker.broker import CredentialBroker
from credhub_broker.config import BrokerConfig
from credhub_broker.store import InMemoryCredentialStore

BROKER_ENV_VARS = [
    "BROKER_ID",
    "BROKER_KEY_NAMESPACE",
    "BROKER_SERVICE_ID",
    "BROKER_SERVICE_NAME",
    "BROKER_PLAN_UPDATABLE",
    "BROKER_LOG_LEVEL",
    "BROKER_LOG_FILE",
    "CREDHUB_URL",
    "CREDHUB_ACCESS_TOKEN",
    "CREDHUB_CA_CERT",
    "CREDHUB_SKIP_TLS_VALIDATION",
    "CREDHUB_TIMEOUT",
    "CREDHUB_MAX_RETRIES",
]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep the developer's environment out of BrokerConfig."""
    for name in BROKER_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def store():
    return InMemoryCredentialStore()


@pytest.fixture
def config():
    return BrokerConfig()


@pytest.fixture
def broker(store, config):
    return CredentialBroker(store=store, config=config)
