"""Broker bootstrap.

Builds the configuration, configures logging and wires a credential
store client into a ``CredentialBroker``. A transport adapter calls
``create_broker()`` once at startup and serves lifecycle requests with
the returned engine.
"""

from __future__ import annotations

from typing import Optional

from loguru import logger

from .broker.engine import CredentialBroker
from .config import BrokerConfig, ConfigManager, setup_logging
from .store.base import CredentialStoreClient
from .store.credhub_client import create_credhub_client


class ConfigurationError(Exception):
    """The loaded configuration cannot be used to start the broker."""


def create_broker(
    config: Optional[BrokerConfig] = None,
    store: Optional[CredentialStoreClient] = None,
    configure_logging: bool = True,
) -> CredentialBroker:
    """Create a broker ready to serve lifecycle calls.

    Args:
        config: Broker configuration, loaded from the environment when omitted
        store: Credential store client, a CredHub client built from ``config`` when omitted
        configure_logging: Whether to install the loguru sinks from ``config``

    Returns:
        Configured credential broker

    Raises:
        ConfigurationError: the configuration does not validate
    """
    if config is None:
        config = ConfigManager().load_config()

    if configure_logging:
        setup_logging(config.logging)

    is_valid, errors = config.validate()
    if not is_valid:
        for error in errors:
            logger.error(f"Invalid configuration: {error}")
        raise ConfigurationError("; ".join(errors))

    if store is None:
        store = create_credhub_client(**config.get_credhub_config())
        logger.info(f"Using CredHub at {config.credhub.url}")

    logger.info(f"Starting up the credential broker {config.broker_id}...")
    return CredentialBroker(store=store, config=config)
