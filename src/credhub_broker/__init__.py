"""Credential broker - stores service instance credentials in CredHub and grants bound apps read access."""

from .app import create_broker
from .broker import CredentialBroker
from .config import BrokerConfig

__version__ = "1.0.0"

__all__ = ["CredentialBroker", "BrokerConfig", "create_broker"]
