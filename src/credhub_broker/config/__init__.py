"""Configuration module for the credential broker."""

from .logger_config import setup_logging
from .settings import BrokerConfig, ConfigManager, CredHubConfig, LoggingConfig

__all__ = ["BrokerConfig", "CredHubConfig", "LoggingConfig", "ConfigManager", "setup_logging"]
