"""Configuration management for the credential broker.

This module provides the broker configuration with environment variable
overrides. Nothing here is global: the bootstrap code loads a config and
passes it to the components it builds.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from loguru import logger

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_bool(name: str, value: str) -> Optional[bool]:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    logger.warning(f"Invalid boolean for {name}: {value}")
    return None


@dataclass
class CredHubConfig:
    """Connection settings for the credential store."""

    url: str = "https://credhub.service.cf.internal:8844"
    access_token: str = ""
    skip_tls_validation: bool = False
    ca_cert_path: Optional[str] = None

    timeout_seconds: int = 30
    max_retries: int = 3
    retry_backoff_base: float = 1.0
    retry_backoff_max: float = 30.0


@dataclass
class LoggingConfig:
    """Settings for loguru sinks."""

    level: str = "INFO"
    to_console: bool = True
    file_path: Optional[Path] = None
    rotation: str = "10 MB"
    retention: str = "7 days"


@dataclass
class BrokerConfig:
    """Complete broker configuration."""

    # Broker identity, part of every storage key
    broker_id: str = "secure-credentials-broker"
    key_namespace: str = "c"

    # Catalog
    service_id: str = "secure-credentials"
    service_name: str = "secure-credentials"
    plan_updatable: bool = False

    # Component configurations
    credhub: CredHubConfig = field(default_factory=CredHubConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def __post_init__(self):
        """Apply environment variable overrides."""
        self._apply_env_overrides()

    def _apply_env_overrides(self):
        """Apply configuration overrides from environment variables."""
        # Broker identity
        if broker_id := os.getenv("BROKER_ID"):
            self.broker_id = broker_id

        if key_namespace := os.getenv("BROKER_KEY_NAMESPACE"):
            self.key_namespace = key_namespace

        if service_id := os.getenv("BROKER_SERVICE_ID"):
            self.service_id = service_id

        if service_name := os.getenv("BROKER_SERVICE_NAME"):
            self.service_name = service_name

        if plan_updatable := os.getenv("BROKER_PLAN_UPDATABLE"):
            parsed = _parse_bool("BROKER_PLAN_UPDATABLE", plan_updatable)
            if parsed is not None:
                self.plan_updatable = parsed

        # Credential store
        if credhub_url := os.getenv("CREDHUB_URL"):
            self.credhub.url = credhub_url

        if access_token := os.getenv("CREDHUB_ACCESS_TOKEN"):
            self.credhub.access_token = access_token

        if ca_cert := os.getenv("CREDHUB_CA_CERT"):
            self.credhub.ca_cert_path = ca_cert

        if skip_tls := os.getenv("CREDHUB_SKIP_TLS_VALIDATION"):
            parsed = _parse_bool("CREDHUB_SKIP_TLS_VALIDATION", skip_tls)
            if parsed is not None:
                self.credhub.skip_tls_validation = parsed

        if timeout := os.getenv("CREDHUB_TIMEOUT"):
            try:
                self.credhub.timeout_seconds = int(timeout)
            except ValueError:
                logger.warning(f"Invalid CredHub timeout: {timeout}")

        if max_retries := os.getenv("CREDHUB_MAX_RETRIES"):
            try:
                self.credhub.max_retries = int(max_retries)
            except ValueError:
                logger.warning(f"Invalid CredHub max retries: {max_retries}")

        # Logging
        if log_level := os.getenv("BROKER_LOG_LEVEL"):
            self.logging.level = log_level.upper()

        if log_file := os.getenv("BROKER_LOG_FILE"):
            self.logging.file_path = Path(log_file)

    def get_credhub_config(self) -> dict:
        """Get keyword arguments for the CredHub client."""
        return {
            "api_base_url": self.credhub.url,
            "access_token": self.credhub.access_token,
            "skip_tls_validation": self.credhub.skip_tls_validation,
            "ca_cert_path": self.credhub.ca_cert_path,
            "timeout_seconds": self.credhub.timeout_seconds,
            "max_retries": self.credhub.max_retries,
            "retry_backoff_base": self.credhub.retry_backoff_base,
            "retry_backoff_max": self.credhub.retry_backoff_max,
        }

    def validate(self) -> tuple[bool, list[str]]:
        """Validate the configuration.

        Returns:
            Tuple of (is_valid, error_messages)
        """
        errors = []

        # Key segments
        for name in ("broker_id", "key_namespace", "service_id"):
            value = getattr(self, name)
            if not value:
                errors.append(f"{name} is required")
            elif "/" in value:
                errors.append(f"{name} must not contain '/'")

        if not self.service_name:
            errors.append("service_name is required")

        # Credential store
        if not self.credhub.url:
            errors.append("CredHub URL is required")

        if self.credhub.timeout_seconds <= 0:
            errors.append("CredHub timeout must be positive")

        if self.credhub.max_retries < 0:
            errors.append("CredHub max retries must not be negative")

        return len(errors) == 0, errors


class ConfigManager:
    """Builds a broker configuration from the environment plus explicit overrides."""

    def load_config(
        self,
        broker_id: Optional[str] = None,
        credhub_url: Optional[str] = None,
        access_token: Optional[str] = None,
    ) -> BrokerConfig:
        """Load configuration with optional overrides.

        Args:
            broker_id: Broker identity override
            credhub_url: CredHub URL override
            access_token: CredHub access token override

        Returns:
            Configured BrokerConfig instance
        """
        config = BrokerConfig()

        # Apply parameter overrides
        if broker_id:
            config.broker_id = broker_id

        if credhub_url:
            config.credhub.url = credhub_url

        if access_token:
            config.credhub.access_token = access_token

        return config
