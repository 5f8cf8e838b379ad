"""HTTP client for the CredHub data and permissions API.

This module provides the network-backed credential store used in
deployments. It owns the transport concerns the broker core stays out of:
request timeouts, TLS verification settings, bearer authentication and a
bounded retry with exponential backoff on network errors and 5xx answers.
"""

from __future__ import annotations

import json
import ssl
import time
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Tuple
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode, urljoin
from urllib.request import Request, urlopen

from loguru import logger

from .base import CredentialStoreClient, WriteMode
from .exceptions import CredentialAlreadyExistsError, CredentialNotFoundError, CredentialStoreError, StoreUnavailableError


@dataclass
class CredHubClientConfig:
    """Configuration for the CredHub client."""

    api_base_url: str = "https://credhub.service.cf.internal:8844"
    data_endpoint: str = "/api/v1/data"
    permissions_endpoint: str = "/api/v1/permissions"

    # Authentication (token is issued outside the broker)
    access_token: str = ""

    # TLS
    skip_tls_validation: bool = False
    ca_cert_path: Optional[str] = None

    # HTTP settings
    timeout_seconds: int = 30
    max_retries: int = 3
    retry_backoff_base: float = 1.0
    retry_backoff_max: float = 30.0


class CredHubClient(CredentialStoreClient):
    """Credential store client speaking the CredHub v1 HTTP API."""

    def __init__(self, config: Optional[CredHubClientConfig] = None):
        """Initialize the client.

        Args:
            config: Client configuration, defaults to ``CredHubClientConfig()``
        """
        self.config = config or CredHubClientConfig()
        self._ssl_context = self._build_ssl_context()

    def write(self, key: str, value: Dict[str, Any], mode: WriteMode) -> None:
        # CredHub answers a no-overwrite write on an existing name with the
        # stored credential and 200, indistinguishable from a fresh write
        # when the values are equal
        if mode == WriteMode.NO_OVERWRITE and self._current(key) is not None:
            raise CredentialAlreadyExistsError(f"Credential already exists: {key}", key=key)

        payload = {"name": key, "type": "json", "value": value, "mode": mode.value}
        status, body = self._request("PUT", self.config.data_endpoint, payload=payload)

        if status != 200:
            raise self._unexpected(status, "write", key)

        # Lost a race with a concurrent writer between the read and the PUT
        if mode == WriteMode.NO_OVERWRITE and body is not None and body.get("value") != value:
            raise CredentialAlreadyExistsError(f"Credential already exists: {key}", key=key)

    def read_latest(self, key: str) -> Dict[str, Any]:
        current = self._current(key)
        if current is None:
            raise CredentialNotFoundError(f"Credential not found: {key}", key=key)

        value = current.get("value")
        if not isinstance(value, dict):
            raise CredentialStoreError(f"Credential {key} is not a JSON credential", key=key)
        return value

    def delete(self, key: str) -> None:
        status, _ = self._request("DELETE", self.config.data_endpoint, query={"name": key})

        if status == 404:
            logger.debug(f"Delete of absent credential {key} ignored")
            return
        if status not in (200, 204):
            raise self._unexpected(status, "delete", key)

    def grant_permission(self, key: str, actor: str, operations: Iterable[str]) -> None:
        payload = {
            "credential_name": key,
            "permissions": [{"actor": actor, "operations": sorted(operations)}],
        }
        status, _ = self._request("POST", self.config.permissions_endpoint, payload=payload)

        if status not in (200, 201):
            raise self._unexpected(status, "grant permission on", key)

    def revoke_permissions(self, key: str) -> None:
        status, body = self._request("GET", self.config.permissions_endpoint, query={"credential_name": key})

        if status == 404:
            return
        if status != 200:
            raise self._unexpected(status, "list permissions on", key)

        for permission in (body or {}).get("permissions") or []:
            actor = permission.get("actor")
            if not actor:
                continue
            status, _ = self._request("DELETE", self.config.permissions_endpoint, query={"credential_name": key, "actor": actor})
            if status not in (200, 204, 404):
                raise self._unexpected(status, "revoke permission on", key)
            logger.debug(f"Revoked permission for {actor} on {key}")

    def _current(self, key: str) -> Optional[Dict[str, Any]]:
        """Fetch the current version of ``key``, None when there is none."""
        status, body = self._request("GET", self.config.data_endpoint, query={"name": key, "current": "true"})

        if status == 404:
            return None
        if status != 200:
            raise self._unexpected(status, "read", key)

        data = (body or {}).get("data") or []
        return data[0] if data else None

    def _unexpected(self, status: int, action: str, key: str) -> CredentialStoreError:
        error_msg = f"Failed to {action} {key}: HTTP {status}"
        logger.debug(error_msg)
        return CredentialStoreError(error_msg, key=key)

    def _build_ssl_context(self) -> ssl.SSLContext:
        context = ssl.create_default_context(cafile=self.config.ca_cert_path)
        if self.config.skip_tls_validation:
            logger.warning("TLS validation against CredHub is disabled")
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context

    def _request(
        self,
        method: str,
        endpoint: str,
        query: Optional[Dict[str, str]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Tuple[int, Optional[Dict[str, Any]]]:
        """Send a request, retrying network errors and 5xx answers.

        Args:
            method: HTTP method
            endpoint: API path relative to the base URL
            query: Query string parameters
            payload: JSON body

        Returns:
            Tuple of (status_code, decoded_json_body)

        Raises:
            StoreUnavailableError: retries exhausted
        """
        url = urljoin(self.config.api_base_url, endpoint)
        if query:
            url = f"{url}?{urlencode(query)}"

        last_error = ""

        for attempt in range(self.config.max_retries + 1):
            try:
                status, body = self._send_request(method, url, payload)
                if status < 500:
                    return status, body
                last_error = f"HTTP {status}"

            except URLError as e:
                last_error = f"Network error: {e.reason}"

            except (TimeoutError, ConnectionError) as e:
                last_error = f"Connection error: {e}"

            if attempt < self.config.max_retries:
                delay = min(self.config.retry_backoff_base * (2**attempt), self.config.retry_backoff_max)
                logger.warning(f"{method} {endpoint} attempt {attempt + 1} failed: {last_error}. Retrying in {delay:.1f}s...")
                time.sleep(delay)

        raise StoreUnavailableError(f"{method} {endpoint} failed after {self.config.max_retries + 1} attempts: {last_error}")

    def _send_request(self, method: str, url: str, payload: Optional[Dict[str, Any]]) -> Tuple[int, Optional[Dict[str, Any]]]:
        """Send a single HTTP request."""
        headers = {
            "Accept": "application/json",
            "User-Agent": "credhub-broker",
        }
        if self.config.access_token:
            headers["Authorization"] = f"Bearer {self.config.access_token}"

        data = None
        if payload is not None:
            data = json.dumps(payload).encode("utf-8")
            headers["Content-Type"] = "application/json"

        req = Request(url, data=data, headers=headers, method=method)

        try:
            with urlopen(req, timeout=self.config.timeout_seconds, context=self._ssl_context) as response:
                return response.status, self._decode(response.read())

        except HTTPError as e:
            # 4xx/5xx answers still carry a status the caller interprets
            if e.code == 401:
                logger.warning("CredHub rejected the access token")
            return e.code, self._decode(e.read())

    @staticmethod
    def _decode(raw: bytes) -> Optional[Dict[str, Any]]:
        if not raw:
            return None
        try:
            body = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            return None
        return body if isinstance(body, dict) else None


def create_credhub_client(
    api_base_url: str,
    access_token: str = "",
    **options: Any,
) -> CredHubClient:
    """Create a CredHub client.

    Args:
        api_base_url: Base URL of the CredHub API
        access_token: Bearer token presented on every request
        **options: Remaining ``CredHubClientConfig`` fields

    Returns:
        Configured CredHub client
    """
    config = CredHubClientConfig(api_base_url=api_base_url, access_token=access_token, **options)
    return CredHubClient(config)
