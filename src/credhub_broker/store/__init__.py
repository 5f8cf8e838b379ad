"""Credential store clients.

The broker talks to its secret backend only through ``CredentialStoreClient``.
``CredHubClient`` is the network-backed implementation; ``InMemoryCredentialStore``
keeps the same semantics in process.
"""

from .base import CredentialStoreClient, PermissionGrant, WriteMode
from .credhub_client import CredHubClient, CredHubClientConfig, create_credhub_client
from .exceptions import CredentialAlreadyExistsError, CredentialNotFoundError, CredentialStoreError, StoreUnavailableError
from .memory import InMemoryCredentialStore

__all__ = [
    "CredentialStoreClient",
    "PermissionGrant",
    "WriteMode",
    "CredHubClient",
    "CredHubClientConfig",
    "create_credhub_client",
    "InMemoryCredentialStore",
    "CredentialStoreError",
    "CredentialNotFoundError",
    "CredentialAlreadyExistsError",
    "StoreUnavailableError",
]
