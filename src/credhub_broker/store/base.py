"""Abstract credential store interface used by the lifecycle engine."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable


class WriteMode(str, Enum):
    """How a write treats an existing value at the same key."""

    NO_OVERWRITE = "no-overwrite"
    OVERWRITE = "overwrite"


@dataclass(frozen=True)
class PermissionGrant:
    """An (actor, key, operations) triple recorded by the store."""

    actor: str
    key: str
    operations: FrozenSet[str]


class CredentialStoreClient(ABC):
    """Capability surface the broker needs from a secret backend.

    Implementations own their transport, timeouts and retries. Errors are
    reported with the exceptions in ``credhub_broker.store.exceptions``.
    """

    @abstractmethod
    def write(self, key: str, value: Dict[str, Any], mode: WriteMode) -> None:
        """Store a JSON object under ``key``.

        Raises:
            CredentialAlreadyExistsError: mode is NO_OVERWRITE and a value exists
        """

    @abstractmethod
    def read_latest(self, key: str) -> Dict[str, Any]:
        """Return the current JSON value stored under ``key``.

        Raises:
            CredentialNotFoundError: nothing is stored under ``key``
        """

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete ``key``. Must succeed when the key does not exist."""

    @abstractmethod
    def grant_permission(self, key: str, actor: str, operations: Iterable[str]) -> None:
        """Allow ``actor`` to perform ``operations`` on ``key``."""

    @abstractmethod
    def revoke_permissions(self, key: str) -> None:
        """Remove every grant on ``key``. Must succeed when there are none."""
