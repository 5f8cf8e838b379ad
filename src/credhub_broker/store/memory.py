"""In-process credential store.

Mirrors the write-mode and permission semantics of CredHub so the broker
can run without a backend (local development, tests). Values are deep
copied on the way in and out so callers never share state with the store.
"""

from __future__ import annotations

import copy
import threading
from typing import Any, Dict, Iterable, List

from loguru import logger

from .base import CredentialStoreClient, PermissionGrant, WriteMode
from .exceptions import CredentialAlreadyExistsError, CredentialNotFoundError


class InMemoryCredentialStore(CredentialStoreClient):
    """Thread-safe dictionary-backed credential store."""

    def __init__(self):
        self._values: Dict[str, List[Dict[str, Any]]] = {}
        self._grants: Dict[str, Dict[str, PermissionGrant]] = {}
        self._lock = threading.Lock()

    def write(self, key: str, value: Dict[str, Any], mode: WriteMode) -> None:
        with self._lock:
            if mode == WriteMode.NO_OVERWRITE and key in self._values:
                raise CredentialAlreadyExistsError(f"Credential already exists: {key}", key=key)

            # Every write adds a version, like the real store
            self._values.setdefault(key, []).append(copy.deepcopy(value))
            logger.debug(f"Stored credential {key} ({mode.value})")

    def read_latest(self, key: str) -> Dict[str, Any]:
        with self._lock:
            versions = self._values.get(key)
            if not versions:
                raise CredentialNotFoundError(f"Credential not found: {key}", key=key)
            return copy.deepcopy(versions[-1])

    def delete(self, key: str) -> None:
        with self._lock:
            if self._values.pop(key, None) is None:
                logger.debug(f"Delete of absent credential {key} ignored")

    def grant_permission(self, key: str, actor: str, operations: Iterable[str]) -> None:
        with self._lock:
            grant = PermissionGrant(actor=actor, key=key, operations=frozenset(operations))
            self._grants.setdefault(key, {})[actor] = grant

    def revoke_permissions(self, key: str) -> None:
        with self._lock:
            self._grants.pop(key, None)

    # Inspection helpers, not part of the client interface

    def exists(self, key: str) -> bool:
        with self._lock:
            return key in self._values

    def versions(self, key: str) -> int:
        """Number of values written under ``key`` since it was last deleted."""
        with self._lock:
            return len(self._values.get(key, []))

    def grants_for(self, key: str) -> List[PermissionGrant]:
        with self._lock:
            return list(self._grants.get(key, {}).values())

    def keys(self) -> List[str]:
        with self._lock:
            return sorted(self._values)
