"""Exceptions raised by credential store clients."""

from __future__ import annotations


class CredentialStoreError(Exception):
    """Base class for every failure reported by a credential store."""

    def __init__(self, message: str, key: str | None = None):
        super().__init__(message)
        self.key = key


class CredentialNotFoundError(CredentialStoreError):
    """No credential exists under the requested key."""


class CredentialAlreadyExistsError(CredentialStoreError):
    """A no-overwrite write hit an existing credential."""


class StoreUnavailableError(CredentialStoreError):
    """The store could not be reached (network error, timeout, 5xx after retries)."""
