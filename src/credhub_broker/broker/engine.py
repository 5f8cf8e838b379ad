"""Credential lifecycle engine.

This module maps service-broker lifecycle calls onto credential store
operations:

- provision writes the user-supplied parameters at the instance key
- bind copies the instance record to the binding key and grants the
  bound application read access to it
- unbind and deprovision remove what bind and provision wrote

The engine keeps no state of its own. Duplicate calls are arbitrated by
the store: no-overwrite writes reject a second provision or bind with
the same id, deletes of absent keys succeed.
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional

from loguru import logger

from ..config.settings import BrokerConfig
from ..store.base import CredentialStoreClient, WriteMode
from ..store.exceptions import CredentialAlreadyExistsError, CredentialNotFoundError, CredentialStoreError, StoreUnavailableError
from .catalog import Service, build_catalog
from .errors import (
    AlreadyProvisionedError,
    BindingAlreadyExistsError,
    InstanceCredentialsMissingError,
    InvalidParametersError,
    MissingActorIdentityError,
    PlanChangeNotSupportedError,
    StoreOperationError,
    StoreUnavailableBrokerError,
)
from .keys import EntityKind, InvalidKeySegmentError, derive_key
from .models import (
    Binding,
    BindDetails,
    DeprovisionDetails,
    LastOperation,
    LastOperationState,
    ProvisionDetails,
    ProvisionedServiceSpec,
    RawParameters,
    UnbindDetails,
    UpdateDetails,
    UpdateServiceSpec,
    is_plan_change,
)

CREDENTIAL_REFERENCE_KEY = "credhub-ref"
READ_OPERATIONS = frozenset({"read"})


def decode_parameters(raw_parameters: RawParameters) -> Dict[str, Any]:
    """Decode request parameters into a JSON object of credential fields.

    Raises:
        InvalidParametersError: parameters are missing, malformed or not an object
    """
    if raw_parameters is None:
        raise InvalidParametersError()

    if isinstance(raw_parameters, Mapping):
        return dict(raw_parameters)

    try:
        if isinstance(raw_parameters, (bytes, bytearray)):
            raw_parameters = raw_parameters.decode("utf-8")
        decoded = json.loads(raw_parameters)
    except (UnicodeDecodeError, TypeError, json.JSONDecodeError):
        raise InvalidParametersError() from None

    if not isinstance(decoded, dict):
        raise InvalidParametersError()

    return decoded


class CredentialBroker:
    """Service broker storing instance credentials in a credential store."""

    def __init__(self, store: CredentialStoreClient, config: BrokerConfig):
        """Initialize the broker.

        Args:
            store: Credential store client every operation goes through
            config: Broker configuration; ``create_broker`` loads one from the environment
        """
        self.store = store
        self.config = config

    def services(self) -> List[Service]:
        """Return the catalog of offerings."""
        return build_catalog(self.config.service_id, self.config.service_name, self.config.plan_updatable)

    def provision(self, instance_id: str, service_id: str, raw_parameters: RawParameters) -> ProvisionedServiceSpec:
        credentials = decode_parameters(raw_parameters)
        key = self._key(service_id, instance_id, EntityKind.INSTANCE)

        with self._store_errors("store credentials at", key):
            try:
                self.store.write(key, credentials, WriteMode.NO_OVERWRITE)
            except CredentialAlreadyExistsError:
                logger.warning(f"Instance {instance_id} already has credentials at {key}")
                raise AlreadyProvisionedError() from None

        logger.info(f"Successfully stored user-provided credentials for instance {instance_id} at {key}")
        return ProvisionedServiceSpec()

    def provision_for(self, instance_id: str, details: ProvisionDetails) -> ProvisionedServiceSpec:
        return self.provision(instance_id, details.service_id, details.raw_parameters)

    def deprovision(self, instance_id: str, service_id: str) -> None:
        key = self._key(service_id, instance_id, EntityKind.INSTANCE)

        with self._store_errors("delete credentials at", key):
            self.store.delete(key)

        logger.info(f"Deprovisioned instance {instance_id}")

    def deprovision_for(self, instance_id: str, details: DeprovisionDetails) -> None:
        self.deprovision(instance_id, details.service_id)

    def update(
        self,
        instance_id: str,
        service_id: str,
        raw_parameters: RawParameters = None,
        plan_id: Optional[str] = None,
        previous_plan_id: Optional[str] = None,
    ) -> UpdateServiceSpec:
        """Replace the credentials of an instance.

        A plan change (``plan_id`` and ``previous_plan_id`` both given and
        different) is rejected unless the deployment makes plans updatable.
        The new parameters replace the stored record entirely.
        """
        if is_plan_change(plan_id, previous_plan_id) and not self.config.plan_updatable:
            logger.info(f"Rejected plan change {previous_plan_id} -> {plan_id} for instance {instance_id}")
            raise PlanChangeNotSupportedError()

        if raw_parameters is None:
            logger.debug(f"Update of instance {instance_id} carries no parameters, nothing to write")
            return UpdateServiceSpec()

        credentials = decode_parameters(raw_parameters)
        key = self._key(service_id, instance_id, EntityKind.INSTANCE)

        with self._store_errors("overwrite credentials at", key):
            self.store.write(key, credentials, WriteMode.OVERWRITE)

        logger.info(f"Updated credentials for instance {instance_id}")
        return UpdateServiceSpec()

    def update_for(self, instance_id: str, details: UpdateDetails) -> UpdateServiceSpec:
        return self.update(instance_id, details.service_id, details.raw_parameters, details.plan_id, details.previous_plan_id)

    def bind(self, instance_id: str, binding_id: str, service_id: str, actor: str) -> Binding:
        """Give ``actor`` read access to a copy of the instance credentials.

        Returns:
            Binding whose credentials only reference the binding key

        Raises:
            MissingActorIdentityError: ``actor`` is empty
            InstanceCredentialsMissingError: the instance record is gone
            BindingAlreadyExistsError: ``binding_id`` was bound before
        """
        if not actor or not actor.strip():
            raise MissingActorIdentityError()

        instance_key = self._key(service_id, instance_id, EntityKind.INSTANCE)
        binding_key = self._key(service_id, binding_id, EntityKind.BINDING)

        with self._store_errors("read credentials at", instance_key):
            try:
                credentials = self.store.read_latest(instance_key)
            except CredentialNotFoundError:
                logger.error(f"Credentials of instance {instance_id} are missing from {instance_key}")
                raise InstanceCredentialsMissingError() from None

        with self._store_errors("store binding credentials at", binding_key):
            try:
                self.store.write(binding_key, credentials, WriteMode.NO_OVERWRITE)
            except CredentialAlreadyExistsError:
                logger.warning(f"Binding {binding_id} already has credentials at {binding_key}")
                raise BindingAlreadyExistsError() from None

        with self._store_errors("grant read permission on", binding_key):
            self.store.grant_permission(binding_key, actor, READ_OPERATIONS)

        logger.info(f"Bound {binding_id} of instance {instance_id}: granted read on {binding_key} to {actor}")
        return Binding(credentials={CREDENTIAL_REFERENCE_KEY: binding_key})

    def bind_for(self, instance_id: str, binding_id: str, details: BindDetails) -> Binding:
        return self.bind(instance_id, binding_id, details.service_id, details.actor())

    def unbind(self, instance_id: str, binding_id: str, service_id: str) -> None:
        binding_key = self._key(service_id, binding_id, EntityKind.BINDING)

        # Grants are recorded per path and survive a delete of the credential
        with self._store_errors("revoke permissions on", binding_key):
            self.store.revoke_permissions(binding_key)

        with self._store_errors("delete credentials at", binding_key):
            self.store.delete(binding_key)

        logger.info(f"Unbound {binding_id} of instance {instance_id}")

    def unbind_for(self, instance_id: str, binding_id: str, details: UnbindDetails) -> None:
        self.unbind(instance_id, binding_id, details.service_id)

    def last_operation(self, instance_id: str, operation_data: Optional[str] = None) -> LastOperation:
        # Every operation completes synchronously
        return LastOperation(state=LastOperationState.SUCCEEDED)

    def _key(self, service_id: str, entity_id: str, kind: EntityKind) -> str:
        try:
            return derive_key(self.config.broker_id, service_id, entity_id, kind, self.config.key_namespace)
        except InvalidKeySegmentError as e:
            raise InvalidParametersError(str(e)) from None

    @contextmanager
    def _store_errors(self, action: str, key: str) -> Iterator[None]:
        """Translate store failures into broker errors.

        The store message is logged with the key and kept out of the error
        returned to the platform.
        """
        try:
            yield
        except StoreUnavailableError as e:
            logger.error(f"Credential store unavailable while trying to {action} {key}: {e}")
            raise StoreUnavailableBrokerError() from None
        except CredentialStoreError as e:
            logger.error(f"Unable to {action} {key}: {e}")
            raise StoreOperationError() from None
