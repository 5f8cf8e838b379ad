"""Credential lifecycle engine and the types it exchanges with a transport."""

from .catalog import Service, ServicePlan, build_catalog
from .engine import CredentialBroker, decode_parameters
from .errors import (
    AlreadyProvisionedError,
    BindingAlreadyExistsError,
    BrokerError,
    InstanceCredentialsMissingError,
    InvalidParametersError,
    MissingActorIdentityError,
    PlanChangeNotSupportedError,
    StoreOperationError,
    StoreUnavailableBrokerError,
)
from .keys import EntityKind, InvalidKeySegmentError, binding_key, derive_key, instance_key
from .models import BindDetails, Binding, BindResource, DeprovisionDetails, LastOperation, LastOperationState, ProvisionDetails, ProvisionedServiceSpec, UnbindDetails, UpdateDetails, UpdateServiceSpec

__all__ = [
    # Engine
    "CredentialBroker",
    "decode_parameters",
    # Keys
    "EntityKind",
    "InvalidKeySegmentError",
    "derive_key",
    "instance_key",
    "binding_key",
    # Catalog
    "Service",
    "ServicePlan",
    "build_catalog",
    # Models
    "ProvisionDetails",
    "ProvisionedServiceSpec",
    "UpdateDetails",
    "UpdateServiceSpec",
    "BindDetails",
    "BindResource",
    "Binding",
    "UnbindDetails",
    "DeprovisionDetails",
    "LastOperation",
    "LastOperationState",
    # Errors
    "BrokerError",
    "InvalidParametersError",
    "AlreadyProvisionedError",
    "BindingAlreadyExistsError",
    "InstanceCredentialsMissingError",
    "MissingActorIdentityError",
    "PlanChangeNotSupportedError",
    "StoreUnavailableBrokerError",
    "StoreOperationError",
]
