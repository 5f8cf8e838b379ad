"""Error taxonomy returned by the lifecycle engine.

Every failure leaving ``CredentialBroker`` is one of these. Each carries
the HTTP status and error key a transport should answer with, and a
description that is safe to show to the platform. Store error text never
ends up in the description.
"""

from __future__ import annotations

from typing import Any, Dict


class BrokerError(Exception):
    """Base class for lifecycle failures."""

    status_code: int = 500
    error_key: str = "internal-error"
    default_description: str = "The broker could not complete the request"

    def __init__(self, description: str | None = None):
        self.description = description or self.default_description
        super().__init__(self.description)

    def to_response(self) -> Dict[str, Any]:
        """Render the error body of a broker API response."""
        return {"error": self.error_key, "description": self.description}


class InvalidParametersError(BrokerError):
    status_code = 422
    error_key = "missing-parameters"
    default_description = "Configuration parameters containing the credentials you wish to store in CredHub are needed to use this service"


class AlreadyProvisionedError(BrokerError):
    status_code = 409
    error_key = "instance-already-exists"
    default_description = "A service instance with this id already exists"


class BindingAlreadyExistsError(AlreadyProvisionedError):
    error_key = "binding-already-exists"
    default_description = "A service binding with this id already exists"


class InstanceCredentialsMissingError(BrokerError):
    status_code = 500
    error_key = "missing-service-instance-entry"
    default_description = "Unable to retrieve service instance credentials from CredHub"


class MissingActorIdentityError(BrokerError):
    status_code = 422
    error_key = "missing-actor-identity"
    default_description = "No app-guid or credential client ID were provided in the binding request, you must configure one of these"


class PlanChangeNotSupportedError(BrokerError):
    status_code = 422
    error_key = "plan-change-not-supported"
    default_description = "The requested plan migration cannot be performed"


class StoreUnavailableBrokerError(BrokerError):
    status_code = 503
    error_key = "credential-store-unavailable"
    default_description = "The credential store is currently unavailable"


class StoreOperationError(BrokerError):
    status_code = 500
    error_key = "credential-store-error"
    default_description = "Unable to store the provided credentials"
