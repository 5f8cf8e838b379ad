"""Pydantic models for lifecycle requests and responses."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# JSON text, raw request bytes, or a body the transport already decoded
RawParameters = Union[str, bytes, Dict[str, Any], None]


def is_plan_change(plan_id: Optional[str], previous_plan_id: Optional[str]) -> bool:
    """An update changes plans only when both ids are known and differ."""
    return bool(plan_id and previous_plan_id) and plan_id != previous_plan_id


class BindResource(BaseModel):
    """Resource the binding is created for."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="allow")

    app_guid: Optional[str] = Field(None, description="GUID of the application being bound")
    route: Optional[str] = Field(None, description="Route for route-service bindings")
    credential_client_id: Optional[str] = Field(None, description="UAA client id for service keys")


class ProvisionDetails(BaseModel):
    """Body of a provision request."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="allow", populate_by_name=True)

    service_id: str = Field(..., min_length=1, description="Service offering id")
    plan_id: str = Field(..., min_length=1, description="Plan id")
    organization_guid: Optional[str] = Field(None, description="Platform organization guid")
    space_guid: Optional[str] = Field(None, description="Platform space guid")
    raw_parameters: RawParameters = Field(None, alias="parameters", description="User-supplied credential fields")


class UpdateDetails(BaseModel):
    """Body of an update request."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="allow", populate_by_name=True)

    service_id: str = Field(..., min_length=1, description="Service offering id")
    plan_id: Optional[str] = Field(None, description="Requested plan id")
    previous_plan_id: Optional[str] = Field(None, description="Plan id before the update")
    raw_parameters: RawParameters = Field(None, alias="parameters", description="Replacement credential fields")


class BindDetails(BaseModel):
    """Body of a bind request."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="allow", populate_by_name=True)

    service_id: str = Field(..., min_length=1, description="Service offering id")
    plan_id: Optional[str] = Field(None, description="Plan id")
    app_guid: Optional[str] = Field(None, description="Deprecated top-level application guid")
    bind_resource: Optional[BindResource] = Field(None, description="Resource being bound")
    raw_parameters: RawParameters = Field(None, alias="parameters", description="Bind parameters (unused)")

    def actor(self) -> str:
        """Identity that receives read access to the binding credential.

        Applications authenticate to CredHub with their instance identity
        certificate, service keys with a UAA client.
        """
        app_guid = self.app_guid or (self.bind_resource.app_guid if self.bind_resource else None)
        if app_guid:
            return f"mtls-app:{app_guid}"

        client_id = self.bind_resource.credential_client_id if self.bind_resource else None
        if client_id:
            return f"uaa-client:{client_id}"

        return ""


class UnbindDetails(BaseModel):
    """Query parameters of an unbind request."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="allow")

    service_id: str = Field(..., min_length=1, description="Service offering id")
    plan_id: Optional[str] = Field(None, description="Plan id")


class DeprovisionDetails(BaseModel):
    """Query parameters of a deprovision request."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="allow")

    service_id: str = Field(..., min_length=1, description="Service offering id")
    plan_id: Optional[str] = Field(None, description="Plan id")


class ProvisionedServiceSpec(BaseModel):
    """Acknowledgement of a provision request."""

    is_async: bool = Field(default=False, description="Whether provisioning continues in the background")
    dashboard_url: Optional[str] = Field(None, description="Dashboard for the instance")
    operation_data: Optional[str] = Field(None, description="Opaque token for last-operation polling")


class UpdateServiceSpec(BaseModel):
    """Acknowledgement of an update request."""

    is_async: bool = Field(default=False)
    operation_data: Optional[str] = Field(None)


class Binding(BaseModel):
    """Credentials handed to the platform for a binding."""

    credentials: Dict[str, str] = Field(default_factory=dict, description="Credential reference, never the secret")
    syslog_drain_url: Optional[str] = Field(None)
    route_service_url: Optional[str] = Field(None)
    volume_mounts: List[Dict[str, Any]] = Field(default_factory=list)


class LastOperationState(str, Enum):
    IN_PROGRESS = "in progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class LastOperation(BaseModel):
    """State of the last asynchronous operation on an instance."""

    state: LastOperationState = Field(default=LastOperationState.SUCCEEDED)
    description: str = Field(default="")
