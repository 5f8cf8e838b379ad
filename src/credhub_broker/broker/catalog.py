"""Static service catalog advertised by the broker."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

PLAN_NAME_DEFAULT = "default"
SERVICE_DESCRIPTION = "Stores configuration parameters securely in CredHub"


class ServicePlanMetadata(BaseModel):
    display_name: str = Field(..., description="Human readable plan name")
    bullets: List[str] = Field(default_factory=list)


class ServicePlan(BaseModel):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: str = Field(...)
    free: bool = Field(default=True)
    metadata: Optional[ServicePlanMetadata] = Field(None)


class ServiceMetadata(BaseModel):
    display_name: str = Field(...)
    long_description: str = Field(default="")
    documentation_url: str = Field(default="")
    support_url: str = Field(default="")
    image_url: str = Field(default="")
    provider_display_name: str = Field(default="")


class Service(BaseModel):
    """A service offering with its plans."""

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: str = Field(...)
    bindable: bool = Field(default=True)
    plan_updatable: bool = Field(default=False)
    tags: List[str] = Field(default_factory=list)
    metadata: Optional[ServiceMetadata] = Field(None)
    plans: List[ServicePlan] = Field(default_factory=list)

    def find_plan(self, plan_id: str) -> Optional[ServicePlan]:
        return next((plan for plan in self.plans if plan.id == plan_id), None)


def default_plans() -> List[ServicePlan]:
    return [
        ServicePlan(
            id=PLAN_NAME_DEFAULT,
            name=PLAN_NAME_DEFAULT,
            description=SERVICE_DESCRIPTION,
            metadata=ServicePlanMetadata(display_name=PLAN_NAME_DEFAULT, bullets=[SERVICE_DESCRIPTION]),
        )
    ]


def build_catalog(service_id: str, service_name: str, plan_updatable: bool = False) -> List[Service]:
    """Build the catalog for one broker deployment.

    Args:
        service_id: Offering id the platform sends back on lifecycle calls
        service_name: Offering name shown in the marketplace
        plan_updatable: Whether the broker accepts plan changes

    Returns:
        List with the single credential offering
    """
    return [
        Service(
            id=service_id,
            name=service_name,
            description=SERVICE_DESCRIPTION,
            bindable=True,
            plan_updatable=plan_updatable,
            tags=["credhub"],
            metadata=ServiceMetadata(display_name="credhub-broker", long_description=SERVICE_DESCRIPTION),
            plans=default_plans(),
        )
    ]
