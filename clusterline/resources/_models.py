from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from clusterline.core import DataModel, DataModelField

DestroyResult = Literal["deleted", "already deleted"]

DELETED: DestroyResult = "deleted"
ALREADY_DELETED: DestroyResult = "already deleted"


class ServiceStatus(str, Enum):
    ACTIVE = "ACTIVE"
    DRAINING = "DRAINING"
    INACTIVE = "INACTIVE"


class ServiceDeployment(DataModel):
    id: str | None = None
    status: str | None = None
    task_definition: str | None = DataModelField(
        alias="taskDefinition", default=None
    )
    desired_count: int = DataModelField(alias="desiredCount", default=0)
    pending_count: int = DataModelField(alias="pendingCount", default=0)
    running_count: int = DataModelField(alias="runningCount", default=0)
    rollout_state: str | None = DataModelField(
        alias="rolloutState", default=None
    )


class ServiceItem(DataModel):
    """Trimmed view of an ECS service description."""

    service_arn: str | None = DataModelField(alias="serviceArn", default=None)
    service_name: str | None = DataModelField(
        alias="serviceName", default=None
    )
    cluster: str | None = DataModelField(alias="clusterArn", default=None)
    task_definition: str | None = DataModelField(
        alias="taskDefinition", default=None
    )
    desired_count: int = DataModelField(alias="desiredCount", default=0)
    pending_count: int = DataModelField(alias="pendingCount", default=0)
    running_count: int = DataModelField(alias="runningCount", default=0)
    status: str | None = None
    deployments: list[ServiceDeployment] = []
    events: list[str] = []
    """Event messages, newest first."""

    last_event: str | None = None

    @classmethod
    def from_description(cls, description: dict[str, Any]) -> ServiceItem:
        events = [
            e.get("message", "") for e in description.get("events") or []
        ]
        return cls.model_validate(
            {
                **description,
                "events": events,
                "last_event": events[0] if events else None,
            }
        )

    @property
    def name(self) -> str | None:
        if self.service_name:
            return self.service_name
        if self.service_arn:
            return self.service_arn.rsplit("/", 1)[-1]
        return None

    @property
    def is_inactive(self) -> bool:
        return self.status == ServiceStatus.INACTIVE
