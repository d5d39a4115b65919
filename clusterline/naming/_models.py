from __future__ import annotations

import re
from typing import Any

from pydantic import ConfigDict, model_validator

from clusterline.core import DataModel
from clusterline.core.exceptions import InvalidKeyError

RESOURCE_PREFIX = "clusterline"
DELIM = "-"
SEGMENT_DELIM = "--"

CREATED_TAG = f"{RESOURCE_PREFIX}-created"
PROJECT_TAG = f"{RESOURCE_PREFIX}-project"
DEPLOYMENT_TAG = f"{RESOURCE_PREFIX}-deployment"
PR_TAG = f"{RESOURCE_PREFIX}-pr"
SHA_TAG = f"{RESOURCE_PREFIX}-sha"

# name segment key -> TenantKey field
SEGMENTS = {
    "pid": "project_id",
    "deployment": "deployment",
    "pr": "pr",
    "sha": "sha",
}

TAGS = {
    PROJECT_TAG: "project_id",
    DEPLOYMENT_TAG: "deployment",
    PR_TAG: "pr",
    SHA_TAG: "sha",
}

# Single hyphens only, so "--" always separates segments.
COMPONENT_PATTERN = re.compile(r"^[A-Za-z0-9_]+(-[A-Za-z0-9_]+)*$")


class TenantKey(DataModel):
    """Identity of one logical deployment: project plus environment."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    project_id: str
    deployment: str | None = None
    pr: str | None = None
    sha: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _validate(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if data.get("pr") is not None:
            data["pr"] = str(data["pr"])
        for name in SEGMENTS.values():
            value = data.get(name)
            if value is None:
                continue
            if not isinstance(value, str) or not COMPONENT_PATTERN.match(
                value
            ):
                raise InvalidKeyError(
                    f"Invalid tenant key component {name}={value!r}"
                )
        if not data.get("project_id"):
            raise InvalidKeyError("Tenant key requires a project_id")
        if data.get("deployment") and data.get("pr"):
            raise InvalidKeyError(
                "Tenant key takes a deployment or a pr, not both"
            )
        return data

    @classmethod
    def for_project(cls, project_id: str) -> TenantKey:
        return cls(project_id=project_id)

    @classmethod
    def for_deployment(
        cls, project_id: str, deployment: str, sha: str | None = None
    ) -> TenantKey:
        return cls(project_id=project_id, deployment=deployment, sha=sha)

    @classmethod
    def for_pr(
        cls, project_id: str, pr: str | int, sha: str | None = None
    ) -> TenantKey:
        return cls(project_id=project_id, pr=str(pr), sha=sha)


class TenantEncoding(DataModel):
    name: str
    tags: dict[str, str]

    def ec2_tags(self) -> list[dict[str, str]]:
        return [{"Key": k, "Value": v} for k, v in self.tags.items()]

    def ecs_tags(self) -> list[dict[str, str]]:
        return [{"key": k, "value": v} for k, v in self.tags.items()]
