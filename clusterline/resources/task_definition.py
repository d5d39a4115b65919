from __future__ import annotations

__all__ = ["TaskDefinitions"]

import logging
from typing import Any, Callable

from clusterline._common.amazon_provider import AmazonProvider, error_code
from clusterline.core import gather_all, sync_operations
from clusterline.core.exceptions import InvalidArgumentError
from clusterline.naming import (
    TenantKey,
    deployment_filter,
    encode,
    is_system_name,
    matches,
    pr_filter,
    project_filter,
)

from ._models import ALREADY_DELETED, DELETED, DestroyResult

logger = logging.getLogger(__name__)

# describe_task_definition raises these for unknown families/revisions
MISSING_CODES = ("ClientException", "InvalidParameterException")

# accepted by register_task_definition but not echoed by describe
REQUEST_ONLY_KEYS = ("tags",)


def covers(described: Any, requested: Any) -> bool:
    """Whether ``described`` holds every value set in ``requested``."""
    if isinstance(requested, dict):
        if not isinstance(described, dict):
            return False
        return all(
            key in described and covers(described[key], value)
            for key, value in requested.items()
        )
    if isinstance(requested, list):
        if not isinstance(described, list) or len(described) != len(
            requested
        ):
            return False
        return all(covers(d, r) for d, r in zip(described, requested))
    return described == requested


def _comparable(task_def: dict[str, Any]) -> dict[str, Any]:
    return {
        k: v for k, v in task_def.items() if k not in REQUEST_ONLY_KEYS
    }


@sync_operations
class TaskDefinitions(AmazonProvider):
    async def acreate(
        self,
        task_def: dict[str, Any] | None,
        tenant: TenantKey | None = None,
    ) -> dict[str, Any]:
        """Register a new revision of ``task_def``."""
        if not task_def:
            raise InvalidArgumentError("create requires a task definition")
        if not task_def.get("family"):
            raise InvalidArgumentError("create requires a family")
        if not task_def.get("containerDefinitions"):
            raise InvalidArgumentError("create requires container definitions")
        params = dict(task_def)
        if tenant is not None:
            params["tags"] = list(params.get("tags") or []) + (
                encode(tenant).ecs_tags()
            )
        response = await self._ecs("register_task_definition", **params)
        registered = response["taskDefinition"]
        logger.info("Created task %s", registered.get("taskDefinitionArn"))
        return registered

    async def adescribe_one(
        self, task_definition: str
    ) -> dict[str, Any] | None:
        """``family``, ``family:revision`` or ARN; None when absent."""
        if not task_definition:
            raise InvalidArgumentError(
                "describe_one requires a family:revision or ARN"
            )
        try:
            response = await self._ecs(
                "describe_task_definition", taskDefinition=task_definition
            )
        except Exception as e:
            if error_code(e) in MISSING_CODES:
                return None
            raise
        described = response.get("taskDefinition")
        if not described or described.get("status") == "INACTIVE":
            return None
        return described

    async def adescribe_many(
        self, task_definitions: list[str]
    ) -> list[dict[str, Any]]:
        if not task_definitions:
            raise InvalidArgumentError(
                "describe_many requires family:revision or ARNs"
            )
        described = await gather_all(
            self.adescribe_one(td) for td in task_definitions
        )
        return [d for d in described if d]

    async def afind_or_create(
        self,
        task_def: dict[str, Any] | None,
        tenant: TenantKey | None = None,
    ) -> dict[str, Any]:
        """Latest revision of the family if it carries what ``task_def`` asks.

        ECS fills in defaults when it describes a revision, so only the keys
        the caller supplied are compared.
        """
        if not task_def or not task_def.get("family"):
            raise InvalidArgumentError("find_or_create requires a family")
        latest = await self.adescribe_one(task_def["family"])
        if latest and covers(latest, _comparable(task_def)):
            return latest
        return await self.acreate(task_def, tenant)

    async def adestroy(self, task_definition: str) -> DestroyResult:
        if not task_definition:
            raise InvalidArgumentError(
                "destroy requires a family:revision or ARN"
            )
        if not await self.adescribe_one(task_definition):
            return ALREADY_DELETED
        await self._ecs(
            "deregister_task_definition", taskDefinition=task_definition
        )
        logger.info("Deregistered task definition %s", task_definition)
        return DELETED

    async def alist(self, tenant: TenantKey | None = None) -> list[str]:
        arns = await self._paginate(
            "list_task_definitions", "taskDefinitionArns"
        )
        arns = [arn for arn in arns if is_system_name(arn)]
        if tenant is None:
            return arns
        return [arn for arn in arns if matches(tenant, arn)]

    async def alist_families(self) -> list[str]:
        return await self._paginate(
            "list_task_definition_families", "families"
        )

    async def _list_filtered(self, predicate: Callable[[str], bool]):
        return [arn for arn in await self.alist() if predicate(arn)]

    async def alist_project(self, project_id: str) -> list[str]:
        if not project_id:
            raise InvalidArgumentError("list_project requires a project_id")
        return await self._list_filtered(project_filter(project_id))

    async def alist_deployment(
        self, project_id: str, deployment: str
    ) -> list[str]:
        if not project_id:
            raise InvalidArgumentError(
                "list_deployment requires a project_id"
            )
        if not deployment:
            raise InvalidArgumentError(
                "list_deployment requires a deployment"
            )
        return await self._list_filtered(
            deployment_filter(project_id, deployment)
        )

    async def alist_pr(self, project_id: str, pr: str | int) -> list[str]:
        if not project_id:
            raise InvalidArgumentError("list_pr requires a project_id")
        if not pr:
            raise InvalidArgumentError("list_pr requires a pr")
        return await self._list_filtered(pr_filter(project_id, pr))
