from __future__ import annotations

__all__ = ["ContainerInstances"]

import logging
from typing import Any

from clusterline._common.amazon_provider import (
    AmazonProvider,
    is_cluster_not_found,
)
from clusterline.core import gather_all, sync_operations
from clusterline.core.exceptions import (
    InvalidArgumentError,
    NotFoundError,
)

from ._models import ALREADY_DELETED, DELETED, DestroyResult

logger = logging.getLogger(__name__)

# describe_container_instances accepts at most 100 instances per call
DESCRIBE_BATCH_SIZE = 100


@sync_operations
class ContainerInstances(AmazonProvider):
    async def alist(self, cluster: str) -> list[str]:
        if not cluster:
            raise InvalidArgumentError("list requires a cluster name or ARN")
        try:
            return await self._paginate(
                "list_container_instances",
                "containerInstanceArns",
                strict=True,
                cluster=cluster,
            )
        except Exception as e:
            if is_cluster_not_found(e):
                raise NotFoundError(f"Cluster {cluster} not found.") from e
            raise

    async def adescribe_many(
        self, cluster: str, container_instances: list[str]
    ) -> list[dict[str, Any]]:
        if not cluster:
            raise InvalidArgumentError(
                "describe_many requires a cluster name or ARN"
            )
        if not container_instances:
            raise InvalidArgumentError(
                "describe_many requires container instance ids or ARNs"
            )
        arns = list(container_instances)
        try:
            responses = await gather_all(
                self._ecs(
                    "describe_container_instances",
                    cluster=cluster,
                    containerInstances=arns[i : i + DESCRIBE_BATCH_SIZE],
                )
                for i in range(0, len(arns), DESCRIBE_BATCH_SIZE)
            )
        except Exception as e:
            if is_cluster_not_found(e):
                raise NotFoundError(f"Cluster {cluster} not found.") from e
            raise
        return [
            instance
            for response in responses
            for instance in response.get("containerInstances") or []
        ]

    async def adescribe(self, cluster: str) -> list[dict[str, Any]]:
        arns = await self.alist(cluster)
        if not arns:
            return []
        return await self.adescribe_many(cluster, arns)

    async def acreate(
        self, cluster: str, instance_arn: str
    ) -> dict[str, Any]:
        if not cluster:
            raise InvalidArgumentError("create requires a cluster ARN")
        if not instance_arn:
            raise InvalidArgumentError("create requires an instance ARN")
        response = await self._ecs(
            "register_container_instance",
            cluster=cluster,
            containerInstanceArn=instance_arn,
        )
        logger.info("Registered container instance %s", instance_arn)
        return response["containerInstance"]

    async def afind_or_create(
        self, cluster: str, instance_arn: str
    ) -> dict[str, Any]:
        if not instance_arn:
            raise InvalidArgumentError(
                "find_or_create requires an instance ARN"
            )
        found = await self.adescribe_many(cluster, [instance_arn])
        if found:
            return found[0]
        return await self.acreate(cluster, instance_arn)

    async def adestroy(
        self, cluster: str, container_instance: str
    ) -> DestroyResult:
        if not cluster:
            raise InvalidArgumentError(
                "destroy requires a cluster name or ARN"
            )
        if not container_instance:
            raise InvalidArgumentError(
                "destroy requires an instance id or ARN"
            )
        try:
            found = await self.adescribe_many(cluster, [container_instance])
        except NotFoundError:
            return ALREADY_DELETED
        if not found:
            return ALREADY_DELETED
        await self._ecs(
            "deregister_container_instance",
            cluster=cluster,
            containerInstance=container_instance,
            force=True,
        )
        logger.info("Deregistered container instance %s", container_instance)
        return DELETED
