from __future__ import annotations

__all__ = ["Clusters"]

import logging
from typing import Any, Callable

from clusterline._common.amazon_provider import (
    AmazonProvider,
    is_transient_error,
)
from clusterline.core import (
    gather_all,
    retry,
    retry_kwargs,
    sync_operations,
)
from clusterline.core.exceptions import InvalidArgumentError, NotFoundError
from clusterline.naming import (
    TenantKey,
    deployment_filter,
    encode,
    is_system_name,
    matches,
    pr_filter,
    project_filter,
)

from ._models import ALREADY_DELETED, DELETED, DestroyResult, ServiceItem
from .service import Services

logger = logging.getLogger(__name__)


@sync_operations
class Clusters(AmazonProvider):
    async def acreate(
        self, cluster_name: str, tenant: TenantKey | None = None
    ) -> dict[str, Any]:
        if not cluster_name:
            raise InvalidArgumentError("create requires a cluster name")
        tags = encode(tenant).ecs_tags() if tenant is not None else None
        response = await self._ecs("create_cluster", clusterName=cluster_name)
        cluster = response["cluster"]
        logger.info("Created cluster %s", cluster_name)
        if tags:
            cluster_arn = cluster.get("clusterArn", cluster_name)

            async def tag():
                return await self._ecs(
                    "tag_resource", resourceArn=cluster_arn, tags=tags
                )

            await retry(
                tag,
                is_retryable=is_transient_error,
                label=f"tag cluster {cluster_name}",
                **retry_kwargs(self.settings),
            )
            cluster["tags"] = tags
        return cluster

    async def adescribe_many(
        self, clusters: list[str]
    ) -> list[dict[str, Any]]:
        """Existing clusters among ``clusters``; INACTIVE ones are gone."""
        if not clusters:
            raise InvalidArgumentError(
                "describe_many requires cluster names or ARNs"
            )
        response = await self._ecs(
            "describe_clusters", clusters=list(clusters), include=["TAGS"]
        )
        return [
            c
            for c in response.get("clusters") or []
            if c and c.get("status") != "INACTIVE"
        ]

    async def adescribe_one(self, cluster: str) -> dict[str, Any]:
        if not cluster:
            raise InvalidArgumentError("describe_one requires a cluster")
        found = await self.adescribe_many([cluster])
        if not found:
            raise NotFoundError(f"Cluster {cluster} not found.")
        return found[0]

    async def afind_or_create(
        self, cluster_name: str, tenant: TenantKey | None = None
    ) -> dict[str, Any]:
        if not cluster_name:
            raise InvalidArgumentError(
                "find_or_create requires a cluster name"
            )
        found = await self.adescribe_many([cluster_name])
        if found:
            return found[0]
        return await self.acreate(cluster_name, tenant)

    async def adestroy(self, cluster: str) -> DestroyResult:
        if not cluster:
            raise InvalidArgumentError(
                "destroy requires a cluster name or ARN"
            )
        if not await self.adescribe_many([cluster]):
            return ALREADY_DELETED
        await self._ecs("delete_cluster", cluster=cluster)
        logger.info("Deleted cluster %s", cluster)
        return DELETED

    async def alist(self, tenant: TenantKey | None = None) -> list[str]:
        arns = await self._paginate("list_clusters", "clusterArns")
        arns = [arn for arn in arns if is_system_name(arn)]
        if tenant is None:
            return arns
        return [arn for arn in arns if matches(tenant, arn)]

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

    async def _describe_services(
        self, cluster_arns: list[str]
    ) -> list[list[ServiceItem]]:
        services = Services(**self._clients())
        return await gather_all(
            services.adescribe(arn) for arn in cluster_arns
        )

    async def adescribe_project(
        self, project_id: str
    ) -> list[list[ServiceItem]]:
        """Services of every cluster in the project, one list per cluster."""
        return await self._describe_services(
            await self.alist_project(project_id)
        )

    async def adescribe_deployment(
        self, project_id: str, deployment: str
    ) -> list[list[ServiceItem]]:
        return await self._describe_services(
            await self.alist_deployment(project_id, deployment)
        )

    async def adescribe_pr(
        self, project_id: str, pr: str | int
    ) -> list[list[ServiceItem]]:
        return await self._describe_services(
            await self.alist_pr(project_id, pr)
        )
