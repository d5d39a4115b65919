"""
Task/service orchestration on a cluster.

``deploy`` fans out one task definition plus one service per task and waits
for every service to settle. ``teardown`` is the mirror: stop and delete
every service in the cluster, then wait until all of them are drained.
"""

from __future__ import annotations

__all__ = ["Orchestrator"]

import asyncio
import logging
from typing import Any

from pydantic import ValidationError

from clusterline._common.amazon_provider import AmazonProvider
from clusterline.core import CancelToken, gather_all, run_sync
from clusterline.core.exceptions import (
    InvalidArgumentError,
    NotFoundError,
    OperationCancelledError,
    PartialFailureError,
)
from clusterline.naming import TenantKey
from clusterline.resources import (
    Clusters,
    ContainerInstances,
    DestroyResult,
    ServiceItem,
    Services,
    TaskDefinitions,
)

from ._models import AppDefinition, TaskSpec

logger = logging.getLogger(__name__)


async def _labelled(label: str, coro) -> Any:
    try:
        return await coro
    except (
        InvalidArgumentError,
        OperationCancelledError,
        PartialFailureError,
    ):
        raise
    except Exception as e:
        raise PartialFailureError(str(e), label=label) from e


class Orchestrator(AmazonProvider):
    clusters: Clusters
    container_instances: ContainerInstances
    services: Services
    task_definitions: TaskDefinitions

    def __init__(self, **kwargs: Any):
        """Initialize.

        Args:
            kwargs: AWS client options, see ``AmazonProvider``.
        """
        super().__init__(**kwargs)
        self.clusters = Clusters(**self._clients())
        self.container_instances = ContainerInstances(**self._clients())
        self.services = Services(**self._clients())
        self.task_definitions = TaskDefinitions(**self._clients())

    def deploy(
        self,
        cluster: str,
        service_name: str,
        app_definition: AppDefinition | dict[str, Any],
        tenant: TenantKey | None = None,
        cancel: CancelToken | None = None,
        timeout: float | None = None,
    ) -> list[ServiceItem]:
        return run_sync(
            self.adeploy,
            cluster,
            service_name,
            app_definition,
            tenant=tenant,
            cancel=cancel,
            timeout=timeout,
        )

    async def adeploy(
        self,
        cluster: str,
        service_name: str,
        app_definition: AppDefinition | dict[str, Any],
        tenant: TenantKey | None = None,
        cancel: CancelToken | None = None,
        timeout: float | None = None,
    ) -> list[ServiceItem]:
        """Register every task of ``app_definition`` and run it as a service.

        Each task gets its own service named ``<service_name>-<family>``.
        Pairs proceed concurrently. The first failure is raised at once as
        a PartialFailureError naming the pair. Pairs still waiting stop
        waiting; nothing already created is rolled back.

        Returns:
            One settled service per task, in task order.
        """
        if not cluster:
            raise InvalidArgumentError("deploy requires a cluster name or ARN")
        if not service_name:
            raise InvalidArgumentError("deploy requires a service name")
        app = self._normalize_app_definition(app_definition)

        async def run():
            await self.clusters.adescribe_one(cluster)
            return await gather_all(
                _labelled(
                    f"deploy {service_name}-{task.family}",
                    self.acreate_task_and_service(
                        cluster,
                        f"{service_name}-{task.family}",
                        task,
                        tenant=tenant,
                        cancel=cancel,
                    ),
                )
                for task in app.tasks
            )

        services = await asyncio.wait_for(run(), timeout)
        logger.info(
            "Deployed %s services on %s", len(services), cluster
        )
        return list(services)

    def create_task_and_service(
        self,
        cluster: str,
        service_name: str,
        task: TaskSpec | dict[str, Any],
        tenant: TenantKey | None = None,
        cancel: CancelToken | None = None,
    ) -> ServiceItem:
        return run_sync(
            self.acreate_task_and_service,
            cluster,
            service_name,
            task,
            tenant=tenant,
            cancel=cancel,
        )

    async def acreate_task_and_service(
        self,
        cluster: str,
        service_name: str,
        task: TaskSpec | dict[str, Any],
        tenant: TenantKey | None = None,
        cancel: CancelToken | None = None,
    ) -> ServiceItem:
        if not cluster:
            raise InvalidArgumentError(
                "create_task_and_service requires a cluster name or ARN"
            )
        if not service_name:
            raise InvalidArgumentError(
                "create_task_and_service requires a service name"
            )
        if not task:
            raise InvalidArgumentError(
                "create_task_and_service requires a task"
            )
        if isinstance(task, TaskSpec):
            task = task.to_register_kwargs()
        task_def = await self.task_definitions.acreate(task, tenant)
        service = await self.services.afind_or_create(
            cluster, service_name, task_def["taskDefinitionArn"]
        )
        ready = await self.services.await_for_ready(
            cluster, service.service_arn or service_name, cancel=cancel
        )
        return ready[0]

    def teardown(
        self,
        cluster: str,
        cancel: CancelToken | None = None,
        timeout: float | None = None,
    ) -> list[str]:
        return run_sync(
            self.ateardown, cluster, cancel=cancel, timeout=timeout
        )

    async def ateardown(
        self,
        cluster: str,
        cancel: CancelToken | None = None,
        timeout: float | None = None,
    ) -> list[str]:
        """Stop and delete every service in ``cluster``, then wait for drain.

        Returns:
            ARNs of the services that were torn down.
        """
        if not cluster:
            raise InvalidArgumentError(
                "teardown requires a cluster name or ARN"
            )

        async def run():
            try:
                service_arns = await self.services.alist(cluster)
            except NotFoundError:
                logger.info("Cluster %s already deleted", cluster)
                return []
            if not service_arns:
                return []
            await gather_all(
                _labelled(
                    f"stop {arn}",
                    self.services.astop_and_destroy(cluster, arn),
                )
                for arn in service_arns
            )
            await gather_all(
                _labelled(
                    f"drain {arn}",
                    self.services.await_for_drained(
                        cluster, [arn], cancel=cancel
                    ),
                )
                for arn in service_arns
            )
            return service_arns

        service_arns = await asyncio.wait_for(run(), timeout)
        logger.info(
            "Tore down %s services on %s", len(service_arns), cluster
        )
        return service_arns

    def destroy_cluster(
        self,
        cluster: str,
        cancel: CancelToken | None = None,
        timeout: float | None = None,
    ) -> DestroyResult:
        return run_sync(
            self.adestroy_cluster, cluster, cancel=cancel, timeout=timeout
        )

    async def adestroy_cluster(
        self,
        cluster: str,
        cancel: CancelToken | None = None,
        timeout: float | None = None,
    ) -> DestroyResult:
        """Tear down, deregister container instances, delete the cluster."""
        if not cluster:
            raise InvalidArgumentError(
                "destroy_cluster requires a cluster name or ARN"
            )

        async def run():
            await self.ateardown(cluster, cancel=cancel)
            try:
                instances = await self.container_instances.alist(cluster)
            except NotFoundError:
                instances = []
            await gather_all(
                _labelled(
                    f"deregister {arn}",
                    self.container_instances.adestroy(cluster, arn),
                )
                for arn in instances
            )
            return await self.clusters.adestroy(cluster)

        return await asyncio.wait_for(run(), timeout)

    def _normalize_app_definition(
        self, app_definition: AppDefinition | dict[str, Any] | None
    ) -> AppDefinition:
        if isinstance(app_definition, AppDefinition):
            app = app_definition
        elif isinstance(app_definition, dict) and "tasks" in app_definition:
            try:
                app = AppDefinition.from_dict(app_definition)
            except ValidationError as e:
                raise InvalidArgumentError(
                    f"Invalid app definition: {e}"
                ) from e
        else:
            raise InvalidArgumentError(
                "deploy requires an app definition with tasks"
            )
        if not app.tasks:
            raise InvalidArgumentError("app definition has no tasks")
        return app
