"""
ECS services, plus the classifiers used to wait on them.
"""

from __future__ import annotations

__all__ = [
    "Services",
    "check_for_inactive",
    "classify_drained",
    "classify_ready",
    "get_status",
]

import logging
from typing import Any

from clusterline._common.amazon_provider import (
    AmazonProvider,
    error_code,
    is_cluster_not_found,
)
from clusterline.core import (
    CancelToken,
    Poll,
    gather_all,
    poll_until,
    sync_operations,
)
from clusterline.core.exceptions import (
    ConvergenceError,
    InvalidArgumentError,
    NotFoundError,
)

from ._models import (
    ALREADY_DELETED,
    DELETED,
    DestroyResult,
    ServiceItem,
    ServiceStatus,
)

logger = logging.getLogger(__name__)

# describe_services accepts at most 10 services per call
DESCRIBE_BATCH_SIZE = 10

STEADY_STATE_MARKER = "steady state"

GONE_CODES = (
    "ServiceNotFoundException",
    "ServiceNotActiveException",
    "ClusterNotFoundException",
)


def get_status(services: list[ServiceItem]) -> int:
    """Steadiness of the first service.

    Returns -1 when there are no services, 0 when steady and 1 when not.

    An event history without any "steady state" message counts as not yet
    steady. ECS writes "has reached a steady state" once the running count
    matches the desired count.
    """
    if not services:
        return -1
    unsettled = all(
        STEADY_STATE_MARKER not in message for message in services[0].events
    )
    for message in services[0].events:
        logger.debug("Polling service for ready check: %s", message)
    return int(unsettled)


def classify_ready(services: list[ServiceItem]) -> Poll:
    status = get_status(services)
    if status < 0:
        return Poll.failed(
            ConvergenceError("Service vanished while waiting to be ready")
        )
    if status == 0:
        logger.info("Service has reached a steady state")
        return Poll.done(services)
    return Poll.pending()


def check_for_inactive(services: list[ServiceItem]) -> bool:
    if not services:
        return False
    return services[0].status == ServiceStatus.INACTIVE


def classify_drained(services: list[ServiceItem]) -> Poll:
    if check_for_inactive(services):
        logger.info("Service has drained")
        return Poll.done(services)
    logger.info("Service is draining")
    return Poll.pending()


@sync_operations
class Services(AmazonProvider):
    async def alist(self, cluster: str) -> list[str]:
        """Service ARNs in ``cluster``; NotFoundError if it is gone."""
        if not cluster:
            raise InvalidArgumentError("list requires a cluster name or ARN")
        try:
            return await self._paginate(
                "list_services", "serviceArns", cluster=cluster
            )
        except Exception as e:
            if is_cluster_not_found(e):
                raise NotFoundError(f"Cluster {cluster} not found.") from e
            raise

    async def adescribe_many(
        self, cluster: str, services: list[str]
    ) -> list[ServiceItem]:
        if not cluster:
            raise InvalidArgumentError(
                "describe_many requires a cluster name or ARN"
            )
        if not services:
            raise InvalidArgumentError(
                "describe_many requires service names or ARNs"
            )
        names = list(services)
        batches = [
            names[i : i + DESCRIBE_BATCH_SIZE]
            for i in range(0, len(names), DESCRIBE_BATCH_SIZE)
        ]
        try:
            responses = await gather_all(
                self._ecs("describe_services", cluster=cluster, services=b)
                for b in batches
            )
        except Exception as e:
            if is_cluster_not_found(e):
                raise NotFoundError(f"Cluster {cluster} not found.") from e
            raise
        # missing services come back under "failures"
        return [
            ServiceItem.from_description(description)
            for response in responses
            for description in response.get("services") or []
            if description
        ]

    async def adescribe(self, cluster: str) -> list[ServiceItem]:
        arns = await self.alist(cluster)
        if not arns:
            return []
        return await self.adescribe_many(cluster, arns)

    async def acreate(
        self,
        cluster: str,
        service_name: str,
        task_definition: str,
        desired_count: int | None = None,
    ) -> ServiceItem:
        if not cluster:
            raise InvalidArgumentError(
                "create requires a cluster name or ARN"
            )
        if not service_name:
            raise InvalidArgumentError("create requires a service name")
        if not task_definition:
            raise InvalidArgumentError(
                "create requires a task definition family:revision or ARN"
            )
        if desired_count is None:
            desired_count = self.settings.service_desired_count
        try:
            response = await self._ecs(
                "create_service",
                cluster=cluster,
                serviceName=service_name,
                taskDefinition=task_definition,
                desiredCount=desired_count,
            )
        except Exception as e:
            if is_cluster_not_found(e):
                raise NotFoundError(f"Cluster {cluster} not found.") from e
            raise
        logger.info("Created service %s on %s", service_name, cluster)
        return ServiceItem.from_description(response["service"])

    async def afind_or_create(
        self,
        cluster: str,
        service_name: str,
        task_definition: str,
        desired_count: int | None = None,
    ) -> ServiceItem:
        """Service ``service_name`` running ``task_definition``.

        Not atomic: two callers racing on a missing service can both reach
        ``create``.
        """
        if not service_name:
            raise InvalidArgumentError(
                "find_or_create requires a service name"
            )
        existing = [
            s
            for s in await self.adescribe_many(cluster, [service_name])
            if s.status == ServiceStatus.ACTIVE
        ]
        for service in existing:
            if service.task_definition == task_definition:
                return service
        if existing:
            # rolling update onto the new revision
            return await self.aupdate(
                cluster,
                service_name,
                taskDefinition=task_definition,
            )
        return await self.acreate(
            cluster, service_name, task_definition, desired_count
        )

    async def aupdate(
        self, cluster: str, service: str, **changes: Any
    ) -> ServiceItem:
        if not cluster:
            raise InvalidArgumentError(
                "update requires a cluster name or ARN"
            )
        if not service:
            raise InvalidArgumentError(
                "update requires a service name or ARN"
            )
        if not changes:
            raise InvalidArgumentError("update requires changes")
        response = await self._ecs(
            "update_service", cluster=cluster, service=service, **changes
        )
        return ServiceItem.from_description(response["service"])

    async def astop(self, cluster: str, service: str) -> ServiceItem:
        return await self.aupdate(cluster, service, desiredCount=0)

    async def adestroy(self, cluster: str, service: str) -> DestroyResult:
        """Delete a service that has already been scaled down and drained.

        Raises InvalidArgumentError while the desired or running count is
        above zero; use ``stop_and_destroy`` to scale down first.
        """
        if not cluster:
            raise InvalidArgumentError(
                "destroy requires a cluster name or ARN"
            )
        if not service:
            raise InvalidArgumentError(
                "destroy requires a service name or ARN"
            )
        try:
            found = await self.adescribe_many(cluster, [service])
        except NotFoundError:
            return ALREADY_DELETED
        live = [s for s in found if not s.is_inactive]
        if not live:
            return ALREADY_DELETED
        for s in live:
            if s.desired_count > 0 or s.running_count > 0:
                raise InvalidArgumentError(
                    f"Service {service} still has {s.desired_count} desired "
                    f"and {s.running_count} running tasks"
                )
        await self._ecs("delete_service", cluster=cluster, service=service)
        logger.info("Deleted service %s", service)
        return DELETED

    async def astop_and_destroy(
        self, cluster: str, service: str
    ) -> DestroyResult:
        # The service comes from a fresh list, so no describe first.
        try:
            stopped = await self.astop(cluster, service)
        except Exception as e:
            if error_code(e) in GONE_CODES:
                return ALREADY_DELETED
            raise
        await self._ecs(
            "delete_service",
            cluster=cluster,
            service=stopped.service_arn or service,
        )
        logger.info("Stopped and deleted service %s", service)
        return DELETED

    async def await_for_ready(
        self,
        cluster: str,
        service: str,
        cancel: CancelToken | None = None,
    ) -> list[ServiceItem]:
        if not cluster or not service:
            raise InvalidArgumentError(
                "wait_for_ready requires a cluster and a service"
            )

        async def check():
            return await self.adescribe_many(cluster, [service])

        return await poll_until(
            check,
            interval=self.settings.poll_interval,
            classify=classify_ready,
            cancel=cancel,
            label=f"wait for {service} ready",
        )

    async def await_for_drained(
        self,
        cluster: str,
        services: list[str],
        cancel: CancelToken | None = None,
    ) -> list[ServiceItem]:
        if not cluster:
            raise InvalidArgumentError(
                "wait_for_drained requires a cluster name or ARN"
            )
        if not services:
            raise InvalidArgumentError(
                "wait_for_drained requires service names or ARNs"
            )

        async def check():
            return await self.adescribe_many(cluster, services)

        return await poll_until(
            check,
            interval=self.settings.poll_interval,
            classify=classify_drained,
            cancel=cancel,
            label=f"wait for {services[0]} drained",
        )
