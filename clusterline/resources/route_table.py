from __future__ import annotations

__all__ = ["RouteTables"]

import logging
from typing import Any

from clusterline._common.amazon_provider import (
    AmazonProvider,
    is_transient_error,
)
from clusterline.core import retry, retry_kwargs, sync_operations
from clusterline.core.exceptions import InvalidArgumentError
from clusterline.naming import CREATED_TAG

from ._models import ALREADY_DELETED, DELETED, DestroyResult
from .vpc import SYSTEM_FILTER

logger = logging.getLogger(__name__)


@sync_operations
class RouteTables(AmazonProvider):
    async def adescribe(self, vpc_id: str) -> list[dict[str, Any]]:
        if not vpc_id:
            raise InvalidArgumentError("describe requires a VPC id")
        response = await self._ec2(
            "describe_route_tables",
            DryRun=False,
            Filters=[{"Name": "vpc-id", "Values": [vpc_id]}, SYSTEM_FILTER],
        )
        return response.get("RouteTables", [])

    async def adescribe_many(
        self, route_table_ids: list[str]
    ) -> list[dict[str, Any]]:
        if not route_table_ids:
            raise InvalidArgumentError(
                "describe_many requires route table ids"
            )
        response = await self._ec2(
            "describe_route_tables",
            DryRun=False,
            Filters=[
                {"Name": "route-table-id", "Values": list(route_table_ids)}
            ],
        )
        return response.get("RouteTables", [])

    async def alist(self, vpc_id: str) -> list[str]:
        return [rt["RouteTableId"] for rt in await self.adescribe(vpc_id)]

    async def acreate(self, vpc_id: str) -> dict[str, Any]:
        if not vpc_id:
            raise InvalidArgumentError("create requires a VPC id")
        response = await self._ec2(
            "create_route_table", DryRun=False, VpcId=vpc_id
        )
        route_table = response["RouteTable"]
        route_table_id = route_table["RouteTableId"]
        logger.info("Created route table %s in %s", route_table_id, vpc_id)
        tags = [{"Key": CREATED_TAG, "Value": "true"}]

        async def tag():
            return await self._ec2(
                "create_tags", Resources=[route_table_id], Tags=tags
            )

        await retry(
            tag,
            is_retryable=is_transient_error,
            label=f"tag route table {route_table_id}",
            **retry_kwargs(self.settings),
        )
        route_table["Tags"] = list(route_table.get("Tags") or []) + tags
        return route_table

    async def afind_or_create(self, vpc_id: str) -> dict[str, Any]:
        existing = await self.adescribe(vpc_id)
        if existing:
            return existing[0]
        return await self.acreate(vpc_id)

    async def adestroy(self, route_table_id: str) -> DestroyResult:
        if not route_table_id:
            raise InvalidArgumentError("destroy requires a route table id")
        if not await self.adescribe_many([route_table_id]):
            return ALREADY_DELETED
        await self._ec2("delete_route_table", RouteTableId=route_table_id)
        logger.info("Deleted route table %s", route_table_id)
        return DELETED
