"""
Account wide VPC shared by every project.

The master VPC is found by the system tag every time it is needed; it is
never remembered between calls.
"""

from __future__ import annotations

__all__ = ["Vpcs", "find_master_vpc", "find_project_vpc"]

import logging
from typing import Any

from clusterline._common.amazon_provider import (
    AmazonProvider,
    is_transient_error,
)
from clusterline.core import retry, retry_kwargs, sync_operations
from clusterline.core.exceptions import InvalidArgumentError
from clusterline.naming import CREATED_TAG, PROJECT_TAG, parse_tags

from ._models import ALREADY_DELETED, DELETED, DestroyResult

logger = logging.getLogger(__name__)

SYSTEM_FILTER = {"Name": "tag-key", "Values": [CREATED_TAG]}


def find_master_vpc(vpcs: list[dict[str, Any]]) -> dict[str, Any] | None:
    """First system VPC that carries no project tag."""
    for vpc in vpcs:
        if PROJECT_TAG not in parse_tags(vpc.get("Tags")):
            return vpc
    return None


def find_project_vpc(
    project_id: str, vpcs: list[dict[str, Any]]
) -> dict[str, Any] | None:
    for vpc in vpcs:
        if parse_tags(vpc.get("Tags")).get(PROJECT_TAG) == project_id:
            return vpc
    return None


@sync_operations
class Vpcs(AmazonProvider):
    async def adescribe(self) -> list[dict[str, Any]]:
        response = await self._ec2(
            "describe_vpcs", DryRun=False, Filters=[SYSTEM_FILTER]
        )
        return response.get("Vpcs", [])

    async def adescribe_many(
        self, vpc_ids: list[str]
    ) -> list[dict[str, Any]]:
        if not vpc_ids:
            raise InvalidArgumentError("describe_many requires VPC ids")
        # A vpc-id filter skips unknown ids instead of failing the call.
        response = await self._ec2(
            "describe_vpcs",
            DryRun=False,
            Filters=[{"Name": "vpc-id", "Values": list(vpc_ids)}],
        )
        return response.get("Vpcs", [])

    async def alist(self) -> list[str]:
        return [vpc["VpcId"] for vpc in await self.adescribe()]

    async def acreate(self, cidr_block: str | None) -> dict[str, Any]:
        if not cidr_block:
            raise InvalidArgumentError("create requires a CIDR block")
        response = await self._ec2(
            "create_vpc", DryRun=False, CidrBlock=cidr_block
        )
        vpc = response["Vpc"]
        vpc_id = vpc["VpcId"]
        logger.info("Created VPC %s", vpc_id)
        tags = [{"Key": CREATED_TAG, "Value": "true"}]

        async def tag():
            return await self._ec2(
                "create_tags", Resources=[vpc_id], Tags=tags
            )

        # The new VPC may not be visible to the tagging API yet.
        await retry(
            tag,
            is_retryable=is_transient_error,
            label=f"tag VPC {vpc_id}",
            **retry_kwargs(self.settings),
        )
        vpc["Tags"] = list(vpc.get("Tags") or []) + tags
        return vpc

    async def afind_or_create(
        self, cidr_block: str | None = None
    ) -> dict[str, Any]:
        master = find_master_vpc(await self.adescribe())
        if master:
            return master
        return await self.acreate(cidr_block or self.settings.default_cidr)

    async def adestroy(self, vpc_id: str) -> DestroyResult:
        if not vpc_id:
            raise InvalidArgumentError("destroy requires a VPC id")
        if not await self.adescribe_many([vpc_id]):
            return ALREADY_DELETED
        await self._ec2("delete_vpc", VpcId=vpc_id)
        logger.info("Deleted VPC %s", vpc_id)
        return DELETED
