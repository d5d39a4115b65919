from __future__ import annotations

from typing import Any

import boto3
from botocore.exceptions import ClientError

from clusterline.core import Provider, run_async
from clusterline.core.exceptions import InternalError
from clusterline.settings import Settings

# Codes EC2/ECS return while a just-created resource is not yet visible.
EVENTUAL_CONSISTENCY_CODES = frozenset(
    [
        "InvalidVpcID.NotFound",
        "InvalidRouteTableID.NotFound",
        "InvalidInstanceID.NotFound",
        "ResourceNotFoundException",
        "ClusterNotFoundException",
    ]
)

THROTTLING_CODES = frozenset(
    [
        "Throttling",
        "ThrottlingException",
        "RequestLimitExceeded",
        "TooManyRequestsException",
        "ServerException",
        "ServiceUnavailable",
    ]
)


def error_code(e: BaseException) -> str | None:
    if isinstance(e, ClientError):
        return e.response.get("Error", {}).get("Code")
    return None


def is_transient_error(e: BaseException) -> bool:
    code = error_code(e)
    if code is None:
        return False
    return code in EVENTUAL_CONSISTENCY_CODES or code in THROTTLING_CODES


def is_cluster_not_found(e: BaseException) -> bool:
    return error_code(e) == "ClusterNotFoundException"


class AmazonProvider(Provider):
    region: str
    aws_access_key_id: str | None
    aws_secret_access_key: str | None
    aws_session_token: str | None
    profile_name: str | None
    nparams: dict[str, Any]

    _ecs_client: Any
    _ec2_client: Any
    _init: bool = False

    def __init__(
        self,
        region: str | None = None,
        aws_access_key_id: str | None = None,
        aws_secret_access_key: str | None = None,
        aws_session_token: str | None = None,
        profile_name: str | None = None,
        ecs_client: Any = None,
        ec2_client: Any = None,
        settings: Settings | None = None,
        nparams: dict[str, Any] = {},
        **kwargs: Any,
    ):
        """Initialize.

        Args:
            region: AWS region. Defaults to the configured region.
            aws_access_key_id: AWS access key ID.
            aws_secret_access_key: AWS secret access key.
            aws_session_token: AWS session token.
            profile_name: AWS profile name to use.
            ecs_client: Pre-built ECS client to use instead of creating one.
            ec2_client: Pre-built EC2 client to use instead of creating one.
            settings: Settings, defaults to the environment.
            nparams: Native params to AWS clients.
        """
        super().__init__(settings=settings, **kwargs)
        self.region = region or self.settings.aws_region
        self.aws_access_key_id = (
            aws_access_key_id or self.settings.aws_access_key_id
        )
        self.aws_secret_access_key = (
            aws_secret_access_key or self.settings.aws_secret_access_key
        )
        self.aws_session_token = (
            aws_session_token or self.settings.aws_session_token
        )
        self.profile_name = profile_name or self.settings.aws_profile
        self.nparams = nparams
        self._ecs_client = ecs_client
        self._ec2_client = ec2_client

    def __setup__(self) -> None:
        if self._init:
            return
        if self._ecs_client is not None and self._ec2_client is not None:
            self._init = True
            return

        session_kwargs = {}
        if self.aws_access_key_id:
            session_kwargs["aws_access_key_id"] = self.aws_access_key_id
        if self.aws_secret_access_key:
            session_kwargs["aws_secret_access_key"] = (
                self.aws_secret_access_key
            )
        if self.aws_session_token:
            session_kwargs["aws_session_token"] = self.aws_session_token
        if self.profile_name:
            session_kwargs["profile_name"] = self.profile_name

        session = boto3.Session(**session_kwargs)

        if self._ecs_client is None:
            self._ecs_client = session.client(
                "ecs", region_name=self.region, **self.nparams
            )
        if self._ec2_client is None:
            self._ec2_client = session.client(
                "ec2", region_name=self.region, **self.nparams
            )
        self._init = True

    def _clients(self) -> dict[str, Any]:
        self.__setup__()
        return dict(
            ecs_client=self._ecs_client,
            ec2_client=self._ec2_client,
            region=self.region,
            settings=self.settings,
        )

    async def _ecs(self, method: str, **kwargs: Any) -> dict[str, Any]:
        self.__setup__()
        return await run_async(getattr(self._ecs_client, method), **kwargs)

    async def _ec2(self, method: str, **kwargs: Any) -> dict[str, Any]:
        self.__setup__()
        return await run_async(getattr(self._ec2_client, method), **kwargs)

    async def _paginate(
        self,
        method: str,
        key: str,
        strict: bool = False,
        **kwargs: Any,
    ) -> list[Any]:
        """Collect ``key`` from every page of an ECS list call.

        With ``strict`` a page without ``key`` raises InternalError.
        """
        self.__setup__()

        def collect() -> list[Any]:
            items: list[Any] = []
            paginator = self._ecs_client.get_paginator(method)
            for page in paginator.paginate(**kwargs):
                if strict and page.get(key) is None:
                    raise InternalError(
                        f"{method} returned unexpected data"
                    )
                items.extend(page.get(key) or [])
            return items

        return await run_async(collect)
