from ._codec import (
    deployment_filter,
    encode,
    is_system_name,
    matches,
    parse_name,
    parse_tags,
    pr_filter,
    project_filter,
    resource_name,
    strip_arn,
)
from ._models import (
    CREATED_TAG,
    DEPLOYMENT_TAG,
    PR_TAG,
    PROJECT_TAG,
    RESOURCE_PREFIX,
    SHA_TAG,
    TenantEncoding,
    TenantKey,
)

__all__ = [
    "CREATED_TAG",
    "DEPLOYMENT_TAG",
    "PR_TAG",
    "PROJECT_TAG",
    "RESOURCE_PREFIX",
    "SHA_TAG",
    "TenantEncoding",
    "TenantKey",
    "deployment_filter",
    "encode",
    "is_system_name",
    "matches",
    "parse_name",
    "parse_tags",
    "pr_filter",
    "project_filter",
    "resource_name",
    "strip_arn",
]
