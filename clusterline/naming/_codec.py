"""
Tenant naming and tagging.

Resource names carry the tenant as ``--`` separated segments after the
system prefix::

    clusterline-pid-<project>[--deployment-<name>|--pr-<n>][--sha-<sha>]

Anything after the tenant segments (a service suffix, for example) is
ignored when decoding. Tags carry the same components, so a resource can be
identified from either its name or its tags.
"""

from __future__ import annotations

from typing import Any, Mapping

from clusterline.core.exceptions import InvalidKeyError

from ._models import (
    CREATED_TAG,
    DELIM,
    RESOURCE_PREFIX,
    SEGMENT_DELIM,
    SEGMENTS,
    TAGS,
    TenantEncoding,
    TenantKey,
)

_FIELDS_TO_SEGMENTS = {v: k for k, v in SEGMENTS.items()}
_FIELDS_TO_TAGS = {v: k for k, v in TAGS.items()}


def encode(key: TenantKey) -> TenantEncoding:
    if not isinstance(key, TenantKey):
        raise InvalidKeyError(f"Expected a TenantKey, got {key!r}")
    segments = []
    tags = {CREATED_TAG: "true"}
    for field in ("project_id", "deployment", "pr", "sha"):
        value = getattr(key, field)
        if value is None:
            continue
        segments.append(f"{_FIELDS_TO_SEGMENTS[field]}{DELIM}{value}")
        tags[_FIELDS_TO_TAGS[field]] = value
    name = f"{RESOURCE_PREFIX}{DELIM}" + SEGMENT_DELIM.join(segments)
    return TenantEncoding(name=name, tags=tags)


def resource_name(key: TenantKey, *suffix: str) -> str:
    """Name for a resource owned by ``key``, e.g. a cluster or family."""
    parts = [encode(key).name]
    parts.extend(s for s in suffix if s)
    return SEGMENT_DELIM.join(parts)


def strip_arn(name_or_arn: str) -> str:
    # arn:aws:ecs:region:account:task-definition/family:3 -> family
    name = name_or_arn.rsplit("/", 1)[-1]
    if name_or_arn.startswith("arn:") and "/" not in name_or_arn:
        name = name_or_arn.rsplit(":", 1)[-1]
    return name.split(":", 1)[0]


def is_system_name(name_or_arn: str | None) -> bool:
    if not name_or_arn:
        return False
    return strip_arn(name_or_arn).startswith(f"{RESOURCE_PREFIX}{DELIM}")


def parse_name(name_or_arn: str) -> dict[str, str] | None:
    """Decode the tenant components carried in a resource name.

    Returns None when the name was not produced by this system. A name can
    only reveal what was encoded into it; components carried only in tags
    need a describe call.
    """
    if not is_system_name(name_or_arn):
        return None
    body = strip_arn(name_or_arn)[len(RESOURCE_PREFIX) + len(DELIM) :]
    components: dict[str, str] = {}
    for segment in body.split(SEGMENT_DELIM):
        kind, sep, value = segment.partition(DELIM)
        field = SEGMENTS.get(kind)
        # tenant segments end at the first foreign one
        if not sep or not value or field is None or field in components:
            break
        components[field] = value
    if "project_id" not in components:
        return None
    return components


def parse_tags(tags: Any) -> dict[str, str]:
    """Normalize EC2, ECS or plain mapping tag sets to a dict."""
    if tags is None:
        return {}
    if isinstance(tags, Mapping):
        return {str(k): str(v) for k, v in tags.items()}
    result = {}
    for tag in tags:
        key = tag.get("Key", tag.get("key"))
        value = tag.get("Value", tag.get("value"))
        if key is not None:
            result[key] = "" if value is None else str(value)
    return result


def _components_from_tags(tags: Any) -> dict[str, str] | None:
    parsed = parse_tags(tags)
    components = {
        field: parsed[tag] for tag, field in TAGS.items() if tag in parsed
    }
    if "project_id" not in components:
        return None
    return components


def matches(key: TenantKey, resource: Any) -> bool:
    """Whether ``resource`` belongs to ``key``.

    ``resource`` is a name, an ARN, or a tag set. Components that ``key``
    leaves unset match anything, so a project only key matches every
    deployment and pr of that project.
    """
    if isinstance(resource, str):
        components = parse_name(resource)
    else:
        components = _components_from_tags(resource)
    if components is None:
        return False
    for field in ("project_id", "deployment", "pr", "sha"):
        wanted = getattr(key, field)
        if wanted is not None and components.get(field) != wanted:
            return False
    return True


def project_filter(project_id: str):
    key = TenantKey.for_project(project_id)
    return lambda resource: matches(key, resource)


def deployment_filter(project_id: str, deployment: str):
    key = TenantKey.for_deployment(project_id, deployment)
    return lambda resource: matches(key, resource)


def pr_filter(project_id: str, pr: str | int):
    key = TenantKey.for_pr(project_id, pr)
    return lambda resource: matches(key, resource)
