import asyncio
import threading

import pytest
from common.aws_stubs import FakeEc2Client, FakeEcsClient, client_error

from clusterline import AppDefinition, Orchestrator, TaskSpec, TenantKey
from clusterline.core.exceptions import (
    InvalidArgumentError,
    NotFoundError,
    OperationCancelledError,
    PartialFailureError,
)
from clusterline.naming import PROJECT_TAG, parse_tags
from clusterline.resources import ALREADY_DELETED, DELETED
from clusterline.settings import Settings

from ._sync_and_async_client import OrchestratorSyncAndAsyncClient

SETTINGS = Settings(
    poll_interval=0.01,
    retry_max_attempts=3,
    retry_initial_delay=0.001,
)

APP = {
    "tasks": [
        {
            "family": "T1",
            "containerDefinitions": [{"name": "web", "image": "nginx"}],
        },
        {
            "family": "T2",
            "containerDefinitions": [{"name": "worker", "image": "busybox"}],
        },
    ]
}


@pytest.fixture
def ecs():
    stub = FakeEcsClient()
    stub.add_cluster("c1")
    return stub


@pytest.fixture
def orchestrator(ecs):
    return Orchestrator(
        ecs_client=ecs, ec2_client=FakeEc2Client(), settings=SETTINGS
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("async_call", [False, True])
async def test_deploy(ecs, orchestrator, async_call: bool):
    client = OrchestratorSyncAndAsyncClient(orchestrator, async_call)
    services = await client.deploy("c1", "svc", APP)
    assert [s.name for s in services] == ["svc-T1", "svc-T2"]
    assert services[0].task_definition != services[1].task_definition
    assert services[0].task_definition.endswith("task-definition/T1:1")
    assert services[1].task_definition.endswith("task-definition/T2:1")
    assert ecs.count("register_task_definition") == 2
    assert ecs.count("create_service") == 2


@pytest.mark.asyncio
async def test_deploy_models_and_tenant(ecs, orchestrator):
    app = AppDefinition(
        tasks=[
            TaskSpec(
                family="T1",
                containerDefinitions=[{"name": "web", "image": "nginx"}],
                cpu="256",
            )
        ]
    )
    tenant = TenantKey.for_pr("p", 5)
    services = await orchestrator.adeploy("c1", "svc", app, tenant=tenant)
    assert len(services) == 1
    registered = ecs.kwargs_of("register_task_definition")[0]
    assert registered["cpu"] == "256"
    assert parse_tags(registered["tags"])[PROJECT_TAG] == "p"


@pytest.mark.asyncio
async def test_deploy_waits_for_steady_state(ecs, orchestrator):
    ecs.script_events(
        "svc-T1",
        [
            ["(service svc-T1) has started 1 tasks."],
            ["(service svc-T1) has started 1 tasks."],
            ["(service svc-T1) has reached a steady state."],
        ],
    )
    app = {"tasks": APP["tasks"][:1]}
    services = await orchestrator.adeploy("c1", "svc", app)
    assert services[0].last_event.endswith("steady state.")
    # find_or_create describes once before the readiness polls
    assert ecs.count("describe_services") == 4


@pytest.mark.asyncio
@pytest.mark.parametrize("async_call", [False, True])
async def test_deploy_missing_cluster(ecs, orchestrator, async_call: bool):
    client = OrchestratorSyncAndAsyncClient(orchestrator, async_call)
    with pytest.raises(NotFoundError):
        await client.deploy("gone", "svc", APP)
    assert ecs.count("register_task_definition") == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "app",
    [
        None,
        {},
        {"tasks": []},
        {"tasks": [{"family": "T1"}]},
        {"tasks": [{"containerDefinitions": []}]},
    ],
)
async def test_deploy_invalid_app_definition(ecs, orchestrator, app):
    with pytest.raises(InvalidArgumentError):
        await orchestrator.adeploy("c1", "svc", app)
    assert ecs.calls == []


@pytest.mark.asyncio
async def test_deploy_invalid_arguments(ecs, orchestrator):
    with pytest.raises(InvalidArgumentError):
        await orchestrator.adeploy("", "svc", APP)
    with pytest.raises(InvalidArgumentError):
        await orchestrator.adeploy("c1", "", APP)
    assert ecs.calls == []


@pytest.mark.asyncio
async def test_deploy_partial_failure(ecs, orchestrator):
    ecs.fail_next(
        "register_task_definition", client_error("AccessDeniedException")
    )
    with pytest.raises(PartialFailureError) as exc_info:
        await orchestrator.adeploy("c1", "svc", {"tasks": APP["tasks"][:1]})
    assert exc_info.value.label == "deploy svc-T1"
    assert "deploy svc-T1" in str(exc_info.value)
    assert exc_info.value.__cause__ is not None


@pytest.mark.asyncio
async def test_deploy_partial_failure_leaves_siblings(ecs, orchestrator):
    ecs.add_service("c1", "svc-T2", task_definition="T2:0")
    original = ecs.create_service

    def create_service(**kwargs):
        if kwargs["serviceName"] == "svc-T1":
            raise client_error("AccessDeniedException")
        return original(**kwargs)

    ecs.create_service = create_service
    with pytest.raises(PartialFailureError) as exc_info:
        await orchestrator.adeploy("c1", "svc", APP)
    assert exc_info.value.label == "deploy svc-T1"
    # no rollback of the other pair
    assert ecs.count("delete_service") == 0


@pytest.mark.asyncio
async def test_deploy_failure_stops_sibling_waits(ecs, orchestrator):
    ecs.script_events("svc-T2", [["started"]] * 1000)
    original = ecs.register_task_definition

    def register_task_definition(**kwargs):
        if kwargs["family"] == "T1":
            raise client_error("AccessDeniedException")
        return original(**kwargs)

    ecs.register_task_definition = register_task_definition
    with pytest.raises(PartialFailureError) as exc_info:
        await orchestrator.adeploy("c1", "svc", APP)
    assert exc_info.value.label == "deploy svc-T1"
    polls = ecs.count("describe_services")
    await asyncio.sleep(SETTINGS.poll_interval * 10)
    # at most one describe already handed to a worker thread
    assert ecs.count("describe_services") <= polls + 1


@pytest.mark.asyncio
async def test_deploy_cancelled(ecs, orchestrator):
    ecs.script_events("svc-T1", [["started"]] * 1000)
    cancel = threading.Event()

    async def cancel_later():
        await asyncio.sleep(0.05)
        cancel.set()

    canceller = asyncio.create_task(cancel_later())
    with pytest.raises(OperationCancelledError):
        await orchestrator.adeploy(
            "c1", "svc", {"tasks": APP["tasks"][:1]}, cancel=cancel
        )
    await canceller


@pytest.mark.asyncio
async def test_deploy_timeout(ecs, orchestrator):
    ecs.script_events("svc-T1", [["started"]] * 1000)
    with pytest.raises(asyncio.TimeoutError):
        await orchestrator.adeploy(
            "c1", "svc", {"tasks": APP["tasks"][:1]}, timeout=0.05
        )


@pytest.mark.asyncio
@pytest.mark.parametrize("async_call", [False, True])
async def test_create_task_and_service(ecs, orchestrator, async_call: bool):
    client = OrchestratorSyncAndAsyncClient(orchestrator, async_call)
    task = TaskSpec.from_dict(APP["tasks"][0])
    service = await client.create_task_and_service("c1", "web", task)
    assert service.name == "web"
    assert service.task_definition.endswith("task-definition/T1:1")
    again = await client.create_task_and_service("c1", "web", task)
    # a new revision rolls the existing service forward
    assert again.task_definition.endswith("task-definition/T1:2")
    assert ecs.count("create_service") == 1
    assert ecs.count("update_service") == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("async_call", [False, True])
async def test_teardown(ecs, orchestrator, async_call: bool):
    arn = ecs.add_service("c1", "svc-a")
    ecs.script_statuses("svc-a", ["ACTIVE", "ACTIVE", "INACTIVE"])
    client = OrchestratorSyncAndAsyncClient(orchestrator, async_call)
    torn_down = await client.teardown("c1")
    assert torn_down == [arn]
    assert ecs.count("update_service") == 1
    assert ecs.count("delete_service") == 1
    # resolves on the third describe, not before
    assert ecs.count("describe_services") == 3


@pytest.mark.asyncio
async def test_teardown_many_services(ecs, orchestrator):
    arns = [ecs.add_service("c1", f"svc-{i}") for i in range(3)]
    ecs.script_statuses("svc-1", ["DRAINING", "INACTIVE"])
    torn_down = await orchestrator.ateardown("c1")
    assert sorted(torn_down) == sorted(arns)
    assert ecs.count("delete_service") == 3
    assert all(
        kwargs["desiredCount"] == 0
        for kwargs in ecs.kwargs_of("update_service")
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("async_call", [False, True])
async def test_teardown_missing_cluster(ecs, orchestrator, async_call: bool):
    client = OrchestratorSyncAndAsyncClient(orchestrator, async_call)
    assert await client.teardown("gone") == []
    assert ecs.count("update_service") == 0
    assert ecs.count("delete_service") == 0


@pytest.mark.asyncio
async def test_teardown_empty_cluster(ecs, orchestrator):
    assert await orchestrator.ateardown("c1") == []
    assert ecs.count("describe_services") == 0


@pytest.mark.asyncio
async def test_teardown_failure_is_labelled(ecs, orchestrator):
    arn = ecs.add_service("c1", "svc-a")
    ecs.fail_next("update_service", client_error("AccessDeniedException"))
    with pytest.raises(PartialFailureError) as exc_info:
        await orchestrator.ateardown("c1")
    assert exc_info.value.label == f"stop {arn}"


@pytest.mark.asyncio
@pytest.mark.parametrize("async_call", [False, True])
async def test_destroy_cluster(ecs, orchestrator, async_call: bool):
    ecs.add_service("c1", "svc-a")
    ecs.add_container_instance("c1", "i-1")
    client = OrchestratorSyncAndAsyncClient(orchestrator, async_call)
    assert await client.destroy_cluster("c1") == DELETED
    assert ecs.count("delete_service") == 1
    assert ecs.count("deregister_container_instance") == 1
    assert ecs.count("delete_cluster") == 1
    assert await client.destroy_cluster("c1") == ALREADY_DELETED
    assert ecs.count("delete_cluster") == 1
