from ._models import (
    ALREADY_DELETED,
    DELETED,
    DestroyResult,
    ServiceDeployment,
    ServiceItem,
    ServiceStatus,
)
from .cluster import Clusters
from .container_instance import ContainerInstances
from .route_table import RouteTables
from .service import (
    Services,
    check_for_inactive,
    classify_drained,
    classify_ready,
    get_status,
)
from .task_definition import TaskDefinitions
from .vpc import Vpcs, find_master_vpc, find_project_vpc

__all__ = [
    "ALREADY_DELETED",
    "DELETED",
    "Clusters",
    "ContainerInstances",
    "DestroyResult",
    "RouteTables",
    "ServiceDeployment",
    "ServiceItem",
    "ServiceStatus",
    "Services",
    "TaskDefinitions",
    "Vpcs",
    "check_for_inactive",
    "classify_drained",
    "classify_ready",
    "find_master_vpc",
    "find_project_vpc",
    "get_status",
]
