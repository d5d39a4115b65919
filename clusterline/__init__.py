from .naming import TenantKey
from .orchestrator import AppDefinition, Orchestrator, TaskSpec
from .settings import Settings, get_settings

__all__ = [
    "AppDefinition",
    "Orchestrator",
    "Settings",
    "TaskSpec",
    "TenantKey",
    "get_settings",
]
