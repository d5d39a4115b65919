from ._models import AppDefinition, TaskSpec
from ._orchestrator import Orchestrator

__all__ = ["AppDefinition", "Orchestrator", "TaskSpec"]
