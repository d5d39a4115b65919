from __future__ import annotations

from typing import Any

from pydantic import ConfigDict

from clusterline.core import DataModel, DataModelField


class TaskSpec(DataModel):
    """One task definition registration.

    Extra keys are passed through to ``register_task_definition``.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    family: str
    container_definitions: list[dict[str, Any]] = DataModelField(
        alias="containerDefinitions"
    )

    def to_register_kwargs(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class AppDefinition(DataModel):
    tasks: list[TaskSpec]
