from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from silentengine.schemas.request import TaskType

Strategy = Literal["single", "fallback"]


class RoutingRule(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    task_type: TaskType = Field(..., alias="taskType")
    primary_model: str = Field(..., min_length=1, alias="primaryModel")
    backup_model: str | None = Field(None, alias="backupModel")
    strategy: Strategy = "single"

    @model_validator(mode="after")
    def _fallback_needs_backup(self) -> "RoutingRule":
        if self.strategy == "fallback" and not self.backup_model:
            raise ValueError(f"fallback rule for {self.task_type!r} has no backupModel")
        return self

    @property
    def uses_fallback(self) -> bool:
        return self.strategy == "fallback" and bool(self.backup_model)
