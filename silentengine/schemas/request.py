from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

TaskType = Literal["general", "code", "analysis", "json", "creative", "explanation", "chat"]


class GenerateRequest(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    prompt: str = Field(..., min_length=1)
    task_type: TaskType = Field("general", alias="taskType")
    max_tokens: int | None = Field(None, gt=0, alias="maxTokens")
    temperature: float | None = None

    @field_validator("task_type", mode="before")
    @classmethod
    def _default_task_type(cls, value):
        return value or "general"

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class GenerateJSONRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt: str = Field(..., min_length=1)
    task_type: TaskType | None = Field(None, alias="taskType")
    max_retries: int = Field(3, ge=1, le=10, alias="maxRetries")
