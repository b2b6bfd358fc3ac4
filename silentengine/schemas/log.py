from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RequestLog(BaseModel):
    """One persisted request/response record. Prompt and content are already sanitized."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    timestamp: str
    request: dict[str, Any]
    response: dict[str, Any]
    error: str | None = None
    fallback_used: bool = Field(False, alias="fallbackUsed")

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
