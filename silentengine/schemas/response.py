from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TokenUsage(BaseModel):
    model_config = ConfigDict(frozen=True)

    input: int = Field(0, ge=0)
    output: int = Field(0, ge=0)
    total: int = Field(0, ge=0)

    @classmethod
    def from_counts(cls, input_tokens: int, output_tokens: int) -> "TokenUsage":
        return cls(input=input_tokens, output=output_tokens, total=input_tokens + output_tokens)


class GenerateResponse(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    content: str
    model: str
    provider: str
    tokens: TokenUsage = TokenUsage()
    latency: float = Field(0.0, ge=0.0)
    cost: float = Field(0.0, ge=0.0)
    request_id: str = Field(..., alias="requestId")

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


class GenerateJSONResponse(BaseModel):
    success: bool = True
    data: Any = None
    meta: dict[str, Any] = {}
