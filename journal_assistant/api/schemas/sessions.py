from typing import Any

from pydantic import BaseModel, Field


class SessionCreateRequest(BaseModel):
    messages: list[dict[str, Any]] = Field(..., min_length=1, description="Transcript turns to store")
    title: str | None = Field(default=None, max_length=200, description="Optional explicit title")


class SessionUpdateRequest(BaseModel):
    messages: list[dict[str, Any]] | None = Field(default=None, description="Replacement transcript")
    title: str | None = Field(default=None, min_length=1, max_length=200, description="Replacement title")
