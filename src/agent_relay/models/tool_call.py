"""Pydantic model for a tool invocation requested by the model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class ToolCall(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    arguments: str = "{}"  # raw JSON payload as produced by the model
