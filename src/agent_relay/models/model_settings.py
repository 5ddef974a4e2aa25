"""Pydantic model for generation settings."""

from __future__ import annotations

from pydantic import BaseModel, Field

from agent_relay.models.tool_spec import ToolSpec


class ModelSettings(BaseModel):
    temperature: float | None = None
    max_tokens: int | None = None
    top_p: float | None = None
    frequency_penalty: float | None = None
    presence_penalty: float | None = None
    stop_sequences: list[str] = Field(default_factory=list)
    seed: int | None = None
    # Filled in per turn by the runner.
    model: str | None = None
    tools: list[ToolSpec] = Field(default_factory=list)
