"""Pydantic models for completion service responses."""

from __future__ import annotations

from pydantic import BaseModel, Field

from agent_relay.models.message import Message
from agent_relay.models.usage import Usage


class ModelResponse(BaseModel):
    message: Message
    usage: Usage = Field(default_factory=Usage)


class StreamChunk(BaseModel):
    delta: Message
    finish_reason: str | None = None
