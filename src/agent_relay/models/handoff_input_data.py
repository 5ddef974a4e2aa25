"""Pydantic model for the context handed to handoff filters."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from agent_relay.models.message import Message


class HandoffInputData(BaseModel):
    input_history: list[Message] = Field(default_factory=list)
    pre_handoff_items: list[Message] = Field(default_factory=list)
    new_items: list[Message] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    def all_items(self) -> list[Message]:
        return [*self.input_history, *self.pre_handoff_items, *self.new_items]
