"""Terminal result of a runner invocation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from agent_relay.models.message import Message
from agent_relay.models.usage import Usage

if TYPE_CHECKING:
    from agent_relay.agent import Agent


@dataclass(frozen=True)
class RunResult:
    final_output: str
    last_agent: "Agent"
    structured_output: Any = None
    history: tuple[Message, ...] = ()
    usage: Usage = field(default_factory=Usage)
