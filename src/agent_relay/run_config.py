"""Run configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from agent_relay.async_utils import MaybeAwaitable
from agent_relay.handoffs import HandoffRegistry, InputFilter
from agent_relay.providers import ModelProvider
from agent_relay.tracing import Tracer

if TYPE_CHECKING:
    from agent_relay.agent import Agent

DEFAULT_MAX_TURNS = 10
DEFAULT_MODEL = "gpt-4o"

HandoffNotification = Callable[["Agent", "Agent", str], MaybeAwaitable[None]]


@dataclass
class RunConfig:
    model: str = DEFAULT_MODEL
    model_provider: ModelProvider | None = None
    max_turns: int = DEFAULT_MAX_TURNS
    step_delay: float = 0.0  # seconds, applied before every turn but the first
    # Called as (target_agent, source_agent, raw_arguments) when a handoff is taken.
    handoff_callback: HandoffNotification | None = None
    handoff_input_filter: InputFilter | None = None
    handoff_registry: HandoffRegistry | None = None
    tracer: Tracer | None = None

    @property
    def effective_max_turns(self) -> int:
        if self.max_turns <= 0:
            return DEFAULT_MAX_TURNS
        return self.max_turns
