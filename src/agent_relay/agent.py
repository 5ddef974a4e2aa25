"""Agent descriptor."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Type, Union

from pydantic import BaseModel

from agent_relay.async_utils import call_maybe_async
from agent_relay.hooks import AgentHooks
from agent_relay.models.model_settings import ModelSettings
from agent_relay.tools import AgentTool, Tool

if TYPE_CHECKING:
    from agent_relay.guardrails import InputGuardrail, OutputGuardrail
    from agent_relay.handoffs import Handoff
    from agent_relay.run_config import RunConfig
    from agent_relay.runner import Runner

InstructionsFunc = Callable[[], Union[str, Awaitable[str]]]

_LIST_FIELDS = ("tools", "handoffs", "input_guardrails", "output_guardrails")


@dataclass(eq=False)
class Agent:
    """
    A named bundle of instructions, tools, handoffs and guardrails.

    `instructions` is either the system prompt itself or a (sync or async) callable
    that produces it when the agent becomes current.
    Agents compare by identity: two agents with the same fields are still distinct.
    """

    name: str
    instructions: str | InstructionsFunc = ""
    handoff_description: str = ""
    model: str | None = None
    model_settings: ModelSettings = field(default_factory=ModelSettings)
    tools: list[Tool] = field(default_factory=list)
    handoffs: list["Handoff"] = field(default_factory=list)
    input_guardrails: list["InputGuardrail"] = field(default_factory=list)
    output_guardrails: list["OutputGuardrail"] = field(default_factory=list)
    output_type: Type[BaseModel] | None = None
    hooks: AgentHooks = field(default_factory=AgentHooks)

    @property
    def description(self) -> str:
        if self.handoff_description:
            return self.handoff_description
        return f"Agent {self.name}"

    async def get_system_prompt(self) -> str:
        if callable(self.instructions):
            return await call_maybe_async(self.instructions)
        return self.instructions

    def add_tool(self, tool: Tool) -> None:
        self.tools.append(tool)

    def add_handoff(self, handoff: "Handoff") -> None:
        self.handoffs.append(handoff)

    def add_handoffs(self, *handoffs: "Handoff") -> None:
        self.handoffs.extend(handoffs)

    def add_input_guardrail(self, guardrail: "InputGuardrail") -> None:
        self.input_guardrails.append(guardrail)

    def add_output_guardrail(self, guardrail: "OutputGuardrail") -> None:
        self.output_guardrails.append(guardrail)

    def set_model(self, model: str | None) -> None:
        self.model = model

    def set_model_settings(self, settings: ModelSettings) -> None:
        self.model_settings = settings

    def set_output_type(self, output_type: Type[BaseModel] | None) -> None:
        self.output_type = output_type

    def set_hooks(self, hooks: AgentHooks) -> None:
        self.hooks = hooks

    def set_instructions(self, instructions: str | InstructionsFunc) -> None:
        self.instructions = instructions

    def clone(self, **overrides: Any) -> "Agent":
        cloned = dataclasses.replace(self, **overrides)
        for name in _LIST_FIELDS:
            setattr(cloned, name, list(getattr(cloned, name)))
        cloned.model_settings = cloned.model_settings.model_copy(deep=True)
        return cloned

    def as_tool(
        self,
        runner: "Runner",
        config: "RunConfig",
        *,
        name: str | None = None,
        description: str | None = None,
    ) -> AgentTool:
        return AgentTool(self, runner, config, name=name, description=description)
