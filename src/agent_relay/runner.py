"""Turn-based execution engine."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

import anyio

from agent_relay.agent import Agent
from agent_relay.async_utils import call_maybe_async
from agent_relay.errors import AgentRunError
from agent_relay.errors import HandoffError
from agent_relay.errors import HookError
from agent_relay.errors import InvalidHandoffInput
from agent_relay.errors import InvalidOutputFormat
from agent_relay.errors import MaxTurnsExceeded
from agent_relay.errors import MissingInstructions
from agent_relay.errors import ModelCallError
from agent_relay.errors import ModelProviderRequired
from agent_relay.errors import ToolExecutionError
from agent_relay.guardrails import run_input_guardrails, run_output_guardrails
from agent_relay.handoffs import Handoff
from agent_relay.json_utils import parse_structured_output
from agent_relay.models.handoff_input_data import HandoffInputData
from agent_relay.models.message import Message
from agent_relay.models.model_response import ModelResponse
from agent_relay.models.run_result import RunResult
from agent_relay.models.tool_call import ToolCall
from agent_relay.models.tool_spec import ToolSpec
from agent_relay.models.usage import Usage
from agent_relay.providers import ModelProvider, get_default_provider
from agent_relay.run_config import RunConfig
from agent_relay.schema_validation import SchemaValidationError, validate_json
from agent_relay.tools import Tool
from agent_relay.tracing import Tracer, get_default_tracer, set_span_attributes

logger = logging.getLogger(__name__)


@dataclass
class RunState:
    """Mutable per-run state. messages[0] is always the current agent's system message."""

    current_agent: Agent
    messages: list[Message]
    turn: int = 0
    usage: Usage = field(default_factory=Usage)

    @property
    def history(self) -> tuple[Message, ...]:
        return tuple(self.messages[1:])

    def set_system_message(self, instructions: str) -> None:
        self.messages[0] = Message.system(instructions)

    def switch_agent(self, agent: Agent, instructions: str, items: list[Message]) -> None:
        dropped = [item for item in items if item.role == "system"]
        if dropped:
            logger.warning("Dropped %s system messages returned by a handoff filter", len(dropped))
        self.current_agent = agent
        self.messages = [Message.system(instructions), *(item for item in items if item.role != "system")]


class Runner:
    async def run(self, agent: Agent, input: str, config: RunConfig | None = None) -> RunResult:
        config = config or RunConfig()
        provider = config.model_provider or get_default_provider()
        if provider is None:
            raise ModelProviderRequired()
        tracer = config.tracer or get_default_tracer()
        max_turns = config.effective_max_turns

        with tracer.span("agent_run", {"span_type": "agent", "agent_name": agent.name, "input": input}) as span:
            instructions = await self._resolve_instructions(agent)
            await run_input_guardrails(agent.input_guardrails, input)
            await self._call_hook("on_start", agent.hooks.on_start, agent)

            messages = [Message.system(instructions)]
            if input:
                messages.append(Message.user(input))
            state = RunState(current_agent=agent, messages=messages)
            try:
                result = await self._run_loop(state, provider, config, tracer, max_turns)
            except AgentRunError as exc:
                if not exc.history:
                    exc.history = state.history
                set_span_attributes(span, {"turns": state.turn})
                raise

            set_span_attributes(
                span,
                {
                    "output": result.final_output,
                    "last_agent": result.last_agent.name,
                    "turns": state.turn,
                    "usage": result.usage.model_dump(),
                    "success": True,
                }
            )
            return result

    def run_sync(self, agent: Agent, input: str, config: RunConfig | None = None) -> RunResult:
        return anyio.run(self.run, agent, input, config)

    async def _run_loop(
        self,
        state: RunState,
        provider: ModelProvider,
        config: RunConfig,
        tracer: Tracer,
        max_turns: int,
    ) -> RunResult:
        for index in range(max_turns):
            if index > 0 and config.step_delay > 0:
                await anyio.sleep(config.step_delay)

            step_attributes = {
                "span_type": "agent",
                "step": index + 1,
                "agent_name": state.current_agent.name,
                "messages": [message.to_trace_dict() for message in state.messages],
            }
            with tracer.span(f"agent_step_{index + 1}", step_attributes) as step_span:
                response = await self._call_model(state, provider, config)
                state.turn += 1
                state.usage = state.usage + response.usage
                set_span_attributes(step_span, {"usage": response.usage.model_dump()})
                logger.debug(
                    "Turn %s for %s: %s tool calls",
                    state.turn,
                    state.current_agent.name,
                    len(response.message.tool_calls),
                )

                if response.message.tool_calls:
                    await self._process_tool_calls(state, response.message, config, tracer)
                    continue

                return await self._finalize(state, response.message)

        logger.info("Run for %s stopped after %s turns without a final output", state.current_agent.name, max_turns)
        raise MaxTurnsExceeded(max_turns, history=state.history)

    async def _resolve_instructions(self, agent: Agent) -> str:
        try:
            instructions = await agent.get_system_prompt()
        except Exception as exc:
            raise MissingInstructions(agent.name) from exc
        if not instructions:
            raise MissingInstructions(agent.name)
        return instructions

    def _tool_specs(self, agent: Agent) -> list[ToolSpec]:
        specs = [tool.to_spec() for tool in agent.tools]
        specs.extend(handoff.to_spec() for handoff in agent.handoffs)
        return specs

    async def _call_model(self, state: RunState, provider: ModelProvider, config: RunConfig) -> ModelResponse:
        agent = state.current_agent
        state.set_system_message(await self._resolve_instructions(agent))
        settings = agent.model_settings.model_copy(
            update={"model": agent.model or config.model, "tools": self._tool_specs(agent)}
        )
        try:
            return await provider.create_chat_completion(list(state.messages), settings)
        except Exception as exc:
            raise ModelCallError(f"failed to call model: {exc}") from exc

    async def _process_tool_calls(
        self,
        state: RunState,
        message: Message,
        config: RunConfig,
        tracer: Tracer,
    ) -> None:
        agent = state.current_agent
        handoffs: dict[str, Handoff] = {}
        for handoff in agent.handoffs:
            handoffs.setdefault(handoff.tool_name, handoff)

        declined: dict[str, str] = {}
        transfer_call = next((call for call in message.tool_calls if call.name in handoffs), None)
        if transfer_call is not None:
            handoff = handoffs[transfer_call.name]
            reason = await self._check_handoff(state, handoff, transfer_call, config)
            if reason is None:
                await self._perform_handoff(state, handoff, transfer_call, message, config, tracer)
                return
            logger.info("Handoff %s declined: %s", transfer_call.name, reason)
            declined[transfer_call.id] = reason

        state.messages.append(message)
        for call in message.tool_calls:
            if call.name in handoffs:
                reason = declined.get(call.id, "only the first handoff in a response is considered")
                content = f"Handoff {call.name!r} was not taken: {reason}"
            else:
                content = await self._execute_tool(state, call, tracer)
            state.messages.append(Message.tool(content, tool_call_id=call.id, name=call.name))

    async def _check_handoff(
        self,
        state: RunState,
        handoff: Handoff,
        call: ToolCall,
        config: RunConfig,
    ) -> str | None:
        try:
            allowed = await handoff.should_handoff(call.arguments)
        except Exception as exc:
            raise HandoffError(f"failed to check handoff {handoff.tool_name!r}: {exc}") from exc
        if not allowed:
            return "declined by the handoff predicate"
        if config.handoff_registry is not None:
            ok, reason = config.handoff_registry.can_handoff(state.current_agent.name, handoff.target_agent.name)
            if not ok:
                return reason
        return None

    async def _perform_handoff(
        self,
        state: RunState,
        handoff: Handoff,
        call: ToolCall,
        message: Message,
        config: RunConfig,
        tracer: Tracer,
    ) -> None:
        source = state.current_agent
        target = handoff.target_agent
        attributes = {
            "span_type": "handoff",
            "current_agent_name": source.name,
            "next_agent_name": target.name,
            "tool_call_id": call.id,
        }
        with tracer.span("handoff", attributes) as span:
            try:
                await self._transfer(state, handoff, call, message, config)
            except BaseException:
                if config.handoff_registry is not None:
                    config.handoff_registry.release(source.name, target.name)
                raise
            set_span_attributes(span, {"success": True})

        logger.info("Handed off from %s to %s", source.name, target.name)
        await self._call_hook("on_start", target.hooks.on_start, target)

    async def _transfer(
        self,
        state: RunState,
        handoff: Handoff,
        call: ToolCall,
        message: Message,
        config: RunConfig,
    ) -> None:
        source = state.current_agent
        target = handoff.target_agent
        try:
            validate_json(call.arguments, handoff.input_json_schema)
        except SchemaValidationError as exc:
            raise InvalidHandoffInput(str(exc)) from exc

        new_items = [message]
        for other in message.tool_calls:
            if other.id == call.id:
                content = f"Transferred to {target.name}."
            else:
                content = f"Skipped: control was transferred to {target.name}."
            new_items.append(Message.tool(content, tool_call_id=other.id, name=other.name))
        input_data = HandoffInputData(
            input_history=list(state.history),
            new_items=new_items,
            metadata={
                "handoff_input": call.arguments,
                "source_agent": source.name,
                "target_agent": target.name,
            },
        )

        await self._invoke(
            lambda exc: HandoffError(f"handoff callback failed: {exc}"),
            handoff.on_handoff,
            input_data,
            call.arguments,
        )
        if config.handoff_callback is not None:
            await self._invoke(
                lambda exc: HandoffError(f"handoff callback failed: {exc}"),
                config.handoff_callback,
                target,
                source,
                call.arguments,
            )
        await self._call_hook("on_handoff", target.hooks.on_handoff, target, source)

        filtered = await self._invoke(
            lambda exc: HandoffError(f"handoff input filter failed: {exc}"),
            handoff.filter_input,
            input_data,
        )
        if config.handoff_input_filter is not None:
            filtered = await self._invoke(
                lambda exc: HandoffError(f"handoff input filter failed: {exc}"),
                config.handoff_input_filter,
                filtered,
            )

        handoff.update_last_handoff_time()
        state.switch_agent(target, await self._resolve_instructions(target), filtered.all_items())

    async def _execute_tool(self, state: RunState, call: ToolCall, tracer: Tracer) -> str:
        agent = state.current_agent
        tool = self._find_tool(agent, call.name)
        if tool is None:
            logger.warning("Agent %s requested unknown tool %s", agent.name, call.name)
            return f"Error: tool '{call.name}' not found"

        await self._call_hook("on_tool_start", agent.hooks.on_tool_start, agent, tool)
        attributes = {
            "span_type": "tool",
            "tool_name": tool.name,
            "tool_call_id": call.id,
            "arguments": call.arguments,
        }
        with tracer.span("tool_call", attributes) as span:
            try:
                output = await tool.invoke(call.arguments)
            except Exception as exc:
                raise ToolExecutionError(call.name, str(exc)) from exc
            set_span_attributes(span, {"result": output})
        await self._call_hook("on_tool_end", agent.hooks.on_tool_end, agent, tool, output)
        return output

    def _find_tool(self, agent: Agent, name: str) -> Tool | None:
        return next((tool for tool in agent.tools if tool.name == name), None)

    async def _finalize(self, state: RunState, message: Message) -> RunResult:
        agent = state.current_agent
        state.messages.append(message)

        structured: Any = None
        if agent.output_type is not None:
            try:
                structured = parse_structured_output(message.content, agent.output_type)
            except ValueError as exc:
                raise InvalidOutputFormat(str(exc)) from exc

        final_output = await run_output_guardrails(agent.output_guardrails, message.content)
        await self._call_hook("on_end", agent.hooks.on_end, agent, structured if structured is not None else final_output)
        return RunResult(
            final_output=final_output,
            last_agent=agent,
            structured_output=structured,
            history=state.history,
            usage=state.usage,
        )

    async def _call_hook(self, hook: str, func: Callable[..., Any], *args: Any) -> None:
        await self._invoke(lambda exc: HookError(hook, str(exc)), func, *args)

    async def _invoke(
        self,
        error_factory: Callable[[Exception], AgentRunError],
        func: Callable[..., Any],
        *args: Any,
    ) -> Any:
        try:
            return await call_maybe_async(func, *args)
        except AgentRunError:
            raise
        except Exception as exc:
            raise error_factory(exc) from exc


async def run(agent: Agent, input: str, config: RunConfig | None = None) -> RunResult:
    return await Runner().run(agent, input, config)


def run_sync(agent: Agent, input: str, config: RunConfig | None = None) -> RunResult:
    return Runner().run_sync(agent, input, config)
