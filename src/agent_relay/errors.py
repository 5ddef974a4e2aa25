"""Error taxonomy raised by the runner."""

from __future__ import annotations

from typing import Sequence

from agent_relay.models.message import Message


class AgentRunError(Exception):
    """Base class for every terminal run failure.

    ``history`` holds the non-system messages accumulated before the failure,
    so callers can inspect how far the run got.
    """

    def __init__(self, message: str = "", *, history: Sequence[Message] = ()) -> None:
        super().__init__(message)
        self.history: tuple[Message, ...] = tuple(history)


class MissingInstructions(AgentRunError):
    def __init__(self, agent_name: str, *, history: Sequence[Message] = ()) -> None:
        super().__init__(f"agent {agent_name!r} has no instructions", history=history)
        self.agent_name = agent_name


class ModelProviderRequired(AgentRunError):
    def __init__(self, *, history: Sequence[Message] = ()) -> None:
        super().__init__("model provider is required", history=history)


class GuardrailTripwire(AgentRunError):
    def __init__(self, guardrail_name: str, message: str, *, history: Sequence[Message] = ()) -> None:
        super().__init__(f"guardrail tripwire triggered: {message}", history=history)
        self.guardrail_name = guardrail_name
        self.message = message


class GuardrailError(AgentRunError):
    """A guardrail raised instead of returning a result."""


class InvalidHandoffInput(AgentRunError):
    def __init__(self, reason: str, *, history: Sequence[Message] = ()) -> None:
        super().__init__(f"invalid handoff input: {reason}", history=history)
        self.reason = reason


class InvalidOutputFormat(AgentRunError):
    def __init__(self, reason: str, *, history: Sequence[Message] = ()) -> None:
        super().__init__(f"invalid output format: {reason}", history=history)
        self.reason = reason


class MaxTurnsExceeded(AgentRunError):
    def __init__(self, max_turns: int, *, history: Sequence[Message] = ()) -> None:
        super().__init__(f"maximum turns exceeded ({max_turns})", history=history)
        self.max_turns = max_turns


class ModelCallError(AgentRunError):
    """The completion service raised."""


class ToolExecutionError(AgentRunError):
    def __init__(self, tool_name: str, reason: str, *, history: Sequence[Message] = ()) -> None:
        super().__init__(f"failed to invoke tool {tool_name!r}: {reason}", history=history)
        self.tool_name = tool_name


class HookError(AgentRunError):
    def __init__(self, hook: str, reason: str, *, history: Sequence[Message] = ()) -> None:
        super().__init__(f"error in {hook} hook: {reason}", history=history)
        self.hook = hook


class HandoffError(AgentRunError):
    """A handoff predicate, callback or filter raised."""
