"""Agent lifecycle hooks."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from agent_relay.agent import Agent
    from agent_relay.tools import Tool


class AgentHooks:
    """No-op lifecycle callbacks. Subclass and override what you need.

    Any exception raised from a hook aborts the run with ``HookError``.
    """

    async def on_start(self, agent: "Agent") -> None:
        return None

    async def on_end(self, agent: "Agent", output: Any) -> None:
        return None

    async def on_handoff(self, next_agent: "Agent", previous_agent: "Agent") -> None:
        return None

    async def on_tool_start(self, agent: "Agent", tool: "Tool") -> None:
        return None

    async def on_tool_end(self, agent: "Agent", tool: "Tool", output: str) -> None:
        return None
