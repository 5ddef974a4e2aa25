"""Handoffs: transfer decisions exposed to the model as tools."""

from __future__ import annotations

import logging
import re
import threading
import time
from typing import TYPE_CHECKING, Any, Callable, Type

from pydantic import BaseModel

from agent_relay.async_utils import MaybeAwaitable, call_maybe_async
from agent_relay.language_detection import is_language, language_name
from agent_relay.models.handoff_input_data import HandoffInputData
from agent_relay.models.tool_spec import ToolSpec
from agent_relay.tools import EMPTY_PARAMS_SCHEMA

if TYPE_CHECKING:
    from agent_relay.agent import Agent

logger = logging.getLogger(__name__)

HandoffCallback = Callable[[HandoffInputData, str], MaybeAwaitable[None]]
HandoffPredicate = Callable[[str], MaybeAwaitable[bool]]
InputFilter = Callable[[HandoffInputData], MaybeAwaitable[HandoffInputData]]


def default_tool_name(agent_name: str) -> str:
    return "transfer_to_" + agent_name.replace(" ", "_").lower()


def default_tool_description(agent_name: str, description: str = "") -> str:
    text = f"Handoff to the {agent_name} agent to handle the request."
    if description:
        text += " " + description
    return text


class Handoff:
    """
    Unconditional handoff: the decision is left entirely to the model choosing to call
    the transfer tool. Subclasses override `should_handoff` to add a local predicate.
    """

    kind = "simple_handoff"

    def __init__(
        self,
        target_agent: "Agent",
        description: str = "",
        *,
        tool_name: str | None = None,
        tool_description: str | None = None,
        input_json_schema: dict[str, Any] | None = None,
        on_handoff: HandoffCallback | None = None,
    ) -> None:
        self.target_agent = target_agent
        self.description = description
        self._tool_name = tool_name
        self._tool_description = tool_description
        self._input_json_schema: dict[str, Any] = dict(input_json_schema or {})
        self._on_handoff = on_handoff
        self.last_handoff_time: float | None = None

    @property
    def name(self) -> str:
        return self.kind

    @property
    def tool_name(self) -> str:
        if self._tool_name:
            return self._tool_name
        return default_tool_name(self.target_agent.name)

    @property
    def tool_description(self) -> str:
        if self._tool_description:
            return self._tool_description
        return default_tool_description(self.target_agent.name, self.description)

    @property
    def input_json_schema(self) -> dict[str, Any]:
        return self._input_json_schema

    async def should_handoff(self, input: str) -> bool:
        return True

    async def on_handoff(self, input_data: HandoffInputData, arguments: str) -> None:
        if self._on_handoff is not None:
            await call_maybe_async(self._on_handoff, input_data, arguments)

    async def filter_input(self, input_data: HandoffInputData) -> HandoffInputData:
        return input_data

    def update_last_handoff_time(self) -> None:
        self.last_handoff_time = time.time()

    def to_spec(self) -> ToolSpec:
        return ToolSpec(
            name=self.tool_name,
            description=self.tool_description,
            parameters=self.input_json_schema or dict(EMPTY_PARAMS_SCHEMA),
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(target={self.target_agent.name!r}, tool_name={self.tool_name!r})"


class FunctionHandoff(Handoff):
    kind = "function_handoff"

    def __init__(self, target_agent: "Agent", description: str, predicate: HandoffPredicate, **options: Any) -> None:
        super().__init__(target_agent, description, **options)
        self._predicate = predicate

    async def should_handoff(self, input: str) -> bool:
        return bool(await call_maybe_async(self._predicate, input))


class PatternHandoff(Handoff):
    kind = "pattern_handoff"

    def __init__(self, target_agent: "Agent", description: str, pattern: str | re.Pattern[str], **options: Any) -> None:
        super().__init__(target_agent, description, **options)
        try:
            self.pattern = re.compile(pattern)
        except re.error as exc:
            raise ValueError(f"invalid pattern: {exc}") from exc

    async def should_handoff(self, input: str) -> bool:
        return self.pattern.search(input) is not None


class KeywordHandoff(Handoff):
    kind = "keyword_handoff"

    def __init__(self, target_agent: "Agent", description: str, keywords: list[str], **options: Any) -> None:
        super().__init__(target_agent, description, **options)
        self.keywords = list(keywords)

    async def should_handoff(self, input: str) -> bool:
        lowered = input.lower()
        return any(keyword.lower() in lowered for keyword in self.keywords)


class LanguageHandoff(Handoff):
    """Hands off when the input looks like it is written in `language` (an ISO 639-1 code)."""

    kind = "language_handoff"

    def __init__(self, target_agent: "Agent", description: str, language: str, **options: Any) -> None:
        super().__init__(target_agent, description, **options)
        self.language = language

    @property
    def tool_name(self) -> str:
        if self._tool_name:
            return self._tool_name
        return default_tool_name(f"{language_name(self.language)}_{self.target_agent.name}")

    @property
    def tool_description(self) -> str:
        if self._tool_description:
            return self._tool_description
        return (
            f"Handoff to the {self.target_agent.name} agent to handle "
            f"{language_name(self.language)} language requests."
        )

    async def should_handoff(self, input: str) -> bool:
        return is_language(input, self.language)

    def update_last_handoff_time(self) -> None:
        return None


class FilteredHandoff(Handoff):
    """Delegates everything to `base` except the context transform."""

    def __init__(self, base: Handoff, input_filter: InputFilter) -> None:
        super().__init__(base.target_agent, base.description)
        self.base = base
        self._input_filter = input_filter

    @property
    def name(self) -> str:
        return "filtered_" + self.base.name

    @property
    def tool_name(self) -> str:
        return self.base.tool_name

    @property
    def tool_description(self) -> str:
        return self.base.tool_description

    @property
    def input_json_schema(self) -> dict[str, Any]:
        return self.base.input_json_schema

    async def should_handoff(self, input: str) -> bool:
        return await self.base.should_handoff(input)

    async def on_handoff(self, input_data: HandoffInputData, arguments: str) -> None:
        await self.base.on_handoff(input_data, arguments)

    async def filter_input(self, input_data: HandoffInputData) -> HandoffInputData:
        return await call_maybe_async(self._input_filter, input_data)

    def update_last_handoff_time(self) -> None:
        self.base.update_last_handoff_time()
        self.last_handoff_time = self.base.last_handoff_time


class HandoffRegistry:
    """
    Suppresses handoffs that fire too often between the same pair of agents.
    Safe to share between concurrent runs: `can_handoff` checks and reserves the pair
    under one lock, and `release` returns the reservation when the transfer does not happen.
    """

    def __init__(self, min_interval: float, *, clock: Callable[[], float] = time.monotonic) -> None:
        self.min_interval = min_interval
        self._clock = clock
        self._lock = threading.Lock()
        self._recent: dict[tuple[str, str], float] = {}
        self._reserved: dict[tuple[str, str], tuple[float, float | None]] = {}

    def can_handoff(self, source: str, target: str) -> tuple[bool, str]:
        with self._lock:
            now = self._clock()
            pair = (source, target)
            last = self._recent.get(pair)
            if last is not None and now - last < self.min_interval:
                return False, f"too soon to handoff from {source} to {target} again"
            reverse = self._recent.get((target, source))
            if reverse is not None and now - reverse < self.min_interval * 2:
                logger.warning("Handoff loop suspected between %s and %s", source, target)
                return False, f"potential handoff loop detected between {source} and {target}"
            self._recent[pair] = now
            self._reserved[pair] = (now, last)
            return True, ""

    def release(self, source: str, target: str) -> None:
        """Undo the latest reservation for the pair, restoring the handoff recorded before it."""
        with self._lock:
            pair = (source, target)
            reservation = self._reserved.pop(pair, None)
            if reservation is None:
                return
            reserved_at, previous = reservation
            if self._recent.get(pair) != reserved_at:
                return
            if previous is None:
                del self._recent[pair]
            else:
                self._recent[pair] = previous

    def reset(self) -> None:
        with self._lock:
            self._recent.clear()
            self._reserved.clear()


def create_json_schema(model: Type[BaseModel], required: list[str] | None = None) -> dict[str, Any]:
    """Build a handoff input schema from a pydantic model, optionally overriding `required`."""
    schema = model.model_json_schema()
    schema.pop("title", None)
    if required is not None:
        schema["required"] = list(required)
    return schema
