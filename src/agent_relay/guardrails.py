"""Input and output guardrails."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Sequence

from agent_relay.async_utils import MaybeAwaitable, call_maybe_async
from agent_relay.errors import GuardrailError, GuardrailTripwire

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GuardrailResult:
    allowed: bool
    message: str = ""
    modified_output: str | None = None


GuardrailFunc = Callable[[str], MaybeAwaitable[GuardrailResult]]


class InputGuardrail:
    name: str
    description: str

    async def check(self, text: str) -> GuardrailResult:
        raise NotImplementedError("InputGuardrail.check must be implemented by subclasses.")


class OutputGuardrail:
    name: str
    description: str

    async def check(self, text: str) -> GuardrailResult:
        raise NotImplementedError("OutputGuardrail.check must be implemented by subclasses.")


class FunctionInputGuardrail(InputGuardrail):
    def __init__(self, name: str, description: str, check: GuardrailFunc) -> None:
        self.name = name
        self.description = description
        self._check = check

    async def check(self, text: str) -> GuardrailResult:
        return await call_maybe_async(self._check, text)


class FunctionOutputGuardrail(OutputGuardrail):
    def __init__(self, name: str, description: str, check: GuardrailFunc) -> None:
        self.name = name
        self.description = description
        self._check = check

    async def check(self, text: str) -> GuardrailResult:
        return await call_maybe_async(self._check, text)


async def run_input_guardrails(guardrails: Sequence[InputGuardrail], text: str) -> None:
    for guardrail in guardrails:
        try:
            result = await guardrail.check(text)
        except Exception as exc:
            raise GuardrailError(f"failed to check input guardrail {guardrail.name!r}: {exc}") from exc
        if not result.allowed:
            logger.info("Input guardrail %s blocked the run: %s", guardrail.name, result.message)
            raise GuardrailTripwire(guardrail.name, result.message)


async def run_output_guardrails(guardrails: Sequence[OutputGuardrail], text: str) -> str:
    current = text
    for guardrail in guardrails:
        try:
            result = await guardrail.check(current)
        except Exception as exc:
            raise GuardrailError(f"failed to check output guardrail {guardrail.name!r}: {exc}") from exc
        if not result.allowed:
            logger.info("Output guardrail %s blocked the run: %s", guardrail.name, result.message)
            raise GuardrailTripwire(guardrail.name, result.message)
        if result.modified_output:
            current = result.modified_output
    return current
