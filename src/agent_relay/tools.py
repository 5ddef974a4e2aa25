"""Tool contract and function/agent backed tools."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Callable, Type

from pydantic import BaseModel, ValidationError

from agent_relay.async_utils import call_maybe_async
from agent_relay.models.tool_spec import ToolSpec

if TYPE_CHECKING:
    from agent_relay.agent import Agent
    from agent_relay.models.run_result import RunResult
    from agent_relay.run_config import RunConfig
    from agent_relay.runner import Runner


EMPTY_PARAMS_SCHEMA: dict[str, Any] = {"type": "object", "properties": {}}


class ToolInputError(ValueError):
    pass


class Tool:
    name: str
    description: str

    @property
    def params_json_schema(self) -> dict[str, Any]:
        raise NotImplementedError("Tool.params_json_schema must be implemented by subclasses.")

    async def invoke(self, arguments: str) -> str:
        raise NotImplementedError("Tool.invoke must be implemented by subclasses.")

    def to_spec(self) -> ToolSpec:
        return ToolSpec(name=self.name, description=self.description, parameters=self.params_json_schema)


class FunctionTool(Tool):
    """
    Wraps a plain or async function.
    Parameters are declared explicitly, either as a pydantic model class or as a JSON schema dict;
    the function is called with the decoded payload as keyword arguments.
    """

    def __init__(
        self,
        func: Callable[..., Any],
        *,
        name: str | None = None,
        description: str | None = None,
        parameters: Type[BaseModel] | dict[str, Any] | None = None,
    ) -> None:
        self._func = func
        self.name = name or getattr(func, "__name__", "tool")
        self.description = description or (func.__doc__ or "").strip() or "No description provided"
        self._params_model: Type[BaseModel] | None = None
        self._params_schema: dict[str, Any]
        if isinstance(parameters, type) and issubclass(parameters, BaseModel):
            self._params_model = parameters
            self._params_schema = parameters.model_json_schema()
        elif parameters is None:
            self._params_schema = dict(EMPTY_PARAMS_SCHEMA)
        else:
            self._params_schema = dict(parameters)

    @property
    def params_json_schema(self) -> dict[str, Any]:
        return self._params_schema

    async def invoke(self, arguments: str) -> str:
        kwargs = self._decode_arguments(arguments)
        result = await call_maybe_async(self._func, **kwargs)
        return serialize_tool_result(result)

    def _decode_arguments(self, arguments: str) -> dict[str, Any]:
        raw = arguments.strip() or "{}"
        if self._params_model is not None:
            try:
                params = self._params_model.model_validate_json(raw)
            except ValidationError as exc:
                raise ToolInputError(f"invalid arguments for {self.name}: {exc}") from exc
            return {field: getattr(params, field) for field in type(params).model_fields}
        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ToolInputError(f"failed to parse parameters: {exc}") from exc
        if not isinstance(decoded, dict):
            raise ToolInputError("failed to parse parameters: expected a JSON object")
        return decoded


def function_tool(
    *,
    name: str | None = None,
    description: str | None = None,
    parameters: Type[BaseModel] | dict[str, Any] | None = None,
) -> Callable[[Callable[..., Any]], FunctionTool]:
    def decorator(func: Callable[..., Any]) -> FunctionTool:
        return FunctionTool(func, name=name, description=description, parameters=parameters)

    return decorator


def serialize_tool_result(result: Any) -> str:
    if result is None:
        return ""
    if isinstance(result, str):
        return result
    if isinstance(result, BaseModel):
        return result.model_dump_json()
    return json.dumps(result)


class AgentToolInput(BaseModel):
    input: str


class AgentTool(Tool):
    """Runs another agent to completion and returns its final output."""

    def __init__(
        self,
        agent: "Agent",
        runner: "Runner",
        config: "RunConfig",
        *,
        name: str | None = None,
        description: str | None = None,
        output_extractor: Callable[["RunResult"], Any] | None = None,
    ) -> None:
        self._agent = agent
        self._runner = runner
        self._config = config
        self._output_extractor = output_extractor
        self.name = name or agent.name
        self.description = description or agent.description

    @property
    def params_json_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "input": {"type": "string", "description": "The input to send to the agent"},
            },
            "required": ["input"],
        }

    async def invoke(self, arguments: str) -> str:
        try:
            params = AgentToolInput.model_validate_json(arguments or "{}")
        except ValidationError as exc:
            raise ToolInputError(f"failed to parse parameters: {exc}") from exc
        result = await self._runner.run(self._agent, params.input, self._config)
        if self._output_extractor is not None:
            extracted = await call_maybe_async(self._output_extractor, result)
            return serialize_tool_result(extracted)
        return result.final_output
