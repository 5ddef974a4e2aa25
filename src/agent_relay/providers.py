"""Completion service contract and the pydantic-ai binding."""

from __future__ import annotations

import logging
import os
from typing import Any, AsyncIterator, Callable, Mapping, Sequence

from pydantic_ai.direct import model_request
from pydantic_ai.messages import ModelMessage
from pydantic_ai.messages import ModelRequest
from pydantic_ai.messages import ModelRequestPart
from pydantic_ai.messages import ModelResponse as PydanticAIResponse
from pydantic_ai.messages import SystemPromptPart
from pydantic_ai.messages import TextPart
from pydantic_ai.messages import ToolCallPart
from pydantic_ai.messages import ToolReturnPart
from pydantic_ai.messages import UserPromptPart
from pydantic_ai.models import Model, ModelRequestParameters
from pydantic_ai.models.openai import OpenAIChatModel, OpenAIResponsesModel
from pydantic_ai.providers.openai import OpenAIProvider
from pydantic_ai.settings import ModelSettings as PydanticAISettings
from pydantic_ai.tools import ToolDefinition

from agent_relay.models.message import Message
from agent_relay.models.model_response import ModelResponse, StreamChunk
from agent_relay.models.model_settings import ModelSettings
from agent_relay.models.model_spec import ModelSpec
from agent_relay.models.tool_call import ToolCall
from agent_relay.models.tool_spec import ToolSpec
from agent_relay.models.usage import Usage
from agent_relay.tools import EMPTY_PARAMS_SCHEMA

logger = logging.getLogger(__name__)


class ModelProvider:
    async def create_chat_completion(self, messages: Sequence[Message], settings: ModelSettings) -> ModelResponse:
        raise NotImplementedError("ModelProvider.create_chat_completion must be implemented by subclasses.")

    async def stream_chat_completion(
        self, messages: Sequence[Message], settings: ModelSettings
    ) -> AsyncIterator[StreamChunk]:
        # Providers without native streaming deliver the whole message as one chunk.
        response = await self.create_chat_completion(messages, settings)
        finish_reason = "tool_calls" if response.message.tool_calls else "stop"
        yield StreamChunk(delta=response.message, finish_reason=finish_reason)


class PydanticAIProvider(ModelProvider):
    """
    Sends requests through a pydantic-ai `Model`.
    When `model_factory` is given, the per-turn model name (agent override or run default)
    selects the model; otherwise every request goes to `model`.
    """

    def __init__(
        self,
        model: Model | None = None,
        *,
        model_factory: Callable[[str], Model] | None = None,
    ) -> None:
        if model is None and model_factory is None:
            raise ValueError("Provide a model or a model_factory.")
        self._model = model
        self._model_factory = model_factory
        self._models: dict[str, Model] = {}

    @classmethod
    def from_spec(cls, spec: ModelSpec, *, endpoints: Mapping[str, ModelSpec] | None = None) -> "PydanticAIProvider":
        """
        `spec` is the run's default endpoint. `endpoints` maps model names to the endpoint that serves
        them, so agents declared against other hosts keep their own base URL and key.
        """
        known = dict(endpoints or {})

        def factory(model_name: str) -> Model:
            return build_model(known.get(model_name, spec), model_name=model_name)

        return cls(build_model(spec), model_factory=factory)

    def resolve_model(self, model_name: str | None) -> Model:
        if model_name and self._model_factory is not None:
            if model_name not in self._models:
                self._models[model_name] = self._model_factory(model_name)
            return self._models[model_name]
        if self._model is not None:
            return self._model
        if self._model_factory is None or not model_name:
            raise ValueError("No model name to resolve.")
        return self._model_factory(model_name)

    async def create_chat_completion(self, messages: Sequence[Message], settings: ModelSettings) -> ModelResponse:
        model = self.resolve_model(settings.model)
        parameters = ModelRequestParameters(
            function_tools=[to_tool_definition(tool) for tool in settings.tools],
            allow_text_output=True,
        )
        logger.debug("Requesting %s with %s messages and %s tools", settings.model, len(messages), len(settings.tools))
        response = await model_request(
            model,
            to_model_messages(messages),
            model_settings=to_model_settings(settings),
            model_request_parameters=parameters,
        )
        return from_model_response(response)


def build_model(model_spec: ModelSpec, *, model_name: str | None = None) -> Model:
    api_key = os.environ.get(model_spec.api_key_env, "noop")
    provider = OpenAIProvider(base_url=model_spec.base_url, api_key=api_key)
    name = model_name or model_spec.model_name
    if model_spec.provider == "openai-responses":
        return OpenAIResponsesModel(name, provider=provider)
    return OpenAIChatModel(name, provider=provider)


def to_tool_definition(tool: ToolSpec) -> ToolDefinition:
    return ToolDefinition(
        name=tool.name,
        description=tool.description,
        parameters_json_schema=tool.parameters or dict(EMPTY_PARAMS_SCHEMA),
    )


def to_model_settings(settings: ModelSettings) -> PydanticAISettings:
    out: dict[str, Any] = {}
    for key in ("temperature", "max_tokens", "top_p", "frequency_penalty", "presence_penalty", "seed"):
        value = getattr(settings, key)
        if value is not None:
            out[key] = value
    if settings.stop_sequences:
        out["stop_sequences"] = list(settings.stop_sequences)
    return PydanticAISettings(**out)


def to_model_messages(messages: Sequence[Message]) -> list[ModelMessage]:
    """Group consecutive non-assistant messages into requests; assistant messages become responses."""
    out: list[ModelMessage] = []
    pending: list[ModelRequestPart] = []
    for message in messages:
        if message.role == "assistant":
            if pending:
                out.append(ModelRequest(parts=pending))
                pending = []
            out.append(_to_response(message))
        elif message.role == "system":
            pending.append(SystemPromptPart(content=message.content))
        elif message.role == "user":
            pending.append(UserPromptPart(content=message.content))
        else:
            pending.append(
                ToolReturnPart(
                    tool_name=message.name or "",
                    content=message.content,
                    tool_call_id=message.tool_call_id or "",
                )
            )
    if pending:
        out.append(ModelRequest(parts=pending))
    return out


def _to_response(message: Message) -> PydanticAIResponse:
    parts: list[TextPart | ToolCallPart] = []
    if message.content:
        parts.append(TextPart(content=message.content))
    for call in message.tool_calls:
        parts.append(ToolCallPart(tool_name=call.name, args=call.arguments, tool_call_id=call.id))
    return PydanticAIResponse(parts=parts)


def from_model_response(response: PydanticAIResponse) -> ModelResponse:
    texts: list[str] = []
    calls: list[ToolCall] = []
    for part in response.parts:
        if isinstance(part, TextPart):
            texts.append(part.content)
        elif isinstance(part, ToolCallPart):
            calls.append(ToolCall(id=part.tool_call_id, name=part.tool_name, arguments=part.args_as_json_str()))
    usage = response.usage
    prompt_tokens = usage.input_tokens or 0
    completion_tokens = usage.output_tokens or 0
    return ModelResponse(
        message=Message.assistant("".join(texts), tuple(calls)),
        usage=Usage(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
        ),
    )


_default_provider: ModelProvider | None = None


def set_default_provider(provider: ModelProvider | None) -> None:
    global _default_provider
    _default_provider = provider


def get_default_provider() -> ModelProvider | None:
    return _default_provider
