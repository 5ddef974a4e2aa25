"""Public package exports."""

from agent_relay.agent import Agent
from agent_relay.agent_registry import AgentRegistry
from agent_relay.errors import AgentRunError
from agent_relay.errors import GuardrailError
from agent_relay.errors import GuardrailTripwire
from agent_relay.errors import HandoffError
from agent_relay.errors import HookError
from agent_relay.errors import InvalidHandoffInput
from agent_relay.errors import InvalidOutputFormat
from agent_relay.errors import MaxTurnsExceeded
from agent_relay.errors import MissingInstructions
from agent_relay.errors import ModelCallError
from agent_relay.errors import ModelProviderRequired
from agent_relay.errors import ToolExecutionError
from agent_relay.guardrails import FunctionInputGuardrail
from agent_relay.guardrails import FunctionOutputGuardrail
from agent_relay.guardrails import GuardrailResult
from agent_relay.guardrails import InputGuardrail
from agent_relay.guardrails import OutputGuardrail
from agent_relay.handoffs import FilteredHandoff
from agent_relay.handoffs import FunctionHandoff
from agent_relay.handoffs import Handoff
from agent_relay.handoffs import HandoffRegistry
from agent_relay.handoffs import KeywordHandoff
from agent_relay.handoffs import LanguageHandoff
from agent_relay.handoffs import PatternHandoff
from agent_relay.hooks import AgentHooks
from agent_relay.models import HandoffInputData
from agent_relay.models import Message
from agent_relay.models import ModelResponse
from agent_relay.models import ModelSettings
from agent_relay.models import RunResult
from agent_relay.models import ToolCall
from agent_relay.models import Usage
from agent_relay.providers import ModelProvider
from agent_relay.providers import PydanticAIProvider
from agent_relay.providers import set_default_provider
from agent_relay.run_config import RunConfig
from agent_relay.runner import Runner
from agent_relay.tools import FunctionTool
from agent_relay.tools import Tool
from agent_relay.tools import function_tool
from agent_relay.tracing import LoggingTracer
from agent_relay.tracing import Tracer
from agent_relay.tracing import set_default_tracer

__all__ = [
    "Agent",
    "AgentHooks",
    "AgentRegistry",
    "AgentRunError",
    "FilteredHandoff",
    "FunctionHandoff",
    "FunctionInputGuardrail",
    "FunctionOutputGuardrail",
    "FunctionTool",
    "GuardrailError",
    "GuardrailResult",
    "GuardrailTripwire",
    "Handoff",
    "HandoffError",
    "HandoffInputData",
    "HandoffRegistry",
    "HookError",
    "InputGuardrail",
    "InvalidHandoffInput",
    "InvalidOutputFormat",
    "KeywordHandoff",
    "LanguageHandoff",
    "LoggingTracer",
    "MaxTurnsExceeded",
    "Message",
    "MissingInstructions",
    "ModelCallError",
    "ModelProvider",
    "ModelProviderRequired",
    "ModelResponse",
    "ModelSettings",
    "OutputGuardrail",
    "PatternHandoff",
    "PydanticAIProvider",
    "RunConfig",
    "RunResult",
    "Runner",
    "Tool",
    "ToolCall",
    "ToolExecutionError",
    "Tracer",
    "Usage",
    "function_tool",
    "set_default_provider",
    "set_default_tracer",
]
