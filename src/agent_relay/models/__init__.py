"""Model types for agents, messages and run results."""

from agent_relay.models.agent_spec import AgentSpec
from agent_relay.models.handoff_input_data import HandoffInputData
from agent_relay.models.handoff_spec import HandoffSpec
from agent_relay.models.loaded_agent_file import LoadedAgentFile
from agent_relay.models.message import Message
from agent_relay.models.model_response import ModelResponse
from agent_relay.models.model_response import StreamChunk
from agent_relay.models.model_settings import ModelSettings
from agent_relay.models.model_spec import ModelSpec
from agent_relay.models.run_result import RunResult
from agent_relay.models.tool_call import ToolCall
from agent_relay.models.tool_spec import ToolSpec
from agent_relay.models.usage import Usage

__all__ = [
    "AgentSpec",
    "HandoffInputData",
    "HandoffSpec",
    "LoadedAgentFile",
    "Message",
    "ModelResponse",
    "ModelSettings",
    "ModelSpec",
    "RunResult",
    "StreamChunk",
    "ToolCall",
    "ToolSpec",
    "Usage",
]
