import logging
import sys
import types
from pathlib import Path
from typing import Iterator

import pytest
from pydantic import BaseModel, ValidationError

from agent_relay import agent_registry
from agent_relay.agent import Agent
from agent_relay.agent_registry import AgentRegistry
from agent_relay.guardrails import FunctionInputGuardrail
from agent_relay.guardrails import FunctionOutputGuardrail
from agent_relay.guardrails import GuardrailResult
from agent_relay.handoffs import Handoff
from agent_relay.handoffs import KeywordHandoff
from agent_relay.handoffs import LanguageHandoff
from agent_relay.handoffs import PatternHandoff
from agent_relay.hooks import AgentHooks
from agent_relay.models import HandoffSpec
from agent_relay.models import LoadedAgentFile
from agent_relay.models import ModelSettings
from agent_relay.models.loaded_agent_file import extract_instructions
from agent_relay.tools import FunctionTool


class Invoice(BaseModel):
    number: str
    total: float


def lookup_order(order_id: str) -> str:
    """Look up an order."""
    return f"order {order_id}"


TRIAGE_MD = """---
name: triage
description: Routes customer requests
model:
  base_url: https://example.test/v1
  model_name: gpt-4o-mini
settings:
  temperature: 0.1
tools:
  - relay_test_tools:lookup_order
handoffs:
  - agent: billing
    kind: keyword
    keywords: [invoice, refund]
  - agent: spanish
    kind: language
    language: es
  - agent: orders
    kind: pattern
    pattern: "order #\\\\d+"
    tool_name: escalate_order
---
## Instructions

Route the request to the right team.

## Notes

Not part of the prompt.
"""

BILLING_MD = """---
name: billing
description: Handles invoices
output_schema: relay_test_tools:Invoice
handoffs:
  - agent: triage
    description: Send unrelated requests back.
    input_schema:
      type: object
      properties:
        reason:
          type: string
      required: [reason]
---
Handle billing questions.
"""

SPANISH_MD = """---
name: spanish
---
# Spanish desk

## Instructions
Responde en español.
"""

ORDERS_MD = """---
name: orders
---
Track orders.
"""


@pytest.fixture
def test_tools_module() -> Iterator[types.ModuleType]:
    module = types.ModuleType("relay_test_tools")
    module.__dict__["lookup_order"] = lookup_order
    module.__dict__["Invoice"] = Invoice
    sys.modules["relay_test_tools"] = module
    try:
        yield module
    finally:
        sys.modules.pop("relay_test_tools", None)


@pytest.fixture
def agents_dir(tmp_path: Path) -> Path:
    root = tmp_path / "agents"
    (root / "support").mkdir(parents=True)
    (root / "triage.md").write_text(TRIAGE_MD, encoding="utf-8")
    (root / "billing.md").write_text(BILLING_MD, encoding="utf-8")
    (root / "support" / "spanish.md").write_text(SPANISH_MD, encoding="utf-8")
    (root / "support" / "orders.md").write_text(ORDERS_MD, encoding="utf-8")
    return root


def test_agent_description_and_setters() -> None:
    agent = Agent(name="helper", instructions="Help.")
    assert agent.description == "Agent helper"
    agent.handoff_description = "Helps with anything."
    assert agent.description == "Helps with anything."

    tool = FunctionTool(lookup_order)
    other = Agent(name="other", instructions="Other.")
    agent.add_tool(tool)
    agent.add_handoffs(Handoff(other), KeywordHandoff(other, "", ["x"]))
    agent.set_model("gpt-4o-mini")
    agent.set_model_settings(ModelSettings(temperature=0.5))
    agent.set_output_type(Invoice)
    agent.set_instructions("New instructions.")

    assert agent.tools == [tool]
    assert len(agent.handoffs) == 2
    assert agent.model == "gpt-4o-mini"
    assert agent.model_settings.temperature == 0.5
    assert agent.output_type is Invoice
    assert agent.instructions == "New instructions."


def test_clone_does_not_share_lists_or_settings() -> None:
    guardrail = FunctionInputGuardrail("allow", "", lambda text: GuardrailResult(allowed=True))
    original = Agent(
        name="original",
        instructions="Original.",
        tools=[FunctionTool(lookup_order)],
        input_guardrails=[guardrail],
        model_settings=ModelSettings(stop_sequences=["END"]),
    )
    clone = original.clone(name="clone")

    clone.add_tool(FunctionTool(lookup_order, name="second"))
    clone.add_handoff(Handoff(original))
    clone.add_input_guardrail(guardrail)
    clone.add_output_guardrail(FunctionOutputGuardrail("keep", "", lambda text: GuardrailResult(allowed=True)))
    clone.model_settings.stop_sequences.append("STOP")

    assert clone.name == "clone"
    assert clone.instructions == "Original."
    assert len(original.tools) == 1
    assert original.handoffs == []
    assert len(original.input_guardrails) == 1
    assert original.output_guardrails == []
    assert original.model_settings.stop_sequences == ["END"]
    assert clone is not original
    assert clone != original


@pytest.mark.anyio
async def test_get_system_prompt_resolves_sync_and_async_callables() -> None:
    async def async_prompt() -> str:
        return "async prompt"

    assert await Agent(name="a", instructions="plain").get_system_prompt() == "plain"
    assert await Agent(name="a", instructions=lambda: "sync prompt").get_system_prompt() == "sync prompt"
    assert await Agent(name="a", instructions=async_prompt).get_system_prompt() == "async prompt"


def test_extract_instructions_section_or_whole_body() -> None:
    body = "## Instructions\n\nDo the thing.\n\n### Detail\nStill included.\n\n## Other\nExcluded."
    assert extract_instructions(body) == "Do the thing.\n\n### Detail\nStill included."
    assert extract_instructions("  Just a body.  \n") == "Just a body."
    assert extract_instructions("# instructions\nTop level.") == "Top level."


def test_loaded_agent_file_from_inline_text(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        loaded = LoadedAgentFile("---\nname: inline\n---\nIntro\n\n## Instructions\nBe brief.\n")

    assert loaded.spec.name == "inline"
    assert loaded.instructions == "Be brief."
    assert "Ignored text before instructions in <inline>" in caplog.text


def test_loaded_agent_file_warns_when_empty(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        loaded = LoadedAgentFile("---\nname: empty\n---\n")

    assert loaded.instructions == ""
    assert "has no instructions" in caplog.text


def test_handoff_spec_requires_kind_fields() -> None:
    with pytest.raises(ValidationError):
        HandoffSpec(agent="billing", kind="keyword")
    with pytest.raises(ValidationError):
        HandoffSpec(agent="billing", kind="pattern")
    with pytest.raises(ValidationError):
        HandoffSpec(agent="billing", kind="language")
    assert HandoffSpec(agent="billing").kind == "simple"


def test_registry_indexes_and_caches(agents_dir: Path, tmp_path: Path) -> None:
    registry = AgentRegistry([agents_dir, tmp_path / "missing"])

    assert registry.list_agents() == ["billing", "orders", "spanish", "triage"]
    loaded = registry.get("billing")
    assert registry.get("billing") is loaded
    assert loaded.spec.description == "Handles invoices"
    assert loaded.instructions == "Handle billing questions."
    with pytest.raises(FileNotFoundError):
        registry.get("unknown")


def test_registry_first_root_wins(agents_dir: Path, tmp_path: Path) -> None:
    override_root = tmp_path / "override"
    override_root.mkdir()
    (override_root / "orders.md").write_text("---\nname: orders\n---\nOverride.\n", encoding="utf-8")

    registry = AgentRegistry([override_root, agents_dir])

    assert registry.get("orders").instructions == "Override."


def test_build_agent_wires_graph_with_cycles(agents_dir: Path, test_tools_module: types.ModuleType) -> None:
    registry = AgentRegistry([agents_dir])

    triage = registry.build_agent("triage")

    assert triage.name == "triage"
    assert triage.instructions == "Route the request to the right team."
    assert triage.handoff_description == "Routes customer requests"
    assert triage.model == "gpt-4o-mini"
    assert triage.model_settings.temperature == 0.1
    assert [tool.name for tool in triage.tools] == ["lookup_order"]

    billing_handoff, spanish_handoff, orders_handoff = triage.handoffs
    assert isinstance(billing_handoff, KeywordHandoff)
    assert billing_handoff.keywords == ["invoice", "refund"]
    assert isinstance(spanish_handoff, LanguageHandoff)
    assert spanish_handoff.tool_name == "transfer_to_spanish_spanish"
    assert isinstance(orders_handoff, PatternHandoff)
    assert orders_handoff.tool_name == "escalate_order"
    assert orders_handoff.pattern.search("order #42")

    billing = billing_handoff.target_agent
    assert billing.output_type is Invoice
    back = billing.handoffs[0]
    assert type(back) is Handoff
    assert back.target_agent is triage
    assert back.input_json_schema["required"] == ["reason"]
    assert back.tool_description.endswith("Send unrelated requests back.")
    assert spanish_handoff.target_agent.instructions == "Responde en español."


def test_model_specs_collects_endpoints_across_graph(agents_dir: Path) -> None:
    registry = AgentRegistry([agents_dir])

    specs = registry.model_specs("triage")

    assert registry.reachable("triage")[0] == "triage"
    assert sorted(registry.reachable("triage")) == ["billing", "orders", "spanish", "triage"]
    assert set(specs) == {"gpt-4o-mini", "gpt-4o"}
    assert specs["gpt-4o-mini"].base_url == "https://example.test/v1"
    assert specs["gpt-4o"].base_url == "https://api.openai.com/v1"


def test_model_specs_keeps_first_endpoint_for_shared_name(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    (tmp_path / "front.md").write_text(
        "---\nname: front\nmodel:\n  model_name: shared\n  base_url: http://front.local/v1\n"
        "handoffs:\n  - agent: back\n---\nFront.\n",
        encoding="utf-8",
    )
    (tmp_path / "back.md").write_text(
        "---\nname: back\nmodel:\n  model_name: shared\n  base_url: http://back.local/v1\n---\nBack.\n",
        encoding="utf-8",
    )
    registry = AgentRegistry([tmp_path])

    with caplog.at_level(logging.WARNING, logger="agent_relay.agent_registry"):
        specs = registry.model_specs("front")

    assert specs["shared"].base_url == "http://front.local/v1"
    assert "already served by http://front.local/v1" in caplog.text


def test_build_agent_reports_missing_handoff_target(tmp_path: Path) -> None:
    (tmp_path / "lonely.md").write_text("---\nname: lonely\nhandoffs:\n  - agent: ghost\n---\nHi.\n", encoding="utf-8")
    registry = AgentRegistry([tmp_path])

    with pytest.raises(FileNotFoundError, match="ghost"):
        registry.build_agent("lonely")


def test_build_handoff_defaults_to_simple() -> None:
    target = Agent(name="target", instructions="Target.")
    handoff = agent_registry.build_handoff(HandoffSpec(agent="target"), target)

    assert type(handoff) is Handoff
    assert handoff.input_json_schema == {}
    assert handoff.tool_name == "transfer_to_target"


class CountingHooks(AgentHooks):
    def __init__(self) -> None:
        self.starts = 0

    async def on_start(self, agent: Agent) -> None:
        self.starts += 1


def test_set_hooks_replaces_hooks() -> None:
    agent = Agent(name="a", instructions="A.")
    hooks = CountingHooks()
    agent.set_hooks(hooks)
    assert agent.hooks is hooks
