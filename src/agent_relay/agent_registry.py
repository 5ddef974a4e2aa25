"""Agent registry: loads agent markdown files and wires them into agent graphs."""

from __future__ import annotations

import logging
from pathlib import Path

from agent_relay.agent import Agent
from agent_relay.handoffs import Handoff, KeywordHandoff, LanguageHandoff, PatternHandoff
from agent_relay.models.handoff_spec import HandoffSpec
from agent_relay.models.loaded_agent_file import LoadedAgentFile
from agent_relay.models.model_spec import ModelSpec
from agent_relay.tools_loader import load_tools, resolve_schema

logger = logging.getLogger(__name__)


def load_agent_file(path: Path) -> LoadedAgentFile:
    return LoadedAgentFile(path)


def build_handoff(spec: HandoffSpec, target: Agent) -> Handoff:
    options = {
        "tool_name": spec.tool_name,
        "tool_description": spec.tool_description,
        "input_json_schema": spec.input_schema or None,
    }
    if spec.kind == "keyword":
        return KeywordHandoff(target, spec.description, spec.keywords, **options)
    if spec.kind == "pattern":
        return PatternHandoff(target, spec.description, spec.pattern or "", **options)
    if spec.kind == "language":
        return LanguageHandoff(target, spec.description, spec.language or "", **options)
    return Handoff(target, spec.description, **options)


class AgentRegistry:
    def __init__(self, agent_roots: list[Path]):
        self.agent_roots = agent_roots
        self._cache: dict[str, LoadedAgentFile] = {}
        self._index: dict[str, Path] | None = None

    def _build_index(self) -> dict[str, Path]:
        index: dict[str, Path] = {}
        for root in self.agent_roots:
            if not root.exists():
                continue
            for path in sorted(root.rglob("*.md")):
                agent_id = path.stem
                if agent_id in index:
                    logger.warning("Duplicate agent id %s at %s ignored", agent_id, path)
                    continue
                index[agent_id] = path
        return index

    def _get_index(self) -> dict[str, Path]:
        if self._index is None:
            self._index = self._build_index()
        return self._index

    def list_agents(self) -> list[str]:
        index = self._get_index()
        return sorted(index.keys())

    def get(self, agent_id: str) -> LoadedAgentFile:
        if agent_id in self._cache:
            return self._cache[agent_id]
        index = self._get_index()
        path = index.get(agent_id)
        if path is None:
            raise FileNotFoundError(f"Agent not found: {agent_id} (searched: {self.agent_roots})")
        loaded = load_agent_file(path)
        self._cache[agent_id] = loaded
        return loaded

    def reachable(self, agent_id: str) -> list[str]:
        """Ids of the agent and every agent reachable through its handoffs, entry first."""
        seen: list[str] = []
        pending = [agent_id]
        while pending:
            current = pending.pop()
            if current in seen:
                continue
            seen.append(current)
            pending.extend(spec.agent for spec in self.get(current).spec.handoffs if spec.agent not in seen)
        return seen

    def build_agent(self, agent_id: str) -> Agent:
        """
        Builds the agent and every agent reachable through its handoffs.
        Agents are created first and wired second, so handoff cycles resolve to shared instances.
        """
        agents = {current: self._instantiate(self.get(current)) for current in self.reachable(agent_id)}
        for current, agent in agents.items():
            for spec in self.get(current).spec.handoffs:
                agent.add_handoff(build_handoff(spec, agents[spec.agent]))
        logger.debug("Built %s with %s reachable agents", agent_id, len(agents))
        return agents[agent_id]

    def model_specs(self, agent_id: str) -> dict[str, ModelSpec]:
        """Endpoint per model name across the agent graph; the first agent to declare a name wins."""
        specs: dict[str, ModelSpec] = {}
        for current in self.reachable(agent_id):
            model = self.get(current).spec.model
            known = specs.get(model.model_name)
            if known is None:
                specs[model.model_name] = model
            elif known != model:
                logger.warning(
                    "Agent %s declares model %s on %s, already served by %s",
                    current,
                    model.model_name,
                    model.base_url,
                    known.base_url,
                )
        return specs

    def _instantiate(self, loaded: LoadedAgentFile) -> Agent:
        spec = loaded.spec
        return Agent(
            name=spec.name,
            instructions=loaded.instructions,
            handoff_description=spec.description,
            model=spec.model.model_name,
            model_settings=spec.settings.model_copy(deep=True),
            tools=load_tools(spec.tools),
            output_type=resolve_schema(spec.output_schema) if spec.output_schema else None,
        )
