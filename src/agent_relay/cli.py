"""CLI entrypoint."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

import anyio

from agent_relay.agent import Agent
from agent_relay.agent_registry import AgentRegistry
from agent_relay.models.run_result import RunResult
from agent_relay.providers import PydanticAIProvider
from agent_relay.run_config import DEFAULT_MAX_TURNS, RunConfig
from agent_relay.runner import Runner
from agent_relay.tracing import LoggingTracer


async def run_agent(agent: Agent, input_text: str, config: RunConfig) -> RunResult:
    return await Runner().run(agent, input_text, config)


def format_result(result: RunResult) -> str:
    if result.structured_output is not None:
        return result.structured_output.model_dump_json(indent=2)
    return result.final_output


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="agent-relay")
    parser.add_argument("--agents-dir", type=str, default="agents")
    parser.add_argument("--agent", type=str, required=True)
    input_group = parser.add_mutually_exclusive_group(required=True)
    input_group.add_argument("--input", type=str, help="Path to an input file")
    input_group.add_argument("--input-text", type=str, help="Raw input text")
    parser.add_argument("--max-turns", type=int, default=DEFAULT_MAX_TURNS)
    parser.add_argument("--step-delay", type=float, default=0.0, help="Seconds to wait between turns")
    parser.add_argument("--verbose", action="store_true", help="Log turns, tool calls and handoffs")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    registry = AgentRegistry([Path(args.agents_dir)])
    agent = registry.build_agent(args.agent)
    loaded = registry.get(args.agent)

    if args.input_text is not None:
        input_text = args.input_text
    else:
        input_text = Path(args.input).read_text(encoding="utf-8")

    config = RunConfig(
        model=loaded.spec.model.model_name,
        model_provider=PydanticAIProvider.from_spec(loaded.spec.model, endpoints=registry.model_specs(args.agent)),
        max_turns=args.max_turns,
        step_delay=args.step_delay,
        tracer=LoggingTracer() if args.verbose else None,
    )
    result = anyio.run(run_agent, agent, input_text, config)
    print(format_result(result))


if __name__ == "__main__":
    main()
