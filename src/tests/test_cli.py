from pathlib import Path
from typing import Sequence

import pytest
from pydantic import BaseModel

from agent_relay import cli
from agent_relay.agent import Agent
from agent_relay.models import Message
from agent_relay.models import ModelResponse
from agent_relay.models import ModelSettings
from agent_relay.models import ModelSpec
from agent_relay.models import RunResult
from agent_relay.providers import ModelProvider


class ScriptedProvider(ModelProvider):
    def __init__(self, content: str) -> None:
        self.content = content
        self.calls: list[tuple[list[Message], ModelSettings]] = []

    async def create_chat_completion(self, messages: Sequence[Message], settings: ModelSettings) -> ModelResponse:
        self.calls.append((list(messages), settings))
        return ModelResponse(message=Message.assistant(self.content))


class ProviderFactoryStub:
    def __init__(self, provider: ScriptedProvider) -> None:
        self.provider = provider
        self.specs: list[ModelSpec] = []
        self.endpoints: list[dict[str, ModelSpec]] = []

    def from_spec(self, spec: ModelSpec, *, endpoints: dict[str, ModelSpec] | None = None) -> ScriptedProvider:
        self.specs.append(spec)
        self.endpoints.append(dict(endpoints or {}))
        return self.provider


class Summary(BaseModel):
    title: str


def _write_agent(root: Path) -> None:
    root.mkdir(parents=True, exist_ok=True)
    (root / "echo.md").write_text(
        "---\nname: echo\nmodel:\n  model_name: local-model\n  base_url: http://localhost:11434/v1\n---\n"
        "## Instructions\nRepeat the input.\n",
        encoding="utf-8",
    )


def test_main_runs_agent_from_text(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    _write_agent(tmp_path / "agents")
    provider = ScriptedProvider("Hello back!")
    stub = ProviderFactoryStub(provider)
    monkeypatch.setattr(cli, "PydanticAIProvider", stub)

    cli.main(["--agents-dir", str(tmp_path / "agents"), "--agent", "echo", "--input-text", "Hello"])

    assert capsys.readouterr().out == "Hello back!\n"
    assert stub.specs[0].base_url == "http://localhost:11434/v1"
    messages, settings = provider.calls[0]
    assert messages[0] == Message.system("Repeat the input.")
    assert messages[1] == Message.user("Hello")
    assert settings.model == "local-model"


def test_main_passes_each_agent_endpoint(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    root = tmp_path / "agents"
    root.mkdir(parents=True)
    (root / "echo.md").write_text(
        "---\nname: echo\nmodel:\n  model_name: local-model\n  base_url: http://localhost:11434/v1\n"
        "handoffs:\n  - agent: billing\n---\n## Instructions\nRepeat the input.\n",
        encoding="utf-8",
    )
    (root / "billing.md").write_text(
        "---\nname: billing\nmodel:\n  model_name: billing-model\n  base_url: http://billing.local/v1\n"
        "  api_key_env: BILLING_KEY\n---\nHandle billing.\n",
        encoding="utf-8",
    )
    stub = ProviderFactoryStub(ScriptedProvider("ok"))
    monkeypatch.setattr(cli, "PydanticAIProvider", stub)

    cli.main(["--agents-dir", str(root), "--agent", "echo", "--input-text", "Hello"])

    endpoints = stub.endpoints[0]
    assert endpoints["local-model"].base_url == "http://localhost:11434/v1"
    assert endpoints["billing-model"].base_url == "http://billing.local/v1"
    assert endpoints["billing-model"].api_key_env == "BILLING_KEY"


def test_main_reads_input_file(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    _write_agent(tmp_path / "agents")
    input_path = tmp_path / "question.txt"
    input_path.write_text("From a file", encoding="utf-8")
    provider = ScriptedProvider("ok")
    monkeypatch.setattr(cli, "PydanticAIProvider", ProviderFactoryStub(provider))

    cli.main(["--agents-dir", str(tmp_path / "agents"), "--agent", "echo", "--input", str(input_path)])

    assert capsys.readouterr().out == "ok\n"
    assert provider.calls[0][0][1] == Message.user("From a file")


def test_main_requires_one_input(tmp_path: Path) -> None:
    with pytest.raises(SystemExit):
        cli.main(["--agents-dir", str(tmp_path), "--agent", "echo"])


def test_format_result_prefers_structured_output() -> None:
    agent = Agent(name="summarizer", instructions="Summarize.")

    plain = RunResult(final_output="plain text", last_agent=agent)
    structured = RunResult(final_output='{"title": "x"}', last_agent=agent, structured_output=Summary(title="x"))

    assert cli.format_result(plain) == "plain text"
    assert cli.format_result(structured) == '{\n  "title": "x"\n}'
