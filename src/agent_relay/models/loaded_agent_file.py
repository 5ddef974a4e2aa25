"""Loaded agent markdown plus parsed metadata."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

import frontmatter

from agent_relay.models.agent_spec import AgentSpec

logger = logging.getLogger(__name__)

SECTION_HEADER_RE = re.compile(r"^(#{1,6})\s+(.+?)\s*$", re.MULTILINE)


@dataclass
class LoadedAgentFile:
    spec: AgentSpec
    instructions: str

    def __init__(self, agent: Path | str) -> None:
        post, source_label = load_agent_frontmatter(agent)
        self.spec = AgentSpec.model_validate(post.metadata)
        self.instructions = extract_instructions(post.content, source_label)
        if not self.instructions:
            logger.warning("Agent file %s has no instructions", source_label)


def load_agent_frontmatter(agent: Path | str) -> tuple[frontmatter.Post, str]:
    if isinstance(agent, Path):
        return frontmatter.load(str(agent)), str(agent)
    agent_path = Path(agent)
    if agent_path.exists():
        return frontmatter.load(str(agent_path)), str(agent_path)
    return frontmatter.loads(agent), "<inline>"


def normalize_header_text(header_text: str) -> str:
    normalized = header_text.strip().lower().replace("_", " ")
    return re.sub(r"\s+", " ", normalized)


def extract_instructions(markdown_body: str, source_label: str = "<inline>") -> str:
    """
    Returns the body of the first "Instructions" heading, up to the next heading of the same
    or higher level. Without such a heading the whole body is the instructions.
    """
    matches = list(SECTION_HEADER_RE.finditer(markdown_body))
    for index, match in enumerate(matches):
        if normalize_header_text(match.group(2)) != "instructions":
            continue
        level = len(match.group(1))
        end = len(markdown_body)
        for following in matches[index + 1 :]:
            if len(following.group(1)) <= level:
                end = following.start()
                break
        preamble = markdown_body[: match.start()]
        if preamble.strip():
            logger.warning("Ignored text before instructions in %s", source_label)
        return markdown_body[match.end() : end].strip()
    return markdown_body.strip()
