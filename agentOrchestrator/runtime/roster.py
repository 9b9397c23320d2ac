"""Supervisor agent roster loaded from agents.yaml.

File format:

    agents:
      - name: researcher
        prompt: |
          You are a research agent...
        tools: [rag_retrieval, web_search]

A missing file falls back to the built-in roster.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import yaml
from langchain_core.tools import BaseTool
from pydantic import BaseModel, Field, ValidationError

from agentOrchestrator.graph.supervisor import AgentDefinition
from agentOrchestrator.tools.registry import ToolRegistry
from agentOrchestrator.utils.error_handler import ConfigurationError

LOGGER = logging.getLogger(__name__)

RESEARCHER_PROMPT = (
    "You are a research agent with two tools: rag_retrieval and web_search.\n"
    "- ALWAYS try rag_retrieval FIRST to search the internal knowledge base.\n"
    "- If the user explicitly mentions the knowledge base, you MUST use rag_retrieval.\n"
    "- Only use web_search if rag_retrieval returns no useful results or for real-time information.\n"
    "- Always cite your sources."
)


class AgentSpec(BaseModel):
    name: str = Field(min_length=1)
    prompt: Optional[str] = None
    tools: List[str] = Field(default_factory=list)


class AgentRoster(BaseModel):
    agents: List[AgentSpec] = Field(default_factory=list)

    @classmethod
    def default(cls) -> "AgentRoster":
        return cls(agents=[
            AgentSpec(name="researcher", prompt=RESEARCHER_PROMPT, tools=["web_search", "rag_retrieval"]),
        ])

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> "AgentRoster":
        """Load the roster from YAML, or the default roster when no file exists.

        Raises:
            ConfigurationError: The file exists but is not a valid roster
        """
        if not path:
            return cls.default()
        config_path = Path(path)
        if not config_path.exists():
            LOGGER.warning(f"Agents config not found at {config_path}, using default roster")
            return cls.default()

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            roster = cls.model_validate(data)
        except (yaml.YAMLError, ValidationError) as e:
            raise ConfigurationError(f"Invalid agents config {config_path}: {e}") from e

        if not roster.agents:
            LOGGER.warning(f"No agents defined in {config_path}, using default roster")
            return cls.default()
        LOGGER.info(f"Loaded {len(roster.agents)} agent(s) from {config_path}")
        return roster


def build_agent_definitions(
    roster: AgentRoster,
    registry: ToolRegistry,
    dynamic_tools: Iterable[BaseTool] = (),
) -> List[AgentDefinition]:
    """Bind each roster entry's tool names to tool instances.

    Per-run tools (for example a tenant's retrieval tool) take precedence
    over registry tools of the same name. Unknown names are skipped.
    """
    run_tools: Dict[str, BaseTool] = {tool.name: tool for tool in dynamic_tools}

    definitions = []
    for spec in roster.agents:
        tools = []
        for name in spec.tools:
            tool = run_tools.get(name) or registry.get_optional(name)
            if tool is None:
                LOGGER.warning(f"Agent '{spec.name}': tool '{name}' is not available, skipping")
                continue
            tools.append(tool)
        definitions.append(AgentDefinition(name=spec.name, prompt=spec.prompt, tools=tools))
    return definitions
