"""Shared state definition for the LangGraph flow."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Annotated, Dict, List, TypedDict

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage
from langchain_core.tools import BaseTool
from langgraph.graph import add_messages

from agentOrchestrator.config import GovernanceSettings

from .signals import SignalChannel


class OrchestrationState(TypedDict):
    """Conversation state threaded along graph edges.

    Append-only during one run: nodes only ever add messages.
    """

    messages: Annotated[List[BaseMessage], add_messages]


@dataclass
class ExecutionContext:
    """Per-run collaborators captured by node closures.

    Built fresh for every run, so nothing here is shared between runs.
    """

    model: BaseChatModel
    signals: SignalChannel
    tools: Dict[str, BaseTool] = field(default_factory=dict)
    governance: GovernanceSettings = field(default_factory=GovernanceSettings)
