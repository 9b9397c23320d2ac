"""Workflow graph schema: nodes, edges and conversation messages."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from langchain_core.messages import BaseMessage
from pydantic import BaseModel, ConfigDict, Field

from .message_utils import to_langchain_message


class NodeType(str, Enum):
    START = "start"
    END = "end"
    AGENT = "agent"
    TOOL = "tool"
    CONDITION = "condition"


class ChatMessage(BaseModel):
    """Unit of conversational state supplied by the caller."""

    role: Literal["user", "assistant", "system", "tool"] = "user"
    content: str
    name: Optional[str] = None

    def to_langchain(self) -> BaseMessage:
        return to_langchain_message(self.role, self.content)


class AgentNodeConfig(BaseModel):
    """Agent node: a prompt and the ordered set of tool names it may call."""

    model_config = ConfigDict(extra="allow")

    prompt: Optional[str] = None
    tools: List[str] = Field(default_factory=list)


class ToolNodeConfig(BaseModel):
    """Tool node: tool name plus static input, string values may be templated."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    tool_name: str = Field(default="", alias="toolName")
    input: Dict[str, Any] = Field(default_factory=dict)


class WorkflowNode(BaseModel):
    id: str = Field(min_length=1)
    type: NodeType
    name: str = ""
    config: Dict[str, Any] = Field(default_factory=dict)

    @property
    def step_name(self) -> str:
        return self.name or self.id

    def agent_config(self) -> AgentNodeConfig:
        return AgentNodeConfig.model_validate(self.config)

    def tool_config(self) -> ToolNodeConfig:
        return ToolNodeConfig.model_validate(self.config)


class WorkflowEdge(BaseModel):
    source: str
    target: str
    condition: Optional[str] = None


class Workflow(BaseModel):
    """User-authored DAG. Only compiled, never statically validated for cycles."""

    id: Optional[str] = None
    name: Optional[str] = None
    nodes: List[WorkflowNode]
    edges: List[WorkflowEdge] = Field(default_factory=list)


def to_langchain_messages(messages: List[ChatMessage]) -> List[BaseMessage]:
    return [m.to_langchain() for m in messages]


__all__ = [
    "AgentNodeConfig",
    "ChatMessage",
    "NodeType",
    "ToolNodeConfig",
    "Workflow",
    "WorkflowEdge",
    "WorkflowNode",
    "to_langchain_messages",
]
