"""Graph model, compilation and node execution."""

from .compiler import DAG_MODE, SUPERVISOR_MODE, ExecutableGraph, compile_workflow
from .model import (
    AgentNodeConfig,
    ChatMessage,
    NodeType,
    ToolNodeConfig,
    Workflow,
    WorkflowEdge,
    WorkflowNode,
    to_langchain_messages,
)
from .routing import select_condition_target
from .signals import ContextPath, SignalChannel
from .state import ExecutionContext, OrchestrationState
from .supervisor import AgentDefinition, build_supervisor_graph

__all__ = [
    "DAG_MODE",
    "SUPERVISOR_MODE",
    "AgentDefinition",
    "AgentNodeConfig",
    "ChatMessage",
    "ContextPath",
    "ExecutableGraph",
    "ExecutionContext",
    "NodeType",
    "OrchestrationState",
    "SignalChannel",
    "ToolNodeConfig",
    "Workflow",
    "WorkflowEdge",
    "WorkflowNode",
    "build_supervisor_graph",
    "compile_workflow",
    "select_condition_target",
    "to_langchain_messages",
]
