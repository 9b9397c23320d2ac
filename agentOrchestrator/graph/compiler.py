"""Compile a user-authored workflow into an executable LangGraph graph."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List

from langgraph.graph import START, StateGraph

from agentOrchestrator.utils.error_handler import GraphError

from .model import NodeType, Workflow, WorkflowNode
from .nodes import build_agent_node, build_condition_node, build_tool_node
from .routing import Transitions
from .state import ExecutionContext, OrchestrationState

LOGGER = logging.getLogger(__name__)

DAG_MODE = "dag"
SUPERVISOR_MODE = "supervisor"


@dataclass
class ExecutableGraph:
    """A compiled graph plus the step limit for its mode."""

    graph: Any
    mode: str
    recursion_limit: int
    entry: str


def _find_start(nodes: List[WorkflowNode]) -> WorkflowNode:
    starts = [node for node in nodes if node.type == NodeType.START]
    if not starts:
        raise GraphError("Workflow has no start node")
    if len(starts) > 1:
        raise GraphError(f"Workflow has {len(starts)} start nodes, expected exactly one")
    return starts[0]


def compile_workflow(workflow: Workflow, ctx: ExecutionContext) -> ExecutableGraph:
    """Build the DAG-mode graph for one run.

    Raises GraphError for a missing or duplicated start node, a missing or
    dangling start edge, and agent tool references outside the run's tool
    set. Cycles and unreachable nodes are not checked: a cycle runs until the
    step limit.
    """
    nodes = workflow.nodes
    edges = workflow.edges

    start = _find_start(nodes)
    start_edges = [edge for edge in edges if edge.source == start.id]
    if not start_edges:
        raise GraphError(f"Start node '{start.id}' has no outgoing edge")
    if len(start_edges) > 1:
        LOGGER.warning(f"Start node '{start.id}' has {len(start_edges)} edges, using the first")

    by_id = {node.id: node for node in nodes}
    entry_target = start_edges[0].target
    if entry_target not in by_id:
        raise GraphError(f"Start edge points at unknown node '{entry_target}'")

    end_ids = {node.id for node in nodes if node.type == NodeType.END}
    executable = [node for node in nodes if node.type not in (NodeType.START, NodeType.END)]
    transitions = Transitions(edges, {node.id for node in executable}, end_ids)

    builder = StateGraph(OrchestrationState)
    for node in executable:
        try:
            builder.add_node(node.id, _build_node(ctx, node, transitions))
        except ValueError as e:
            raise GraphError(f"Invalid node '{node.id}': {e}") from e

    if entry_target in end_ids:
        # start -> end: nothing to execute
        builder.add_node(entry_target, _noop)

    builder.add_edge(START, entry_target)
    LOGGER.info(f"Compiled workflow {workflow.id or workflow.name or ''}: {len(executable)} nodes, entry {entry_target}")

    return ExecutableGraph(
        graph=builder.compile(),
        mode=DAG_MODE,
        recursion_limit=ctx.governance.dag_recursion_limit,
        entry=entry_target,
    )


def _build_node(ctx: ExecutionContext, node: WorkflowNode, transitions: Transitions):
    def successor(state):
        return transitions.single_successor(node.id)

    if node.type == NodeType.AGENT:
        config = node.agent_config()
        missing = [name for name in config.tools if name not in ctx.tools]
        if missing:
            raise GraphError(f"Agent '{node.step_name}' references unknown tool(s): {', '.join(missing)}")
        return build_agent_node(
            ctx,
            node_id=node.id,
            step_name=node.step_name,
            prompt=config.prompt,
            tools=[ctx.tools[name] for name in config.tools],
            successor=successor,
        )

    if node.type == NodeType.TOOL:
        config = node.tool_config()
        return build_tool_node(
            ctx,
            node_id=node.id,
            step_name=node.step_name,
            tool_name=config.tool_name,
            tool_input=config.input,
            tool=ctx.tools.get(config.tool_name),
            successor=successor,
        )

    if node.type == NodeType.CONDITION:
        return build_condition_node(ctx, node_id=node.id, step_name=node.step_name, transitions=transitions)

    raise GraphError(f"Unsupported node type: {node.type}")


async def _noop(state: OrchestrationState):
    return {"messages": []}
