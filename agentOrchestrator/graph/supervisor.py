"""Synthesized supervisor graph: a router, a responder and one node per agent.

    START → supervisor ⇄ agent_1 … agent_n
                ↓
            responder → END

Every agent returns to the supervisor, so control always comes back to the
router regardless of how many agents are configured.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from langchain_core.tools import BaseTool
from langgraph.graph import START, StateGraph

from agentOrchestrator.utils.error_handler import GraphError

from .compiler import SUPERVISOR_MODE, ExecutableGraph
from .message_utils import ROUTER_NAME
from .nodes import RESPOND, RESPONDER_NAME, TERMINATE, build_agent_node, build_responder_node, build_router_node
from .state import ExecutionContext, OrchestrationState

LOGGER = logging.getLogger(__name__)

RESERVED_NAMES = {ROUTER_NAME, RESPONDER_NAME, RESPOND, TERMINATE}


@dataclass
class AgentDefinition:
    """A supervisor-mode agent with its tools already bound."""

    name: str
    prompt: Optional[str] = None
    tools: List[BaseTool] = field(default_factory=list)


def _check_names(agents: Sequence[AgentDefinition]) -> None:
    seen = set()
    for agent in agents:
        if agent.name in RESERVED_NAMES:
            raise GraphError(f"Agent name '{agent.name}' is reserved")
        if agent.name in seen:
            raise GraphError(f"Duplicate agent name '{agent.name}'")
        seen.add(agent.name)


def build_supervisor_graph(agents: Sequence[AgentDefinition], ctx: ExecutionContext) -> ExecutableGraph:
    """Build the star topology for supervisor mode.

    Args:
        agents: Agent definitions; names must be unique and not reserved
        ctx: Per-run collaborators

    Returns:
        ExecutableGraph entered at the supervisor node
    """
    _check_names(agents)

    builder = StateGraph(OrchestrationState)
    builder.add_node(ROUTER_NAME, build_router_node(ctx, agents))
    builder.add_node(RESPONDER_NAME, build_responder_node(ctx))

    for agent in agents:
        try:
            builder.add_node(agent.name, build_agent_node(
                ctx,
                node_id=agent.name,
                step_name=agent.name,
                prompt=agent.prompt,
                tools=agent.tools,
                successor=lambda state: ROUTER_NAME,
            ))
        except ValueError as e:
            raise GraphError(f"Invalid agent name '{agent.name}': {e}") from e

    builder.add_edge(START, ROUTER_NAME)
    LOGGER.info(f"Built supervisor graph with agents: {[agent.name for agent in agents]}")

    return ExecutableGraph(
        graph=builder.compile(),
        mode=SUPERVISOR_MODE,
        recursion_limit=ctx.governance.supervisor_recursion_limit,
        entry=ROUTER_NAME,
    )
