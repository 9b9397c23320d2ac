"""Supervisor-mode nodes: the routing node and the direct responder."""

from __future__ import annotations

import logging
from typing import Any, Literal, Sequence, Tuple

from langchain_core.messages import SystemMessage
from pydantic import BaseModel, Field, create_model

from agentOrchestrator.utils.error_handler import RoutingError, with_error_boundary
from agentOrchestrator.utils.logging_utils import log_routing_decision

from ..message_utils import ROUTER_NAME, clean_message_history, routing_message, without_routing_messages
from ..routing import goto
from ..signals import ContextPath, RoutingDecided
from ..state import ExecutionContext, OrchestrationState
from .agent import stream_turn
from .common import as_step, fail_forward

LOGGER = logging.getLogger("agentOrchestrator.nodes.supervisor")

RESPONDER_NAME = "responder"
RESPOND = "RESPOND"
TERMINATE = "TERMINATE"

RESPONDER_PROMPT = (
    "You are a helpful AI assistant. Answer the user's question naturally and directly, "
    "using any information gathered earlier in the conversation. "
    "Respond in the same language as the user."
)


def build_route_decision_model(agent_names: Sequence[str]) -> type[BaseModel]:
    """Structured-output schema constraining ``next`` to the closed destination set."""
    options: Tuple[str, ...] = (*agent_names, RESPOND, TERMINATE)
    return create_model(
        "RouteDecision",
        next=(Literal[options], Field(description="The next worker to act, RESPOND or TERMINATE")),
        reason=(str, Field(default="", description="Short rationale for the choice")),
    )


def build_router_prompt(agents: Sequence[Any]) -> str:
    lines = [
        "You are a supervisor managing a conversation between the user and these workers:",
    ]
    for agent in agents:
        lines.append(f"- {agent.name}: {agent.prompt or 'general purpose agent'}")
    lines.extend([
        "",
        "Given the conversation so far, choose who acts next.",
        f"Pick {RESPOND} when the conversation already contains what is needed to answer the user.",
        f"Pick {TERMINATE} when nothing more should be said.",
    ])
    return "\n".join(lines)


def _parse_decision(raw: Any, schema: type[BaseModel]) -> BaseModel:
    if isinstance(raw, schema):
        return raw
    if isinstance(raw, BaseModel):
        raw = raw.model_dump()
    if not isinstance(raw, dict):
        raise RoutingError(f"Router returned {type(raw).__name__}, expected a routing decision")
    return schema.model_validate(raw)


def build_router_node(ctx: ExecutionContext, agents: Sequence[Any]):
    """Create the routing node.

    Any failure here, model error or a decision outside the destination set,
    raises RoutingError and aborts the run.
    """
    path = ContextPath(ROUTER_NAME)
    agent_names = [agent.name for agent in agents]
    schema = build_route_decision_model(agent_names)
    router_prompt = build_router_prompt(agents)

    @as_step(ctx, path, ROUTER_NAME, visible=False)
    async def supervisor_node(state: OrchestrationState):
        messages = [SystemMessage(content=router_prompt)] + clean_message_history(state["messages"])
        try:
            structured = ctx.model.with_structured_output(schema)
            decision = _parse_decision(await structured.ainvoke(messages), schema)
        except RoutingError:
            raise
        except Exception as e:
            raise RoutingError(f"Routing failed: {type(e).__name__}: {e}", user_message=str(e)) from e

        log_routing_decision(LOGGER, ROUTER_NAME, decision.next, decision.reason)

        if decision.next == RESPOND:
            target = RESPONDER_NAME
        elif decision.next == TERMINATE:
            target = None
        else:
            target = decision.next

        ctx.signals.emit(RoutingDecided(
            path,
            target_step=target if target in agent_names else None,
            rationale=decision.reason,
        ))
        return goto(target, {"messages": [routing_message(decision.next, decision.reason)]})

    return supervisor_node


def build_responder_node(ctx: ExecutionContext):
    """Create the responder: one streamed, tool-free answer, then terminate."""
    path = ContextPath(RESPONDER_NAME)
    recover = fail_forward(ctx, path, RESPONDER_NAME, lambda state: None)

    @as_step(ctx, path, RESPONDER_NAME)
    @with_error_boundary(RESPONDER_NAME, recover)
    async def responder_node(state: OrchestrationState):
        history = clean_message_history(without_routing_messages(state["messages"]))
        messages = [SystemMessage(content=RESPONDER_PROMPT)] + history
        reply = await stream_turn(ctx, ctx.model, messages, path, name=RESPONDER_NAME)
        return goto(None, {"messages": [reply]})

    return responder_node


__all__ = [
    "RESPOND",
    "RESPONDER_NAME",
    "RESPONDER_PROMPT",
    "TERMINATE",
    "build_responder_node",
    "build_route_decision_model",
    "build_router_node",
]
