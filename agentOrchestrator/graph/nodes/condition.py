"""Condition node: keyword branch on the latest message, appends nothing."""

from __future__ import annotations

from ..message_utils import latest_content
from ..routing import Transitions, goto
from ..signals import ContextPath
from ..state import ExecutionContext, OrchestrationState
from .common import as_step


def build_condition_node(ctx: ExecutionContext, *, node_id: str, step_name: str, transitions: Transitions):
    path = ContextPath(node_id)

    @as_step(ctx, path, step_name)
    async def condition_node(state: OrchestrationState):
        target = transitions.condition_successor(node_id, latest_content(state["messages"]))
        return goto(target, {"messages": []})

    return condition_node

