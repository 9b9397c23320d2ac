"""Tool node: invoke one tool with static, optionally templated input."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, List, Optional

from langchain_core.messages import BaseMessage
from langchain_core.tools import BaseTool

from agentOrchestrator.protocol.events import new_id
from agentOrchestrator.utils.error_handler import with_error_boundary
from agentOrchestrator.utils.logging_utils import log_tool_call, log_tool_result

from ..message_utils import first_user_content, latest_content, stringify_content, tool_output_message
from ..routing import goto
from ..signals import ContextPath, ToolCallInfo, ToolResultSignal, TurnCompleted
from ..state import ExecutionContext, OrchestrationState
from .common import as_step, fail_forward

LOGGER = logging.getLogger("agentOrchestrator.nodes.tool")

LAST_MESSAGE_PLACEHOLDER = "{{last_message}}"
INPUT_PLACEHOLDER = "{{input}}"


def render_tool_input(template: Dict[str, Any], messages: List[BaseMessage]) -> Dict[str, Any]:
    """Substitute placeholders in string values of a tool node's input.

    ``{{last_message}}`` is the latest message content, ``{{input}}`` the
    first user message. Non-string values pass through unchanged.
    """
    last = latest_content(messages)
    original = first_user_content(messages)

    rendered: Dict[str, Any] = {}
    for key, value in template.items():
        if isinstance(value, str):
            value = value.replace(LAST_MESSAGE_PLACEHOLDER, last).replace(INPUT_PLACEHOLDER, original)
        rendered[key] = value
    return rendered


def build_tool_node(
    ctx: ExecutionContext,
    *,
    node_id: str,
    step_name: str,
    tool_name: str,
    tool_input: Dict[str, Any],
    tool: Optional[BaseTool],
    successor: Callable[[OrchestrationState], Optional[str]],
):
    """Create a tool node.

    A tool missing from the run's tool set makes the node a pass-through.
    The invocation is reported as a tool call so callers see it like any
    model-requested call.
    """
    path = ContextPath(node_id)
    recover = fail_forward(ctx, path, step_name, successor)

    @as_step(ctx, path, step_name)
    @with_error_boundary(step_name, recover)
    async def tool_node(state: OrchestrationState):
        if tool is None:
            LOGGER.warning(f"Tool '{tool_name}' not found, node {node_id} passes state through")
            return goto(successor(state), {"messages": []})

        args = render_tool_input(tool_input, state["messages"])
        call_path = path.child(1)
        call_id = new_id()
        ctx.signals.emit(TurnCompleted(call_path, (
            ToolCallInfo(call_id, tool_name, json.dumps(args, ensure_ascii=False, default=str)),
        )))

        log_tool_call(LOGGER, tool_name, args)
        try:
            output = await tool.ainvoke(args)
        except Exception as e:
            ctx.signals.emit(ToolResultSignal(call_path, call_id, tool_name, str(e), is_error=True))
            raise

        content = stringify_content(output)
        log_tool_result(LOGGER, tool_name, content)
        ctx.signals.emit(ToolResultSignal(call_path, call_id, tool_name, content))
        return goto(successor(state), {"messages": [tool_output_message(tool_name, content)]})

    return tool_node
