"""Agent node: a streamed ReAct loop over the model and the agent's tools."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from langchain_core.messages import (
    AIMessage,
    AIMessageChunk,
    BaseMessage,
    SystemMessage,
    ToolMessage,
    message_chunk_to_message,
)
from langchain_core.tools import BaseTool

from agentOrchestrator.protocol.events import new_id
from agentOrchestrator.utils.error_handler import format_error, with_error_boundary
from agentOrchestrator.utils.logging_utils import log_tool_call, log_tool_result

from ..message_utils import clean_message_history, stringify_content
from ..routing import goto
from ..signals import (
    ContextPath,
    TokenDelta,
    ToolCallFragment,
    ToolCallInfo,
    ToolResultSignal,
    TurnCompleted,
)
from ..state import ExecutionContext, OrchestrationState
from .common import as_step, fail_forward

LOGGER = logging.getLogger("agentOrchestrator.nodes.agent")


def default_agent_prompt(name: str) -> str:
    return f"You are {name}."


async def stream_turn(
    ctx: ExecutionContext,
    runnable: Any,
    messages: List[BaseMessage],
    path: ContextPath,
    name: Optional[str] = None,
) -> AIMessage:
    """Run one model turn, emitting token and tool-call fragment signals.

    Returns the assembled message with every tool call carrying an id, and
    emits TurnCompleted for ``path`` once the stream ends.
    """
    full: Optional[AIMessageChunk] = None
    index_ids: Dict[int, str] = {}

    async for chunk in runnable.astream(messages):
        full = chunk if full is None else full + chunk

        text = stringify_content(chunk.content)
        if text:
            ctx.signals.emit(TokenDelta(path, text))

        for fragment in getattr(chunk, "tool_call_chunks", None) or []:
            index = fragment.get("index") or 0
            call_id = fragment.get("id") or index_ids.get(index)
            if call_id is None:
                call_id = new_id()
            index_ids.setdefault(index, call_id)
            ctx.signals.emit(ToolCallFragment(
                path,
                index=index,
                args_delta=fragment.get("args") or "",
                tool_call_id=call_id,
                name=fragment.get("name"),
            ))

    if full is None:
        message = AIMessage(content="")
    else:
        message = message_chunk_to_message(full)

    # Providers that omit ids on streamed calls get the ids announced above
    fallback_ids = iter(index_ids[i] for i in sorted(index_ids))
    tool_calls = []
    for call in message.tool_calls:
        call_id = call.get("id") or next(fallback_ids, None) or new_id()
        tool_calls.append({**call, "id": call_id})

    assembled = AIMessage(
        content=message.content,
        tool_calls=tool_calls,
        name=name,
        response_metadata=message.response_metadata,
    )
    ctx.signals.emit(TurnCompleted(path, tuple(
        ToolCallInfo(call["id"], call["name"], json.dumps(call.get("args") or {}, ensure_ascii=False))
        for call in tool_calls
    )))
    return assembled


async def invoke_tool_call(
    ctx: ExecutionContext,
    path: ContextPath,
    tools_by_name: Dict[str, BaseTool],
    call: Dict[str, Any],
) -> ToolMessage:
    """Execute one tool call. Failures become an error ToolMessage."""
    name = call["name"]
    args = call.get("args") or {}
    tool = tools_by_name.get(name)
    is_error = False

    if tool is None:
        content = f"Error: tool '{name}' is not available to this agent"
        is_error = True
        LOGGER.warning(f"Model requested unknown tool: {name}")
    else:
        log_tool_call(LOGGER, name, args)
        try:
            content = stringify_content(await tool.ainvoke(args))
        except Exception as e:
            content = f"Error: {format_error(e)}"
            is_error = True
        log_tool_result(LOGGER, name, content, success=not is_error)

    ctx.signals.emit(ToolResultSignal(path, call["id"], name, content, is_error))
    return ToolMessage(
        content=content,
        tool_call_id=call["id"],
        name=name,
        status="error" if is_error else "success",
    )


async def run_agent_loop(
    ctx: ExecutionContext,
    path: ContextPath,
    name: str,
    prompt: str,
    tools: Sequence[BaseTool],
    history: List[BaseMessage],
) -> List[BaseMessage]:
    """Alternate model turns and tool executions until the model stops calling tools.

    Each model turn runs on its own child path. Returns only the messages
    produced here, never the input history.
    """
    runnable = ctx.model.bind_tools(list(tools)) if tools else ctx.model
    tools_by_name = {tool.name: tool for tool in tools}

    conversation: List[BaseMessage] = [SystemMessage(content=prompt)] + clean_message_history(history)
    produced: List[BaseMessage] = []

    for seq in range(1, ctx.governance.agent_max_iterations + 1):
        turn_path = path.child(seq)
        reply = await stream_turn(ctx, runnable, conversation, turn_path, name=name)
        produced.append(reply)
        conversation.append(reply)

        if not reply.tool_calls:
            break

        for call in reply.tool_calls:
            result = await invoke_tool_call(ctx, turn_path, tools_by_name, call)
            produced.append(result)
            conversation.append(result)
    else:
        LOGGER.warning(f"{name}: stopped after {ctx.governance.agent_max_iterations} model turns")

    return produced


def build_agent_node(
    ctx: ExecutionContext,
    *,
    node_id: str,
    step_name: str,
    prompt: Optional[str],
    tools: Sequence[BaseTool],
    successor: Callable[[OrchestrationState], Optional[str]],
):
    """Create an agent node.

    Args:
        ctx: Per-run collaborators
        node_id: Graph node id, also the outer context path
        step_name: Name reported in step events
        prompt: System prompt, defaults to "You are <step_name>."
        tools: Tools the agent may call, already resolved
        successor: Computes the next node id (None terminates)
    """
    path = ContextPath(node_id)
    system_prompt = prompt or default_agent_prompt(step_name)
    recover = fail_forward(ctx, path, step_name, successor)

    @as_step(ctx, path, step_name)
    @with_error_boundary(step_name, recover)
    async def agent_node(state: OrchestrationState):
        produced = await run_agent_loop(ctx, path, step_name, system_prompt, tools, state["messages"])
        return goto(successor(state), {"messages": produced})

    return agent_node
