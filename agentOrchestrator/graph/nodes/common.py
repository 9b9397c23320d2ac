"""Shared wrappers for graph nodes: step signals and fail-forward recovery."""

from __future__ import annotations

import functools
import logging
from typing import Any, Awaitable, Callable, Optional

from agentOrchestrator.utils.error_handler import NodeExecutionError, error_message, format_error
from agentOrchestrator.utils.logging_utils import log_node_entry, log_node_exit

from ..routing import goto
from ..signals import ContextPath, NodeEntered, NodeExited, NodeFailed
from ..state import ExecutionContext, OrchestrationState

LOGGER = logging.getLogger("agentOrchestrator.nodes")

NodeFn = Callable[[OrchestrationState], Awaitable[Any]]


def as_step(ctx: ExecutionContext, path: ContextPath, step_name: str, visible: bool = True):
    """Wrap a node so its execution is bracketed by enter/exit signals."""

    def decorator(func: NodeFn) -> NodeFn:
        @functools.wraps(func)
        async def wrapper(state: OrchestrationState):
            log_node_entry(LOGGER, path.node, state)
            ctx.signals.emit(NodeEntered(path, step_name, visible))
            try:
                result = await func(state)
            finally:
                ctx.signals.emit(NodeExited(path, step_name))
            _log_exit(path.node, result)
            return result

        return wrapper

    return decorator


def fail_forward(
    ctx: ExecutionContext,
    path: ContextPath,
    step_name: str,
    successor: Callable[[OrchestrationState], Optional[str]],
):
    """Build a recovery callback for ``with_error_boundary``.

    The failed node's error is recorded in state and surfaced as a
    ``node_error`` signal, then the node's normal transition is taken.
    """

    def recover(state: OrchestrationState, failure: NodeExecutionError):
        ctx.signals.emit(NodeFailed(path, step_name, format_error(failure)))
        return goto(successor(state), {"messages": [error_message(step_name, failure.cause)]})

    return recover


def _log_exit(node_id: str, result: Any) -> None:
    if isinstance(result, dict):
        log_node_exit(LOGGER, node_id, result)
    else:
        log_node_exit(LOGGER, node_id, result.update or {}, result.goto)
