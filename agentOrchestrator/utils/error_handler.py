"""Unified error handling for orchestration nodes and runs."""

from __future__ import annotations

import functools
import logging
from typing import Any, Awaitable, Callable

from langchain_core.messages import HumanMessage

LOGGER = logging.getLogger(__name__)

ERROR_TAG = "error"


class OrchestrationError(Exception):
    """Base exception for orchestration errors."""

    def __init__(self, message: str, user_message: str = None):
        super().__init__(message)
        self.user_message = user_message or message

    @property
    def code(self) -> str:
        return type(self).__name__


class GraphError(OrchestrationError):
    """Malformed graph: missing start edge, unknown tool reference, bad transition."""
    pass


class NodeExecutionError(OrchestrationError):
    """A single node's model or tool call failed. Recovered locally."""

    def __init__(self, node_name: str, cause: BaseException):
        super().__init__(f"{node_name}: {cause}", user_message=str(cause))
        self.node_name = node_name
        self.cause = cause


class RoutingError(OrchestrationError):
    """The supervisor routing node failed. Fatal for the run."""
    pass


class StepLimitExceeded(OrchestrationError):
    """Recursion/step limit reached. Not surfaced as an error."""

    def __init__(self, limit: int):
        super().__init__(f"Step limit of {limit} reached")
        self.limit = limit


class ConfigurationError(OrchestrationError):
    """Missing credentials or invalid runtime options."""
    pass


def error_message(node_name: str, error: BaseException) -> HumanMessage:
    """Build the error-tagged message appended to state when a node fails.

    A user-role message: providers such as Anthropic only accept system
    messages at the start of the conversation.
    """
    return HumanMessage(
        content=f"[Error in {node_name}]: {format_error(error)}",
        response_metadata={"tag": ERROR_TAG, "node": node_name},
    )


def with_error_boundary(
    node_name: str,
    recover: Callable[[Any, NodeExecutionError], Any],
):
    """Decorator adding an error boundary to an async graph node.

    On exception the failure is wrapped in NodeExecutionError and handed to
    ``recover(state, failure)``, whose return value becomes the node result.
    Recovery is expected to append an error-tagged message and take the
    node's normal transition.

    RoutingError and GraphError are never recovered here: they abort the run.

    Example:
        @with_error_boundary("researcher", recover=fail_forward)
        async def researcher_node(state):
            ...
    """
    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        @functools.wraps(func)
        async def async_wrapper(state):
            try:
                return await func(state)
            except (RoutingError, GraphError):
                raise
            except Exception as e:
                LOGGER.error(f"{node_name} failed: {type(e).__name__}: {e}", exc_info=e)
                return recover(state, NodeExecutionError(node_name, e))

        return async_wrapper

    return decorator


def format_error(error: BaseException) -> str:
    """Convert model/tool invocation errors to user-facing text.

    Args:
        error: Exception raised during model or tool invocation

    Returns:
        Short human readable message
    """
    if isinstance(error, NodeExecutionError):
        error = error.cause
    error_str = str(error).lower()

    if "rate_limit" in error_str or "429" in error_str:
        return "Rate limited by the model provider, try again later"

    if "timeout" in error_str:
        return f"Timed out: {error}"

    if "context_length" in error_str:
        return "Conversation is too long for the model context window"

    if "invalid_api_key" in error_str or "authentication" in error_str:
        return "Model provider rejected the API key"

    return f"{type(error).__name__}: {error}"
