"""Utilities for tagging, converting and cleaning message histories."""

from __future__ import annotations

from typing import Any, Iterable, List, Optional, Set

from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)

ROUTING_TAG = "routing"
TOOL_OUTPUT_TAG = "tool_output"
ROUTER_NAME = "supervisor"


def stringify_content(content: Any) -> str:
    """Convert message content to string.

    Handles list content (multimodal / content blocks), dict blocks with a
    "text" field and plain strings.
    """
    if content is None:
        return ""
    if isinstance(content, list):
        pieces: list[str] = []
        for item in content:
            if isinstance(item, dict):
                if item.get("type", "text") == "text" and "text" in item:
                    pieces.append(str(item["text"]))
            else:
                pieces.append(str(item))
        return "".join(pieces)
    return str(content)


def message_tag(message: BaseMessage) -> Optional[str]:
    return (getattr(message, "response_metadata", None) or {}).get("tag")


def is_routing_message(message: BaseMessage) -> bool:
    """True for the supervisor's internal routing-rationale messages."""
    return message_tag(message) == ROUTING_TAG or (
        isinstance(message, AIMessage) and message.name == ROUTER_NAME
    )


def routing_message(next_step: str, reason: str) -> AIMessage:
    return AIMessage(
        content=f"[Supervisor] Routing to {next_step}: {reason}",
        name=ROUTER_NAME,
        response_metadata={"tag": ROUTING_TAG},
    )


def tool_output_message(tool_name: str, output: Any) -> HumanMessage:
    return HumanMessage(
        content=f"[Tool {tool_name}]: {stringify_content(output)}",
        response_metadata={"tag": TOOL_OUTPUT_TAG, "tool": tool_name},
    )


def latest_content(messages: List[BaseMessage]) -> str:
    """Content of the most recent message, '' for an empty history."""
    if not messages:
        return ""
    return stringify_content(messages[-1].content)


def first_user_content(messages: List[BaseMessage]) -> str:
    for msg in messages:
        if isinstance(msg, HumanMessage):
            return stringify_content(msg.content)
    return ""


def without_routing_messages(messages: Iterable[BaseMessage]) -> List[BaseMessage]:
    return [msg for msg in messages if not is_routing_message(msg)]


def clean_message_history(messages: List[BaseMessage]) -> List[BaseMessage]:
    """Remove AI messages with unanswered tool_calls.

    OpenAI requires that every AI message with tool_calls is followed by the
    corresponding ToolMessages; a history cut short by an error or a step
    limit can violate that.

    Args:
        messages: List of conversation messages

    Returns:
        Cleaned list with unanswered tool_calls removed
    """
    answered_call_ids: Set[str] = set()
    for msg in messages:
        if isinstance(msg, ToolMessage) and msg.tool_call_id:
            answered_call_ids.add(msg.tool_call_id)

    cleaned: List[BaseMessage] = []
    kept_call_ids: Set[str] = set()
    for msg in messages:
        if isinstance(msg, AIMessage) and msg.tool_calls:
            call_ids = {tc.get("id") for tc in msg.tool_calls}
            if not call_ids <= answered_call_ids:
                continue
            kept_call_ids |= call_ids
        elif isinstance(msg, ToolMessage) and msg.tool_call_id not in kept_call_ids:
            # Orphaned result: its AI message was dropped or never existed
            continue
        cleaned.append(msg)

    return cleaned


def to_langchain_message(role: str, content: str) -> BaseMessage:
    """Map a plain ``{role, content}`` pair onto a LangChain message."""
    if role == "system":
        return SystemMessage(content=content)
    if role == "assistant":
        return AIMessage(content=content)
    # Bare tool messages carry no tool_call_id; treat them as context text.
    return HumanMessage(content=content)


__all__ = [
    "ROUTER_NAME",
    "ROUTING_TAG",
    "TOOL_OUTPUT_TAG",
    "clean_message_history",
    "first_user_content",
    "is_routing_message",
    "latest_content",
    "message_tag",
    "routing_message",
    "stringify_content",
    "to_langchain_message",
    "tool_output_message",
    "without_routing_messages",
]
