"""Externally visible event vocabulary and its wire encoding."""

from .events import (
    DONE_SENTINEL,
    BaseEvent,
    CustomEvent,
    EventType,
    ProtocolEvent,
    RunErrorEvent,
    RunFinishedEvent,
    RunStartedEvent,
    StepFinishedEvent,
    StepStartedEvent,
    TextMessageContentEvent,
    TextMessageEndEvent,
    TextMessageStartEvent,
    ToolCallArgsEvent,
    ToolCallEndEvent,
    ToolCallResultEvent,
    ToolCallStartEvent,
    encode_done,
    encode_sse,
    new_id,
    to_wire,
)

__all__ = [
    "DONE_SENTINEL",
    "BaseEvent",
    "CustomEvent",
    "EventType",
    "ProtocolEvent",
    "RunErrorEvent",
    "RunFinishedEvent",
    "RunStartedEvent",
    "StepFinishedEvent",
    "StepStartedEvent",
    "TextMessageContentEvent",
    "TextMessageEndEvent",
    "TextMessageStartEvent",
    "ToolCallArgsEvent",
    "ToolCallEndEvent",
    "ToolCallResultEvent",
    "ToolCallStartEvent",
    "encode_done",
    "encode_sse",
    "new_id",
    "to_wire",
]
