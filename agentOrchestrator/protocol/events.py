"""Protocol events streamed to the caller.

Each event is a pydantic model tagged by ``type``. Field names are
snake_case in Python and camelCase on the wire (``threadId``,
``toolCallId``...). Ids are opaque strings scoped to one run.

Pairing rules:
    RUN_STARTED / RUN_FINISHED        one pair per run (RUN_ERROR replaces FINISHED)
    STEP_STARTED / STEP_FINISHED      one pair per node execution
    TEXT_MESSAGE_START/CONTENT*/END   one text message
    TOOL_CALL_START/ARGS*/END         one tool call, followed by one TOOL_CALL_RESULT
"""

from __future__ import annotations

import json
import time
import uuid
from enum import Enum
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class EventType(str, Enum):
    RUN_STARTED = "RUN_STARTED"
    RUN_FINISHED = "RUN_FINISHED"
    RUN_ERROR = "RUN_ERROR"
    STEP_STARTED = "STEP_STARTED"
    STEP_FINISHED = "STEP_FINISHED"
    TEXT_MESSAGE_START = "TEXT_MESSAGE_START"
    TEXT_MESSAGE_CONTENT = "TEXT_MESSAGE_CONTENT"
    TEXT_MESSAGE_END = "TEXT_MESSAGE_END"
    TOOL_CALL_START = "TOOL_CALL_START"
    TOOL_CALL_ARGS = "TOOL_CALL_ARGS"
    TOOL_CALL_END = "TOOL_CALL_END"
    TOOL_CALL_RESULT = "TOOL_CALL_RESULT"
    CUSTOM = "CUSTOM"


class BaseEvent(BaseModel):
    """Common envelope. ``timestamp`` is epoch milliseconds."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    type: EventType
    timestamp: Optional[int] = None


class RunStartedEvent(BaseEvent):
    type: Literal[EventType.RUN_STARTED] = EventType.RUN_STARTED
    thread_id: str
    run_id: str


class RunFinishedEvent(BaseEvent):
    type: Literal[EventType.RUN_FINISHED] = EventType.RUN_FINISHED
    thread_id: str
    run_id: str


class RunErrorEvent(BaseEvent):
    type: Literal[EventType.RUN_ERROR] = EventType.RUN_ERROR
    message: str
    code: Optional[str] = None


class StepStartedEvent(BaseEvent):
    type: Literal[EventType.STEP_STARTED] = EventType.STEP_STARTED
    step_name: str


class StepFinishedEvent(BaseEvent):
    type: Literal[EventType.STEP_FINISHED] = EventType.STEP_FINISHED
    step_name: str


class TextMessageStartEvent(BaseEvent):
    type: Literal[EventType.TEXT_MESSAGE_START] = EventType.TEXT_MESSAGE_START
    message_id: str
    role: str = "assistant"


class TextMessageContentEvent(BaseEvent):
    type: Literal[EventType.TEXT_MESSAGE_CONTENT] = EventType.TEXT_MESSAGE_CONTENT
    message_id: str
    delta: str = Field(min_length=1)


class TextMessageEndEvent(BaseEvent):
    type: Literal[EventType.TEXT_MESSAGE_END] = EventType.TEXT_MESSAGE_END
    message_id: str


class ToolCallStartEvent(BaseEvent):
    type: Literal[EventType.TOOL_CALL_START] = EventType.TOOL_CALL_START
    tool_call_id: str
    tool_call_name: str
    parent_message_id: Optional[str] = None


class ToolCallArgsEvent(BaseEvent):
    type: Literal[EventType.TOOL_CALL_ARGS] = EventType.TOOL_CALL_ARGS
    tool_call_id: str
    delta: str


class ToolCallEndEvent(BaseEvent):
    type: Literal[EventType.TOOL_CALL_END] = EventType.TOOL_CALL_END
    tool_call_id: str


class ToolCallResultEvent(BaseEvent):
    type: Literal[EventType.TOOL_CALL_RESULT] = EventType.TOOL_CALL_RESULT
    message_id: str
    tool_call_id: str
    role: Literal["tool"] = "tool"
    content: str


class CustomEvent(BaseEvent):
    type: Literal[EventType.CUSTOM] = EventType.CUSTOM
    name: str
    value: Any = None


ProtocolEvent = Union[
    RunStartedEvent,
    RunFinishedEvent,
    RunErrorEvent,
    StepStartedEvent,
    StepFinishedEvent,
    TextMessageStartEvent,
    TextMessageContentEvent,
    TextMessageEndEvent,
    ToolCallStartEvent,
    ToolCallArgsEvent,
    ToolCallEndEvent,
    ToolCallResultEvent,
    CustomEvent,
]

DONE_SENTINEL = "[DONE]"


def new_id() -> str:
    """Generate an opaque id for messages and tool calls."""
    return str(uuid.uuid4())


def to_wire(event: BaseEvent) -> Dict[str, Any]:
    """Return the JSON-ready camelCase payload, stamping the timestamp if unset."""
    payload = event.model_dump(mode="json", by_alias=True, exclude_none=True)
    payload.setdefault("timestamp", int(time.time() * 1000))
    return payload


def encode_sse(event: BaseEvent) -> str:
    """Serialize one event as a text/event-stream record."""
    data = json.dumps(to_wire(event), ensure_ascii=False)
    return f"event: {event.type.value}\ndata: {data}\n\n"


def encode_done() -> str:
    """Terminal record written after the last lifecycle event of a run."""
    return f"event: done\ndata: {DONE_SENTINEL}\n\n"
