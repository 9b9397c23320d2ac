"""Raw internal signals emitted by graph nodes while they run.

Signals are the engine's low-level occurrences (token deltas, tool-call
fragments, turn completions, node enter/exit). They are not part of the
wire contract: the EventNormalizer turns them into protocol events.

Every signal carries a ContextPath. Depth 0 is the node itself; an agent's
internal model turns run at depth 1 with an increasing ``seq``, so buffers
keyed by path never mix text from different turns or different runs.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Optional, Tuple, Union

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContextPath:
    """Hierarchical context key: outer node id + inner call sequence."""

    node: str
    depth: int = 0
    seq: int = 0

    def child(self, seq: int) -> "ContextPath":
        return ContextPath(self.node, self.depth + 1, seq)

    @property
    def is_outer(self) -> bool:
        return self.depth == 0

    def __str__(self) -> str:
        return f"{self.node}/{self.depth}.{self.seq}"


@dataclass(frozen=True)
class ToolCallInfo:
    """A fully assembled tool call from a finished model turn."""

    id: str
    name: str
    args_json: str = "{}"


@dataclass(frozen=True)
class NodeEntered:
    path: ContextPath
    step_name: str
    visible: bool = True


@dataclass(frozen=True)
class NodeExited:
    path: ContextPath
    step_name: str


@dataclass(frozen=True)
class TokenDelta:
    path: ContextPath
    text: str


@dataclass(frozen=True)
class ToolCallFragment:
    """One streamed piece of a tool call. ``id``/``name`` usually only on the first piece."""

    path: ContextPath
    index: int
    args_delta: str = ""
    tool_call_id: Optional[str] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class TurnCompleted:
    """A model turn finished; carries the assembled tool calls (may be empty)."""

    path: ContextPath
    tool_calls: Tuple[ToolCallInfo, ...] = ()


@dataclass(frozen=True)
class ToolResultSignal:
    path: ContextPath
    tool_call_id: str
    name: str
    content: str
    is_error: bool = False


@dataclass(frozen=True)
class RoutingDecided:
    """Supervisor decision. ``target_step`` is None for RESPOND/TERMINATE."""

    path: ContextPath
    target_step: Optional[str]
    rationale: str = ""


@dataclass(frozen=True)
class NodeFailed:
    path: ContextPath
    step_name: str
    message: str


@dataclass(frozen=True)
class CustomSignal:
    name: str
    value: Any = None


Signal = Union[
    NodeEntered,
    NodeExited,
    TokenDelta,
    ToolCallFragment,
    TurnCompleted,
    ToolResultSignal,
    RoutingDecided,
    NodeFailed,
    CustomSignal,
]


@dataclass
class SignalChannel:
    """Single-run, single-consumer signal queue between engine and normalizer."""

    _queue: "asyncio.Queue[Optional[Signal]]" = field(default_factory=asyncio.Queue)
    _closed: bool = False

    def emit(self, signal: Signal) -> None:
        if self._closed:
            LOGGER.debug(f"Dropping signal after close: {type(signal).__name__}")
            return
        self._queue.put_nowait(signal)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(None)

    async def __aiter__(self) -> AsyncIterator[Signal]:
        while True:
            signal = await self._queue.get()
            if signal is None:
                return
            yield signal
