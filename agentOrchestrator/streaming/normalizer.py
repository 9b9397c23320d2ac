"""Turn the engine's raw signals into a well-formed protocol event stream.

The engine reports what happens in the order it happens: token deltas,
tool-call fragments, turn completions, node enter/exit. Those signals can be
noisy (fragments without ids, tool calls that only show up once a turn is
assembled, results for calls that were never streamed, duplicate
completions). The normalizer keeps per-run bookkeeping so callers always see:

1. Text messages as START → CONTENT* → END; a message still open when
   another context starts talking is closed first.
2. Tool calls as START → ARGS* → END → RESULT, at most one START and one
   RESULT per tool call id.
3. No routing rationale in the text stream; a routing decision for an agent
   opens that agent's step.
4. No text from a turn once that turn has started calling tools.
5. No inline tool-call markup in text content.
6. Inner-turn text held until the turn resolves: dropped when the turn
   calls tools, flushed when it answers.
7. STEP_FINISHED once per step, after the step's text is closed.

Policy knobs for 5 and 6 live in NormalizerPolicy.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from agentOrchestrator.config import StreamingSettings
from agentOrchestrator.graph.signals import (
    ContextPath,
    CustomSignal,
    NodeEntered,
    NodeExited,
    NodeFailed,
    RoutingDecided,
    Signal,
    TokenDelta,
    ToolCallFragment,
    ToolCallInfo,
    ToolResultSignal,
    TurnCompleted,
)
from agentOrchestrator.protocol.events import (
    BaseEvent,
    CustomEvent,
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
    new_id,
)

from .markup import DEFAULT_MARKUP_TAGS, InlineToolMarkupFilter

LOGGER = logging.getLogger("agentOrchestrator.streaming")

NODE_ERROR_EVENT = "node_error"
UNKNOWN_TOOL_NAME = "unknown"
ERROR_PREFIX = "Error: "
NOT_EXECUTED_RESULT = ERROR_PREFIX + "tool call was not executed"


@dataclass(frozen=True)
class NormalizerPolicy:
    """Where reasoning text ends and content begins.

    - buffer_inner_text: hold inner-turn text until the turn resolves
    - discard_reasoning_text: drop held text of a turn that calls tools or fails
    - strip_inline_markup: filter textual tool-call markup out of content
    """

    buffer_inner_text: bool = True
    discard_reasoning_text: bool = True
    strip_inline_markup: bool = True
    inline_markup_tags: Tuple[str, ...] = DEFAULT_MARKUP_TAGS

    @classmethod
    def from_settings(cls, settings: StreamingSettings) -> "NormalizerPolicy":
        return cls(
            buffer_inner_text=settings.buffer_inner_text,
            discard_reasoning_text=settings.discard_reasoning_text,
            strip_inline_markup=settings.strip_inline_markup,
            inline_markup_tags=tuple(settings.inline_markup_tags),
        )


@dataclass
class _OpenText:
    message_id: str
    path: ContextPath


@dataclass
class _ToolCallSpan:
    id: str
    path: ContextPath
    name: Optional[str] = None
    started: bool = False
    ended: bool = False
    resulted: bool = False
    pending_args: List[str] = field(default_factory=list)


class EventNormalizer:
    """Per-run signal → event translator. Never raises to its caller."""

    def __init__(self, thread_id: str, run_id: str, policy: Optional[NormalizerPolicy] = None):
        self.thread_id = thread_id
        self.run_id = run_id
        self.policy = policy or NormalizerPolicy()

        self._out: List[BaseEvent] = []
        self._text: Optional[_OpenText] = None
        self._filters: Dict[ContextPath, InlineToolMarkupFilter] = {}
        self._held: Dict[ContextPath, List[str]] = {}
        self._tool_turns: set = set()
        self._index_ids: Dict[Tuple[ContextPath, int], str] = {}
        self._calls: Dict[str, _ToolCallSpan] = {}
        self._aliases: Dict[str, str] = {}
        self._active_steps: List[str] = []

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run_started(self) -> RunStartedEvent:
        return RunStartedEvent(thread_id=self.thread_id, run_id=self.run_id)

    def run_finished(self) -> RunFinishedEvent:
        return RunFinishedEvent(thread_id=self.thread_id, run_id=self.run_id)

    def run_error(self, message: str, code: Optional[str] = None) -> RunErrorEvent:
        return RunErrorEvent(message=message, code=code)

    def feed(self, signal: Signal) -> List[BaseEvent]:
        """Translate one signal. On an internal fault, flush what is buffered."""
        try:
            self._dispatch(signal)
        except Exception as e:
            LOGGER.error(f"Normalizer fault on {type(signal).__name__}: {e}", exc_info=e)
            self._safely(self._flush_all_text)
        return self._drain()

    def finish(self) -> List[BaseEvent]:
        """Close everything still open so pairing holds at the end of a run."""
        self._safely(self._flush_all_text)
        self._safely(self._end_open_calls)
        for step_name in list(self._active_steps):
            self._emit(StepFinishedEvent(step_name=step_name))
        self._active_steps.clear()
        return self._drain()

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _dispatch(self, signal: Signal) -> None:
        if isinstance(signal, TokenDelta):
            self._on_token(signal)
        elif isinstance(signal, ToolCallFragment):
            self._on_fragment(signal)
        elif isinstance(signal, TurnCompleted):
            self._on_turn_completed(signal)
        elif isinstance(signal, ToolResultSignal):
            self._on_tool_result(signal)
        elif isinstance(signal, NodeEntered):
            self._on_node_entered(signal)
        elif isinstance(signal, NodeExited):
            self._on_node_exited(signal)
        elif isinstance(signal, RoutingDecided):
            self._on_routing(signal)
        elif isinstance(signal, NodeFailed):
            self._abandon_inner_turns(signal.path.node)
            self._close_text_for_node(signal.path.node)
            self._emit(CustomEvent(
                name=NODE_ERROR_EVENT,
                value={"stepName": signal.step_name, "message": signal.message},
            ))
        elif isinstance(signal, CustomSignal):
            self._emit(CustomEvent(name=signal.name, value=signal.value))
        else:
            LOGGER.warning(f"Ignoring unknown signal: {signal!r}")

    def _on_token(self, signal: TokenDelta) -> None:
        path = signal.path
        if path in self._tool_turns:
            return
        text = signal.text
        if self.policy.strip_inline_markup:
            text = self._filter(path).feed(text)
        self._accept_text(path, text)

    def _on_fragment(self, signal: ToolCallFragment) -> None:
        path = signal.path
        if path not in self._tool_turns:
            self._tool_turns.add(path)
            self._resolve_held_text(path, tool_turn=True)

        key = (path, signal.index)
        call_id = signal.tool_call_id or self._index_ids.get(key) or new_id()
        call_id = self._aliases.get(call_id, call_id)
        self._index_ids.setdefault(key, call_id)

        span = self._calls.get(call_id)
        if span is None:
            span = self._calls[call_id] = _ToolCallSpan(id=call_id, path=path)
        if span.ended:
            return
        if signal.name and not span.name:
            span.name = signal.name

        if signal.args_delta:
            span.pending_args.append(signal.args_delta)
        if span.name:
            self._start_call(span)
            self._flush_args(span)

    def _on_turn_completed(self, signal: TurnCompleted) -> None:
        path = signal.path
        tool_turn = bool(signal.tool_calls) or path in self._tool_turns

        self._resolve_held_text(path, tool_turn=tool_turn)
        if self._text is not None and self._text.path == path:
            self._close_text()

        unmatched = [
            span for span in self._calls.values()
            if span.path == path and not span.ended and not self._is_reported(span, signal.tool_calls)
        ]
        for info in signal.tool_calls:
            span = self._span_for(info, unmatched, path)
            if span.ended:
                continue
            if not span.name:
                span.name = info.name
            if not span.started:
                if not span.pending_args and info.args_json:
                    span.pending_args.append(info.args_json)
                self._start_call(span)
            self._flush_args(span)
            self._end_call(span)

        for span in unmatched:
            self._finish_span(span)

        self._tool_turns.discard(path)
        self._filters.pop(path, None)
        for key in [key for key in self._index_ids if key[0] == path]:
            del self._index_ids[key]

    def _on_tool_result(self, signal: ToolResultSignal) -> None:
        call_id = self._aliases.get(signal.tool_call_id, signal.tool_call_id)
        span = self._calls.get(call_id)
        if span is None:
            span = self._calls[call_id] = _ToolCallSpan(id=call_id, path=signal.path, name=signal.name)
        if span.resulted:
            LOGGER.debug(f"Dropping duplicate result for tool call {call_id}")
            return
        if not span.name:
            span.name = signal.name

        if not span.started:
            self._start_call(span)
            self._flush_args(span)
        self._end_call(span)

        content = signal.content
        if signal.is_error and not content.startswith(ERROR_PREFIX):
            content = ERROR_PREFIX + content
        self._emit_result(span, content)

    def _on_node_entered(self, signal: NodeEntered) -> None:
        if not signal.path.is_outer or not signal.visible:
            return
        self._start_step(signal.step_name)

    def _on_node_exited(self, signal: NodeExited) -> None:
        if not signal.path.is_outer:
            return
        node = signal.path.node
        for path in [p for p in set(self._held) | set(self._filters) if p.node == node]:
            self._resolve_held_text(path, tool_turn=path in self._tool_turns)
            self._filters.pop(path, None)
        self._close_text_for_node(node)
        for span in [s for s in self._calls.values() if s.path.node == node and not s.resulted]:
            self._finish_span(span)

        if signal.step_name in self._active_steps:
            self._active_steps.remove(signal.step_name)
            self._emit(StepFinishedEvent(step_name=signal.step_name))

    def _abandon_inner_turns(self, node: str) -> None:
        """Settle the unfinished turns of a failed node like tool turns."""
        paths = set(self._held) | set(self._filters) | self._tool_turns
        for path in [p for p in paths if p.node == node and not p.is_outer]:
            self._resolve_held_text(path, tool_turn=True)
            self._filters.pop(path, None)
            self._tool_turns.discard(path)
            for key in [key for key in self._index_ids if key[0] == path]:
                del self._index_ids[key]
        for span in [s for s in self._calls.values() if s.path.node == node and not s.resulted]:
            self._finish_span(span)

    def _on_routing(self, signal: RoutingDecided) -> None:
        if signal.target_step:
            self._start_step(signal.target_step)

    # ------------------------------------------------------------------
    # Text
    # ------------------------------------------------------------------

    def _filter(self, path: ContextPath) -> InlineToolMarkupFilter:
        markup = self._filters.get(path)
        if markup is None:
            markup = self._filters[path] = InlineToolMarkupFilter(self.policy.inline_markup_tags)
        return markup

    def _accept_text(self, path: ContextPath, text: str) -> None:
        if not text:
            return
        if path.depth >= 1 and self.policy.buffer_inner_text:
            self._held.setdefault(path, []).append(text)
            return
        self._write_text(path, text)

    def _resolve_held_text(self, path: ContextPath, tool_turn: bool) -> None:
        """Settle a turn's held text: discarded for a tool turn, else flushed."""
        markup = self._filters.get(path)
        if markup is not None and path not in self._tool_turns:
            self._accept_text(path, markup.finish())
        elif markup is not None:
            markup.finish()

        held = self._held.pop(path, [])
        if tool_turn and self.policy.discard_reasoning_text:
            if held:
                LOGGER.debug(f"Discarding {len(held)} reasoning chunk(s) from {path}")
            return
        for text in held:
            self._write_text(path, text)
        if held and self._text is not None and self._text.path == path:
            self._close_text()

    def _write_text(self, path: ContextPath, delta: str) -> None:
        if self._text is not None and self._text.path != path:
            self._close_text()
        if self._text is None:
            self._text = _OpenText(message_id=new_id(), path=path)
            self._emit(TextMessageStartEvent(message_id=self._text.message_id))
        self._emit(TextMessageContentEvent(message_id=self._text.message_id, delta=delta))

    def _close_text(self) -> None:
        if self._text is None:
            return
        self._emit(TextMessageEndEvent(message_id=self._text.message_id))
        self._text = None

    def _close_text_for_node(self, node: str) -> None:
        if self._text is not None and self._text.path.node == node:
            self._close_text()

    def _flush_all_text(self) -> None:
        for path in list(set(self._held) | set(self._filters)):
            self._resolve_held_text(path, tool_turn=path in self._tool_turns)
        self._filters.clear()
        self._close_text()

    # ------------------------------------------------------------------
    # Tool calls
    # ------------------------------------------------------------------

    def _is_reported(self, span: _ToolCallSpan, infos: Tuple[ToolCallInfo, ...]) -> bool:
        return any(self._aliases.get(info.id, info.id) == span.id for info in infos)

    def _span_for(
        self, info: ToolCallInfo, unmatched: List[_ToolCallSpan], path: ContextPath
    ) -> _ToolCallSpan:
        """Find the span a completed call belongs to, pairing id-less streams by order."""
        call_id = self._aliases.get(info.id, info.id)
        span = self._calls.get(call_id)
        if span is not None:
            return span

        for candidate in unmatched:
            if candidate.name in (None, info.name):
                unmatched.remove(candidate)
                self._aliases[info.id] = candidate.id
                return candidate

        span = self._calls[info.id] = _ToolCallSpan(id=info.id, path=path, name=info.name)
        return span

    def _start_call(self, span: _ToolCallSpan) -> None:
        if span.started:
            return
        self._close_text()
        span.started = True
        self._emit(ToolCallStartEvent(
            tool_call_id=span.id,
            tool_call_name=span.name or UNKNOWN_TOOL_NAME,
        ))

    def _flush_args(self, span: _ToolCallSpan) -> None:
        if not span.started or span.ended:
            return
        for delta in span.pending_args:
            self._emit(ToolCallArgsEvent(tool_call_id=span.id, delta=delta))
        span.pending_args.clear()

    def _end_call(self, span: _ToolCallSpan) -> None:
        if span.ended:
            return
        span.ended = True
        self._emit(ToolCallEndEvent(tool_call_id=span.id))

    def _finish_span(self, span: _ToolCallSpan) -> None:
        """Close a call that will never run: its turn ended without it, or failed."""
        if span.resulted:
            return
        if span.started:
            self._flush_args(span)
            self._end_call(span)
            self._emit_result(span, NOT_EXECUTED_RESULT)
        else:
            LOGGER.debug(f"Dropping tool call {span.id} that never got a name")
            span.ended = True
            span.resulted = True

    def _end_open_calls(self) -> None:
        for span in self._calls.values():
            if span.started and not span.resulted:
                self._finish_span(span)

    def _emit_result(self, span: _ToolCallSpan, content: str) -> None:
        span.resulted = True
        self._emit(ToolCallResultEvent(
            message_id=new_id(),
            tool_call_id=span.id,
            content=content,
        ))

    # ------------------------------------------------------------------
    # Steps / plumbing
    # ------------------------------------------------------------------

    def _start_step(self, step_name: str) -> None:
        if step_name in self._active_steps:
            return
        self._close_text()
        self._active_steps.append(step_name)
        self._emit(StepStartedEvent(step_name=step_name))

    def _emit(self, event: BaseEvent) -> None:
        self._out.append(event)

    def _drain(self) -> List[BaseEvent]:
        events, self._out = self._out, []
        return events

    def _safely(self, action) -> None:
        try:
            action()
        except Exception as e:
            LOGGER.error(f"Normalizer flush failed: {e}", exc_info=e)
