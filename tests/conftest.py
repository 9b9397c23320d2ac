"""Pytest configuration and fixtures for all tests.

Provides a scripted chat model that replays pre-recorded streamed turns and
routing decisions, plus small tools, so graphs run without network access.
"""

import json
import sys
from pathlib import Path
from typing import Any, AsyncIterator, List, Optional

import pytest
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessageChunk, BaseMessage, SystemMessage, message_chunk_to_message
from langchain_core.outputs import ChatGeneration, ChatGenerationChunk, ChatResult
from langchain_core.runnables import RunnableLambda
from langchain_core.tools import tool
from pydantic import Field

# Ensure project root is in PYTHONPATH for imports to work
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from agentOrchestrator.config import Settings  # noqa: E402
from agentOrchestrator.graph.signals import SignalChannel  # noqa: E402
from agentOrchestrator.graph.state import ExecutionContext  # noqa: E402
from agentOrchestrator.runtime import AgentRoster, AgentSpec, Orchestrator  # noqa: E402
from agentOrchestrator.tools.registry import ToolRegistry  # noqa: E402


class ScriptedChatModel(BaseChatModel):
    """Chat model double replaying scripted turns.

    ``turns``: one entry per model call, a list of AIMessageChunk or an
    Exception to raise. An Exception inside the list is raised mid-stream.
    ``routes``: one entry per structured-output call, a dict of RouteDecision
    fields or an Exception.
    """

    turns: List[Any] = Field(default_factory=list)
    routes: List[Any] = Field(default_factory=list)
    calls: List[List[BaseMessage]] = Field(default_factory=list)
    route_calls: List[List[BaseMessage]] = Field(default_factory=list)
    bound_tools: List[List[str]] = Field(default_factory=list)
    leading_system_only: bool = False

    @property
    def _llm_type(self) -> str:
        return "scripted"

    def _check_system_messages(self, messages: List[BaseMessage]) -> None:
        """Reject system messages after the first one, as Anthropic does."""
        if self.leading_system_only and any(isinstance(m, SystemMessage) for m in messages[1:]):
            raise ValueError("Received multiple non-consecutive system messages.")

    def _next_turn(self, messages: List[BaseMessage]) -> List[AIMessageChunk]:
        self.calls.append(list(messages))
        self._check_system_messages(messages)
        if not self.turns:
            raise AssertionError("ScriptedChatModel ran out of turns")
        turn = self.turns.pop(0)
        if isinstance(turn, Exception):
            raise turn
        return turn

    def _generate(self, messages, stop=None, run_manager=None, **kwargs) -> ChatResult:
        chunks = self._next_turn(messages)
        for chunk in chunks:
            if isinstance(chunk, Exception):
                raise chunk
        merged = chunks[0]
        for chunk in chunks[1:]:
            merged = merged + chunk
        return ChatResult(generations=[ChatGeneration(message=message_chunk_to_message(merged))])

    async def _astream(self, messages, stop=None, run_manager=None, **kwargs) -> AsyncIterator[ChatGenerationChunk]:
        for chunk in self._next_turn(messages):
            if isinstance(chunk, Exception):
                raise chunk
            yield ChatGenerationChunk(message=chunk)

    def bind_tools(self, tools, **kwargs):
        self.bound_tools.append([t.name for t in tools])
        return self

    def with_structured_output(self, schema, **kwargs):
        async def route(messages):
            self.route_calls.append(list(messages))
            self._check_system_messages(messages)
            if not self.routes:
                raise AssertionError("ScriptedChatModel ran out of routing decisions")
            decision = self.routes.pop(0)
            if isinstance(decision, Exception):
                raise decision
            return schema(**decision)

        return RunnableLambda(route)


def text_turn(*pieces: str) -> List[AIMessageChunk]:
    """A turn streaming ``pieces`` as content deltas."""
    return [AIMessageChunk(content=piece) for piece in pieces]


def tool_turn(call_id: Optional[str], name: str, args: dict, split: int = 2, text: str = "") -> List[AIMessageChunk]:
    """A turn streaming one tool call, its JSON arguments split into fragments."""
    args_json = json.dumps(args)
    size = max(1, len(args_json) // split + 1)
    pieces = [args_json[i:i + size] for i in range(0, len(args_json), size)]

    chunks = [AIMessageChunk(content=text)] if text else []
    chunks.append(AIMessageChunk(
        content="",
        tool_call_chunks=[{"name": name, "args": pieces[0], "id": call_id, "index": 0, "type": "tool_call_chunk"}],
    ))
    for piece in pieces[1:]:
        chunks.append(AIMessageChunk(
            content="",
            tool_call_chunks=[{"name": None, "args": piece, "id": None, "index": 0, "type": "tool_call_chunk"}],
        ))
    return chunks


def event_types(events) -> List[str]:
    return [event.type.value for event in events]


@pytest.fixture
def settings():
    """Settings with default limits and normalizer policy."""
    return Settings()


@pytest.fixture
def search_calls():
    return []


@pytest.fixture
def search_tool(search_calls):
    @tool("web_search")
    async def web_search(query: str) -> str:
        """Search the web for current information."""
        search_calls.append(query)
        return json.dumps({"answer": "Sunny, 21C", "results": []})

    return web_search


@pytest.fixture
def failing_tool():
    @tool("flaky")
    async def flaky(query: str) -> str:
        """Always fails."""
        raise RuntimeError("backend unavailable")

    return flaky


@pytest.fixture
def registry(search_tool, failing_tool):
    return ToolRegistry([search_tool, failing_tool])


@pytest.fixture
def model():
    return ScriptedChatModel()


@pytest.fixture
def exec_context(model, registry, settings):
    return ExecutionContext(
        model=model,
        signals=SignalChannel(),
        tools=registry.as_dict(),
        governance=settings.governance,
    )


@pytest.fixture
def roster():
    return AgentRoster(agents=[AgentSpec(name="researcher", prompt="You research things.", tools=["web_search"])])


@pytest.fixture
def orchestrator(settings, registry, roster, model):
    return Orchestrator(settings=settings, registry=registry, roster=roster, model_factory=lambda options: model)


async def collect(run) -> list:
    return [event async for event in run.events()]


def drain(channel: SignalChannel) -> list:
    """Signals currently queued on a channel, without the close marker."""
    signals = []
    while not channel._queue.empty():
        item = channel._queue.get_nowait()
        if item is not None:
            signals.append(item)
    return signals
