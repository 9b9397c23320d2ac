"""Run orchestration: build the graph for a request and stream its events.

    orchestrator = Orchestrator()
    run = orchestrator.create_run(RunRequest(messages=[ChatMessage(content="hi")]))
    async for record in run.sse():
        ...

The engine runs in its own task and writes signals into the run's channel;
``events()`` normalizes them as they arrive, so the first tokens reach the
caller while the graph is still executing.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Callable, List, Optional

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage
from langgraph.errors import GraphRecursionError
from pydantic import BaseModel, ConfigDict, Field

from agentOrchestrator.config import Settings, get_settings
from agentOrchestrator.graph.compiler import ExecutableGraph, compile_workflow
from agentOrchestrator.graph.model import ChatMessage, Workflow, to_langchain_messages
from agentOrchestrator.graph.signals import SignalChannel
from agentOrchestrator.graph.state import ExecutionContext
from agentOrchestrator.graph.supervisor import build_supervisor_graph
from agentOrchestrator.protocol.events import BaseEvent, EventType, encode_done, encode_sse, new_id
from agentOrchestrator.streaming import EventNormalizer, NormalizerPolicy, TranscriptCollector
from agentOrchestrator.tools.registry import ToolRegistry, build_default_registry
from agentOrchestrator.tools.retrieval import Retriever, build_retrieval_tool
from agentOrchestrator.utils.error_handler import StepLimitExceeded
from agentOrchestrator.utils.logging_utils import log_error, log_run_summary

from .context import ConversationContext
from .model_resolver import ModelOptions, build_chat_model
from .roster import AgentRoster, build_agent_definitions

LOGGER = logging.getLogger("agentOrchestrator.runtime")

ModelFactory = Callable[[Optional[ModelOptions]], BaseChatModel]


class RunRequest(BaseModel):
    """Input of one run. No workflow means supervisor mode."""

    model_config = ConfigDict(populate_by_name=True)

    thread_id: Optional[str] = Field(default=None, alias="threadId")
    run_id: Optional[str] = Field(default=None, alias="runId")
    messages: List[ChatMessage] = Field(default_factory=list)
    workflow: Optional[Workflow] = None
    model_options: Optional[ModelOptions] = Field(default=None, alias="modelOptions")
    tenant_id: Optional[str] = Field(default=None, alias="tenantId")


class OrchestrationRun:
    """One execution of a compiled graph. Consumable once."""

    def __init__(
        self,
        *,
        thread_id: str,
        run_id: str,
        executable: ExecutableGraph,
        ctx: ExecutionContext,
        messages: List[BaseMessage],
        normalizer: EventNormalizer,
        context: Optional[ConversationContext] = None,
        new_messages: Optional[List[ChatMessage]] = None,
    ):
        self.thread_id = thread_id
        self.run_id = run_id
        self.executable = executable
        self.ctx = ctx
        self.messages = messages
        self.normalizer = normalizer
        self.context = context
        self.new_messages = list(new_messages or [])
        self.transcript = TranscriptCollector()
        self.outcome: Optional[str] = None

        self._task: Optional[asyncio.Task] = None
        self._cancelled = False
        self._consumed = False
        self._event_count = 0

    @property
    def mode(self) -> str:
        return self.executable.mode

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Abort the run. No further events are produced, not even RUN_FINISHED."""
        if self._cancelled:
            return
        self._cancelled = True
        LOGGER.info(f"Run {self.run_id} cancelled by caller")
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self.ctx.signals.close()

    async def events(self) -> AsyncIterator[BaseEvent]:
        """Protocol events in order, from RUN_STARTED to RUN_FINISHED or RUN_ERROR."""
        if self._consumed:
            raise RuntimeError(f"Run {self.run_id} has already been consumed")
        self._consumed = True

        self.outcome = "aborted"
        try:
            if self._cancelled:
                return
            yield self._record(self.normalizer.run_started())
            self._task = asyncio.create_task(self._execute())

            async for signal in self.ctx.signals:
                for event in self.normalizer.feed(signal):
                    if self._cancelled:
                        return
                    yield self._record(event)
            if self._cancelled:
                return

            error = await self._task
            for event in self.normalizer.finish():
                yield self._record(event)

            if error is None:
                self._persist()
                self.outcome = "finished"
                yield self._record(self.normalizer.run_finished())
            else:
                self.outcome = "error"
                yield self._record(self.normalizer.run_error(str(error) or type(error).__name__, type(error).__name__))
        finally:
            await self._stop_engine()
            log_run_summary(LOGGER, self.thread_id, self.run_id, self.mode, self.outcome, self._event_count)

    async def sse(self) -> AsyncIterator[str]:
        """Encoded event-stream records, closed by the done sentinel."""
        completed = False
        async for event in self.events():
            yield encode_sse(event)
            if event.type in (EventType.RUN_FINISHED, EventType.RUN_ERROR):
                completed = True
        if completed and not self._cancelled:
            yield encode_done()

    async def _execute(self) -> Optional[Exception]:
        """Run the graph to completion. Returns the run-level error, if any."""
        limit = self.executable.recursion_limit
        try:
            await self.executable.graph.ainvoke(
                {"messages": self.messages},
                config={"recursion_limit": limit},
            )
            return None
        except GraphRecursionError:
            LOGGER.warning(f"Run {self.run_id}: {StepLimitExceeded(limit)}, ending quietly")
            return None
        except Exception as e:
            log_error(LOGGER, e, context=f"run {self.run_id} ({self.mode})")
            return e
        finally:
            self.ctx.signals.close()

    async def _stop_engine(self) -> None:
        task = self._task
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def _record(self, event: BaseEvent) -> BaseEvent:
        self._event_count += 1
        self.transcript.observe(event)
        return event

    def _persist(self) -> None:
        if self.context is None:
            return
        replies = self.transcript.messages()
        self.context.append_messages(self.new_messages + replies)
        LOGGER.info(f"Appended {len(self.new_messages)} input and {len(replies)} assistant message(s) to thread {self.thread_id}")


class Orchestrator:
    """Creates runs for supervisor and workflow requests.

    Args:
        settings: Application settings (default: cached get_settings())
        registry: Shared tools (default: built-in registry)
        roster: Supervisor agents (default: loaded from AGENTS_CONFIG_PATH)
        model_factory: Builds the chat model for a run's options
        retriever: Knowledge base backend for the per-tenant retrieval tool
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        registry: Optional[ToolRegistry] = None,
        roster: Optional[AgentRoster] = None,
        model_factory: Optional[ModelFactory] = None,
        retriever: Optional[Retriever] = None,
    ):
        self.settings = settings or get_settings()
        self.registry = registry or build_default_registry()
        self.roster = roster or AgentRoster.load(self.settings.agents.agents_config_path)
        self.model_factory = model_factory or (lambda options: build_chat_model(options, self.settings.models))
        self.retriever = retriever

    def create_run(self, request: RunRequest, context: Optional[ConversationContext] = None) -> OrchestrationRun:
        """Compile the graph for ``request``.

        Raises:
            GraphError: Malformed workflow, before any event is produced
            ConfigurationError: Model options cannot be satisfied
        """
        thread_id = request.thread_id or new_id()
        run_id = request.run_id or new_id()

        history = context.load_messages() if context is not None else []
        messages = to_langchain_messages(history + request.messages)

        dynamic_tools = []
        if self.retriever is not None and request.tenant_id:
            dynamic_tools.append(build_retrieval_tool(self.retriever, request.tenant_id))

        tools = self.registry.as_dict()
        tools.update({tool.name: tool for tool in dynamic_tools})

        ctx = ExecutionContext(
            model=self.model_factory(request.model_options),
            signals=SignalChannel(),
            tools=tools,
            governance=self.settings.governance,
        )

        if request.workflow is not None:
            executable = compile_workflow(request.workflow, ctx)
        else:
            agents = build_agent_definitions(self.roster, self.registry, dynamic_tools)
            executable = build_supervisor_graph(agents, ctx)

        LOGGER.info(f"Created {executable.mode} run {run_id} on thread {thread_id} ({len(messages)} messages)")
        return OrchestrationRun(
            thread_id=thread_id,
            run_id=run_id,
            executable=executable,
            ctx=ctx,
            messages=messages,
            normalizer=EventNormalizer(thread_id, run_id, NormalizerPolicy.from_settings(self.settings.streaming)),
            context=context,
            new_messages=request.messages,
        )
