"""Conversation history collaborator."""

from __future__ import annotations

from typing import Dict, List, Protocol

from agentOrchestrator.graph.model import ChatMessage


class ConversationContext(Protocol):
    """Load a thread's history and persist new messages.

    Storage lives outside this package; the orchestrator only appends the
    assistant messages of runs that finished.
    """

    def load_messages(self) -> List[ChatMessage]:
        ...

    def append_messages(self, messages: List[ChatMessage]) -> None:
        ...


class InMemoryConversationContext:
    """Process-local history, one list per thread."""

    _threads: Dict[str, List[ChatMessage]]

    def __init__(self, thread_id: str, store: Dict[str, List[ChatMessage]] = None):
        self.thread_id = thread_id
        self._threads = store if store is not None else {}

    def load_messages(self) -> List[ChatMessage]:
        return list(self._threads.get(self.thread_id, []))

    def append_messages(self, messages: List[ChatMessage]) -> None:
        self._threads.setdefault(self.thread_id, []).extend(messages)
