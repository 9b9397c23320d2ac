"""Rebuild the assistant messages a caller received from the event stream."""

from __future__ import annotations

from typing import Dict, List, Optional

from agentOrchestrator.graph.model import ChatMessage
from agentOrchestrator.protocol.events import (
    BaseEvent,
    StepStartedEvent,
    TextMessageContentEvent,
    TextMessageStartEvent,
)


class TranscriptCollector:
    """Accumulates text content per message id, in the order messages started."""

    def __init__(self) -> None:
        self._contents: Dict[str, List[str]] = {}
        self.last_step: Optional[str] = None

    def observe(self, event: BaseEvent) -> None:
        if isinstance(event, StepStartedEvent):
            self.last_step = event.step_name
        elif isinstance(event, TextMessageStartEvent):
            self._contents.setdefault(event.message_id, [])
        elif isinstance(event, TextMessageContentEvent):
            self._contents.setdefault(event.message_id, []).append(event.delta)

    def messages(self) -> List[ChatMessage]:
        """Assistant messages with content, tagged with the last step name."""
        result = []
        for parts in self._contents.values():
            content = "".join(parts)
            if content.strip():
                result.append(ChatMessage(role="assistant", content=content, name=self.last_step))
        return result
