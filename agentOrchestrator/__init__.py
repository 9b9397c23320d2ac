"""Multi-agent conversation orchestration with a normalized event stream."""

from .runtime import (
    InMemoryConversationContext,
    ModelOptions,
    OrchestrationRun,
    Orchestrator,
    RunRequest,
)

__all__ = [
    "InMemoryConversationContext",
    "ModelOptions",
    "OrchestrationRun",
    "Orchestrator",
    "RunRequest",
]
