"""Runtime wiring: models, rosters, conversation context and runs."""

from .app import OrchestrationRun, Orchestrator, RunRequest
from .context import ConversationContext, InMemoryConversationContext
from .model_resolver import ModelOptions, build_chat_model
from .roster import AgentRoster, AgentSpec, build_agent_definitions

__all__ = [
    "AgentRoster",
    "AgentSpec",
    "ConversationContext",
    "InMemoryConversationContext",
    "ModelOptions",
    "OrchestrationRun",
    "Orchestrator",
    "RunRequest",
    "build_agent_definitions",
    "build_chat_model",
]
