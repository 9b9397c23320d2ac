"""Configuration exports."""

from .settings import (
    AgentSettings,
    GovernanceSettings,
    ModelSettings,
    ObservabilitySettings,
    Settings,
    StreamingSettings,
    get_settings,
)

__all__ = [
    "AgentSettings",
    "GovernanceSettings",
    "ModelSettings",
    "ObservabilitySettings",
    "Settings",
    "StreamingSettings",
    "get_settings",
]
