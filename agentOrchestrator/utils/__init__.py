"""Shared helpers: error taxonomy and logging."""

from .error_handler import (
    ConfigurationError,
    GraphError,
    NodeExecutionError,
    OrchestrationError,
    RoutingError,
    StepLimitExceeded,
    error_message,
    format_error,
    with_error_boundary,
)
from .logging_utils import setup_logging

__all__ = [
    "ConfigurationError",
    "GraphError",
    "NodeExecutionError",
    "OrchestrationError",
    "RoutingError",
    "StepLimitExceeded",
    "error_message",
    "format_error",
    "with_error_boundary",
    "setup_logging",
]
