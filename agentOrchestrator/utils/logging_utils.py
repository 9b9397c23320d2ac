"""Logging utilities for agentOrchestrator."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

ROOT_LOGGER_NAME = "agentOrchestrator"


def setup_logging(
    level: int = logging.INFO,
    log_dir: Optional[str] = "logs",
    log_to_file: bool = True,
) -> logging.Logger:
    """Setup logging configuration for agentOrchestrator.

    Args:
        level: Logging level for the file handler (default: INFO)
        log_dir: Directory for the timestamped log file
        log_to_file: Disable to log to the console only

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(logging.DEBUG)  # Set to DEBUG to capture all child logs
    logger.propagate = False

    logger.handlers = []

    if log_to_file and log_dir:
        logs_path = Path(log_dir)
        logs_path.mkdir(parents=True, exist_ok=True)
        log_file = logs_path / f"orchestrator_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"

        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        ))
        logger.addHandler(file_handler)
        logger.info(f"Log file: {log_file}")

    # Console handler (user-friendly)
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.WARNING)
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logger.addHandler(console_handler)

    return logger


def _preview(value: Any, limit: int = 500) -> str:
    text = value if isinstance(value, str) else str(value)
    if len(text) > limit:
        return text[:limit] + "... (truncated)"
    return text


def log_node_entry(logger: logging.Logger, node_name: str, state: Dict[str, Any]) -> None:
    """Log node entry with a short state snapshot.

    Args:
        logger: Logger instance
        node_name: Name of the node being entered
        state: Current graph state
    """
    logger.info(f"Entering node: {node_name} (messages: {len(state.get('messages', []))})")


def log_node_exit(logger: logging.Logger, node_name: str, updates: Dict[str, Any], goto: Optional[str] = None) -> None:
    """Log node exit with state updates and the chosen transition.

    Args:
        logger: Logger instance
        node_name: Name of the node being exited
        updates: State updates returned by the node
        goto: Next node id, None when the run terminates
    """
    added = len(updates.get("messages", []))
    logger.info(f"Exiting node: {node_name} (+{added} messages) → {goto or 'TERMINATED'}")


def log_routing_decision(logger: logging.Logger, from_node: str, decision: str, reason: str = "") -> None:
    """Log routing decision.

    Args:
        logger: Logger instance
        from_node: Source node making the decision
        decision: Routing destination
        reason: Reason for the routing decision
    """
    logger.info(f"Routing decision from {from_node} → {decision}")
    if reason:
        logger.debug(f"  Reason: {reason}")


def log_tool_call(logger: logging.Logger, tool_name: str, args: Dict[str, Any]) -> None:
    """Log tool invocation."""
    logger.info(f"Tool call: {tool_name}")
    logger.debug(f"  Arguments: {json.dumps(args, ensure_ascii=False, default=str)}")


def log_tool_result(logger: logging.Logger, tool_name: str, result: Any, success: bool = True) -> None:
    """Log tool execution result (truncated)."""
    status = "ok" if success else "failed"
    logger.info(f"Tool result: {tool_name} - {status}")
    logger.debug(f"  Result: {_preview(result)}")


def log_error(logger: logging.Logger, error: BaseException, context: str = "") -> None:
    """Log error with context.

    Args:
        logger: Logger instance
        error: Exception instance
        context: Additional context about where the error occurred
    """
    logger.error(f"Error occurred: {type(error).__name__}: {error}")
    if context:
        logger.error(f"  Context: {context}")
    logger.debug("Full traceback:", exc_info=error)


def log_run_summary(
    logger: logging.Logger,
    thread_id: str,
    run_id: str,
    mode: str,
    outcome: str,
    event_count: int,
) -> None:
    """Log a one-line summary when a run ends."""
    logger.info(
        f"Run {run_id} (thread {thread_id}, {mode}) ended: {outcome}, {event_count} events"
    )
