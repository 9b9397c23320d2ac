"""Command line entry: run one message, or chat interactively, printing the SSE stream."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import List, Optional

from agentOrchestrator.config import get_settings
from agentOrchestrator.graph.model import ChatMessage, Workflow
from agentOrchestrator.runtime import InMemoryConversationContext, ModelOptions, Orchestrator, RunRequest
from agentOrchestrator.utils.error_handler import OrchestrationError
from agentOrchestrator.utils.logging_utils import setup_logging

LOGGER = logging.getLogger("agentOrchestrator.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="agent-orchestrator", description=__doc__)
    parser.add_argument("message", nargs="?", help="User message; omit for an interactive session")
    parser.add_argument("--workflow", type=Path, help="Workflow JSON file (DAG mode); default is supervisor mode")
    parser.add_argument("--provider", choices=["openai", "anthropic", "dashscope"])
    parser.add_argument("--model")
    parser.add_argument("--temperature", type=float)
    parser.add_argument("--thread", help="Thread id to use for the conversation")
    return parser


def load_workflow(path: Optional[Path]) -> Optional[Workflow]:
    if path is None:
        return None
    with open(path, "r", encoding="utf-8") as f:
        return Workflow.model_validate(json.load(f))


async def run_once(
    orchestrator: Orchestrator,
    context: InMemoryConversationContext,
    message: str,
    workflow: Optional[Workflow],
    options: ModelOptions,
) -> None:
    request = RunRequest(
        thread_id=context.thread_id,
        messages=[ChatMessage(role="user", content=message)],
        workflow=workflow,
        model_options=options,
    )
    try:
        run = orchestrator.create_run(request, context=context)
    except OrchestrationError as e:
        print(f"[error] {e.user_message}")
        return

    async for record in run.sse():
        print(record, end="", flush=True)


async def async_main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(
        level=getattr(logging, settings.observability.log_level.upper(), logging.INFO),
        log_dir=settings.observability.log_dir,
        log_to_file=settings.observability.log_to_file,
    )

    workflow = load_workflow(args.workflow)
    options = ModelOptions(provider=args.provider, model=args.model, temperature=args.temperature)
    orchestrator = Orchestrator(settings=settings)
    context = InMemoryConversationContext(args.thread or "cli")

    if args.message:
        await run_once(orchestrator, context, args.message, workflow, options)
        return

    print("Type a message, /exit to quit.")
    while True:
        try:
            user_input = input("You> ").strip()
        except (KeyboardInterrupt, EOFError):
            print()
            break
        if not user_input:
            continue
        if user_input in {"/exit", "/quit"}:
            break
        await run_once(orchestrator, context, user_input, workflow, options)


def main(argv: Optional[List[str]] = None) -> None:
    try:
        asyncio.run(async_main(argv))
    except KeyboardInterrupt:
        LOGGER.info("Interrupted")


if __name__ == "__main__":
    main()
