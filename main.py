"""CLI entry point for agentOrchestrator."""

from agentOrchestrator.cli import main


if __name__ == "__main__":
    main()
