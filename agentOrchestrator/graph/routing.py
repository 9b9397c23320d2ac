"""Transition helpers shared by the workflow and supervisor graphs."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Set, Union

from langgraph.types import Command

from agentOrchestrator.utils.error_handler import GraphError
from agentOrchestrator.utils.logging_utils import log_routing_decision

from .model import WorkflowEdge

LOGGER = logging.getLogger("agentOrchestrator.routing")


def select_condition_target(edges: Sequence[WorkflowEdge], latest_content: str) -> Optional[str]:
    """Pick the branch taken by a condition node.

    Order of preference:
    1. First edge whose keyword appears (case-insensitive) in the latest message
    2. First edge without a keyword
    3. First edge
    4. None (the run terminates)
    """
    if not edges:
        return None

    haystack = (latest_content or "").lower()
    for edge in edges:
        if edge.condition and edge.condition.lower() in haystack:
            return edge.target

    for edge in edges:
        if not edge.condition:
            return edge.target

    return edges[0].target


class Transitions:
    """Resolves a node's successor against the compiled node set.

    ``end`` node ids and None both mean the run terminates.
    """

    def __init__(self, edges: Sequence[WorkflowEdge], node_ids: Set[str], end_ids: Set[str]):
        self._edges = list(edges)
        self._node_ids = node_ids
        self._end_ids = end_ids

    def outgoing(self, node_id: str) -> List[WorkflowEdge]:
        return [edge for edge in self._edges if edge.source == node_id]

    def resolve(self, target: Optional[str]) -> Optional[str]:
        """Map an edge target onto a graph node id, None for termination."""
        if target is None or target in self._end_ids:
            return None
        if target not in self._node_ids:
            raise GraphError(f"Edge points at unknown node '{target}'")
        return target

    def single_successor(self, node_id: str) -> Optional[str]:
        """Successor of a non-branching node.

        Zero outgoing edges terminates; more than one is a malformed graph
        detected at runtime.
        """
        edges = self.outgoing(node_id)
        if not edges:
            return None
        if len(edges) > 1:
            targets = ", ".join(edge.target for edge in edges)
            raise GraphError(
                f"Node '{node_id}' has {len(edges)} outgoing edges ({targets}); "
                "only condition nodes may branch"
            )
        return self.resolve(edges[0].target)

    def condition_successor(self, node_id: str, latest_content: str) -> Optional[str]:
        target = select_condition_target(self.outgoing(node_id), latest_content)
        decision = self.resolve(target)
        log_routing_decision(LOGGER, node_id, decision or "TERMINATED")
        return decision


def goto(target: Optional[str], update: Dict[str, Any]) -> Union[Command, Dict[str, Any]]:
    """Node return value moving to ``target``; a plain update ends the run."""
    if target is None:
        return update
    return Command(goto=target, update=update)


__all__ = ["Transitions", "goto", "select_condition_target"]
