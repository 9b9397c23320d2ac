"""Tests for condition branching and node transitions."""

import pytest
from langgraph.types import Command

from agentOrchestrator.graph.model import WorkflowEdge
from agentOrchestrator.graph.routing import Transitions, goto, select_condition_target
from agentOrchestrator.utils.error_handler import GraphError


def edges(*specs):
    return [WorkflowEdge(source=s, target=t, condition=c) for s, t, c in specs]


class TestSelectConditionTarget:
    def test_keyword_match_is_case_insensitive(self):
        branches = edges(("c", "rainy", "rain"), ("c", "sunny", "SUN"))
        assert select_condition_target(branches, "It will be Sunny today") == "sunny"

    def test_first_matching_keyword_wins(self):
        branches = edges(("c", "a", "paris"), ("c", "b", "weather"))
        assert select_condition_target(branches, "weather in paris") == "a"

    def test_falls_back_to_edge_without_keyword(self):
        branches = edges(("c", "a", "snow"), ("c", "default", None), ("c", "b", "hail"))
        assert select_condition_target(branches, "clear skies") == "default"

    def test_falls_back_to_first_edge(self):
        branches = edges(("c", "a", "snow"), ("c", "b", "hail"))
        assert select_condition_target(branches, "clear skies") == "a"

    def test_no_edges_terminates(self):
        assert select_condition_target([], "anything") is None

    def test_empty_content(self):
        branches = edges(("c", "a", "x"), ("c", "b", ""))
        assert select_condition_target(branches, "") == "b"


class TestTransitions:
    @pytest.fixture
    def transitions(self):
        return Transitions(
            edges(("a", "b", None), ("b", "end", None), ("fork", "a", None), ("fork", "b", None), ("x", "ghost", None)),
            node_ids={"a", "b", "fork", "x"},
            end_ids={"end"},
        )

    def test_single_successor(self, transitions):
        assert transitions.single_successor("a") == "b"

    def test_edge_to_end_node_terminates(self, transitions):
        assert transitions.single_successor("b") is None

    def test_no_outgoing_edge_terminates(self, transitions):
        assert transitions.single_successor("lonely") is None

    def test_multiple_edges_from_non_condition_node(self, transitions):
        with pytest.raises(GraphError):
            transitions.single_successor("fork")

    def test_unknown_target(self, transitions):
        with pytest.raises(GraphError):
            transitions.single_successor("x")


class TestGoto:
    def test_goto_target_returns_command(self):
        result = goto("b", {"messages": []})
        assert isinstance(result, Command)
        assert result.goto == "b"

    def test_goto_none_returns_plain_update(self):
        assert goto(None, {"messages": []}) == {"messages": []}
