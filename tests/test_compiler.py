"""Tests for workflow and supervisor graph compilation."""

import pytest

from agentOrchestrator.graph import (
    AgentDefinition,
    Workflow,
    build_supervisor_graph,
    compile_workflow,
)
from agentOrchestrator.utils.error_handler import GraphError


def workflow(nodes, edges):
    return Workflow.model_validate({"nodes": nodes, "edges": edges})


START = {"id": "start", "type": "start"}
END = {"id": "end", "type": "end"}


class TestCompileWorkflow:
    def test_missing_start_node(self, exec_context):
        with pytest.raises(GraphError, match="no start node"):
            compile_workflow(workflow([END], []), exec_context)

    def test_two_start_nodes(self, exec_context):
        nodes = [START, {"id": "start2", "type": "start"}, END]
        with pytest.raises(GraphError):
            compile_workflow(workflow(nodes, [{"source": "start", "target": "end"}]), exec_context)

    def test_missing_start_edge(self, exec_context):
        with pytest.raises(GraphError, match="no outgoing edge"):
            compile_workflow(workflow([START, END], []), exec_context)

    def test_start_edge_to_unknown_node(self, exec_context):
        with pytest.raises(GraphError, match="unknown node"):
            compile_workflow(workflow([START, END], [{"source": "start", "target": "nowhere"}]), exec_context)

    def test_agent_with_unknown_tool(self, exec_context):
        agent = {"id": "r", "type": "agent", "config": {"tools": ["web_search", "teleport"]}}
        with pytest.raises(GraphError, match="teleport"):
            compile_workflow(
                workflow([START, agent, END], [{"source": "start", "target": "r"}, {"source": "r", "target": "end"}]),
                exec_context,
            )

    def test_duplicate_node_id(self, exec_context):
        agent = {"id": "r", "type": "agent"}
        with pytest.raises(GraphError):
            compile_workflow(workflow([START, agent, dict(agent), END], [{"source": "start", "target": "r"}]), exec_context)

    def test_valid_workflow(self, exec_context, settings):
        nodes = [
            START,
            {"id": "r", "type": "agent", "name": "Researcher", "config": {"tools": ["web_search"]}},
            {"id": "c", "type": "condition"},
            {"id": "t", "type": "tool", "config": {"toolName": "web_search", "input": {"query": "{{input}}"}}},
            END,
        ]
        edges = [
            {"source": "start", "target": "r"},
            {"source": "r", "target": "c"},
            {"source": "c", "target": "t", "condition": "search"},
            {"source": "c", "target": "end"},
            {"source": "t", "target": "end"},
        ]
        executable = compile_workflow(workflow(nodes, edges), exec_context)

        assert executable.mode == "dag"
        assert executable.entry == "r"
        assert executable.recursion_limit == settings.governance.dag_recursion_limit

    def test_cycles_are_not_rejected(self, exec_context):
        nodes = [START, {"id": "a", "type": "agent"}, {"id": "b", "type": "agent"}, END]
        edges = [
            {"source": "start", "target": "a"},
            {"source": "a", "target": "b"},
            {"source": "b", "target": "a"},
        ]
        assert compile_workflow(workflow(nodes, edges), exec_context).entry == "a"

    def test_missing_tool_in_tool_node_compiles(self, exec_context):
        nodes = [START, {"id": "t", "type": "tool", "config": {"toolName": "teleport"}}, END]
        edges = [{"source": "start", "target": "t"}, {"source": "t", "target": "end"}]
        assert compile_workflow(workflow(nodes, edges), exec_context).entry == "t"


class TestBuildSupervisorGraph:
    def test_builds_star_graph(self, exec_context, search_tool, settings):
        agents = [AgentDefinition(name="researcher", tools=[search_tool]), AgentDefinition(name="writer")]
        executable = build_supervisor_graph(agents, exec_context)

        assert executable.mode == "supervisor"
        assert executable.entry == "supervisor"
        assert executable.recursion_limit == settings.governance.supervisor_recursion_limit

    @pytest.mark.parametrize("name", ["supervisor", "responder", "RESPOND", "TERMINATE"])
    def test_reserved_names(self, exec_context, name):
        with pytest.raises(GraphError, match="reserved"):
            build_supervisor_graph([AgentDefinition(name=name)], exec_context)

    def test_duplicate_agent_names(self, exec_context):
        with pytest.raises(GraphError, match="Duplicate"):
            build_supervisor_graph([AgentDefinition(name="a"), AgentDefinition(name="a")], exec_context)

    def test_no_agents_still_builds(self, exec_context):
        assert build_supervisor_graph([], exec_context).entry == "supervisor"
