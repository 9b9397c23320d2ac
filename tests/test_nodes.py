"""Tests for individual graph nodes run outside a compiled graph."""

import pytest
from conftest import drain, text_turn, tool_turn
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage, ToolMessage
from langgraph.types import Command

from agentOrchestrator.graph.message_utils import ROUTING_TAG, TOOL_OUTPUT_TAG, message_tag
from agentOrchestrator.graph.nodes import (
    build_agent_node,
    build_responder_node,
    build_router_node,
    build_tool_node,
    render_tool_input,
)
from agentOrchestrator.graph.signals import (
    NodeEntered,
    NodeExited,
    NodeFailed,
    RoutingDecided,
    TokenDelta,
    ToolCallFragment,
    ToolResultSignal,
    TurnCompleted,
)
from agentOrchestrator.graph.supervisor import AgentDefinition
from agentOrchestrator.utils.error_handler import ERROR_TAG, GraphError, RoutingError


def state(*messages):
    return {"messages": list(messages)}


class TestAgentNode:
    @pytest.mark.asyncio
    async def test_react_loop_calls_tool_then_answers(self, exec_context, model, search_tool, search_calls):
        model.turns = [
            tool_turn("call_1", "web_search", {"query": "Paris weather"}),
            text_turn("Sunny", " in Paris."),
        ]
        node = build_agent_node(
            exec_context, node_id="r", step_name="r", prompt=None, tools=[search_tool],
            successor=lambda s: "next",
        )

        result = await node(state(HumanMessage(content="today's weather in Paris")))

        assert isinstance(result, Command)
        assert result.goto == "next"
        produced = result.update["messages"]
        assert isinstance(produced[0], AIMessage) and produced[0].tool_calls[0]["id"] == "call_1"
        assert isinstance(produced[1], ToolMessage) and produced[1].tool_call_id == "call_1"
        assert produced[2].content == "Sunny in Paris."
        assert search_calls == ["Paris weather"]

        # default prompt and bound tools
        first_call = model.calls[0]
        assert isinstance(first_call[0], SystemMessage)
        assert first_call[0].content == "You are r."
        assert model.bound_tools[0] == ["web_search"]

    @pytest.mark.asyncio
    async def test_signals_use_inner_paths(self, exec_context, model, search_tool):
        model.turns = [tool_turn("call_1", "web_search", {"query": "x"}), text_turn("done")]
        node = build_agent_node(
            exec_context, node_id="r", step_name="r", prompt="p", tools=[search_tool],
            successor=lambda s: None,
        )
        await node(state(HumanMessage(content="q")))
        signals = drain(exec_context.signals)

        assert isinstance(signals[0], NodeEntered) and signals[0].path.depth == 0
        assert isinstance(signals[-1], NodeExited) and signals[-1].path.depth == 0
        fragments = [s for s in signals if isinstance(s, ToolCallFragment)]
        assert fragments and all(s.path.depth == 1 and s.path.seq == 1 for s in fragments)
        assert all(s.tool_call_id == "call_1" for s in fragments)
        deltas = [s for s in signals if isinstance(s, TokenDelta)]
        assert deltas[0].path.seq == 2
        turns = [s for s in signals if isinstance(s, TurnCompleted)]
        assert [len(t.tool_calls) for t in turns] == [1, 0]
        assert turns[0].tool_calls[0].name == "web_search"

    @pytest.mark.asyncio
    async def test_no_successor_returns_plain_update(self, exec_context, model):
        model.turns = [text_turn("hello")]
        node = build_agent_node(
            exec_context, node_id="r", step_name="r", prompt="p", tools=[], successor=lambda s: None,
        )
        result = await node(state(HumanMessage(content="hi")))

        assert isinstance(result, dict)
        assert result["messages"][0].content == "hello"
        assert model.bound_tools == []

    @pytest.mark.asyncio
    async def test_tool_error_becomes_error_tool_message(self, exec_context, model, failing_tool):
        model.turns = [tool_turn("c1", "flaky", {"query": "x"}), text_turn("recovered")]
        node = build_agent_node(
            exec_context, node_id="r", step_name="r", prompt="p", tools=[failing_tool], successor=lambda s: None,
        )
        result = await node(state(HumanMessage(content="hi")))

        tool_message = result["messages"][1]
        assert tool_message.status == "error"
        assert "backend unavailable" in tool_message.content
        results = [s for s in drain(exec_context.signals) if isinstance(s, ToolResultSignal)]
        assert results[0].is_error

    @pytest.mark.asyncio
    async def test_unknown_tool_requested_by_model(self, exec_context, model, search_tool):
        model.turns = [tool_turn("c1", "teleport", {}), text_turn("ok")]
        node = build_agent_node(
            exec_context, node_id="r", step_name="r", prompt="p", tools=[search_tool], successor=lambda s: None,
        )
        result = await node(state(HumanMessage(content="hi")))

        assert result["messages"][1].status == "error"
        assert result["messages"][-1].content == "ok"

    @pytest.mark.asyncio
    async def test_iteration_cap(self, exec_context, model, search_tool):
        exec_context.governance = exec_context.governance.model_copy(update={"agent_max_iterations": 2})
        model.turns = [tool_turn(f"c{i}", "web_search", {"query": "x"}) for i in range(5)]
        node = build_agent_node(
            exec_context, node_id="r", step_name="r", prompt="p", tools=[search_tool], successor=lambda s: None,
        )
        await node(state(HumanMessage(content="hi")))

        assert len(model.calls) == 2

    @pytest.mark.asyncio
    async def test_model_failure_recovers_with_error_message(self, exec_context, model):
        model.turns = [RuntimeError("model exploded")]
        node = build_agent_node(
            exec_context, node_id="r", step_name="r", prompt="p", tools=[], successor=lambda s: "next",
        )
        result = await node(state(HumanMessage(content="hi")))

        assert result.goto == "next"
        error = result.update["messages"][0]
        assert isinstance(error, HumanMessage)
        assert message_tag(error) == ERROR_TAG
        assert error.content.startswith("[Error in r]:")
        signals = drain(exec_context.signals)
        failed = [s for s in signals if isinstance(s, NodeFailed)]
        assert failed and "model exploded" in failed[0].message
        assert isinstance(signals[-1], NodeExited)

    @pytest.mark.asyncio
    async def test_graph_error_from_successor_propagates(self, exec_context, model):
        model.turns = [text_turn("hi")]

        def successor(s):
            raise GraphError("two edges")

        node = build_agent_node(
            exec_context, node_id="r", step_name="r", prompt="p", tools=[], successor=successor,
        )
        with pytest.raises(GraphError):
            await node(state(HumanMessage(content="hi")))


class TestToolNode:
    def test_render_tool_input(self):
        messages = [HumanMessage(content="first question"), AIMessage(content="latest answer")]
        rendered = render_tool_input(
            {"query": "{{input}} / {{last_message}}", "limit": 3},
            messages,
        )
        assert rendered == {"query": "first question / latest answer", "limit": 3}

    @pytest.mark.asyncio
    async def test_invokes_tool_and_appends_output(self, exec_context, search_tool, search_calls):
        node = build_tool_node(
            exec_context, node_id="t", step_name="Search", tool_name="web_search",
            tool_input={"query": "{{last_message}}"}, tool=search_tool, successor=lambda s: None,
        )
        result = await node(state(HumanMessage(content="weather Paris")))

        assert search_calls == ["weather Paris"]
        output = result["messages"][0]
        assert isinstance(output, HumanMessage)
        assert output.content.startswith("[Tool web_search]: ")
        assert message_tag(output) == TOOL_OUTPUT_TAG

        signals = drain(exec_context.signals)
        turn = next(s for s in signals if isinstance(s, TurnCompleted))
        res = next(s for s in signals if isinstance(s, ToolResultSignal))
        assert turn.tool_calls[0].id == res.tool_call_id
        assert '"weather Paris"' in turn.tool_calls[0].args_json

    @pytest.mark.asyncio
    async def test_missing_tool_passes_through(self, exec_context):
        node = build_tool_node(
            exec_context, node_id="t", step_name="t", tool_name="teleport",
            tool_input={}, tool=None, successor=lambda s: "after",
        )
        result = await node(state(HumanMessage(content="hi")))

        assert result.goto == "after"
        assert result.update == {"messages": []}

    @pytest.mark.asyncio
    async def test_tool_failure_recovers(self, exec_context, failing_tool):
        node = build_tool_node(
            exec_context, node_id="t", step_name="t", tool_name="flaky",
            tool_input={"query": "x"}, tool=failing_tool, successor=lambda s: None,
        )
        result = await node(state(HumanMessage(content="hi")))

        assert message_tag(result["messages"][0]) == ERROR_TAG
        signals = drain(exec_context.signals)
        assert any(isinstance(s, ToolResultSignal) and s.is_error for s in signals)
        assert any(isinstance(s, NodeFailed) for s in signals)


class TestRouterNode:
    @pytest.fixture
    def agents(self, search_tool):
        return [AgentDefinition(name="researcher", prompt="Finds facts", tools=[search_tool])]

    @pytest.mark.asyncio
    async def test_routes_to_agent(self, exec_context, model, agents):
        model.routes = [{"next": "researcher", "reason": "needs facts"}]
        node = build_router_node(exec_context, agents)

        result = await node(state(HumanMessage(content="weather?")))

        assert result.goto == "researcher"
        routing = result.update["messages"][0]
        assert routing.name == "supervisor"
        assert message_tag(routing) == ROUTING_TAG
        assert routing.content == "[Supervisor] Routing to researcher: needs facts"
        decided = next(s for s in drain(exec_context.signals) if isinstance(s, RoutingDecided))
        assert decided.target_step == "researcher"

    @pytest.mark.asyncio
    async def test_respond_goes_to_responder_without_step(self, exec_context, model, agents):
        model.routes = [{"next": "RESPOND", "reason": "small talk"}]
        result = await build_router_node(exec_context, agents)(state(HumanMessage(content="hi")))

        assert result.goto == "responder"
        decided = next(s for s in drain(exec_context.signals) if isinstance(s, RoutingDecided))
        assert decided.target_step is None

    @pytest.mark.asyncio
    async def test_terminate_ends_run(self, exec_context, model, agents):
        model.routes = [{"next": "TERMINATE", "reason": "done"}]
        result = await build_router_node(exec_context, agents)(state(HumanMessage(content="bye")))
        assert isinstance(result, dict)

    @pytest.mark.asyncio
    async def test_model_failure_is_routing_error(self, exec_context, model, agents):
        model.routes = [RuntimeError("503")]
        with pytest.raises(RoutingError):
            await build_router_node(exec_context, agents)(state(HumanMessage(content="hi")))

    @pytest.mark.asyncio
    async def test_invalid_destination_is_routing_error(self, exec_context, model, agents):
        model.routes = [{"next": "nobody", "reason": ""}]
        with pytest.raises(RoutingError):
            await build_router_node(exec_context, agents)(state(HumanMessage(content="hi")))


class TestResponderNode:
    @pytest.mark.asyncio
    async def test_routing_messages_are_filtered(self, exec_context, model):
        model.turns = [text_turn("Hello", "!")]
        routing = AIMessage(content="[Supervisor] Routing to RESPOND: hi", name="supervisor",
                            response_metadata={"tag": ROUTING_TAG})

        result = await build_responder_node(exec_context)(state(HumanMessage(content="hi"), routing))

        assert result["messages"][0].content == "Hello!"
        sent = model.calls[0]
        assert isinstance(sent[0], SystemMessage)
        assert all(m.name != "supervisor" for m in sent)
        assert model.bound_tools == []

    @pytest.mark.asyncio
    async def test_streams_at_outer_path(self, exec_context, model):
        model.turns = [text_turn("Hi")]
        await build_responder_node(exec_context)(state(HumanMessage(content="hi")))

        deltas = [s for s in drain(exec_context.signals) if isinstance(s, TokenDelta)]
        assert deltas[0].path.depth == 0
        assert deltas[0].path.node == "responder"
