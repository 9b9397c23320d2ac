from .agent import build_agent_node, default_agent_prompt, run_agent_loop, stream_turn
from .condition import build_condition_node
from .supervisor import (
    RESPOND,
    RESPONDER_NAME,
    TERMINATE,
    build_responder_node,
    build_route_decision_model,
    build_router_node,
)
from .tool import build_tool_node, render_tool_input

__all__ = [
    "RESPOND",
    "RESPONDER_NAME",
    "TERMINATE",
    "build_agent_node",
    "build_condition_node",
    "build_responder_node",
    "build_route_decision_model",
    "build_router_node",
    "build_tool_node",
    "default_agent_prompt",
    "render_tool_input",
    "run_agent_loop",
    "stream_turn",
]
