"""LangGraph graph construction.

Builds a ReAct-style scheme assistant:

    ┌────────────┐      tool calls?      ┌───────────┐
    │   agent    │ ─────────────────────▶│   tools   │
    │(call_model)│                       │ (audited) │
    └────────────┘◀──────────────────────└───────────┘
         │
         ├─ iteration limit ──▶ [limit_reached] ──▶ END
         │
         └─ no tool calls ──▶ END

Conversations are checkpointed per assistant thread id.
"""

from langgraph.checkpoint.memory import MemorySaver
from langgraph.graph import END, StateGraph

from agent import config
from agent.nodes import call_model, guarded_tool_node, limit_reached_node
from agent.state import AgentState


def _should_continue(state: dict) -> str:
    """Route based on tool calls and the iteration limit."""
    last_message = state["messages"][-1]

    if not (hasattr(last_message, "tool_calls") and last_message.tool_calls):
        return END

    if state.get("iteration_count", 0) >= config.MAX_ITERATIONS:
        return "limit_reached"

    return "tools"


def build_graph():
    """Construct and compile the scheme assistant graph."""
    workflow = StateGraph(AgentState)

    # ── Nodes ──────────────────────────────────────────────────────────────
    workflow.add_node("agent", call_model)
    workflow.add_node("tools", guarded_tool_node)
    workflow.add_node("limit_reached", limit_reached_node)

    # ── Edges ──────────────────────────────────────────────────────────────
    workflow.set_entry_point("agent")
    workflow.add_conditional_edges(
        "agent",
        _should_continue,
        {
            "tools": "tools",
            "limit_reached": "limit_reached",
            END: END,
        },
    )
    workflow.add_edge("tools", "agent")
    workflow.add_edge("limit_reached", END)

    # ── Compile with checkpointing ─────────────────────────────────────────
    return workflow.compile(checkpointer=MemorySaver())


# Pre-built graph instance ready to use
graph = build_graph()
