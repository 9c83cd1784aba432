"""Smoke tests for the assistant graph and its nodes.

These tests verify the graph compiles correctly and has the expected structure.
They do NOT require API keys; no LLM calls are made.
"""

from unittest.mock import MagicMock


def test_tools_are_discovered():
    """Tool auto-discovery finds the scheme tools."""
    from tools import get_all_tools

    tool_names = [t.name for t in get_all_tools()]
    assert "search_schemes" in tool_names
    assert "get_scheme_details" in tool_names


def test_agent_state_keys():
    """AgentState schema carries messages, the loop counter and the user."""
    from agent.state import AgentState

    for key in ("messages", "iteration_count", "user_id"):
        assert key in AgentState.__annotations__


def test_graph_has_expected_nodes():
    """The compiled graph has the agent, tools and sentinel nodes."""
    from agent.graph import graph

    node_names = set(graph.get_graph().nodes.keys())
    for expected in ("agent", "tools", "limit_reached"):
        assert expected in node_names, f"'{expected}' node missing. Found: {node_names}"


def test_iteration_limit_routing():
    from agent import config
    from agent.graph import _should_continue

    mock_msg = MagicMock()
    mock_msg.tool_calls = [{"name": "search_schemes", "args": {}, "id": "1"}]

    state = {"messages": [mock_msg], "iteration_count": config.MAX_ITERATIONS}
    assert _should_continue(state) == "limit_reached"


def test_tool_call_routes_to_tools():
    from agent.graph import _should_continue

    mock_msg = MagicMock()
    mock_msg.tool_calls = [{"name": "search_schemes", "args": {"query": "pension"}, "id": "1"}]

    assert _should_continue({"messages": [mock_msg], "iteration_count": 0}) == "tools"


def test_plain_reply_ends():
    from langgraph.graph import END

    from agent.graph import _should_continue

    mock_msg = MagicMock()
    mock_msg.tool_calls = []

    assert _should_continue({"messages": [mock_msg], "iteration_count": 0}) == END


def test_system_prompt_includes_profile_memory(monkeypatch, memory_store):
    from agent import config, nodes

    memory_store.add_memory(
        "[type:profile]\nuser_id:user-1\nName: Asha Devi; State: Bihar",
        {"type": "profile", "user_id": "user-1"},
    )
    monkeypatch.setattr(nodes, "get_memory_service", lambda: memory_store)

    prompt = nodes.build_system_prompt("user-1")
    assert prompt.startswith(config.SYSTEM_PROMPT)
    assert prompt.endswith("Name: Asha Devi; State: Bihar")
    assert "[type:profile]" not in prompt

    assert nodes.build_system_prompt("user-2") == config.SYSTEM_PROMPT


def test_system_prompt_survives_recall_failure(monkeypatch):
    from agent import config, nodes
    from memory.store import MemoryServiceError

    broken = MagicMock()
    broken.list_memories.side_effect = MemoryServiceError("down")
    monkeypatch.setattr(nodes, "get_memory_service", lambda: broken)

    assert nodes.build_system_prompt("user-1") == config.SYSTEM_PROMPT


def test_call_model_refreshes_system_prompt(monkeypatch):
    from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

    from agent import nodes

    model = MagicMock()
    model.invoke.return_value = AIMessage(content="hi")
    monkeypatch.setattr(nodes, "_get_bound_model", lambda: model)
    monkeypatch.setattr(nodes, "build_system_prompt", lambda user_id: f"prompt for {user_id}")

    state = {
        "messages": [SystemMessage(content="stale"), HumanMessage(content="hello")],
        "iteration_count": 2,
        "user_id": "user-1",
    }
    result = nodes.call_model(state)

    sent = model.invoke.call_args.args[0]
    assert sent[0].content == "prompt for user-1"
    assert result["iteration_count"] == 3
    assert result["messages"][0].content == "hi"


def test_limit_reached_node_replies():
    from agent.nodes import limit_reached_node

    result = limit_reached_node({"messages": []})
    assert result["messages"][0].content


# ── Guardrail tests ──────────────────────────────────────────────────────────


def test_rate_limiter_is_per_user():
    import pytest

    from agent.guardrails import RateLimitExceeded, RateLimiter

    limiter = RateLimiter(max_calls=2, window_seconds=60)
    limiter.check("u1")
    limiter.check("u1")
    limiter.check("u2")

    with pytest.raises(RateLimitExceeded):
        limiter.check("u1")


def test_audit_logger_writes(tmp_path):
    """AuditLogger creates a JSONL file with the expected entry."""
    import json

    from agent.guardrails import AuditLogger

    logger = AuditLogger(log_dir=str(tmp_path))
    logger.log("memory_inserted", type="scheme", id="4", note="x" * 600)

    entry = json.loads((tmp_path / "audit.jsonl").read_text().strip())
    assert entry["event"] == "memory_inserted"
    assert entry["type"] == "scheme"
    assert entry["id"] == "4"
    assert len(entry["note"]) == 500
