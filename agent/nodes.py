"""Graph node functions.

Each function takes the current AgentState and returns a partial state update.
LangGraph merges the returned dict into the shared state automatically.
"""

import logging
from typing import Optional

from langchain_core.messages import AIMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI
from langgraph.prebuilt import ToolNode

from agent import config
from agent.guardrails import audit_logger
from memory.context import memory_identity
from memory.store import MemoryServiceError, get_memory_service
from tools import get_all_tools

logger = logging.getLogger(__name__)


def _build_base_model():
    """Build the bare Gemini LLM *without* tools bound."""
    return ChatGoogleGenerativeAI(
        model=config.MODEL_NAME,
        temperature=config.TEMPERATURE,
        google_api_key=config.GOOGLE_API_KEY or None,
    )


# Lazily initialised so the module can be imported without side-effects.
_bound_model = None


def _get_bound_model():
    global _bound_model
    if _bound_model is None:
        tools = get_all_tools()
        base_model = _build_base_model()
        _bound_model = base_model.bind_tools(tools) if tools else base_model
    return _bound_model


def _recall_profile(user_id: Optional[str]) -> Optional[str]:
    """Return the stored profile memory text for *user_id*, if any."""
    if not user_id:
        return None
    wanted = ("profile", str(user_id))
    for record in get_memory_service().list_memories():
        if memory_identity(record) == wanted:
            return record["memory"]
    return None


def build_system_prompt(user_id: Optional[str]) -> str:
    """Combine the base system prompt with the citizen's recalled profile."""
    try:
        profile_memory = _recall_profile(user_id)
    except MemoryServiceError as e:
        logger.warning("Profile recall failed for %s: %s", user_id, e)
        profile_memory = None

    if profile_memory:
        # Drop the marker header; the model only needs the facts.
        facts = profile_memory.split("\n", 2)[-1]
        return config.SYSTEM_PROMPT + "\n\nWhat you know about this citizen:\n" + facts
    return config.SYSTEM_PROMPT


def call_model(state: dict) -> dict:
    """Invoke the Gemini model with the current conversation history.

    Prepends the system prompt (enriched with the citizen's profile memory)
    as the first message, refreshing it if it is already there.
    Increments the iteration counter on every call.
    """
    messages = list(state["messages"])

    system_prompt = build_system_prompt(state.get("user_id"))
    if not messages or not isinstance(messages[0], SystemMessage):
        messages.insert(0, SystemMessage(content=system_prompt))
    else:
        messages[0] = SystemMessage(content=system_prompt)

    response = _get_bound_model().invoke(messages)

    return {
        "messages": [response],
        "iteration_count": state.get("iteration_count", 0) + 1,
    }


# ── Tool execution ───────────────────────────────────────────────────────────

_tool_node: ToolNode | None = None


def _get_tool_node() -> ToolNode:
    global _tool_node
    if _tool_node is None:
        _tool_node = ToolNode(get_all_tools())
    return _tool_node


def guarded_tool_node(state: dict) -> dict:
    """Execute tool calls and record each one in the audit log."""
    last_message = state["messages"][-1]
    tool_calls = getattr(last_message, "tool_calls", [])

    result = _get_tool_node().invoke(state)

    result_messages = result.get("messages", []) if isinstance(result, dict) else []
    for tc, msg in zip(tool_calls, result_messages):
        audit_logger.log(
            "tool_call",
            user_id=state.get("user_id"),
            tool=tc.get("name", "unknown"),
            args=tc.get("args", {}),
            result=str(getattr(msg, "content", "")),
        )

    return result


# ── Sentinel nodes ────────────────────────────────────────────────────────────


def limit_reached_node(state: dict) -> dict:
    """Emit a message when the iteration limit is hit."""
    return {
        "messages": [
            AIMessage(
                content=(
                    "I could not finish looking that up. "
                    "Please rephrase your question or ask about one scheme at a time."
                )
            )
        ]
    }
