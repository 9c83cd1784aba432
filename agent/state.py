"""Agent state definition.

The state is the shared data structure that flows through every node in the graph.
It uses LangGraph's `add_messages` annotation to automatically accumulate messages.
"""

from typing import Annotated, Optional, TypedDict

from langgraph.graph.message import add_messages


class AgentState(TypedDict):
    """Shared state for the scheme assistant graph.

    Attributes:
        messages: Conversation history. Uses `add_messages` reducer so that
                  each node can append messages without overwriting the list.
        iteration_count: Number of agent→tool loop iterations completed.
        user_id: Citizen the conversation belongs to; selects which profile
                 memory is recalled into the system prompt.
    """

    messages: Annotated[list, add_messages]
    iteration_count: int
    user_id: Optional[str]
