"""Scheme lookup tools backed by the scheme memories."""

import re

from langchain_core.tools import tool

from agent import config
from memory.context import memory_identity, parse_scheme_fields
from memory.store import MemoryServiceError, get_memory_service

_WORD = re.compile(r"[a-z0-9]+")
_STOPWORDS = {"a", "an", "and", "for", "i", "in", "is", "me", "my", "of", "or", "the", "to", "what", "which"}


def _scheme_memories() -> list[dict]:
    return [
        m for m in get_memory_service().list_memories()
        if (memory_identity(m) or ("",))[0] == "scheme"
    ]


def _keyword_rank(memories: list[dict], query: str, top_k: int) -> list[dict]:
    """Rank memories by how many distinct query words they contain."""
    words = {w for w in _WORD.findall(query.lower()) if w not in _STOPWORDS}
    scored = []
    for position, memory in enumerate(memories):
        body = set(_WORD.findall(memory["memory"].lower()))
        score = len(words & body)
        if score or not words:
            scored.append((-score, position, memory))
    scored.sort(key=lambda item: item[:2])
    return [memory for _, _, memory in scored[:top_k]]


def _summarize(fields: dict[str, str]) -> str:
    line = f"- [{fields.get('scheme_id', '?')}] {fields.get('scheme_name') or 'Unnamed scheme'}"
    extras = [fields.get("category"), fields.get("state")]
    extras = [e for e in extras if e]
    if extras:
        line += f" ({', '.join(extras)})"
    if fields.get("benefits"):
        line += f"\n  Benefits: {fields['benefits']}"
    return line


@tool
def search_schemes(query: str, state: str = "") -> str:
    """Search the welfare scheme catalog.

    Use this whenever the citizen asks which schemes exist, which ones they
    might be eligible for, or what help is available for a situation.

    Args:
        query: What the citizen is looking for, e.g. 'scholarship for girls'.
        state: Optional Indian state to restrict to; national schemes are
               always included.
    """
    try:
        memories = _scheme_memories()
    except MemoryServiceError as e:
        return f"Error: could not read the scheme catalog: {e}"

    if state:
        wanted = state.strip().lower()
        memories = [
            m for m in memories
            if parse_scheme_fields(m["memory"]).get("state", "").strip().lower()
            in (wanted, "national")
        ]
    if not memories:
        return "No matching schemes found."

    top_k = config.SCHEME_RETRIEVAL_TOP_K
    if config.SCHEME_RETRIEVAL_ENABLED:
        from memory.retriever import get_retriever
        hits = get_retriever().search(memories, query, top_k=top_k)
    else:
        hits = _keyword_rank(memories, query, top_k)

    if not hits:
        return "No matching schemes found."
    return "\n".join(_summarize(parse_scheme_fields(m["memory"])) for m in hits)


@tool
def get_scheme_details(scheme_id: str) -> str:
    """Return every stored detail of one scheme.

    Use this after search_schemes when the citizen wants the description,
    benefits, application process or official website of a specific scheme.

    Args:
        scheme_id: The id shown in brackets by search_schemes.
    """
    try:
        memories = _scheme_memories()
    except MemoryServiceError as e:
        return f"Error: could not read the scheme catalog: {e}"

    wanted = ("scheme", str(scheme_id).strip())
    for memory in memories:
        if memory_identity(memory) == wanted:
            fields = parse_scheme_fields(memory["memory"])
            return "\n".join(f"{key}: {value}" for key, value in fields.items())
    return f"Error: no scheme with id {scheme_id}."
