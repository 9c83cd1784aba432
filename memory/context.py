"""Builders for the text the assistant recalls.

``build_profile_context`` flattens a citizen profile into a single
``Label: value; ...`` line.  The ``*_memory_body`` helpers lay out memory
text in the fixed header-first format that the synchronizer, the scheme
tools and any downstream consumer read back, so field order and marker
tokens must not change.
"""

from typing import Any, Mapping, Optional

from memory.schema import (
    IDENTITY_KEYS,
    PROFILE_MARKER,
    SCHEME_BODY_KEYS,
    SCHEME_MARKER,
    TYPE_MARKERS,
    UserProfile,
)

# Keywords that make a question worth answering with the profile attached.
_CONTEXT_KEYWORDS = ("scheme", "eligible", "benefit", "recommend", "apply")


def _format_income(value: Any) -> str:
    """Render a number with en-US digit grouping (at most 3 decimals).

    Anything that is not a real number, including numeric strings, is
    rendered unchanged.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return str(value)
    number = float(value)
    if number.is_integer():
        return f"{int(number):,}"
    return f"{number:,.3f}".rstrip("0").rstrip(".")


def build_profile_context(profile: UserProfile) -> str:
    """Flatten *profile* into ``"Label: value"`` fragments joined by ``"; "``.

    Empty fields are skipped.  ``annual_income`` is only skipped when it is
    missing, so a reported income of ``0`` still appears.
    """
    parts: list[str] = []

    if profile.get("full_name"):
        parts.append(f"Name: {profile['full_name']}")
    if profile.get("gender"):
        parts.append(f"Gender: {profile['gender']}")
    if profile.get("date_of_birth"):
        parts.append(f"DOB: {profile['date_of_birth']}")
    if profile.get("state"):
        parts.append(f"State: {profile['state']}")
    if profile.get("annual_income") is not None:
        parts.append(f"Annual Income: {_format_income(profile['annual_income'])}")
    if profile.get("caste_category"):
        parts.append(f"Category: {profile['caste_category']}")
    if profile.get("occupation"):
        parts.append(f"Occupation: {profile['occupation']}")
    if profile.get("disability_status"):
        parts.append(f"Disability: {profile['disability_status']}")

    address = profile.get("address")
    if not isinstance(address, Mapping):
        address = {}
    address_text = ", ".join(
        str(address[key])
        for key in ("city", "district", "state", "pincode")
        if address.get(key)
    )
    if address_text:
        parts.append(f"Address: {address_text}")

    return "; ".join(parts)


def profile_memory_body(user_id: str, profile_context: str) -> str:
    return f"{PROFILE_MARKER}\nuser_id:{user_id}\n{profile_context}"


def scheme_memory_body(scheme: Mapping[str, Any]) -> str:
    """Lay out a scheme as ``key:value`` lines behind the scheme marker."""

    def field(name: str, default: str = "") -> str:
        value = scheme.get(name)
        return default if value is None or value == "" else str(value)

    values = {"scheme_id": str(scheme["id"])}
    for key in SCHEME_BODY_KEYS[1:]:
        values[key] = field(key, "National" if key == "state" else "")
    return "\n".join([SCHEME_MARKER] + [f"{key}:{values[key]}" for key in SCHEME_BODY_KEYS])


def memory_identity(record: Mapping[str, Any]) -> Optional[tuple[str, str]]:
    """Return the ``(type, identity)`` pair a stored memory stands for.

    Structured metadata wins when it is complete.  Otherwise the first two
    lines of the body are read as a header: a type marker, then
    ``user_id:<id>`` or ``scheme_id:<id>``.  The identity line is compared
    whole, so ``scheme_id:4`` is never mistaken for ``scheme_id:42``.
    """
    metadata = record.get("metadata") or {}
    memory_type = metadata.get("type")
    if memory_type in IDENTITY_KEYS:
        identity = metadata.get(IDENTITY_KEYS[memory_type])
        if identity not in (None, ""):
            return memory_type, str(identity)

    lines = (record.get("memory") or "").splitlines()
    if len(lines) < 2:
        return None
    memory_type = TYPE_MARKERS.get(lines[0].strip())
    if memory_type is None:
        return None
    key, sep, identity = lines[1].partition(":")
    if not sep or key.strip() != IDENTITY_KEYS[memory_type] or not identity.strip():
        return None
    return memory_type, identity.strip()


def parse_scheme_fields(text: str) -> dict[str, str]:
    """Read a scheme memory body back into a dict.

    Keys are matched strictly in the order ``scheme_memory_body`` writes
    them.  Any other line, even one shaped like ``key:value``, continues the
    value of the field before it, so multi-line descriptions survive intact.
    """
    lines = text.split("\n")
    if lines and lines[0].strip() == SCHEME_MARKER:
        lines = lines[1:]

    fields: dict[str, str] = {}
    current: Optional[str] = None
    position = 0
    for line in lines:
        if position < len(SCHEME_BODY_KEYS) and line.startswith(f"{SCHEME_BODY_KEYS[position]}:"):
            current = SCHEME_BODY_KEYS[position]
            fields[current] = line[len(current) + 1:]
            position += 1
        elif current is not None:
            fields[current] += "\n" + line
    return fields


def enrich_question(content: str, profile_context: Optional[str]) -> str:
    """Prefix scheme-related questions with the citizen's profile context."""
    if not profile_context:
        return content
    lowered = content.lower()
    if not any(keyword in lowered for keyword in _CONTEXT_KEYWORDS):
        return content
    return f"[User Profile Context: {profile_context}]\n\nUser Question: {content}"
