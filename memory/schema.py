"""Record shapes shared by the memory layer.

Profiles and schemes are read from the relational store; memories live in
the external memory service. Identity of a memory is carried by markers
embedded in its text (and mirrored in its metadata).
"""

from typing import Any, Dict, Optional, TypedDict, Union

# Marker tokens. Downstream consumers match these byte-for-byte.
PROFILE_MARKER = "[type:profile]"
SCHEME_MARKER = "[type:scheme]"

# Memory type -> identity key used in both the body header and the metadata.
IDENTITY_KEYS = {"profile": "user_id", "scheme": "scheme_id"}
TYPE_MARKERS = {PROFILE_MARKER: "profile", SCHEME_MARKER: "scheme"}

# Columns read from the scheme catalog, in scheme memory body order.
SCHEME_COLUMNS = (
    "id",
    "scheme_name",
    "description",
    "benefits",
    "category",
    "state",
    "department",
    "application_process",
    "official_website",
)

# Line keys of a scheme memory body, in the order they are written.
SCHEME_BODY_KEYS = (
    "scheme_id",
    "scheme_name",
    "category",
    "state",
    "department",
    "benefits",
    "description",
    "application_process",
    "official_website",
)


class Address(TypedDict, total=False):
    city: Optional[str]
    district: Optional[str]
    state: Optional[str]
    pincode: Optional[str]


class UserProfile(TypedDict, total=False):
    id: str
    full_name: Optional[str]
    gender: Optional[str]
    date_of_birth: Optional[str]
    state: Optional[str]
    annual_income: Optional[Union[int, float]]
    caste_category: Optional[str]
    occupation: Optional[str]
    disability_status: Optional[str]
    address: Optional[Address]


class Scheme(TypedDict, total=False):
    id: Union[int, str]
    scheme_name: Optional[str]
    description: Optional[str]
    benefits: Optional[str]
    category: Optional[str]
    state: Optional[str]
    department: Optional[str]
    application_process: Optional[str]
    official_website: Optional[str]
    is_active: bool


class MemoryRecord(TypedDict):
    id: Optional[str]
    memory: str
    metadata: Dict[str, Any]
