"""Infrastructure layer: concrete implementations of application ports."""

from nickdial.infrastructure.dispatch import LoggingDispatcher, RecordingDispatcher
from nickdial.infrastructure.file_store import JsonFileNicknameStore
from nickdial.infrastructure.memory import (
    InMemoryContactDirectory,
    InMemoryNicknameStore,
    StaticPermissionGate,
    display_name_matches,
)
from nickdial.infrastructure.persistence.neo4j_store import (
    Neo4jContactDirectory,
    Neo4jNicknameStore,
    ensure_nickname_constraint,
)
from nickdial.infrastructure.phone import contact_numbers, default_region, dialable

__all__ = [
    "InMemoryContactDirectory",
    "InMemoryNicknameStore",
    "JsonFileNicknameStore",
    "LoggingDispatcher",
    "Neo4jContactDirectory",
    "Neo4jNicknameStore",
    "RecordingDispatcher",
    "StaticPermissionGate",
    "contact_numbers",
    "default_region",
    "dialable",
    "display_name_matches",
    "ensure_nickname_constraint",
]
