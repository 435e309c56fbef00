"""
Nickdial core: clean-architecture layout.

- domain: entities (ContactEntity, DirectoryEntry, ResolutionRequest, actions). No outer dependencies.
- application: use cases (ResolutionEngine, QueryTokenizer), ports, DTOs, errors.
- infrastructure: adapters (in-memory, JSON file and Neo4j stores and directories, dispatchers).
"""

from nickdial.application import (
    Cancelled,
    Choice,
    ContactDirectory,
    DirectoryResult,
    DisambiguationHost,
    Failed,
    NicknameStore,
    QueryTokenizer,
    ResolutionEngine,
    Resolved,
    SessionHandle,
)
from nickdial.domain import (
    MESSAGE_MODE,
    VOICE_MODE,
    ComposeMessage,
    ContactEntity,
    Dial,
    DirectoryEntry,
)
from nickdial.infrastructure import (
    InMemoryContactDirectory,
    InMemoryNicknameStore,
    JsonFileNicknameStore,
    Neo4jContactDirectory,
    Neo4jNicknameStore,
)

__all__ = [
    "Cancelled",
    "Choice",
    "ComposeMessage",
    "ContactDirectory",
    "ContactEntity",
    "Dial",
    "DirectoryEntry",
    "DirectoryResult",
    "DisambiguationHost",
    "Failed",
    "InMemoryContactDirectory",
    "InMemoryNicknameStore",
    "JsonFileNicknameStore",
    "MESSAGE_MODE",
    "Neo4jContactDirectory",
    "Neo4jNicknameStore",
    "NicknameStore",
    "QueryTokenizer",
    "ResolutionEngine",
    "Resolved",
    "SessionHandle",
    "VOICE_MODE",
]
