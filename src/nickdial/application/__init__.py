"""Application layer: use cases, ports, and DTOs. Depends only on domain."""

from nickdial.application.dto import (
    Cancelled,
    Choice,
    DirectoryResult,
    Failed,
    Outcome,
    Resolved,
)
from nickdial.application.errors import (
    DirectoryUnavailable,
    InvalidChoice,
    PermissionDenied,
    ResolutionError,
    StoreUnavailable,
)
from nickdial.application.ports import (
    ActionDispatcher,
    ContactDirectory,
    DisambiguationHost,
    NicknameStore,
    NullObserver,
    PermissionGate,
    SessionObserver,
)
from nickdial.application.resolution_engine import ResolutionEngine, SessionHandle
from nickdial.application.tokenizer import QueryTokenizer, word_count

__all__ = [
    "ActionDispatcher",
    "Cancelled",
    "Choice",
    "ContactDirectory",
    "DirectoryResult",
    "DirectoryUnavailable",
    "DisambiguationHost",
    "Failed",
    "InvalidChoice",
    "NicknameStore",
    "NullObserver",
    "Outcome",
    "PermissionDenied",
    "PermissionGate",
    "QueryTokenizer",
    "ResolutionEngine",
    "ResolutionError",
    "Resolved",
    "SessionHandle",
    "SessionObserver",
    "StoreUnavailable",
    "word_count",
]
