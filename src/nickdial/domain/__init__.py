"""Domain layer: entities and value objects. No dependencies on outer layers."""

from nickdial.domain.entities import (
    MESSAGE_MODE,
    MODES,
    VOICE_MODE,
    Action,
    ComposeMessage,
    ContactEntity,
    Dial,
    DirectoryEntry,
    ResolutionRequest,
    to_action,
)

__all__ = [
    "Action",
    "ComposeMessage",
    "ContactEntity",
    "Dial",
    "DirectoryEntry",
    "MESSAGE_MODE",
    "MODES",
    "ResolutionRequest",
    "VOICE_MODE",
    "to_action",
]
