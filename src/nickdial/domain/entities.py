"""Domain entities: ContactEntity, DirectoryEntry, ResolutionRequest and actions."""

from dataclasses import dataclass

VOICE_MODE = "voice"
MESSAGE_MODE = "message"
MODES = frozenset({VOICE_MODE, MESSAGE_MODE})


@dataclass(frozen=True)
class ContactEntity:
    """
    A learned binding from a nickname to the numbers used to reach a contact.
    Immutable once created; re-binding a nickname replaces the stored entity.
    """

    nickname: str
    voice_number: str
    sms_number: str

    def __post_init__(self):
        if not self.nickname or not self.nickname.strip():
            raise ValueError("ContactEntity nickname must be non-empty.")


@dataclass(frozen=True)
class DirectoryEntry:
    """A contact as returned by the external directory. Never persisted by the engine."""

    id: str
    display_name: str
    photo_ref: str | None = None
    voice_number: str = ""
    sms_number: str = ""

    def to_contact(self, nickname: str) -> ContactEntity:
        """Bind this entry's numbers to the given nickname."""
        sms = self.sms_number or self.voice_number
        return ContactEntity(
            nickname=nickname,
            voice_number=self.voice_number or sms,
            sms_number=sms,
        )


@dataclass(frozen=True)
class ResolutionRequest:
    """
    Inbound request. A payload is the utterance remainder after "text ..." and
    may carry a message after the name; when present it wins over nickname.
    """

    mode: str
    nickname: str | None = None
    payload: str | None = None

    def __post_init__(self):
        if self.mode not in MODES:
            raise ValueError(f"Illegal mode: {self.mode}")
        if not (self.payload or "").strip() and not (self.nickname or "").strip():
            raise ValueError("ResolutionRequest needs a nickname or a payload.")


@dataclass(frozen=True)
class Dial:
    number: str

    @property
    def uri(self) -> str:
        return f"tel:{self.number}"


@dataclass(frozen=True)
class ComposeMessage:
    number: str
    body: str | None = None

    @property
    def uri(self) -> str:
        return f"sms:{self.number}"


Action = Dial | ComposeMessage


def to_action(mode: str, contact: ContactEntity, body: str | None = None) -> Action:
    """Build the host action for a resolved contact."""
    if mode == VOICE_MODE:
        return Dial(number=contact.voice_number)
    if mode == MESSAGE_MODE:
        return ComposeMessage(number=contact.sms_number, body=body)
    raise ValueError(f"Illegal mode: {mode}")
