"""In-memory adapters: nickname store, contact directory, permission gate (no DB)."""

from collections.abc import Iterable

from nickdial.application.dto import DirectoryResult
from nickdial.application.errors import DirectoryUnavailable, PermissionDenied
from nickdial.domain import ContactEntity, DirectoryEntry
from nickdial.infrastructure.phone import contact_numbers


def display_name_matches(display_name: str, token: str) -> bool:
    """True if token is a prefix of the name or of any word-aligned suffix of it.

    Case-insensitive: "jo" and "smith" both match "John Smith",
    "john smith" matches "John Smith Jr", "ohn" does not.
    """
    needle = " ".join(token.lower().split())
    if not needle:
        return False
    words = display_name.lower().split()
    for i in range(len(words)):
        if " ".join(words[i:]).startswith(needle):
            return True
    return False


class InMemoryNicknameStore:
    """Stores bindings in a dict keyed by exact nickname."""

    def __init__(self, contacts: Iterable[ContactEntity] = ()) -> None:
        self._by_nickname: dict[str, ContactEntity] = {}
        for contact in contacts:
            self.upsert(contact)

    def lookup(self, nickname: str) -> ContactEntity | None:
        return self._by_nickname.get(nickname)

    def upsert(self, contact: ContactEntity) -> None:
        self._by_nickname[contact.nickname] = contact

    def list_all(self) -> list[ContactEntity]:
        return list(self._by_nickname.values())


class InMemoryContactDirectory:
    """Directory over a fixed list of entries. Order preserved by insertion.
    Numbers are normalized on the way in; unparseable numbers are kept as given.
    """

    def __init__(
        self,
        entries: Iterable[DirectoryEntry] = (),
        *,
        default_region: str | None = None,
        permitted: bool = True,
        available: bool = True,
    ) -> None:
        self._default_region = default_region
        self._entries: list[DirectoryEntry] = []
        self.permitted = permitted
        self.available = available
        self.calls: list[str] = []
        for entry in entries:
            self.add(entry)

    def add(self, entry: DirectoryEntry) -> None:
        voice, sms = contact_numbers(
            entry.voice_number, entry.sms_number, self._default_region
        )
        self._entries.append(
            DirectoryEntry(
                id=entry.id,
                display_name=entry.display_name,
                photo_ref=entry.photo_ref,
                voice_number=voice,
                sms_number=sms,
            )
        )

    def _check(self) -> None:
        if not self.permitted:
            raise PermissionDenied("Contacts permission revoked.")
        if not self.available:
            raise DirectoryUnavailable("Contact directory is unavailable.")

    async def query(self, token: str) -> DirectoryResult:
        self.calls.append(token)
        self._check()
        return DirectoryResult(
            e for e in self._entries if display_name_matches(e.display_name, token)
        )

    async def get(self, entry_id: str) -> DirectoryEntry | None:
        self._check()
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None


class StaticPermissionGate:
    """Permission gate with a fixed state and a fixed answer to requests."""

    def __init__(self, granted: bool = True, *, answer: bool = True) -> None:
        self.granted = granted
        self.answer = answer
        self.requests = 0

    def has_permission(self) -> bool:
        return self.granted

    async def request_permission(self) -> bool:
        self.requests += 1
        if self.answer:
            self.granted = True
        return self.answer
