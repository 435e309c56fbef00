"""DTOs passed across the application boundary: host answers, query results, outcomes."""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from nickdial.application.errors import ResolutionError
from nickdial.domain import Action, ContactEntity, DirectoryEntry


@dataclass(frozen=True)
class Choice:
    """Host answer to a presentation. remember=True persists the binding."""

    identifier: str
    remember: bool = False


class DirectoryResult:
    """Entries returned by one directory query.

    Behaves like a read-only list and owns whatever the adapter holds open for
    it (a cursor, a session); close() releases it and is idempotent.
    """

    def __init__(self, entries: Iterable[DirectoryEntry] = (), on_close=None) -> None:
        self._entries = list(entries)
        self._on_close = on_close
        self.closed = False

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[DirectoryEntry]:
        return iter(self._entries)

    def __getitem__(self, index: int) -> DirectoryEntry:
        return self._entries[index]

    def __repr__(self) -> str:
        return f"DirectoryResult({self._entries!r}, closed={self.closed})"

    @property
    def entries(self) -> list[DirectoryEntry]:
        return list(self._entries)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._on_close is not None:
            self._on_close()


@dataclass(frozen=True)
class Resolved:
    contact: ContactEntity
    mode: str
    action: Action


@dataclass(frozen=True)
class Failed:
    reason: ResolutionError


@dataclass(frozen=True)
class Cancelled:
    detail: str = field(default="")


Outcome = Resolved | Failed | Cancelled
