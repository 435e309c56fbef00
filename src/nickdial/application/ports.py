"""Application ports (interfaces). Implemented by infrastructure and host adapters."""

from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol

from nickdial.application.dto import Choice, DirectoryResult
from nickdial.application.errors import InvalidChoice, ResolutionError
from nickdial.domain import ContactEntity, DirectoryEntry

if TYPE_CHECKING:
    from nickdial.application.resolution_engine import SessionHandle


class NicknameStore(Protocol):
    """Durable nickname -> ContactEntity bindings."""

    def lookup(self, nickname: str) -> ContactEntity | None:
        """Return the binding for exactly this nickname (case-sensitive), or None."""
        ...

    def upsert(self, contact: ContactEntity) -> None:
        """Insert or overwrite the binding for contact.nickname."""
        ...


class ContactDirectory(Protocol):
    """Read-only external contact source."""

    async def query(self, token: str) -> DirectoryResult | Sequence[DirectoryEntry]:
        """Return every entry whose display name matches token.
        Raises PermissionDenied or DirectoryUnavailable."""
        ...

    async def get(self, entry_id: str) -> DirectoryEntry | None:
        """Return the entry with this id, or None."""
        ...


class PermissionGate(Protocol):
    def has_permission(self) -> bool:
        ...

    async def request_permission(self) -> bool:
        """Ask the user for contacts permission. True when granted."""
        ...


class DisambiguationHost(Protocol):
    """Host UI. Each call resolves to a Choice, or None when the user cancels."""

    async def present_zero_matches(
        self,
        session: "SessionHandle",
        final_token: str,
        zero_result: DirectoryResult,
    ) -> Choice | None:
        """Offer a manual contact pick for final_token."""
        ...

    async def present_choices(
        self,
        session: "SessionHandle",
        token: str,
        candidates: list[DirectoryEntry],
    ) -> Choice | None:
        """Offer a choice among candidates matching token."""
        ...

    def report_invalid_choice(
        self, session: "SessionHandle", error: InvalidChoice
    ) -> None:
        """The last answer could not be resolved; the presentation is repeated."""
        ...


class ActionDispatcher(Protocol):
    def dispatch(
        self, mode: str, contact: ContactEntity, message_body: str | None
    ) -> None:
        """Dial the voice number or open a composer for the sms number."""
        ...


class SessionObserver(Protocol):
    def on_resolved(self, contact: ContactEntity) -> None:
        ...

    def on_failed(self, reason: ResolutionError) -> None:
        ...

    def on_cancelled(self) -> None:
        ...


class NullObserver:
    def on_resolved(self, contact: ContactEntity) -> None:
        pass

    def on_failed(self, reason: ResolutionError) -> None:
        pass

    def on_cancelled(self) -> None:
        pass
