"""HTTP-backed host collaborators: presentations and permission prompts park as
futures until a REST call answers them."""

import asyncio
import logging

from nickdial.application import Choice, DirectoryResult, InvalidChoice, SessionHandle
from nickdial.domain import DirectoryEntry

logger = logging.getLogger(__name__)


class DeferredDisambiguationHost:
    """One outstanding presentation per session, answered by answer()."""

    def __init__(self) -> None:
        self._pending: dict[str, asyncio.Future] = {}
        self.invalid_choices: dict[str, str] = {}

    async def _park(self, session: SessionHandle) -> Choice | None:
        fut = asyncio.get_running_loop().create_future()
        self._pending[session.session_id] = fut
        try:
            return await fut
        finally:
            if self._pending.get(session.session_id) is fut:
                del self._pending[session.session_id]

    async def present_zero_matches(
        self, session: SessionHandle, final_token: str, zero_result: DirectoryResult
    ) -> Choice | None:
        logger.info("No contact for %r; waiting for a manual pick", final_token)
        return await self._park(session)

    async def present_choices(
        self, session: SessionHandle, token: str, candidates: list[DirectoryEntry]
    ) -> Choice | None:
        logger.info("%d contacts match %r; waiting for a choice", len(candidates), token)
        return await self._park(session)

    def report_invalid_choice(self, session: SessionHandle, error: InvalidChoice) -> None:
        self.invalid_choices[session.session_id] = str(error)

    def forget(self, session_id: str) -> None:
        """Drop what is kept for a session the caller no longer tracks."""
        self.invalid_choices.pop(session_id, None)
        fut = self._pending.pop(session_id, None)
        if fut is not None and not fut.done():
            fut.cancel()

    def is_waiting(self, session_id: str) -> bool:
        fut = self._pending.get(session_id)
        return fut is not None and not fut.done()

    def answer(self, session_id: str, choice: Choice | None) -> bool:
        """Deliver the user's answer. False if nothing is being presented."""
        fut = self._pending.get(session_id)
        if fut is None or fut.done():
            return False
        self.invalid_choices.pop(session_id, None)
        fut.set_result(choice)
        return True


class DeferredPermissionGate:
    """Contacts permission that an HTTP call grants or denies."""

    def __init__(self, granted: bool = False) -> None:
        self.granted = granted
        self._waiters: list[asyncio.Future] = []

    def has_permission(self) -> bool:
        return self.granted

    async def request_permission(self) -> bool:
        fut = asyncio.get_running_loop().create_future()
        self._waiters.append(fut)
        try:
            return await fut
        finally:
            if fut in self._waiters:
                self._waiters.remove(fut)

    @property
    def pending(self) -> int:
        return sum(1 for fut in self._waiters if not fut.done())

    def answer(self, granted: bool) -> int:
        """Record the user's answer and wake every waiting session. Returns how many."""
        self.granted = granted
        woken = 0
        for fut in list(self._waiters):
            if not fut.done():
                fut.set_result(granted)
                woken += 1
        return woken
