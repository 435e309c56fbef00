"""Nickname resolution: store lookup -> permission -> directory query -> disambiguation.

One session per request. A session is a single asyncio task consuming its own
event queue; collaborators (directory, permission prompt, host UI) run in
side tasks that post their answers back onto that queue. Directory queries
and host presentations carry sequence numbers, and answers whose number is no
longer current are dropped, so a superseded query or prompt can never move
the session.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass

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
from nickdial.application.machine import (
    AWAITING_CHOICE,
    AWAITING_MANUAL_PICK,
    CANCELLED,
    DIRECTORY_QUERY,
    FAILED,
    IDLE,
    PERMISSION_CHECK,
    TERMINAL_STATES,
    ResolutionMachine,
    get_machine,
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
from nickdial.application.tokenizer import QueryTokenizer
from nickdial.domain import (
    MESSAGE_MODE,
    ContactEntity,
    DirectoryEntry,
    ResolutionRequest,
    to_action,
)

logger = logging.getLogger(__name__)

AWAITING_STATES = frozenset({AWAITING_CHOICE, AWAITING_MANUAL_PICK})


@dataclass
class _QueryDone:
    seq: int
    result: DirectoryResult


@dataclass
class _QueryFailed:
    seq: int
    error: Exception


@dataclass
class _PermissionAnswer:
    granted: bool
    error: Exception | None = None


@dataclass
class _HostAnswer:
    presentation: int
    choice: Choice | None


@dataclass
class _HostFailed:
    presentation: int
    error: Exception


class _CancelRequested:
    pass


class _RequeryRequested:
    pass


class SessionHandle:
    """Caller's view of a running session."""

    def __init__(self, session: "ResolutionSession") -> None:
        self._session = session

    @property
    def session_id(self) -> str:
        return self._session.session_id

    @property
    def state(self) -> str:
        return self._session.state

    @property
    def mode(self) -> str:
        return self._session.mode

    @property
    def nickname(self) -> str:
        """Current query token; shrinks while a payload is being narrowed."""
        return self._session.nickname

    @property
    def original_nickname(self) -> str:
        return self._session.original_nickname

    @property
    def payload(self) -> str | None:
        return self._session.payload

    @property
    def candidates(self) -> list[DirectoryEntry]:
        return list(self._session.candidates)

    @property
    def queries(self) -> list[str]:
        """Tokens sent to the directory, in order."""
        return list(self._session.queries)

    @property
    def outcome(self) -> Outcome | None:
        return self._session.outcome

    @property
    def done(self) -> bool:
        return self._session.state in TERMINAL_STATES

    def cancel(self) -> None:
        """Abort the session from any non-terminal state."""
        self._session.post(_CancelRequested())

    def requery(self) -> None:
        """Re-issue the directory query for the current token."""
        self._session.post(_RequeryRequested())

    async def wait(self) -> Outcome:
        return await asyncio.shield(self._session.finished)


class ResolutionSession:
    """State owned by one resolution. Only the session task mutates it."""

    def __init__(
        self,
        engine: "ResolutionEngine",
        request: ResolutionRequest,
        observer: SessionObserver,
    ) -> None:
        self._engine = engine
        self._observer = observer
        self.session_id = str(uuid.uuid4())
        self.mode = request.mode
        self.payload = request.payload
        self._has_payload = bool((request.payload or "").strip())
        self.original_nickname = engine.tokenizer.initial(request)
        self.nickname = self.original_nickname
        self.state = IDLE
        self.candidates: list[DirectoryEntry] = []
        self.queries: list[str] = []
        self.outcome: Outcome | None = None
        self.finished: asyncio.Future = asyncio.get_running_loop().create_future()
        self.handle = SessionHandle(self)
        self._events: asyncio.Queue = asyncio.Queue()
        self._query_seq = 0
        self._query_task: asyncio.Task | None = None
        self._presentation = 0
        self._presentation_task: asyncio.Task | None = None
        self._permission_task: asyncio.Task | None = None
        self._zero_result: DirectoryResult | None = None
        self._held: list[DirectoryResult] = []

    def post(self, event) -> None:
        self._events.put_nowait(event)

    async def run(self) -> None:
        logger.info(
            "Session %s started: mode=%s nickname=%r",
            self.session_id,
            self.mode,
            self.nickname,
        )
        try:
            await self._start()
            while self.state not in TERMINAL_STATES:
                event = await self._events.get()
                await self._handle(event)
        except Exception as exc:
            logger.exception("Session %s crashed in state %s", self.session_id, self.state)
            if self.state not in TERMINAL_STATES:
                self.state = FAILED
                error = exc if isinstance(exc, ResolutionError) else ResolutionError(str(exc))
                self._release()
                self._settle(Failed(reason=error))
                self._notify("on_failed", error)
        finally:
            self._release()
            if not self.finished.done():
                # The task itself was cancelled (loop shutdown); waiters still get an outcome.
                self.state = CANCELLED
                self._settle(Cancelled(detail="session task cancelled"))
                self._notify("on_cancelled")

    def _notify(self, callback: str, *args) -> None:
        try:
            getattr(self._observer, callback)(*args)
        except Exception:
            logger.exception("Observer %s failed for session %s", callback, self.session_id)

    # --- transitions ---

    def _move(self, event: str) -> str:
        target = self._engine.machine.next_state(self.state, event)
        logger.debug("Session %s: %s --%s--> %s", self.session_id, self.state, event, target)
        self.state = target
        return target

    def _settle(self, outcome: Outcome) -> None:
        self.outcome = outcome
        if not self.finished.done():
            self.finished.set_result(outcome)

    def _resolve(self, event: str, contact: ContactEntity) -> None:
        self._move(event)
        body = None
        if self.mode == MESSAGE_MODE and self._has_payload:
            body = self._engine.tokenizer.message_body(self.payload, contact.nickname)
        action = to_action(self.mode, contact, body)
        self._release()
        logger.info("Session %s resolved %r", self.session_id, contact.nickname)
        try:
            self._engine.dispatcher.dispatch(self.mode, contact, body)
        except Exception:
            logger.exception("Dispatch failed for session %s", self.session_id)
        self._settle(Resolved(contact=contact, mode=self.mode, action=action))
        self._notify("on_resolved", contact)

    def _fail(self, event: str, error: ResolutionError) -> None:
        self._move(event)
        logger.info("Session %s failed: %s (%s)", self.session_id, error.reason, error)
        self._release()
        self._settle(Failed(reason=error))
        self._notify("on_failed", error)

    def _cancel(self, detail: str = "") -> None:
        self._move("CANCEL")
        logger.info("Session %s cancelled %s", self.session_id, detail)
        self._release()
        self._settle(Cancelled(detail=detail))
        self._notify("on_cancelled")

    def _release(self) -> None:
        for result in self._held:
            result.close()
        self._held.clear()
        self._zero_result = None
        current = asyncio.current_task()
        for task in (self._query_task, self._presentation_task, self._permission_task):
            if task is not None and task is not current and not task.done():
                task.cancel()

    # --- steps ---

    async def _start(self) -> None:
        self._move("START")
        await self._lookup_store(self.nickname)

    async def _lookup_store(self, nickname: str) -> None:
        try:
            contact = await asyncio.to_thread(self._engine.store.lookup, nickname)
        except Exception as exc:
            logger.exception("Nickname store lookup failed for %r", nickname)
            self._fail("FAIL", _as_error(exc, StoreUnavailable))
            return
        if contact is not None:
            self._resolve("HIT", contact)
            return
        self._move("MISS")
        self._check_permission()

    def _check_permission(self) -> None:
        if self._engine.permissions.has_permission():
            self._move("GRANTED")
            self._issue_query()
            return
        logger.info("Session %s waiting for contacts permission", self.session_id)
        self._permission_task = asyncio.create_task(self._ask_permission())

    async def _ask_permission(self) -> None:
        try:
            granted = await self._engine.permissions.request_permission()
        except Exception as exc:
            self.post(_PermissionAnswer(granted=False, error=exc))
            return
        self.post(_PermissionAnswer(granted=bool(granted)))

    def _issue_query(self) -> None:
        self._query_seq += 1
        if self._query_task is not None and not self._query_task.done():
            self._query_task.cancel()
        self.queries.append(self.nickname)
        logger.info(
            "Session %s query %d for %r", self.session_id, self._query_seq, self.nickname
        )
        self._query_task = asyncio.create_task(
            self._run_query(self._query_seq, self.nickname)
        )

    async def _run_query(self, seq: int, token: str) -> None:
        try:
            result = await self._engine.directory.query(token)
            if not isinstance(result, DirectoryResult):
                result = DirectoryResult(result)
        except Exception as exc:
            self.post(_QueryFailed(seq=seq, error=exc))
            return
        self.post(_QueryDone(seq=seq, result=result))

    def _present(self) -> None:
        self._presentation += 1
        if self._presentation_task is not None and not self._presentation_task.done():
            self._presentation_task.cancel()
        host = self._engine.host
        if self.state == AWAITING_CHOICE:
            pending = host.present_choices(self.handle, self.nickname, list(self.candidates))
        else:
            pending = host.present_zero_matches(self.handle, self.nickname, self._zero_result)
        self._presentation_task = asyncio.create_task(
            self._run_presentation(self._presentation, pending)
        )

    async def _run_presentation(self, presentation: int, pending) -> None:
        try:
            choice = await pending
        except Exception as exc:
            self.post(_HostFailed(presentation=presentation, error=exc))
            return
        self.post(_HostAnswer(presentation=presentation, choice=choice))

    # --- events ---

    async def _handle(self, event) -> None:
        if isinstance(event, _CancelRequested):
            self._cancel("by caller")
        elif isinstance(event, _RequeryRequested):
            self._requery()
        elif isinstance(event, _PermissionAnswer):
            self._on_permission(event)
        elif isinstance(event, (_QueryDone, _QueryFailed)):
            if event.seq != self._query_seq or self.state != DIRECTORY_QUERY:
                logger.debug(
                    "Session %s dropping stale query %d (current %d)",
                    self.session_id,
                    event.seq,
                    self._query_seq,
                )
                if isinstance(event, _QueryDone):
                    event.result.close()
                return
            if isinstance(event, _QueryFailed):
                self._fail("FAIL", _as_error(event.error, DirectoryUnavailable))
                return
            await self._on_result(event.result)
        elif isinstance(event, (_HostAnswer, _HostFailed)):
            if event.presentation != self._presentation or self.state not in AWAITING_STATES:
                logger.debug("Session %s dropping stale host answer", self.session_id)
                return
            if isinstance(event, _HostFailed):
                logger.error("Host presentation failed: %s", event.error)
                self._fail("FAIL", _as_error(event.error, ResolutionError))
            elif event.choice is None:
                self._cancel("by user")
            else:
                await self._on_choice(event.choice)

    def _on_permission(self, answer: _PermissionAnswer) -> None:
        if self.state != PERMISSION_CHECK:
            return
        self._permission_task = None
        if answer.granted:
            self._move("GRANTED")
            self._issue_query()
            return
        if answer.error is not None:
            logger.error("Permission request failed: %s", answer.error)
        self._fail("DENIED", PermissionDenied("Contacts permission denied."))

    def _requery(self) -> None:
        if self.state == DIRECTORY_QUERY:
            self._issue_query()
            return
        if self.state not in AWAITING_STATES:
            logger.debug("Session %s ignoring requery in %s", self.session_id, self.state)
            return
        # Bumping the counter orphans any answer still on its way.
        self._presentation += 1
        if self._presentation_task is not None and not self._presentation_task.done():
            self._presentation_task.cancel()
        for result in self._held:
            result.close()
        self._held.clear()
        self._zero_result = None
        self.candidates = []
        self._move("REQUERY")
        self._issue_query()

    async def _on_result(self, result: DirectoryResult) -> None:
        count = len(result)
        if count == 0:
            self._move("ZERO")
            await self._on_zero(result)
        elif count == 1:
            self._move("ONE")
            await self._on_one(result)
        else:
            self._move("MANY")
            self._held.append(result)
            self.candidates = result.entries
            self._move("PRESENT")
            self._present()

    async def _on_zero(self, result: DirectoryResult) -> None:
        shorter = self._engine.tokenizer.shrink(self.nickname) if self._has_payload else None
        if shorter is not None:
            result.close()
            logger.info("No match for %r, retrying with %r", self.nickname, shorter)
            self.nickname = shorter
            if self._engine.recheck_store_on_shrink:
                self._move("RECHECK")
                await self._lookup_store(shorter)
                return
            self._move("SHRINK")
            self._issue_query()
            return
        # Kept open until the session ends so the host can still inspect it.
        self._zero_result = result
        self._held.append(result)
        self._move("EXHAUSTED")
        self._present()

    async def _on_one(self, result: DirectoryResult) -> None:
        entry = result[0]
        result.close()
        contact = entry.to_contact(self.original_nickname)
        try:
            await asyncio.to_thread(self._engine.store.upsert, contact)
        except Exception as exc:
            logger.exception("Nickname store upsert failed for %r", contact.nickname)
            self._fail("FAIL", _as_error(exc, StoreUnavailable))
            return
        self._resolve("RESOLVE", contact)

    async def _on_choice(self, choice: Choice) -> None:
        if self.state == AWAITING_CHOICE:
            entry = next((c for c in self.candidates if c.id == choice.identifier), None)
        else:
            try:
                entry = await self._engine.directory.get(choice.identifier)
            except Exception as exc:
                self._fail("FAIL", _as_error(exc, DirectoryUnavailable))
                return
        if entry is None:
            error = InvalidChoice(choice.identifier)
            logger.warning("Session %s: %s", self.session_id, error)
            self._engine.host.report_invalid_choice(self.handle, error)
            self._present()
            return
        contact = entry.to_contact(self.nickname)
        if choice.remember:
            try:
                await asyncio.to_thread(self._remember, entry, contact)
            except Exception as exc:
                logger.exception("Nickname store upsert failed for %r", contact.nickname)
                self._fail("FAIL", _as_error(exc, StoreUnavailable))
                return
        self._resolve("CHOSEN", contact)

    def _remember(self, entry: DirectoryEntry, contact: ContactEntity) -> None:
        store = self._engine.store
        store.upsert(contact)
        if self.original_nickname != contact.nickname:
            store.upsert(entry.to_contact(self.original_nickname))


def _as_error(exc: Exception, default: type[ResolutionError]) -> ResolutionError:
    if isinstance(exc, ResolutionError):
        return exc
    return default(str(exc))


class ResolutionEngine:
    """Starts resolution sessions against one set of collaborators."""

    def __init__(
        self,
        store: NicknameStore,
        directory: ContactDirectory,
        permissions: PermissionGate,
        host: DisambiguationHost,
        dispatcher: ActionDispatcher,
        *,
        tokenizer: QueryTokenizer | None = None,
        recheck_store_on_shrink: bool = False,
        machine: ResolutionMachine | None = None,
    ) -> None:
        self.store = store
        self.directory = directory
        self.permissions = permissions
        self.host = host
        self.dispatcher = dispatcher
        self.tokenizer = tokenizer or QueryTokenizer()
        self.recheck_store_on_shrink = recheck_store_on_shrink
        self.machine = machine or get_machine()
        self._tasks: set[asyncio.Task] = set()

    def start_resolution(
        self,
        mode: str,
        nickname: str | None = None,
        payload: str | None = None,
        *,
        observer: SessionObserver | None = None,
    ) -> SessionHandle:
        """Start resolving nickname (or the name at the head of payload).

        Must be called from a running event loop. Raises ValueError for a
        request with neither nickname nor payload; every later outcome is
        reported through observer and SessionHandle.wait().
        """
        request = ResolutionRequest(mode=mode, nickname=nickname, payload=payload)
        session = ResolutionSession(self, request, observer or NullObserver())
        task = asyncio.get_running_loop().create_task(session.run())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return session.handle
