"""
FastAPI host: start nickname resolutions and answer their prompts over HTTP.
Run with uvicorn: uvicorn api.main:app --reload
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from repo root (when run from repo root or from Docker)
for path in (
    Path(__file__).resolve().parent.parent.parent / ".env",
    Path.cwd() / ".env",
):
    if path.exists():
        load_dotenv(path)
        break

from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from neo4j import GraphDatabase
from pydantic import BaseModel

from api.host import DeferredDisambiguationHost, DeferredPermissionGate
from nickdial.application import (
    Cancelled,
    Choice,
    Failed,
    QueryTokenizer,
    ResolutionEngine,
    Resolved,
    SessionHandle,
)
from nickdial.application.tokenizer import DEFAULT_COMMAND_WORDS
from nickdial.domain import ComposeMessage
from nickdial.infrastructure import (
    InMemoryContactDirectory,
    InMemoryNicknameStore,
    JsonFileNicknameStore,
    LoggingDispatcher,
    Neo4jContactDirectory,
    Neo4jNicknameStore,
    default_region,
    ensure_nickname_constraint,
)

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=logging.INFO,
)
logger = logging.getLogger(__name__)

DEFAULT_STORE_PATH = ".nickdial/nicknames.json"
DEFAULT_USER_ID = "default"
DEFAULT_MAX_FINISHED_SESSIONS = 256


def _env(name: str, default: str = "") -> str:
    return os.environ.get(name, default).strip()


def _env_flag(name: str) -> bool:
    return _env(name).lower() in {"1", "true", "yes"}


def _get_driver():
    uri = _env("NEO4J_URI", "bolt://localhost:7687")
    user = _env("NEO4J_USER", "neo4j")
    password = _env("NEO4J_PASSWORD", "password")
    return GraphDatabase.driver(uri, auth=(user, password))


def _command_words() -> tuple[str, ...]:
    raw = _env("NICKDIAL_COMMAND_WORDS")
    if not raw:
        return DEFAULT_COMMAND_WORDS
    return tuple(w.strip() for w in raw.split(",") if w.strip())


def _build_store(app: FastAPI):
    kind = _env("NICKDIAL_STORE", "file").lower()
    if kind == "memory":
        return InMemoryNicknameStore()
    if kind == "neo4j":
        driver = _get_cached_driver(app)
        ensure_nickname_constraint(driver)
        return Neo4jNicknameStore(driver, user_id=DEFAULT_USER_ID)
    if kind != "file":
        raise ValueError(f"Unknown NICKDIAL_STORE: {kind}")
    return JsonFileNicknameStore(_env("NICKDIAL_STORE_PATH", DEFAULT_STORE_PATH))


def _build_directory(app: FastAPI):
    kind = _env("NICKDIAL_DIRECTORY", "memory").lower()
    region = default_region()
    if kind == "neo4j":
        return Neo4jContactDirectory(
            _get_cached_driver(app), user_id=DEFAULT_USER_ID, default_region=region
        )
    if kind != "memory":
        raise ValueError(f"Unknown NICKDIAL_DIRECTORY: {kind}")
    return InMemoryContactDirectory(default_region=region)


def _get_cached_driver(app: FastAPI):
    if getattr(app.state, "driver", None) is None:
        app.state.driver = _get_driver()
    return app.state.driver


class StartResolutionBody(BaseModel):
    mode: str
    nickname: str | None = None
    payload: str | None = None


class ChoiceBody(BaseModel):
    identifier: str
    remember: bool = False


class PermissionBody(BaseModel):
    granted: bool


def _outcome_view(handle: SessionHandle) -> dict | None:
    outcome = handle.outcome
    if isinstance(outcome, Resolved):
        action = outcome.action
        return {
            "status": "resolved",
            "contact": {
                "nickname": outcome.contact.nickname,
                "voice_number": outcome.contact.voice_number,
                "sms_number": outcome.contact.sms_number,
            },
            "action": {
                "type": "compose" if isinstance(action, ComposeMessage) else "dial",
                "uri": action.uri,
                "body": getattr(action, "body", None),
            },
        }
    if isinstance(outcome, Failed):
        return {"status": "failed", "reason": outcome.reason.reason, "detail": str(outcome.reason)}
    if isinstance(outcome, Cancelled):
        return {"status": "cancelled", "detail": outcome.detail}
    return None


def _session_view(app: FastAPI, handle: SessionHandle) -> dict:
    host: DeferredDisambiguationHost = app.state.host
    return {
        "session_id": handle.session_id,
        "state": handle.state,
        "mode": handle.mode,
        "nickname": handle.nickname,
        "original_nickname": handle.original_nickname,
        "queries": handle.queries,
        "candidates": [
            {"id": c.id, "display_name": c.display_name, "photo_ref": c.photo_ref}
            for c in handle.candidates
        ],
        "awaiting_answer": host.is_waiting(handle.session_id),
        "invalid_choice": host.invalid_choices.get(handle.session_id),
        "outcome": _outcome_view(handle),
    }


def _track_session(app: FastAPI, handle: SessionHandle) -> None:
    """Register a new session and forget the oldest finished ones past the cap."""
    sessions: dict[str, SessionHandle] = app.state.sessions
    sessions[handle.session_id] = handle
    finished = [sid for sid, h in sessions.items() if h.done]
    for sid in finished[: max(0, len(finished) - app.state.max_finished_sessions)]:
        del sessions[sid]
        app.state.host.forget(sid)


def _get_session(request: Request, session_id: str) -> SessionHandle:
    handle = request.app.state.sessions.get(session_id)
    if handle is None:
        raise HTTPException(status_code=404, detail="Unknown resolution")
    return handle


def create_app(
    *,
    store=None,
    directory=None,
    permissions: DeferredPermissionGate | None = None,
    dispatcher=None,
    recheck_store_on_shrink: bool | None = None,
    max_finished_sessions: int | None = None,
) -> FastAPI:
    """Build the app. Collaborators left as None are built from the environment."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.driver = None
        app.state.sessions = {}
        if max_finished_sessions is None:
            cap = _env("NICKDIAL_MAX_FINISHED_SESSIONS")
            app.state.max_finished_sessions = int(cap) if cap else DEFAULT_MAX_FINISHED_SESSIONS
        else:
            app.state.max_finished_sessions = max_finished_sessions
        app.state.host = DeferredDisambiguationHost()
        app.state.permissions = permissions or DeferredPermissionGate(
            granted=_env_flag("NICKDIAL_PERMISSION_GRANTED")
        )
        app.state.dispatcher = dispatcher or LoggingDispatcher()
        recheck = recheck_store_on_shrink
        if recheck is None:
            recheck = _env_flag("NICKDIAL_RECHECK_STORE_ON_SHRINK")
        try:
            app.state.engine = ResolutionEngine(
                store=store if store is not None else _build_store(app),
                directory=directory if directory is not None else _build_directory(app),
                permissions=app.state.permissions,
                host=app.state.host,
                dispatcher=app.state.dispatcher,
                tokenizer=QueryTokenizer(_command_words()),
                recheck_store_on_shrink=recheck,
            )
            yield
        finally:
            for handle in app.state.sessions.values():
                if not handle.done:
                    handle.cancel()
            if getattr(app.state, "driver", None) is not None:
                app.state.driver.close()

    app = FastAPI(title="Nickdial API", lifespan=lifespan)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.post("/resolutions")
    async def start_resolution(body: StartResolutionBody, request: Request):
        engine: ResolutionEngine = request.app.state.engine
        try:
            handle = engine.start_resolution(
                body.mode, nickname=body.nickname, payload=body.payload
            )
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        _track_session(request.app, handle)
        return JSONResponse(content=_session_view(request.app, handle), status_code=201)

    @app.get("/resolutions/{session_id}")
    async def get_resolution(session_id: str, request: Request):
        return _session_view(request.app, _get_session(request, session_id))

    @app.post("/resolutions/{session_id}/choice")
    async def choose(session_id: str, body: ChoiceBody, request: Request):
        handle = _get_session(request, session_id)
        choice = Choice(identifier=body.identifier, remember=body.remember)
        if not request.app.state.host.answer(session_id, choice):
            raise HTTPException(status_code=409, detail="Nothing to choose right now")
        return _session_view(request.app, handle)

    @app.post("/resolutions/{session_id}/dismiss")
    async def dismiss(session_id: str, request: Request):
        handle = _get_session(request, session_id)
        if not request.app.state.host.answer(session_id, None):
            raise HTTPException(status_code=409, detail="Nothing to dismiss right now")
        return _session_view(request.app, handle)

    @app.post("/resolutions/{session_id}/cancel")
    async def cancel(session_id: str, request: Request):
        handle = _get_session(request, session_id)
        handle.cancel()
        return _session_view(request.app, handle)

    @app.post("/resolutions/{session_id}/requery")
    async def requery(session_id: str, request: Request):
        handle = _get_session(request, session_id)
        handle.requery()
        return _session_view(request.app, handle)

    @app.post("/permission")
    async def answer_permission(body: PermissionBody, request: Request):
        woken = request.app.state.permissions.answer(body.granted)
        return {"granted": body.granted, "sessions": woken}

    return app


app = create_app()
