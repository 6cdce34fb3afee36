import logging
import time
from collections.abc import Callable
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import Literal

from fastapi import FastAPI, HTTPException, Query, Request
from pydantic import BaseModel
from ulid import ULID

from lexis.application.filter_state import FilterState
from lexis.application.review.session import ReviewSession, accuracy_percent
from lexis.consts import VERSION
from lexis.domain.constants import (
    FAMILIARITY_MAX,
    FAMILIARITY_MIN,
    MAX_BRIDGE_SESSIONS,
    SESSION_IDLE_TTL,
)
from lexis.domain.errors import CatalogError, NotFoundError, ValidationError
from lexis.domain.interfaces import CatalogClient
from lexis.domain.models import VocabularyItem
from lexis.domain.review.models import SessionPhase

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("lexis.server")

CatalogFactory = Callable[[], CatalogClient]

FINISHED_PHASES = {SessionPhase.COMPLETED, SessionPhase.EMPTY, SessionPhase.ERROR}


def _default_catalog_factory() -> CatalogClient:
    from lexis.application.config import resolve_config
    from lexis.application.factory import get_catalog_client

    return get_catalog_client(resolve_config())


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


class TagOut(BaseModel):
    id: int
    name: str
    color: str | None = None


class ItemOut(BaseModel):
    id: int
    word: str
    meaning: str
    part_of_speech: str | None = None
    phonetic: str | None = None
    examples: str | None = None
    notes: str | None = None
    familiarity: int
    is_hard: bool
    next_review_at: datetime | None = None
    tags: list[TagOut] = []

    @classmethod
    def from_item(cls, item: VocabularyItem) -> "ItemOut":
        return cls(
            id=item.id,
            word=item.word,
            meaning=item.meaning,
            part_of_speech=item.part_of_speech,
            phonetic=item.phonetic,
            examples=item.examples,
            notes=item.notes,
            familiarity=item.familiarity,
            is_hard=item.is_hard,
            next_review_at=item.next_review_at,
            tags=[TagOut(id=t.id, name=t.name, color=t.color) for t in item.tags],
        )


class SessionOut(BaseModel):
    session_id: str
    phase: str
    correct: int
    total: int
    accuracy_percent: int
    in_flight: bool
    error: str | None = None
    # Present only while IN_PROGRESS
    index: int | None = None
    item_count: int | None = None
    progress_percent: float | None = None
    revealed: bool | None = None
    # The back of the card is withheld until revealed.
    item: ItemOut | None = None


class CommandOut(BaseModel):
    accepted: bool
    session: SessionOut


class PageOut(BaseModel):
    items: list[ItemOut]
    total: int
    page: int
    size: int
    pages: int


class CreateSessionRequest(BaseModel):
    vocab_id: int | None = None


class AnswerRequest(BaseModel):
    is_correct: bool


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _session_out(sid: str, session: ReviewSession) -> SessionOut:
    stats = session.stats
    out = SessionOut(
        session_id=sid,
        phase=session.phase.value,
        correct=stats.correct,
        total=stats.total,
        accuracy_percent=accuracy_percent(stats.correct, stats.total),
        in_flight=session.in_flight,
        error=session.error_message,
    )
    view = session.current_view()
    if view is not None:
        item = ItemOut.from_item(view.item)
        if not view.revealed:
            item = item.model_copy(update={"meaning": "", "examples": None, "notes": None})
        out.index = view.index
        out.item_count = view.total
        out.progress_percent = view.progress_percent
        out.revealed = view.revealed
        out.item = item
    return out


def _http_error(e: CatalogError) -> HTTPException:
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, ValidationError):
        return HTTPException(status_code=422, detail=str(e))
    return HTTPException(status_code=502, detail=str(e))


def _get_session(request: Request, sid: str) -> ReviewSession:
    state = request.app.state
    session = state.sessions.get(sid)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Unknown session: {sid}")
    state.last_seen[sid] = state.clock()
    return session


def _prune_sessions(state, ttl: float, max_sessions: int) -> None:
    """
    Drop finished sessions idle for longer than ttl, then the least recently
    used ones until there is room for one more.
    """
    now = state.clock()
    for sid, session in list(state.sessions.items()):
        if session.phase in FINISHED_PHASES and now - state.last_seen[sid] > ttl:
            _drop_session(state, sid)
            logger.info(f"Session {sid} expired ({session.phase.value})")

    while state.sessions and len(state.sessions) >= max_sessions:
        oldest = min(state.sessions, key=lambda s: state.last_seen[s])
        _drop_session(state, oldest)
        logger.warning(f"Session {oldest} evicted: limit of {max_sessions} reached")


def _drop_session(state, sid: str) -> None:
    del state.sessions[sid]
    del state.last_seen[sid]


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------


def create_app(
    catalog_factory: CatalogFactory | None = None,
    clock: Callable[[], float] = time.monotonic,
    session_ttl: float = SESSION_IDLE_TTL,
    max_sessions: int = MAX_BRIDGE_SESSIONS,
) -> FastAPI:
    """
    Build the review bridge.

    Args:
        catalog_factory: Builds the catalog client on startup. Defaults to the
            HTTP client for the resolved configuration.
        clock: Monotonic time source for session expiry.
        session_ttl: Seconds a finished session may sit idle before removal.
        max_sessions: Upper bound on live sessions.
    """
    factory = catalog_factory or _default_catalog_factory

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        logger.info(f"lexis bridge v{VERSION} starting up...")
        app.state.catalog = factory()
        app.state.sessions = {}
        app.state.last_seen = {}
        app.state.clock = clock
        app.state.started_at = time.time()
        yield
        # Shutdown
        logger.info("lexis bridge shutting down...")
        app.state.sessions.clear()
        app.state.last_seen.clear()
        await app.state.catalog.close()

    app = FastAPI(
        title="lexis bridge",
        description="Local review bridge for lexis front-ends.",
        version=VERSION,
        lifespan=lifespan,
    )

    @app.get("/health", response_model=HealthResponse)
    async def health_check(request: Request):
        """
        Simple health check to verify the bridge is reachable.
        """
        return HealthResponse(
            status="ok",
            version=VERSION,
            uptime_seconds=time.time() - request.app.state.started_at,
        )

    @app.get("/version")
    async def get_version():
        return {"version": VERSION}

    # -- Sessions ----------------------------------------------------------

    @app.post("/sessions", response_model=SessionOut, status_code=201)
    async def create_session(req: CreateSessionRequest, request: Request):
        """Start a review session over the due queue, or a single item."""
        from lexis.application.config import resolve_config
        from lexis.application.factory import create_review_session

        session = create_review_session(resolve_config(), request.app.state.catalog)
        state = request.app.state
        _prune_sessions(state, session_ttl, max_sessions)
        sid = str(ULID())
        state.sessions[sid] = session
        state.last_seen[sid] = state.clock()
        logger.info(f"Session {sid} requested (vocab_id={req.vocab_id})")
        await session.load(req.vocab_id)
        return _session_out(sid, session)

    @app.get("/sessions/{sid}", response_model=SessionOut)
    async def get_session(sid: str, request: Request):
        return _session_out(sid, _get_session(request, sid))

    @app.post("/sessions/{sid}/reveal", response_model=CommandOut)
    async def reveal(sid: str, request: Request):
        session = _get_session(request, sid)
        accepted = session.reveal()
        return CommandOut(accepted=accepted, session=_session_out(sid, session))

    @app.post("/sessions/{sid}/answer", response_model=CommandOut)
    async def answer(sid: str, req: AnswerRequest, request: Request):
        session = _get_session(request, sid)
        try:
            accepted = await session.answer(req.is_correct)
        except CatalogError as e:
            logger.error(f"Session {sid}: answer failed: {e}")
            raise _http_error(e) from e
        return CommandOut(accepted=accepted, session=_session_out(sid, session))

    @app.post("/sessions/{sid}/restart", response_model=CommandOut)
    async def restart(sid: str, request: Request):
        session = _get_session(request, sid)
        # Refused while an answer is still being submitted.
        accepted = not session.in_flight
        if accepted:
            await session.restart()
        return CommandOut(accepted=accepted, session=_session_out(sid, session))

    @app.delete("/sessions/{sid}", status_code=204)
    async def end_session(sid: str, request: Request):
        _get_session(request, sid)
        _drop_session(request.app.state, sid)
        logger.info(f"Session {sid} closed")

    # -- Listing -----------------------------------------------------------

    @app.get("/vocab", response_model=PageOut)
    async def list_vocab(
        request: Request,
        search: str | None = None,
        letter: str | None = None,
        tag_ids: list[int] = Query(default=[]),
        is_hard: bool | None = None,
        familiarity_min: int | None = Query(default=None, ge=FAMILIARITY_MIN, le=FAMILIARITY_MAX),
        familiarity_max: int | None = Query(default=None, ge=FAMILIARITY_MIN, le=FAMILIARITY_MAX),
        created_after: date | None = None,
        created_before: date | None = None,
        last_review_after: date | None = None,
        last_review_before: date | None = None,
        due_after: date | None = None,
        due_before: date | None = None,
        page: int = Query(default=1, ge=1),
        size: int | None = Query(default=None, ge=1),
        sort_by: str | None = None,
        sort_order: Literal["asc", "desc"] = "desc",
    ):
        """List catalog items with the same filters the catalog accepts."""
        from lexis.application.config import resolve_config

        state = FilterState(page_size=size or resolve_config().page_size)
        state.set_filters(
            search=search,
            letter=letter,
            tag_ids=tag_ids,
            is_hard=is_hard,
            familiarity_min=familiarity_min,
            familiarity_max=familiarity_max,
            created_after=created_after,
            created_before=created_before,
            last_review_after=last_review_after,
            last_review_before=last_review_before,
            due_after=due_after,
            due_before=due_before,
        )
        state.set_page(page)
        if sort_by:
            state.set_sort(sort_by, sort_order)

        try:
            result = await request.app.state.catalog.list_items(
                state.filters, state.page_spec, state.sort if sort_by else None
            )
        except CatalogError as e:
            logger.error(f"Listing failed: {e}")
            raise _http_error(e) from e

        return PageOut(
            items=[ItemOut.from_item(i) for i in result.items],
            total=result.total,
            page=result.page,
            size=result.size,
            pages=result.page_count,
        )

    return app


app = create_app()
