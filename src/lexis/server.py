import inspect
import logging
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field
from ulid import ULID

from lexis.application.config import resolve_config
from lexis.application.factory import build_review_session, get_key_value_store
from lexis.application.review.session import ReviewSession, SessionState
from lexis.consts import VERSION
from lexis.domain.errors import SessionError
from lexis.domain.interfaces import KeyValueStore
from lexis.domain.models import utcnow
from lexis.infrastructure.adapters.word_repository import KeyValueWordRepository

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("lexis.server")

_store: KeyValueStore | None = None
sessions: dict[str, ReviewSession] = {}


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"lexis server v{VERSION} starting up...")
    yield
    # Shutdown
    for session_id, session in list(sessions.items()):
        await session.end()
        logger.info(f"Ended open session {session_id}")
    sessions.clear()
    logger.info("lexis server shutting down...")


app = FastAPI(
    title="lexis server",
    description="Review sessions over HTTP for lexis front ends.",
    version=VERSION,
    lifespan=lifespan,
)

start_time = time.time()


def get_store() -> KeyValueStore:
    global _store
    if _store is None:
        _store = get_key_value_store(resolve_config())
    return _store


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


class NewWordRequest(BaseModel):
    word: str = Field(min_length=1)
    meaning: str
    example: str | None = None
    phonetic: str | None = None
    audio_url: str | None = None
    category: str | None = None
    difficulty: str = "medium"


class SessionRequest(BaseModel):
    scheduler: str | None = None  # basic, adaptive
    limit: int | None = None
    retry_on_mistake: bool | None = None
    retry_on_skip: bool | None = None


class AnswerRequest(BaseModel):
    answer: str
    rating: int | None = None


class QualityRequest(BaseModel):
    rating: int = Field(ge=0, le=5)


class TextRequest(BaseModel):
    text: str


def session_view(session_id: str, session: ReviewSession) -> dict:
    """Read-only observation of a session. The word text stays hidden while presenting."""
    word = session.current_word
    result = session.last_result
    return {
        "id": session_id,
        "state": session.state.value,
        "prompt": (
            {
                "word_id": word.id,
                "meaning": word.meaning,
                "example": word.example,
                "category": word.category,
                "length": len(word.word),
            }
            if word
            else None
        ),
        "stats": {
            "reviewed": session.stats.reviewed,
            "correct": session.stats.correct,
            "accuracy": round(session.stats.accuracy, 4),
        },
        "remaining": session.remaining,
        "awaiting_rating": session.awaiting_rating,
        "used_hint": session.used_hint,
        "retry_attempts": session.retry_attempts,
        "active_minutes": session.time_tracker.active_minutes,
        "tracking": session.time_tracker.running,
        "last_result": (
            {
                "word_id": result.word_id,
                "expected": result.expected,
                "answer": result.answer,
                "is_correct": result.is_correct,
                "quality": int(result.quality) if result.quality is not None else None,
                "skipped": result.skipped,
            }
            if result
            else None
        ),
        "warnings": [
            {"word_id": w.word_id, "source": w.source, "message": w.message}
            for w in session.warnings
        ],
        "summary": session.summary.to_dict() if session.summary else None,
    }


def _get_session(session_id: str) -> ReviewSession:
    session = sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Unknown session {session_id}")
    return session


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


@app.get("/words/due")
async def due_words(store: KeyValueStore = Depends(get_store)):
    repo = KeyValueWordRepository(store)
    now = utcnow()
    words = await repo.get_due_words(now)
    next_due = await repo.next_due_at(now) if not words else None
    return {
        "words": [w.to_record() for w in words],
        "next_due_at": next_due.isoformat() if next_due else None,
    }


@app.post("/words", status_code=201)
async def add_word(req: NewWordRequest, store: KeyValueStore = Depends(get_store)):
    repo = KeyValueWordRepository(store)
    word = await repo.add_word(
        req.word,
        req.meaning,
        example=req.example,
        phonetic=req.phonetic,
        audio_url=req.audio_url,
        category=req.category,
        difficulty=req.difficulty,
    )
    return word.to_record()


@app.post("/sessions", status_code=201)
async def create_session(req: SessionRequest, store: KeyValueStore = Depends(get_store)):
    """
    Start a review session over the words due now.
    """
    overrides = {
        "scheduler": req.scheduler,
        "session_limit": req.limit,
        "retry_on_mistake": req.retry_on_mistake,
        "retry_on_skip": req.retry_on_skip,
    }
    try:
        config = resolve_config(overrides)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid request: {e}") from None

    session = build_review_session(config, store)
    status = await session.start()
    session_id = str(ULID())
    logger.info(f"Session {session_id} started: {status.value}")

    view = session_view(session_id, session)
    view["status"] = status.value
    view["next_due_at"] = session.next_due_at.isoformat() if session.next_due_at else None
    # Finished sessions are not kept; only live ones are addressable.
    if session.state is not SessionState.COMPLETE:
        sessions[session_id] = session
    return view


@app.get("/sessions/{session_id}")
async def get_session(session_id: str):
    return session_view(session_id, _get_session(session_id))


async def _apply(session_id: str, event: str, action):
    session = _get_session(session_id)
    try:
        outcome = action(session)
        if inspect.isawaitable(outcome):
            outcome = await outcome
    except SessionError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    view = session_view(session_id, session)
    if isinstance(outcome, bool):
        view["accepted"] = outcome
    logger.debug(f"Session {session_id}: {event} -> {session.state.value}")
    if session.state is SessionState.COMPLETE:
        sessions.pop(session_id, None)
        logger.info(f"Session {session_id} complete")
    return view


@app.post("/sessions/{session_id}/hint")
async def show_hint(session_id: str):
    return await _apply(session_id, "hint", lambda s: s.show_hint())


@app.post("/sessions/{session_id}/draft")
async def update_draft(session_id: str, req: TextRequest):
    return await _apply(session_id, "draft", lambda s: s.update_draft(req.text))


@app.post("/sessions/{session_id}/answer")
async def submit_answer(session_id: str, req: AnswerRequest):
    return await _apply(session_id, "answer", lambda s: s.submit_answer(req.answer, req.rating))


@app.post("/sessions/{session_id}/skip")
async def skip_word(session_id: str):
    return await _apply(session_id, "skip", lambda s: s.skip())


@app.post("/sessions/{session_id}/quality")
async def select_quality(session_id: str, req: QualityRequest):
    return await _apply(session_id, "quality", lambda s: s.select_quality(req.rating))


@app.post("/sessions/{session_id}/retry")
async def submit_retry(session_id: str, req: TextRequest):
    return await _apply(session_id, "retry", lambda s: s.submit_retry(req.text))


@app.post("/sessions/{session_id}/pause")
async def pause_session(session_id: str):
    return await _apply(session_id, "pause", lambda s: s.pause())


@app.post("/sessions/{session_id}/resume")
async def resume_session(session_id: str):
    return await _apply(session_id, "resume", lambda s: s.resume())


@app.post("/sessions/{session_id}/activity")
async def record_activity(session_id: str):
    return await _apply(session_id, "activity", lambda s: s.time_tracker.record_activity())


@app.post("/sessions/{session_id}/focus")
async def focus_session(session_id: str):
    return await _apply(session_id, "focus", lambda s: s.time_tracker.focus())


@app.post("/sessions/{session_id}/blur")
async def blur_session(session_id: str):
    return await _apply(session_id, "blur", lambda s: s.time_tracker.blur())


@app.post("/sessions/{session_id}/end")
async def end_session(session_id: str):
    return await _apply(session_id, "end", lambda s: s.end())
