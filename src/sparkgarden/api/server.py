"""FastAPI server: ideas, analysis, visuals and assistant chat."""

from __future__ import annotations

import logging
import time

from fastapi import BackgroundTasks, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from sparkgarden import config
from sparkgarden.agent.provider import GeminiClient
from sparkgarden.assistant import AssistantSession
from sparkgarden.idea_store import IdeaNotFoundError, IdeaStore
from sparkgarden.models import AspectRatio, Idea, ImageSize, ImageStyle
from sparkgarden.storage.sqlite_store import SqliteStore

# Configure logging on import, before anything else logs
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)-5s [%(name)s] %(message)s",
    datefmt="%H:%M:%S",
)

logger = logging.getLogger(__name__)

app = FastAPI(title="SparkGarden", description="Idea research and blueprint service")

# CORS for the web client dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Lazy-initialized store (created on first request)
_idea_store: IdeaStore | None = None

# Assistant transcripts, ephemeral per process
_sessions: dict[str, AssistantSession] = {}


def _get_idea_store() -> IdeaStore:
    global _idea_store
    if _idea_store is None:
        logger.info("Initializing idea store...")
        t0 = time.perf_counter()
        repository = SqliteStore(config.SQLITE_PATH)
        repository.init_db()
        _idea_store = IdeaStore(
            repository,
            GeminiClient(),
            legacy_path=config.LEGACY_IDEAS_PATH,
        )
        _idea_store.load()
        logger.info("Idea store ready (%.2fs)", time.perf_counter() - t0)
    return _idea_store


def _lookup(store: IdeaStore, idea_id: str) -> Idea:
    try:
        return store.get(idea_id)
    except IdeaNotFoundError:
        raise HTTPException(status_code=404, detail=f"Idea {idea_id} not found")


def _get_session(session_id: str) -> AssistantSession:
    session = _sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Chat session {session_id} not found")
    return session


class CreateIdeaRequest(BaseModel):
    title: str
    text: str = ""


class AddNoteRequest(BaseModel):
    text: str


class ImageRequest(BaseModel):
    style: ImageStyle = ImageStyle.ARTISTIC
    aspect_ratio: AspectRatio | None = None
    image_size: ImageSize | None = None


class PlacesRequest(BaseModel):
    latitude: float | None = None
    longitude: float | None = None


class ChatMessageRequest(BaseModel):
    text: str
    idea_id: str | None = None


@app.get("/health")
def health():
    return {"status": "ok"}


# ── Ideas ──


@app.get("/ideas")
async def list_ideas():
    store = _get_idea_store()
    return [idea.to_dict() for idea in store.list_ideas()]


@app.get("/ideas/{idea_id}")
async def get_idea(idea_id: str):
    store = _get_idea_store()
    return _lookup(store, idea_id).to_dict()


@app.post("/ideas", status_code=201)
async def create_idea(req: CreateIdeaRequest, background_tasks: BackgroundTasks):
    """Plant an idea; analysis runs in the background."""
    logger.info("POST /ideas title=%r", req.title[:80])
    store = _get_idea_store()
    try:
        idea = store.create_idea(req.title, req.text)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    background_tasks.add_task(store.analyze, idea.id)
    return idea.to_dict()


@app.post("/ideas/{idea_id}/notes")
async def add_note(idea_id: str, req: AddNoteRequest, background_tasks: BackgroundTasks):
    """Append a note and re-run the analysis in the background."""
    store = _get_idea_store()
    _lookup(store, idea_id)
    try:
        idea = store.add_note(idea_id, req.text)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    background_tasks.add_task(store.analyze, idea_id)
    return idea.to_dict()


@app.post("/ideas/{idea_id}/analyze")
async def analyze_idea(idea_id: str):
    """Run the analysis and wait for it. Failure shows up as status "error"."""
    store = _get_idea_store()
    _lookup(store, idea_id)
    idea = await store.analyze(idea_id)
    return idea.to_dict()


@app.post("/ideas/{idea_id}/images")
async def generate_image(idea_id: str, req: ImageRequest):
    store = _get_idea_store()
    _lookup(store, idea_id)
    try:
        idea = await store.generate_image(
            idea_id, style=req.style, aspect_ratio=req.aspect_ratio, image_size=req.image_size,
        )
    except Exception as e:
        logger.exception("Image generation failed for %s", idea_id)
        raise HTTPException(status_code=502, detail=f"Failed to generate image: {e}")
    return idea.to_dict()


@app.post("/ideas/{idea_id}/places")
async def find_places(idea_id: str, req: PlacesRequest):
    store = _get_idea_store()
    _lookup(store, idea_id)
    if (req.latitude is None) != (req.longitude is None):
        raise HTTPException(status_code=400, detail="latitude and longitude must be given together")
    location = None
    if req.latitude is not None:
        location = (req.latitude, req.longitude)
    try:
        idea = await store.find_places(idea_id, location=location)
    except Exception as e:
        logger.exception("Places lookup failed for %s", idea_id)
        raise HTTPException(status_code=502, detail=f"Failed to find places: {e}")
    return idea.to_dict()


# ── Assistant chat ──


@app.post("/chat/sessions", status_code=201)
async def create_chat_session():
    session = AssistantSession(_get_idea_store())
    _sessions[session.id] = session
    return {"id": session.id, "messages": [m.to_dict() for m in session.messages]}


@app.get("/chat/sessions/{session_id}")
async def get_chat_session(session_id: str):
    session = _get_session(session_id)
    return {"id": session.id, "messages": [m.to_dict() for m in session.messages]}


@app.post("/chat/sessions/{session_id}/messages")
async def send_chat_message(session_id: str, req: ChatMessageRequest):
    session = _get_session(session_id)
    if req.idea_id is not None:
        _lookup(_get_idea_store(), req.idea_id)
    appended = await session.send(req.text, idea_id=req.idea_id)
    return {"messages": [m.to_dict() for m in appended]}


@app.delete("/chat/sessions/{session_id}", status_code=204)
async def delete_chat_session(session_id: str):
    """Drop a transcript once the client closes the assistant."""
    _get_session(session_id)
    del _sessions[session_id]
