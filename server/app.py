from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
import os
from datetime import datetime, timedelta
from typing import Any

from fastapi import Depends, FastAPI, File, Form, Request, Response, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from agents import create_engines
from core import analytics
from core.config import Config, load_config
from core.engine import DialogueEngine
from core.errors import InvalidInputError, UnknownAgentError
from core.log import get_logger, setup_logging
from core.metrics import MetricsSource
from llm.client import LLMClient
from memory import create_memory
from memory.keywords import MEMORY_TYPES, PRIORITY_LEVELS, parse_memory_input, summarize_content
from memory.knowledge import KnowledgeStore
from memory.session import SessionStore
from memory.types import MoodEntry
from server.sessions import demo_user, ensure_session

logger = get_logger("server")

CHAT_FAILURE_MESSAGE = "I'm having trouble processing that right now. Please try again."
TEXT_UPLOAD_TYPES = ("text/plain", "text/markdown")
MAX_EXTRACTED_CHARS = 2000
# Enough bytes for MAX_EXTRACTED_CHARS of four-byte UTF-8
MAX_UPLOAD_READ_BYTES = MAX_EXTRACTED_CHARS * 4


class ChatRequest(BaseModel):
    message: str | None = None


class StoreMemoryRequest(BaseModel):
    content: str | None = None
    memory_type: str | None = None
    priority: str | None = None
    tags: list[str] = []


class MoodEntryRequest(BaseModel):
    mood_rating: int | None = None
    emotions: list[str] = []
    notes: str = ""
    triggers: list[str] = []
    energy_level: str | None = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    config: Config = app.state.config or load_config()
    app.state.config = config
    setup_logging(config.logging.level)

    knowledge, capture = create_memory(config)
    llm_client = LLMClient(config.llm) if config.llm.enabled else None
    app.state.engines = create_engines(
        config,
        metrics=app.state.metrics,
        llm_client=llm_client,
        capture_log=capture,
    )
    app.state.knowledge = knowledge
    app.state.capture = capture
    app.state.llm = llm_client
    app.state.mood_journal = SessionStore(capacity=config.analytics.journal_limit)
    app.state.last_sweep = datetime.now()
    logger.info("AgentDesk ready with %d agents", len(app.state.engines))

    yield

    if knowledge:
        knowledge.close()
    if capture:
        capture.close()


def sweep_idle_sessions(state: Any, now: datetime) -> None:
    """Drop agent and journal sessions idle past the configured limit.

    Runs at most once per sweep interval, from the session dependency.
    """
    settings = state.config.session
    if now - state.last_sweep < timedelta(seconds=settings.sweep_interval):
        return
    state.last_sweep = now
    idle = timedelta(minutes=settings.idle_minutes)
    expired = sum(len(engine.expire_sessions(idle)) for engine in state.engines.values())
    expired += len(state.mood_journal.expire(idle))
    if expired:
        logger.info("Expired %d idle session states", expired)


def session_id(request: Request, response: Response) -> str:
    sweep_idle_sessions(request.app.state, datetime.now())
    return ensure_session(request, response, request.app.state.config.session.cookie_name)


def get_engine(request: Request, agent: str) -> DialogueEngine:
    engine = request.app.state.engines.get(agent)
    if engine is None:
        raise UnknownAgentError(agent)
    return engine


def get_knowledge(request: Request) -> KnowledgeStore:
    knowledge = request.app.state.knowledge
    if knowledge is None:
        raise InvalidInputError("Memory storage is disabled")
    return knowledge


def _mood_dict(entry: MoodEntry) -> dict[str, Any]:
    return {
        "timestamp": entry.timestamp.isoformat(),
        "mood_rating": entry.mood_rating,
        "emotions": list(entry.emotions),
        "notes": entry.notes,
        "triggers": list(entry.triggers),
        "energy_level": entry.energy_level,
    }


def _journal(request: Request, sid: str) -> list[MoodEntry]:
    journal: SessionStore = request.app.state.mood_journal
    return journal.recent(sid, journal.capacity)


def _read_upload(upload: UploadFile) -> tuple[bytes, int]:
    """Return the first MAX_UPLOAD_READ_BYTES of an upload and its full size."""
    stream = upload.file
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    return stream.read(MAX_UPLOAD_READ_BYTES), size


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "invalid value")
    return f"Invalid request: {field}: {message}" if field else f"Invalid request: {message}"


def create_app(config: Config | None = None, metrics: MetricsSource | None = None) -> FastAPI:
    """Build the FastAPI app; engines are created in the lifespan handler."""
    app = FastAPI(title="AgentDesk", lifespan=lifespan)
    app.state.config = config
    app.state.metrics = metrics

    @app.exception_handler(InvalidInputError)
    async def invalid_input_handler(request: Request, exc: InvalidInputError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"success": False, "message": exc.message})

    @app.exception_handler(UnknownAgentError)
    async def unknown_agent_handler(request: Request, exc: UnknownAgentError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"success": False, "message": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"success": False, "message": _validation_message(exc)})

    @app.get("/health")
    def health(request: Request) -> dict[str, Any]:
        llm: LLMClient | None = request.app.state.llm
        return {
            "status": "ok",
            "agents": len(request.app.state.engines),
            "llm": llm.health() if llm else {"status": "disabled"},
        }

    @app.get("/agents")
    def list_agents(request: Request) -> dict[str, Any]:
        return {
            "success": True,
            "agents": [
                {
                    "name": name,
                    "display_name": engine.profile.display_name,
                    "specialization": engine.profile.specialization,
                    "emoji": engine.profile.emoji,
                }
                for name, engine in request.app.state.engines.items()
            ],
        }

    # --- Memora ---

    @app.post("/memora/store_memory")
    def store_memory(
        body: StoreMemoryRequest, request: Request, sid: str = Depends(session_id)
    ) -> dict[str, Any]:
        knowledge = get_knowledge(request)
        if not body.content or not body.content.strip():
            raise InvalidInputError("Content is required")

        parsed = parse_memory_input(body.content)
        if not parsed["content"]:
            raise InvalidInputError("Content is required")
        try:
            memory_id = knowledge.store(
                demo_user(sid).id,
                parsed["content"],
                memory_type=body.memory_type or parsed["type"] or "fact",
                priority=body.priority or parsed["priority"] or "medium",
                tags=[*body.tags, *parsed["tags"]],
            )
        except ValueError as e:
            raise InvalidInputError(str(e)) from e

        entry = knowledge.get(memory_id)
        return {
            "success": True,
            "memory_id": memory_id,
            "memory": entry.to_dict(),
            "summary": summarize_content(entry.content),
        }

    @app.get("/memora/search_memories")
    def search_memories(
        request: Request,
        query: str = "",
        memory_type: str | None = None,
        priority: str | None = None,
        tags: str | None = None,
        limit: int = 10,
        sid: str = Depends(session_id),
    ) -> dict[str, Any]:
        knowledge = get_knowledge(request)
        if not query.strip():
            raise InvalidInputError("Please provide a search query")
        tag_list = [t.strip() for t in tags.split(",") if t.strip()] if tags else None
        found = knowledge.search(
            demo_user(sid).id, query, memory_type=memory_type, priority=priority, tags=tag_list, limit=limit
        )
        filters = {"memory_type": memory_type, "priority": priority, "tags": tag_list}
        return {
            "success": True,
            "query": query,
            "results": [e.to_dict() for e in found],
            "total_found": len(found),
            "filters_applied": {k: v for k, v in filters.items() if v},
        }

    @app.get("/memora/recall")
    def recall(request: Request, query: str = "", sid: str = Depends(session_id)) -> dict[str, Any]:
        knowledge = get_knowledge(request)
        if not query.strip():
            raise InvalidInputError("Please provide a query to search your memories")
        return {"success": True, **knowledge.recall(demo_user(sid).id, query)}

    @app.get("/memora/stats")
    def memory_stats(request: Request, sid: str = Depends(session_id)) -> dict[str, Any]:
        return {"success": True, "stats": get_knowledge(request).stats(demo_user(sid).id)}

    @app.get("/memora/memory_types")
    def memory_types() -> dict[str, Any]:
        return {"success": True, "memory_types": MEMORY_TYPES, "priority_levels": PRIORITY_LEVELS}

    @app.get("/memora/export")
    def export_memories(
        request: Request,
        format: str = "json",
        memory_type: str | None = None,
        priority: str | None = None,
        sid: str = Depends(session_id),
    ) -> dict[str, Any]:
        knowledge = get_knowledge(request)
        try:
            data = knowledge.export(demo_user(sid).id, format, memory_type=memory_type, priority=priority)
        except ValueError as e:
            raise InvalidInputError(str(e)) from e
        return {"success": True, "format": format, "export_data": data}

    @app.delete("/memora/memories/{memory_id}")
    def delete_memory(memory_id: str, request: Request, sid: str = Depends(session_id)) -> Any:
        knowledge = get_knowledge(request)
        entry = knowledge.get(memory_id)
        if entry is None or entry.user_id != demo_user(sid).id:
            return JSONResponse(status_code=404, content={"success": False, "message": "Memory not found"})
        knowledge.delete(memory_id)
        return {"success": True, "deleted": memory_id}

    @app.post("/memora/upload_file")
    def upload_file(
        request: Request,
        file: UploadFile = File(...),
        tags: str = Form(""),
        description: str = Form(""),
        sid: str = Depends(session_id),
    ) -> dict[str, Any]:
        knowledge = get_knowledge(request)
        raw, size = _read_upload(file)
        content_type = (file.content_type or "").split(";")[0].strip()
        if content_type in TEXT_UPLOAD_TYPES:
            extracted = raw.decode("utf-8", errors="replace")[:MAX_EXTRACTED_CHARS]
        else:
            extracted = f"[{content_type or 'unknown'} file: {file.filename}, {size} bytes]"

        content = f"{description.strip()}\n\n{extracted}".strip() if description.strip() else extracted
        if not content.strip():
            raise InvalidInputError("File is empty")
        tag_list = [t.strip() for t in tags.split(",") if t.strip()]
        memory_id = knowledge.store(
            demo_user(sid).id, content, memory_type="fact", tags=["file", *tag_list], source="upload"
        )
        entry = knowledge.get(memory_id)
        return {
            "success": True,
            "memory_id": memory_id,
            "file_name": file.filename,
            "file_type": content_type,
            "file_size": size,
            "extracted_content": extracted,
            "searchable_keywords": list(entry.keywords),
            "content_summary": summarize_content(extracted),
        }

    # --- EmotiSense ---

    @app.post("/emotisense/mood_journal")
    def add_mood_entry(
        body: MoodEntryRequest, request: Request, sid: str = Depends(session_id)
    ) -> dict[str, Any]:
        if body.mood_rating is None or not 1 <= body.mood_rating <= 10:
            raise InvalidInputError("Mood rating must be between 1 and 10")
        entry = MoodEntry(
            timestamp=datetime.now(),
            mood_rating=body.mood_rating,
            emotions=tuple(body.emotions),
            notes=body.notes,
            triggers=tuple(body.triggers),
            energy_level=body.energy_level,
        )
        request.app.state.mood_journal.append(sid, entry)
        entries = _journal(request, sid)
        settings = request.app.state.config.analytics
        return {
            "success": True,
            "entry": _mood_dict(entry),
            "total_entries": len(entries),
            "insights": analytics.mood_insights(entries, settings.mood_window, settings.trend_epsilon),
        }

    @app.get("/emotisense/mood_journal")
    def mood_journal(request: Request, sid: str = Depends(session_id)) -> dict[str, Any]:
        entries = _journal(request, sid)
        settings = request.app.state.config.analytics
        return {
            "success": True,
            "entries": [_mood_dict(e) for e in entries],
            "patterns": analytics.mood_patterns(entries, datetime.now()),
            "insights": analytics.mood_insights(entries, settings.mood_window, settings.trend_epsilon),
        }

    # --- Generic agent routes ---

    @app.get("/{agent}")
    def agent_index(agent: str, request: Request, sid: str = Depends(session_id)) -> dict[str, Any]:
        engine = get_engine(request, agent)
        body = {
            "success": True,
            "agent": engine.agent_info(),
            "stats": engine.stats(),
            "session": engine.summary(sid),
        }
        if agent == "emotisense":
            body["mood_stats"] = analytics.daily_mood_stats(_journal(request, sid), datetime.now())
        if agent == "memora" and request.app.state.knowledge is not None:
            body["knowledge_stats"] = request.app.state.knowledge.stats(demo_user(sid).id)
        return body

    @app.post("/{agent}/chat")
    def chat(
        agent: str, request: Request, body: ChatRequest | None = None, sid: str = Depends(session_id)
    ) -> Any:
        engine = get_engine(request, agent)
        message = body.message if body else None
        if message is None or not message.strip():
            raise InvalidInputError()
        try:
            result = engine.chat(sid, message)
            return engine.render(result)
        except InvalidInputError:
            raise
        except Exception:
            logger.exception("%s: chat failed", agent)
            return JSONResponse(status_code=500, content={"success": False, "message": CHAT_FAILURE_MESSAGE})

    @app.get("/{agent}/status")
    def agent_status(agent: str, request: Request) -> dict[str, Any]:
        return {"success": True, **get_engine(request, agent).status()}

    @app.get("/{agent}/history")
    def agent_history(
        agent: str, request: Request, limit: int = 10, sid: str = Depends(session_id)
    ) -> dict[str, Any]:
        history = get_engine(request, agent).history(sid, limit)
        return {"success": True, "history": history, "count": len(history)}

    @app.get("/{agent}/analytics")
    def agent_analytics(agent: str, request: Request, sid: str = Depends(session_id)) -> dict[str, Any]:
        return {"success": True, "analytics": get_engine(request, agent).summary(sid)}

    @app.post("/{agent}/clear")
    def clear_session(agent: str, request: Request, sid: str = Depends(session_id)) -> dict[str, Any]:
        get_engine(request, agent).clear(sid)
        return {"success": True, "message": "Conversation history cleared"}

    return app


app = create_app()
