"""
Threadsmith Context Server

FastAPI surface through which the chat bot reaches the context engine.

Endpoints:
- GET /health: Health check
- GET /stats: Process-wide or per-channel counters
- POST /messages: Process one chat message
- GET /channels/{channel_id}/context: Prompt-ready context text
- POST /channels/{channel_id}/query: Answer a context question
- DELETE /channels/{channel_id}: Clear a channel's context
- POST /tasks/{task_id}/origin: Link a created ticket to its conversation
- GET /tasks/{task_id}/context: Origin context of a ticket
- POST /tasks/{task_id}/status: Update a ticket's status
- POST /confidence: Record an extraction decision
- POST /confidence/{entry_id}/outcome: Record the human outcome
- POST /confidence/adjust: Learned confidence nudge for a message
- GET /confidence/analysis: Confidence trail analysis
- GET /projects/{project_name}: Cross-channel project context

Messages of one channel are processed one at a time; channels interleave.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from ..common.config import ThreadsmithConfig, load_config
from ..common.schemas import ChatEvent, ConfidenceLevel, Outcome, TaskStatus, coerce_enum
from .engine import ContextEngine

logger = logging.getLogger("threadsmith.context.server")

# Global state
config: Optional[ThreadsmithConfig] = None
engine: Optional[ContextEngine] = None
_channel_locks: Dict[str, asyncio.Lock] = {}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize the engine on startup"""
    global config, engine

    logger.info("Starting up...")
    config = load_config()
    engine = ContextEngine(config.engine)
    _channel_locks.clear()
    logger.info(
        "Engine ready (idle after %d min, stale after %dh)",
        config.engine.thread_idle_minutes, config.engine.stale_after_hours,
    )

    yield

    logger.info("Shutting down...")
    engine = None


app = FastAPI(
    title="Threadsmith Context Engine",
    description="Conversation context for chat-to-ticket extraction",
    version="0.1.0",
    lifespan=lifespan,
)


# =============================================================================
# Request Models
# =============================================================================

class MessageRequest(ChatEvent):
    """Incoming chat message"""
    project_name: Optional[str] = None
    message_id: Optional[str] = None


class QueryRequest(BaseModel):
    query: str
    project_name: Optional[str] = None


class OriginMessage(BaseModel):
    content: str
    username: str
    timestamp: Optional[float] = None


class LinkTaskRequest(BaseModel):
    """Ticket-to-conversation link"""
    channel_id: str
    thread_id: Optional[str] = None
    messages: List[OriginMessage] = Field(default_factory=list)
    decision_id: Optional[str] = None
    title: Optional[str] = None


class TaskStatusRequest(BaseModel):
    channel_id: str
    status: str  # TaskStatus value or a tracker-specific status
    project_name: Optional[str] = None


class ConfidenceRequest(BaseModel):
    message: str
    result: Dict[str, Any] = Field(default_factory=dict)  # {is_actionable, confidence, title}
    action: Optional[str] = None  # ExtractionAction value or a host-specific action


class OutcomeRequest(BaseModel):
    outcome: Outcome
    correction: Optional[str] = None


class AdjustRequest(BaseModel):
    message: str
    base_confidence: str = ConfidenceLevel.MEDIUM.value


# =============================================================================
# Helpers
# =============================================================================

def _require_engine() -> ContextEngine:
    if engine is None:
        raise HTTPException(status_code=503, detail="Engine not initialized")
    return engine


def _lock_for(channel_id: str) -> asyncio.Lock:
    lock = _channel_locks.get(channel_id)
    if lock is None:
        lock = asyncio.Lock()
        _channel_locks[channel_id] = lock
    return lock


def _drop_lock(channel_id: str) -> None:
    lock = _channel_locks.get(channel_id)
    if lock is not None and not lock.locked():
        del _channel_locks[channel_id]


# =============================================================================
# Endpoints
# =============================================================================

@app.get("/health")
async def health():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "threadsmith",
        "initialized": engine is not None,
    }


@app.get("/stats")
async def get_stats(channel_id: Optional[str] = None):
    """Get engine statistics"""
    ctx = _require_engine()
    return {
        "service": "threadsmith",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "stats": ctx.get_context_stats(channel_id),
    }


@app.post("/messages")
async def process_message(request: MessageRequest):
    """Run a chat message through the context pipeline"""
    ctx = _require_engine()
    async with _lock_for(request.channel_id):
        return ctx.process_message(
            request.channel_id,
            request.content,
            request.username,
            project_name=request.project_name,
            timestamp=request.timestamp,
            message_id=request.message_id,
        )


@app.get("/channels/{channel_id}/context")
async def get_channel_context(channel_id: str, max_messages: int = 10):
    ctx = _require_engine()
    async with _lock_for(channel_id):
        text = ctx.get_formatted_context(channel_id, max_messages=max_messages)
    return {"channel_id": channel_id, "context": text}


@app.post("/channels/{channel_id}/query")
async def query_channel(channel_id: str, request: QueryRequest):
    """Answer a free-form context question"""
    ctx = _require_engine()
    async with _lock_for(channel_id):
        answer = ctx.answer_context_query(request.query, channel_id, request.project_name)
    return {"channel_id": channel_id, "answer": answer}


@app.delete("/channels/{channel_id}")
async def clear_channel(channel_id: str):
    ctx = _require_engine()
    async with _lock_for(channel_id):
        ctx.clear_channel_context(channel_id)
    _drop_lock(channel_id)
    return {"status": "cleared", "channel_id": channel_id}


@app.post("/tasks/{task_id}/origin")
async def link_task(task_id: str, request: LinkTaskRequest):
    """Link a created ticket to the conversation it came from"""
    ctx = _require_engine()

    decision = None
    if request.decision_id:
        decision = ctx.decisions.find_decision(request.decision_id)
        if decision is None:
            raise HTTPException(status_code=404, detail="Decision not found")

    async with _lock_for(request.channel_id):
        origin = ctx.link_task_to_origin(
            task_id,
            request.channel_id,
            thread_id=request.thread_id,
            messages=[m.model_dump() for m in request.messages],
            decision=decision,
            title=request.title,
        )
    return origin


@app.get("/tasks/{task_id}/context")
async def get_task_context(task_id: str):
    ctx = _require_engine()
    text = ctx.get_task_context_for_ai(task_id)
    if text is None:
        raise HTTPException(status_code=404, detail="Task origin not found")
    return {
        "task_id": task_id,
        "context": text,
        "summary": ctx.get_task_origin_summary(task_id),
        "origin": ctx.linker.get_full_context(task_id),
    }


@app.post("/tasks/{task_id}/status")
async def update_task_status(task_id: str, request: TaskStatusRequest):
    ctx = _require_engine()
    async with _lock_for(request.channel_id):
        updated = ctx.update_task_status(
            request.channel_id, task_id, request.status, project_name=request.project_name
        )
    if not updated:
        raise HTTPException(status_code=404, detail="Task not found")
    status = coerce_enum(TaskStatus, request.status)
    return {"task_id": task_id, "status": getattr(status, "value", status)}


@app.post("/confidence")
async def record_confidence(request: ConfidenceRequest):
    """Record an extraction decision in the confidence trail"""
    ctx = _require_engine()
    return ctx.record_confidence(request.message, request.result, request.action)


@app.post("/confidence/{entry_id}/outcome")
async def record_outcome(entry_id: str, request: OutcomeRequest):
    ctx = _require_engine()
    if not ctx.record_outcome(entry_id, request.outcome, request.correction):
        raise HTTPException(status_code=404, detail="Confidence entry not found")
    return {"entry_id": entry_id, "outcome": request.outcome.value}


@app.post("/confidence/adjust")
async def adjust_confidence(request: AdjustRequest):
    ctx = _require_engine()
    return ctx.get_learned_confidence_adjustment(request.message, request.base_confidence)


@app.get("/confidence/analysis")
async def confidence_analysis():
    ctx = _require_engine()
    return ctx.analyze_confidence_patterns()


@app.get("/projects/{project_name}")
async def get_project(project_name: str):
    """Cross-channel context of a project"""
    ctx = _require_engine()
    return {
        "project_name": project_name,
        "context": ctx.get_cross_channel_context(project_name),
        "summary": ctx.get_project_summary(project_name),
    }


# =============================================================================
# CLI Entry Point
# =============================================================================

def run_server():
    """Run the Threadsmith context server"""
    import uvicorn

    load_dotenv()
    cfg = load_config()
    logging.basicConfig(
        level=getattr(logging, cfg.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    logger.info("Starting server on %s:%d", cfg.server.host, cfg.server.port)
    uvicorn.run(
        "threadsmith.context.server:app",
        host=cfg.server.host,
        port=cfg.server.port,
        reload=False,
    )


if __name__ == "__main__":
    run_server()
