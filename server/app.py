import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from core.config import Config, load_config
from core.log import configure_logging
from core.orchestrator import DiagnosticSession
from core.summary import SummaryGenerator
from diagnostics import create_moses_client
from diagnostics.moses import MosesClient
from llm.client import LLMClient
from server.chat_handler import ChatHandler
from server.sessions import SessionNotFound, SessionRegistry
from tools import register_all_tools
from tools.executor import ToolExecutor

logger = logging.getLogger(__name__)


class SessionCreate(BaseModel):
    merchant_context: str = ""


class MessageIn(BaseModel):
    text: str


class TranscriptEntry(BaseModel):
    role: str
    text: str


class SummaryRequest(BaseModel):
    transcript: list[TranscriptEntry]


def create_app(
    config: Config | None = None,
    llm_client: LLMClient | None = None,
    moses_client: MosesClient | None = None,
) -> FastAPI:
    """Build the API. Collaborators default to ones built from config."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        cfg = config or load_config()
        configure_logging(cfg.logging)

        llm = llm_client or LLMClient(cfg.llm)
        moses = moses_client or create_moses_client(cfg)
        executor = ToolExecutor()
        register_all_tools(executor, moses)

        app.state.config = cfg
        app.state.llm = llm
        app.state.moses = moses
        app.state.sessions = SessionRegistry(cfg, llm, executor)
        app.state.summarizer = SummaryGenerator(llm)
        logger.info("Merchant First-Aid ready (diagnostics %s)", "live" if moses.live else "mock")

        yield

    app = FastAPI(title="Merchant First-Aid", lifespan=lifespan)

    def _session(request: Request, session_id: str) -> DiagnosticSession:
        try:
            return request.app.state.sessions.get(session_id)
        except SessionNotFound:
            raise HTTPException(status_code=404, detail=f"unknown session {session_id}") from None

    @app.get("/health")
    async def health(request: Request) -> dict[str, Any]:
        state = request.app.state
        return {
            "status": "ok",
            "llm": await state.llm.health(),
            "diagnostics": "live" if state.moses.live else "mock",
            "sessions": len(state.sessions),
        }

    @app.post("/sessions")
    async def create_session(request: Request, body: SessionCreate | None = None) -> dict[str, Any]:
        session = request.app.state.sessions.create(body.merchant_context if body else "")
        return {"session_id": session.session_id, "state": session.state.value}

    @app.post("/sessions/{session_id}/messages")
    async def send_message(request: Request, session_id: str, body: MessageIn) -> dict[str, Any]:
        session = _session(request, session_id)
        response = await session.process(body.text)
        return {
            "text": response.text,
            "tool_outputs": [
                {"tool": tc.name, "args": tc.args, "result": tr.content, "is_error": tr.is_error}
                for tc, tr in zip(response.tool_calls_made, response.tool_results, strict=False)
            ],
            "fallback": response.is_fallback,
            "latency_ms": response.latency_ms,
        }

    @app.post("/sessions/{session_id}/escalate")
    async def escalate(request: Request, session_id: str) -> dict[str, Any]:
        session = _session(request, session_id)
        history = session.history()
        if not history:
            raise HTTPException(status_code=400, detail="nothing to escalate yet")
        return await _summarize(request, history)

    @app.delete("/sessions/{session_id}")
    async def close_session(request: Request, session_id: str) -> dict[str, Any]:
        _session(request, session_id)
        request.app.state.sessions.close(session_id)
        return {"closed": session_id}

    @app.post("/summaries")
    async def summarize(request: Request, body: SummaryRequest) -> dict[str, Any]:
        if not body.transcript:
            raise HTTPException(status_code=400, detail="transcript is empty")
        return await _summarize(request, [entry.model_dump() for entry in body.transcript])

    async def _summarize(request: Request, transcript: list[dict[str, str]]) -> dict[str, Any]:
        try:
            note = await request.app.state.summarizer.summarize(transcript)
        except Exception as e:
            logger.warning("Triage note generation failed: %s", e)
            raise HTTPException(status_code=502, detail=f"could not generate triage note: {e}") from e
        return {
            "issue": note.issue,
            "diagnosis": note.diagnosis,
            "action": note.action,
            "text": note.to_text(),
        }

    @app.websocket("/ws/chat")
    async def websocket_chat(ws: WebSocket) -> None:
        await ws.accept()
        registry: SessionRegistry = ws.app.state.sessions
        session = registry.create()
        handler = ChatHandler(ws, session, ws.app.state.summarizer)
        try:
            await handler.run()
        except WebSocketDisconnect:
            pass
        finally:
            registry.close(session.session_id)

    return app
