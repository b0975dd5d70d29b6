import json
import logging
from typing import Any

from fastapi import WebSocket

from core.orchestrator import DiagnosticSession
from core.summary import SummaryGenerator
from core.types import StreamChunk, StreamChunkType

logger = logging.getLogger(__name__)


class ChatHandler:
    """WebSocket protocol handler: text turns in, tool activity and answers out."""

    def __init__(self, ws: WebSocket, session: DiagnosticSession, summarizer: SummaryGenerator):
        self.ws = ws
        self.session = session
        self.summarizer = summarizer
        self._setup_callbacks()

    def _setup_callbacks(self) -> None:
        self.session.on_stream_chunk = self._on_stream_chunk

    async def _on_stream_chunk(self, chunk: StreamChunk) -> None:
        if chunk.type == StreamChunkType.STATE:
            await self.ws.send_json({"type": "state", "session": chunk.content})
        elif chunk.type == StreamChunkType.TOOL_START:
            await self.ws.send_json({"type": "tool_start", **chunk.content})
        elif chunk.type == StreamChunkType.TOOL_RESULT:
            await self.ws.send_json({"type": "tool_result", **chunk.content})

    async def run(self) -> None:
        """Main loop — receive messages from WebSocket."""
        await self.ws.send_json({"type": "session", "session_id": self.session.session_id})
        while True:
            message = await self.ws.receive()

            if message["type"] == "websocket.receive":
                if message.get("text"):
                    try:
                        data = json.loads(message["text"])
                    except json.JSONDecodeError:
                        data = None
                    if not isinstance(data, dict):
                        await self.ws.send_json({"type": "error", "error": "expected a JSON object"})
                        continue
                    await self._handle_control(data)

            elif message["type"] == "websocket.disconnect":
                break

    async def _handle_control(self, data: dict[str, Any]) -> None:
        msg_type = data.get("type")

        if msg_type == "text_input":
            text = str(data.get("text") or "").strip()
            if not text:
                return
            response = await self.session.process(text)
            await self.ws.send_json({
                "type": "response",
                "text": response.text,
                "tools_used": [tc.name for tc in response.tool_calls_made],
                "fallback": response.is_fallback,
            })

        elif msg_type == "escalate":
            try:
                note = await self.summarizer.summarize(self.session.history())
            except Exception as e:
                logger.warning("Escalation for session %s failed: %s", self.session.session_id, e)
                await self.ws.send_json({"type": "error", "error": f"Could not generate triage note: {e}"})
                return
            await self.ws.send_json({
                "type": "triage_note",
                "issue": note.issue,
                "diagnosis": note.diagnosis,
                "action": note.action,
                "text": note.to_text(),
            })

        elif msg_type == "reset":
            self.session.reset()
            await self.ws.send_json({"type": "state", "session": self.session.state.value})

        else:
            await self.ws.send_json({"type": "error", "error": f"unknown message type: {msg_type}"})
