import asyncio
import logging
import time
import uuid
from collections.abc import Callable, Coroutine
from typing import Any

from core.config import Config
from core.context import Transcript
from core.types import Response, SessionState, StreamChunk, StreamChunkType, ToolCall, ToolResult
from llm.client import LLMClient
from llm.prompts import build_system_prompt
from llm.tools import DEFAULT_MERCHANT_ID, get_tools
from tools.executor import ToolExecutor

logger = logging.getLogger(__name__)

APOLOGY_TEXT = "I'm having trouble connecting to the diagnostic server. Please contact human support."

# Type alias for async callbacks
AsyncCallback = Callable[..., Coroutine[Any, Any, None]]


class ToolLoopExceeded(RuntimeError):
    """The engine kept requesting tools past the configured round limit."""


class DiagnosticSession:
    """One merchant conversation with the reasoning engine.

    State machine: IDLE → AWAITING_MODEL → (TOOL_REQUESTED → AWAITING_MODEL)* → RESPONDED → IDLE.

    At most one tool call is honoured per engine reply; any further calls in
    the same reply are dropped. The system prompt and tool schema are fixed
    when the session starts and never change afterwards.
    """

    def __init__(
        self,
        config: Config,
        llm_client: LLMClient,
        executor: ToolExecutor,
        merchant_context: str = "",
    ):
        self.config = config
        self.llm = llm_client
        self.executor = executor
        self.merchant_context = merchant_context
        self.session_id = str(uuid.uuid4())[:8]
        self.transcript = Transcript()
        self.state = SessionState.IDLE
        self.system_prompt: str | None = None
        self.tools: list[dict] = []
        self._lock = asyncio.Lock()
        self.last_active = time.monotonic()

        # Callback — set by server/REPL to observe tool activity
        self.on_stream_chunk: AsyncCallback | None = None

    @property
    def started(self) -> bool:
        return self.system_prompt is not None

    @property
    def busy(self) -> bool:
        """A turn is in flight."""
        return self._lock.locked()

    def touch(self) -> None:
        self.last_active = time.monotonic()

    def start(self) -> None:
        self.system_prompt = build_system_prompt(merchant_context=self.merchant_context)
        self.tools = get_tools()
        logger.info("Session %s started", self.session_id)

    def reset(self) -> None:
        """Drop the conversation; the next message starts a new session."""
        self.transcript.clear()
        self.system_prompt = None
        self.tools = []
        self.state = SessionState.IDLE

    def history(self) -> list[dict[str, str]]:
        return self.transcript.history()

    async def process(self, user_input: str) -> Response:
        """Run one user turn to completion.

        Engine failures never escape: the turn is rolled back and the fixed
        apology is returned instead.
        """
        async with self._lock:
            self.touch()
            if not self.started:
                self.start()

            timing: dict[str, float] = {}
            tool_calls_made: list[ToolCall] = []
            tool_results: list[ToolResult] = []
            checkpoint = self.transcript.checkpoint()

            t0 = time.time()
            try:
                self.transcript.add_user(user_input)
                final_text = await self._run_tool_loop(tool_calls_made, tool_results)
            except Exception:
                logger.exception("Session %s: engine failure, returning apology", self.session_id)
                self.transcript.rollback(checkpoint)
                self.transcript.add_user(user_input)
                self.transcript.add_assistant(APOLOGY_TEXT)
                await self._set_state(SessionState.RESPONDED)
                await self._emit(StreamChunkType.TEXT, APOLOGY_TEXT)
                await self._set_state(SessionState.IDLE)
                return Response(
                    text=APOLOGY_TEXT,
                    tool_calls_made=tool_calls_made,
                    tool_results=tool_results,
                    latency_ms={"llm_total": (time.time() - t0) * 1000},
                    is_fallback=True,
                )
            timing["llm_total"] = (time.time() - t0) * 1000

            self.transcript.add_assistant(final_text)
            await self._set_state(SessionState.RESPONDED)
            await self._emit(StreamChunkType.TEXT, final_text)
            await self._set_state(SessionState.IDLE)

            return Response(
                text=final_text,
                tool_calls_made=tool_calls_made,
                tool_results=tool_results,
                latency_ms=timing,
            )

    async def _run_tool_loop(self, tool_calls_made: list[ToolCall], tool_results: list[ToolResult]) -> str:
        max_rounds = self.config.llm.max_tool_iterations
        for round_no in range(max_rounds + 1):
            await self._set_state(SessionState.AWAITING_MODEL)
            reply = await self.llm.chat(self._messages(), tools=self.tools)

            if not reply.wants_tool:
                return reply.text
            if round_no == max_rounds:
                break

            tc = reply.tool_call
            if reply.dropped_tool_calls:
                logger.warning(
                    "Session %s: engine requested %d tool calls, honouring only %s",
                    self.session_id,
                    reply.dropped_tool_calls + 1,
                    tc.name,
                )

            await self._set_state(SessionState.TOOL_REQUESTED)
            self.transcript.add_tool_call(tc)
            tool_calls_made.append(tc)

            tool_result = await self._execute(tc)
            tool_results.append(tool_result)
            self.transcript.add_tool_result(tc.id, tool_result.content)

        raise ToolLoopExceeded(f"more than {max_rounds} tool rounds")

    async def _execute(self, tc: ToolCall) -> ToolResult:
        merchant_id = tc.args.get("merchantId") or DEFAULT_MERCHANT_ID
        intent = tc.args.get("queryType", "")
        await self._emit(
            StreamChunkType.TOOL_START,
            {"tool": tc.name, "intent": intent, "merchant_id": merchant_id, "args": tc.args},
        )

        t0 = time.time()
        tool_result = await self.executor.execute(tc)
        logger.info(
            "Session %s: %s(%s) took %.0fms",
            self.session_id,
            tc.name,
            intent,
            (time.time() - t0) * 1000,
        )

        await self._emit(
            StreamChunkType.TOOL_RESULT,
            {
                "tool": tc.name,
                "intent": intent,
                "result": tool_result.content,
                "is_error": tool_result.is_error,
            },
        )
        return tool_result

    def _messages(self) -> list[dict]:
        messages: list[dict] = [{"role": "system", "content": self.system_prompt}]
        messages.extend(self.transcript.get_messages())
        return messages

    async def _set_state(self, new_state: SessionState) -> None:
        self.state = new_state
        await self._emit(StreamChunkType.STATE, new_state.value)

    async def _emit(self, chunk_type: StreamChunkType, content: Any) -> None:
        if not self.on_stream_chunk:
            return
        try:
            await self.on_stream_chunk(StreamChunk(type=chunk_type, content=content))
        except Exception as e:
            # A dropped observer must not fail the turn
            logger.warning("Session %s: stream callback failed: %s", self.session_id, e)
