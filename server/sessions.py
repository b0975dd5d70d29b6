import logging
import time

from core.config import Config
from core.orchestrator import DiagnosticSession
from llm.client import LLMClient
from tools.executor import ToolExecutor

logger = logging.getLogger(__name__)


class SessionNotFound(KeyError):
    pass


class SessionRegistry:
    """In-process map of live conversations; nothing survives a restart.

    Sessions idle for longer than ``server.session_idle_s`` are pruned when a
    new one is created. At ``server.max_sessions`` the least recently active
    idle session is evicted to make room. Sessions mid-turn are never evicted.
    """

    def __init__(self, config: Config, llm_client: LLMClient, executor: ToolExecutor):
        self.config = config
        self.llm = llm_client
        self.executor = executor
        self._sessions: dict[str, DiagnosticSession] = {}

    def create(self, merchant_context: str = "") -> DiagnosticSession:
        self.prune()
        self._make_room()
        session = DiagnosticSession(
            config=self.config,
            llm_client=self.llm,
            executor=self.executor,
            merchant_context=merchant_context,
        )
        self._sessions[session.session_id] = session
        return session

    def get(self, session_id: str) -> DiagnosticSession:
        try:
            session = self._sessions[session_id]
        except KeyError:
            raise SessionNotFound(session_id) from None
        session.touch()
        return session

    def close(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def prune(self, now: float | None = None) -> list[str]:
        """Drop sessions idle past the configured limit; returns their ids."""
        now = time.monotonic() if now is None else now
        cutoff = now - self.config.server.session_idle_s
        expired = [
            sid for sid, s in self._sessions.items() if s.last_active < cutoff and not s.busy
        ]
        for sid in expired:
            del self._sessions[sid]
        if expired:
            logger.info("Pruned %d idle session(s)", len(expired))
        return expired

    def _make_room(self) -> None:
        limit = self.config.server.max_sessions
        while len(self._sessions) >= limit:
            idle = [s for s in self._sessions.values() if not s.busy]
            if not idle:
                logger.warning("All %d sessions are mid-turn; exceeding max_sessions", len(self._sessions))
                return
            oldest = min(idle, key=lambda s: s.last_active)
            del self._sessions[oldest.session_id]
            logger.info("Evicted session %s (max_sessions=%d)", oldest.session_id, limit)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
