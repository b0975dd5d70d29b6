import json
from dataclasses import asdict, dataclass, field
from enum import StrEnum
from typing import Any


class DiagnosticIntent(StrEnum):
    TRANSACTION_STATS = "TRANSACTION_STATS"
    FRA_BLOCKS = "FRA_BLOCKS"
    INTEGRATION_HEALTH = "INTEGRATION_HEALTH"

    @classmethod
    def parse(cls, value: Any) -> "DiagnosticIntent":
        """Unknown or missing intents resolve to TRANSACTION_STATS."""
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return cls.TRANSACTION_STATS


class HealthStatus(StrEnum):
    HEALTHY = "HEALTHY"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


class SessionState(StrEnum):
    IDLE = "idle"
    AWAITING_MODEL = "awaiting_model"
    TOOL_REQUESTED = "tool_requested"
    RESPONDED = "responded"


class TurnRole(StrEnum):
    USER = "user"
    TOOL_CALL = "tool_call"
    TOOL_RESULT = "tool_result"
    ASSISTANT = "assistant"


class StreamChunkType(StrEnum):
    STATE = "state"
    TOOL_START = "tool_start"
    TOOL_RESULT = "tool_result"
    TEXT = "text"


@dataclass(frozen=True)
class DiagnosticResult:
    sr: int
    fra_blocks: int
    api_failures: int
    last_error_code: str | None
    status: HealthStatus

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DiagnosticResult":
        return cls(
            sr=int(data["sr"]),
            fra_blocks=int(data["fra_blocks"]),
            api_failures=int(data["api_failures"]),
            last_error_code=data.get("last_error_code"),
            status=HealthStatus(data["status"]),
        )


@dataclass
class ToolCall:
    id: str
    name: str
    args: dict[str, Any]


@dataclass
class EngineReply:
    """One engine reply: final text, or the single tool call to honour.

    ``dropped_tool_calls`` counts any further calls the engine put in the
    same reply; they are never executed.
    """

    text: str = ""
    tool_call: ToolCall | None = None
    dropped_tool_calls: int = 0
    raw: Any = None

    @property
    def wants_tool(self) -> bool:
        return self.tool_call is not None


@dataclass
class ToolResult:
    tool_call_id: str
    content: str
    is_error: bool = False
    data: Any = None  # structured payload, e.g. a DiagnosticResult


@dataclass
class ConversationTurn:
    role: TurnRole
    content: str = ""
    tool_call: ToolCall | None = None
    tool_call_id: str | None = None


@dataclass
class StreamChunk:
    type: StreamChunkType
    content: Any  # str for text/state, dict for tool notifications


@dataclass
class Response:
    text: str
    tool_calls_made: list[ToolCall] = field(default_factory=list)
    tool_results: list[ToolResult] = field(default_factory=list)
    latency_ms: dict[str, float] = field(default_factory=dict)
    is_fallback: bool = False


@dataclass(frozen=True)
class TriageNote:
    issue: str
    diagnosis: str
    action: str
    raw: str = ""

    def to_text(self) -> str:
        return f"ISSUE: {self.issue}\nDIAGNOSIS: {self.diagnosis}\nACTION: {self.action}"
