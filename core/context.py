import json

from core.types import ConversationTurn, ToolCall, TurnRole


class TranscriptError(RuntimeError):
    """Raised when a turn would break the one-outstanding-tool-call rule."""


class Transcript:
    """Ordered turns of one conversation, owned by a single session."""

    def __init__(self) -> None:
        self.turns: list[ConversationTurn] = []

    @property
    def pending_tool_call(self) -> ToolCall | None:
        if self.turns and self.turns[-1].role == TurnRole.TOOL_CALL:
            return self.turns[-1].tool_call
        return None

    def add_user(self, content: str) -> None:
        self._require_no_pending("user input")
        self.turns.append(ConversationTurn(role=TurnRole.USER, content=content))

    def add_tool_call(self, tool_call: ToolCall) -> None:
        self._require_no_pending("another tool call")
        self.turns.append(ConversationTurn(role=TurnRole.TOOL_CALL, tool_call=tool_call))

    def add_tool_result(self, tool_call_id: str, content: str) -> None:
        pending = self.pending_tool_call
        if pending is None or pending.id != tool_call_id:
            raise TranscriptError(f"tool result {tool_call_id} does not answer the pending request")
        self.turns.append(
            ConversationTurn(role=TurnRole.TOOL_RESULT, content=content, tool_call_id=tool_call_id)
        )

    def add_assistant(self, content: str) -> None:
        self._require_no_pending("assistant text")
        self.turns.append(ConversationTurn(role=TurnRole.ASSISTANT, content=content))

    def checkpoint(self) -> int:
        return len(self.turns)

    def rollback(self, checkpoint: int) -> None:
        del self.turns[checkpoint:]

    def clear(self) -> None:
        self.turns.clear()

    def get_messages(self) -> list[dict]:
        """Render turns as chat-completions messages."""
        messages: list[dict] = []
        for t in self.turns:
            if t.role == TurnRole.USER:
                messages.append({"role": "user", "content": t.content})
            elif t.role == TurnRole.ASSISTANT:
                messages.append({"role": "assistant", "content": t.content})
            elif t.role == TurnRole.TOOL_CALL and t.tool_call is not None:
                tc = t.tool_call
                messages.append(
                    {
                        "role": "assistant",
                        "content": None,
                        "tool_calls": [
                            {
                                "id": tc.id,
                                "type": "function",
                                "function": {
                                    "name": tc.name,
                                    "arguments": json.dumps(tc.args),
                                },
                            }
                        ],
                    }
                )
            elif t.role == TurnRole.TOOL_RESULT:
                messages.append({"role": "tool", "tool_call_id": t.tool_call_id, "content": t.content})
        return messages

    def history(self) -> list[dict[str, str]]:
        """User/assistant exchange only, in the shape the summary step expects."""
        return [
            {"role": "user" if t.role == TurnRole.USER else "model", "text": t.content}
            for t in self.turns
            if t.role in (TurnRole.USER, TurnRole.ASSISTANT)
        ]

    def _require_no_pending(self, what: str) -> None:
        pending = self.pending_tool_call
        if pending is not None:
            raise TranscriptError(f"cannot add {what} while tool call {pending.id} is outstanding")
