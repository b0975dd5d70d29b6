import logging
from collections.abc import Callable, Coroutine
from typing import Any

from core.types import ToolCall, ToolResult

logger = logging.getLogger(__name__)

# Type alias for async handler functions
Handler = Callable[..., Coroutine[Any, Any, Any]]


class ToolExecutor:
    def __init__(self) -> None:
        self._handlers: dict[str, Handler] = {}

    def register(self, name: str, handler: Handler) -> None:
        self._handlers[name] = handler

    @property
    def names(self) -> list[str]:
        return list(self._handlers)

    async def execute(self, tool_call: ToolCall) -> ToolResult:
        handler = self._handlers.get(tool_call.name)
        if not handler:
            logger.warning("Engine requested unknown tool %s", tool_call.name)
            return ToolResult(
                tool_call_id=tool_call.id,
                content=f"Unknown tool: {tool_call.name}",
                is_error=True,
            )

        try:
            result = await handler(**tool_call.args)
        except Exception as e:
            logger.warning("Tool %s failed: %s", tool_call.name, e)
            return ToolResult(
                tool_call_id=tool_call.id,
                content=f"Error: {type(e).__name__}: {e}",
                is_error=True,
            )

        # Structured results carry their own wire form
        to_json = getattr(result, "to_json", None)
        content = to_json() if callable(to_json) else str(result)
        return ToolResult(tool_call_id=tool_call.id, content=content, data=result)
