import json
import logging
import os
from typing import Any

from openai import AsyncOpenAI

from core.config import LLMConfig
from core.types import EngineReply, ToolCall

logger = logging.getLogger(__name__)


class MalformedToolCall(ValueError):
    """The engine requested a tool with a missing name or non-object arguments."""


def parse_tool_call(call_id: str, name: str | None, arguments: str | None) -> ToolCall:
    """Decode one engine tool request. Empty arguments mean ``{}``."""
    if not name:
        raise MalformedToolCall(f"tool call {call_id!r} has no function name")
    try:
        args: Any = json.loads(arguments) if arguments and arguments.strip() else {}
    except json.JSONDecodeError as e:
        raise MalformedToolCall(f"{name}: arguments are not valid JSON ({e.msg})") from e
    if not isinstance(args, dict):
        raise MalformedToolCall(f"{name}: arguments must be a JSON object, got {type(args).__name__}")
    return ToolCall(id=call_id, name=name, args=args)


class LLMClient:
    """Chat-completions client speaking the one-tool-per-reply protocol."""

    def __init__(self, config: LLMConfig):
        self.config = config
        if config.backend == "api":
            self.client = AsyncOpenAI(
                base_url=config.api.base_url,
                api_key=os.environ.get(config.api.api_key_env, ""),
            )
            self.model = config.api.model
        else:
            self.client = AsyncOpenAI(
                base_url=config.local.base_url,
                api_key="not-needed",
            )
            self.model = config.local.model

    async def chat(self, messages: list[dict], tools: list[dict] | None = None) -> EngineReply:
        """Send the conversation and return the engine's reply.

        Only the first tool call of a reply is decoded and returned; the rest
        are counted in ``dropped_tool_calls``. Raises ``MalformedToolCall`` if
        that first call cannot be decoded.
        """
        kwargs: dict = {"model": self.model, "messages": messages}
        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"
            if self.config.backend == "api":
                kwargs["parallel_tool_calls"] = False

        response = await self.client.chat.completions.create(**kwargs)
        if not response.choices:
            raise ValueError("LLM response carried no choices")
        message = response.choices[0].message

        calls = message.tool_calls or []
        if not calls:
            return EngineReply(text=message.content or "", raw=response)

        first = calls[0]
        function = getattr(first, "function", None)
        tool_call = parse_tool_call(
            first.id,
            getattr(function, "name", None),
            getattr(function, "arguments", None),
        )
        return EngineReply(
            text=message.content or "",
            tool_call=tool_call,
            dropped_tool_calls=len(calls) - 1,
            raw=response,
        )

    async def chat_simple(self, messages: list[dict]) -> str:
        """One-shot completion without tools; returns the text."""
        reply = await self.chat(messages)
        return reply.text

    async def health(self) -> dict:
        try:
            await self.client.models.list()
            return {"status": "ok", "model": self.model, "backend": self.config.backend}
        except Exception as e:
            logger.warning("LLM health check failed: %s", e)
            return {"status": "error", "error": str(e)}
