import asyncio
import sys

import uvicorn

from core.config import load_config
from core.log import configure_logging
from core.orchestrator import DiagnosticSession
from core.summary import SummaryGenerator
from core.types import StreamChunk, StreamChunkType
from diagnostics import create_moses_client
from llm.client import LLMClient
from tools import register_all_tools
from tools.executor import ToolExecutor


async def print_tool_activity(chunk: StreamChunk) -> None:
    if chunk.type == StreamChunkType.TOOL_START:
        print(f"  > Moses System (Foxtrot Logs): Querying {chunk.content['intent']}...")
    elif chunk.type == StreamChunkType.TOOL_RESULT:
        print(f"  > Result: {chunk.content['result']}")


async def text_repl() -> None:
    """Text-only REPL: chat with the bot, /escalate for a triage note, /reset to start over."""
    config = load_config()
    configure_logging(config.logging)
    print(f"Merchant First-Aid starting (diagnostics: {'mock' if config.diagnostics.use_mock_data else 'live'})")

    llm_client = LLMClient(config.llm)
    executor = ToolExecutor()
    register_all_tools(executor, create_moses_client(config))
    summarizer = SummaryGenerator(llm_client)

    session = DiagnosticSession(config=config, llm_client=llm_client, executor=executor)
    session.on_stream_chunk = print_tool_activity

    health = await llm_client.health()
    print(f"LLM: {health}")
    print()

    print("Merchant First-Aid (type 'quit' to exit, '/escalate' for a ticket note)")
    print("-" * 40)
    while True:
        user_input = input("\nMerchant: ").strip()
        if user_input.lower() in ("quit", "exit", "q"):
            break
        if not user_input:
            continue

        if user_input == "/reset":
            session.reset()
            print("  [Session reset]")
            continue

        if user_input == "/escalate":
            try:
                note = await summarizer.summarize(session.history())
            except Exception as e:
                print(f"  [Escalation failed: {e}]")
                continue
            print(f"\n--- Private Note ---\n{note.to_text()}")
            continue

        response = await session.process(user_input)
        print(f"\nMerchantBot: {response.text}")
        if response.tool_calls_made:
            print(f"  [Tools used: {', '.join(tc.name for tc in response.tool_calls_made)}]")
        print(f"  [Latency: {response.latency_ms}]")


def server() -> None:
    """Start the FastAPI server."""
    config = load_config()
    print(f"Merchant First-Aid server: http://{config.server.host}:{config.server.port}")
    uvicorn.run(
        "server.app:create_app",
        factory=True,
        host=config.server.host,
        port=config.server.port,
        reload=False,
    )


if __name__ == "__main__":
    if "--text" in sys.argv:
        asyncio.run(text_repl())
    else:
        server()
