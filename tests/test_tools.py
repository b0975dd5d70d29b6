import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from core.config import DiagnosticsConfig
from core.types import DiagnosticIntent, DiagnosticResult, HealthStatus, ToolCall
from diagnostics.moses import MosesClient
from diagnostics.synthetic import FRA_BLOCK_RESULT
from llm.tools import CHECK_MOSES_LOGS
from tools import register_all_tools
from tools.executor import ToolExecutor


@pytest.fixture
def moses():
    client = MagicMock()
    client.query = AsyncMock(return_value=FRA_BLOCK_RESULT)
    return client


@pytest.fixture
def executor(moses):
    ex = ToolExecutor()
    register_all_tools(ex, moses)
    return ex


def test_register_all_tools(executor):
    assert executor.names == [CHECK_MOSES_LOGS]


@pytest.mark.asyncio
async def test_unknown_tool(executor):
    tc = ToolCall(id="1", name="nonexistent_tool", args={})
    result = await executor.execute(tc)
    assert result.is_error
    assert "Unknown tool" in result.content


@pytest.mark.asyncio
async def test_check_moses_logs_serializes_result(executor, moses):
    tc = ToolCall(id="2", name=CHECK_MOSES_LOGS, args={"queryType": "FRA_BLOCKS", "merchantId": "M77"})
    result = await executor.execute(tc)

    assert not result.is_error
    assert result.tool_call_id == "2"
    assert result.data == FRA_BLOCK_RESULT
    assert json.loads(result.content)["last_error_code"] == "RISK_BLOCK_VELOCITY"
    moses.query.assert_awaited_once_with("M77", DiagnosticIntent.FRA_BLOCKS)


@pytest.mark.asyncio
async def test_check_moses_logs_defaults_merchant(executor, moses):
    tc = ToolCall(id="3", name=CHECK_MOSES_LOGS, args={"queryType": "INTEGRATION_HEALTH"})
    await executor.execute(tc)
    moses.query.assert_awaited_once_with("current_merchant", DiagnosticIntent.INTEGRATION_HEALTH)


@pytest.mark.asyncio
async def test_check_moses_logs_empty_merchant_uses_sentinel(executor, moses):
    tc = ToolCall(id="4", name=CHECK_MOSES_LOGS, args={"queryType": "TRANSACTION_STATS", "merchantId": ""})
    await executor.execute(tc)
    moses.query.assert_awaited_once_with("current_merchant", DiagnosticIntent.TRANSACTION_STATS)


@pytest.mark.asyncio
async def test_unexpected_argument_keys_are_ignored(executor, moses):
    tc = ToolCall(
        id="5",
        name=CHECK_MOSES_LOGS,
        args={"queryType": "FRA_BLOCKS", "merchant_id": "m-9", "verbose": True},
    )
    result = await executor.execute(tc)
    assert not result.is_error
    moses.query.assert_awaited_once_with("current_merchant", DiagnosticIntent.FRA_BLOCKS)


@pytest.mark.asyncio
async def test_missing_query_type_falls_back_to_transaction_stats(executor, moses):
    tc = ToolCall(id="6", name=CHECK_MOSES_LOGS, args={"query": "FRA_BLOCKS"})
    result = await executor.execute(tc)
    assert not result.is_error
    moses.query.assert_awaited_once_with("current_merchant", DiagnosticIntent.TRANSACTION_STATS)
    assert "TypeError" in result.content
    moses.query.assert_not_called()


@pytest.mark.asyncio
async def test_handler_exception_becomes_error_result():
    async def broken(**_kwargs):
        raise RuntimeError("kaput")

    ex = ToolExecutor()
    ex.register("broken", broken)
    result = await ex.execute(ToolCall(id="6", name="broken", args={}))
    assert result.is_error
    assert result.content == "Error: RuntimeError: kaput"


@pytest.mark.asyncio
async def test_plain_handler_result_is_stringified():
    async def echo(text: str) -> str:
        return text

    ex = ToolExecutor()
    ex.register("echo", echo)
    result = await ex.execute(ToolCall(id="7", name="echo", args={"text": "hi"}))
    assert result.content == "hi"


@pytest.mark.asyncio
async def test_end_to_end_with_real_client_in_mock_mode():
    ex = ToolExecutor()
    register_all_tools(ex, MosesClient(DiagnosticsConfig(mock_latency_ms=0)))
    result = await ex.execute(ToolCall(id="8", name=CHECK_MOSES_LOGS, args={"queryType": "INTEGRATION_HEALTH"}))
    assert DiagnosticResult.from_dict(json.loads(result.content)).status == HealthStatus.WARNING
