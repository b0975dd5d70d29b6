from unittest.mock import AsyncMock, MagicMock

import pytest

from core.config import Config, load_config
from core.types import EngineReply


@pytest.fixture
def config() -> Config:
    """Load default config for tests."""
    return load_config()


@pytest.fixture
def temp_config(tmp_path):
    """Create a temp config TOML for isolated tests."""
    toml_content = """
[server]
host = "127.0.0.1"
port = 7860
[llm]
backend = "api"
max_tool_iterations = 3
[llm.api]
base_url = "https://api.openai.com/v1"
model = "gpt-4o-mini"
api_key_env = "OPENAI_API_KEY"
[diagnostics]
use_mock_data = true
mock_latency_ms = 0
mock_seed = 7
[logging]
level = "DEBUG"
"""
    config_path = tmp_path / "test.toml"
    config_path.write_text(toml_content)
    return load_config(str(config_path))


@pytest.fixture
def mock_llm() -> MagicMock:
    llm = MagicMock()
    llm.chat = AsyncMock(return_value=EngineReply(text="Hello!"))
    llm.chat_simple = AsyncMock(return_value="")
    llm.health = AsyncMock(return_value={"status": "ok"})
    return llm
