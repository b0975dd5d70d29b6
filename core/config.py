import tomli
from pydantic import BaseModel


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 7860
    max_sessions: int = 1000
    session_idle_s: float = 1800.0


class LLMLocalConfig(BaseModel):
    base_url: str = "http://localhost:8000/v1"
    model: str = "mistralai/Mistral-Nemo-Instruct-2407"


class LLMApiConfig(BaseModel):
    base_url: str = "https://api.openai.com/v1"
    model: str = "gpt-4o-mini"
    api_key_env: str = "OPENAI_API_KEY"


class LLMConfig(BaseModel):
    backend: str = "api"
    max_tool_iterations: int = 5
    local: LLMLocalConfig = LLMLocalConfig()
    api: LLMApiConfig = LLMApiConfig()


class DiagnosticsConfig(BaseModel):
    # True serves canned results without touching the network
    use_mock_data: bool = True
    moses_host: str = ""
    olympus_host: str = ""
    token_path: str = "/olympus/im/v1/oauth/token"
    query_path: str = "/foxtrot/v1/fql"
    client_id_env: str = "OLYMPUS_CLIENT_ID"
    client_secret_env: str = "OLYMPUS_CLIENT_SECRET"
    app_id: str = "merchant-first-aid"
    lookback_minutes: int = 60
    timeout_s: float = 10.0
    mock_latency_ms: int = 1500
    mock_seed: int | None = None


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class Config(BaseModel):
    server: ServerConfig = ServerConfig()
    llm: LLMConfig = LLMConfig()
    diagnostics: DiagnosticsConfig = DiagnosticsConfig()
    logging: LoggingConfig = LoggingConfig()


def load_config(path: str = "config/default.toml") -> Config:
    """Load config from TOML file, validate with Pydantic."""
    with open(path, "rb") as f:
        data = tomli.load(f)
    return Config(**data)
