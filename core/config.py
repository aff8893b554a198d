import tomli
from pydantic import BaseModel


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 7860


class LoggingConfig(BaseModel):
    level: str = "INFO"


class SessionConfig(BaseModel):
    cookie_name: str = "agentdesk_session"
    idle_minutes: int = 120
    sweep_interval: int = 60  # seconds between idle-session sweeps


class LLMLocalConfig(BaseModel):
    base_url: str = "http://localhost:8000/v1"
    model: str = "mistralai/Mistral-Nemo-Instruct-2407"


class LLMApiConfig(BaseModel):
    base_url: str = "https://api.openai.com/v1"
    model: str = "gpt-4o-mini"
    api_key_env: str = "OPENAI_API_KEY"


class LLMConfig(BaseModel):
    enabled: bool = False
    backend: str = "api"
    timeout: float = 10.0
    max_tokens: int = 800
    local: LLMLocalConfig = LLMLocalConfig()
    api: LLMApiConfig = LLMApiConfig()


class KnowledgeConfig(BaseModel):
    db_path: str = "~/.agentdesk/knowledge.db"


class CaptureConfig(BaseModel):
    enabled: bool = True
    db_path: str = "~/.agentdesk/interactions.db"


class MemoryConfig(BaseModel):
    enabled: bool = True
    knowledge: KnowledgeConfig = KnowledgeConfig()
    capture: CaptureConfig = CaptureConfig()


class AgentsConfig(BaseModel):
    profiles_dir: str = "agents"
    enabled: list[str] = []  # empty = every profile found


class AnalyticsConfig(BaseModel):
    trend_epsilon: float = 1e-6
    mood_window: int = 7
    journal_limit: int = 50


class Config(BaseModel):
    server: ServerConfig = ServerConfig()
    logging: LoggingConfig = LoggingConfig()
    session: SessionConfig = SessionConfig()
    llm: LLMConfig = LLMConfig()
    memory: MemoryConfig = MemoryConfig()
    agents: AgentsConfig = AgentsConfig()
    analytics: AnalyticsConfig = AnalyticsConfig()


def load_config(path: str = "config/default.toml") -> Config:
    """Load config from TOML file, validate with Pydantic."""
    with open(path, "rb") as f:
        data = tomli.load(f)
    return Config(**data)
