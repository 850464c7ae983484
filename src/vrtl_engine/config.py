from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import AliasChoices, Field
from functools import lru_cache
from typing import List, Optional

class Settings(BaseSettings):
    DB_PATH: str = Field("./vrtl.sqlite", description="Path to SQLite database")
    LOG_LEVEL: str = "INFO"

    # Provider credentials. A provider is enabled purely by key presence.
    OPENAI_API_KEY: Optional[str] = Field(None, description="OpenAI API Key")
    ANTHROPIC_API_KEY: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("ANTHROPIC_API_KEY", "ANTHROPIC_KEY", "CLAUDE_API_KEY"),
        description="Anthropic API Key",
    )
    GEMINI_API_KEY: Optional[str] = Field(None, description="Google Gemini API Key")

    OPENAI_MODEL: str = "gpt-4o-mini"
    ANTHROPIC_MODEL: str = "claude-sonnet-4-5-20250929"
    GEMINI_MODEL: str = "gemini-2.5-flash"
    ANTHROPIC_MAX_TOKENS: int = 800

    # Providers wired into the snapshot run path (comma separated)
    RUN_PROVIDERS: str = Field("openai,anthropic,gemini", description="Providers used by snapshot runs")
    PROMPT_PACK: str = Field("v1_core_10", description="Active prompt pack name")

    # Snapshot guardrails
    SNAPSHOT_STALE_RUNNING_MINUTES: int = Field(15, description="Auto-fail running snapshots older than this; 0 disables")
    SNAPSHOT_CLIENT_COOLDOWN_SECONDS: int = Field(0, description="Minimum gap between snapshots of one client; 0 disables")
    SNAPSHOT_DAILY_LIMIT: Optional[int] = Field(None, description="Max snapshots per agency per 24h; unset disables")
    SNAPSHOT_PROVIDER_ATTEMPTS: int = Field(1, description="Attempts per provider call; 1 means no retry")
    SNAPSHOT_OPENAI_CONCURRENCY: int = 6
    SNAPSHOT_ANTHROPIC_CONCURRENCY: int = 3
    SNAPSHOT_GEMINI_CONCURRENCY: int = 3

    VRTL_ENABLE_DEBUG_RESPONSES: bool = Field(False, description="Allow raw text in snapshot detail")

    # MLflow settings
    MLFLOW_TRACKING_URI: str = Field("http://127.0.0.1:5000", description="MLflow tracking server URI")
    MLFLOW_ENABLE_TRACING: bool = Field(False, description="Enable MLflow tracing")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    def run_providers(self) -> List[str]:
        return [p.strip().lower() for p in self.RUN_PROVIDERS.split(",") if p.strip()]

@lru_cache()
def get_settings() -> Settings:
    return Settings()
