"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Brainstore configuration. All values come from environment variables."""

    # Identity
    assistant_name: str = Field(default="brainstore")

    # Anthropic
    anthropic_api_key: str = Field(default="")
    claude_model: str = Field(default="claude-3-haiku-20240307")
    generation_max_tokens: int = Field(default=60)
    generation_temperature: float = Field(default=0.3)
    generation_stop_sequences: str = Field(default="\n\n")
    generation_history_messages: int = Field(default=20)

    # Chroma (vector memory)
    chroma_url: str = Field(default="")
    chroma_path: Path = Field(default=Path("data/chroma"))
    collection_name: str = Field(default="ai-brainstore")
    embedding_dimensions: int = Field(default=384)

    # Memory recall
    memory_search_limit: int = Field(default=5)
    memory_fallback_search_limit: int = Field(default=3)
    memory_distance_threshold: float = Field(default=0.8)
    memory_list_limit: int = Field(default=100)
    reset_memories_on_startup: bool = Field(default=True)
    seed_basic_knowledge: bool = Field(default=True)

    # Conversation log database
    database_path: Path = Field(default=Path("data/brainstore.db"))

    # Turso (hosted libSQL): when set, overrides local database_path
    turso_database_url: str = Field(default="")
    turso_auth_token: str = Field(default="")

    # Web lookup
    serpapi_api_key: str = Field(default="")
    web_lookup_timeout: float = Field(default=10.0)

    # Prompt ceiling in characters (0 = unbounded)
    max_context_chars: int = Field(default=0)

    # HTTP server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=5000)
    cors_origins: str = Field(default="*")

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    def get_stop_sequences(self) -> list[str]:
        """Parse GENERATION_STOP_SEQUENCES (comma-separated, escapes allowed)."""
        raw = self.generation_stop_sequences
        if not raw:
            return []
        parts = [p.encode("utf-8").decode("unicode_escape") for p in raw.split(",")]
        return [p for p in parts if p]

    def get_cors_origins(self) -> list[str]:
        """Parse CORS_ORIGINS into a list of origins."""
        if not self.cors_origins.strip():
            return []
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


settings = Settings()
