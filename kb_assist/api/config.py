"""Configuration management using pydantic-settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from pathlib import Path
from typing import List, Optional
import os


def _default_cors_origins() -> List[str]:
    """Build sane CORS defaults without hardcoded project port literals."""
    frontend_port = os.getenv("FRONTEND_PORT", "").strip()
    origins = [
        "http://localhost:5500",
        "http://127.0.0.1:5500",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]
    if frontend_port:
        origins = [
            f"http://localhost:{frontend_port}",
            f"http://127.0.0.1:{frontend_port}",
            *origins,
        ]
    return origins


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Storage Configuration
    vector_db_path: Path = Path("data/state/kb_vectors.sqlite3")
    embedding_dim: int = Field(default=768, ge=0, description="0 infers the dimension per tier")
    rag_config_path: Path = Path("data/state/rag_config.yaml")

    # Embedding / generation backends
    ollama_url: str = "http://localhost:11434"
    embed_model: str = "nomic-embed-text"
    gen_model: str = ""
    provider: str = "OLLAMA"
    embed_concurrency: Optional[int] = Field(default=None, ge=1)

    # Provider credentials (never listed by the provider directory)
    groq_api_key: str = ""
    openai_api_key: str = ""
    mistral_api_key: str = ""

    # CORS Configuration
    cors_origins: List[str] = Field(default_factory=_default_cors_origins)

    # Logging
    log_level: str = "INFO"
    log_dir: Path = Path("logs")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("ollama_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, value):
        if isinstance(value, str):
            return value.strip().rstrip("/")
        return value

    def api_key_for(self, setting_name: Optional[str]) -> Optional[str]:
        """Resolve a provider's API key by its settings field name."""
        if not setting_name:
            return None
        return getattr(self, setting_name, "") or None


# Global settings instance
settings = Settings()
