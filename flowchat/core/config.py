"""Application configuration using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="FLOWCHAT_",
    )

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = True
    log_level: Literal["debug", "info", "warning", "error"] = "info"

    # Application settings
    app_name: str = "Flow Chat"
    app_version: str = "0.1.0"
    debug: bool = False

    # CORS settings
    cors_origins: list[str] = ["*"]
    cors_allow_methods: list[str] = ["GET", "POST", "OPTIONS"]
    cors_allow_headers: list[str] = ["*"]

    # Storage
    database_url: str | None = None
    storage_dir: str = "./storage"

    # Integration proxies (slack-action, gmail-proxy, ...)
    proxy_base_url: str = "http://localhost:54321/functions/v1"
    proxy_service_key: str | None = None
    proxy_timeout: float = 60.0

    # AI/LLM settings
    openai_api_key: str | None = None
    anthropic_api_key: str | None = None
    openai_base_url: str = "https://api.openai.com/v1"
    anthropic_base_url: str = "https://api.anthropic.com"
    minimax_base_url: str = "https://api.minimax.io/v1"
    gateway_base_url: str = "https://ai.gateway.lovable.dev/v1"
    default_model: str = "gpt-4o"
    default_instructions: str = "You are a helpful assistant."
    default_temperature: float = 0.7
    max_tool_iterations: int = 5
    llm_timeout: float = 120.0
    anthropic_max_tokens: int = 4096

    # Chat widget
    public_base_url: str | None = None


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
