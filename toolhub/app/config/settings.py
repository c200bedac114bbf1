"""
Application settings using Pydantic Settings.

Loads configuration from environment variables and .env file.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with validation and defaults."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server
    host: str = Field(default="127.0.0.1", description="Server bind address")
    port: int = Field(default=8000, ge=1, le=65535, description="Server port")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: str = Field(default="", description="Optional log file path")
    log_json: bool = Field(default=True, description="Emit JSON log lines")

    # Database
    database_url: str = Field(
        default="sqlite:///./data/toolhub.db", description="Database connection URL"
    )

    # Remote tools
    remote_timeout_seconds: float = Field(
        default=30, gt=0, le=600, description="Timeout for remote tool calls and probes"
    )
    remote_probe_before_invoke: bool = Field(
        default=True, description="Probe remote endpoints with initialize before each call"
    )
    mcp_client_name: str = Field(default="toolhub", description="clientInfo.name sent on probe")
    mcp_client_version: str = Field(default="0.1.0", description="clientInfo.version sent on probe")
    mcp_protocol_version: str = Field(
        default="2024-11-05", description="protocolVersion sent on probe"
    )

    # Market sync
    market_page_size: int = Field(
        default=40, ge=1, le=200, description="Page size used when listing a market"
    )
    market_lang: str = Field(default="zh", description="lang query parameter for market listings")
    market_timeout_seconds: float = Field(
        default=30, gt=0, le=600, description="Timeout for market listing requests"
    )

    # Local tools
    local_tools_eager: bool = Field(
        default=True,
        description="Initialize the local tool registry at startup instead of on first use",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid:
            raise ValueError(f"log_level must be one of {valid}")
        return upper


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
