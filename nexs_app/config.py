"""Application configuration with environment-based settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # HTTP listener
    HOST: str = "0.0.0.0"
    PORT: int = 3001

    # MCP implementation info
    SERVER_NAME: str = "nexs-mcp-app"
    SERVER_VERSION: str = "1.0.0"

    # Stream endpoint; messages are posted to MCP_PATH + "/messages"
    MCP_PATH: str = "/mcp"

    # Only spreadsheets published on this origin are rendered or framed
    NEXS_PLATFORM_ORIGIN: str = "https://platform.nexs.com"

    # Widget HTML override (defaults to the bundled static/spreadsheet.html)
    WIDGET_HTML_PATH: str | None = None

    CORS_ALLOW_ORIGINS: list[str] = ["*"]

    # SSE stream behaviour
    SSE_PING_INTERVAL: int = 15
    SSE_IDLE_TIMEOUT: float | None = None  # None keeps idle streams open

    # Logging
    LOG_LEVEL: str = "INFO"
    USAGE_LOGGING_ENABLED: bool = True
    USAGE_LOG_DESTINATION: str = "stdout"  # stdout, file, or external
    USAGE_LOG_FILE_PATH: str = "logs/usage.log"

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def messages_path(self) -> str:
        """Path clients POST protocol messages to."""
        return self.MCP_PATH.rstrip("/") + "/messages"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
