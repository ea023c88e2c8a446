"""
Configuration module implementing the Singleton pattern for application settings.

Settings are loaded from environment variables and/or a .env file through
Pydantic Settings, with type validation. A single cached instance is shared by
the HTTP API, the MCP server and the logging setup.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings using Pydantic BaseSettings.

    Attributes:
        HOST: Interface the HTTP server binds to
        PORT: Port serving both the UI API and the MCP endpoint
        MCP_PATH: Path of the Streamable HTTP MCP endpoint
        MCP_SERVER_NAME: Server name announced to MCP clients
        REPO_ROOT: Optional repository opened when the application starts
        ENVIRONMENT: Environment configuration (development, staging, production)
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        LOG_DIR: Directory receiving the rotating log files
        EVENT_QUEUE_SIZE: Per-subscriber buffer of pending UI push events
        CORS_ORIGINS: Origins allowed to call the UI API
    """

    # Server settings
    HOST: str = "127.0.0.1"
    PORT: int = 27182
    MCP_PATH: str = "/mcp"
    MCP_SERVER_NAME: str = "reviewbridge"

    # Repository opened at startup, if any
    REPO_ROOT: Optional[str] = None

    # Environment configuration
    ENVIRONMENT: str = "development"  # Options: development, staging, production

    # Logging configuration
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    # UI push channel
    EVENT_QUEUE_SIZE: int = 256
    CORS_ORIGINS: List[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Create and return a cached instance of the Settings class.

    Returns:
        Settings: The singleton instance of application settings
    """
    return Settings()
