"""Configuration module for Wedding Event Planner.

This module provides configuration settings using Pydantic Settings.
Environment variables can be used to override default values.
"""

from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings for Wedding Event Planner.

    All settings can be overridden via environment variables.
    Example: export DATABASE_URL="postgresql://..."
    """

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./events.db"
    """Database connection URL. Default: SQLite file in current directory"""

    # API Server Configuration
    API_HOST: str = "0.0.0.0"
    """API server host address"""

    API_PORT: int = 8005
    """API server port"""

    CORS_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]
    """Frontend origins allowed to call the API"""

    # MCP Server Configuration
    MCP_HOST: str = "127.0.0.1"
    """MCP server host address"""

    MCP_PORT: int = 8006
    """MCP server port for SSE transport (separate from REST API)"""

    MCP_TRANSPORT: str = "sse"
    """MCP transport type: 'stdio' for local, 'sse' for network access"""

    # Event Rules
    TIMEZONE: str = "UTC"
    """Zone used to interpret event dates submitted without an offset"""

    ALLOW_PAST_EVENT_DATES: bool = False
    """Accept new events dated before the current time"""

    MAX_EVENTS_LIST: int = 1000
    """Upper bound for list endpoints"""

    # Event Store Client Configuration
    EVENT_API_URL: str = "http://127.0.0.1:8005"
    """Base URL of the events CRUD API used by clients and the watcher"""

    STORE_TIMEOUT: float = 30.0
    """HTTP timeout in seconds for event store calls"""

    # Reminder Watcher Configuration
    WORKER_ENABLED: bool = True
    """Enable/disable the background reminder watcher"""

    WORKER_CHECK_INTERVAL: int = 60
    """Interval in seconds between watcher refreshes (default: 60 seconds)"""

    WORKER_LOOKAHEAD_MINUTES: int = 60
    """Reminders falling due within this window are announced in the log"""

    # Logging Configuration
    LOG_LEVEL: str = "INFO"
    """Level for the planner loggers (DEBUG, INFO, WARNING, ERROR)"""

    LOG_DIR: str = "logs"
    """Directory for rotating log files, relative to the project unless absolute"""

    class Config:
        """Pydantic config"""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


# Global settings instance
settings = Settings()
