from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Environment mode: dev or prod
    ENV: Literal["dev", "prod"] = "dev"

    # External listings API
    BACKEND_URL: str = "http://localhost:4000"
    USE_COMBINED_ENDPOINT: bool = True  # /api/investments instead of /api/tesla + /api/coins
    FETCH_LIMIT: int = 200
    REQUEST_TIMEOUT_SECONDS: float = 15.0

    # Listing view
    DEFAULT_PER_PAGE: int = 12
    MAX_PER_PAGE: int = 200
    SEARCH_DEBOUNCE_MS: int = 300
    LOAD_ON_STARTUP: bool = True

    # Support messaging
    MESSAGE_POLL_INTERVAL_SECONDS: float = 3.0
    MESSAGE_POLLING_ENABLED: bool = False
    MANAGEMENT_USER_ID: int = 1

    # Session storage
    SESSION_BACKEND: Literal["memory", "file", "sql"] = "memory"
    SESSION_FILE: str = "session/auth.json"
    SESSION_DATABASE_URL: str = "sqlite:///./vanguard_session.db"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    HTTP_CLIENT_LOG_LEVEL: str = "WARNING"  # httpx logs every request at INFO
    ALERT_WEBHOOK_URL: str | None = None

    # Docs Configuration
    DOCS_ENABLED: bool | None = None  # Override docs setting (None = auto based on ENV)

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",  # ignore unrelated keys in local .env
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENV == "prod"

    @property
    def is_development(self) -> bool:
        return self.ENV == "dev"

    @property
    def debug_enabled(self) -> bool:
        """Debug mode is only enabled in development."""
        return self.is_development

    @property
    def effective_log_level(self) -> str:
        """Return appropriate log level based on environment."""
        if self.is_production:
            # Production never logs below INFO
            return self.LOG_LEVEL if self.LOG_LEVEL.upper() != "DEBUG" else "INFO"
        return self.LOG_LEVEL

    @property
    def docs_enabled(self) -> bool:
        """Swagger/ReDoc docs enabled based on environment or override."""
        if self.DOCS_ENABLED is not None:
            return self.DOCS_ENABLED
        return self.is_development


settings = Settings()
