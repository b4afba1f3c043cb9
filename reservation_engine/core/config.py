# reservation_engine/core/config.py
from typing import List, Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    DATABASE_URL: str = "sqlite://./reservations.sqlite3"
    API_V1_PREFIX: str = "/api/v1"
    PROJECT_NAME: str = "Table Reservation API"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    CORS_ORIGINS: str = "http://localhost:3000"

    STORE_BACKEND: Literal["database", "memory"] = "database"
    STORE_TIMEOUT_SECONDS: float = 5.0

    # Run the full conflict check when an edit moves a booking.
    EDIT_REVALIDATION: bool = False

    REDIS_URL: Optional[str] = None
    AVAILABLE_TABLES_CACHE_TTL: int = 30  # seconds

    @property
    def cors_origins_list(self) -> List[str]:
        """Convert CORS_ORIGINS string to list."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]


settings = Settings()
